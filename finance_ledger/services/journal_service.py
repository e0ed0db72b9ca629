"""
Journal service: manual journal entries and their lifecycle.

    draft --post--> posted --void--> voided
    draft --void--> voided

Drafts can be edited freely and never touch the ledger. Posting
writes one ledger posting per line; voiding removes them again.
Status changes are guarded UPDATEs that only succeed when the row
is still in the expected prior status, so two concurrent posts of
the same entry cannot both write postings.
"""

import logging
from decimal import Decimal

from sqlalchemy import select, update, or_
from sqlalchemy.exc import IntegrityError

from finance_ledger.config import get_settings
from finance_ledger.errors import ConflictError, NotFoundError, ValidationError
from finance_ledger.models.account import Account
from finance_ledger.models.base import utcnow
from finance_ledger.models.enums import JournalEntryStatus, SourceType
from finance_ledger.models.journal_entry import (
    EntrySequence,
    JournalEntry,
    JournalEntryLine,
)
from finance_ledger.schemas.journal import (
    JournalEntryCreate,
    JournalEntryFilter,
    JournalEntryLineInput,
    JournalEntryUpdate,
)
from finance_ledger.schemas.ledger import PostingLineCreate
from finance_ledger.services.base import BALANCE_EPSILON, TenantScopedService
from finance_ledger.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

ENTRY_SEQUENCE_NAME = "journal_entry_number"


def compute_totals(lines) -> tuple[Decimal, Decimal, bool]:
    """Return (total_debit, total_credit, is_balanced) for a set of lines."""
    total_debit = sum((line.debit_amount or Decimal("0") for line in lines), Decimal("0"))
    total_credit = sum((line.credit_amount or Decimal("0") for line in lines), Decimal("0"))
    is_balanced = abs(total_debit - total_credit) < BALANCE_EPSILON
    return total_debit, total_credit, is_balanced


class JournalService(TenantScopedService):

    def __init__(self, db, context, authorizer=None, audit=None):
        super().__init__(db, context, authorizer, audit)
        self.ledger_service = LedgerService(db, context, self.authorizer, self.audit)

    def create_entry(self, request: JournalEntryCreate) -> JournalEntry:
        """
        Create a draft journal entry with its lines.

        An unbalanced draft is allowed; it just cannot be posted
        until it balances.
        """
        self._authorize("journal_entry.create", "journal_entry")
        self._validate_lines(request.lines)
        total_debit, total_credit, is_balanced = compute_totals(request.lines)

        entry = JournalEntry(
            tenant_id=self.tenant_id,
            entry_number=self._next_entry_number(),
            entry_date=request.entry_date,
            memo=request.memo or None,
            status=JournalEntryStatus.DRAFT,
            total_debit=total_debit,
            total_credit=total_credit,
            is_balanced=is_balanced,
            reference_type=request.reference_type,
            reference_id=request.reference_id,
            created_by=self.actor_id,
        )
        entry.lines = self._build_lines(request.lines)
        self.db.add(entry)
        self.db.flush()

        logger.info(
            "Created journal entry %s (balanced=%s)", entry.entry_number, is_balanced
        )
        self._audit("journal_entry.created", "journal_entry", entry.id, {
            "entry_number": entry.entry_number,
            "total_debit": total_debit,
            "total_credit": total_credit,
        })
        return entry

    def update_entry(self, entry_id: int, request: JournalEntryUpdate) -> JournalEntry:
        """
        Replace a draft's header fields and its full line set.

        Posted and voided entries are read-only.
        """
        self._authorize("journal_entry.update", "journal_entry")
        entry = self.get_entry(entry_id)

        if entry.status != JournalEntryStatus.DRAFT:
            raise ConflictError(
                f"Only draft entries can be edited (status: {entry.status.value})"
            )

        self._validate_lines(request.lines)
        total_debit, total_credit, is_balanced = compute_totals(request.lines)

        self._transition(
            entry,
            expected=JournalEntryStatus.DRAFT,
            entry_date=request.entry_date,
            memo=request.memo or None,
            total_debit=total_debit,
            total_credit=total_credit,
            is_balanced=is_balanced,
        )

        # delete-orphan cascade removes the old lines in the same flush
        entry.lines.clear()
        entry.lines.extend(self._build_lines(request.lines))
        self.db.flush()

        self._audit("journal_entry.updated", "journal_entry", entry.id, {
            "entry_number": entry.entry_number,
        })
        return entry

    def post_entry(self, entry_id: int) -> JournalEntry:
        """
        Post a draft entry to the ledger.

        Balance is re-derived from the current lines rather than
        trusted from the stored is_balanced flag.

        Accounting: one posting per line, same account, same side,
        same amount, dated on the entry date.
        """
        self._authorize("journal_entry.post", "journal_entry")
        entry = self.get_entry(entry_id)

        if entry.status != JournalEntryStatus.DRAFT:
            raise ConflictError(
                f"Only draft entries can be posted (status: {entry.status.value})"
            )

        total_debit, total_credit, is_balanced = compute_totals(entry.lines)
        if len(entry.lines) < 2 or not is_balanced:
            logger.warning(
                "Rejected posting of unbalanced entry %s: debits=%s credits=%s",
                entry.entry_number, total_debit, total_credit,
            )
            raise ValidationError(
                "Entry must be balanced to post (debits must equal credits)"
            )

        postings = [
            PostingLineCreate(
                account_id=line.account_id,
                debit_amount=line.debit_amount,
                credit_amount=line.credit_amount,
            )
            for line in entry.lines
        ]
        self.ledger_service.check_postings(SourceType.JOURNAL_ENTRY, entry.id, postings)

        self._transition(
            entry,
            expected=JournalEntryStatus.DRAFT,
            status=JournalEntryStatus.POSTED,
            posted_by=self.actor_id,
            posted_at=utcnow(),
            posting_date=entry.entry_date,
            total_debit=total_debit,
            total_credit=total_credit,
            is_balanced=True,
        )

        self.ledger_service.write_postings(
            SourceType.JOURNAL_ENTRY,
            entry.id,
            entry.entry_date,
            postings,
            memo=entry.memo,
        )
        self.ledger_service.refresh_balances(line.account_id for line in entry.lines)

        logger.info("Posted journal entry %s", entry.entry_number)
        self._audit("journal_entry.posted", "journal_entry", entry.id, {
            "entry_number": entry.entry_number,
            "total_debit": total_debit,
            "total_credit": total_credit,
        })
        return entry

    def void_entry(self, entry_id: int, reason: str | None = None) -> JournalEntry:
        """
        Void a draft or posted entry.

        The entry's postings are deleted, so reports stop seeing
        them. Voided is terminal.
        """
        self._authorize("journal_entry.void", "journal_entry")
        entry = self.get_entry(entry_id)

        if not entry.can_transition_to(JournalEntryStatus.VOIDED):
            raise ConflictError("Entry is already voided")

        was_posted = entry.status == JournalEntryStatus.POSTED
        self._transition(
            entry,
            expected=entry.status,
            status=JournalEntryStatus.VOIDED,
            voided_by=self.actor_id,
            voided_at=utcnow(),
            void_reason=reason or None,
        )

        touched = self.ledger_service.delete_postings(
            SourceType.JOURNAL_ENTRY, entry.id
        )
        self.ledger_service.refresh_balances(touched)

        logger.info(
            "Voided journal entry %s (was posted: %s)", entry.entry_number, was_posted
        )
        self._audit("journal_entry.voided", "journal_entry", entry.id, {
            "entry_number": entry.entry_number,
            "void_reason": entry.void_reason,
        })
        return entry

    def get_entry(self, entry_id: int) -> JournalEntry:
        """Get an entry with its lines."""
        self._require_context()
        entry = self.db.execute(
            select(JournalEntry).where(
                JournalEntry.id == entry_id,
                JournalEntry.tenant_id == self.tenant_id,
            )
        ).scalar_one_or_none()
        if not entry:
            raise NotFoundError(f"Journal entry {entry_id} not found")
        return entry

    def list_entries(self, filter: JournalEntryFilter | None = None) -> list[JournalEntry]:
        """Entries newest first, optionally filtered."""
        self._require_context()
        filter = filter or JournalEntryFilter()

        query = select(JournalEntry).where(JournalEntry.tenant_id == self.tenant_id)
        if filter.status:
            query = query.where(JournalEntry.status == filter.status)
        if filter.date_from:
            query = query.where(JournalEntry.entry_date >= filter.date_from)
        if filter.date_to:
            query = query.where(JournalEntry.entry_date <= filter.date_to)
        if filter.search:
            pattern = f"%{filter.search}%"
            query = query.where(or_(
                JournalEntry.entry_number.ilike(pattern),
                JournalEntry.memo.ilike(pattern),
            ))

        entries = self.db.execute(
            query.order_by(JournalEntry.entry_date.desc(), JournalEntry.id.desc())
        ).scalars().all()
        return list(entries)

    # --- Helpers ---

    def _validate_lines(self, lines: list[JournalEntryLineInput]) -> None:
        if len(lines) < 2:
            raise ValidationError("A journal entry must have at least 2 lines")

        for line in lines:
            has_debit = line.debit_amount > 0
            has_credit = line.credit_amount > 0
            if has_debit == has_credit:
                raise ValidationError(
                    "Each line must have either a debit or credit amount, "
                    "not both or neither"
                )

        account_ids = {line.account_id for line in lines}
        accounts = self.db.execute(
            select(Account).where(
                Account.tenant_id == self.tenant_id,
                Account.id.in_(account_ids),
            )
        ).scalars().all()

        missing = account_ids - {a.id for a in accounts}
        if missing:
            raise NotFoundError(f"Accounts not found: {sorted(missing)}")

        inactive = [a for a in accounts if not a.is_active]
        if inactive:
            raise ValidationError(
                f"Account {inactive[0].account_number or inactive[0].name} is not active"
            )

    def _build_lines(self, lines: list[JournalEntryLineInput]) -> list[JournalEntryLine]:
        return [
            JournalEntryLine(
                account_id=line.account_id,
                description=line.description or None,
                debit_amount=line.debit_amount,
                credit_amount=line.credit_amount,
                line_order=index,
            )
            for index, line in enumerate(lines, start=1)
        ]

    def _transition(self, entry: JournalEntry, expected: JournalEntryStatus, **values) -> None:
        """
        Apply values only if the entry is still in the expected status.

        Raises ConflictError if another request changed it first.
        """
        result = self.db.execute(
            update(JournalEntry)
            .where(
                JournalEntry.id == entry.id,
                JournalEntry.tenant_id == self.tenant_id,
                JournalEntry.status == expected,
            )
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            raise ConflictError(
                f"Journal entry {entry.entry_number} was modified concurrently"
            )
        self.db.refresh(entry)

    def _next_entry_number(self) -> str:
        """
        Allocate the next entry number for the tenant.

        The sequence row is locked while it is incremented, so
        concurrent creators never share a number.
        """
        prefix = get_settings().ENTRY_NUMBER_PREFIX
        sequence = self.db.execute(
            select(EntrySequence)
            .where(
                EntrySequence.tenant_id == self.tenant_id,
                EntrySequence.name == ENTRY_SEQUENCE_NAME,
            )
            .with_for_update()
        ).scalar_one_or_none()

        if sequence is None:
            sequence = EntrySequence(
                tenant_id=self.tenant_id,
                name=ENTRY_SEQUENCE_NAME,
                next_value=1,
            )
            self.db.add(sequence)
            try:
                self.db.flush()
            except IntegrityError as exc:
                raise ConflictError(
                    "Entry number allocation collided, please retry"
                ) from exc

        value = sequence.next_value
        sequence.next_value = value + 1
        self.db.flush()
        return f"{prefix}-{value:05d}"
