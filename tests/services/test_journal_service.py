"""
Tests for the JournalService.

Tests cover:
- Draft creation and entry numbering
- Line validation
- Editing drafts only
- Posting: balance gate, postings written, caches refreshed
- Voiding: postings removed, terminal state
- Listing and filtering
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from finance_ledger.errors import ConflictError, NotFoundError, ValidationError
from finance_ledger.models.enums import JournalEntryStatus, SourceType
from finance_ledger.schemas.journal import (
    JournalEntryCreate,
    JournalEntryFilter,
    JournalEntryLineInput,
    JournalEntryUpdate,
)
from finance_ledger.services.chart_of_accounts_service import (
    ChartOfAccountsService,
    STANDARD_TEMPLATE,
)
from finance_ledger.services.journal_service import JournalService
from finance_ledger.services.ledger_service import LedgerService


def line(account, debit="0", credit="0"):
    return JournalEntryLineInput(
        account_id=account.id,
        debit_amount=Decimal(debit),
        credit_amount=Decimal(credit),
    )


def sale_entry(coa, amount="500.00", entry_date=date(2024, 1, 15), memo="Cash sale"):
    return JournalEntryCreate(
        entry_date=entry_date,
        memo=memo,
        lines=[
            line(coa["1000"], debit=amount),
            line(coa["4000"], credit=amount),
        ],
    )


class TestCreateEntry:

    def test_creates_draft_with_number(self, db_session, context, coa):
        service = JournalService(db_session, context)
        entry = service.create_entry(sale_entry(coa))
        db_session.commit()

        assert entry.status == JournalEntryStatus.DRAFT
        assert entry.entry_number == "JE-00001"
        assert entry.is_balanced is True
        assert entry.total_debit == Decimal("500.00")
        assert [ln.line_order for ln in entry.lines] == [1, 2]

    def test_numbers_are_sequential(self, db_session, context, coa):
        service = JournalService(db_session, context)
        first = service.create_entry(sale_entry(coa))
        second = service.create_entry(sale_entry(coa))
        db_session.commit()

        assert first.entry_number == "JE-00001"
        assert second.entry_number == "JE-00002"

    def test_numbering_is_per_tenant(self, db_session, context, other_context, coa):
        JournalService(db_session, context).create_entry(sale_entry(coa))
        db_session.commit()

        theirs = {
            a.account_number: a
            for a in ChartOfAccountsService(db_session, other_context).apply_template(STANDARD_TEMPLATE)
        }
        entry = JournalService(db_session, other_context).create_entry(sale_entry(theirs))
        db_session.commit()

        assert entry.entry_number == "JE-00001"

    def test_unbalanced_draft_allowed(self, db_session, context, coa):
        service = JournalService(db_session, context)
        entry = service.create_entry(JournalEntryCreate(
            entry_date=date(2024, 1, 15),
            lines=[line(coa["1000"], debit="100"), line(coa["4000"], credit="90")],
        ))
        db_session.commit()

        assert entry.is_balanced is False

    def test_single_line_rejected(self, db_session, context, coa):
        service = JournalService(db_session, context)
        with pytest.raises(ValidationError, match="at least 2 lines"):
            service.create_entry(JournalEntryCreate(
                entry_date=date(2024, 1, 15),
                lines=[line(coa["1000"], debit="100")],
            ))

    @pytest.mark.parametrize("debit, credit", [("10", "10"), ("0", "0")])
    def test_line_needs_exactly_one_side(self, db_session, context, coa, debit, credit):
        service = JournalService(db_session, context)
        with pytest.raises(ValidationError, match="either a debit or credit"):
            service.create_entry(JournalEntryCreate(
                entry_date=date(2024, 1, 15),
                lines=[
                    line(coa["1000"], debit=debit, credit=credit),
                    line(coa["4000"], credit="10"),
                ],
            ))

    def test_unknown_account_rejected(self, db_session, context, coa):
        service = JournalService(db_session, context)
        with pytest.raises(NotFoundError):
            service.create_entry(JournalEntryCreate(
                entry_date=date(2024, 1, 15),
                lines=[
                    line(coa["1000"], debit="10"),
                    JournalEntryLineInput(account_id=9999, credit_amount=Decimal("10")),
                ],
            ))


class TestUpdateEntry:

    def test_replaces_lines(self, db_session, context, coa):
        service = JournalService(db_session, context)
        entry = service.create_entry(sale_entry(coa))
        db_session.commit()

        service.update_entry(entry.id, JournalEntryUpdate(
            entry_date=date(2024, 1, 20),
            memo="Rent",
            lines=[
                line(coa["6000"], debit="800"),
                line(coa["1000"], credit="700"),
                line(coa["2100"], credit="100"),
            ],
        ))
        db_session.commit()

        assert entry.entry_date == date(2024, 1, 20)
        assert len(entry.lines) == 3
        assert entry.total_debit == Decimal("800")
        assert entry.is_balanced is True

    def test_posted_entry_not_editable(self, db_session, context, coa):
        service = JournalService(db_session, context)
        entry = service.create_entry(sale_entry(coa))
        service.post_entry(entry.id)
        db_session.commit()

        with pytest.raises(ConflictError, match="Only draft"):
            service.update_entry(entry.id, JournalEntryUpdate(
                entry_date=date(2024, 1, 20),
                lines=[line(coa["1000"], debit="1"), line(coa["4000"], credit="1")],
            ))


class TestPostEntry:

    def test_post_writes_postings_and_refreshes(self, db_session, context, coa, audit_sink):
        service = JournalService(db_session, context, audit=audit_sink)
        entry = service.create_entry(sale_entry(coa))
        service.post_entry(entry.id)
        db_session.commit()

        assert entry.status == JournalEntryStatus.POSTED
        assert entry.posted_by == "user-1"
        assert entry.posting_date == date(2024, 1, 15)

        postings = LedgerService(db_session, context).get_postings(
            SourceType.JOURNAL_ENTRY, entry.id
        )
        assert len(postings) == 2
        assert all(p.memo == "Cash sale" for p in postings)
        assert coa["1000"].current_balance == Decimal("500.00")
        assert coa["4000"].current_balance == Decimal("500.00")
        assert audit_sink.actions == ["journal_entry.created", "journal_entry.posted"]

    def test_unbalanced_entry_cannot_post(self, db_session, context, coa):
        service = JournalService(db_session, context)
        entry = service.create_entry(JournalEntryCreate(
            entry_date=date(2024, 1, 15),
            lines=[line(coa["1000"], debit="100"), line(coa["4000"], credit="90")],
        ))
        db_session.commit()

        with pytest.raises(ValidationError, match="must be balanced"):
            service.post_entry(entry.id)
        db_session.rollback()

        assert service.get_entry(entry.id).status == JournalEntryStatus.DRAFT

    def test_cannot_post_twice(self, db_session, context, coa):
        service = JournalService(db_session, context)
        entry = service.create_entry(sale_entry(coa))
        service.post_entry(entry.id)
        db_session.commit()

        with pytest.raises(ConflictError):
            service.post_entry(entry.id)

    def test_posted_at_is_naive_utc(self, db_session, context, coa):
        service = JournalService(db_session, context)
        entry = service.create_entry(sale_entry(coa))
        before = datetime.now(timezone.utc).replace(tzinfo=None)
        service.post_entry(entry.id)
        db_session.commit()

        assert entry.posted_at.tzinfo is None
        assert before - timedelta(seconds=1) <= entry.posted_at <= before + timedelta(minutes=1)

    def test_inactive_account_blocks_post(self, db_session, context, coa):
        service = JournalService(db_session, context)
        entry = service.create_entry(sale_entry(coa))
        db_session.commit()
        coa["4000"].is_active = False
        db_session.commit()

        with pytest.raises(ValidationError, match="not active"):
            service.post_entry(entry.id)
        db_session.commit()

        db_session.refresh(entry)
        assert entry.status == JournalEntryStatus.DRAFT
        assert entry.posted_at is None
        postings = LedgerService(db_session, context).get_postings(
            SourceType.JOURNAL_ENTRY, entry.id
        )
        assert postings == []


class TestVoidEntry:

    def test_void_posted_entry_removes_postings(self, db_session, context, coa):
        service = JournalService(db_session, context)
        entry = service.create_entry(sale_entry(coa))
        service.post_entry(entry.id)
        db_session.commit()

        service.void_entry(entry.id, reason="Duplicate")
        db_session.commit()

        assert entry.status == JournalEntryStatus.VOIDED
        assert entry.void_reason == "Duplicate"
        assert entry.voided_by == "user-1"
        ledger = LedgerService(db_session, context)
        assert ledger.get_postings(SourceType.JOURNAL_ENTRY, entry.id) == []
        assert coa["1000"].current_balance == Decimal("0")

    def test_void_draft(self, db_session, context, coa):
        service = JournalService(db_session, context)
        entry = service.create_entry(sale_entry(coa))
        service.void_entry(entry.id)
        db_session.commit()

        assert entry.status == JournalEntryStatus.VOIDED

    def test_void_is_terminal(self, db_session, context, coa):
        service = JournalService(db_session, context)
        entry = service.create_entry(sale_entry(coa))
        service.void_entry(entry.id)
        db_session.commit()

        with pytest.raises(ConflictError, match="already voided"):
            service.void_entry(entry.id)
        with pytest.raises(ConflictError):
            service.post_entry(entry.id)


class TestListEntries:

    def test_newest_first_with_filters(self, db_session, context, coa):
        service = JournalService(db_session, context)
        older = service.create_entry(sale_entry(coa, entry_date=date(2024, 1, 1), memo="January"))
        newer = service.create_entry(sale_entry(coa, entry_date=date(2024, 2, 1), memo="February"))
        service.post_entry(newer.id)
        db_session.commit()

        assert [e.id for e in service.list_entries()] == [newer.id, older.id]
        posted = service.list_entries(JournalEntryFilter(status=JournalEntryStatus.POSTED))
        assert [e.id for e in posted] == [newer.id]
        found = service.list_entries(JournalEntryFilter(search="janu"))
        assert [e.id for e in found] == [older.id]
