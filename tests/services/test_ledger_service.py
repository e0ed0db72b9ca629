"""
Tests for the LedgerService.

Tests cover:
- Balanced posting groups
- Unbalanced group rejection
- One posting group per source
- Inactive and unknown account rejection
- Balance calculation on the normal side, with as_of
- Cached balance refresh (accounts and linked bank accounts)
- Ledger-wide integrity check
"""

from datetime import date
from decimal import Decimal

import pytest

from finance_ledger.errors import ConflictError, NotFoundError, ValidationError
from finance_ledger.models.bank_account import BankAccount
from finance_ledger.models.enums import SourceType
from finance_ledger.models.ledger_posting import LedgerPosting
from finance_ledger.schemas.ledger import PostingLineCreate
from finance_ledger.services.ledger_service import LedgerService


def pair(debit_account, credit_account, amount):
    amount = Decimal(amount)
    return [
        PostingLineCreate(account_id=debit_account.id, debit_amount=amount),
        PostingLineCreate(account_id=credit_account.id, credit_amount=amount),
    ]


class TestWritePostings:

    def test_balanced_group_written(self, db_session, context, coa):
        service = LedgerService(db_session, context)
        postings = service.write_postings(
            SourceType.JOURNAL_ENTRY, 1, date(2024, 1, 5),
            pair(coa["1000"], coa["4000"], "250.00"),
            memo="Sale",
        )
        db_session.commit()

        assert len(postings) == 2
        assert all(p.memo == "Sale" for p in postings)
        assert all(p.tenant_id == "tenant-a" for p in postings)

    def test_unbalanced_group_rejected(self, db_session, context, coa):
        service = LedgerService(db_session, context)
        with pytest.raises(ValidationError, match="do not balance"):
            service.write_postings(
                SourceType.JOURNAL_ENTRY, 1, date(2024, 1, 5),
                [
                    PostingLineCreate(account_id=coa["1000"].id, debit_amount=Decimal("100")),
                    PostingLineCreate(account_id=coa["4000"].id, credit_amount=Decimal("90")),
                ],
            )
        assert db_session.query(LedgerPosting).count() == 0

    def test_single_line_rejected(self, db_session, context, coa):
        service = LedgerService(db_session, context)
        with pytest.raises(ValidationError):
            service.write_postings(
                SourceType.JOURNAL_ENTRY, 1, date(2024, 1, 5),
                [PostingLineCreate(account_id=coa["1000"].id, debit_amount=Decimal("1"))],
            )

    def test_second_write_for_same_source_rejected(self, db_session, context, coa):
        service = LedgerService(db_session, context)
        service.write_postings(
            SourceType.BANK_TXN, 7, date(2024, 1, 5),
            pair(coa["1000"], coa["4000"], "10.00"),
        )
        db_session.commit()

        with pytest.raises(ConflictError):
            service.write_postings(
                SourceType.BANK_TXN, 7, date(2024, 1, 5),
                pair(coa["1000"], coa["4000"], "10.00"),
            )

    def test_same_id_different_source_type_allowed(self, db_session, context, coa):
        service = LedgerService(db_session, context)
        service.write_postings(
            SourceType.BANK_TXN, 7, date(2024, 1, 5),
            pair(coa["1000"], coa["4000"], "10.00"),
        )
        service.write_postings(
            SourceType.JOURNAL_ENTRY, 7, date(2024, 1, 5),
            pair(coa["1000"], coa["4000"], "10.00"),
        )
        db_session.commit()

        assert db_session.query(LedgerPosting).count() == 4

    def test_inactive_account_rejected(self, db_session, context, coa):
        coa["6100"].is_active = False
        db_session.commit()

        service = LedgerService(db_session, context)
        with pytest.raises(ValidationError, match="not active"):
            service.write_postings(
                SourceType.JOURNAL_ENTRY, 1, date(2024, 1, 5),
                pair(coa["6100"], coa["1000"], "5.00"),
            )

    def test_other_tenant_account_rejected(self, db_session, context, other_context, coa):
        service = LedgerService(db_session, other_context)
        with pytest.raises(NotFoundError):
            service.write_postings(
                SourceType.JOURNAL_ENTRY, 1, date(2024, 1, 5),
                pair(coa["1000"], coa["4000"], "5.00"),
            )

    def test_posting_line_needs_exactly_one_side(self):
        with pytest.raises(ValueError):
            PostingLineCreate(account_id=1, debit_amount=Decimal("1"), credit_amount=Decimal("1"))
        with pytest.raises(ValueError):
            PostingLineCreate(account_id=1)


class TestBalances:

    def test_balance_on_normal_side(self, db_session, context, coa):
        service = LedgerService(db_session, context)
        service.write_postings(
            SourceType.JOURNAL_ENTRY, 1, date(2024, 1, 5),
            pair(coa["1000"], coa["4000"], "500.00"),
        )
        service.write_postings(
            SourceType.JOURNAL_ENTRY, 2, date(2024, 1, 6),
            pair(coa["6100"], coa["1000"], "120.00"),
        )
        db_session.commit()

        assert service.get_account_balance(coa["1000"].id) == Decimal("380.00")
        assert service.get_account_balance(coa["4000"].id) == Decimal("500.00")
        assert service.get_account_balance(coa["6100"].id) == Decimal("120.00")

    def test_balance_as_of(self, db_session, context, coa):
        service = LedgerService(db_session, context)
        service.write_postings(
            SourceType.JOURNAL_ENTRY, 1, date(2024, 1, 5),
            pair(coa["1000"], coa["4000"], "500.00"),
        )
        service.write_postings(
            SourceType.JOURNAL_ENTRY, 2, date(2024, 2, 5),
            pair(coa["1000"], coa["4000"], "100.00"),
        )
        db_session.commit()

        assert service.get_account_balance(coa["1000"].id, as_of=date(2024, 1, 31)) == Decimal("500.00")
        assert service.get_account_balance(coa["1000"].id) == Decimal("600.00")

    def test_unused_account_balance_is_zero(self, db_session, context, coa):
        service = LedgerService(db_session, context)
        assert service.get_account_balance(coa["1500"].id) == Decimal("0")

    def test_refresh_updates_account_and_bank_caches(self, db_session, context, coa):
        bank_account = BankAccount(
            tenant_id="tenant-a", name="Operating", finance_account_id=coa["1000"].id,
        )
        db_session.add(bank_account)
        db_session.commit()

        service = LedgerService(db_session, context)
        service.write_postings(
            SourceType.JOURNAL_ENTRY, 1, date(2024, 1, 5),
            pair(coa["1000"], coa["3000"], "1000.00"),
        )
        service.refresh_balances([coa["1000"].id, coa["3000"].id])
        db_session.commit()

        assert coa["1000"].current_balance == Decimal("1000.00")
        assert coa["3000"].current_balance == Decimal("1000.00")
        assert bank_account.current_balance == Decimal("1000.00")

    def test_delete_postings_returns_touched_accounts(self, db_session, context, coa):
        service = LedgerService(db_session, context)
        service.write_postings(
            SourceType.JOURNAL_ENTRY, 1, date(2024, 1, 5),
            pair(coa["1000"], coa["4000"], "50.00"),
        )
        db_session.commit()

        touched = service.delete_postings(SourceType.JOURNAL_ENTRY, 1)
        db_session.commit()

        assert touched == sorted([coa["1000"].id, coa["4000"].id])
        assert service.get_postings(SourceType.JOURNAL_ENTRY, 1) == []


class TestIntegrity:

    def test_healthy_ledger(self, db_session, context, coa):
        service = LedgerService(db_session, context)
        service.write_postings(
            SourceType.JOURNAL_ENTRY, 1, date(2024, 1, 5),
            pair(coa["1000"], coa["4000"], "75.00"),
        )
        db_session.commit()

        report = service.check_integrity()
        assert report.is_balanced is True
        assert report.total_debits == Decimal("75.00")
        assert report.unbalanced_sources == []

    def test_detects_tampered_group(self, db_session, context, coa):
        db_session.add(LedgerPosting(
            tenant_id="tenant-a",
            source_type=SourceType.JOURNAL_ENTRY,
            source_id=99,
            posting_date=date(2024, 1, 5),
            account_id=coa["1000"].id,
            debit_amount=Decimal("10.00"),
            credit_amount=Decimal("0"),
        ))
        db_session.commit()

        report = LedgerService(db_session, context).check_integrity()
        assert report.is_balanced is False
        assert report.difference == Decimal("10.00")
        assert report.unbalanced_sources[0].source_id == 99
