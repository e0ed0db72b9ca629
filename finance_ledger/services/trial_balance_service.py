"""
Trial balance report.

Built from ledger postings only, never from the cached
Account.current_balance, so it always reflects the source of truth.
"""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select, func

from finance_ledger.models.account import Account
from finance_ledger.models.enums import ACCOUNT_TYPE_ORDER, AccountType
from finance_ledger.models.ledger_posting import LedgerPosting
from finance_ledger.schemas.reconciliation import TrialBalanceResponse, TrialBalanceRow
from finance_ledger.services.base import BALANCE_EPSILON, TenantScopedService, to_decimal
from finance_ledger.services.ledger_service import signed_balance

logger = logging.getLogger(__name__)


class TrialBalanceService(TenantScopedService):

    def compute(self, as_of: date | None = None) -> TrialBalanceResponse:
        """
        Sum debits and credits per account, optionally up to a date.

        Only accounts with at least one posting appear. The equation
        difference is assets - (liabilities + equity + income - expense),
        each taken on its normal side; it is zero for a healthy ledger.
        """
        self._authorize("report.trial_balance", "report")

        query = (
            select(
                Account,
                func.sum(LedgerPosting.debit_amount),
                func.sum(LedgerPosting.credit_amount),
            )
            .join(LedgerPosting, LedgerPosting.account_id == Account.id)
            .where(
                LedgerPosting.tenant_id == self.tenant_id,
                Account.tenant_id == self.tenant_id,
            )
            .group_by(Account.id)
        )
        if as_of is not None:
            query = query.where(LedgerPosting.posting_date <= as_of)

        rows = []
        by_type = dict.fromkeys(AccountType, Decimal("0"))
        total_debit = Decimal("0")
        total_credit = Decimal("0")

        for account, debits, credits in self.db.execute(query).all():
            debits, credits = to_decimal(debits), to_decimal(credits)
            balance = signed_balance(account.normal_balance, debits, credits)
            total_debit += debits
            total_credit += credits
            by_type[account.account_type] += balance
            rows.append(TrialBalanceRow(
                account_id=account.id,
                account_number=account.account_number,
                account_name=account.name,
                account_type=account.account_type,
                total_debit=debits,
                total_credit=credits,
                balance=balance,
            ))

        rows.sort(key=lambda r: (
            ACCOUNT_TYPE_ORDER.index(r.account_type),
            r.account_number or r.account_name,
        ))

        equation_difference = by_type[AccountType.ASSET] - (
            by_type[AccountType.LIABILITY]
            + by_type[AccountType.EQUITY]
            + by_type[AccountType.INCOME]
            - by_type[AccountType.EXPENSE]
        )
        is_balanced = abs(total_debit - total_credit) < BALANCE_EPSILON
        if not is_balanced:
            logger.warning(
                "Trial balance out of balance for tenant %s: debits=%s credits=%s",
                self.tenant_id, total_debit, total_credit,
            )

        return TrialBalanceResponse(
            as_of=as_of,
            rows=rows,
            total_debit=total_debit,
            total_credit=total_credit,
            is_balanced=is_balanced,
            equation_difference=equation_difference,
        )
