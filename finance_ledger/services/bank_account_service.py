"""
Bank account registry.

A bank account must be mapped to a chart-of-accounts account
before any of its transactions can be posted.
"""

import logging

from sqlalchemy import select

from finance_ledger.errors import NotFoundError
from finance_ledger.models.account import Account
from finance_ledger.models.bank_account import BankAccount
from finance_ledger.schemas.banking import BankAccountCreate, BankAccountUpdate
from finance_ledger.services.base import TenantScopedService

logger = logging.getLogger(__name__)


class BankAccountService(TenantScopedService):

    def create_bank_account(self, request: BankAccountCreate) -> BankAccount:
        self._authorize("bank_account.create", "bank_account")
        if request.finance_account_id is not None:
            self._get_finance_account(request.finance_account_id)

        bank_account = BankAccount(
            tenant_id=self.tenant_id,
            name=request.name,
            institution_name=request.institution_name,
            account_mask=request.account_mask,
            account_type=request.account_type,
            currency=request.currency,
            current_balance=request.current_balance,
            finance_account_id=request.finance_account_id,
            is_active=True,
            created_by=self.actor_id,
        )
        self.db.add(bank_account)
        self.db.flush()

        logger.info("Created bank account %s for tenant %s", bank_account.id, self.tenant_id)
        self._audit("bank_account.created", "bank_account", bank_account.id, {
            "name": bank_account.name,
        })
        return bank_account

    def update_bank_account(self, bank_account_id: int, request: BankAccountUpdate) -> BankAccount:
        self._authorize("bank_account.update", "bank_account")
        bank_account = self.get_bank_account(bank_account_id)

        for field, value in request.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(bank_account, field, value)

        self.db.flush()
        self._audit("bank_account.updated", "bank_account", bank_account.id, {
            "name": bank_account.name,
        })
        return bank_account

    def map_to_coa(self, bank_account_id: int, finance_account_id: int) -> BankAccount:
        """Link the bank account to the ledger account it posts through."""
        self._authorize("bank_account.update", "bank_account")
        bank_account = self.get_bank_account(bank_account_id)
        self._get_finance_account(finance_account_id)

        bank_account.finance_account_id = finance_account_id
        self.db.flush()

        logger.info(
            "Mapped bank account %s to account %s", bank_account.id, finance_account_id
        )
        self._audit("bank_account.mapped", "bank_account", bank_account.id, {
            "finance_account_id": finance_account_id,
        })
        return bank_account

    def deactivate_bank_account(self, bank_account_id: int) -> BankAccount:
        self._authorize("bank_account.deactivate", "bank_account")
        bank_account = self.get_bank_account(bank_account_id)
        bank_account.is_active = False
        self.db.flush()

        logger.info("Deactivated bank account %s", bank_account.id)
        self._audit("bank_account.deactivated", "bank_account", bank_account.id)
        return bank_account

    def get_bank_account(self, bank_account_id: int) -> BankAccount:
        self._require_context()
        bank_account = self.db.execute(
            select(BankAccount).where(
                BankAccount.id == bank_account_id,
                BankAccount.tenant_id == self.tenant_id,
            )
        ).scalar_one_or_none()
        if not bank_account:
            raise NotFoundError(f"Bank account {bank_account_id} not found")
        return bank_account

    def list_bank_accounts(self) -> list[BankAccount]:
        """Active bank accounts, by name."""
        self._require_context()
        bank_accounts = self.db.execute(
            select(BankAccount)
            .where(
                BankAccount.tenant_id == self.tenant_id,
                BankAccount.is_active.is_(True),
            )
            .order_by(BankAccount.name)
        ).scalars().all()
        return list(bank_accounts)

    def _get_finance_account(self, account_id: int) -> Account:
        account = self.db.execute(
            select(Account).where(
                Account.id == account_id,
                Account.tenant_id == self.tenant_id,
            )
        ).scalar_one_or_none()
        if not account:
            raise NotFoundError(f"Account {account_id} not found")
        return account
