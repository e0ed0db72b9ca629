"""
Chart of accounts service.

Creates and maintains a tenant's accounts. The normal balance
side is never taken from the caller: it is always derived from
the account type, on create, on update and on bulk inserts.
"""

import logging

from sqlalchemy import select, func

from finance_ledger.errors import NotFoundError, ValidationError
from finance_ledger.models.account import Account
from finance_ledger.models.enums import (
    ACCOUNT_TYPE_ORDER,
    AccountType,
    normal_balance_for,
)
from finance_ledger.schemas.account import (
    AccountCreate,
    AccountUpdate,
    CoaTemplate,
    CoaTemplateItem,
)
from finance_ledger.services.base import TenantScopedService

logger = logging.getLogger(__name__)


# Fields of a system account that may not change once created
PROTECTED_SYSTEM_FIELDS = {"account_type", "account_number", "is_active"}


STANDARD_TEMPLATE = CoaTemplate(
    name="standard",
    description="Small business chart of accounts",
    accounts=[
        CoaTemplateItem(account_number="1000", name="Checking", account_type=AccountType.ASSET),
        CoaTemplateItem(account_number="1010", name="Savings", account_type=AccountType.ASSET),
        CoaTemplateItem(account_number="1200", name="Accounts Receivable", account_type=AccountType.ASSET),
        CoaTemplateItem(account_number="1500", name="Equipment", account_type=AccountType.ASSET),
        CoaTemplateItem(account_number="2000", name="Accounts Payable", account_type=AccountType.LIABILITY),
        CoaTemplateItem(account_number="2100", name="Credit Card", account_type=AccountType.LIABILITY),
        CoaTemplateItem(account_number="3000", name="Owner's Equity", account_type=AccountType.EQUITY),
        CoaTemplateItem(account_number="3100", name="Retained Earnings", account_type=AccountType.EQUITY),
        CoaTemplateItem(account_number="4000", name="Sales Revenue", account_type=AccountType.INCOME),
        CoaTemplateItem(account_number="4100", name="Service Revenue", account_type=AccountType.INCOME),
        CoaTemplateItem(account_number="5000", name="Cost of Goods Sold", account_type=AccountType.EXPENSE),
        CoaTemplateItem(account_number="6000", name="Rent Expense", account_type=AccountType.EXPENSE),
        CoaTemplateItem(account_number="6100", name="Office Supplies", account_type=AccountType.EXPENSE),
        CoaTemplateItem(account_number="6200", name="Bank Fees", account_type=AccountType.EXPENSE),
    ],
)

BUILTIN_TEMPLATES = {STANDARD_TEMPLATE.name: STANDARD_TEMPLATE}


class ChartOfAccountsService(TenantScopedService):

    def create_account(self, request: AccountCreate) -> Account:
        """
        Create a new account.

        Account numbers are not required to be unique; two accounts
        may share a number if the tenant wants that.
        """
        self._authorize("account.create", "account")

        if request.parent_account_id is not None:
            self.get_account(request.parent_account_id)

        account = Account(
            tenant_id=self.tenant_id,
            account_number=request.account_number or None,
            name=request.name,
            account_type=request.account_type,
            account_subtype=request.account_subtype,
            description=request.description,
            parent_account_id=request.parent_account_id,
            normal_balance=normal_balance_for(request.account_type),
            display_order=self._next_display_order(),
            is_active=request.is_active,
            is_system=request.is_system,
            created_by=self.actor_id,
        )
        self.db.add(account)
        self.db.flush()

        self._audit("coa.account_created", "account", account.id, {
            "name": account.name,
            "account_type": account.account_type.value,
        })
        return account

    def update_account(self, account_id: int, request: AccountUpdate) -> Account:
        """
        Apply a partial update.

        Changing the type re-derives the normal balance. System
        accounts keep their type, number and active flag.
        """
        self._authorize("account.update", "account")
        account = self.get_account(account_id)
        changes = request.model_dump(exclude_unset=True)

        if account.is_system:
            blocked = PROTECTED_SYSTEM_FIELDS & set(changes)
            blocked = {
                name for name in blocked
                if changes[name] != getattr(account, name)
            }
            if blocked:
                raise ValidationError(
                    f"System account {account.name} cannot change "
                    f"{', '.join(sorted(blocked))}"
                )

        if "name" in changes and changes["name"] is None:
            raise ValidationError("Account name cannot be empty")
        if "account_type" in changes and changes["account_type"] is None:
            raise ValidationError("Account type cannot be empty")
        if "is_active" in changes and changes["is_active"] is None:
            del changes["is_active"]

        parent_id = changes.get("parent_account_id")
        if parent_id is not None:
            if parent_id == account.id:
                raise ValidationError("An account cannot be its own parent")
            self.get_account(parent_id)

        for field, value in changes.items():
            setattr(account, field, value)

        if "account_type" in changes:
            account.normal_balance = normal_balance_for(account.account_type)

        self.db.flush()
        self._audit("coa.account_updated", "account", account.id, {
            "name": account.name,
        })
        return account

    def deactivate_account(self, account_id: int) -> Account:
        """
        Mark an account inactive.

        Existing postings stay valid history. Nothing cascades; new
        entries simply can no longer post to this account.
        """
        self._authorize("account.deactivate", "account")
        account = self.get_account(account_id)
        if account.is_system:
            raise ValidationError(
                f"System account {account.name} cannot be deactivated"
            )

        account.is_active = False
        self.db.flush()
        logger.info("Deactivated account %s for tenant %s", account.id, self.tenant_id)
        self._audit("coa.account_deactivated", "account", account.id, {
            "name": account.name,
        })
        return account

    def apply_template(self, template: CoaTemplate) -> list[Account]:
        """Bulk-create every account of a template, in template order."""
        self._authorize("account.create", "coa_template")
        accounts = self._bulk_insert([
            AccountCreate(
                account_number=item.account_number,
                name=item.name,
                account_type=item.account_type,
                description=item.description,
            )
            for item in template.accounts
        ])
        self._audit("coa.template_applied", "coa_template", template.name, {
            "template_name": template.name,
            "account_count": len(accounts),
        })
        return accounts

    def apply_builtin_template(self, name: str) -> list[Account]:
        template = BUILTIN_TEMPLATES.get(name)
        if template is None:
            raise NotFoundError(f"Template '{name}' not found")
        return self.apply_template(template)

    def import_accounts(self, rows: list[AccountCreate]) -> list[Account]:
        """Bulk-create accounts from imported rows, in input order."""
        self._authorize("account.create", "account")
        accounts = self._bulk_insert(rows)
        self._audit("coa.import_completed", "account", self.tenant_id, {
            "account_count": len(accounts),
        })
        return accounts

    def get_account(self, account_id: int) -> Account:
        """Get an account by ID within the tenant."""
        self._require_context()
        account = self.db.execute(
            select(Account).where(
                Account.id == account_id,
                Account.tenant_id == self.tenant_id,
            )
        ).scalar_one_or_none()
        if not account:
            raise NotFoundError(f"Account {account_id} not found")
        return account

    def list_accounts(self, active_only: bool = False) -> list[Account]:
        """All accounts ordered by type, then number, then name."""
        self._require_context()
        query = select(Account).where(Account.tenant_id == self.tenant_id)
        if active_only:
            query = query.where(Account.is_active.is_(True))
        accounts = self.db.execute(query).scalars().all()

        return sorted(
            accounts,
            key=lambda a: (
                ACCOUNT_TYPE_ORDER.index(a.account_type),
                a.account_number or "",
                a.name,
            ),
        )

    def _bulk_insert(self, rows: list[AccountCreate]) -> list[Account]:
        # display_order is the 1-based position in the input
        accounts = []
        for index, row in enumerate(rows, start=1):
            account = Account(
                tenant_id=self.tenant_id,
                account_number=row.account_number or None,
                name=row.name,
                account_type=row.account_type,
                account_subtype=row.account_subtype,
                description=row.description,
                normal_balance=normal_balance_for(row.account_type),
                display_order=index,
                is_active=True,
                is_system=False,
                created_by=self.actor_id,
            )
            self.db.add(account)
            accounts.append(account)

        self.db.flush()
        logger.info(
            "Inserted %d accounts for tenant %s", len(accounts), self.tenant_id
        )
        return accounts

    def _next_display_order(self) -> int:
        current = self.db.execute(
            select(func.max(Account.display_order)).where(
                Account.tenant_id == self.tenant_id
            )
        ).scalar()
        return (current or 0) + 1
