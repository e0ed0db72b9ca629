"""
Tests for the ChartOfAccountsService.

Tests cover:
- Normal balance derived from account type
- System account protection
- Deactivation
- Templates and bulk import ordering
- Tenant isolation
"""

import pytest

from finance_ledger.context import RequestContext, StaticAuthorizer
from finance_ledger.errors import (
    AuthorizationError,
    NoActiveTenantError,
    NotAuthenticatedError,
    NotFoundError,
    ValidationError,
)
from finance_ledger.models.enums import AccountType, NormalBalance
from finance_ledger.schemas.account import AccountCreate, AccountUpdate
from finance_ledger.services.chart_of_accounts_service import ChartOfAccountsService


def make_account(service, name, account_type, number=None, **kwargs):
    return service.create_account(AccountCreate(
        account_number=number,
        name=name,
        account_type=account_type,
        **kwargs,
    ))


class TestCreateAccount:

    @pytest.mark.parametrize("account_type, expected", [
        (AccountType.ASSET, NormalBalance.DEBIT),
        (AccountType.EXPENSE, NormalBalance.DEBIT),
        (AccountType.LIABILITY, NormalBalance.CREDIT),
        (AccountType.EQUITY, NormalBalance.CREDIT),
        (AccountType.INCOME, NormalBalance.CREDIT),
    ])
    def test_normal_balance_follows_type(self, db_session, context, account_type, expected):
        service = ChartOfAccountsService(db_session, context)
        account = make_account(service, "Test", account_type)
        db_session.commit()

        assert account.normal_balance == expected
        assert account.tenant_id == "tenant-a"
        assert account.created_by == "user-1"

    def test_duplicate_numbers_allowed(self, db_session, context):
        service = ChartOfAccountsService(db_session, context)
        make_account(service, "Cash", AccountType.ASSET, number="1000")
        make_account(service, "Cash Too", AccountType.ASSET, number="1000")
        db_session.commit()

        assert len(service.list_accounts()) == 2

    def test_unknown_parent_rejected(self, db_session, context):
        service = ChartOfAccountsService(db_session, context)
        with pytest.raises(NotFoundError):
            make_account(service, "Child", AccountType.ASSET, parent_account_id=999)

    def test_missing_actor_rejected(self, db_session):
        service = ChartOfAccountsService(
            db_session, RequestContext(actor_id=None, tenant_id="tenant-a")
        )
        with pytest.raises(NotAuthenticatedError):
            make_account(service, "Cash", AccountType.ASSET)

    def test_missing_tenant_rejected(self, db_session):
        service = ChartOfAccountsService(
            db_session, RequestContext(actor_id="user-1", tenant_id=None)
        )
        with pytest.raises(NoActiveTenantError):
            service.list_accounts()

    def test_authorizer_denial(self, db_session, context):
        authorizer = StaticAuthorizer({"user-1": {"account.update"}})
        service = ChartOfAccountsService(db_session, context, authorizer=authorizer)
        with pytest.raises(AuthorizationError):
            make_account(service, "Cash", AccountType.ASSET)


class TestUpdateAccount:

    def test_type_change_rederives_normal_balance(self, db_session, context):
        service = ChartOfAccountsService(db_session, context)
        account = make_account(service, "Misc", AccountType.ASSET)

        service.update_account(account.id, AccountUpdate(account_type=AccountType.INCOME))
        db_session.commit()

        assert account.account_type == AccountType.INCOME
        assert account.normal_balance == NormalBalance.CREDIT

    def test_partial_update_keeps_other_fields(self, db_session, context):
        service = ChartOfAccountsService(db_session, context)
        account = make_account(
            service, "Rent", AccountType.EXPENSE, number="6000", description="Office"
        )

        service.update_account(account.id, AccountUpdate(name="Office Rent"))
        db_session.commit()

        assert account.name == "Office Rent"
        assert account.account_number == "6000"
        assert account.description == "Office"

    def test_system_account_type_locked(self, db_session, context):
        service = ChartOfAccountsService(db_session, context)
        account = make_account(
            service, "Retained Earnings", AccountType.EQUITY, is_system=True
        )

        with pytest.raises(ValidationError, match="cannot change"):
            service.update_account(
                account.id, AccountUpdate(account_type=AccountType.ASSET)
            )

    def test_system_account_rename_allowed(self, db_session, context):
        service = ChartOfAccountsService(db_session, context)
        account = make_account(
            service, "Retained Earnings", AccountType.EQUITY, is_system=True
        )

        service.update_account(account.id, AccountUpdate(name="Accumulated Earnings"))
        assert account.name == "Accumulated Earnings"

    def test_own_parent_rejected(self, db_session, context):
        service = ChartOfAccountsService(db_session, context)
        account = make_account(service, "Cash", AccountType.ASSET)

        with pytest.raises(ValidationError, match="own parent"):
            service.update_account(account.id, AccountUpdate(parent_account_id=account.id))


class TestDeactivate:

    def test_deactivate(self, db_session, context):
        service = ChartOfAccountsService(db_session, context)
        account = make_account(service, "Old Expense", AccountType.EXPENSE)

        service.deactivate_account(account.id)
        db_session.commit()

        assert account.is_active is False
        assert service.list_accounts(active_only=True) == []

    def test_system_account_cannot_be_deactivated(self, db_session, context):
        service = ChartOfAccountsService(db_session, context)
        account = make_account(service, "Suspense", AccountType.ASSET, is_system=True)

        with pytest.raises(ValidationError, match="cannot be deactivated"):
            service.deactivate_account(account.id)


class TestTemplatesAndImport:

    def test_apply_builtin_template(self, db_session, context, audit_sink):
        service = ChartOfAccountsService(db_session, context, audit=audit_sink)
        accounts = service.apply_builtin_template("standard")
        db_session.commit()

        assert len(accounts) == 14
        assert [a.display_order for a in accounts] == list(range(1, 15))
        assert "coa.template_applied" in audit_sink.actions

    def test_unknown_template(self, db_session, context):
        service = ChartOfAccountsService(db_session, context)
        with pytest.raises(NotFoundError):
            service.apply_builtin_template("nonprofit")

    def test_import_preserves_input_order(self, db_session, context):
        service = ChartOfAccountsService(db_session, context)
        accounts = service.import_accounts([
            AccountCreate(name="Zeta Income", account_type=AccountType.INCOME),
            AccountCreate(name="Alpha Asset", account_type=AccountType.ASSET),
        ])
        db_session.commit()

        assert [a.display_order for a in accounts] == [1, 2]
        assert accounts[0].normal_balance == NormalBalance.CREDIT

    def test_list_sorted_by_type_then_number(self, db_session, context):
        service = ChartOfAccountsService(db_session, context)
        make_account(service, "Rent", AccountType.EXPENSE, number="6000")
        make_account(service, "Sales", AccountType.INCOME, number="4000")
        make_account(service, "Savings", AccountType.ASSET, number="1010")
        make_account(service, "Checking", AccountType.ASSET, number="1000")
        db_session.commit()

        names = [a.name for a in service.list_accounts()]
        assert names == ["Checking", "Savings", "Sales", "Rent"]


class TestTenantIsolation:

    def test_other_tenant_cannot_see_account(self, db_session, context, other_context):
        mine = ChartOfAccountsService(db_session, context)
        account = make_account(mine, "Cash", AccountType.ASSET)
        db_session.commit()

        theirs = ChartOfAccountsService(db_session, other_context)
        with pytest.raises(NotFoundError):
            theirs.get_account(account.id)
        assert theirs.list_accounts() == []
