"""initial ledger schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ACCOUNT_TYPES = ("ASSET", "LIABILITY", "EQUITY", "INCOME", "EXPENSE")
NORMAL_BALANCES = ("DEBIT", "CREDIT")
JOURNAL_STATUSES = ("DRAFT", "POSTED", "VOIDED")
SOURCE_TYPES = ("JOURNAL_ENTRY", "BANK_TXN")
BANK_TXN_STATUSES = ("UNMATCHED", "MATCHED", "POSTED", "EXCLUDED")
RECONCILIATION_STATUSES = ("IN_PROGRESS", "COMPLETED", "VOIDED")

OPEN_RECONCILIATION_WHERE = sa.text("status = 'IN_PROGRESS'")


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("account_number", sa.String(20), nullable=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column(
            "account_type",
            sa.Enum(*ACCOUNT_TYPES, name="account_type_enum"),
            nullable=False,
        ),
        sa.Column("account_subtype", sa.String(50), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "parent_account_id", sa.Integer(),
            sa.ForeignKey("accounts.id"), nullable=True,
        ),
        sa.Column(
            "normal_balance",
            sa.Enum(*NORMAL_BALANCES, name="normal_balance_enum"),
            nullable=False,
        ),
        sa.Column("current_balance", sa.Numeric(19, 4), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_system", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_accounts_tenant_id", "accounts", ["tenant_id"])

    op.create_table(
        "journal_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("entry_number", sa.String(20), nullable=False),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("posting_date", sa.Date(), nullable=True),
        sa.Column("memo", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                *JOURNAL_STATUSES,
                name="journal_entry_status_enum",
                create_constraint=True,
            ),
            nullable=False,
        ),
        sa.Column("total_debit", sa.Numeric(19, 4), nullable=False),
        sa.Column("total_credit", sa.Numeric(19, 4), nullable=False),
        sa.Column("is_balanced", sa.Boolean(), nullable=False),
        sa.Column("reference_type", sa.String(50), nullable=True),
        sa.Column("reference_id", sa.String(64), nullable=True),
        sa.Column("created_by", sa.String(64), nullable=True),
        sa.Column("posted_by", sa.String(64), nullable=True),
        sa.Column("posted_at", sa.DateTime(), nullable=True),
        sa.Column("voided_by", sa.String(64), nullable=True),
        sa.Column("voided_at", sa.DateTime(), nullable=True),
        sa.Column("void_reason", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "tenant_id", "entry_number", name="uq_journal_entry_number"
        ),
    )
    op.create_index(
        "ix_journal_entries_tenant_id", "journal_entries", ["tenant_id"]
    )

    op.create_table(
        "journal_entry_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "journal_entry_id", sa.Integer(),
            sa.ForeignKey("journal_entries.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "account_id", sa.Integer(),
            sa.ForeignKey("accounts.id"), nullable=False,
        ),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("debit_amount", sa.Numeric(19, 4), nullable=False),
        sa.Column("credit_amount", sa.Numeric(19, 4), nullable=False),
        sa.Column("line_order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_journal_entry_lines_journal_entry_id",
        "journal_entry_lines", ["journal_entry_id"],
    )
    op.create_index(
        "ix_journal_entry_lines_account_id",
        "journal_entry_lines", ["account_id"],
    )

    op.create_table(
        "entry_sequences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("next_value", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("tenant_id", "name", name="uq_entry_sequence_name"),
    )

    op.create_table(
        "ledger_postings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column(
            "source_type",
            sa.Enum(*SOURCE_TYPES, name="source_type_enum"),
            nullable=False,
        ),
        sa.Column("source_id", sa.Integer(), nullable=False),
        sa.Column("posting_date", sa.Date(), nullable=False),
        sa.Column(
            "account_id", sa.Integer(),
            sa.ForeignKey("accounts.id"), nullable=False,
        ),
        sa.Column("debit_amount", sa.Numeric(19, 4), nullable=False),
        sa.Column("credit_amount", sa.Numeric(19, 4), nullable=False),
        sa.Column("memo", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_ledger_postings_source",
        "ledger_postings", ["source_type", "source_id"],
    )
    op.create_index(
        "ix_ledger_postings_tenant_date",
        "ledger_postings", ["tenant_id", "posting_date"],
    )
    op.create_index(
        "ix_ledger_postings_account_id", "ledger_postings", ["account_id"]
    )

    op.create_table(
        "bank_accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("institution_name", sa.String(100), nullable=True),
        sa.Column("account_mask", sa.String(8), nullable=True),
        sa.Column("account_type", sa.String(30), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("current_balance", sa.Numeric(19, 4), nullable=False),
        sa.Column(
            "finance_account_id", sa.Integer(),
            sa.ForeignKey("accounts.id"), nullable=True,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_bank_accounts_tenant_id", "bank_accounts", ["tenant_id"])
    op.create_index(
        "ix_bank_accounts_finance_account_id",
        "bank_accounts", ["finance_account_id"],
    )

    op.create_table(
        "bank_reconciliations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column(
            "bank_account_id", sa.Integer(),
            sa.ForeignKey("bank_accounts.id"), nullable=False,
        ),
        sa.Column("statement_date", sa.Date(), nullable=False),
        sa.Column("statement_ending_balance", sa.Numeric(19, 4), nullable=False),
        sa.Column("cleared_balance", sa.Numeric(19, 4), nullable=True),
        sa.Column("difference", sa.Numeric(19, 4), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                *RECONCILIATION_STATUSES,
                name="reconciliation_status_enum",
                create_constraint=True,
            ),
            nullable=False,
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("completed_by", sa.String(64), nullable=True),
        sa.Column("voided_at", sa.DateTime(), nullable=True),
        sa.Column("voided_by", sa.String(64), nullable=True),
        sa.Column("created_by", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_bank_reconciliations_tenant_id", "bank_reconciliations", ["tenant_id"]
    )
    op.create_index(
        "ix_bank_reconciliations_bank_account_id",
        "bank_reconciliations", ["bank_account_id"],
    )
    op.create_index(
        "uq_bank_reconciliations_one_open",
        "bank_reconciliations", ["bank_account_id"],
        unique=True,
        sqlite_where=OPEN_RECONCILIATION_WHERE,
        postgresql_where=OPEN_RECONCILIATION_WHERE,
    )

    op.create_table(
        "bank_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column(
            "bank_account_id", sa.Integer(),
            sa.ForeignKey("bank_accounts.id"), nullable=False,
        ),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("posted_date", sa.Date(), nullable=True),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("original_description", sa.String(500), nullable=True),
        sa.Column("amount", sa.Numeric(19, 4), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                *BANK_TXN_STATUSES,
                name="bank_transaction_status_enum",
                create_constraint=True,
            ),
            nullable=False,
        ),
        sa.Column(
            "matched_account_id", sa.Integer(),
            sa.ForeignKey("accounts.id"), nullable=True,
        ),
        sa.Column("matched_vendor_id", sa.String(64), nullable=True),
        sa.Column("matched_crm_client_id", sa.String(64), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "journal_entry_id", sa.Integer(),
            sa.ForeignKey("journal_entries.id"), nullable=True,
        ),
        sa.Column(
            "reconciliation_id", sa.Integer(),
            sa.ForeignKey("bank_reconciliations.id"), nullable=True,
        ),
        sa.Column("import_batch_id", sa.String(50), nullable=True),
        sa.Column("dedup_hash", sa.String(200), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_bank_transactions_tenant_id", "bank_transactions", ["tenant_id"]
    )
    op.create_index(
        "ix_bank_transactions_bank_account_id",
        "bank_transactions", ["bank_account_id"],
    )
    op.create_index(
        "ix_bank_transactions_reconciliation_id",
        "bank_transactions", ["reconciliation_id"],
    )
    op.create_index(
        "ix_bank_transactions_dedup",
        "bank_transactions", ["tenant_id", "bank_account_id", "dedup_hash"],
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("actor_id", sa.String(64), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("details", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_log_tenant_id", "audit_log", ["tenant_id"])


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("bank_transactions")
    op.drop_index("uq_bank_reconciliations_one_open", table_name="bank_reconciliations")
    op.drop_table("bank_reconciliations")
    op.drop_table("bank_accounts")
    op.drop_table("ledger_postings")
    op.drop_table("entry_sequences")
    op.drop_table("journal_entry_lines")
    op.drop_table("journal_entries")
    op.drop_table("accounts")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for enum_name in (
            "bank_transaction_status_enum",
            "reconciliation_status_enum",
            "source_type_enum",
            "journal_entry_status_enum",
            "normal_balance_enum",
            "account_type_enum",
        ):
            sa.Enum(name=enum_name).drop(bind, checkfirst=True)
