"""
Bank reconciliation model.

A reconciliation compares a bank statement's ending balance with
the balance of the transactions the user has marked as cleared.
It can only be completed when the two agree, at which point it
claims those transactions.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Date, DateTime, Numeric, Text, ForeignKey, Index,
    Enum as SAEnum, text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from finance_ledger.models.base import Base, utcnow
from finance_ledger.models.enums import ReconciliationStatus


VALID_TRANSITIONS: dict[ReconciliationStatus, set[ReconciliationStatus]] = {
    ReconciliationStatus.IN_PROGRESS: {
        ReconciliationStatus.COMPLETED,
        ReconciliationStatus.VOIDED,
    },
    ReconciliationStatus.COMPLETED: {ReconciliationStatus.VOIDED},
    ReconciliationStatus.VOIDED: set(),
}

# Enum columns store member names, hence the upper-case literal.
OPEN_RECONCILIATION_WHERE = text("status = 'IN_PROGRESS'")


class BankReconciliation(Base):
    __tablename__ = "bank_reconciliations"
    __table_args__ = (
        # At most one open reconciliation per bank account,
        # enforced by the database rather than a pre-check.
        Index(
            "uq_bank_reconciliations_one_open",
            "bank_account_id",
            unique=True,
            sqlite_where=OPEN_RECONCILIATION_WHERE,
            postgresql_where=OPEN_RECONCILIATION_WHERE,
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )
    bank_account_id: Mapped[int] = mapped_column(
        ForeignKey("bank_accounts.id"), nullable=False, index=True
    )
    statement_date: Mapped[date] = mapped_column(Date, nullable=False)
    statement_ending_balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    cleared_balance: Mapped[Decimal | None] = mapped_column(
        Numeric(19, 4), nullable=True
    )
    # statement_ending_balance - cleared_balance
    difference: Mapped[Decimal | None] = mapped_column(
        Numeric(19, 4), nullable=True
    )
    status: Mapped[ReconciliationStatus] = mapped_column(
        SAEnum(
            ReconciliationStatus,
            name="reconciliation_status_enum",
            create_constraint=True,
        ),
        nullable=False,
        default=ReconciliationStatus.IN_PROGRESS,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    completed_by: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    voided_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    voided_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    bank_account: Mapped["BankAccount"] = relationship()

    def can_transition_to(self, new_status: ReconciliationStatus) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def __repr__(self) -> str:
        return (
            f"<BankReconciliation {self.statement_date} "
            f"({self.status.value})>"
        )
