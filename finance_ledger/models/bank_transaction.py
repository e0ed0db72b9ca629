"""
Bank transaction model.

One line from a bank statement. Imported rows start unmatched,
are categorized against a chart-of-accounts account, and are then
posted to the ledger as a balanced pair of postings. A posted
transaction can be claimed by one reconciliation at a time via
reconciliation_id.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Date, DateTime, Numeric, Text, ForeignKey, Index,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from finance_ledger.models.base import Base, utcnow
from finance_ledger.models.enums import BankTransactionStatus


# unmatched -> matched -> posted; matched -> matched (recategorize);
# excluded is terminal; posted -> matched only through unpost.
VALID_TRANSITIONS: dict[BankTransactionStatus, set[BankTransactionStatus]] = {
    BankTransactionStatus.UNMATCHED: {
        BankTransactionStatus.MATCHED,
        BankTransactionStatus.EXCLUDED,
    },
    BankTransactionStatus.MATCHED: {
        BankTransactionStatus.MATCHED,
        BankTransactionStatus.POSTED,
        BankTransactionStatus.EXCLUDED,
    },
    BankTransactionStatus.POSTED: {BankTransactionStatus.MATCHED},
    BankTransactionStatus.EXCLUDED: set(),
}


class BankTransaction(Base):
    __tablename__ = "bank_transactions"
    __table_args__ = (
        Index(
            "ix_bank_transactions_dedup",
            "tenant_id", "bank_account_id", "dedup_hash",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )
    bank_account_id: Mapped[int] = mapped_column(
        ForeignKey("bank_accounts.id"), nullable=False, index=True
    )
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    posted_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    original_description: Mapped[str | None] = mapped_column(
        String(500), nullable=True
    )
    # Positive = money in, negative = money out
    amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    status: Mapped[BankTransactionStatus] = mapped_column(
        SAEnum(
            BankTransactionStatus,
            name="bank_transaction_status_enum",
            create_constraint=True,
        ),
        nullable=False,
        default=BankTransactionStatus.UNMATCHED,
    )
    matched_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True
    )
    # Vendor and CRM directories live elsewhere; ids are stored as-is
    matched_vendor_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    matched_crm_client_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    journal_entry_id: Mapped[int | None] = mapped_column(
        ForeignKey("journal_entries.id"), nullable=True
    )
    reconciliation_id: Mapped[int | None] = mapped_column(
        ForeignKey("bank_reconciliations.id"), nullable=True, index=True
    )
    import_batch_id: Mapped[str | None] = mapped_column(
        String(50), nullable=True
    )
    dedup_hash: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    bank_account: Mapped["BankAccount"] = relationship(
        back_populates="transactions"
    )
    matched_account: Mapped["Account | None"] = relationship()

    def can_transition_to(self, new_status: BankTransactionStatus) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def __repr__(self) -> str:
        return (
            f"<BankTransaction {self.transaction_date} "
            f"{self.amount} ({self.status.value})>"
        )
