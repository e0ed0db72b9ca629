"""
Journal entry models.

A journal entry is the manual way to move money between
accounts. It is written as a draft, may be edited while it is
a draft, and only affects the ledger once posted. Voiding is
terminal and removes the entry's postings.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, Date, DateTime, Integer, Numeric, Text, ForeignKey,
    UniqueConstraint, Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from finance_ledger.models.base import Base, utcnow
from finance_ledger.models.enums import JournalEntryStatus


# Valid state transitions: draft -> posted -> voided, draft -> voided
VALID_TRANSITIONS: dict[JournalEntryStatus, set[JournalEntryStatus]] = {
    JournalEntryStatus.DRAFT: {
        JournalEntryStatus.POSTED,
        JournalEntryStatus.VOIDED,
    },
    JournalEntryStatus.POSTED: {JournalEntryStatus.VOIDED},
    JournalEntryStatus.VOIDED: set(),  # Terminal state
}


class JournalEntry(Base):
    __tablename__ = "journal_entries"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "entry_number", name="uq_journal_entry_number"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )
    entry_number: Mapped[str] = mapped_column(String(20), nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    posting_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    memo: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[JournalEntryStatus] = mapped_column(
        SAEnum(
            JournalEntryStatus,
            name="journal_entry_status_enum",
            create_constraint=True,
        ),
        nullable=False,
        default=JournalEntryStatus.DRAFT,
    )
    total_debit: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    total_credit: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    is_balanced: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    # Optional link to the subsystem that produced this entry
    reference_type: Mapped[str | None] = mapped_column(
        String(50), nullable=True
    )
    reference_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    posted_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    posted_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    voided_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    voided_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    void_reason: Mapped[str | None] = mapped_column(
        String(500), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    lines: Mapped[list["JournalEntryLine"]] = relationship(
        back_populates="journal_entry",
        cascade="all, delete-orphan",
        order_by="JournalEntryLine.line_order",
    )

    def can_transition_to(self, new_status: JournalEntryStatus) -> bool:
        """Check if a state transition is valid."""
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def __repr__(self) -> str:
        return f"<JournalEntry {self.entry_number} ({self.status.value})>"


class JournalEntryLine(Base):
    """
    One side of a journal entry.

    Exactly one of debit_amount / credit_amount is positive,
    the other is zero. The service enforces this on every write.
    """

    __tablename__ = "journal_entry_lines"

    id: Mapped[int] = mapped_column(primary_key=True)
    journal_entry_id: Mapped[int] = mapped_column(
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    description: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    debit_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    credit_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    line_order: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )

    journal_entry: Mapped["JournalEntry"] = relationship(
        back_populates="lines"
    )
    account: Mapped["Account"] = relationship()

    def __repr__(self) -> str:
        return (
            f"<JournalEntryLine #{self.line_order} "
            f"Dr {self.debit_amount} Cr {self.credit_amount}>"
        )


class EntrySequence(Base):
    """
    Per-tenant counter for sequential identifiers.

    Rows are locked while a value is allocated, so two
    concurrent entries never receive the same number.
    """

    __tablename__ = "entry_sequences"
    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_entry_sequence_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    next_value: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<EntrySequence {self.tenant_id}:{self.name}={self.next_value}>"
