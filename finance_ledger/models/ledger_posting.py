"""
Ledger posting model.

Each posting is one debit or credit against one account. Postings
are grouped by (source_type, source_id): a posted journal entry
or a posted bank transaction. Within a group, total debits equal
total credits. Postings are never updated; a group is only ever
deleted as a whole when its source is voided or unposted.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Date, DateTime, Integer, Numeric, Text, ForeignKey, Index,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from finance_ledger.models.base import Base, utcnow
from finance_ledger.models.enums import SourceType


class LedgerPosting(Base):
    """
    An immutable debit or credit in the ledger.

    The balanced-group invariant is enforced by the LedgerService,
    not by the model.
    """

    __tablename__ = "ledger_postings"
    __table_args__ = (
        Index("ix_ledger_postings_source", "source_type", "source_id"),
        Index("ix_ledger_postings_tenant_date", "tenant_id", "posting_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    source_type: Mapped[SourceType] = mapped_column(
        SAEnum(SourceType, name="source_type_enum"),
        nullable=False,
    )
    source_id: Mapped[int] = mapped_column(Integer, nullable=False)
    posting_date: Mapped[date] = mapped_column(Date, nullable=False)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    debit_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    credit_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    memo: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )

    account: Mapped["Account"] = relationship()

    def __repr__(self) -> str:
        return (
            f"<LedgerPosting {self.source_type.value}:{self.source_id} "
            f"Dr {self.debit_amount} Cr {self.credit_amount}>"
        )
