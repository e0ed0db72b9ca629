"""
Bank account model.

A real-world account at a bank. It is linked to the chart of
accounts through finance_account_id; until that link exists,
none of its transactions can be posted.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, Boolean, DateTime, Numeric, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from finance_ledger.models.base import Base, utcnow


class BankAccount(Base):
    __tablename__ = "bank_accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    institution_name: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    # Last few digits only, never the full number
    account_mask: Mapped[str | None] = mapped_column(
        String(8), nullable=True
    )
    account_type: Mapped[str] = mapped_column(
        String(30), nullable=False, default="checking"
    )
    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default="USD"
    )
    current_balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    finance_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True, index=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    finance_account: Mapped["Account | None"] = relationship()
    transactions: Mapped[list["BankTransaction"]] = relationship(
        back_populates="bank_account"
    )

    def __repr__(self) -> str:
        return f"<BankAccount {self.name} ****{self.account_mask or ''}>"
