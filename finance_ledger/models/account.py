"""
Account model (chart of accounts).

Every bucket money can sit in, cash, receivables, revenue,
rent expense, is an account. Ledger postings are made against
these accounts.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, DateTime, Integer, Numeric, Text, ForeignKey,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from finance_ledger.models.base import Base, utcnow
from finance_ledger.models.enums import AccountType, NormalBalance


class Account(Base):
    """
    A single account in a tenant's chart of accounts.

    Once referenced by a posting, an account is never deleted,
    only deactivated via is_active=False. current_balance is a
    cache; the postings are authoritative.
    """

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )
    account_number: Mapped[str | None] = mapped_column(
        String(20), nullable=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    account_type: Mapped[AccountType] = mapped_column(
        SAEnum(AccountType, name="account_type_enum"),
        nullable=False,
    )
    account_subtype: Mapped[str | None] = mapped_column(
        String(50), nullable=True
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Hierarchy is not checked for cycles; callers own that.
    parent_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True
    )
    normal_balance: Mapped[NormalBalance] = mapped_column(
        SAEnum(NormalBalance, name="normal_balance_enum"),
        nullable=False,
    )
    current_balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    display_order: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    is_system: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    parent: Mapped["Account | None"] = relationship(remote_side=[id])

    def __repr__(self) -> str:
        label = self.account_number or self.name
        return f"<Account {label} ({self.account_type.value})>"
