"""
Account model: a balance-bearing account owned by a User.

Each account has:
  - A unique 10-digit account number (the public identifier callers use)
  - A status: IN_USE or UNREGISTERED
  - A balance in integer minor units (e.g. 10.50 is stored as 1050)

Balance management:
  The balance is updated in the same database transaction as the ledger
  record that explains the change, so it always equals the running total of
  successful USE/CANCEL transactions. A CHECK constraint rejects negative
  balances at the database level as well.

Accounts are never deleted; closing one moves it to UNREGISTERED, after
which the ledger refuses to debit or credit it.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, ForeignKey, CheckConstraint, Enum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger.database import Base


class AccountStatus(str, enum.Enum):
    IN_USE = "IN_USE"
    UNREGISTERED = "UNREGISTERED"


class Account(Base):
    __tablename__ = "accounts"

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_accounts_non_negative_balance"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Owner of this account
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    account_number: Mapped[str] = mapped_column(
        String(10),
        unique=True,
        nullable=False,
        index=True,
    )

    account_status: Mapped[AccountStatus] = mapped_column(
        Enum(AccountStatus),
        default=AccountStatus.IN_USE,
        nullable=False,
    )

    balance: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    registered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    unregistered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # --- Relationships ---
    # selectin so the owner is available without a lazy load in async code
    user: Mapped["User"] = relationship(
        back_populates="accounts",
        lazy="selectin",
    )
