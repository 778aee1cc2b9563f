"""
Transaction model: the append-only audit trail of balance changes.

Every use or cancel attempt against an account writes one Transaction:

  - USE / SUCCESS:  balance was debited by `amount`
  - USE / FAIL:     the debit was declined; balance unchanged
  - CANCEL / SUCCESS: a prior USE was reversed; balance credited by `amount`

Key fields:
  - transaction_id: Opaque 32-char hex token generated when the record is
    built. This is the public identifier; the integer `id` is only the
    database identity.
  - amount: Always positive (direction is implied by transaction_type)
  - balance_snapshot: The account balance right after this record was
    applied. For FAIL records it is the unchanged balance at failure time.

Immutability:
  Records are built fully initialised by new_transaction() and are never
  changed afterwards. A before_update hook refuses to flush any modification
  of an existing row.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, ForeignKey, CheckConstraint, Enum, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger.database import Base
from ledger.models.account import Account


class TransactionType(str, enum.Enum):
    USE = "USE"
    CANCEL = "CANCEL"


class TransactionResultType(str, enum.Enum):
    SUCCESS = "SUCCESS"
    FAIL = "FAIL"


class Transaction(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_positive_amount"),
        CheckConstraint("balance_snapshot >= 0", name="ck_transactions_non_negative_snapshot"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    transaction_id: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        nullable=False,
        index=True,
    )

    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )

    transaction_type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType),
        nullable=False,
    )

    transaction_result_type: Mapped[TransactionResultType] = mapped_column(
        Enum(TransactionResultType),
        nullable=False,
    )

    amount: Mapped[int] = mapped_column(Integer, nullable=False)

    balance_snapshot: Mapped[int] = mapped_column(Integer, nullable=False)

    # Indexed for the cancel window check and for account history queries
    transacted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    # --- Relationships ---
    account: Mapped[Account] = relationship(lazy="selectin")


@event.listens_for(Transaction, "before_update")
def _reject_update(mapper, connection, target: Transaction) -> None:
    raise RuntimeError(
        f"Transaction {target.transaction_id} is immutable and cannot be updated"
    )


def ensure_utc(moment: datetime) -> datetime:
    """SQLite hands back naive datetimes; every stored timestamp is UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def generate_transaction_id() -> str:
    return uuid.uuid4().hex


def new_transaction(
    account: Account,
    transaction_type: TransactionType,
    result_type: TransactionResultType,
    amount: int,
    balance_snapshot: int,
    transacted_at: datetime | None = None,
) -> Transaction:
    """
    Build a fully initialised Transaction for `account`.

    The transaction_id is generated here, independent of the database
    identity, so the record is complete before it is ever flushed.
    """
    return Transaction(
        transaction_id=generate_transaction_id(),
        account=account,
        account_id=account.id,
        transaction_type=transaction_type,
        transaction_result_type=result_type,
        amount=amount,
        balance_snapshot=balance_snapshot,
        transacted_at=transacted_at or datetime.now(timezone.utc),
    )
