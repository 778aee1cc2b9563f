"""
Pydantic schemas for the ledger transaction endpoints.

All monetary amounts are integers in the smallest currency unit.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ledger.models.transaction import (
    Transaction,
    TransactionResultType,
    TransactionType,
    ensure_utc,
)

ACCOUNT_NUMBER_PATTERN = r"^\d{10}$"
MAX_AMOUNT = 1_000_000_000


class UseBalanceRequest(BaseModel):
    """Request body for POST /transaction/use."""
    user_id: int = Field(ge=1)
    account_number: str = Field(pattern=ACCOUNT_NUMBER_PATTERN)
    amount: int = Field(gt=0, le=MAX_AMOUNT, description="Amount in minor units")


class CancelBalanceRequest(BaseModel):
    """Request body for POST /transaction/cancel."""
    transaction_id: str = Field(min_length=1, max_length=32)
    account_number: str = Field(pattern=ACCOUNT_NUMBER_PATTERN)
    amount: int = Field(gt=0, le=MAX_AMOUNT, description="Amount in minor units")


class TransactionResult(BaseModel):
    """
    Immutable projection of one ledger record, returned by every engine
    operation.
    """
    model_config = ConfigDict(frozen=True)

    account_number: str
    transaction_type: TransactionType
    transaction_result_type: TransactionResultType
    transaction_id: str
    amount: int
    balance_snapshot: int
    transacted_at: datetime

    @classmethod
    def from_transaction(cls, txn: Transaction) -> "TransactionResult":
        return cls(
            account_number=txn.account.account_number,
            transaction_type=txn.transaction_type,
            transaction_result_type=txn.transaction_result_type,
            transaction_id=txn.transaction_id,
            amount=txn.amount,
            balance_snapshot=txn.balance_snapshot,
            transacted_at=ensure_utc(txn.transacted_at),
        )


class UseBalanceResponse(BaseModel):
    """Response body for POST /transaction/use."""
    account_number: str
    transaction_result_type: TransactionResultType
    transaction_id: str
    amount: int
    balance_snapshot: int
    transacted_at: datetime


class CancelBalanceResponse(UseBalanceResponse):
    """Response body for POST /transaction/cancel."""
    transaction_type: TransactionType


class QueryTransactionResponse(BaseModel):
    """Response body for GET /transaction/{transaction_id}."""
    account_number: str
    transaction_type: TransactionType
    transaction_result_type: TransactionResultType
    transaction_id: str
    amount: int
    balance_snapshot: int
    transacted_at: datetime
