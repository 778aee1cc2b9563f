"""
Transactions router: use, cancel and query ledger transactions.

Endpoints:
  POST /transaction/use                Debit an account
  POST /transaction/cancel             Fully reverse a prior use
  GET  /transaction/{transaction_id}   Look up one transaction

The router only marshals requests and responses. All business rules live in
TransactionService; its LedgerError exceptions are turned into 4xx responses
by the handlers in ledger.exceptions.
"""

from fastapi import APIRouter, Depends

from ledger.dependencies import get_transaction_service
from ledger.schemas.transaction import (
    CancelBalanceRequest,
    CancelBalanceResponse,
    QueryTransactionResponse,
    UseBalanceRequest,
    UseBalanceResponse,
)
from ledger.services.transaction_service import TransactionService

router = APIRouter()


@router.post(
    "/use",
    response_model=UseBalanceResponse,
    status_code=201,
    summary="Use (debit) account balance",
)
async def use_balance(
    request: UseBalanceRequest,
    service: TransactionService = Depends(get_transaction_service),
):
    """
    Debit `amount` from the user's account.

    A debit larger than the balance is rejected with 422, and a FAIL
    transaction is still recorded for audit purposes.
    """
    result = await service.use_balance(
        user_id=request.user_id,
        account_number=request.account_number,
        amount=request.amount,
    )
    return result.model_dump()


@router.post(
    "/cancel",
    response_model=CancelBalanceResponse,
    status_code=201,
    summary="Cancel a prior use",
)
async def cancel_balance(
    request: CancelBalanceRequest,
    service: TransactionService = Depends(get_transaction_service),
):
    """
    Reverse a previous use. The amount must equal the original amount and the
    original must be at most one year old.
    """
    result = await service.cancel_balance(
        transaction_id=request.transaction_id,
        account_number=request.account_number,
        amount=request.amount,
    )
    return result.model_dump()


@router.get(
    "/{transaction_id}",
    response_model=QueryTransactionResponse,
    summary="Get a single transaction",
)
async def query_transaction(
    transaction_id: str,
    service: TransactionService = Depends(get_transaction_service),
):
    """Get details for a specific transaction, including failed ones."""
    result = await service.query_transaction(transaction_id)
    return result.model_dump()
