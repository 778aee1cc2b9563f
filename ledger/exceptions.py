"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors without importing HTTP
concepts. The handler layer translates them into HTTP responses, so:
    - Service code is testable without HTTP
    - Error responses are consistent across all endpoints

Every error carries an ErrorCode: a stable machine-readable code plus a
human-readable description. Responses have the shape
    {"detail": "<description>", "error_code": "<CODE>"}

Exception hierarchy:
    LedgerError (base)
    ├── UserNotFoundError                (404)
    ├── AccountNotFoundError             (404)
    ├── TransactionNotFoundError         (404)
    ├── UserAccountMismatchError         (403)
    ├── TransactionAccountMismatchError  (403)
    ├── AccountAlreadyUnregisteredError  (409)
    ├── AccountTransactionLockError      (409)
    ├── AmountExceedBalanceError         (422)
    ├── CancelMustBeFullError            (422)
    ├── TooOldToCancelError              (422)
    └── TransactionNotCancellableError   (422)
"""

import enum

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class ErrorCode(str, enum.Enum):
    """Machine-readable error codes shared by the engine and the HTTP layer."""
    USER_NOT_FOUND = "USER_NOT_FOUND"
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
    USER_ACCOUNT_UN_MATCH = "USER_ACCOUNT_UN_MATCH"
    TRANSACTION_ACCOUNT_UN_MATCH = "TRANSACTION_ACCOUNT_UN_MATCH"
    ACCOUNT_ALREADY_UNREGISTERED = "ACCOUNT_ALREADY_UNREGISTERED"
    ACCOUNT_TRANSACTION_LOCK = "ACCOUNT_TRANSACTION_LOCK"
    AMOUNT_EXCEED_BALANCE = "AMOUNT_EXCEED_BALANCE"
    CANCEL_MUST_FULLY = "CANCEL_MUST_FULLY"
    TOO_OLD_ORDER_TO_CANCEL = "TOO_OLD_ORDER_TO_CANCEL"
    TRANSACTION_NOT_CANCELLABLE = "TRANSACTION_NOT_CANCELLABLE"

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    ErrorCode.USER_NOT_FOUND: "User not found",
    ErrorCode.ACCOUNT_NOT_FOUND: "Account not found",
    ErrorCode.TRANSACTION_NOT_FOUND: "Transaction not found",
    ErrorCode.USER_ACCOUNT_UN_MATCH: "Account does not belong to this user",
    ErrorCode.TRANSACTION_ACCOUNT_UN_MATCH: "Transaction does not belong to this account",
    ErrorCode.ACCOUNT_ALREADY_UNREGISTERED: "Account is already unregistered",
    ErrorCode.ACCOUNT_TRANSACTION_LOCK: "Account is in use by another transaction",
    ErrorCode.AMOUNT_EXCEED_BALANCE: "Amount exceeds account balance",
    ErrorCode.CANCEL_MUST_FULLY: "Partial cancellation is not allowed",
    ErrorCode.TOO_OLD_ORDER_TO_CANCEL: "Transaction is too old to cancel",
    ErrorCode.TRANSACTION_NOT_CANCELLABLE: "Only a successful use can be cancelled",
}


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class LedgerError(Exception):
    """Base exception for all ledger domain errors."""

    error_code: ErrorCode
    status_code: int = 400

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.error_code.description
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Lookup failures
# ---------------------------------------------------------------------------

class UserNotFoundError(LedgerError):
    error_code = ErrorCode.USER_NOT_FOUND
    status_code = 404

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class AccountNotFoundError(LedgerError):
    error_code = ErrorCode.ACCOUNT_NOT_FOUND
    status_code = 404

    def __init__(self, account_number: str):
        self.account_number = account_number
        super().__init__(f"Account {account_number} not found")


class TransactionNotFoundError(LedgerError):
    error_code = ErrorCode.TRANSACTION_NOT_FOUND
    status_code = 404

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found")


# ---------------------------------------------------------------------------
# Ownership / state failures
# ---------------------------------------------------------------------------

class UserAccountMismatchError(LedgerError):
    """Raised when the account is owned by a different user than the caller."""
    error_code = ErrorCode.USER_ACCOUNT_UN_MATCH
    status_code = 403


class TransactionAccountMismatchError(LedgerError):
    """Raised when a cancel targets a transaction recorded on another account."""
    error_code = ErrorCode.TRANSACTION_ACCOUNT_UN_MATCH
    status_code = 403


class AccountAlreadyUnregisteredError(LedgerError):
    error_code = ErrorCode.ACCOUNT_ALREADY_UNREGISTERED
    status_code = 409


class AccountTransactionLockError(LedgerError):
    """Raised when the per-account lock could not be acquired in time."""
    error_code = ErrorCode.ACCOUNT_TRANSACTION_LOCK
    status_code = 409

    def __init__(self, account_number: str):
        self.account_number = account_number
        super().__init__(f"Account {account_number} is in use by another transaction")


# ---------------------------------------------------------------------------
# Amount / time-window failures
# ---------------------------------------------------------------------------

class AmountExceedBalanceError(LedgerError):
    """
    Raised when a use would overdraw the account.

    Attributes:
        account_number: The account that lacks sufficient balance.
        requested: The amount the caller tried to use.
        available: The balance at the time of the attempt.
    """
    error_code = ErrorCode.AMOUNT_EXCEED_BALANCE
    status_code = 422

    def __init__(self, account_number: str, requested: int, available: int):
        self.account_number = account_number
        self.requested = requested
        self.available = available
        super().__init__(
            f"Amount exceeds balance: requested {requested}, available {available}"
        )


class CancelMustBeFullError(LedgerError):
    error_code = ErrorCode.CANCEL_MUST_FULLY
    status_code = 422

    def __init__(self, requested: int, original: int):
        self.requested = requested
        self.original = original
        super().__init__(
            f"Cancel amount {requested} must equal the original amount {original}"
        )


class TooOldToCancelError(LedgerError):
    error_code = ErrorCode.TOO_OLD_ORDER_TO_CANCEL
    status_code = 422


class TransactionNotCancellableError(LedgerError):
    """Raised when the cancel target is a declined use or itself a cancel."""
    error_code = ErrorCode.TRANSACTION_NOT_CANCELLABLE
    status_code = 422

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(
            f"Transaction {transaction_id} is not a successful use and cannot be cancelled"
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Each LedgerError subclass declares its own status code; the response
    body is always {"detail": ..., "error_code": ...}. Called once during
    app startup in main.py.
    """

    @app.exception_handler(AmountExceedBalanceError)
    async def amount_exceed_balance_handler(
        request: Request, exc: AmountExceedBalanceError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "error_code": exc.error_code.value,
                "requested": exc.requested,
                "available": exc.available,
            },
        )

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(
        request: Request, exc: LedgerError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "error_code": exc.error_code.value},
        )
