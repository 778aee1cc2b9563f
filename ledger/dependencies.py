"""
FastAPI dependencies for the ledger endpoints.

Dependency chain:

  get_db (AsyncSession) ──┐
  get_account_locks ──────┴── get_transaction_service (TransactionService)

The account lock manager is a process-wide singleton: per-account locks only
serialise requests if every request shares the same manager. Tests override
get_account_locks to get a fresh manager per test.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.config import settings
from ledger.database import get_db
from ledger.locks import AccountLockManager
from ledger.services.transaction_service import TransactionService


account_locks = AccountLockManager(timeout_seconds=settings.ACCOUNT_LOCK_TIMEOUT_SECONDS)


def get_account_locks() -> AccountLockManager:
    return account_locks


async def get_transaction_service(
    db: AsyncSession = Depends(get_db),
    locks: AccountLockManager = Depends(get_account_locks),
) -> TransactionService:
    """Build a TransactionService bound to this request's database session."""
    return TransactionService.with_session(db, locks)
