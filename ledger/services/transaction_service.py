"""
Transaction service: the ledger's business logic.

It handles:
  - Using balance (debits), with a declined-use audit record on overdraw
  - Cancelling a prior use (full reversal only, within the cancel window)
  - Querying a single transaction by its public transaction id

Validation order:
  Each operation runs its guards in a fixed order and the first failing
  guard raises. Callers (and tests) can rely on that order when several
  preconditions are violated at once.

  use_balance:    user exists -> account exists -> user owns account
                  -> account IN_USE -> amount <= balance
  cancel_balance: transaction exists -> account exists -> transaction is on
                  that account -> amount equals original -> not older than
                  the cancel window -> account IN_USE -> original is a
                  successful USE

Atomicity and locking:
  The balance change and the Transaction that explains it are flushed in
  the same database transaction. Every use/cancel holds the per-account
  lock from AccountLockManager until that database transaction is
  committed, so no two debits against one account can both pass the
  balance check on a stale read.

Failure audit:
  Only AmountExceedBalanceError leaves a trace: a USE/FAIL record with the
  unchanged balance is committed before the error is raised. Every other
  failure writes nothing.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from ledger.config import settings
from ledger.exceptions import (
    AccountAlreadyUnregisteredError,
    AccountNotFoundError,
    AmountExceedBalanceError,
    CancelMustBeFullError,
    TooOldToCancelError,
    TransactionAccountMismatchError,
    TransactionNotFoundError,
    TransactionNotCancellableError,
    UserAccountMismatchError,
    UserNotFoundError,
)
from ledger.locks import AccountLockManager
from ledger.models.account import Account, AccountStatus
from ledger.models.transaction import (
    Transaction,
    TransactionResultType,
    TransactionType,
    ensure_utc,
    new_transaction,
)
from ledger.models.user import User
from ledger.repositories import (
    AccountStore,
    SqlAccountStore,
    SqlTransactionLedger,
    SqlUnitOfWork,
    SqlUserStore,
    TransactionLedger,
    UnitOfWork,
    UserStore,
)
from ledger.schemas.transaction import TransactionResult

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def years_before(moment: datetime, years: int) -> datetime:
    """Same calendar date `years` earlier; Feb 29 falls back to Feb 28."""
    try:
        return moment.replace(year=moment.year - years)
    except ValueError:
        return moment.replace(year=moment.year - years, day=28)


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------

def _require_user(user: User | None, user_id: int) -> User:
    if user is None:
        raise UserNotFoundError(user_id)
    return user


def _require_account(account: Account | None, account_number: str) -> Account:
    if account is None:
        raise AccountNotFoundError(account_number)
    return account


def _require_transaction(txn: Transaction | None, transaction_id: str) -> Transaction:
    if txn is None:
        raise TransactionNotFoundError(transaction_id)
    return txn


def _require_owner(user: User, account: Account) -> None:
    if account.user_id != user.id:
        raise UserAccountMismatchError()


def _require_in_use(account: Account) -> None:
    if account.account_status != AccountStatus.IN_USE:
        raise AccountAlreadyUnregisteredError()


def _require_same_account(txn: Transaction, account: Account) -> None:
    # Compare database identity, not the account number string
    if txn.account_id != account.id:
        raise TransactionAccountMismatchError()


def _require_full_amount(txn: Transaction, amount: int) -> None:
    if txn.amount != amount:
        raise CancelMustBeFullError(requested=amount, original=txn.amount)


def _require_within_window(txn: Transaction, now: datetime, years: int) -> None:
    if ensure_utc(txn.transacted_at) < years_before(now, years):
        raise TooOldToCancelError()


def _require_successful_use(txn: Transaction) -> None:
    if (
        txn.transaction_type != TransactionType.USE
        or txn.transaction_result_type != TransactionResultType.SUCCESS
    ):
        raise TransactionNotCancellableError(txn.transaction_id)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

@dataclass
class TransactionService:
    users: UserStore
    accounts: AccountStore
    transactions: TransactionLedger
    unit_of_work: UnitOfWork
    locks: AccountLockManager
    clock: Callable[[], datetime] = utcnow
    cancel_window_years: int = field(default_factory=lambda: settings.CANCEL_WINDOW_YEARS)

    @classmethod
    def with_session(
        cls,
        session: AsyncSession,
        locks: AccountLockManager,
        clock: Callable[[], datetime] = utcnow,
    ) -> "TransactionService":
        return cls(
            users=SqlUserStore(session),
            accounts=SqlAccountStore(session),
            transactions=SqlTransactionLedger(session),
            unit_of_work=SqlUnitOfWork(session),
            locks=locks,
            clock=clock,
        )

    async def use_balance(
        self,
        user_id: int,
        account_number: str,
        amount: int,
    ) -> TransactionResult:
        """
        Debit `amount` from the account.

        Raises:
            UserNotFoundError: If no user has `user_id`.
            AccountNotFoundError: If the account doesn't exist.
            UserAccountMismatchError: If the account belongs to someone else.
            AccountAlreadyUnregisteredError: If the account is closed.
            AmountExceedBalanceError: If `amount` is larger than the balance.
                A USE/FAIL record is committed before this is raised.
        """
        async with self.locks.hold(account_number):
            user = _require_user(await self.users.find_user_by_id(user_id), user_id)
            account = _require_account(
                await self.accounts.find_account_by_number(account_number),
                account_number,
            )
            _require_owner(user, account)
            _require_in_use(account)

            if amount > account.balance:
                await self._record_failed_use(account_number, amount)
                await self.unit_of_work.commit()
                logger.warning(
                    "Declined use of %d on account %s (balance %d)",
                    amount, account_number, account.balance,
                )
                raise AmountExceedBalanceError(
                    account_number=account_number,
                    requested=amount,
                    available=account.balance,
                )

            account.balance -= amount
            await self.accounts.save_account(account)
            txn = await self.transactions.save_transaction(
                new_transaction(
                    account,
                    TransactionType.USE,
                    TransactionResultType.SUCCESS,
                    amount=amount,
                    balance_snapshot=account.balance,
                    transacted_at=self.clock(),
                )
            )
            result = TransactionResult.from_transaction(txn)
            await self.unit_of_work.commit()

        logger.info(
            "Used %d on account %s, transaction %s", amount, account_number, txn.transaction_id
        )
        return result

    async def record_failed_use(self, account_number: str, amount: int) -> None:
        """
        Record a declined USE for `account_number` without touching its balance.

        Ownership and status are deliberately not checked; this is the audit
        write for an attempt that already passed those guards.
        """
        async with self.locks.hold(account_number):
            await self._record_failed_use(account_number, amount)
            await self.unit_of_work.commit()

    async def _record_failed_use(self, account_number: str, amount: int) -> Transaction:
        account = _require_account(
            await self.accounts.find_account_by_number(account_number),
            account_number,
        )
        return await self.transactions.save_transaction(
            new_transaction(
                account,
                TransactionType.USE,
                TransactionResultType.FAIL,
                amount=amount,
                balance_snapshot=account.balance,
                transacted_at=self.clock(),
            )
        )

    async def cancel_balance(
        self,
        transaction_id: str,
        account_number: str,
        amount: int,
    ) -> TransactionResult:
        """
        Reverse a prior use by crediting its exact amount back.

        Cancelling the same transaction twice is not prevented: the original
        record is never marked as reversed.

        Raises:
            TransactionNotFoundError: If `transaction_id` is unknown.
            AccountNotFoundError: If the account doesn't exist.
            TransactionAccountMismatchError: If the transaction was recorded
                on a different account.
            CancelMustBeFullError: If `amount` differs from the original.
            TooOldToCancelError: If the original is older than the cancel window.
            AccountAlreadyUnregisteredError: If the account is closed.
            TransactionNotCancellableError: If the original is a declined use
                or a cancel.
        """
        async with self.locks.hold(account_number):
            original = _require_transaction(
                await self.transactions.find_transaction_by_id(transaction_id),
                transaction_id,
            )
            account = _require_account(
                await self.accounts.find_account_by_number(account_number),
                account_number,
            )
            _require_same_account(original, account)
            _require_full_amount(original, amount)
            now = self.clock()
            _require_within_window(original, now, self.cancel_window_years)
            _require_in_use(account)
            _require_successful_use(original)

            account.balance += amount
            await self.accounts.save_account(account)
            txn = await self.transactions.save_transaction(
                new_transaction(
                    account,
                    TransactionType.CANCEL,
                    TransactionResultType.SUCCESS,
                    amount=amount,
                    balance_snapshot=account.balance,
                    transacted_at=now,
                )
            )
            result = TransactionResult.from_transaction(txn)
            await self.unit_of_work.commit()

        logger.info(
            "Cancelled transaction %s on account %s, reversal %s",
            transaction_id, account_number, txn.transaction_id,
        )
        return result

    async def query_transaction(self, transaction_id: str) -> TransactionResult:
        """
        Look up one transaction by its public id.

        FAIL records are returned like any other; callers inspect
        transaction_result_type.

        Raises:
            TransactionNotFoundError: If `transaction_id` is unknown.
        """
        txn = _require_transaction(
            await self.transactions.find_transaction_by_id(transaction_id),
            transaction_id,
        )
        return TransactionResult.from_transaction(txn)
