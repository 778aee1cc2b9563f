"""
Per-account exclusive locks.

Two concurrent debits that both read the same pre-debit balance could each
decide the debit is affordable and jointly overdraw the account. To prevent
that, every use/cancel holds its account's lock across the whole
read-validate-write-commit sequence. Locks are keyed by account number, so
operations on different accounts never wait on each other.

The locks live in process memory. This is sufficient for a single API
process; a multi-process deployment needs a shared lock (e.g. Redis) or
row locks on PostgreSQL, which SqlAccountStore already requests with
SELECT ... FOR UPDATE.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator

from ledger.exceptions import AccountTransactionLockError

logger = logging.getLogger(__name__)


@dataclass
class _LockEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    # Holder plus waiters; the entry is dropped when this reaches zero
    users: int = 0


class AccountLockManager:
    def __init__(self, timeout_seconds: float = 5.0) -> None:
        self.timeout_seconds = timeout_seconds
        self._entries: dict[str, _LockEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def is_locked(self, account_number: str) -> bool:
        entry = self._entries.get(account_number)
        return entry is not None and entry.lock.locked()

    @asynccontextmanager
    async def hold(self, account_number: str) -> AsyncIterator[None]:
        """
        Hold the exclusive lock for `account_number` for the duration of the block.

        The entry for an account only exists while someone holds or waits
        for its lock, so unknown account numbers leave nothing behind.

        Raises:
            AccountTransactionLockError: If the lock is not acquired within
                timeout_seconds.
        """
        entry = self._entries.get(account_number)
        if entry is None:
            entry = self._entries[account_number] = _LockEntry()
        entry.users += 1
        try:
            try:
                async with asyncio.timeout(self.timeout_seconds):
                    await entry.lock.acquire()
            except TimeoutError:
                logger.warning("Timed out waiting for lock on account %s", account_number)
                raise AccountTransactionLockError(account_number) from None
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[account_number]
