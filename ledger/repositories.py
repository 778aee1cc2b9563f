"""
Persistence boundaries used by the ledger service.

The service depends on four narrow protocols instead of a database session:

  UserStore          find_user_by_id
  AccountStore       find_account_by_number, find_accounts_by_user, save_account
  TransactionLedger  find_transaction_by_id, save_transaction
  UnitOfWork         commit

The Sql* classes implement them on top of a single AsyncSession, so all
writes made during one service call land in one database transaction.
"""

from __future__ import annotations

from typing import Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.models.account import Account
from ledger.models.transaction import Transaction
from ledger.models.user import User


class UserStore(Protocol):
    async def find_user_by_id(self, user_id: int) -> User | None:
        ...


class AccountStore(Protocol):
    async def find_account_by_number(self, account_number: str) -> Account | None:
        ...

    async def find_accounts_by_user(self, user: User) -> Sequence[Account]:
        ...

    async def save_account(self, account: Account) -> Account:
        ...


class TransactionLedger(Protocol):
    async def find_transaction_by_id(self, transaction_id: str) -> Transaction | None:
        ...

    async def save_transaction(self, transaction: Transaction) -> Transaction:
        ...


class UnitOfWork(Protocol):
    async def commit(self) -> None:
        ...


class SqlUserStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_user_by_id(self, user_id: int) -> User | None:
        return await self.session.get(User, user_id)


class SqlAccountStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_account_by_number(self, account_number: str) -> Account | None:
        result = await self.session.execute(
            select(Account)
            .where(Account.account_number == account_number)
            .with_for_update()  # No-op on SQLite, locks row on PostgreSQL
        )
        return result.scalar_one_or_none()

    async def find_accounts_by_user(self, user: User) -> Sequence[Account]:
        result = await self.session.execute(
            select(Account).where(Account.user_id == user.id).order_by(Account.id)
        )
        return result.scalars().all()

    async def save_account(self, account: Account) -> Account:
        self.session.add(account)
        await self.session.flush()
        return account


class SqlTransactionLedger:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_transaction_by_id(self, transaction_id: str) -> Transaction | None:
        result = await self.session.execute(
            select(Transaction).where(Transaction.transaction_id == transaction_id)
        )
        return result.scalar_one_or_none()

    async def save_transaction(self, transaction: Transaction) -> Transaction:
        self.session.add(transaction)
        await self.session.flush()
        return transaction


class SqlUnitOfWork:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def commit(self) -> None:
        await self.session.commit()
