"""
Test fixtures for the Balance Ledger API test suite.

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - locks: A fresh AccountLockManager per test
  - service: TransactionService bound to db_session with a fixed clock
  - client: Async HTTP test client with get_db and get_account_locks overridden
  - make_user / make_account / make_transaction: seed rows directly, since
    user and account registration are not part of this API

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) keeps every test isolated.
  - The service fixture uses FIXED_NOW as its clock so cancel-window tests
    are deterministic.
"""

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from ledger.database import Base, get_db
from ledger.dependencies import get_account_locks
from ledger.exceptions import LedgerError
from ledger.locks import AccountLockManager
from ledger.main import app
from ledger.models.account import Account, AccountStatus
from ledger.models.transaction import (
    Transaction,
    TransactionResultType,
    TransactionType,
    new_transaction,
)
from ledger.models.user import User
from ledger.services.transaction_service import TransactionService


TEST_DATABASE_URL = "sqlite+aiosqlite://"

FIXED_NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Provide an async session bound to the test engine."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def locks():
    return AccountLockManager(timeout_seconds=1.0)


@pytest.fixture
def service(db_session, locks):
    """TransactionService on the test session, with the clock pinned to FIXED_NOW."""
    return TransactionService.with_session(db_session, locks, clock=lambda: FIXED_NOW)


@pytest_asyncio.fixture
async def client(session_factory, locks):
    """
    Async HTTP test client with the test database injected.

    Each request gets its own session from the test engine and commits or
    rolls back exactly like get_db does in production.
    """

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except LedgerError:
                await session.commit()
                raise
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_account_locks] = lambda: locks

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(db_session):
    async def _make_user(user_id: int = 12, name: str = "Pobi") -> User:
        user = User(id=user_id, name=name)
        db_session.add(user)
        await db_session.commit()
        return user
    return _make_user


@pytest.fixture
def make_account(db_session):
    async def _make_account(
        user: User,
        account_number: str = "1000000012",
        balance: int = 10000,
        status: AccountStatus = AccountStatus.IN_USE,
    ) -> Account:
        account = Account(
            user_id=user.id,
            account_number=account_number,
            balance=balance,
            account_status=status,
        )
        db_session.add(account)
        await db_session.commit()
        return account
    return _make_account


@pytest.fixture
def make_transaction(db_session):
    async def _make_transaction(
        account: Account,
        amount: int = 1000,
        transacted_at: datetime = FIXED_NOW,
        transaction_type: TransactionType = TransactionType.USE,
        result_type: TransactionResultType = TransactionResultType.SUCCESS,
    ) -> Transaction:
        txn = new_transaction(
            account,
            transaction_type,
            result_type,
            amount=amount,
            balance_snapshot=account.balance,
            transacted_at=transacted_at,
        )
        db_session.add(txn)
        await db_session.commit()
        return txn
    return _make_transaction


@pytest.fixture
def count_transactions(db_session):
    async def _count(result_type: TransactionResultType | None = None) -> int:
        query = select(func.count()).select_from(Transaction)
        if result_type is not None:
            query = query.where(Transaction.transaction_result_type == result_type)
        return (await db_session.execute(query)).scalar_one()
    return _count


@pytest.fixture
def stored_transactions(db_session):
    async def _stored() -> list[Transaction]:
        result = await db_session.execute(select(Transaction).order_by(Transaction.id))
        return list(result.scalars().all())
    return _stored


@pytest.fixture
def fixed_now():
    """The instant the service fixture's clock reports."""
    return FIXED_NOW
