"""
Account store: key-document access to account balances.

The store is the only place that talks to the database. It offers:

  - Single-document operations: get, create, set (create-or-overwrite), update
  - A batched delete of every account (used by reset)
  - run_transaction(): an atomic multi-document read-modify-write

Transactions:
  The body passed to run_transaction() receives a StoreTransaction. It reads
  every document it needs with txn.get() and then stages writes with
  txn.set(); reads after the first write are refused. On commit, each UPDATE
  is checked against the version the body read (see models/account.py). If a
  concurrent writer got there first, the commit fails with StaleDataError
  (changed row) or IntegrityError (row inserted by someone else), the
  session rolls back, and the whole body runs again against fresh data.
  After max_attempts conflicting attempts the store gives up with
  StoreError.

  A body that decides not to write (a business-rule abort) simply returns
  without calling txn.set(); the commit then has nothing to apply.

Error translation:
  Any other SQLAlchemyError is wrapped in StoreError so callers deal with a
  single infrastructure error type. So is OverflowError, which the driver
  raises unwrapped for an integer too large for the balance column.
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from ledger.database import Base
from ledger.exceptions import StoreError
from ledger.models.account import Account


logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors that mean "someone else wrote first" and are worth retrying
CONFLICT_ERRORS = (StaleDataError, IntegrityError)

# Errors that mean the store itself failed
FAILURE_ERRORS = (SQLAlchemyError, OverflowError)


class StoreTransaction:
    """Handle given to a transaction body; wraps one session."""

    def __init__(self, session: AsyncSession):
        self._session = session
        self._documents: dict[str, Account | None] = {}
        self._writing = False

    async def get(self, account_id: str) -> Account | None:
        """Read one account inside the transaction. None if it doesn't exist."""
        if self._writing:
            raise RuntimeError("All reads must happen before the first write")
        if account_id not in self._documents:
            self._documents[account_id] = await self._session.get(Account, account_id)
        return self._documents[account_id]

    def set(self, account_id: str, balance: int) -> Account:
        """Stage a balance write; creates the account if the read found nothing."""
        if account_id not in self._documents:
            raise RuntimeError(f"Account {account_id} must be read before it is written")
        self._writing = True

        account = self._documents[account_id]
        if account is None:
            account = Account(id=account_id, balance=balance)
            self._session.add(account)
            self._documents[account_id] = account
        else:
            account.balance = balance
        return account


class AccountStore:
    """
    Async access to account documents.

    Built once per process (see main.lifespan) and shared by every request.
    """

    def __init__(self, engine: AsyncEngine, max_attempts: int = 5):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.engine = engine
        self.max_attempts = max_attempts
        # expire_on_commit=False keeps returned accounts readable after the
        # session closes
        self._sessionmaker = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create_schema(self) -> None:
        """Create the accounts table if it doesn't exist."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self.engine.dispose()

    @asynccontextmanager
    async def _begin(self, action: str) -> AsyncIterator[AsyncSession]:
        """Session with an open transaction; SQLAlchemy errors become StoreError."""
        try:
            async with self._sessionmaker() as session:
                async with session.begin():
                    yield session
        except FAILURE_ERRORS as exc:
            raise StoreError(f"Account store {action} failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Single-document operations
    # ------------------------------------------------------------------

    async def get(self, account_id: str) -> Account | None:
        async with self._begin("get") as session:
            return await session.get(Account, account_id)

    async def create(self, account_id: str, balance: int) -> Account | None:
        """
        Insert a new account with `balance`.

        Returns None, without raising, when the id is already taken (for
        instance by a concurrent request that inserted it first).
        """
        account = Account(id=account_id, balance=balance)
        try:
            async with self._begin("create") as session:
                session.add(account)
        except StoreError as exc:
            duplicate = isinstance(exc.__cause__, IntegrityError)
            if duplicate and await self.get(account_id) is not None:
                return None
            raise
        return account

    async def set(self, account_id: str, balance: int) -> Account:
        """Create the account with `balance`, or overwrite it if it exists."""
        account = await self.create(account_id, balance)
        if account is None:
            await self.update(account_id, balance)
            account = await self.get(account_id)
        return account

    async def update(self, account_id: str, balance: int) -> None:
        """
        Overwrite the balance of an existing account.

        This is a blind write: it does not check what the caller read
        earlier. It does bump the version so that open transactions which
        read the old balance will conflict and retry.

        Raises:
            StoreError: If the account does not exist.
        """
        async with self._begin("update") as session:
            result = await session.execute(
                update(Account)
                .where(Account.id == account_id)
                .values(
                    balance=balance,
                    version=Account.version + 1,
                    updated_at=datetime.now(timezone.utc),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise StoreError(f"Cannot update missing account {account_id}")

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    async def delete_all(self, batch_size: int = 500) -> int:
        """
        Delete every account and return how many were removed.

        Ids are enumerated first and deleted `batch_size` at a time, all in
        one database transaction, so readers never observe a half-emptied
        store.
        """
        async with self._begin("delete_all") as session:
            account_ids = list(await session.scalars(select(Account.id)))
            for start in range(0, len(account_ids), batch_size):
                batch = account_ids[start:start + batch_size]
                await session.execute(
                    delete(Account)
                    .where(Account.id.in_(batch))
                    .execution_options(synchronize_session=False)
                )
        return len(account_ids)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def run_transaction(
        self,
        body: Callable[[StoreTransaction], Awaitable[T]],
    ) -> T:
        """
        Run `body` atomically, retrying it on write conflicts.

        Whatever the body returns is returned once the commit succeeds.
        The body may run more than once, so it must not have side effects
        outside the transaction handle.

        Raises:
            StoreError: On a non-conflict database error, or when every
                        attempt conflicted.
        """
        last_conflict: SQLAlchemyError | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                async with self._sessionmaker() as session:
                    async with session.begin():
                        result = await body(StoreTransaction(session))
                return result
            except CONFLICT_ERRORS as exc:
                last_conflict = exc
                logger.warning(
                    "store.transaction_conflict",
                    extra={"attempt": attempt, "max_attempts": self.max_attempts},
                )
            except FAILURE_ERRORS as exc:
                raise StoreError(f"Account store transaction failed: {exc}") from exc

        raise StoreError(
            f"Account store transaction conflicted {self.max_attempts} times"
        ) from last_conflict
