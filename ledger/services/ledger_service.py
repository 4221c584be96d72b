"""
Ledger service: the account-mutation business logic.

It handles:
  - Reset (delete every account)
  - Balance reads
  - Deposits, withdrawals, and atomic transfers

Atomicity:
  A transfer touches two documents and runs inside one store transaction.
  Both balances are read, checked, and written together; a concurrent
  writer to either account makes the commit conflict and the store re-runs
  the whole body. Money is never created or destroyed:
      new_origin + new_destination == origin + destination

  The transaction body never raises for business rules. It returns a
  TransferResult tagged with a TransferStatus, writes nothing on an abort,
  and the outcome is turned into a domain exception only after the store
  has finished. That keeps "the rules said no" (404/400) apart from "the
  database failed" (StoreError, 500).

Deposit and withdraw race:
  Deposit and withdraw are a plain read followed by a blind write on one
  document, outside any transaction. Two concurrent requests against the
  same account can lose an update. This is accepted for now; the fix is to
  run them through store.run_transaction() like transfer. Concurrent first
  deposits to a new account do not fail: the insert that loses the race
  falls back to crediting the account the winner created.
"""

import enum
import logging
from dataclasses import dataclass

from ledger.exceptions import (
    AccountNotFoundError,
    EventValidationError,
    InsufficientFundsError,
)
from ledger.models.account import MAX_BALANCE
from ledger.schemas.event import (
    AccountBalance,
    DepositEvent,
    EventResponse,
    TransferEvent,
    WithdrawEvent,
)
from ledger.store import AccountStore, StoreTransaction


logger = logging.getLogger(__name__)


class TransferStatus(str, enum.Enum):
    """Outcome of a transfer transaction body."""
    OK = "ok"
    ORIGIN_NOT_FOUND = "origin_not_found"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    BALANCE_LIMIT_EXCEEDED = "balance_limit_exceeded"


@dataclass(frozen=True)
class TransferResult:
    status: TransferStatus
    origin: AccountBalance | None = None
    destination: AccountBalance | None = None
    # Origin balance seen by the transaction, for the insufficient-funds error
    available: int = 0


@dataclass(frozen=True)
class DepositResult:
    account: AccountBalance
    created: bool


def _require_valid_amount(amount: int) -> None:
    if amount <= 0 or amount > MAX_BALANCE:
        raise EventValidationError("Invalid parameter(s): amount")


def _balance_limit_error(account_id: str) -> EventValidationError:
    return EventValidationError(
        f"Balance of account {account_id} would exceed the maximum of {MAX_BALANCE}"
    )


# ---------------------------------------------------------------------------
# Reset & balance
# ---------------------------------------------------------------------------

async def reset(store: AccountStore, batch_size: int = 500) -> int:
    """Delete every account. Returns how many were removed."""
    deleted = await store.delete_all(batch_size=batch_size)
    logger.info("ledger.reset", extra={"deleted": deleted})
    return deleted


async def get_balance(store: AccountStore, account_id: str) -> int:
    """
    Return the balance of an account.

    Raises:
        AccountNotFoundError: If the account doesn't exist. The HTTP layer
                              reports this as a zero balance with 404.
    """
    account = await store.get(account_id)
    if account is None:
        raise AccountNotFoundError(account_id)
    return account.balance


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

async def deposit(store: AccountStore, destination: str, amount: int) -> DepositResult:
    """
    Credit `amount` to `destination`.

    A missing account is created with `balance = amount`; an existing one
    becomes `balance + amount`. If a concurrent request creates the account
    first, this deposit is added to the account it created.

    Raises:
        EventValidationError: If the new balance would exceed MAX_BALANCE.
    """
    _require_valid_amount(amount)

    account = await store.get(destination)
    created = False
    if account is None:
        created = await store.create(destination, amount) is not None
        if not created:
            account = await store.get(destination)

    if created:
        new_balance = amount
    else:
        if account.balance > MAX_BALANCE - amount:
            raise _balance_limit_error(destination)
        new_balance = account.balance + amount
        await store.update(destination, new_balance)

    logger.info(
        "ledger.deposit",
        extra={
            "account_id": destination,
            "amount": amount,
            "balance": new_balance,
            "account_created": created,
        },
    )
    return DepositResult(
        account=AccountBalance(id=destination, balance=new_balance),
        created=created,
    )


async def withdraw(store: AccountStore, origin: str, amount: int) -> AccountBalance:
    """
    Debit `amount` from `origin`. No partial withdrawals.

    Raises:
        AccountNotFoundError: If the origin account doesn't exist.
        InsufficientFundsError: If the balance is lower than `amount`; the
                                balance is left unchanged.
    """
    _require_valid_amount(amount)

    account = await store.get(origin)
    if account is None:
        raise AccountNotFoundError(origin)

    if account.balance < amount:
        raise InsufficientFundsError(
            account_id=origin,
            requested=amount,
            available=account.balance,
        )

    new_balance = account.balance - amount
    await store.update(origin, new_balance)

    logger.info(
        "ledger.withdraw",
        extra={"account_id": origin, "amount": amount, "balance": new_balance},
    )
    return AccountBalance(id=origin, balance=new_balance)


async def transfer(
    store: AccountStore,
    origin: str,
    destination: str,
    amount: int,
) -> tuple[AccountBalance, AccountBalance]:
    """
    Move `amount` from `origin` to `destination` in one store transaction.

    A missing destination is created with balance 0 and credited in the
    same commit.

    Returns:
        Tuple of (origin balance, destination balance) after the transfer.

    Raises:
        EventValidationError: If origin and destination are the same account,
                              or the destination would exceed MAX_BALANCE.
        AccountNotFoundError: If the origin account doesn't exist.
        InsufficientFundsError: If the origin balance is lower than `amount`.
        StoreError: If the transaction could not be committed.
    """
    _require_valid_amount(amount)
    if origin == destination:
        raise EventValidationError("Cannot transfer to the same account")

    async def body(txn: StoreTransaction) -> TransferResult:
        origin_account = await txn.get(origin)
        destination_account = await txn.get(destination)

        if origin_account is None:
            return TransferResult(TransferStatus.ORIGIN_NOT_FOUND)
        if origin_account.balance < amount:
            return TransferResult(
                TransferStatus.INSUFFICIENT_FUNDS,
                available=origin_account.balance,
            )

        destination_balance = destination_account.balance if destination_account else 0
        if destination_balance > MAX_BALANCE - amount:
            return TransferResult(TransferStatus.BALANCE_LIMIT_EXCEEDED)
        new_origin = origin_account.balance - amount
        new_destination = destination_balance + amount

        txn.set(origin, new_origin)
        txn.set(destination, new_destination)

        return TransferResult(
            TransferStatus.OK,
            origin=AccountBalance(id=origin, balance=new_origin),
            destination=AccountBalance(id=destination, balance=new_destination),
        )

    result = await store.run_transaction(body)

    if result.status is TransferStatus.ORIGIN_NOT_FOUND:
        raise AccountNotFoundError(origin)
    if result.status is TransferStatus.INSUFFICIENT_FUNDS:
        raise InsufficientFundsError(
            account_id=origin,
            requested=amount,
            available=result.available,
        )
    if result.status is TransferStatus.BALANCE_LIMIT_EXCEEDED:
        raise _balance_limit_error(destination)

    logger.info(
        "ledger.transfer",
        extra={
            "origin_account_id": origin,
            "destination_account_id": destination,
            "amount": amount,
        },
    )
    return result.origin, result.destination


async def process_event(
    store: AccountStore,
    event: DepositEvent | WithdrawEvent | TransferEvent,
) -> EventResponse:
    """Dispatch a validated event to deposit, withdraw, or transfer."""
    if isinstance(event, DepositEvent):
        result = await deposit(store, event.destination, event.amount)
        return EventResponse(destination=result.account)

    if isinstance(event, WithdrawEvent):
        origin = await withdraw(store, event.origin, event.amount)
        return EventResponse(origin=origin)

    if isinstance(event, TransferEvent):
        origin, destination = await transfer(
            store, event.origin, event.destination, event.amount
        )
        return EventResponse(origin=origin, destination=destination)

    raise EventValidationError(f"Invalid event type: {getattr(event, 'type', None)!r}")
