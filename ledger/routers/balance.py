"""
Balance router.

Endpoints:
  GET /balance?account_id=<id>: Current balance as plain text

An unknown account answers 404 with the body "0": it has no money, but
it also doesn't exist.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from ledger.database import get_store
from ledger.services import ledger_service
from ledger.store import AccountStore

router = APIRouter()


@router.get(
    "",
    response_class=PlainTextResponse,
    summary="Get an account's balance",
)
async def read_balance(
    account_id: str = Query(..., min_length=1, max_length=255),
    store: AccountStore = Depends(get_store),
):
    balance = await ledger_service.get_balance(store, account_id)
    return PlainTextResponse(str(balance))
