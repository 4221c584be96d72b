"""
Reset router.

Endpoints:
  POST /reset: Delete every account

Irreversible. Used to put the ledger back into a known empty state, e.g.
before a test run.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from ledger.config import settings
from ledger.database import get_store
from ledger.services import ledger_service
from ledger.store import AccountStore

router = APIRouter()


@router.post(
    "",
    response_class=PlainTextResponse,
    summary="Delete all accounts",
)
async def reset_ledger(store: AccountStore = Depends(get_store)):
    await ledger_service.reset(store, batch_size=settings.RESET_BATCH_SIZE)
    return PlainTextResponse("OK")
