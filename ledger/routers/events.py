"""
Events router: deposits, withdrawals, and transfers.

Endpoints:
  POST /event: Apply one balance-changing event

The body's `type` field selects the event:
  deposit   {type, destination, amount}          -> {destination}
  withdraw  {type, origin, amount}               -> {origin}
  transfer  {type, origin, amount, destination}  -> {origin, destination}

A transfer is atomic: both balances change in one store transaction or
neither does.
"""

from fastapi import APIRouter, Depends, status

from ledger.database import get_store
from ledger.schemas.event import EventRequest, EventResponse
from ledger.services import ledger_service
from ledger.store import AccountStore

router = APIRouter()


@router.post(
    "",
    response_model=EventResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Apply a deposit, withdraw, or transfer event",
)
async def create_event(
    request: EventRequest,
    store: AccountStore = Depends(get_store),
):
    """
    Apply a balance-changing event.

    - **deposit** creates the destination account if it doesn't exist
    - **withdraw** requires an existing origin with enough funds
    - **transfer** requires an existing origin with enough funds and
      creates the destination if needed

    A missing origin answers 404 with a zero balance (`0`); insufficient
    funds answer 400 and leave every balance unchanged.
    """
    return await ledger_service.process_event(store, request.root)
