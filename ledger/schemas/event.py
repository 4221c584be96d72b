"""
Pydantic schemas for the /event endpoint.

An event is one JSON object whose `type` field picks the shape of the rest
of the body. The three shapes form a discriminated union, so pydantic
reports an unknown `type` or a missing field precisely, and the 400 handler
can name the missing parameter.

All amounts are positive integers in minor units, no larger than the
largest balance an account can hold. Account ids are taken byte-exact.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, RootModel, Strict, StringConstraints, model_validator

from ledger.models.account import MAX_BALANCE


AccountId = Annotated[str, StringConstraints(min_length=1, max_length=255)]
Amount = Annotated[
    int,
    Strict(),
    Field(gt=0, le=MAX_BALANCE, description="Amount in minor units (must be positive)"),
]


class DepositEvent(BaseModel):
    """Credit `amount` to `destination`, creating it if needed."""
    type: Literal["deposit"]
    destination: AccountId
    amount: Amount


class WithdrawEvent(BaseModel):
    """Debit `amount` from an existing `origin`."""
    type: Literal["withdraw"]
    origin: AccountId
    amount: Amount


class TransferEvent(BaseModel):
    """Move `amount` from `origin` to `destination` atomically."""
    type: Literal["transfer"]
    origin: AccountId
    amount: Amount
    destination: AccountId

    @model_validator(mode="after")
    def accounts_must_differ(self):
        """Cannot transfer money to the same account."""
        if self.origin == self.destination:
            raise ValueError("Cannot transfer to the same account")
        return self


Event = Annotated[
    Union[DepositEvent, WithdrawEvent, TransferEvent],
    Field(discriminator="type"),
]


class EventRequest(RootModel[Event]):
    """Request body for POST /event; `root` holds the parsed event."""
    root: Event


class AccountBalance(BaseModel):
    """An account id with its balance after the event."""
    id: str
    balance: int

    model_config = {"from_attributes": True}


class EventResponse(BaseModel):
    """
    Response body for POST /event.

    Deposit fills `destination`, withdraw fills `origin`, transfer fills
    both. Unset keys are left out of the JSON.
    """
    origin: AccountBalance | None = None
    destination: AccountBalance | None = None
