"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors (like InsufficientFundsError)
without importing HTTP concepts. The handlers registered here translate them
into responses, so every endpoint reports the same error the same way.

Exception hierarchy:
    LedgerError (base)
    ├── EventValidationError    missing/invalid field or unknown event type
    ├── AccountNotFoundError    account absent where presence is required
    ├── InsufficientFundsError  withdraw/transfer larger than the balance
    └── StoreError              account store read/write/transaction failure

Request bodies and query strings that fail pydantic validation raise FastAPI's
RequestValidationError before any handler runs; it is reported as a 400 in the
same shape as EventValidationError.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class LedgerError(Exception):
    """Base exception for all Ledger API domain errors."""

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class EventValidationError(LedgerError):
    """Raised when a request is missing a required parameter or carries a bad one."""


class AccountNotFoundError(LedgerError):
    """Raised when an account that must already exist does not."""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found")


class InsufficientFundsError(LedgerError):
    """
    Raised when a withdraw or transfer would cause a negative balance.

    Attributes:
        account_id: The account that lacks sufficient funds.
        requested: The amount the caller tried to move.
        available: The balance of the account when the check ran.
    """

    def __init__(self, account_id: str, requested: int, available: int):
        self.account_id = account_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient funds: requested {requested}, available {available}"
        )


class StoreError(LedgerError):
    """
    Raised when the account store fails: connection loss, constraint
    violation, or a transaction that kept conflicting past its retry limit.

    The detail is for logs only and never reaches the client.
    """


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def describe_validation_errors(errors) -> str:
    """
    Turn pydantic error dicts into one client-facing sentence.

    Missing fields are listed by name so the caller knows exactly what to
    send; an unknown event ``type`` gets its own message.
    """
    missing: list[str] = []
    invalid: list[str] = []
    for error in errors:
        error_type = error.get("type")
        loc = [str(part) for part in error.get("loc", ())]
        if error_type == "union_tag_invalid":
            tag = (error.get("ctx") or {}).get("tag")
            return f"Invalid event type: {tag!r}"
        if error_type == "union_tag_not_found":
            missing.append("type")
        elif error_type == "json_invalid":
            return "Request body is not valid JSON"
        elif error_type == "value_error" and "ctx" in error:
            # Raised by a model validator; its message is already client-facing
            return str(error["ctx"]["error"])
        elif error_type == "missing":
            missing.append(loc[-1] if loc else "body")
        else:
            invalid.append(loc[-1] if loc else "body")

    parts = []
    if missing:
        parts.append("Missing required parameter(s): " + ", ".join(dict.fromkeys(missing)))
    if invalid:
        parts.append("Invalid parameter(s): " + ", ".join(dict.fromkeys(invalid)))
    return "; ".join(parts) or "Invalid request"


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Called once from main.py. JSON errors use the shape
    {"detail": "...", "error_type": "..."}; a missing account is reported
    as the bare text "0" (a zero balance) with a 404 status.
    """

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={
                "detail": describe_validation_errors(exc.errors()),
                "error_type": "validation_error",
            },
        )

    @app.exception_handler(EventValidationError)
    async def event_validation_handler(
        request: Request, exc: EventValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": exc.detail, "error_type": "validation_error"},
        )

    @app.exception_handler(AccountNotFoundError)
    async def account_not_found_handler(
        request: Request, exc: AccountNotFoundError
    ) -> PlainTextResponse:
        return PlainTextResponse("0", status_code=404)

    @app.exception_handler(InsufficientFundsError)
    async def insufficient_funds_handler(
        request: Request, exc: InsufficientFundsError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={
                "detail": exc.detail,
                "error_type": "insufficient_funds",
                "requested": exc.requested,
                "available": exc.available,
            },
        )

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        logger.exception(
            "store.failure",
            extra={"path": request.url.path, "method": request.method},
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error_type": "internal_error"},
        )
