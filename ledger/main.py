"""
FastAPI application and entry point.

This module creates and configures the FastAPI application:
  1. Logging: configured once from settings at import time
  2. Lifespan manager: builds the shared AccountStore on startup and
     disposes of it on shutdown
  3. CORS middleware: allows frontend origins to make cross-origin requests
  4. Exception handlers: maps domain errors to HTTP responses
  5. Router registration: mounts /reset, /balance and /event

Running locally:
    uvicorn ledger.main:app --reload
or:
    python -m ledger
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ledger.config import settings
from ledger.database import create_engine
from ledger.exceptions import register_exception_handlers
from ledger.logging_config import setup_logging
from ledger.routers import balance, events, reset
from ledger.store import AccountStore


setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
      Builds the AccountStore (engine + session factory) once, creates the
      accounts table if it doesn't exist, and publishes the store on
      app.state for the get_store dependency.

    Shutdown:
      Disposes of the engine, closing all connections cleanly.
    """
    # --- Startup ---
    store = AccountStore(
        create_engine(settings.DATABASE_URL, echo=settings.DEBUG),
        max_attempts=settings.TRANSACTION_MAX_ATTEMPTS,
    )
    await store.create_schema()
    app.state.store = store
    yield
    # --- Shutdown ---
    await store.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Minimal ledger: reset, balance queries, and deposit/withdraw/transfer events",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(reset.router, prefix="/reset", tags=["Reset"])
app.include_router(balance.router, prefix="/balance", tags=["Balance"])
app.include_router(events.router, prefix="/event", tags=["Events"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness probe for load balancers and orchestrators."""
    return {"status": "ok", "version": settings.APP_VERSION}
