"""
Database engine factory, base model class, and the store dependency.

This module sets up SQLAlchemy 2.0 with async support:

  - Base: Declarative base class that all ORM models inherit from
  - create_engine(): Builds the async engine for a database URL
  - get_store(): FastAPI dependency that hands each request the shared
    AccountStore created at startup

Lifecycle:
  The store (and the engine inside it) is built once in the application
  lifespan, stored on app.state, and reused by every request. Nothing is
  torn down until shutdown. Tests swap it out with app.dependency_overrides.
"""

from typing import Any

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create the async engine for the account store.

    SQLite connections may be handed between the event loop and aiosqlite's
    worker thread, so same-thread checking is switched off for it.
    """
    connect_args: dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    return create_async_engine(database_url, echo=echo, connect_args=connect_args)


def get_store(request: Request):
    """
    FastAPI dependency that provides the process-wide AccountStore.

    Usage in a route:
        @router.get("/balance")
        async def read_balance(store: AccountStore = Depends(get_store)):
            ...
    """
    return request.app.state.store
