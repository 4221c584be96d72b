"""
SQLAlchemy ORM models package.

Models are imported here so that Base.metadata knows about every table
before create_all() runs.
"""

from ledger.models.account import Account  # noqa: F401
