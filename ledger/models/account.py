"""
Account model: one ledger document keyed by an opaque account id.

Each account has:
  - A client-supplied string id (no format is imposed)
  - A balance in integer minor units
  - A version counter used for optimistic concurrency

Balance management:
  A CHECK constraint at the database level enforces that the balance can
  never go negative. The service checks before every debit; the constraint
  is the last line of defence against a bug slipping through. Balances are
  64-bit integers; MAX_BALANCE is the largest value the column can hold.

Optimistic concurrency:
  `version` is registered as SQLAlchemy's version_id_col. Every ORM UPDATE
  is emitted as `... WHERE id = :id AND version = :seen_version` and bumps
  the counter. If another writer changed the row after it was read, the
  UPDATE matches zero rows and SQLAlchemy raises StaleDataError, which the
  store treats as a write conflict and retries.
"""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger.database import Base


MAX_BALANCE = 2**63 - 1


class Account(Base):
    __tablename__ = "accounts"

    __table_args__ = (
        CheckConstraint(
            "balance >= 0",
            name="ck_accounts_non_negative_balance",
        ),
    )

    id: Mapped[str] = mapped_column(String(255), primary_key=True)

    balance: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Audit timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"Account(id={self.id!r}, balance={self.balance})"
