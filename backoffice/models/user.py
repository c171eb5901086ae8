"""
User model — the authentication identity and owner of a wallet balance.

Each User represents a login credential (email + hashed password) with a
defined role, plus the `balance_cents` field the ledger operates on.

User types:
  - ADMIN: Back-office operator — approves/rejects deposits, audits ledger
  - MEMBER: Customer — requests deposits, pays orders from balance

Balance ownership:
  `balance_cents` lives on the user row but is written ONLY by the balance
  mutator (backoffice.services.balance_mutator). Every other code path reads
  it. A CHECK constraint keeps it non-negative at the database level as the
  last line of defence behind the mutator's conditional UPDATE.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime, Enum, Integer, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.database import Base


class UserType(str, enum.Enum):
    """
    Defines the role a user holds within the back office.

    Inherits from str so the enum value serializes naturally to JSON
    and can be stored as a simple string in the database.
    """
    ADMIN = "admin"      # Back-office operator
    MEMBER = "member"    # Customer, the default role for signup


class User(Base):
    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint("balance_cents >= 0", name="ck_users_non_negative_balance"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    # Login identifier: unique and indexed
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    # Argon2id hash of the password (never store plaintext!)
    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)

    user_type: Mapped[UserType] = mapped_column(
        Enum(UserType),
        default=UserType.MEMBER,
        nullable=False,
    )

    # Soft-disable: deactivated users can't log in but their ledger is preserved
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Wallet balance in cents. Written only by the balance mutator.
    balance_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

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
