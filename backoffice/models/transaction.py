"""
Transaction model — records every balance-affecting event.

Types and sign convention for amount_cents:
  - deposit:    positive — member-reported bank transfer, credited on approval
  - refund:     positive — money returned to the member
  - payment:    negative — order paid out of the balance
  - withdrawal: negative — money paid out to the member
  - adjustment: either sign — manual correction by an admin

Status machine:
  pending ──approve──> approved
     └─────reject───> rejected
  (created settled)    completed   (payments, adjustments)
  (created refused)    failed      (payment refused for insufficient balance)

Only `pending` is mutable; every other status is terminal. Records are never
deleted. The receipt URL and free-text metadata may change (they never
touch the balance); type, amount, owner and order link are fixed at creation.

Constraints:
  - amount_cents can never be zero
  - at most one `completed` payment per order (partial unique index)
"""

import enum
import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.database import Base


class TransactionType(str, enum.Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    REFUND = "refund"
    ADJUSTMENT = "adjustment"
    PAYMENT = "payment"


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    COMPLETED = "completed"
    REJECTED = "rejected"
    FAILED = "failed"


_COMPLETED_PAYMENT = text("type = 'payment' AND status = 'completed'")


class Transaction(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint("amount_cents <> 0", name="ck_transactions_non_zero_amount"),
        Index(
            "uq_transactions_completed_payment_per_order",
            "order_id",
            unique=True,
            sqlite_where=_COMPLETED_PAYMENT,
            postgresql_where=_COMPLETED_PAYMENT,
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    # Signed amount in cents; see the sign convention above
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TransactionStatus.PENDING.value,
        index=True,
    )

    # Deposit metadata reported by the member
    bank_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    transfer_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    reference: Mapped[str | None] = mapped_column(String(120), nullable=True)
    receipt_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Payments only: the order this payment settles
    order_id: Mapped[str | None] = mapped_column(
        ForeignKey("orders.id"),
        nullable=True,
        index=True,
    )

    # Indexed for the newest-first listing and date-range filters
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    @property
    def is_terminal(self) -> bool:
        return self.status != TransactionStatus.PENDING.value
