"""
Order model — the minimal slice of an order the ledger needs.

The catalogue, line items and fulfilment live elsewhere; the ledger only
reads an order's owner and total and flips `payment_status` from "unpaid"
to "paid" inside the same atomic unit that debits the balance. Several
orders paid together share one payment transaction.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.database import Base


class Order(Base):
    __tablename__ = "orders"

    __table_args__ = (
        CheckConstraint("total_cents > 0", name="ck_orders_positive_total"),
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

    # Human-facing number, e.g. "ORD-20240131-4F2A"
    order_number: Mapped[str] = mapped_column(String(40), unique=True, nullable=False)

    total_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # "unpaid" or "paid"
    payment_status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="unpaid",
    )
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # The completed payment that settled this order (shared by a batch)
    payment_transaction_id: Mapped[str | None] = mapped_column(
        String(36), nullable=True, index=True
    )

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
