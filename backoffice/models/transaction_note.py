"""
TransactionNote model — append-only notes attached to a transaction.

Admins leave review notes ("called the bank, transfer confirmed"); members
leave notes on their own requests. Notes never change a transaction's status
or the balance.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.database import Base


class TransactionNote(Base):
    __tablename__ = "transaction_notes"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    transaction_id: Mapped[str] = mapped_column(
        ForeignKey("transactions.id"),
        nullable=False,
        index=True,
    )

    author_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)

    # "admin" or "user"
    kind: Mapped[str] = mapped_column(String(10), nullable=False)

    text: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
