"""
Order service — the thin order store the payment path reads from.

Orders are created by the storefront; here they carry only an owner, a
total and a payment flag. Payment itself is transaction_service.pay_order.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.exceptions import NotFoundError, UnauthorizedAccessError, ValidationError
from backoffice.models.order import Order


def _generate_order_number() -> str:
    """e.g. ORD-20240131-4F2A9C"""
    today = datetime.now(timezone.utc).strftime("%Y%m%d")
    return f"ORD-{today}-{uuid.uuid4().hex[:6].upper()}"


async def create_order(
    db: AsyncSession,
    user_id: str,
    total_cents: int,
    description: str | None = None,
) -> Order:
    """
    Create an unpaid order for a user.

    Raises:
        ValidationError: Non-positive total.
    """
    if total_cents <= 0:
        raise ValidationError("Order total must be positive")

    order = Order(
        user_id=user_id,
        order_number=_generate_order_number(),
        total_cents=total_cents,
        description=description,
    )
    db.add(order)
    await db.flush()
    return order


async def get_orders(db: AsyncSession, user_id: str) -> list[Order]:
    """List the user's orders, newest first."""
    result = await db.execute(
        select(Order)
        .where(Order.user_id == user_id)
        .order_by(Order.created_at.desc())
    )
    return list(result.scalars().all())


async def get_order(db: AsyncSession, order_id: str, user_id: str) -> Order:
    """
    Get one of the user's orders.

    Raises:
        NotFoundError: If the order doesn't exist.
        UnauthorizedAccessError: If it belongs to someone else.
    """
    order = await db.get(Order, order_id, populate_existing=True)
    if order is None:
        raise NotFoundError("order", order_id)
    if order.user_id != user_id:
        raise UnauthorizedAccessError("You do not have access to this order")
    return order
