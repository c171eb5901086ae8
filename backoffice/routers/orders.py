"""
Orders router — a member's orders and paying them from the wallet.

Endpoints:
  POST /orders              — Create an unpaid order
  GET  /orders              — List my orders
  GET  /orders/{id}         — Get one of my orders
  POST /orders/pay          — Pay several orders with one debit
  POST /orders/{id}/pay     — Pay the order in full from my balance

Paying is atomic: the balance debit, the payment transaction and the
order's "paid" flag are written together or not at all.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.database import get_db
from backoffice.dependencies import get_current_member
from backoffice.models.user import User
from backoffice.schemas.order import (
    OrderBatchPayRequest,
    OrderCreateRequest,
    OrderResponse,
)
from backoffice.schemas.transaction import BalanceChangeResponse, TransactionResponse
from backoffice.services import order_service, transaction_service

router = APIRouter()


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an order",
)
async def create_order(
    request: OrderCreateRequest,
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    return await order_service.create_order(
        db, member.id, request.total_cents, request.description
    )


@router.get("", response_model=list[OrderResponse], summary="List my orders")
async def list_orders(
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    return await order_service.get_orders(db, member.id)


@router.post(
    "/pay",
    response_model=BalanceChangeResponse,
    summary="Pay several orders from my balance",
)
async def pay_orders(
    request: OrderBatchPayRequest,
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    """
    Debit the summed total of the listed orders once and mark them all paid.
    Nothing is paid unless every order can be.

    - **422** if the balance is too low (a failed payment is recorded) or an
      order is listed twice
    - **404** / **403** / **409** for a missing, foreign or already-paid order
    """
    change = await transaction_service.pay_orders(db, member.id, request.order_ids)
    return BalanceChangeResponse(
        transaction=TransactionResponse.model_validate(change.transaction),
        balance_cents=change.balance_cents,
    )


@router.get("/{order_id}", response_model=OrderResponse, summary="Get one of my orders")
async def get_order(
    order_id: str,
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    return await order_service.get_order(db, order_id, member.id)


@router.post(
    "/{order_id}/pay",
    response_model=BalanceChangeResponse,
    summary="Pay an order from my balance",
)
async def pay_order(
    order_id: str,
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    """
    Debit the order total from the balance.

    - **422** if the balance is too low (a failed payment is recorded)
    - **409** if the order is already paid
    """
    change = await transaction_service.pay_order(db, member.id, order_id)
    return BalanceChangeResponse(
        transaction=TransactionResponse.model_validate(change.transaction),
        balance_cents=change.balance_cents,
    )
