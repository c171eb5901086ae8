"""
Admin router — deposit review, adjustments, and organization-wide audit.

All endpoints require the ADMIN role.

Endpoints:
  GET  /admin/transactions                     — List ALL transactions (filters)
  GET  /admin/transactions/{id}                — Get any transaction
  POST /admin/transactions/{id}/approve        — Approve a pending deposit
  POST /admin/transactions/{id}/reject         — Reject a pending deposit
  POST /admin/transactions/{id}/notes          — Add a review note
  GET  /admin/transactions/{id}/notes          — List notes
  GET  /admin/users                            — List users
  GET  /admin/users/{id}                       — Get any user (with balance)
  POST /admin/users/{id}/adjustments           — Manual balance adjustment

By consolidating all admin routes in one router, we avoid route-ordering
conflicts with the member routers' parameterized paths.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.config import Settings
from backoffice.database import get_db
from backoffice.dependencies import get_settings, require_admin
from backoffice.models.user import User
from backoffice.routers.transactions import page_response
from backoffice.schemas.transaction import (
    AdjustmentRequest,
    BalanceChangeResponse,
    NoteCreateRequest,
    NoteResponse,
    RejectRequest,
    TransactionListResponse,
    TransactionResponse,
)
from backoffice.schemas.user import UserResponse
from backoffice.services import auth_service, transaction_query, transaction_service

router = APIRouter()


# ---------------------------------------------------------------------------
# Transaction admin endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/transactions",
    response_model=TransactionListResponse,
    summary="[Admin] List ALL transactions across the organization",
)
async def admin_list_all_transactions(
    user_id: str | None = Query(None, description="Only this user's transactions"),
    type: str | None = Query(None, description="Filter by type"),
    status: str | None = Query(None, description="Filter by status"),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    search: str | None = Query(None),
    page: int = Query(1),
    limit: int | None = Query(None),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    """
    Every transaction in the system, newest first.

    Pending deposits awaiting review: `?type=deposit&status=pending`.
    """
    result = await transaction_query.query_transactions(
        db,
        user_id=user_id,
        type=type,
        status=status,
        start_date=start_date,
        end_date=end_date,
        search=search,
        page=page,
        limit=config.DEFAULT_PAGE_SIZE if limit is None else limit,
        max_limit=config.MAX_PAGE_SIZE,
    )
    return page_response(result)


@router.get(
    "/transactions/{transaction_id}",
    response_model=TransactionResponse,
    summary="[Admin] Get any transaction by ID",
)
async def admin_get_transaction(
    transaction_id: str,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.admin_get_transaction(db, transaction_id)


@router.post(
    "/transactions/{transaction_id}/approve",
    response_model=BalanceChangeResponse,
    summary="[Admin] Approve a pending deposit",
)
async def admin_approve_deposit(
    transaction_id: str,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Credit the deposit amount to its owner and mark the deposit approved.

    Returns **409** if the deposit was already approved or rejected.
    """
    change = await transaction_service.approve_deposit(db, transaction_id)
    return BalanceChangeResponse(
        transaction=TransactionResponse.model_validate(change.transaction),
        balance_cents=change.balance_cents,
    )


@router.post(
    "/transactions/{transaction_id}/reject",
    response_model=TransactionResponse,
    summary="[Admin] Reject a pending deposit",
)
async def admin_reject_deposit(
    transaction_id: str,
    request: RejectRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """A non-blank reason is required. The balance is not touched."""
    return await transaction_service.reject_deposit(db, transaction_id, request.reason)


@router.post(
    "/transactions/{transaction_id}/notes",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="[Admin] Add a review note",
)
async def admin_add_note(
    transaction_id: str,
    request: NoteCreateRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.add_note(
        db, transaction_id, admin, request.text, as_admin=True
    )


@router.get(
    "/transactions/{transaction_id}/notes",
    response_model=list[NoteResponse],
    summary="[Admin] List notes on a transaction",
)
async def admin_list_notes(
    transaction_id: str,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await transaction_service.admin_get_transaction(db, transaction_id)
    return await transaction_service.list_notes(db, transaction_id)


# ---------------------------------------------------------------------------
# User admin endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/users",
    response_model=list[UserResponse],
    summary="[Admin] List users",
)
async def admin_list_users(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await auth_service.admin_get_all_users(db, limit=limit, offset=offset)


@router.get(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="[Admin] Get any user's profile and balance",
)
async def admin_get_user(
    user_id: str,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await auth_service.get_user(db, user_id)


@router.post(
    "/users/{user_id}/adjustments",
    response_model=BalanceChangeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="[Admin] Adjust a user's balance",
)
async def admin_adjust_balance(
    user_id: str,
    request: AdjustmentRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Settle a signed adjustment immediately. A negative adjustment larger
    than the balance is refused (**422**).
    """
    change = await transaction_service.adjust_balance(
        db, user_id, request.amount_cents, request.description
    )
    return BalanceChangeResponse(
        transaction=TransactionResponse.model_validate(change.transaction),
        balance_cents=change.balance_cents,
    )
