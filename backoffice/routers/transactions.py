"""
Transactions router — a member's own deposits, receipts and history.

Member endpoints (scoped to the authenticated user):
  POST /transactions/deposits              — Request a deposit (pending)
  POST /transactions/{id}/receipt          — Attach a transfer receipt
  POST /transactions/{id}/notes            — Add a note
  GET  /transactions                       — List own transactions (filters)
  GET  /transactions/{id}                  — Get one transaction
  GET  /transactions/{id}/notes            — List its notes

Admin review (approve / reject) lives in routers/admin.py.
"""

from datetime import date

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.config import Settings
from backoffice.database import get_db
from backoffice.dependencies import get_current_member, get_receipt_storage, get_settings
from backoffice.models.user import User
from backoffice.schemas.transaction import (
    DepositCreateRequest,
    DepositCreatedResponse,
    NoteCreateRequest,
    NoteResponse,
    PaginationResponse,
    ReceiptResponse,
    TransactionListResponse,
    TransactionResponse,
)
from backoffice.services import transaction_query, transaction_service
from backoffice.services.receipt_storage import ReceiptStorage

router = APIRouter()


def page_response(result: transaction_query.TransactionPage) -> TransactionListResponse:
    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(t) for t in result.transactions],
        pagination=PaginationResponse(
            total=result.total,
            page=result.page,
            limit=result.limit,
            total_pages=result.total_pages,
        ),
    )


@router.post(
    "/deposits",
    response_model=DepositCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request a deposit",
)
async def create_deposit(
    request: DepositCreateRequest,
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    """
    Report a bank transfer to the business. The deposit stays **pending**
    until an admin approves it; only then is the balance credited.

    All amounts are in **integer cents**.
    """
    txn = await transaction_service.create_deposit_request(
        db=db,
        user_id=member.id,
        amount_cents=request.amount_cents,
        bank_name=request.bank_name,
        transfer_date=request.transfer_date,
        reference=request.reference,
        description=request.description,
    )
    return DepositCreatedResponse(transaction_id=txn.id, status=txn.status)


@router.post(
    "/{transaction_id}/receipt",
    response_model=ReceiptResponse,
    summary="Attach a receipt to a deposit request",
)
async def upload_receipt(
    transaction_id: str,
    file: UploadFile = File(..., description="Image or PDF of the transfer receipt"),
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
    storage: ReceiptStorage = Depends(get_receipt_storage),
    config: Settings = Depends(get_settings),
):
    """Upload (or replace) the receipt. Does not change the deposit's status."""
    data = await file.read()
    receipt_url = await transaction_service.attach_receipt(
        db=db,
        storage=storage,
        user_id=member.id,
        transaction_id=transaction_id,
        filename=file.filename or "",
        content_type=file.content_type,
        data=data,
        max_bytes=config.MAX_RECEIPT_BYTES,
    )
    return ReceiptResponse(receipt_url=receipt_url)


@router.get(
    "",
    response_model=TransactionListResponse,
    summary="List my transactions",
)
async def list_transactions(
    type: str | None = Query(None, description="deposit, withdrawal, refund, adjustment, payment"),
    status: str | None = Query(None, description="pending, approved, completed, rejected, failed"),
    start_date: date | None = Query(None, description="Created on or after this day"),
    end_date: date | None = Query(None, description="Created on or before this day"),
    search: str | None = Query(None, description="Substring of id, type, description, reference or bank"),
    page: int = Query(1),
    limit: int | None = Query(None),
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    """Newest first, with pagination totals."""
    result = await transaction_query.query_transactions(
        db,
        user_id=member.id,
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
    "/{transaction_id}",
    response_model=TransactionResponse,
    summary="Get one of my transactions",
)
async def get_transaction(
    transaction_id: str,
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.get_transaction(db, transaction_id, member.id)


@router.post(
    "/{transaction_id}/notes",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a note to one of my transactions",
)
async def add_note(
    transaction_id: str,
    request: NoteCreateRequest,
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    return await transaction_service.add_note(db, transaction_id, member, request.text)


@router.get(
    "/{transaction_id}/notes",
    response_model=list[NoteResponse],
    summary="List notes on one of my transactions",
)
async def list_notes(
    transaction_id: str,
    member: User = Depends(get_current_member),
    db: AsyncSession = Depends(get_db),
):
    await transaction_service.get_transaction(db, transaction_id, member.id)
    return await transaction_service.list_notes(db, transaction_id)
