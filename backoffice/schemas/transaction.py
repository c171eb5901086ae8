"""
Pydantic schemas for transaction endpoints.

All monetary amounts are in integer cents (e.g., 150.00 = 15000).
"""

from datetime import date, datetime

from pydantic import BaseModel, Field


class DepositCreateRequest(BaseModel):
    """Request body for POST /transactions/deposits."""
    amount_cents: int = Field(gt=0, description="Amount transferred, in cents (must be positive)")
    bank_name: str = Field(min_length=1, max_length=120)
    transfer_date: date
    reference: str | None = Field(None, max_length=120)
    description: str | None = Field(None, max_length=255)


class DepositCreatedResponse(BaseModel):
    """Response body for a new deposit request."""
    transaction_id: str
    status: str


class ReceiptResponse(BaseModel):
    receipt_url: str


class RejectRequest(BaseModel):
    """Request body for POST /admin/transactions/{id}/reject."""
    # Missing or blank reasons are refused by reject_deposit (422)
    reason: str | None = None


class AdjustmentRequest(BaseModel):
    """Request body for POST /admin/users/{id}/adjustments."""
    amount_cents: int = Field(description="Signed amount in cents; negative debits the user")
    description: str = Field(min_length=1, max_length=255)


class NoteCreateRequest(BaseModel):
    text: str = Field(min_length=1, max_length=2000)


class NoteResponse(BaseModel):
    id: str
    transaction_id: str
    author_id: str
    kind: str
    text: str
    created_at: datetime

    model_config = {"from_attributes": True}


class TransactionResponse(BaseModel):
    """Public representation of a transaction."""
    id: str
    user_id: str
    type: str
    amount_cents: int
    status: str
    bank_name: str | None
    transfer_date: date | None
    reference: str | None
    receipt_url: str | None
    description: str | None
    rejection_reason: str | None
    order_id: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BalanceChangeResponse(BaseModel):
    """A settled transaction and the balance right after it."""
    transaction: TransactionResponse
    balance_cents: int


class PaginationResponse(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class TransactionListResponse(BaseModel):
    """Response body for GET /transactions and GET /admin/transactions."""
    transactions: list[TransactionResponse]
    pagination: PaginationResponse
