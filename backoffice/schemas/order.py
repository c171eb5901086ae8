"""
Pydantic schemas for Order endpoints.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class OrderCreateRequest(BaseModel):
    """Request body for POST /orders."""
    total_cents: int = Field(gt=0, description="Order total in cents (must be positive)")
    description: str | None = Field(None, max_length=255)


class OrderResponse(BaseModel):
    id: str
    user_id: str
    order_number: str
    total_cents: int
    description: str | None
    payment_status: str
    paid_at: datetime | None
    payment_transaction_id: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class OrderBatchPayRequest(BaseModel):
    """Request body for POST /orders/pay — several orders, one debit."""
    order_ids: list[str] = Field(min_length=1, max_length=50)
