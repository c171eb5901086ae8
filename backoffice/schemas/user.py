"""
Pydantic schemas for User-related responses.

hashed_password is NEVER included in any response schema.
"""

from datetime import datetime

from pydantic import BaseModel, EmailStr


class UserResponse(BaseModel):
    """Public representation of a User, including the wallet balance."""
    id: str
    email: EmailStr
    first_name: str
    last_name: str
    phone: str | None
    user_type: str
    is_active: bool
    balance_cents: int
    created_at: datetime

    model_config = {"from_attributes": True}
