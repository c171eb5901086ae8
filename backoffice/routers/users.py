"""
Users router — the authenticated user's own profile and balance.

Endpoints:
  GET /users/me — Profile, role and current balance
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.database import get_db
from backoffice.dependencies import get_current_user
from backoffice.models.user import User
from backoffice.schemas.user import UserResponse
from backoffice.services import auth_service

router = APIRouter()


@router.get("/me", response_model=UserResponse, summary="Get my profile and balance")
async def get_me(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    # Re-read so the balance reflects every committed ledger write
    return await auth_service.get_user(db, user.id)
