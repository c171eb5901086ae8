"""
FastAPI dependencies for authentication, authorization, and app services.

Dependency chain:

  get_current_user (JWT -> User)
      ├── get_current_member (User -> User)   [MEMBER role]
      └── require_admin (User -> User)        [ADMIN role]

Role-based access control:
  - MEMBER: requests deposits, pays own orders, sees own transactions.
  - ADMIN: reviews deposits, adjusts balances, sees every transaction.
    Admins are blocked from member endpoints so that back-office accounts
    never hold a wallet of their own.

get_receipt_storage and get_settings hand out the instances create_app()
placed on app.state.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.config import Settings
from backoffice.database import get_db
from backoffice.models.user import User, UserType
from backoffice.security import decode_access_token
from backoffice.services.receipt_storage import ReceiptStorage


# OAuth2PasswordBearer reads the "Authorization: Bearer <token>" header.
# tokenUrl points at the login endpoint (used by Swagger UI's "Authorize").
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings),
) -> User:
    """
    Extract and validate the JWT token, then return the corresponding User.

    Raises:
        HTTPException 401: If the token is invalid or the user doesn't exist
            or is deactivated.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token, config)
        user_id: str | None = payload.get("sub")
        if user_id is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise credentials_exception

    return user


async def get_current_member(
    user: User = Depends(get_current_user),
) -> User:
    """
    Require the authenticated user to be a MEMBER.

    Raises:
        HTTPException 403: If the user is an admin.
    """
    if user.user_type == UserType.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin accounts cannot use member wallet endpoints. "
                   "Use /admin/* endpoints instead.",
        )
    return user


async def require_admin(
    user: User = Depends(get_current_user),
) -> User:
    """
    Require the authenticated user to have the ADMIN role.

    Raises:
        HTTPException 403: If the user is not an admin.
    """
    if user.user_type != UserType.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


def get_receipt_storage(request: Request) -> ReceiptStorage:
    return request.app.state.receipt_storage
