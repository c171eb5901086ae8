"""
Auth router — the two public endpoints.

  POST /auth/signup  — Create a MEMBER with an empty wallet, return a token
  POST /auth/login   — Exchange email + password for a token

Tokens carry the user's UUID as `sub` and are signed with the settings the
app was built with (app.state.settings), so a token minted by one app
instance is only accepted by instances sharing its SECRET_KEY.

Passwords never reach a log: the request middleware records method, path
and status only, and the database only ever sees the Argon2 hash.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.config import Settings
from backoffice.database import get_db
from backoffice.dependencies import get_settings
from backoffice.schemas.auth import (
    SignupResponse,
    TokenResponse,
    UserLoginRequest,
    UserSignupRequest,
)
from backoffice.services import auth_service

router = APIRouter()


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a member wallet",
)
async def signup(
    body: UserSignupRequest,
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    """
    Register a member. The wallet starts at 0 and only the ledger moves it
    (approved deposits, order payments, admin adjustments).

    409 if the email is taken, 422 for a malformed body.
    """
    user, token = await auth_service.signup(
        db,
        config,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
    )
    return SignupResponse(
        user_id=user.id,
        email=user.email,
        user_type=user.user_type.value,
        balance_cents=user.balance_cents,
        token=token,
    )


@router.post("/login", response_model=TokenResponse, summary="Get a bearer token")
async def login(
    body: UserLoginRequest,
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    """
    Unknown email, wrong password and deactivated user all answer the same
    401. The token expires after ACCESS_TOKEN_EXPIRE_MINUTES.
    """
    _, token = await auth_service.login(
        db, config, email=body.email, password=body.password
    )
    return TokenResponse(token=token)
