"""
Authentication service — signup, login and user lookups.

This module contains the core auth logic, separated from HTTP concerns.
The router calls these functions and translates the results into HTTP
responses.

Signup flow:
  1. Check if email is already registered
  2. Hash the password with Argon2id
  3. Create the User with a zero balance
  4. Return a JWT token so the user is immediately logged in

Login flow:
  1. Look up user by email
  2. Verify password against stored hash
  3. Return a JWT token

Security notes:
  - Login returns the same error for "wrong password" and "email not found"
    to prevent user enumeration attacks
  - New users always start as MEMBER with balance 0; the balance only ever
    changes through the ledger
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.config import Settings
from backoffice.exceptions import DuplicateEmailError, InvalidCredentialsError, NotFoundError
from backoffice.models.user import User, UserType
from backoffice.security import hash_password, verify_password, create_access_token

logger = logging.getLogger(__name__)


async def signup(
    db: AsyncSession,
    config: Settings,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    phone: str | None = None,
) -> tuple[User, str]:
    """
    Register a new member.

    The token is signed with the secret, algorithm and expiry in `config`.

    Returns:
        Tuple of (User instance, JWT token string).

    Raises:
        DuplicateEmailError: If the email is already registered.
    """
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise DuplicateEmailError(email)

    user = User(
        email=email,
        hashed_password=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        user_type=UserType.MEMBER,
        balance_cents=0,
    )
    db.add(user)
    await db.flush()

    logger.info("Registered user %s", user.id)
    token = create_access_token(data={"sub": user.id}, config=config)
    return user, token


async def login(
    db: AsyncSession,
    config: Settings,
    email: str,
    password: str,
) -> tuple[User, str]:
    """
    Authenticate a user and return a JWT token.

    Raises:
        InvalidCredentialsError: If email doesn't exist, password is wrong,
            or the user is deactivated.
    """
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    # Same error for every case, so emails can't be enumerated
    if not user:
        raise InvalidCredentialsError()

    if not verify_password(password, user.hashed_password):
        raise InvalidCredentialsError()

    if not user.is_active:
        raise InvalidCredentialsError()

    token = create_access_token(data={"sub": user.id}, config=config)
    return user, token


async def get_user(db: AsyncSession, user_id: str) -> User:
    """
    Fresh read of a user (balance included).

    Raises:
        NotFoundError: If the user doesn't exist.
    """
    user = await db.get(User, user_id, populate_existing=True)
    if user is None:
        raise NotFoundError("user", user_id)
    return user


async def admin_get_all_users(
    db: AsyncSession,
    limit: int = 50,
    offset: int = 0,
) -> list[User]:
    """[ADMIN ONLY] List every user, newest first."""
    result = await db.execute(
        select(User)
        .order_by(User.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())
