"""
Database engine, session management, and base model class.

This module sets up SQLAlchemy 2.0 with async support. Key components:

  - build_engine(): Creates the async engine (connection pool) for a URL
  - build_sessionmaker(): Factory for creating async database sessions
  - Base: Declarative base class that all ORM models inherit from
  - get_db(): FastAPI dependency that provides a session per request

Ownership:
  Nothing here connects at import time. The application factory
  (backoffice.main.create_app) builds the engine and session factory and
  stores them on app.state; the lifespan hook disposes of the engine on
  shutdown. Scripts and tests build their own the same way.

Session lifecycle:
  Each API request gets its own session via get_db(). The session commits
  on success, commits on domain errors (so audit records like failed
  payments are kept), and rolls back on anything else.
"""

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from backoffice.exceptions import BackofficeError


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine. echo=True logs every SQL statement."""
    return create_async_engine(database_url, echo=echo)


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Session factory bound to an engine.

    expire_on_commit=False prevents lazy-load errors after commit —
    without this, accessing attributes on a committed object would trigger
    a synchronous DB call, which fails in async context.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Provides metadata tracking for table creation and common declarative
    mapping features.
    """
    pass


async def get_db(request: Request):
    """
    FastAPI dependency that provides a database session.

    Usage in a route:
        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db)):
            ...

    The session factory comes from app.state, where create_app() put it.
    """
    session_factory = request.app.state.sessionmaker
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except BackofficeError:
            # Domain errors (e.g., InsufficientBalanceError): commit
            # so audit-trail records (like failed payments) are persisted.
            await session.commit()
            raise
        except Exception:
            await session.rollback()
            raise
