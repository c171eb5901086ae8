"""
Ledger store — persistence primitives for transactions and user balances.

No business rules live here. The module offers:

  - get_transaction / insert_transaction / update_transaction_fields
  - transition_status: a guarded status change (WHERE status = expected)
  - get_user_balance: read-only balance lookup
  - atomic(): the unit-of-work primitive the balance mutator builds on

Fresh reads:
  A request session may already hold a Transaction or User in its identity
  map (the auth dependency loads the caller). Reads here use
  populate_existing so callers always see the row as stored, never a stale
  in-memory copy.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.exceptions import (
    BackofficeError,
    InvalidStateError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from backoffice.models.transaction import Transaction
from backoffice.models.user import User

logger = logging.getLogger(__name__)

# Fields fixed at creation, or owned by the lifecycle (status)
IMMUTABLE_FIELDS = frozenset(
    {"id", "user_id", "type", "amount_cents", "status", "order_id", "created_at"}
)


@asynccontextmanager
async def atomic(db: AsyncSession):
    """
    Run the enclosed reads and writes as one database transaction.

    Commits when the block exits cleanly. On any exception the whole unit is
    rolled back, so no partial write survives. Domain errors propagate
    unchanged; driver/database failures surface as StorageError.

    After a rollback every ORM instance in the session is expired — callers
    must not touch previously loaded objects without re-reading them.
    """
    try:
        yield db
        await db.commit()
    except BackofficeError:
        await db.rollback()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Ledger write rolled back: %s", exc)
        raise StorageError("The ledger could not be updated; no changes were saved") from exc
    except Exception:
        await db.rollback()
        raise


async def get_transaction(db: AsyncSession, transaction_id: str) -> Transaction | None:
    """Fetch a transaction by id, bypassing any cached instance."""
    result = await db.execute(
        select(Transaction)
        .where(Transaction.id == transaction_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def insert_transaction(db: AsyncSession, txn: Transaction) -> Transaction:
    """Add a new transaction and flush so its id and timestamps are assigned."""
    db.add(txn)
    await db.flush()
    return txn


async def update_transaction_fields(
    db: AsyncSession,
    transaction_id: str,
    **fields,
) -> Transaction:
    """
    Update metadata fields of a transaction (receipt URL, description, ...).

    Raises:
        ValidationError: If a field is immutable or unknown.
        NotFoundError: If the transaction doesn't exist.
    """
    forbidden = IMMUTABLE_FIELDS.intersection(fields)
    if forbidden:
        raise ValidationError(f"Cannot update ledger fields: {', '.join(sorted(forbidden))}")
    unknown = [name for name in fields if not hasattr(Transaction, name)]
    if unknown:
        raise ValidationError(f"Unknown transaction fields: {', '.join(sorted(unknown))}")

    fields["updated_at"] = datetime.now(timezone.utc)
    result = await db.execute(
        update(Transaction)
        .where(Transaction.id == transaction_id)
        .values(**fields)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError("transaction", transaction_id)

    return await get_transaction(db, transaction_id)


async def transition_status(
    db: AsyncSession,
    transaction_id: str,
    expected_status: str,
    new_status: str,
    **fields,
) -> None:
    """
    Move a transaction from expected_status to new_status.

    The guard lives in the UPDATE's WHERE clause, so two concurrent
    transitions of the same record can never both succeed.

    Raises:
        NotFoundError: If the transaction doesn't exist.
        InvalidStateError: If it exists but is not in expected_status.
    """
    result = await db.execute(
        update(Transaction)
        .where(Transaction.id == transaction_id)
        .where(Transaction.status == expected_status)
        .values(status=new_status, updated_at=datetime.now(timezone.utc), **fields)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return

    current = await db.scalar(
        select(Transaction.status).where(Transaction.id == transaction_id)
    )
    if current is None:
        raise NotFoundError("transaction", transaction_id)
    raise InvalidStateError(transaction_id, current)


async def get_user_balance(db: AsyncSession, user_id: str) -> int | None:
    """Current balance in cents, or None if the user doesn't exist."""
    return await db.scalar(select(User.balance_cents).where(User.id == user_id))
