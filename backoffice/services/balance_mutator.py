"""
Balance mutator — the only code path that writes a user's balance.

THIS IS THE CORRECTNESS-CRITICAL MODULE OF THE LEDGER. It changes a user's
balance and a transaction's status together, in one database transaction:
either both happen or neither does.

Race safety:
  The non-negativity check is not a read followed by a write. It is part of
  the UPDATE itself:

      UPDATE users
         SET balance_cents = balance_cents + :delta
       WHERE id = :user_id AND balance_cents + :delta >= 0

  The database evaluates the condition against the row it is about to
  write, under its own write lock (row lock on PostgreSQL, database lock on
  SQLite). Two concurrent debits that each fit the balance, but not
  together, therefore cannot both match: the second one sees the first
  one's result and updates zero rows.

  A zero-row update is then classified with a plain read (user missing vs.
  balance too low) purely to build the error; the unit is rolled back
  either way.

Two entry points:
  - apply_balance_change: settle an EXISTING transaction (deposit approval)
  - settle_new_transaction: create and settle in one step (order payment,
    batch payment, admin adjustment), claiming every order it pays for
"""

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.exceptions import (
    AlreadyPaidError,
    InsufficientBalanceError,
    NotFoundError,
)
from backoffice.models.order import Order
from backoffice.models.transaction import Transaction, TransactionStatus
from backoffice.models.user import User
from backoffice.services import ledger_store

logger = logging.getLogger(__name__)


@dataclass
class BalanceChange:
    """Outcome of a committed balance mutation."""
    balance_cents: int
    transaction: Transaction


async def _apply_delta(db: AsyncSession, user_id: str, delta_cents: int) -> None:
    """
    Add delta_cents to the user's balance, refusing to go below zero.

    Must run inside ledger_store.atomic(); raising here rolls the unit back.

    Raises:
        NotFoundError: If the user doesn't exist.
        InsufficientBalanceError: If the new balance would be negative.
    """
    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .where(User.balance_cents + delta_cents >= 0)
        .values(balance_cents=User.balance_cents + delta_cents, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return

    available = await ledger_store.get_user_balance(db, user_id)
    if available is None:
        raise NotFoundError("user", user_id)
    raise InsufficientBalanceError(
        user_id=user_id,
        requested_cents=-delta_cents,
        available_cents=available,
    )


async def _claim_order(db: AsyncSession, order_id: str, transaction_id: str) -> None:
    """
    Mark an order paid by transaction_id, at most once.

    Raises:
        NotFoundError: If the order doesn't exist.
        AlreadyPaidError: If it was already paid (possibly by a concurrent request).
    """
    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(Order)
        .where(Order.id == order_id)
        .where(Order.payment_status == "unpaid")
        .values(
            payment_status="paid",
            paid_at=now,
            payment_transaction_id=transaction_id,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return

    exists = await db.get(Order, order_id)
    if exists is None:
        raise NotFoundError("order", order_id)
    raise AlreadyPaidError(order_id)


async def apply_balance_change(
    db: AsyncSession,
    user_id: str,
    transaction_id: str,
    delta_cents: int,
    new_status: str,
    expected_status: str = TransactionStatus.PENDING.value,
    **fields,
) -> BalanceChange:
    """
    Atomically move a transaction to new_status and apply delta_cents.

    Args:
        db: Database session.
        user_id: Owner of the balance to change.
        transaction_id: The transaction being settled.
        delta_cents: Signed amount to add (negative for debits).
        new_status: Terminal status to set.
        expected_status: The status the transaction must currently have.
        **fields: Extra transaction columns to set in the same write.

    Returns:
        BalanceChange with the committed balance and the updated transaction.

    Raises:
        NotFoundError: Transaction or user missing.
        InvalidStateError: Transaction not in expected_status.
        InsufficientBalanceError: Balance would go negative.
        StorageError: Datastore failure.
        (In every error case nothing is written.)
    """
    async with ledger_store.atomic(db):
        await ledger_store.transition_status(
            db, transaction_id, expected_status, new_status, **fields
        )
        await _apply_delta(db, user_id, delta_cents)

    balance = await ledger_store.get_user_balance(db, user_id)
    txn = await ledger_store.get_transaction(db, transaction_id)
    logger.info(
        "Transaction %s -> %s, user %s balance %+d cents = %d",
        transaction_id, new_status, user_id, delta_cents, balance,
    )
    return BalanceChange(balance_cents=balance, transaction=txn)


async def settle_new_transaction(
    db: AsyncSession,
    txn: Transaction,
    order_ids: Sequence[str] = (),
) -> BalanceChange:
    """
    Insert an already-settled transaction and apply its amount to the balance.

    Every order in order_ids is claimed (unpaid -> paid, linked to txn) in
    the same unit, so an order can be paid at most once. The balance moves
    once, by txn.amount_cents, however many orders are claimed; if any claim
    fails the earlier ones are rolled back with everything else.

    Args:
        db: Database session.
        txn: A new, unsaved Transaction carrying user_id, amount_cents and its
             terminal status.
        order_ids: Orders this transaction pays for, if any.

    Raises:
        NotFoundError: User or an order missing.
        AlreadyPaidError: An order is already paid.
        InsufficientBalanceError: Balance would go negative.
        StorageError: Datastore failure.
        (In every error case nothing is written.)
    """
    user_id = txn.user_id
    delta_cents = txn.amount_cents
    # Claims reference the payment before it is flushed
    if txn.id is None:
        txn.id = str(uuid.uuid4())

    async with ledger_store.atomic(db):
        for order_id in order_ids:
            await _claim_order(db, order_id, txn.id)
        await _apply_delta(db, user_id, delta_cents)
        await ledger_store.insert_transaction(db, txn)
        transaction_id = txn.id

    balance = await ledger_store.get_user_balance(db, user_id)
    settled = await ledger_store.get_transaction(db, transaction_id)
    logger.info(
        "Settled %s %s for user %s: %+d cents, balance %d",
        settled.type, transaction_id, user_id, delta_cents, balance,
    )
    return BalanceChange(balance_cents=balance, transaction=settled)
