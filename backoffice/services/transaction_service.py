"""
Transaction service — the deposit / payment lifecycle.

It handles:
  - Creating deposit requests (pending until an admin reviews them)
  - Attaching a bank-transfer receipt to a deposit request
  - Approving a deposit (credit the balance) or rejecting it (with a reason)
  - Paying an order, or several orders at once, out of the balance
  - Manual admin adjustments
  - Notes on transactions

Guards vs. atomicity:
  Every state-changing operation first re-reads the record and checks its
  status so callers get a precise error early. Those checks are a fast
  path only. The operation itself goes through the balance mutator or a
  guarded status transition, which re-checks the same conditions inside
  the atomic write — if another request resolved the transaction in
  between, the write fails with InvalidStateError and nothing changes.

Failed payments:
  A payment refused for insufficient balance is recorded as a `failed`
  payment transaction for the audit trail, then the error is re-raised.
  The balance and the order are untouched.
"""

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.exceptions import (
    AlreadyPaidError,
    InsufficientBalanceError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedAccessError,
    ValidationError,
)
from backoffice.models.order import Order
from backoffice.models.transaction import (
    Transaction,
    TransactionStatus,
    TransactionType,
)
from backoffice.models.transaction_note import TransactionNote
from backoffice.models.user import User
from backoffice.services import balance_mutator, ledger_store
from backoffice.services.balance_mutator import BalanceChange
from backoffice.services.receipt_storage import ReceiptStorage

logger = logging.getLogger(__name__)

RECEIPT_CONTENT_TYPES = frozenset(
    {"image/jpeg", "image/png", "image/gif", "image/webp", "application/pdf"}
)

DESCRIPTION_MAX_LENGTH = 255
FAILED_SUFFIX = " (insufficient balance)"


async def _require_transaction(db: AsyncSession, transaction_id: str) -> Transaction:
    txn = await ledger_store.get_transaction(db, transaction_id)
    if txn is None:
        raise NotFoundError("transaction", transaction_id)
    return txn


def _require_pending_deposit(txn: Transaction) -> None:
    if txn.type != TransactionType.DEPOSIT.value:
        raise InvalidStateError(
            txn.id, txn.status, f"Transaction {txn.id} is a {txn.type}, not a deposit request"
        )
    if txn.is_terminal:
        raise InvalidStateError(txn.id, txn.status)


# ---------------------------------------------------------------------------
# Deposits
# ---------------------------------------------------------------------------

async def create_deposit_request(
    db: AsyncSession,
    user_id: str,
    amount_cents: int,
    bank_name: str,
    transfer_date: date,
    reference: str | None = None,
    description: str | None = None,
) -> Transaction:
    """
    Record a member's claim that they transferred money to the business.

    The deposit starts `pending` and does not touch the balance until an
    admin approves it.

    Raises:
        ValidationError: Non-positive amount or empty bank name.
    """
    if amount_cents <= 0:
        raise ValidationError("Deposit amount must be positive")
    if not bank_name or not bank_name.strip():
        raise ValidationError("Bank name is required")

    txn = Transaction(
        user_id=user_id,
        type=TransactionType.DEPOSIT.value,
        amount_cents=amount_cents,
        status=TransactionStatus.PENDING.value,
        bank_name=bank_name.strip(),
        transfer_date=transfer_date,
        reference=reference or None,
        description=description,
    )
    async with ledger_store.atomic(db):
        await ledger_store.insert_transaction(db, txn)

    logger.info("Deposit request %s created by user %s for %d cents", txn.id, user_id, amount_cents)
    return txn


async def attach_receipt(
    db: AsyncSession,
    storage: ReceiptStorage,
    user_id: str,
    transaction_id: str,
    filename: str,
    content_type: str | None,
    data: bytes,
    max_bytes: int,
) -> str:
    """
    Store a receipt file and link it to the member's deposit request.

    This is a metadata update only — status and balance are unchanged. A
    later upload replaces the URL.

    Returns:
        The receipt URL.

    Raises:
        NotFoundError: Transaction missing.
        UnauthorizedAccessError: Transaction belongs to another user.
        InvalidStateError: Transaction is not a deposit.
        ValidationError: Empty, oversized, or non image/PDF file.
        StorageError: The file store failed.
    """
    txn = await _require_transaction(db, transaction_id)
    if txn.user_id != user_id:
        raise UnauthorizedAccessError("You do not have access to this transaction")
    if txn.type != TransactionType.DEPOSIT.value:
        raise InvalidStateError(
            txn.id, txn.status, "Receipts can only be attached to deposit requests"
        )
    if content_type not in RECEIPT_CONTENT_TYPES:
        raise ValidationError("Receipt must be an image (JPEG, PNG, GIF, WebP) or a PDF")
    if not data:
        raise ValidationError("Receipt file is empty")
    if len(data) > max_bytes:
        raise ValidationError(f"Receipt exceeds the {max_bytes} byte limit")

    receipt_url = await storage.save(transaction_id, filename, data)

    async with ledger_store.atomic(db):
        await ledger_store.update_transaction_fields(db, transaction_id, receipt_url=receipt_url)

    logger.info("Receipt attached to transaction %s", transaction_id)
    return receipt_url


async def approve_deposit(db: AsyncSession, transaction_id: str) -> BalanceChange:
    """
    Approve a pending deposit and credit its amount to the owner's balance.

    Raises:
        NotFoundError: Transaction (or its user) missing.
        InvalidStateError: Not a deposit, or no longer pending.
    """
    txn = await _require_transaction(db, transaction_id)
    _require_pending_deposit(txn)

    return await balance_mutator.apply_balance_change(
        db,
        user_id=txn.user_id,
        transaction_id=txn.id,
        delta_cents=txn.amount_cents,
        new_status=TransactionStatus.APPROVED.value,
    )


async def reject_deposit(db: AsyncSession, transaction_id: str, reason: str | None) -> Transaction:
    """
    Reject a pending deposit. The balance is not touched.

    Raises:
        ValidationError: Missing or blank reason (the deposit stays pending).
        NotFoundError: Transaction missing.
        InvalidStateError: Not a deposit, or no longer pending.
    """
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A rejection reason is required")

    txn = await _require_transaction(db, transaction_id)
    _require_pending_deposit(txn)

    async with ledger_store.atomic(db):
        await ledger_store.transition_status(
            db,
            transaction_id,
            TransactionStatus.PENDING.value,
            TransactionStatus.REJECTED.value,
            rejection_reason=reason,
        )

    logger.info("Deposit %s rejected: %s", transaction_id, reason)
    return await ledger_store.get_transaction(db, transaction_id)


# ---------------------------------------------------------------------------
# Payments and adjustments
# ---------------------------------------------------------------------------

async def pay_order(db: AsyncSession, user_id: str, order_id: str) -> BalanceChange:
    """
    Pay one order in full from the member's balance.

    On success a `completed` payment transaction with amount -total is
    recorded, the order is marked paid, and the balance is debited — all in
    one atomic unit.

    Raises:
        NotFoundError: Order or user missing.
        UnauthorizedAccessError: The order belongs to another user.
        AlreadyPaidError: The order is already paid.
        InsufficientBalanceError: Balance below the order total. A `failed`
            payment transaction is recorded before this is raised.
    """
    return await pay_orders(db, user_id, [order_id])


async def pay_orders(
    db: AsyncSession,
    user_id: str,
    order_ids: list[str],
) -> BalanceChange:
    """
    Pay several unpaid orders with a single debit of their summed total.

    One `payment` transaction is recorded for the whole group and every
    order is marked paid and linked to it. It is all or nothing: if any
    order is missing, foreign or already paid (including one paid by a
    concurrent request after the checks below), no order is marked paid
    and the balance is not touched.

    A single-order payment is linked to its order through `order_id`; a
    group payment leaves `order_id` empty and is found through each order's
    `payment_transaction_id`.

    Raises:
        ValidationError: No orders, or the same order listed twice.
        NotFoundError: An order or the user is missing.
        UnauthorizedAccessError: An order belongs to another user.
        AlreadyPaidError: An order is already paid.
        InsufficientBalanceError: Balance below the summed total. A
            `failed` payment transaction is recorded before this is raised.
    """
    if not order_ids:
        raise ValidationError("At least one order is required")
    if len(set(order_ids)) != len(order_ids):
        raise ValidationError("Each order can only be listed once")

    orders = []
    for order_id in order_ids:
        order = await db.get(Order, order_id, populate_existing=True)
        if order is None:
            raise NotFoundError("order", order_id)
        if order.user_id != user_id:
            raise UnauthorizedAccessError("You do not have access to this order")
        if order.payment_status == "paid":
            raise AlreadyPaidError(order_id)
        orders.append(order)

    total_cents = sum(order.total_cents for order in orders)
    if len(orders) == 1:
        linked_order_id = orders[0].id
        description = f"Payment for order {orders[0].order_number}"
    else:
        linked_order_id = None
        description = "Payment for orders " + ", ".join(o.order_number for o in orders)
    # Leave room for the " (insufficient balance)" suffix within the column
    description = description[:DESCRIPTION_MAX_LENGTH - len(FAILED_SUFFIX)]

    payment = Transaction(
        user_id=user_id,
        type=TransactionType.PAYMENT.value,
        amount_cents=-total_cents,
        status=TransactionStatus.COMPLETED.value,
        order_id=linked_order_id,
        description=description,
    )
    try:
        return await balance_mutator.settle_new_transaction(
            db, payment, order_ids=order_ids
        )
    except InsufficientBalanceError:
        failed = Transaction(
            user_id=user_id,
            type=TransactionType.PAYMENT.value,
            amount_cents=-total_cents,
            status=TransactionStatus.FAILED.value,
            order_id=linked_order_id,
            description=description + FAILED_SUFFIX,
        )
        async with ledger_store.atomic(db):
            await ledger_store.insert_transaction(db, failed)
        logger.warning(
            "Payment for %d order(s) refused: insufficient balance for user %s (failed record %s)",
            len(orders), user_id, failed.id,
        )
        raise


async def adjust_balance(
    db: AsyncSession,
    user_id: str,
    amount_cents: int,
    description: str,
) -> BalanceChange:
    """
    Apply a manual, already-settled adjustment to a user's balance.

    Raises:
        ValidationError: Zero amount or empty description.
        NotFoundError: User missing.
        InsufficientBalanceError: A negative adjustment larger than the balance.
    """
    if amount_cents == 0:
        raise ValidationError("Adjustment amount must be non-zero")
    if not description or not description.strip():
        raise ValidationError("An adjustment description is required")

    adjustment = Transaction(
        user_id=user_id,
        type=TransactionType.ADJUSTMENT.value,
        amount_cents=amount_cents,
        status=TransactionStatus.COMPLETED.value,
        description=description.strip(),
    )
    return await balance_mutator.settle_new_transaction(db, adjustment)


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------

async def add_note(
    db: AsyncSession,
    transaction_id: str,
    author: User,
    text: str,
    as_admin: bool = False,
) -> TransactionNote:
    """
    Append a note to a transaction.

    Members may only annotate their own transactions; admins any.

    Raises:
        ValidationError: Blank note.
        NotFoundError: Transaction missing.
        UnauthorizedAccessError: Member annotating someone else's transaction.
    """
    text = (text or "").strip()
    if not text:
        raise ValidationError("Note text is required")

    txn = await _require_transaction(db, transaction_id)
    if not as_admin and txn.user_id != author.id:
        raise UnauthorizedAccessError("You do not have access to this transaction")

    note = TransactionNote(
        transaction_id=transaction_id,
        author_id=author.id,
        kind="admin" if as_admin else "user",
        text=text,
    )
    async with ledger_store.atomic(db):
        db.add(note)
        await db.flush()
    return note


async def list_notes(db: AsyncSession, transaction_id: str) -> list[TransactionNote]:
    """Notes for a transaction, oldest first."""
    result = await db.execute(
        select(TransactionNote)
        .where(TransactionNote.transaction_id == transaction_id)
        .order_by(TransactionNote.created_at.asc())
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Single-record reads
# ---------------------------------------------------------------------------

async def get_transaction(db: AsyncSession, transaction_id: str, user_id: str) -> Transaction:
    """
    Get one of the member's own transactions.

    Raises:
        NotFoundError: Transaction missing.
        UnauthorizedAccessError: It belongs to someone else.
    """
    txn = await _require_transaction(db, transaction_id)
    if txn.user_id != user_id:
        raise UnauthorizedAccessError("You do not have access to this transaction")
    return txn


async def admin_get_transaction(db: AsyncSession, transaction_id: str) -> Transaction:
    """[ADMIN ONLY] Get any transaction by id without ownership check."""
    return await _require_transaction(db, transaction_id)
