"""
Transaction query layer — read-only, filtered, paginated listings.

Used by both the member history page (scoped to one user) and the admin
audit view (all users). Filters:

  - user_id, type, status: exact match
  - start_date / end_date: inclusive bounds on created_at. A plain date
    covers that whole day; a datetime is used as-is.
  - search: case-insensitive substring match against id, user_id, type,
    description, reference and bank_name — any field may match. The term
    is matched as given (whitespace included); only an empty term is ignored

Results are ordered newest first with the id as tie-breaker, so a page
window over a fixed data set is always the same, and walking every page
yields each record exactly once.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.exceptions import ValidationError
from backoffice.models.transaction import Transaction, TransactionStatus, TransactionType

_TYPES = {t.value for t in TransactionType}
_STATUSES = {s.value for s in TransactionStatus}


@dataclass
class TransactionPage:
    transactions: list[Transaction]
    total: int
    page: int
    limit: int
    total_pages: int


def _positive_int(name: str, value) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a positive integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a positive integer")
    if number < 1 or (isinstance(value, float) and value != number):
        raise ValidationError(f"{name} must be a positive integer")
    return number


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _lower_bound(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return _as_utc(value)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _upper_bound(value: date | datetime) -> tuple[datetime, bool]:
    """Returns (bound, exclusive). A bare date extends to the end of that day."""
    if isinstance(value, datetime):
        return _as_utc(value), False
    return datetime.combine(value + timedelta(days=1), time.min, tzinfo=timezone.utc), True


async def query_transactions(
    db: AsyncSession,
    user_id: str | None = None,
    type: str | None = None,
    status: str | None = None,
    start_date: date | datetime | None = None,
    end_date: date | datetime | None = None,
    search: str | None = None,
    page=1,
    limit=20,
    max_limit: int = 200,
) -> TransactionPage:
    """
    Filtered, newest-first page of transactions.

    Raises:
        ValidationError: page/limit not a positive integer, limit above
            max_limit, unknown type/status, or start_date after end_date.
    """
    page = _positive_int("page", page)
    limit = _positive_int("limit", limit)
    if limit > max_limit:
        raise ValidationError(f"limit must not exceed {max_limit}")
    if type is not None and type not in _TYPES:
        raise ValidationError(f"Unknown transaction type: {type}")
    if status is not None and status not in _STATUSES:
        raise ValidationError(f"Unknown transaction status: {status}")

    conditions = []
    if user_id:
        conditions.append(Transaction.user_id == user_id)
    if type:
        conditions.append(Transaction.type == type)
    if status:
        conditions.append(Transaction.status == status)

    lower = upper = None
    if start_date is not None:
        lower = _lower_bound(start_date)
        conditions.append(Transaction.created_at >= lower)
    if end_date is not None:
        upper, exclusive = _upper_bound(end_date)
        conditions.append(
            Transaction.created_at < upper if exclusive else Transaction.created_at <= upper
        )
    if lower is not None and upper is not None and lower > upper:
        raise ValidationError("start_date must not be after end_date")

    if search:
        term = search.lower()
        conditions.append(
            or_(
                func.lower(Transaction.id).contains(term, autoescape=True),
                func.lower(Transaction.user_id).contains(term, autoescape=True),
                func.lower(Transaction.type).contains(term, autoescape=True),
                func.lower(Transaction.description).contains(term, autoescape=True),
                func.lower(Transaction.reference).contains(term, autoescape=True),
                func.lower(Transaction.bank_name).contains(term, autoescape=True),
            )
        )

    total = await db.scalar(
        select(func.count()).select_from(Transaction).where(*conditions)
    )

    result = await db.execute(
        select(Transaction)
        .where(*conditions)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    )

    return TransactionPage(
        transactions=list(result.scalars().all()),
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit),
    )
