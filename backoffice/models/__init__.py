"""
SQLAlchemy ORM models package.

All models are imported here so that Base.metadata knows every table
before create_all() runs, and other modules can import from
backoffice.models directly.
"""

from backoffice.models.user import User, UserType  # noqa: F401
from backoffice.models.order import Order  # noqa: F401
from backoffice.models.transaction import (  # noqa: F401
    Transaction,
    TransactionStatus,
    TransactionType,
)
from backoffice.models.transaction_note import TransactionNote  # noqa: F401
