"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors (like InsufficientBalanceError)
without importing HTTP concepts. The handlers registered here translate them
into HTTP responses with one consistent body shape:

    {"detail": "<message>", "error_type": "<snake_case_name>", ...}

Exception hierarchy:
    BackofficeError (base)
    ├── ValidationError           — malformed or missing input
    ├── NotFoundError             — transaction, user, or order missing
    ├── InvalidStateError         — transition from a non-pending state
    ├── InsufficientBalanceError  — debit would drive a balance negative
    ├── AlreadyPaidError          — order already has a completed payment
    ├── StorageError              — underlying datastore / file store failure
    ├── UnauthorizedAccessError   — user touching another user's resource
    ├── DuplicateEmailError       — signup with a registered email
    └── InvalidCredentialsError   — bad login
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class BackofficeError(Exception):
    """Base exception for all back-office domain errors."""

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Ledger exceptions
# ---------------------------------------------------------------------------

class ValidationError(BackofficeError):
    """Raised when caller input is malformed (zero amount, empty reason, bad page)."""


class NotFoundError(BackofficeError):
    """
    Raised when a referenced record does not exist.

    Attributes:
        resource: "transaction", "user", or "order".
        resource_id: The id that was looked up.
    """

    def __init__(self, resource: str, resource_id: str):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource.capitalize()} {resource_id} not found")


class InvalidStateError(BackofficeError):
    """Raised when a transaction is not in the state an operation requires."""

    def __init__(self, transaction_id: str, current_status: str, detail: str | None = None):
        self.transaction_id = transaction_id
        self.current_status = current_status
        super().__init__(
            detail
            or f"Transaction {transaction_id} is {current_status}; only pending transactions can change"
        )


class InsufficientBalanceError(BackofficeError):
    """
    Raised when a debit would cause a negative balance.

    Attributes:
        user_id: The user whose balance is too low.
        requested_cents: The amount the debit needed.
        available_cents: The balance at the time of the attempt.
    """

    def __init__(self, user_id: str, requested_cents: int, available_cents: int):
        self.user_id = user_id
        self.requested_cents = requested_cents
        self.available_cents = available_cents
        super().__init__(
            f"Insufficient balance: requested {requested_cents} cents, "
            f"available {available_cents} cents"
        )


class AlreadyPaidError(BackofficeError):
    """Raised when paying an order that already has a completed payment."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order {order_id} is already paid")


class StorageError(BackofficeError):
    """Raised when the datastore or receipt store fails. No partial write remains."""

    def __init__(self, detail: str = "Storage backend failure"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Access / identity exceptions
# ---------------------------------------------------------------------------

class UnauthorizedAccessError(BackofficeError):
    """Raised when a user attempts to access a resource they don't own."""

    def __init__(self, detail: str = "You do not have access to this resource"):
        super().__init__(detail)


class DuplicateEmailError(BackofficeError):
    """Raised when attempting to register with an email that's already in use."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} is already registered")


class InvalidCredentialsError(BackofficeError):
    """Raised when login credentials are incorrect."""

    def __init__(self):
        super().__init__("Invalid email or password")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Each handler maps a domain exception to an HTTP status code and the
    {"detail", "error_type"} body. Called once from create_app().
    """

    @app.exception_handler(ValidationError)
    async def validation_error_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": exc.detail, "error_type": "validation_error"},
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(
        request: Request, exc: NotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={
                "detail": exc.detail,
                "error_type": "not_found",
                "resource": exc.resource,
            },
        )

    @app.exception_handler(InvalidStateError)
    async def invalid_state_handler(
        request: Request, exc: InvalidStateError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=409,  # Conflict: the record is not in the required state
            content={
                "detail": exc.detail,
                "error_type": "invalid_state",
                "current_status": exc.current_status,
            },
        )

    @app.exception_handler(InsufficientBalanceError)
    async def insufficient_balance_handler(
        request: Request, exc: InsufficientBalanceError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,  # valid request, refused by business rules
            content={
                "detail": exc.detail,
                "error_type": "insufficient_balance",
                "requested_cents": exc.requested_cents,
                "available_cents": exc.available_cents,
            },
        )

    @app.exception_handler(AlreadyPaidError)
    async def already_paid_handler(
        request: Request, exc: AlreadyPaidError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content={"detail": exc.detail, "error_type": "already_paid"},
        )

    @app.exception_handler(StorageError)
    async def storage_error_handler(
        request: Request, exc: StorageError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=503,
            content={"detail": exc.detail, "error_type": "storage_error"},
        )

    @app.exception_handler(UnauthorizedAccessError)
    async def unauthorized_access_handler(
        request: Request, exc: UnauthorizedAccessError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=403,
            content={"detail": exc.detail, "error_type": "unauthorized_access"},
        )

    @app.exception_handler(DuplicateEmailError)
    async def duplicate_email_handler(
        request: Request, exc: DuplicateEmailError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content={"detail": exc.detail, "error_type": "duplicate_email"},
        )

    @app.exception_handler(InvalidCredentialsError)
    async def invalid_credentials_handler(
        request: Request, exc: InvalidCredentialsError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content={"detail": exc.detail, "error_type": "invalid_credentials"},
        )
