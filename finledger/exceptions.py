"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain errors without importing HTTP concepts; the
handlers registered here translate them into JSON responses with a stable
shape: {"detail": "...", "error_type": "..."}. Callers get a typed failure
they can render without inspecting stack traces.

Exception hierarchy:
    LedgerError (base)
    ├── ValidationError          — malformed or out-of-range input
    ├── NotFoundError            — referenced row missing or not visible
    ├── AuthorizationError       — caller lacks (accepted) project membership
    ├── InvariantViolation       — operation would break a ledger invariant
    ├── DuplicateEmailError      — signup with an email already registered
    └── InvalidCredentialsError  — bad email/password on login
"""

import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class LedgerError(Exception):
    """Base exception for all ledger domain errors."""

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class ValidationError(LedgerError):
    """Raised when input is structurally valid but out of the domain's range."""


class NotFoundError(LedgerError):
    """
    Raised when a referenced row does not exist or is not visible to the caller.

    Attributes:
        resource: Human-readable resource name ("Account", "Credit", ...).
        resource_id: The identifier that was looked up.
    """

    def __init__(self, resource: str, resource_id: uuid.UUID | str | None = None):
        self.resource = resource
        self.resource_id = resource_id
        if resource_id is None:
            super().__init__(f"{resource} not found")
        else:
            super().__init__(f"{resource} {resource_id} not found")


class AuthorizationError(LedgerError):
    """Raised when the caller has no accepted membership on the project."""

    def __init__(self, detail: str = "You do not have access to this project"):
        super().__init__(detail)


class InvariantViolation(LedgerError):
    """
    Raised when an operation would break a ledger invariant.

    Examples: opening a second billing cycle, transferring to the same
    account, paying an installment that is already reconciled.
    """


class DuplicateEmailError(LedgerError):
    """Raised when attempting to register with an email that's already in use."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} is already registered")


class InvalidCredentialsError(LedgerError):
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
    consistent {"detail", "error_type"} body. Called once from main.py.
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
            content={"detail": exc.detail, "error_type": "not_found"},
        )

    @app.exception_handler(AuthorizationError)
    async def authorization_error_handler(
        request: Request, exc: AuthorizationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=403,
            content={"detail": exc.detail, "error_type": "authorization_error"},
        )

    @app.exception_handler(InvariantViolation)
    async def invariant_violation_handler(
        request: Request, exc: InvariantViolation
    ) -> JSONResponse:
        return JSONResponse(
            status_code=409,  # Conflict with the current ledger state
            content={"detail": exc.detail, "error_type": "invariant_violation"},
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
