"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors (like PresetNotFoundError)
without importing HTTP concepts. The handlers registered here translate them
into the API's response envelope:

    {"ok": false, "error": "<code>", ...optional detail fields}

Exception hierarchy:
    CardSetsError (base)
    ├── ValidationError          - malformed or missing input (400)
    ├── UnauthorizedError        - no authenticated session (401)
    ├── InvalidCredentialsError  - login rejected (401)
    ├── CardNotFoundError        - card id does not exist (404)
    ├── PresetNotFoundError      - preset missing or owned by someone else (404)
    ├── MissingCardsError        - bulk association references unknown cards (404)
    ├── AssociationNotFoundError - preset/card pair not linked (404)
    ├── DuplicateEmailError      - email already registered (409)
    └── StorageUnavailableError  - no image storage backend configured (500)

Anything else that escapes a handler is logged with its traceback and reported
as {"ok": false, "error": "internal"}: SQL text, file paths and other internals
never reach the client.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class CardSetsError(Exception):
    """Base exception for all Card Sets API domain errors."""

    status_code = 500
    error = "internal"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)

    def payload(self) -> dict:
        """Extra response fields beyond ``ok`` and ``error``."""
        return {}


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class ValidationError(CardSetsError):
    """Raised when request input fails validation that schemas can't express."""

    status_code = 400
    error = "validation"

    def __init__(self, details: dict[str, str]):
        self.details = details
        super().__init__(f"Validation failed: {', '.join(details)}")

    def payload(self) -> dict:
        return {"details": self.details}


class UnauthorizedError(CardSetsError):
    """Raised by the authentication gate when the session carries no user."""

    status_code = 401
    error = "unauthorized"

    def __init__(self):
        super().__init__("Authentication required")


class InvalidCredentialsError(CardSetsError):
    """
    Raised when login credentials are incorrect.

    Used for both "unknown email" and "wrong password" so the two cases
    produce identical responses.
    """

    status_code = 401
    error = "invalid_credentials"

    def __init__(self):
        super().__init__("Invalid email or password")


class CardNotFoundError(CardSetsError):
    status_code = 404
    error = "not_found"

    def __init__(self, card_id: int):
        self.card_id = card_id
        super().__init__(f"Card {card_id} not found")


class PresetNotFoundError(CardSetsError):
    """Raised when a preset doesn't exist or belongs to another user."""

    status_code = 404
    error = "preset_not_found"

    def __init__(self, preset_id: int):
        self.preset_id = preset_id
        super().__init__(f"Preset {preset_id} not found")


class MissingCardsError(CardSetsError):
    """Raised when a bulk association references card ids that don't exist."""

    status_code = 404
    error = "card_not_found"

    def __init__(self, missing: list[int]):
        self.missing = missing
        super().__init__(f"Cards not found: {missing}")

    def payload(self) -> dict:
        return {"missing": self.missing}


class AssociationNotFoundError(CardSetsError):
    status_code = 404
    error = "association_not_found"

    def __init__(self, preset_id: int, card_id: int):
        self.preset_id = preset_id
        self.card_id = card_id
        super().__init__(f"Card {card_id} is not in preset {preset_id}")


class DuplicateEmailError(CardSetsError):
    """Raised when attempting to register with an email that's already in use."""

    status_code = 409
    error = "duplicate"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} is already registered")

    def payload(self) -> dict:
        return {"field": "email"}


class StorageUnavailableError(CardSetsError):
    """Raised when an upload arrives but no storage backend could be configured."""

    def __init__(self):
        super().__init__("No image storage backend is configured")


# ---------------------------------------------------------------------------
# Validation error formatting
# ---------------------------------------------------------------------------

def _field_key(error: dict) -> str:
    """
    Turn a pydantic error location into a flat field key.

    ("body", "email")     -> "email"
    ("path", "card_id")   -> "card_id"
    ("body", 2, "id")     -> "items.2.id"
    ("body",)             -> "body"
    """
    if error.get("type") == "json_invalid":
        return "body"
    loc = list(error.get("loc", ()))
    if loc and loc[0] in ("body", "path", "query", "header", "cookie"):
        loc = loc[1:]
    if not loc:
        return "body"
    if isinstance(loc[0], int):
        loc.insert(0, "items")
    return ".".join(str(part) for part in loc)


def format_validation_errors(errors) -> dict[str, str]:
    """Collapse pydantic errors into one message per field (first one wins)."""
    details: dict[str, str] = {}
    for error in errors:
        details.setdefault(_field_key(error), error.get("msg", "Invalid value"))
    return details


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    This is called once during app startup in main.py.
    """

    @app.exception_handler(CardSetsError)
    async def card_sets_error_handler(
        request: Request, exc: CardSetsError
    ) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
            return JSONResponse(
                status_code=exc.status_code,
                content={"ok": False, "error": "internal"},
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"ok": False, "error": exc.error, **exc.payload()},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={
                "ok": False,
                "error": "validation",
                "details": format_validation_errors(exc.errors()),
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"ok": False, "error": "internal"},
        )
