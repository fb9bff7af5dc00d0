"""
Custom exception classes and FastAPI exception handlers.

The service and domain layers raise these domain-specific errors without
importing HTTP concepts. register_exception_handlers() translates them
into JSON responses with a stable `error_type`, so clients can tell an
InsufficientFundsError from an InvalidTransferError even though both are
400s.

Exception hierarchy:
    BankAPIError (base)
    ├── CardNotFoundError          - card id does not exist (404)
    ├── InvalidTransferError       - user-correctable transfer problem (400)
    ├── InsufficientFundsError     - source balance below amount (400)
    ├── EncryptionError            - cipher environment broken (500)
    ├── UnauthorizedAccessError    - resource belongs to someone else (403)
    ├── UserNotFoundError          - user id does not exist (404)
    ├── BlockRequestNotFoundError  - block request id does not exist (404)
    └── InvalidBlockRequestError   - duplicate or already processed (409)
"""

import uuid
from decimal import Decimal

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class BankAPIError(Exception):
    """Base exception for all Bank API domain errors."""

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class CardNotFoundError(BankAPIError):
    """Raised when a requested card does not exist."""

    def __init__(self, card_id: uuid.UUID):
        self.card_id = card_id
        super().__init__(f"Card {card_id} not found")


class InvalidTransferError(BankAPIError):
    """
    Raised when a transfer violates a business rule the user can fix.

    Attributes:
        reason: Machine-readable code, one of "same_card", "not_owner",
            "source_inactive", "destination_inactive", "invalid_amount",
            "cvv_mismatch".
    """

    def __init__(self, reason: str, detail: str):
        self.reason = reason
        super().__init__(detail)


class InsufficientFundsError(BankAPIError):
    """
    Raised when the source card balance is lower than the transfer amount.

    Attributes:
        card_id: The card that lacks sufficient funds.
        requested: The amount the user tried to move.
        available: The current balance of the card.
    """

    def __init__(self, card_id: uuid.UUID, requested: Decimal, available: Decimal):
        self.card_id = card_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient funds: requested {requested}, available {available}"
        )


class EncryptionError(BankAPIError):
    """Raised when the card cipher cannot encrypt (or strictly decrypt) a value."""


class UnauthorizedAccessError(BankAPIError):
    """Raised when a user attempts to access a resource they don't own."""

    def __init__(self, detail: str = "You do not have access to this resource"):
        super().__init__(detail)


class UserNotFoundError(BankAPIError):
    """Raised when a referenced user does not exist."""

    def __init__(self, user_id: uuid.UUID):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class BlockRequestNotFoundError(BankAPIError):
    """Raised when a card block request does not exist."""

    def __init__(self, request_id: uuid.UUID):
        self.request_id = request_id
        super().__init__(f"Block request {request_id} not found")


class InvalidBlockRequestError(BankAPIError):
    """Raised for a duplicate pending request or one that was already processed."""


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Each handler maps a domain exception to an HTTP status code and a
    consistent JSON body: {"detail": "...", "error_type": "..."}.
    """

    @app.exception_handler(CardNotFoundError)
    async def card_not_found_handler(
        request: Request, exc: CardNotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"detail": exc.detail, "error_type": "card_not_found"},
        )

    @app.exception_handler(InvalidTransferError)
    async def invalid_transfer_handler(
        request: Request, exc: InvalidTransferError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={
                "detail": exc.detail,
                "error_type": "invalid_transfer",
                "reason": exc.reason,
            },
        )

    @app.exception_handler(InsufficientFundsError)
    async def insufficient_funds_handler(
        request: Request, exc: InsufficientFundsError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={
                "detail": exc.detail,
                "error_type": "insufficient_funds",
                "requested": str(exc.requested),
                "available": str(exc.available),
            },
        )

    @app.exception_handler(EncryptionError)
    async def encryption_error_handler(
        request: Request, exc: EncryptionError
    ) -> JSONResponse:
        logger.error("Card cipher failure on {} {}: {}", request.method, request.url.path, exc.detail)
        return JSONResponse(
            status_code=500,
            content={"detail": "Card data could not be processed", "error_type": "encryption_error"},
        )

    @app.exception_handler(UnauthorizedAccessError)
    async def unauthorized_access_handler(
        request: Request, exc: UnauthorizedAccessError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=403,
            content={"detail": exc.detail, "error_type": "unauthorized_access"},
        )

    @app.exception_handler(UserNotFoundError)
    async def user_not_found_handler(
        request: Request, exc: UserNotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"detail": exc.detail, "error_type": "user_not_found"},
        )

    @app.exception_handler(BlockRequestNotFoundError)
    async def block_request_not_found_handler(
        request: Request, exc: BlockRequestNotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"detail": exc.detail, "error_type": "block_request_not_found"},
        )

    @app.exception_handler(InvalidBlockRequestError)
    async def invalid_block_request_handler(
        request: Request, exc: InvalidBlockRequestError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=409,  # Conflict: the request state doesn't allow this
            content={"detail": exc.detail, "error_type": "invalid_block_request"},
        )
