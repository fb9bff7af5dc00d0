"""
Pydantic schemas for Transfer endpoints.

Amounts are decimals with two fraction digits. Responses identify cards by
id and masked number only; the optional CVV in a request is never echoed.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from app.models.transfer import TransferStatus


class TransferRequest(BaseModel):
    """Request body for POST /transfers."""
    from_card_id: uuid.UUID
    to_card_id: uuid.UUID
    amount: Decimal = Field(
        gt=0, max_digits=15, decimal_places=2, description="Amount to move (must be positive)"
    )
    description: str | None = Field(None, max_length=255)
    cvv: str | None = Field(
        None,
        pattern=r"^\d{3,4}$",
        description="Optional source card CVV for extra confirmation",
    )


class TransferResponse(BaseModel):
    """A completed transfer, with masked card numbers."""
    id: uuid.UUID
    from_card_id: uuid.UUID
    from_card_masked_number: str
    to_card_id: uuid.UUID
    to_card_masked_number: str
    amount: Decimal
    description: str | None
    transfer_date: datetime
    status: TransferStatus


class CardTransferStatsResponse(BaseModel):
    """Aggregated transfer figures for one card (admin)."""
    card_id: uuid.UUID
    card_masked_number: str
    total_income: Decimal
    total_expense: Decimal
    balance: Decimal
    income_transfers_count: int
    expense_transfers_count: int


class UserTransferStatsResponse(BaseModel):
    """Transfer figures across all of a user's cards (admin)."""
    user_id: uuid.UUID
    user_email: str
    user_full_name: str
    total_income: Decimal
    total_expense: Decimal
    total_balance: Decimal
    card_stats: list[CardTransferStatsResponse]
