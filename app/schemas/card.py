"""
Pydantic schemas for Card endpoints.

Card numbers and CVVs are NEVER returned in API responses. Cards are
shown as "**** **** **** 1234" with an MM/YY expiration.

Amounts are decimals with two fraction digits and serialize as strings
("1000.00") so no precision is lost in JSON.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from app.domain.card import CardStatus


class CardCreateRequest(BaseModel):
    """Request body for POST /admin/cards."""
    user_id: uuid.UUID
    holder: str | None = Field(
        None, max_length=255, description="Defaults to the owner's full name"
    )
    initial_balance: Decimal = Field(
        Decimal("0.00"), ge=0, max_digits=15, decimal_places=2
    )


class CardResponse(BaseModel):
    """Public representation of a card (masked: no full number or CVV)."""
    id: uuid.UUID
    user_id: uuid.UUID
    masked_number: str
    holder: str
    masked_expiration: str
    expiration_date: date
    balance: Decimal
    status: CardStatus
    created_at: datetime
