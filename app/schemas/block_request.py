"""
Pydantic schemas for card block requests.

The response carries enough card context (masked number, status, balance,
expiration) for an admin to decide without opening the card.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from app.domain.card import CardStatus
from app.models.block_request import RequestStatus


class BlockRequestCreate(BaseModel):
    """Request body for POST /cards/{card_id}/block-requests."""
    reason: str = Field(min_length=1, max_length=500)


class BlockRequestDecision(BaseModel):
    """Request body for approving or rejecting a block request."""
    admin_comment: str | None = Field(None, max_length=500)


class BlockRequestResponse(BaseModel):
    id: uuid.UUID
    card_id: uuid.UUID
    card_masked_number: str
    user_id: uuid.UUID
    user_email: str
    reason: str
    status: RequestStatus
    created_at: datetime
    processed_at: datetime | None
    processed_by_admin_id: uuid.UUID | None
    processed_by_admin_email: str | None
    admin_comment: str | None
    card_status: CardStatus
    card_balance: Decimal
    card_expiration_date: date


class PendingCountResponse(BaseModel):
    pending: int
