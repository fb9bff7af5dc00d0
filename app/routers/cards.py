"""
Cards router - the caller's own cards.

Endpoints:
  GET  /cards                          - List your cards (masked)
  GET  /cards/{card_id}                - Get one card (masked)
  GET  /cards/{card_id}/transfers      - Transfer history of one of your cards
  POST /cards/{card_id}/block-requests - Ask an admin to block a card

Card numbers and CVVs are encrypted at rest and never returned; cards
are shown as "**** **** **** 1234" with an MM/YY expiration.
The transfer history and block-request routes are member-only (403 for
admins).
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_card_cipher, get_current_identity, require_member
from app.domain.authorization import Identity
from app.encryption import CardCipher
from app.schemas.block_request import BlockRequestCreate, BlockRequestResponse
from app.schemas.card import CardResponse
from app.schemas.transfer import TransferResponse
from app.services import block_request_service, card_service, transfer_service

router = APIRouter()


@router.get(
    "",
    response_model=list[CardResponse],
    summary="List your cards",
)
async def list_cards(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    cipher: CardCipher = Depends(get_card_cipher),
):
    return await card_service.list_cards(db, identity, cipher, limit=limit, offset=offset)


@router.get(
    "/{card_id}",
    response_model=CardResponse,
    summary="Get card details (masked)",
)
async def get_card(
    card_id: uuid.UUID,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    cipher: CardCipher = Depends(get_card_cipher),
):
    """Owners see their own cards; admins can see any card."""
    return await card_service.get_card(db, card_id, identity, cipher)


@router.get(
    "/{card_id}/transfers",
    response_model=list[TransferResponse],
    summary="List a card's transfers",
)
async def list_card_transfers(
    card_id: uuid.UUID,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    identity: Identity = Depends(require_member),
    db: AsyncSession = Depends(get_db),
    cipher: CardCipher = Depends(get_card_cipher),
):
    return await transfer_service.list_card_transfers(
        db, card_id, identity, cipher, limit=limit, offset=offset
    )


@router.post(
    "/{card_id}/block-requests",
    response_model=BlockRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request that a card be blocked",
)
async def create_block_request(
    card_id: uuid.UUID,
    body: BlockRequestCreate,
    identity: Identity = Depends(require_member),
    db: AsyncSession = Depends(get_db),
    cipher: CardCipher = Depends(get_card_cipher),
):
    """
    File a block request for one of your cards.

    An admin approves or rejects it. Only one pending request per card.
    """
    return await block_request_service.create_block_request(
        db, card_id, body.reason, identity, cipher
    )
