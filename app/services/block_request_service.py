"""
Block request service - users ask for a card to be blocked, admins decide.

Workflow:
  1. A user files a request for one of their own cards, with a reason.
     Only one PENDING request per card may exist at a time.
  2. An admin approves it (the card is blocked) or rejects it (the card is
     left alone). Either way the request records who processed it, when,
     and an optional comment.
  3. APPROVED and REJECTED requests are final.

New requests are logged at WARNING so they stand out to whoever watches
the logs; there is no other notification channel.
"""

import uuid
from datetime import datetime, timezone

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.authorization import Identity, owns_card
from app.encryption import CardCipher
from app.exceptions import (
    BlockRequestNotFoundError,
    InvalidBlockRequestError,
    UnauthorizedAccessError,
)
from app.masking import masked_number
from app.models.block_request import CardBlockRequest, RequestStatus
from app.schemas.block_request import BlockRequestResponse
from app.services.card_locks import CardLocks, card_locks
from app.services.card_service import get_card_by_id


def _to_response(request: CardBlockRequest, cipher: CardCipher) -> BlockRequestResponse:
    card = request.card
    admin = request.processed_by_admin
    return BlockRequestResponse(
        id=request.id,
        card_id=card.id,
        card_masked_number=masked_number(card, cipher),
        user_id=request.user_id,
        user_email=request.user.email,
        reason=request.reason,
        status=request.status,
        created_at=request.created_at,
        processed_at=request.processed_at,
        processed_by_admin_id=admin.id if admin else None,
        processed_by_admin_email=admin.email if admin else None,
        admin_comment=request.admin_comment,
        card_status=card.status,
        card_balance=card.balance,
        card_expiration_date=card.expiration_date,
    )


async def _reload(db: AsyncSession, request_id: uuid.UUID) -> CardBlockRequest:
    result = await db.execute(
        select(CardBlockRequest)
        .where(CardBlockRequest.id == request_id)
        .execution_options(populate_existing=True)
    )
    request = result.unique().scalar_one_or_none()
    if request is None:
        raise BlockRequestNotFoundError(request_id)
    return request


async def count_pending(db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count(CardBlockRequest.id))
        .where(CardBlockRequest.status == RequestStatus.PENDING)
    )
    return result.scalar_one()


async def create_block_request(
    db: AsyncSession,
    card_id: uuid.UUID,
    reason: str,
    identity: Identity,
    cipher: CardCipher,
    locks: CardLocks = card_locks,
) -> BlockRequestResponse:
    """
    File a block request for one of the caller's cards.

    The pending-request check and the insert run under the card's lock and
    are committed before it is released. Across processes the partial
    unique index on (card_id) WHERE status = 'PENDING' has the last word.

    Raises:
        CardNotFoundError: If the card doesn't exist.
        UnauthorizedAccessError: If the card belongs to someone else.
        InvalidBlockRequestError: If a PENDING request already exists.
    """
    card = await get_card_by_id(db, card_id)
    if not owns_card(identity, card):
        raise UnauthorizedAccessError("You can only request blocking of your own cards")

    async with locks.hold(card_id):
        existing = await db.execute(
            select(CardBlockRequest.id)
            .where(CardBlockRequest.card_id == card_id)
            .where(CardBlockRequest.status == RequestStatus.PENDING)
        )
        if existing.first() is not None:
            logger.warning("User {} already has a pending block request for card {}", identity.email, card_id)
            raise InvalidBlockRequestError("You already have a pending block request for this card")

        request = CardBlockRequest(
            card_id=card_id,
            user_id=identity.user_id,
            reason=reason,
            status=RequestStatus.PENDING,
        )
        db.add(request)
        try:
            await db.flush()
        except IntegrityError as exc:
            # Another process filed one first; the partial unique index caught it
            logger.warning("Concurrent block request for card {} rejected", card_id)
            raise InvalidBlockRequestError(
                "You already have a pending block request for this card"
            ) from exc
        await db.commit()

    pending = await count_pending(db)
    logger.warning(
        "NEW BLOCK REQUEST: id={}, card={}, user={}, reason={!r}. Total pending requests: {}",
        request.id, masked_number(card, cipher), identity.email, reason, pending,
    )
    return _to_response(await _reload(db, request.id), cipher)


async def list_block_requests(
    db: AsyncSession,
    cipher: CardCipher,
    status_filter: RequestStatus | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[BlockRequestResponse]:
    """[ADMIN] List block requests, newest first, optionally by status."""
    query = (
        select(CardBlockRequest)
        .order_by(CardBlockRequest.created_at.desc(), CardBlockRequest.id)
        .limit(limit)
        .offset(offset)
    )
    if status_filter is not None:
        query = query.where(CardBlockRequest.status == status_filter)
    result = await db.execute(query)
    return [_to_response(r, cipher) for r in result.unique().scalars().all()]


async def _process(
    db: AsyncSession,
    request_id: uuid.UUID,
    admin: Identity,
    decision: RequestStatus,
    admin_comment: str | None,
) -> CardBlockRequest:
    request = await _reload(db, request_id)
    if request.status != RequestStatus.PENDING:
        raise InvalidBlockRequestError(
            f"Only pending requests can be processed (request is {request.status.value})"
        )

    if decision == RequestStatus.APPROVED:
        card = request.card
        aggregate = card.to_aggregate()
        aggregate.block()
        card.apply_aggregate(aggregate)

    request.status = decision
    request.processed_at = datetime.now(timezone.utc)
    request.processed_by_admin_id = admin.user_id
    request.admin_comment = admin_comment
    await db.flush()
    return await _reload(db, request_id)


async def approve_block_request(
    db: AsyncSession,
    request_id: uuid.UUID,
    admin: Identity,
    cipher: CardCipher,
    admin_comment: str | None = None,
) -> BlockRequestResponse:
    """
    [ADMIN] Approve a pending request and block the card.

    Raises:
        BlockRequestNotFoundError: If the request doesn't exist.
        InvalidBlockRequestError: If the request was already processed.
    """
    logger.info("Admin {} approving block request {}", admin.email, request_id)
    request = await _process(db, request_id, admin, RequestStatus.APPROVED, admin_comment)
    logger.info("Block request {} approved, card {} blocked", request_id, masked_number(request.card, cipher))
    return _to_response(request, cipher)


async def reject_block_request(
    db: AsyncSession,
    request_id: uuid.UUID,
    admin: Identity,
    cipher: CardCipher,
    admin_comment: str | None = None,
) -> BlockRequestResponse:
    """[ADMIN] Reject a pending request. The card is not touched."""
    logger.info("Admin {} rejecting block request {}", admin.email, request_id)
    request = await _process(db, request_id, admin, RequestStatus.REJECTED, admin_comment)
    logger.info("Block request {} rejected", request_id)
    return _to_response(request, cipher)
