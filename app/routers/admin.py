"""
Admin router - card administration and block-request processing.

All endpoints require the ADMIN role. Admins cannot move money.

Endpoints:
  POST /admin/cards                                 - Issue a card for a user
  GET  /admin/cards                                 - List all cards (optionally by user)
  POST /admin/cards/expire                          - Run the card expiry sweep
  POST /admin/cards/{card_id}/block                 - Block a card
  POST /admin/cards/{card_id}/activate              - Activate a card
  GET  /admin/cards/{card_id}/transfers             - Any card's transfers
  GET  /admin/cards/{card_id}/stats                 - Transfer totals for a card
  GET  /admin/users/{user_id}/stats                 - Transfer totals across a user's cards
  GET  /admin/block-requests                        - List block requests
  GET  /admin/block-requests/pending-count          - Number of pending requests
  POST /admin/block-requests/{request_id}/approve   - Approve (blocks the card)
  POST /admin/block-requests/{request_id}/reject    - Reject

All admin routes live in one router so fixed paths (/cards/expire,
/block-requests/pending-count) are registered before parameterized ones.
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_card_cipher, require_admin
from app.domain.authorization import Identity
from app.encryption import CardCipher
from app.models.block_request import RequestStatus
from app.schemas.block_request import (
    BlockRequestDecision,
    BlockRequestResponse,
    PendingCountResponse,
)
from app.schemas.card import CardCreateRequest, CardResponse
from app.schemas.transfer import (
    CardTransferStatsResponse,
    TransferResponse,
    UserTransferStatsResponse,
)
from app.services import block_request_service, card_service, transfer_service

router = APIRouter()


# ---------------------------------------------------------------------------
# Card admin endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/cards",
    response_model=CardResponse,
    status_code=status.HTTP_201_CREATED,
    summary="[Admin] Issue a card",
)
async def admin_issue_card(
    body: CardCreateRequest,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cipher: CardCipher = Depends(get_card_cipher),
):
    """
    Issue a new card for a user.

    - Number and CVV are generated and encrypted at rest
    - Only the masked number is returned
    - Expiration is set CARD_VALIDITY_YEARS from today
    """
    return await card_service.issue_card(db, body, cipher)


@router.get(
    "/cards",
    response_model=list[CardResponse],
    summary="[Admin] List all cards",
)
async def admin_list_cards(
    user_id: uuid.UUID | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cipher: CardCipher = Depends(get_card_cipher),
):
    return await card_service.admin_list_cards(
        db, cipher, user_id=user_id, limit=limit, offset=offset
    )


@router.post(
    "/cards/expire",
    summary="[Admin] Mark overdue cards as EXPIRED",
)
async def admin_expire_cards(
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    updated = await card_service.expire_overdue_cards(db)
    return {"updated": updated}


@router.post(
    "/cards/{card_id}/block",
    response_model=CardResponse,
    summary="[Admin] Block a card",
)
async def admin_block_card(
    card_id: uuid.UUID,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cipher: CardCipher = Depends(get_card_cipher),
):
    return await card_service.block_card(db, card_id, cipher)


@router.post(
    "/cards/{card_id}/activate",
    response_model=CardResponse,
    summary="[Admin] Activate a card",
)
async def admin_activate_card(
    card_id: uuid.UUID,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cipher: CardCipher = Depends(get_card_cipher),
):
    return await card_service.activate_card(db, card_id, cipher)


@router.get(
    "/cards/{card_id}/transfers",
    response_model=list[TransferResponse],
    summary="[Admin] List any card's transfers",
)
async def admin_card_transfers(
    card_id: uuid.UUID,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cipher: CardCipher = Depends(get_card_cipher),
):
    return await transfer_service.admin_list_card_transfers(
        db, card_id, cipher, limit=limit, offset=offset
    )


@router.get(
    "/cards/{card_id}/stats",
    response_model=CardTransferStatsResponse,
    summary="[Admin] Transfer statistics for a card",
)
async def admin_card_stats(
    card_id: uuid.UUID,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cipher: CardCipher = Depends(get_card_cipher),
):
    return await transfer_service.card_transfer_stats(db, card_id, cipher)


@router.get(
    "/users/{user_id}/stats",
    response_model=UserTransferStatsResponse,
    summary="[Admin] Transfer statistics across a user's cards",
)
async def admin_user_stats(
    user_id: uuid.UUID,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cipher: CardCipher = Depends(get_card_cipher),
):
    return await transfer_service.user_transfer_stats(db, user_id, cipher)


# ---------------------------------------------------------------------------
# Block request admin endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/block-requests",
    response_model=list[BlockRequestResponse],
    summary="[Admin] List block requests",
)
async def admin_list_block_requests(
    status_filter: RequestStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cipher: CardCipher = Depends(get_card_cipher),
):
    return await block_request_service.list_block_requests(
        db, cipher, status_filter=status_filter, limit=limit, offset=offset
    )


@router.get(
    "/block-requests/pending-count",
    response_model=PendingCountResponse,
    summary="[Admin] Count pending block requests",
)
async def admin_pending_count(
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return PendingCountResponse(pending=await block_request_service.count_pending(db))


@router.post(
    "/block-requests/{request_id}/approve",
    response_model=BlockRequestResponse,
    summary="[Admin] Approve a block request",
)
async def admin_approve_block_request(
    request_id: uuid.UUID,
    body: BlockRequestDecision | None = None,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cipher: CardCipher = Depends(get_card_cipher),
):
    """Approve a pending request. The card is blocked in the same transaction."""
    return await block_request_service.approve_block_request(
        db, request_id, admin, cipher,
        admin_comment=body.admin_comment if body else None,
    )


@router.post(
    "/block-requests/{request_id}/reject",
    response_model=BlockRequestResponse,
    summary="[Admin] Reject a block request",
)
async def admin_reject_block_request(
    request_id: uuid.UUID,
    body: BlockRequestDecision | None = None,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cipher: CardCipher = Depends(get_card_cipher),
):
    return await block_request_service.reject_block_request(
        db, request_id, admin, cipher,
        admin_comment=body.admin_comment if body else None,
    )
