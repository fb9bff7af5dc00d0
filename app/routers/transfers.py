"""
Transfers router - atomic money transfers between the caller's own cards.

Endpoints:
  POST /transfers - Move money from one of your cards to another
  GET  /transfers - Your transfer history (newest first)

Both cards must belong to the caller; there is no person-to-person
transfer. Card numbers in responses are always masked.
Admins get 403 here; they manage cards through /admin.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_card_cipher, require_member
from app.domain.authorization import Identity
from app.encryption import CardCipher
from app.schemas.transfer import TransferRequest, TransferResponse
from app.services import transfer_service

router = APIRouter()


@router.post(
    "",
    response_model=TransferResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Transfer money between your cards",
)
async def create_transfer(
    request: TransferRequest,
    identity: Identity = Depends(require_member),
    db: AsyncSession = Depends(get_db),
    cipher: CardCipher = Depends(get_card_cipher),
):
    """
    Transfer money from one of your cards to another.

    Atomic: either both balances change and the transfer is recorded, or
    nothing changes.

    - **from_card_id** / **to_card_id**: Both must be yours and different
    - **amount**: Positive, at most two decimal places
    - **cvv**: Optional; when given it must match the source card
    """
    return await transfer_service.execute_transfer(
        db=db,
        request=request,
        identity=identity,
        cipher=cipher,
    )


@router.get(
    "",
    response_model=list[TransferResponse],
    summary="List your transfers",
)
async def list_transfers(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    identity: Identity = Depends(require_member),
    db: AsyncSession = Depends(get_db),
    cipher: CardCipher = Depends(get_card_cipher),
):
    """Transfers where either side is one of your cards, newest first."""
    return await transfer_service.list_user_transfers(
        db, identity, cipher, limit=limit, offset=offset
    )
