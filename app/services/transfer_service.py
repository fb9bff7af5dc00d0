"""
Transfer service - moving money between a user's own cards.

THIS IS THE MOST CRITICAL FILE IN THE PROJECT. It handles:
  - Executing atomic transfers between two cards
  - Transfer history (per user, per card)
  - Per-card and per-user transfer statistics for admins

Atomicity:
  The debit, the credit and the Transfer row are written in ONE database
  transaction, committed by execute_transfer() itself while the card locks
  are still held. Any failure before the commit propagates, and the
  session is rolled back (get_db, or the caller's own session handling),
  so no partial transfer is ever observable.

  Every validation rule runs BEFORE anything is mutated, so a rejected
  transfer leaves both cards exactly as they were.

Concurrency:
  The read of the source balance and the debit must not interleave with
  another transfer on the same card. execute_transfer() holds the
  per-card asyncio locks (app.services.card_locks) from before the cards
  are read until after the commit, and reads both rows with
  SELECT ... FOR UPDATE in sorted-id order. populate_existing makes sure
  a session that already saw the card re-reads the committed balance.

  Both lock layers use the same sorted-id order, so transfers A->B and
  B->A running at the same time cannot deadlock.

SQLite note:
  with_for_update() is a no-op on SQLite; the in-process locks are what
  serialize transfers there.
"""

import uuid
from decimal import Decimal

from loguru import logger
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.authorization import Identity, owns_card
from app.domain.card import to_money
from app.domain.transfer_rules import validate_transfer
from app.encryption import CardCipher
from app.exceptions import (
    CardNotFoundError,
    InsufficientFundsError,
    UnauthorizedAccessError,
    UserNotFoundError,
)
from app.masking import masked_number
from app.models.card import Card
from app.models.transfer import Transfer, TransferStatus
from app.models.user import User
from app.schemas.transfer import (
    CardTransferStatsResponse,
    TransferRequest,
    TransferResponse,
    UserTransferStatsResponse,
)
from app.services.card_locks import CardLocks, card_locks
from app.services.card_service import get_card_by_id


def _to_response(
    transfer: Transfer,
    cipher: CardCipher,
    cards: dict[uuid.UUID, Card],
) -> TransferResponse:
    return TransferResponse(
        id=transfer.id,
        from_card_id=transfer.from_card_id,
        from_card_masked_number=masked_number(cards.get(transfer.from_card_id), cipher),
        to_card_id=transfer.to_card_id,
        to_card_masked_number=masked_number(cards.get(transfer.to_card_id), cipher),
        amount=transfer.amount,
        description=transfer.description,
        transfer_date=transfer.transfer_date,
        status=transfer.status,
    )


async def _load_for_update(db: AsyncSession, card_ids: list[uuid.UUID]) -> dict[uuid.UUID, Card]:
    """Row-lock the given cards one by one in sorted id order."""
    cards: dict[uuid.UUID, Card] = {}
    for card_id in sorted(set(card_ids)):
        result = await db.execute(
            select(Card)
            .where(Card.id == card_id)
            .with_for_update()  # No-op on SQLite, locks row on PostgreSQL
            .execution_options(populate_existing=True)
        )
        card = result.scalar_one_or_none()
        if card is None:
            raise CardNotFoundError(card_id)
        cards[card_id] = card
    return cards


async def execute_transfer(
    db: AsyncSession,
    request: TransferRequest,
    identity: Identity,
    cipher: CardCipher,
    locks: CardLocks = card_locks,
) -> TransferResponse:
    """
    Move `request.amount` from one of the caller's cards to another.

    Steps:
      1. Lock both cards (in-process + row locks, sorted by id) and load them
      2. Validate every rule (app.domain.transfer_rules)
      3. Debit source, credit destination through the card aggregates
      4. Insert a COMPLETED Transfer row and commit
      5. Return the transfer with masked card numbers

    Args:
        db: Database session. Committed on success.
        request: Validated transfer request.
        identity: The authenticated caller.
        cipher: Card cipher, used for the CVV check and masking.
        locks: Per-card lock registry (the process-wide one by default).

    Returns:
        TransferResponse with masked card numbers (never raw numbers or CVVs).

    Raises:
        CardNotFoundError: If either card doesn't exist.
        InvalidTransferError: Same card, not owner, inactive card, bad
            amount or CVV mismatch.
        InsufficientFundsError: Source balance below the amount.
    """
    amount = to_money(request.amount)
    logger.info(
        "Processing transfer request from user {}: {} -> {}, amount {}",
        identity.email, request.from_card_id, request.to_card_id, amount,
    )

    async with locks.hold(request.from_card_id, request.to_card_id):
        cards = await _load_for_update(db, [request.from_card_id, request.to_card_id])
        source_row = cards[request.from_card_id]
        destination_row = cards[request.to_card_id]

        source = source_row.to_aggregate()
        destination = destination_row.to_aggregate()

        source_cvv = cipher.decrypt(source.cvv) if request.cvv else None
        validate_transfer(
            source,
            destination,
            amount,
            identity,
            confirmation_code=request.cvv,
            source_cvv=source_cvv,
        )

        # validate_transfer already checked everything debit() checks
        if not source.debit(amount):
            raise InsufficientFundsError(
                card_id=source.id, requested=amount, available=source.balance
            )
        destination.credit(amount)

        source_row.apply_aggregate(source)
        destination_row.apply_aggregate(destination)

        transfer = Transfer(
            from_card_id=source.id,
            to_card_id=destination.id,
            amount=amount,
            description=request.description,
            status=TransferStatus.COMPLETED,
        )
        db.add(transfer)
        await db.flush()
        await db.commit()

    response = _to_response(transfer, cipher, cards)
    logger.info(
        "Transfer completed successfully: {} -> {}, amount: {}",
        response.from_card_masked_number, response.to_card_masked_number, amount,
    )
    return response


async def _cards_for(db: AsyncSession, transfers: list[Transfer]) -> dict[uuid.UUID, Card]:
    card_ids = {t.from_card_id for t in transfers} | {t.to_card_id for t in transfers}
    if not card_ids:
        return {}
    result = await db.execute(select(Card).where(Card.id.in_(card_ids)))
    return {card.id: card for card in result.scalars().all()}


async def _transfers_page(
    db: AsyncSession,
    condition,
    cipher: CardCipher,
    limit: int,
    offset: int,
) -> list[TransferResponse]:
    result = await db.execute(
        select(Transfer)
        .where(condition)
        .order_by(Transfer.transfer_date.desc(), Transfer.id)
        .limit(limit)
        .offset(offset)
    )
    transfers = list(result.scalars().all())
    cards = await _cards_for(db, transfers)
    return [_to_response(t, cipher, cards) for t in transfers]


async def list_user_transfers(
    db: AsyncSession,
    identity: Identity,
    cipher: CardCipher,
    limit: int = 50,
    offset: int = 0,
) -> list[TransferResponse]:
    """List transfers touching any of the caller's cards, newest first."""
    own_cards = select(Card.id).where(Card.user_id == identity.user_id)
    condition = or_(
        Transfer.from_card_id.in_(own_cards),
        Transfer.to_card_id.in_(own_cards),
    )
    return await _transfers_page(db, condition, cipher, limit, offset)


async def list_card_transfers(
    db: AsyncSession,
    card_id: uuid.UUID,
    identity: Identity,
    cipher: CardCipher,
    limit: int = 50,
    offset: int = 0,
) -> list[TransferResponse]:
    """
    List transfers for one of the caller's cards, newest first.

    Raises:
        CardNotFoundError: If the card doesn't exist.
        UnauthorizedAccessError: If the card belongs to someone else.
    """
    card = await get_card_by_id(db, card_id)
    if not owns_card(identity, card):
        raise UnauthorizedAccessError("No access to transfer history of this card")
    condition = or_(Transfer.from_card_id == card_id, Transfer.to_card_id == card_id)
    return await _transfers_page(db, condition, cipher, limit, offset)


# ---------------------------------------------------------------------------
# Admin read-only functions
# ---------------------------------------------------------------------------

async def admin_list_card_transfers(
    db: AsyncSession,
    card_id: uuid.UUID,
    cipher: CardCipher,
    limit: int = 50,
    offset: int = 0,
) -> list[TransferResponse]:
    """[ADMIN] List any card's transfers without an ownership check."""
    await get_card_by_id(db, card_id)
    condition = or_(Transfer.from_card_id == card_id, Transfer.to_card_id == card_id)
    return await _transfers_page(db, condition, cipher, limit, offset)


async def _card_stats(
    db: AsyncSession,
    card: Card,
    cipher: CardCipher,
) -> CardTransferStatsResponse:
    async def _totals(column) -> tuple[Decimal, int]:
        result = await db.execute(
            select(func.coalesce(func.sum(Transfer.amount), 0), func.count(Transfer.id))
            .where(column == card.id)
            .where(Transfer.status == TransferStatus.COMPLETED)
        )
        total, count = result.one()
        return to_money(Decimal(str(total))), count

    total_income, income_count = await _totals(Transfer.to_card_id)
    total_expense, expense_count = await _totals(Transfer.from_card_id)

    return CardTransferStatsResponse(
        card_id=card.id,
        card_masked_number=masked_number(card, cipher),
        total_income=total_income,
        total_expense=total_expense,
        balance=card.balance,
        income_transfers_count=income_count,
        expense_transfers_count=expense_count,
    )


async def card_transfer_stats(
    db: AsyncSession,
    card_id: uuid.UUID,
    cipher: CardCipher,
) -> CardTransferStatsResponse:
    """[ADMIN] Income/expense totals and counts for one card."""
    card = await get_card_by_id(db, card_id)
    return await _card_stats(db, card, cipher)


async def user_transfer_stats(
    db: AsyncSession,
    user_id: uuid.UUID,
    cipher: CardCipher,
) -> UserTransferStatsResponse:
    """
    [ADMIN] Transfer totals across every card a user holds.

    Transfers between two of the user's own cards count once as income
    (on the destination) and once as expense (on the source), matching the
    per-card figures that are returned alongside.

    Raises:
        UserNotFoundError: If the user doesn't exist.
    """
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFoundError(user_id)

    cards = (
        await db.execute(
            select(Card).where(Card.user_id == user_id).order_by(Card.created_at, Card.id)
        )
    ).scalars().all()
    card_stats = [await _card_stats(db, card, cipher) for card in cards]

    return UserTransferStatsResponse(
        user_id=user.id,
        user_email=user.email,
        user_full_name=user.full_name,
        total_income=to_money(sum((s.total_income for s in card_stats), Decimal("0"))),
        total_expense=to_money(sum((s.total_expense for s in card_stats), Decimal("0"))),
        total_balance=to_money(sum((s.balance for s in card_stats), Decimal("0"))),
        card_stats=card_stats,
    )
