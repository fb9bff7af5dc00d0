"""
Card service - issuance, retrieval and status changes, with encryption at rest.

When a card is issued:
  1. A 16-digit card number starting with "4000" is randomly generated
  2. A 3-digit CVV is randomly generated
  3. Expiration is set CARD_VALIDITY_YEARS from today
  4. Number and CVV are encrypted before the row is written
  5. The response carries only the masked number

Access rules:
  - Owners can read their own cards; admins can read every card
  - Only admins issue, block or activate cards (enforced by the router)

Status changes go through the CardAggregate so the rules live in one place.

expire_overdue_cards() is the sweep that turns cards past their expiration
date into stored EXPIRED status. Activity checks never depend on it: an
overdue ACTIVE card is already inactive by date.
"""

import secrets
import uuid
from datetime import date

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.domain.authorization import Identity, can_view_card
from app.domain.card import CardStatus, to_money
from app.encryption import CardCipher
from app.exceptions import CardNotFoundError, UnauthorizedAccessError, UserNotFoundError
from app.masking import masked_expiration, masked_number, masked_number_from_plain
from app.models.card import Card
from app.models.user import User
from app.schemas.card import CardCreateRequest, CardResponse


def _generate_card_number() -> str:
    """Generate a random 16-digit card number with the "4000" issuer prefix."""
    return "4000" + "".join(secrets.choice("0123456789") for _ in range(12))


def _generate_cvv() -> str:
    """Generate a random 3-digit CVV."""
    return f"{secrets.randbelow(1000):03d}"


def _expiration_from(today: date, years: int) -> date:
    try:
        return today.replace(year=today.year + years)
    except ValueError:
        # Feb 29 -> Feb 28
        return today.replace(year=today.year + years, day=28)


def to_card_response(card: Card, cipher: CardCipher) -> CardResponse:
    """Build the masked API representation of a card."""
    return CardResponse(
        id=card.id,
        user_id=card.user_id,
        masked_number=masked_number(card, cipher),
        holder=card.holder,
        masked_expiration=masked_expiration(card),
        expiration_date=card.expiration_date,
        balance=card.balance,
        status=card.status,
        created_at=card.created_at,
    )


async def get_card_by_id(db: AsyncSession, card_id: uuid.UUID) -> Card:
    """
    Load a card without any access check.

    Raises:
        CardNotFoundError: If the card doesn't exist.
    """
    result = await db.execute(select(Card).where(Card.id == card_id))
    card = result.scalar_one_or_none()
    if card is None:
        raise CardNotFoundError(card_id)
    return card


async def issue_card(
    db: AsyncSession,
    request: CardCreateRequest,
    cipher: CardCipher,
) -> CardResponse:
    """
    [ADMIN] Issue a new card for a user.

    Raises:
        UserNotFoundError: If the target user doesn't exist.
        EncryptionError: If the card data cannot be encrypted.
    """
    result = await db.execute(select(User).where(User.id == request.user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFoundError(request.user_id)

    card_number = _generate_card_number()
    cvv = _generate_cvv()

    card = Card(
        user_id=user.id,
        number=cipher.encrypt(card_number),
        cvv=cipher.encrypt(cvv),
        holder=request.holder or user.full_name,
        expiration_date=_expiration_from(date.today(), settings.CARD_VALIDITY_YEARS),
        balance=to_money(request.initial_balance),
        status=CardStatus.ACTIVE,
    )
    db.add(card)
    await db.flush()

    masked = masked_number_from_plain(card_number)
    logger.info("Issued card {} for user {}", masked, user.id)

    response = to_card_response(card, cipher)
    return response.model_copy(update={"masked_number": masked})


async def get_card(
    db: AsyncSession,
    card_id: uuid.UUID,
    identity: Identity,
    cipher: CardCipher,
) -> CardResponse:
    """
    Get one card (masked).

    Raises:
        CardNotFoundError: If the card doesn't exist.
        UnauthorizedAccessError: If the caller is neither owner nor admin.
    """
    card = await get_card_by_id(db, card_id)
    if not can_view_card(identity, card):
        raise UnauthorizedAccessError("You do not have access to this card")
    return to_card_response(card, cipher)


async def list_cards(
    db: AsyncSession,
    identity: Identity,
    cipher: CardCipher,
    limit: int = 50,
    offset: int = 0,
) -> list[CardResponse]:
    """List the caller's own cards, oldest first."""
    result = await db.execute(
        select(Card)
        .where(Card.user_id == identity.user_id)
        .order_by(Card.created_at, Card.id)
        .limit(limit)
        .offset(offset)
    )
    return [to_card_response(card, cipher) for card in result.scalars().all()]


async def admin_list_cards(
    db: AsyncSession,
    cipher: CardCipher,
    user_id: uuid.UUID | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[CardResponse]:
    """[ADMIN] List all cards, optionally for one user."""
    query = select(Card).order_by(Card.created_at, Card.id).limit(limit).offset(offset)
    if user_id is not None:
        query = query.where(Card.user_id == user_id)
    result = await db.execute(query)
    return [to_card_response(card, cipher) for card in result.scalars().all()]


async def block_card(db: AsyncSession, card_id: uuid.UUID, cipher: CardCipher) -> CardResponse:
    """[ADMIN] Set the card's status to BLOCKED."""
    card = await get_card_by_id(db, card_id)
    aggregate = card.to_aggregate()
    aggregate.block()
    card.apply_aggregate(aggregate)
    await db.flush()
    logger.info("Blocked card {}", masked_number(card, cipher))
    return to_card_response(card, cipher)


async def activate_card(db: AsyncSession, card_id: uuid.UUID, cipher: CardCipher) -> CardResponse:
    """
    [ADMIN] Set the card's status to ACTIVE.

    No guard on the expiration date: an expired card can be activated, it
    just stays unusable until is_active() agrees.
    """
    card = await get_card_by_id(db, card_id)
    aggregate = card.to_aggregate()
    aggregate.activate()
    card.apply_aggregate(aggregate)
    await db.flush()
    logger.info("Activated card {}", masked_number(card, cipher))
    return to_card_response(card, cipher)


async def expire_overdue_cards(db: AsyncSession, today: date | None = None) -> int:
    """
    Mark ACTIVE cards whose expiration date is not after `today` as EXPIRED.

    Returns:
        Number of cards updated.
    """
    today = today or date.today()
    result = await db.execute(
        select(Card)
        .where(Card.status == CardStatus.ACTIVE)
        .where(Card.expiration_date <= today)
    )
    cards = list(result.scalars().all())
    for card in cards:
        aggregate = card.to_aggregate()
        aggregate.expire()
        card.apply_aggregate(aggregate)
    await db.flush()

    if cards:
        logger.info("Expiry sweep: {} cards updated to EXPIRED", len(cards))
    else:
        logger.debug("Expiry sweep: no expired cards found")
    return len(cards)
