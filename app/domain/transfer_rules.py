"""
Transfer validation - the rules a transfer must pass before money moves.

validate_transfer() is pure: it reads two card aggregates and raises on
the first rule that fails. Rules run in a fixed order and only the first
violation is reported:

  1. source and destination are different cards
  2. the caller owns BOTH cards (only self-to-self transfers exist)
  3. source card is active
  4. destination card is active
  5. amount is positive (already checked by the request schema)
  6. source balance covers the amount
  7. if a confirmation code was given, it equals the source card's CVV
"""

import hmac
from datetime import date
from decimal import Decimal

from app.domain.authorization import Identity, owns_card
from app.domain.card import CardAggregate
from app.exceptions import InsufficientFundsError, InvalidTransferError


def validate_transfer(
    source: CardAggregate,
    destination: CardAggregate,
    amount: Decimal,
    identity: Identity,
    confirmation_code: str | None = None,
    source_cvv: str | None = None,
    today: date | None = None,
) -> None:
    """
    Check every transfer rule, raising on the first violation.

    Args:
        source: The card to debit.
        destination: The card to credit.
        amount: Amount to move.
        identity: The authenticated caller.
        confirmation_code: Optional CVV typed by the user.
        source_cvv: The source card's decrypted CVV. Only needed when a
            confirmation code is supplied.
        today: Reference date for the expiry check (defaults to today).

    Raises:
        InvalidTransferError: Same card, not owner, inactive card,
            non-positive amount or CVV mismatch.
        InsufficientFundsError: Source balance below amount.
    """
    if source.id == destination.id:
        raise InvalidTransferError("same_card", "Cannot transfer to the same card")

    if not (owns_card(identity, source) and owns_card(identity, destination)):
        raise InvalidTransferError("not_owner", "Both cards must belong to you")

    if not source.is_active(today):
        raise InvalidTransferError("source_inactive", "Source card is inactive")

    if not destination.is_active(today):
        raise InvalidTransferError("destination_inactive", "Destination card is inactive")

    if amount <= 0:
        raise InvalidTransferError("invalid_amount", "Transfer amount must be positive")

    if source.balance < amount:
        raise InsufficientFundsError(
            card_id=source.id,
            requested=amount,
            available=source.balance,
        )

    if confirmation_code:
        expected = (source_cvv or "").encode("utf-8")
        if not hmac.compare_digest(expected, confirmation_code.encode("utf-8")):
            raise InvalidTransferError("cvv_mismatch", "Invalid CVV code")
