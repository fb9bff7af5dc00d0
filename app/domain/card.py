"""
Card aggregate - balance and status invariants, independent of the ORM.

The ORM row (app.models.card.Card) is only storage. Anything that decides
whether money may move lives here on a plain dataclass, so the rules can
be exercised without a database and the service layer writes the result
back explicitly (Card.apply_aggregate).

Status vs. activity:
  `status` is what is stored: ACTIVE, BLOCKED or EXPIRED. Whether a card
  can actually be used is is_active(), which also requires the expiration
  date to be in the future. The two can disagree: activate() on an
  expired card sets status to ACTIVE, yet is_active() still says False.

Money is Decimal with two fraction digits throughout.
"""

import enum
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

CENTS = Decimal("0.01")


class CardStatus(str, enum.Enum):
    """Stored card status. Inherits from str so it serializes to JSON as-is."""
    ACTIVE = "ACTIVE"
    BLOCKED = "BLOCKED"
    EXPIRED = "EXPIRED"


def to_money(amount: Decimal | int | str) -> Decimal:
    """Normalize an amount to two fraction digits."""
    return Decimal(amount).quantize(CENTS)


@dataclass
class CardAggregate:
    id: uuid.UUID
    user_id: uuid.UUID
    number: str  # encrypted
    cvv: str  # encrypted
    holder: str
    expiration_date: date
    balance: Decimal = Decimal("0.00")
    status: CardStatus = CardStatus.ACTIVE

    def is_active(self, today: date | None = None) -> bool:
        """True iff stored status is ACTIVE and the card expires after `today`."""
        today = today or date.today()
        return self.status == CardStatus.ACTIVE and self.expiration_date > today

    def can_debit(self, amount: Decimal, today: date | None = None) -> bool:
        # amount is non-negative by caller contract
        return self.is_active(today) and self.balance >= amount

    def debit(self, amount: Decimal, today: date | None = None) -> bool:
        """
        Subtract `amount` if the card is active and covers it.

        Returns False and leaves the balance untouched otherwise. Not atomic
        on its own: callers serialize access per card (app.services.card_locks).
        """
        if not self.can_debit(amount, today):
            return False
        self.balance = to_money(self.balance - amount)
        return True

    def credit(self, amount: Decimal) -> None:
        """Add `amount`. Zero or negative amounts are ignored without error."""
        if amount > 0:
            self.balance = to_money(self.balance + amount)

    def block(self) -> None:
        self.status = CardStatus.BLOCKED

    def activate(self) -> None:
        self.status = CardStatus.ACTIVE

    def expire(self) -> None:
        self.status = CardStatus.EXPIRED
