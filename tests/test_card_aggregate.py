"""
Tests for the card aggregate (app.domain.card).

These tests verify:
  - is_active() needs stored ACTIVE status AND a future expiration date
  - debit() only succeeds on an active card that covers the amount
  - credit() ignores zero and negative amounts
  - credit followed by debit of the same amount is a round trip
  - block()/activate() are unguarded status changes
"""

import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest

from app.domain.card import CardAggregate, CardStatus, to_money

TODAY = date(2026, 10, 19)


def make_aggregate(balance="100.00", status=CardStatus.ACTIVE, expires=TODAY + timedelta(days=365)):
    return CardAggregate(
        id=uuid.uuid4(),
        user_id=uuid.uuid4(),
        number="enc-number",
        cvv="enc-cvv",
        holder="ALICE CHEN",
        expiration_date=expires,
        balance=Decimal(balance),
        status=status,
    )


class TestIsActive:

    def test_active_and_not_expired(self):
        assert make_aggregate().is_active(TODAY) is True

    @pytest.mark.parametrize("status", [CardStatus.BLOCKED, CardStatus.EXPIRED])
    def test_non_active_status(self, status):
        assert make_aggregate(status=status).is_active(TODAY) is False

    def test_expiring_today_is_inactive(self):
        """Expiration must be strictly after today."""
        assert make_aggregate(expires=TODAY).is_active(TODAY) is False

    def test_expired_yesterday_is_inactive(self):
        assert make_aggregate(expires=TODAY - timedelta(days=1)).is_active(TODAY) is False


class TestDebitCredit:

    @pytest.mark.parametrize("amount", ["0.01", "50.00", "99.99", "100.00"])
    def test_debit_within_balance(self, amount):
        card = make_aggregate("100.00")
        assert card.debit(Decimal(amount), TODAY) is True
        assert card.balance == Decimal("100.00") - Decimal(amount)

    def test_debit_over_balance_leaves_balance(self):
        card = make_aggregate("100.00")
        assert card.debit(Decimal("100.01"), TODAY) is False
        assert card.balance == Decimal("100.00")

    def test_debit_blocked_card_fails(self):
        card = make_aggregate("100.00", status=CardStatus.BLOCKED)
        assert card.can_debit(Decimal("1.00"), TODAY) is False
        assert card.debit(Decimal("1.00"), TODAY) is False
        assert card.balance == Decimal("100.00")

    def test_debit_expired_card_fails(self):
        card = make_aggregate("100.00", expires=TODAY - timedelta(days=1))
        assert card.debit(Decimal("1.00"), TODAY) is False

    def test_credit_adds(self):
        card = make_aggregate("10.00")
        card.credit(Decimal("5.55"))
        assert card.balance == Decimal("15.55")

    @pytest.mark.parametrize("amount", ["0", "-5.00"])
    def test_credit_non_positive_is_noop(self, amount):
        card = make_aggregate("10.00")
        card.credit(Decimal(amount))
        assert card.balance == Decimal("10.00")

    def test_credit_then_debit_round_trip(self):
        card = make_aggregate("123.45")
        card.credit(Decimal("76.55"))
        assert card.debit(Decimal("76.55"), TODAY) is True
        assert card.balance == Decimal("123.45")

    def test_credit_works_on_blocked_card(self):
        card = make_aggregate("0.00", status=CardStatus.BLOCKED)
        card.credit(Decimal("1.00"))
        assert card.balance == Decimal("1.00")


class TestStatusTransitions:

    def test_block_then_activate(self):
        card = make_aggregate()
        card.block()
        assert card.status == CardStatus.BLOCKED
        card.activate()
        assert card.status == CardStatus.ACTIVE

    def test_activate_expired_card_stays_inactive(self):
        card = make_aggregate(status=CardStatus.EXPIRED, expires=TODAY - timedelta(days=30))
        card.activate()
        assert card.status == CardStatus.ACTIVE
        assert card.is_active(TODAY) is False


def test_to_money_quantizes():
    assert to_money("1") == Decimal("1.00")
    assert str(to_money(Decimal("2.5"))) == "2.50"
