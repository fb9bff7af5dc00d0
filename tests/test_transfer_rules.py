"""
Tests for transfer validation (app.domain.transfer_rules).

Each rule is checked in isolation, then the ordering: when several rules
fail, only the first one in the documented order is reported.
"""

import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest

from app.domain.authorization import Identity
from app.domain.card import CardAggregate, CardStatus
from app.domain.transfer_rules import validate_transfer
from app.exceptions import InsufficientFundsError, InvalidTransferError

TODAY = date(2026, 10, 19)
OWNER = Identity(user_id=uuid.uuid4(), email="alice@example.com")


def card(balance="1000.00", status=CardStatus.ACTIVE, owner=OWNER, expires=TODAY + timedelta(days=365)):
    return CardAggregate(
        id=uuid.uuid4(),
        user_id=owner.user_id,
        number="enc",
        cvv="enc",
        holder="ALICE CHEN",
        expiration_date=expires,
        balance=Decimal(balance),
        status=status,
    )


def check(source, destination, amount="100.00", identity=OWNER, **kwargs):
    validate_transfer(source, destination, Decimal(amount), identity, today=TODAY, **kwargs)


def test_valid_transfer_passes():
    check(card(), card())


def test_exact_balance_passes():
    check(card("100.00"), card(), "100.00")


def test_same_card_rejected_even_when_blocked_and_empty():
    source = card("0.00", status=CardStatus.BLOCKED)
    with pytest.raises(InvalidTransferError) as exc_info:
        check(source, source)
    assert exc_info.value.reason == "same_card"


def test_source_not_owned():
    stranger = Identity(user_id=uuid.uuid4(), email="bob@example.com")
    with pytest.raises(InvalidTransferError) as exc_info:
        check(card(owner=stranger), card())
    assert exc_info.value.reason == "not_owner"


def test_destination_not_owned():
    stranger = Identity(user_id=uuid.uuid4(), email="bob@example.com")
    with pytest.raises(InvalidTransferError) as exc_info:
        check(card(), card(owner=stranger))
    assert exc_info.value.reason == "not_owner"


def test_source_blocked():
    with pytest.raises(InvalidTransferError) as exc_info:
        check(card(status=CardStatus.BLOCKED), card())
    assert exc_info.value.reason == "source_inactive"


def test_source_expired_by_date():
    with pytest.raises(InvalidTransferError) as exc_info:
        check(card(expires=TODAY), card())
    assert exc_info.value.reason == "source_inactive"


def test_destination_inactive():
    with pytest.raises(InvalidTransferError) as exc_info:
        check(card(), card(status=CardStatus.EXPIRED))
    assert exc_info.value.reason == "destination_inactive"


@pytest.mark.parametrize("amount", ["0.00", "-1.00"])
def test_non_positive_amount(amount):
    with pytest.raises(InvalidTransferError) as exc_info:
        check(card(), card(), amount)
    assert exc_info.value.reason == "invalid_amount"


def test_insufficient_funds():
    with pytest.raises(InsufficientFundsError) as exc_info:
        check(card("50.00"), card(), "100.00")
    assert exc_info.value.requested == Decimal("100.00")
    assert exc_info.value.available == Decimal("50.00")


def test_cvv_match_passes():
    check(card(), card(), confirmation_code="123", source_cvv="123")


def test_cvv_mismatch():
    with pytest.raises(InvalidTransferError) as exc_info:
        check(card(), card(), confirmation_code="999", source_cvv="123")
    assert exc_info.value.reason == "cvv_mismatch"


def test_no_code_skips_cvv_check():
    check(card(), card(), confirmation_code=None, source_cvv="123")


class TestRuleOrder:

    def test_ownership_before_activity(self):
        stranger = Identity(user_id=uuid.uuid4(), email="bob@example.com")
        with pytest.raises(InvalidTransferError) as exc_info:
            check(card(status=CardStatus.BLOCKED, owner=stranger), card())
        assert exc_info.value.reason == "not_owner"

    def test_source_activity_before_destination_activity(self):
        with pytest.raises(InvalidTransferError) as exc_info:
            check(card(status=CardStatus.BLOCKED), card(status=CardStatus.BLOCKED))
        assert exc_info.value.reason == "source_inactive"

    def test_inactive_before_insufficient_funds(self):
        with pytest.raises(InvalidTransferError) as exc_info:
            check(card("0.00", status=CardStatus.BLOCKED), card(), "100.00")
        assert exc_info.value.reason == "source_inactive"

    def test_insufficient_funds_before_cvv(self):
        with pytest.raises(InsufficientFundsError):
            check(card("1.00"), card(), "100.00", confirmation_code="999", source_cvv="123")
