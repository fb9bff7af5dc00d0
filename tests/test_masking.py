"""
Tests for card masking (app.masking).

Masked numbers are "**** **** **** " plus the last four characters; any
input too short to mask becomes "****", never a partial mask.
"""

from datetime import date
from types import SimpleNamespace

import pytest

from app.masking import (
    EXPIRATION_PLACEHOLDER,
    MASKED_PLACEHOLDER,
    masked_expiration,
    masked_number,
    masked_number_from_plain,
)


class TestMaskedNumberFromPlain:

    def test_sixteen_digit_number(self):
        masked = masked_number_from_plain("4000123456789010")
        assert masked == "**** **** **** 9010"
        groups = masked.split(" ")
        assert groups[:3] == ["****", "****", "****"]
        assert groups[3] == "9010"

    def test_exactly_four_characters(self):
        assert masked_number_from_plain("1234") == "**** **** **** 1234"

    @pytest.mark.parametrize("value", [None, "", "1", "123"])
    def test_too_short_gives_placeholder(self, value):
        assert masked_number_from_plain(value) == MASKED_PLACEHOLDER


class TestMaskedNumberFromCard:

    def test_decrypts_then_masks(self, cipher):
        card = SimpleNamespace(number=cipher.encrypt("4000111122223333"))
        assert masked_number(card, cipher) == "**** **** **** 3333"

    def test_legacy_plaintext_number(self, cipher):
        card = SimpleNamespace(number="4000-1111-2222-4444")
        assert masked_number(card, cipher) == "**** **** **** 4444"

    def test_missing_card_or_number(self, cipher):
        assert masked_number(None, cipher) == MASKED_PLACEHOLDER
        assert masked_number(SimpleNamespace(number=None), cipher) == MASKED_PLACEHOLDER

    def test_short_decrypted_value(self, cipher):
        card = SimpleNamespace(number=cipher.encrypt("12"))
        assert masked_number(card, cipher) == MASKED_PLACEHOLDER

    def test_masking_does_not_mutate_card(self, cipher):
        encrypted = cipher.encrypt("4000111122223333")
        card = SimpleNamespace(number=encrypted)
        masked_number(card, cipher)
        assert card.number == encrypted


class TestMaskedExpiration:

    def test_formats_mm_yy(self):
        assert masked_expiration(SimpleNamespace(expiration_date=date(2029, 3, 31))) == "03/29"

    def test_two_digit_year_wraps(self):
        assert masked_expiration(SimpleNamespace(expiration_date=date(2100, 12, 1))) == "12/00"

    def test_missing_expiration(self):
        assert masked_expiration(SimpleNamespace(expiration_date=None)) == EXPIRATION_PLACEHOLDER
        assert masked_expiration(None) == EXPIRATION_PLACEHOLDER
