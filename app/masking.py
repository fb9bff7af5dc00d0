"""
Display-safe card values.

Full card numbers never leave the service. Responses and log lines carry
the masked form "**** **** **** 1234"; anything too short to mask safely
becomes the placeholder "****" rather than a partial mask.

These functions are pure. The only side effect is the decryption they ask
the cipher for.
"""

from app.encryption import CardCipher

MASKED_PLACEHOLDER = "****"
EXPIRATION_PLACEHOLDER = "**/**"
_MASK_PREFIX = "**** **** **** "


def masked_number_from_plain(card_number: str | None) -> str:
    """Mask a plaintext card number, e.g. one that was just generated."""
    if card_number is None or len(card_number) < 4:
        return MASKED_PLACEHOLDER
    return _MASK_PREFIX + card_number[-4:]


def masked_number(card, cipher: CardCipher) -> str:
    """Decrypt the last four characters of `card.number` and mask them."""
    if card is None or card.number is None:
        return MASKED_PLACEHOLDER
    return masked_number_from_plain(cipher.decrypt_last_chars(card.number, 4))


def masked_expiration(card) -> str:
    """Format the card expiration as MM/YY."""
    if card is None or card.expiration_date is None:
        return EXPIRATION_PLACEHOLDER
    expires = card.expiration_date
    return f"{expires.month:02d}/{expires.year % 100:02d}"
