"""
Authorization - who the caller is and what they may touch.

Identity is the only thing the core knows about the authenticated caller.
It is built by the dependency layer (app.dependencies) from a verified
bearer token; nothing below that layer looks at tokens or claims.

Every "is this card yours?" decision goes through owns_card(), so the
transfer validator, card reads and block requests agree on one rule.
"""

import enum
import uuid
from dataclasses import dataclass


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    USER = "USER"


@dataclass(frozen=True)
class Identity:
    """An authenticated caller (id + email + role)."""
    user_id: uuid.UUID
    email: str
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def owns_card(identity: Identity, card) -> bool:
    """True iff `card` (anything with a user_id) belongs to `identity`."""
    return card is not None and card.user_id == identity.user_id


def can_view_card(identity: Identity, card) -> bool:
    """Owners see their own cards; admins see every card."""
    return identity.is_admin or owns_card(identity, card)
