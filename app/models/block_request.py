"""
CardBlockRequest model - a user's request to have a card blocked.

Workflow:
  PENDING  -> APPROVED  (admin approves; the card becomes BLOCKED)
  PENDING  -> REJECTED  (admin rejects; the card is untouched)

APPROVED and REJECTED are terminal. Processing fills processed_at,
processed_by_admin_id and the optional admin_comment.
A partial unique index allows at most one PENDING request per card.

The request references a card and two users (requester, processing admin)
without owning any of them.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, DateTime, Enum, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class RequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class CardBlockRequest(Base):
    __tablename__ = "card_block_requests"
    __table_args__ = (
        # At most one PENDING request per card
        Index(
            "uq_card_block_requests_one_pending",
            "card_id",
            unique=True,
            sqlite_where=text("status = 'PENDING'"),
            postgresql_where=text("status = 'PENDING'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    card_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("cards.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Requesting user
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    reason: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )

    status: Mapped[RequestStatus] = mapped_column(
        Enum(RequestStatus),
        nullable=False,
        default=RequestStatus.PENDING,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Admin processing metadata ---
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    processed_by_admin_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
    )

    admin_comment: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    # --- Relationships ---
    card: Mapped["Card"] = relationship(lazy="joined")
    user: Mapped["User"] = relationship(foreign_keys=[user_id], lazy="joined")
    processed_by_admin: Mapped[Optional["User"]] = relationship(
        foreign_keys=[processed_by_admin_id],
        lazy="joined",
    )
