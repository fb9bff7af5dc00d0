"""
Transfer model - one completed movement of money between two cards.

Rows are append-only: created once per successful transfer, never updated.
Both card references are fixed at creation. Cards outlive transfers; a
Transfer owns neither card.

Constraints:
  - amount > 0
  - from_card_id <> to_card_id

Status:
  Every row written today is COMPLETED. FAILED exists so the column can
  carry rejected attempts later without a schema change; no PENDING state
  is exposed.
"""

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, DateTime, Enum, ForeignKey, Numeric, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class TransferStatus(str, enum.Enum):
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Transfer(Base):
    __tablename__ = "transfers"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transfers_positive_amount"),
        CheckConstraint("from_card_id <> to_card_id", name="ck_transfers_distinct_cards"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    from_card_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("cards.id"),
        nullable=False,
        index=True,
    )

    to_card_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("cards.id"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    # Set once by the server, indexed for history queries
    transfer_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    status: Mapped[TransferStatus] = mapped_column(
        Enum(TransferStatus),
        nullable=False,
        default=TransferStatus.COMPLETED,
    )
