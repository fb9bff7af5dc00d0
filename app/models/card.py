"""
Card model - storage for a payment card owned by a User.

Card numbers and CVVs are stored encrypted (AES-256, Base64 text; see
app.encryption). The row never exposes them directly to the API layer:
responses are built from the masked helpers in app.masking.

Balance is a fixed-point decimal with two fraction digits. A CHECK
constraint keeps it non-negative at the database level; the card
aggregate enforces the same rule before any debit.

Business rules do NOT live on this class. Services convert the row to a
CardAggregate (to_aggregate), let the aggregate decide, and write the
result back (apply_aggregate).
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Date, DateTime, Enum, ForeignKey, Numeric, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.domain.card import CardAggregate, CardStatus


class Card(Base):
    __tablename__ = "cards"

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_cards_non_negative_balance"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Encrypted full card number (Base64 AES ciphertext)
    number: Mapped[str] = mapped_column(
        String(256),
        nullable=False,
    )

    # Encrypted CVV, never serialized
    cvv: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    holder: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    expiration_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    balance: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
        default=Decimal("0.00"),
    )

    status: Mapped[CardStatus] = mapped_column(
        Enum(CardStatus),
        nullable=False,
        default=CardStatus.ACTIVE,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    user: Mapped["User"] = relationship(
        back_populates="cards",
    )

    def to_aggregate(self) -> CardAggregate:
        return CardAggregate(
            id=self.id,
            user_id=self.user_id,
            number=self.number,
            cvv=self.cvv,
            holder=self.holder,
            expiration_date=self.expiration_date,
            balance=Decimal(self.balance),
            status=self.status,
        )

    def apply_aggregate(self, aggregate: CardAggregate) -> None:
        """Copy the mutable state (balance, status) back onto the row."""
        self.balance = aggregate.balance
        self.status = aggregate.status
