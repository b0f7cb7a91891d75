"""Wagers and the payout ledger."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .id_type import ID_TYPE

STATUS_PENDING = "pending"
STATUS_WON = "won"
STATUS_LOST = "lost"
TERMINAL_STATUSES = (STATUS_WON, STATUS_LOST)

TRANSACTION_WIN = "win"


class Bet(Base):
    """A placed wager.

    Everything except the status/settlement columns is fixed at placement.
    The settlement columns are written once, by the pending -> terminal
    transition in :mod:`lotwager.settlement.engine`.
    """

    __tablename__ = "bets"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    """Owner of the wager."""

    bet_date: Mapped[date] = mapped_column(Date, nullable=False)
    draw_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    region_type: Mapped[str] = mapped_column(String(2), nullable=False)
    """Region chosen on the form; used for provinces without a registered region."""

    provinces: Mapped[list] = mapped_column(JSON, nullable=False)
    """Province ids the wager covers (one or more)."""

    bet_type: Mapped[str] = mapped_column(String(50), nullable=False)
    bet_variant: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    selection_method: Mapped[str] = mapped_column(String(50), nullable=False, default="manual")

    numbers: Mapped[list] = mapped_column(JSON, nullable=False)
    """Zero-padded digit strings."""

    denomination: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)
    """Stake computed at placement."""

    potential_win_amount: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=STATUS_PENDING)
    """``"pending"``, ``"won"`` or ``"lost"``."""

    win_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(16, 2), nullable=True)
    winning_details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    """Audit record of every match and the ratio applied to it."""

    settled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    settlement_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    """Last recoverable failure code and detail while still pending."""

    needs_review: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    """Set when a configuration problem blocks settlement."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    transactions: Mapped[list["Transaction"]] = relationship(back_populates="bet")

    __table_args__ = (Index("ix_bets_status_draw_date", "status", "draw_date"),)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Bet(id={id}, bet_type={bt}, status={status})>".format(
            id=self.id, bt=self.bet_type, status=self.status
        )


class Transaction(Base):
    """Ledger entry for money moved because of a bet."""

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    bet_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("bets.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="completed")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    bet: Mapped["Bet"] = relationship(back_populates="transactions")

    # A bet can be paid at most once.
    __table_args__ = (
        UniqueConstraint("bet_id", "type", name="uq_transaction_bet_type"),
    )


__all__ = [
    "Bet",
    "Transaction",
    "STATUS_PENDING",
    "STATUS_WON",
    "STATUS_LOST",
    "TERMINAL_STATUSES",
    "TRANSACTION_WIN",
]
