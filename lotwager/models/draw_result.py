"""Official draw outcomes, one row per province and date."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    JSON,
    String,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column

from .base import Base
from .id_type import ID_TYPE
from .province import REGION_MULTI_PROVINCE, REGION_SINGLE_DRAW

# Prize tiers ordered from the top (special) prize down.
PRIZE_TIERS = (
    "special",
    "first",
    "second",
    "third",
    "fourth",
    "fifth",
    "sixth",
    "seventh",
    "eighth",
)

# The single-draw layout publishes no eighth tier.
REGION_TIERS = {
    REGION_MULTI_PROVINCE: PRIZE_TIERS,
    REGION_SINGLE_DRAW: PRIZE_TIERS[:-1],
}


class DrawResult(Base):
    """Append-only record of a draw for ``province_id`` on ``draw_date``.

    Each tier is stored as a JSON list of zero-padded digit strings, e.g.
    ``seventh_prize = ["23", "81", "04", "67"]``. Tiers the layout does not
    publish stay ``None``.
    """

    __tablename__ = "draw_results"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    province_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("provinces.province_id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    draw_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    special_prize: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    first_prize: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    second_prize: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    third_prize: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    fourth_prize: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    fifth_prize: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    sixth_prize: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    seventh_prize: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    eighth_prize: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    source: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    """Where the record came from, e.g. ``"crawler"`` or ``"manual"``."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("province_id", "draw_date", name="uq_draw_result_province_date"),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<DrawResult(id={id}, province_id={pid}, draw_date={d})>".format(
            id=self.id, pid=self.province_id, d=self.draw_date
        )

    def tier_values(self, tier: str) -> Optional[list]:
        """Return the raw stored list for ``tier`` (``None`` when absent)."""
        if tier not in PRIZE_TIERS:
            raise ValueError(f"Unknown prize tier '{tier}'")
        return getattr(self, f"{tier}_prize")

    def set_tier_values(self, tier: str, values: Optional[list]) -> None:
        if tier not in PRIZE_TIERS:
            raise ValueError(f"Unknown prize tier '{tier}'")
        setattr(self, f"{tier}_prize", values)

    @classmethod
    def get_for(
        cls, session: Session, province_id: str, draw_date: date
    ) -> Optional["DrawResult"]:
        """Return the result for ``(province_id, draw_date)``; ``None`` if not yet published."""
        return session.scalar(
            select(cls).where(
                cls.province_id == province_id,
                cls.draw_date == draw_date,
            )
        )


__all__ = ["DrawResult", "PRIZE_TIERS", "REGION_TIERS"]
