"""Bet type configuration records consumed by pricing and settlement."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import Boolean, DateTime, Integer, JSON, String, Text, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from .base import Base
from .id_type import ID_TYPE


class BetType(Base):
    """Administrative definition of a wager family and its payout rules.

    ``region_rules`` maps a region key (``"M1"`` / ``"M2"``) to a rule
    object holding ``bet_multipliers``, ``combination_count`` and the
    informational ``winning_rules`` text. ``bet_multipliers``,
    ``combination_count`` and ``winning_ratio`` may each be a number, a
    variant-keyed map, or (ratio only) a variant-to-condition map; see
    :mod:`lotwager.settlement.config` for how they are resolved.
    """

    __tablename__ = "bet_types"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    bet_type_id: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    """Stable identifier referenced by bets, e.g. ``"dd"`` or ``"bao_lo"``."""

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    """Human readable label."""

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    digit_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Default digit count of a bet number when the variant does not set one."""

    variants: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    """List of ``{"id", "name", "digit_count"?, "number_count"?}`` objects."""

    region_rules: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    """Region key -> rule object."""

    winning_ratio: Mapped[Any] = mapped_column(JSON, nullable=False)
    """Scalar, variant map, or variant -> condition map of payout ratios."""

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

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

    def __init__(
        self,
        *,
        bet_type_id: str,
        name: str,
        winning_ratio: Any,
        region_rules: Optional[dict] = None,
        variants: Optional[list] = None,
        digit_count: Optional[int] = None,
        description: Optional[str] = None,
        is_active: bool = True,
    ) -> None:
        self.bet_type_id = bet_type_id
        self.name = name
        self.winning_ratio = winning_ratio
        self.region_rules = region_rules if region_rules is not None else {}
        self.variants = variants
        self.digit_count = digit_count
        self.description = description
        self.is_active = is_active

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<BetType(id={id}, bet_type_id={key})>".format(
            id=self.id, key=self.bet_type_id
        )

    @property
    def variant_ids(self) -> list[str]:
        """Identifiers of the declared variants, in declaration order."""
        return [
            str(v["id"])
            for v in (self.variants or [])
            if isinstance(v, dict) and "id" in v
        ]

    def get_variant(self, variant_id: Optional[str]) -> Optional[dict]:
        """Return the variant definition for ``variant_id`` if declared."""
        if variant_id is None:
            return None
        for variant in self.variants or []:
            if isinstance(variant, dict) and str(variant.get("id")) == variant_id:
                return variant
        return None

    def digit_count_for(self, variant_id: Optional[str]) -> Optional[int]:
        """Digit count required of bet numbers for ``variant_id``.

        The variant's own ``digit_count`` wins over the type default.
        """
        variant = self.get_variant(variant_id)
        if variant is not None and variant.get("digit_count") is not None:
            return int(variant["digit_count"])
        return self.digit_count

    @classmethod
    def get_by_bet_type_id(
        cls, session: Session, bet_type_id: str
    ) -> Optional["BetType"]:
        """Return the bet type whose key is ``bet_type_id`` if it exists."""
        return session.scalar(select(cls).where(cls.bet_type_id == bet_type_id))


__all__ = ["BetType"]
