"""Stake and potential-win calculation for a bet draft."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence

from .config import Unresolved, resolve_config
from .numbers import SELECTION_METHODS, validate_numbers

MIN_DENOMINATION = Decimal("1000")
MAX_DENOMINATION = Decimal("100000000")


@dataclass
class BetDraft:
    """A wager as composed on the placement form, before persistence."""

    user_id: str
    bet_type: str
    denomination: Decimal
    numbers: list[str]
    provinces: list[str]
    region_type: str
    draw_date: date
    bet_date: Optional[date] = None
    bet_variant: Optional[str] = None
    selection_method: str = "manual"


@dataclass(frozen=True)
class ProvinceQuote:
    """Pricing for one province of a draft."""

    province_id: str
    region: str
    multiplier: Optional[Decimal]
    ratio: Optional[Decimal]
    stake_amount: Decimal
    potential_win_amount: Decimal


@dataclass
class PriceQuote:
    """Result of pricing a draft.

    ``stake_amount`` and ``potential_win_amount`` only cover the provinces
    that resolved; check :attr:`is_complete` before presenting them.
    """

    stake_amount: Decimal
    potential_win_amount: Decimal
    number_count: int
    lines: list[ProvinceQuote] = field(default_factory=list)
    unresolved: list[dict] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.unresolved


def to_amount(value) -> Decimal:
    """Coerce a money value to :class:`~decimal.Decimal`."""
    if isinstance(value, bool):
        raise TypeError("amount must be numeric")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, str)):
        try:
            return Decimal(value)
        except InvalidOperation as exc:
            raise ValueError(f"'{value}' is not a valid amount") from exc
    if isinstance(value, float):
        return Decimal(str(value))
    raise TypeError(f"Unsupported amount type: {type(value).__name__}")


def validate_draft(bet_type, draft: BetDraft) -> None:
    """Reject drafts that the placement form would not accept.

    Raises
    ------
    ValueError
        For an out-of-range denomination, missing or repeated provinces,
        missing numbers, a draw date before the bet date, or numbers with
        the wrong digit count.
    """
    denomination = to_amount(draft.denomination)
    if denomination < MIN_DENOMINATION or denomination > MAX_DENOMINATION:
        raise ValueError(
            f"denomination must be between {MIN_DENOMINATION:,} and {MAX_DENOMINATION:,}"
        )
    if not draft.provinces:
        raise ValueError("at least one province is required")
    if len(set(draft.provinces)) != len(draft.provinces):
        raise ValueError("provinces must not repeat")
    if draft.bet_date is not None and draft.bet_date > draft.draw_date:
        raise ValueError("bet_date cannot be after draw_date")
    if draft.selection_method not in SELECTION_METHODS:
        raise ValueError(f"Unknown selection method '{draft.selection_method}'")
    digit_count = bet_type.digit_count_for(draft.bet_variant)
    validate_numbers(draft.numbers, digit_count)


def price(
    bet_type,
    variant: Optional[str],
    denomination,
    numbers: Sequence[str],
    province_regions: Sequence[tuple[str, str]],
) -> PriceQuote:
    """Price a bet across its provinces.

    For each ``(province_id, region)`` pair the multiplier and ratio are
    resolved with that province's region, then::

        stake         = denomination * multiplier * len(numbers)
        potential_win = denomination * ratio * len(numbers)

    and the per-province values are summed.

    Parameters
    ----------
    bet_type : BetType
        Configuration of the wager family.
    variant : Optional[str]
        Variant chosen on the draft.
    denomination
        Amount per number; coerced to ``Decimal``.
    numbers : Sequence[str]
        Bet numbers.
    province_regions : Sequence[tuple[str, str]]
        Province id and its region, one pair per province.

    Returns
    -------
    PriceQuote
        Totals plus an ``unresolved`` entry for every province whose
        multiplier or ratio could not be resolved. Such provinces add
        nothing to the totals.
    """
    denomination = to_amount(denomination)
    count = len(numbers)
    quote = PriceQuote(
        stake_amount=Decimal("0"),
        potential_win_amount=Decimal("0"),
        number_count=count,
    )

    for province_id, region in province_regions:
        resolution = resolve_config(bet_type, variant, region, conservative=True)
        if not resolution.is_complete:
            for error in resolution.errors:
                entry = {"province_id": province_id, "region": region}
                entry.update(error.as_dict())
                quote.unresolved.append(entry)
            quote.lines.append(
                ProvinceQuote(
                    province_id=province_id,
                    region=region,
                    multiplier=_or_none(resolution.multiplier),
                    ratio=_or_none(resolution.ratio),
                    stake_amount=Decimal("0"),
                    potential_win_amount=Decimal("0"),
                )
            )
            continue

        stake = denomination * resolution.multiplier * count
        potential_win = denomination * resolution.ratio * count
        quote.stake_amount += stake
        quote.potential_win_amount += potential_win
        quote.lines.append(
            ProvinceQuote(
                province_id=province_id,
                region=region,
                multiplier=resolution.multiplier,
                ratio=resolution.ratio,
                stake_amount=stake,
                potential_win_amount=potential_win,
            )
        )

    return quote


def _or_none(value) -> Optional[Decimal]:
    return None if isinstance(value, Unresolved) else value


__all__ = [
    "BetDraft",
    "MAX_DENOMINATION",
    "MIN_DENOMINATION",
    "PriceQuote",
    "ProvinceQuote",
    "price",
    "to_amount",
    "validate_draft",
]
