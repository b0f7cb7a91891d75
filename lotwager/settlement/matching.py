"""Match strategies that compare a bet's numbers against a draw result."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Dict, Mapping, Optional, Sequence

from ..models.draw_result import PRIZE_TIERS, REGION_TIERS
from ..models.province import REGION_MULTI_PROVINCE, REGION_SINGLE_DRAW
from .errors import InvalidVariant, MalformedBet, MalformedDrawResult, UnsupportedRegion

OUTCOME_EVALUATED = "evaluated"
OUTCOME_NOT_IMPLEMENTED = "not_implemented"

HALF_HEAD = "head"
HALF_TAIL = "tail"
HALF_COVER = "cover"
HALF_PAIR = "pair"


@dataclass(frozen=True)
class Match:
    """One winning occurrence of a bet number.

    Attributes
    ----------
    number : str
        Bet number that matched (for pair bets, the numbers joined by ``-``).
    tier : str
        Prize tier the matched value came from.
    half : str
        ``"head"``, ``"tail"``, ``"cover"`` or ``"pair"``. Used as the
        condition when resolving a conditional win ratio.
    value : str
        Prize value that produced the match.
    """

    number: str
    tier: str
    half: str
    value: str

    def as_dict(self) -> dict[str, str]:
        return {
            "number": self.number,
            "tier": self.tier,
            "half": self.half,
            "value": self.value,
        }


@dataclass(frozen=True)
class BetView:
    """The parts of a bet a strategy needs, for one province."""

    bet_type: str
    variant: Optional[str]
    numbers: Sequence[str]
    region: str
    province_id: Optional[str] = None


@dataclass
class SettlementOutcome:
    """Result of evaluating a bet against one draw result.

    ``status`` is ``"evaluated"`` or ``"not_implemented"``; a
    not-implemented outcome carries no matches and must never be read as a
    loss. ``ratio`` is filled in by the settlement engine once resolved.
    """

    bet_type: str
    status: str
    matches: list[Match] = field(default_factory=list)
    ratio: Optional[Decimal] = None
    detail: Optional[str] = None

    @property
    def match_count(self) -> int:
        return len(self.matches)

    @property
    def is_implemented(self) -> bool:
        return self.status == OUTCOME_EVALUATED


class TierView:
    """Validated, region-restricted view of a draw result's prize tiers.

    ``draw_result`` may be a :class:`~lotwager.models.DrawResult` or a
    mapping of tier name to list of values. Tiers the region does not
    publish, or that are missing, read as empty.
    """

    def __init__(self, draw_result, region: str) -> None:
        if region not in REGION_TIERS:
            raise UnsupportedRegion(f"Unknown region '{region}'")
        self.region = region
        self._tiers: Dict[str, list[str]] = {}
        for tier in REGION_TIERS[region]:
            self._tiers[tier] = _validated_values(_raw_tier(draw_result, tier), tier)

    def values(self, tier: str) -> list[str]:
        return self._tiers.get(tier, [])

    def available_tiers(self) -> list[str]:
        return [tier for tier in PRIZE_TIERS if self._tiers.get(tier)]

    def special(self) -> Optional[str]:
        """First value of the top tier, or ``None`` when not published."""
        values = self.values("special")
        return values[0] if values else None


def _raw_tier(draw_result, tier: str):
    if isinstance(draw_result, Mapping):
        return draw_result.get(tier)
    return draw_result.tier_values(tier)


def _validated_values(raw, tier: str) -> list[str]:
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise MalformedDrawResult(f"tier '{tier}' must be a list, got {type(raw).__name__}")
    for value in raw:
        if not isinstance(value, str) or not value.isdigit() or not value.isascii():
            raise MalformedDrawResult(f"tier '{tier}' holds a non-digit value {value!r}")
    return list(raw)


def _require_width(bet: BetView, digits: int) -> None:
    """Raise :class:`MalformedBet` unless every bet number has ``digits`` digits."""
    for number in bet.numbers:
        if len(number) != digits:
            raise MalformedBet(
                f"number '{number}' must have {digits} digits for '{bet.bet_type}'",
                bet_type=bet.bet_type,
            )


def _suffix_matches(
    numbers: Sequence[str],
    view: TierView,
    tiers: Sequence[str],
    half: str,
) -> list[Match]:
    """Every (number, value) pair where the value ends with the number."""
    matches: list[Match] = []
    for number in numbers:
        width = len(number)
        for tier in tiers:
            for value in view.values(tier):
                if len(value) >= width and value[-width:] == number:
                    matches.append(Match(number=number, tier=tier, half=half, value=value))
    return matches


def _head_tail(
    bet: BetView,
    view: TierView,
    *,
    digits: int,
    head_tier: Dict[str, str],
) -> list[Match]:
    variant = bet.variant or "both"
    if variant not in ("head", "tail", "both"):
        raise InvalidVariant(
            f"variant '{variant}' is not valid for head/tail bets", bet_type=bet.bet_type
        )
    _require_width(bet, digits)
    matches: list[Match] = []
    if variant in ("head", "both"):
        matches.extend(_suffix_matches(bet.numbers, view, [head_tier[view.region]], HALF_HEAD))
    if variant in ("tail", "both"):
        special = view.special()
        if special is not None and len(special) >= digits:
            for number in bet.numbers:
                if special[-digits:] == number:
                    matches.append(
                        Match(number=number, tier="special", half=HALF_TAIL, value=special)
                    )
    return matches


def match_head_tail_two(bet: BetView, view: TierView) -> list[Match]:
    """Two-digit head/tail.

    Head checks the lowest tier (``eighth`` on multi-province draws,
    ``seventh`` on single draws); tail checks the last two digits of the
    special prize. Each half counts on its own.
    """
    return _head_tail(
        bet,
        view,
        digits=2,
        head_tier={REGION_MULTI_PROVINCE: "eighth", REGION_SINGLE_DRAW: "seventh"},
    )


def match_head_tail_three(bet: BetView, view: TierView) -> list[Match]:
    """Three-digit head/tail, one tier up from the two-digit game."""
    return _head_tail(
        bet,
        view,
        digits=3,
        head_tier={REGION_MULTI_PROVINCE: "seventh", REGION_SINGLE_DRAW: "sixth"},
    )


COVER_VARIANT_DIGITS = {"b2": 2, "b3": 3, "b4": 4}


def match_cover(bet: BetView, view: TierView) -> list[Match]:
    """Suffix match against every value of every tier the region publishes."""
    if bet.variant is not None:
        if bet.variant not in COVER_VARIANT_DIGITS:
            raise InvalidVariant(
                f"variant '{bet.variant}' is not a cover variant", bet_type=bet.bet_type
            )
        _require_width(bet, COVER_VARIANT_DIGITS[bet.variant])
    return _suffix_matches(bet.numbers, view, REGION_TIERS[view.region], HALF_COVER)


def _restricted_cover(tiers: Sequence[str]) -> Callable[[BetView, TierView], list[Match]]:
    def matcher(bet: BetView, view: TierView) -> list[Match]:
        _require_width(bet, 2)
        return _suffix_matches(bet.numbers, view, tiers, HALF_COVER)

    return matcher


def match_first_prize(bet: BetView, view: TierView) -> list[Match]:
    """Two-digit match on the first value of the first prize."""
    _require_width(bet, 2)
    values = view.values("first")
    if not values:
        return []
    first = values[0]
    return [
        Match(number=number, tier="first", half=HALF_TAIL, value=first)
        for number in bet.numbers
        if len(first) >= 2 and first[-2:] == number
    ]


XIEN_TIERS = PRIZE_TIERS[:-1]


def match_pair(bet: BetView, view: TierView) -> list[Match]:
    """All-or-nothing: one match when every number appears as a two-digit suffix."""
    if not bet.numbers:
        return []
    _require_width(bet, 2)
    found: list[tuple[str, str]] = []
    for number in bet.numbers:
        hit = next(
            (
                (tier, value)
                for tier in XIEN_TIERS
                for value in view.values(tier)
                if len(value) >= 2 and value[-2:] == number
            ),
            None,
        )
        if hit is None:
            return []
        found.append(hit)
    return [
        Match(
            number="-".join(bet.numbers),
            tier=",".join(tier for tier, _ in found),
            half=HALF_PAIR,
            value="-".join(value for _, value in found),
        )
    ]


@dataclass(frozen=True)
class MatchStrategy:
    """A bet type's matching rule.

    Attributes
    ----------
    key : str
        Bet type id the strategy is registered under.
    matcher : Optional[Callable[[BetView, TierView], list[Match]]]
        Function returning every match; ``None`` marks the type as not
        implemented.
    description : Optional[str]
        Human-readable summary of the rule.
    """

    key: str
    matcher: Optional[Callable[[BetView, TierView], list[Match]]]
    description: Optional[str] = None

    def evaluate(self, draw_result, bet: BetView) -> SettlementOutcome:
        """Evaluate ``bet`` against ``draw_result``.

        Raises
        ------
        MalformedDrawResult
            If a tier is not a list or holds a non-digit value.
        InvalidVariant
            If the bet's variant has no meaning for this strategy.
        """
        if self.matcher is None:
            return SettlementOutcome(
                bet_type=bet.bet_type,
                status=OUTCOME_NOT_IMPLEMENTED,
                detail=f"settlement rule for '{self.key}' is not implemented",
            )
        view = TierView(draw_result, bet.region)
        return SettlementOutcome(
            bet_type=bet.bet_type,
            status=OUTCOME_EVALUATED,
            matches=self.matcher(bet, view),
        )


class StrategyRegistry:
    """Mutable registry mapping bet type ids to match strategies."""

    def __init__(self) -> None:
        self._strategies: Dict[str, MatchStrategy] = {}

    def register(self, strategy: MatchStrategy, *, replace: bool = False) -> None:
        """Register ``strategy`` under its key.

        Parameters
        ----------
        strategy : MatchStrategy
            Strategy to add.
        replace : bool, default: False
            When ``True`` an existing registration with the same key is
            overwritten. Otherwise a duplicate raises :class:`ValueError`.
        """
        if not replace and strategy.key in self._strategies:
            raise ValueError(f"Strategy '{strategy.key}' is already registered")
        self._strategies[strategy.key] = strategy

    def get(self, key: str) -> MatchStrategy:
        """Return the strategy registered under ``key``."""
        try:
            return self._strategies[key]
        except KeyError as exc:
            raise KeyError(f"Unknown bet type strategy '{key}'") from exc

    def __contains__(self, key: str) -> bool:
        return key in self._strategies

    def is_implemented(self, key: str) -> bool:
        """``True`` when ``key`` has a strategy with an actual matching rule."""
        strategy = self._strategies.get(key)
        return strategy is not None and strategy.matcher is not None

    def evaluate(self, draw_result, bet: BetView) -> SettlementOutcome:
        """Evaluate ``bet`` with the strategy for its bet type.

        A bet type without a registered strategy yields a
        ``"not_implemented"`` outcome rather than an empty match list.
        """
        strategy = self._strategies.get(bet.bet_type)
        if strategy is None:
            return SettlementOutcome(
                bet_type=bet.bet_type,
                status=OUTCOME_NOT_IMPLEMENTED,
                detail=f"no settlement strategy registered for '{bet.bet_type}'",
            )
        return strategy.evaluate(draw_result, bet)

    def available_strategies(self) -> Dict[str, MatchStrategy]:
        """Return a copy of the registered strategies keyed by bet type id."""
        return dict(self._strategies)


DEFAULT_STRATEGY_REGISTRY = StrategyRegistry()
for _strategy in (
    MatchStrategy(
        key="dd",
        matcher=match_head_tail_two,
        description="Two-digit head (lowest tier) and tail (special prize suffix).",
    ),
    MatchStrategy(
        key="xc",
        matcher=match_head_tail_three,
        description="Three-digit head (second lowest tier) and tail (special prize suffix).",
    ),
    MatchStrategy(
        key="bao_lo",
        matcher=match_cover,
        description="Suffix of any value in any tier; every occurrence pays.",
    ),
    MatchStrategy(
        key="b7l",
        matcher=_restricted_cover(("eighth", "seventh", "sixth", "fifth", "special")),
        description="Cover over the seven values of the eighth..fifth and special tiers.",
    ),
    MatchStrategy(
        key="b8l",
        matcher=_restricted_cover(("special", "seventh", "sixth", "fifth", "fourth", "third")),
        description="Cover over the special and seventh..third tiers.",
    ),
    MatchStrategy(
        key="nt",
        matcher=match_first_prize,
        description="Last two digits of the first prize.",
    ),
    MatchStrategy(
        key="xien",
        matcher=match_pair,
        description="Every number must appear as a two-digit suffix; pays once.",
    ),
    MatchStrategy(
        key="da",
        matcher=None,
        description="Combination bet; payout rule not defined.",
    ),
):
    DEFAULT_STRATEGY_REGISTRY.register(_strategy)
del _strategy


__all__ = [
    "BetView",
    "DEFAULT_STRATEGY_REGISTRY",
    "HALF_COVER",
    "HALF_HEAD",
    "HALF_PAIR",
    "HALF_TAIL",
    "Match",
    "MatchStrategy",
    "OUTCOME_EVALUATED",
    "OUTCOME_NOT_IMPLEMENTED",
    "SettlementOutcome",
    "StrategyRegistry",
    "TierView",
]
