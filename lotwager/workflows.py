from __future__ import annotations

from collections import Counter
from datetime import date
from typing import Iterable, Mapping, Optional, Sequence, Union

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .db.utils import as_date
from .models import (
    Bet,
    BetType,
    DrawResult,
    Province,
    REGION_TIERS,
    STATUS_PENDING,
)
from .settlement.config import Unresolved, check_variant, resolve_config
from .settlement.engine import BatchSummary, BetSettlement, SettlementEngine
from .settlement.errors import PricingRejected
from .settlement.matching import DEFAULT_STRATEGY_REGISTRY, StrategyRegistry
from .settlement.pricing import BetDraft, PriceQuote, price, to_amount, validate_draft


def _province_regions(
    session: Session, province_ids: Sequence[str], fallback_region: str
) -> list[tuple[str, str]]:
    """Pair each province with its registered region, else ``fallback_region``."""
    regions = Province.region_map(session, province_ids)
    return [(pid, regions.get(pid, fallback_region)) for pid in province_ids]


def price_bet(session: Session, draft: BetDraft) -> PriceQuote:
    """Validate and price ``draft`` without persisting anything.

    Parameters
    ----------
    session : Session
        Session used to read the bet type and province configuration.
    draft : BetDraft
        Wager as composed on the placement form.

    Returns
    -------
    PriceQuote
        Complete quote; stake and potential win summed across provinces.

    Raises
    ------
    ValueError
        If the draft fails placement validation.
    PricingRejected
        If the bet type is unknown or inactive, or any province's multiplier
        or ratio cannot be resolved.
    """
    bet_type = BetType.get_by_bet_type_id(session, draft.bet_type)
    if bet_type is None or not bet_type.is_active:
        raise PricingRejected(
            f"Bet type '{draft.bet_type}' is not available",
            [{"code": "UNKNOWN_BET_TYPE", "detail": draft.bet_type}],
        )

    validate_draft(bet_type, draft)

    invalid = check_variant(bet_type, draft.bet_variant)
    if invalid is not None:
        raise PricingRejected(invalid.detail, [invalid.as_dict()])

    quote = price(
        bet_type,
        draft.bet_variant,
        draft.denomination,
        draft.numbers,
        _province_regions(session, draft.provinces, draft.region_type),
    )
    if not quote.is_complete:
        raise PricingRejected(
            f"Bet type '{draft.bet_type}' cannot be priced for the selected provinces",
            quote.unresolved,
        )
    return quote


def place_bet(session: Session, draft: BetDraft) -> Bet:
    """Price ``draft`` and persist it as a pending bet.

    Stake and potential win are computed here and never recomputed. The
    session is flushed so the returned bet has an id; committing is left to
    the caller.
    """
    quote = price_bet(session, draft)
    bet = Bet(
        user_id=draft.user_id,
        bet_date=draft.bet_date or date.today(),
        draw_date=draft.draw_date,
        region_type=draft.region_type,
        provinces=list(draft.provinces),
        bet_type=draft.bet_type,
        bet_variant=draft.bet_variant,
        selection_method=draft.selection_method,
        numbers=list(draft.numbers),
        denomination=to_amount(draft.denomination),
        total_amount=quote.stake_amount,
        potential_win_amount=quote.potential_win_amount,
        status=STATUS_PENDING,
    )
    session.add(bet)
    session.flush()
    return bet


def settle_bet(
    session: Session,
    bet_id: int,
    *,
    registry: Optional[StrategyRegistry] = None,
) -> BetSettlement:
    """Settle one bet; see :meth:`SettlementEngine.settle_one`."""
    engine = SettlementEngine(session, registry=registry)
    return engine.settle_one(bet_id)


def settle_bets(
    session: Session,
    *,
    date_from: Optional[Union[date, str]] = None,
    date_to: Optional[Union[date, str]] = None,
    bet_ids: Optional[Iterable[int]] = None,
    limit: Optional[int] = None,
    registry: Optional[StrategyRegistry] = None,
) -> BatchSummary:
    """Settle pending bets in a draw-date range and/or id list.

    Dates may be given as ``YYYY-MM-DD`` strings. Each bet runs in its own
    savepoint, so the summary is meaningful even when some bets fail.
    """
    engine = SettlementEngine(session, registry=registry)
    return engine.settle_batch(
        date_from=as_date(date_from) if date_from is not None else None,
        date_to=as_date(date_to) if date_to is not None else None,
        bet_ids=bet_ids,
        limit=limit,
    )


def submit_draw_result(
    session: Session,
    province_id: str,
    draw_date: Union[date, str],
    tiers: Mapping[str, Sequence[str]],
    *,
    source: str = "manual",
) -> DrawResult:
    """Record an official draw result for ``province_id``.

    Parameters
    ----------
    session : Session
        Active session used for persistence.
    province_id : str
        Registered province the draw belongs to.
    draw_date : Union[date, str]
        Draw date or ``YYYY-MM-DD`` string.
    tiers : Mapping[str, Sequence[str]]
        Tier name (``"special"``, ``"first"``, ..) to its digit-string values.
        Only tiers the province's region publishes are accepted and the
        special prize is required.
    source : str, default: "manual"
        Free-form origin label stored with the record.

    Returns
    -------
    DrawResult
        The newly persisted result.

    Raises
    ------
    ValueError
        If the province is unknown, a result already exists for the date, or
        the tiers do not fit the region's layout.
    """
    province = Province.get_by_province_id(session, province_id)
    if province is None:
        raise ValueError(f"Unknown province '{province_id}'")
    day = as_date(draw_date)

    if DrawResult.get_for(session, province_id, day) is not None:
        raise ValueError(
            f"A draw result for '{province_id}' on {day.isoformat()} already exists"
        )

    allowed = REGION_TIERS.get(province.region)
    if allowed is None:
        raise ValueError(f"Province '{province_id}' has unknown region '{province.region}'")
    unknown = [name for name in tiers if name not in allowed]
    if unknown:
        raise ValueError(
            f"Tiers {sorted(unknown)} are not published in region {province.region}"
        )
    if not tiers.get("special"):
        raise ValueError("The special prize is required")

    result = DrawResult(province_id=province_id, draw_date=day, source=source)
    for name, values in tiers.items():
        if isinstance(values, str) or not isinstance(values, Sequence):
            raise ValueError(f"Tier '{name}' must be a list of numbers")
        for value in values:
            if not isinstance(value, str) or not value.isdigit():
                raise ValueError(f"Tier '{name}' holds a non-digit value {value!r}")
        result.set_tier_values(name, list(values))

    session.add(result)
    session.flush()
    return result


def diagnose_pending_bets(
    session: Session,
    draw_date: Optional[Union[date, str]] = None,
    *,
    registry: Optional[StrategyRegistry] = None,
) -> dict:
    """Report why pending bets are (or would be) left unsettled.

    Nothing is modified. The report lists pending counts, draw results not
    yet published, bet types that are unknown or have no settlement rule,
    regions a bet type has no rules for, and variants a bet type does not
    declare.

    Returns
    -------
    dict
        ``{"total_pending", "needs_review", "draw_dates", "bet_types",
        "results_available", "issues"}`` where ``issues`` is a list of
        ``{"type", "detail"}`` entries.
    """
    active_registry = registry or DEFAULT_STRATEGY_REGISTRY
    stmt = select(Bet).where(Bet.status == STATUS_PENDING)
    if draw_date is not None:
        stmt = stmt.where(Bet.draw_date == as_date(draw_date))
    pending = list(session.scalars(stmt.order_by(Bet.draw_date, Bet.id)))

    report: dict = {
        "total_pending": len(pending),
        "needs_review": sum(1 for bet in pending if bet.needs_review),
        "draw_dates": sorted({bet.draw_date.isoformat() for bet in pending}),
        "bet_types": dict(Counter(bet.bet_type for bet in pending)),
        "results_available": 0,
        "issues": [],
    }
    if not pending:
        return report

    province_ids = sorted({pid for bet in pending for pid in bet.provinces})
    regions = Province.region_map(session, province_ids)

    wanted = sorted({(pid, bet.draw_date) for bet in pending for pid in bet.provinces})
    published = {
        (pid, day)
        for pid, day in session.execute(
            select(DrawResult.province_id, DrawResult.draw_date).where(
                DrawResult.province_id.in_(province_ids),
                DrawResult.draw_date.in_(sorted({day for _, day in wanted})),
            )
        )
    }
    missing = [
        {"province_id": pid, "draw_date": day.isoformat()}
        for pid, day in wanted
        if (pid, day) not in published
    ]
    report["results_available"] = len(wanted) - len(missing)

    bet_types = {
        bt.bet_type_id: bt
        for bt in session.scalars(
            select(BetType).where(BetType.bet_type_id.in_(list(report["bet_types"])))
        )
    }

    unknown_types: list[str] = []
    unimplemented: list[str] = []
    unsupported: set[tuple[str, str]] = set()
    unresolved: dict[tuple[str, Optional[str], str], Unresolved] = {}
    checked: set[tuple[str, Optional[str], str]] = set()
    invalid_variants: list[dict] = []
    for bet in pending:
        bet_type = bet_types.get(bet.bet_type)
        if bet_type is None:
            if bet.bet_type not in unknown_types:
                unknown_types.append(bet.bet_type)
            continue
        if not active_registry.is_implemented(bet.bet_type):
            if bet.bet_type not in unimplemented:
                unimplemented.append(bet.bet_type)
        invalid = check_variant(bet_type, bet.bet_variant)
        if invalid is not None:
            invalid_variants.append(
                {"bet_id": bet.id, "bet_type": bet.bet_type, "variant": bet.bet_variant}
            )
            continue
        for pid in bet.provinces:
            region = regions.get(pid, bet.region_type)
            key = (bet.bet_type, bet.bet_variant, region)
            if key in checked:
                continue
            checked.add(key)
            resolution = resolve_config(bet_type, bet.bet_variant, region)
            for error in resolution.errors:
                if error.code == "UNSUPPORTED_REGION":
                    unsupported.add((bet.bet_type, region))
                elif error.code != "UNRESOLVED_CONDITION":
                    unresolved[key] = error

    issues = report["issues"]
    if missing:
        issues.append({"type": "missing_results", "detail": missing})
    if unknown_types:
        issues.append({"type": "unknown_bet_types", "detail": sorted(unknown_types)})
    if unimplemented:
        issues.append({"type": "unimplemented_bet_types", "detail": sorted(unimplemented)})
    if unsupported:
        issues.append(
            {
                "type": "unsupported_regions",
                "detail": [
                    {"bet_type": bt, "region": region} for bt, region in sorted(unsupported)
                ],
            }
        )
    if invalid_variants:
        issues.append({"type": "invalid_variants", "detail": invalid_variants})
    if unresolved:
        issues.append(
            {
                "type": "unresolved_config",
                "detail": [
                    {"bet_type": bt, "variant": variant, "region": region, **error.as_dict()}
                    for (bt, variant, region), error in unresolved.items()
                ],
            }
        )
    return report


def count_pending_bets(session: Session, draw_date: Optional[Union[date, str]] = None) -> int:
    """Number of bets still waiting for settlement."""
    stmt = select(func.count()).select_from(Bet).where(Bet.status == STATUS_PENDING)
    if draw_date is not None:
        stmt = stmt.where(Bet.draw_date == as_date(draw_date))
    return session.scalar(stmt) or 0


__all__ = [
    "count_pending_bets",
    "diagnose_pending_bets",
    "place_bet",
    "price_bet",
    "settle_bet",
    "settle_bets",
    "submit_draw_result",
]
