"""Settlement of pending bets against published draw results."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional

from dotenv import load_dotenv
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.utils import dt_iso
from ..models import (
    Bet,
    BetType,
    DrawResult,
    Province,
    STATUS_LOST,
    STATUS_PENDING,
    STATUS_WON,
    Transaction,
    TRANSACTION_WIN,
)
from .config import Unresolved, check_variant, resolve_ratio
from .errors import (
    ConfigurationError,
    MalformedBet,
    SettlementError,
    UnimplementedBetType,
    UnknownBetType,
)
from .matching import (
    BetView,
    DEFAULT_STRATEGY_REGISTRY,
    SettlementOutcome,
    StrategyRegistry,
)

load_dotenv()

logger = logging.getLogger(__name__)

RESULT_WON = "won"
RESULT_LOST = "lost"
RESULT_NO_RESULT = "no_result"
RESULT_SKIPPED = "skipped"
RESULT_ERROR = "error"

NO_RESULT = "NO_RESULT"
DATABASE_ERROR = "DATABASE_ERROR"
UNEXPECTED_ERROR = "UNEXPECTED_ERROR"

FALLBACK_BATCH_LIMIT = 200


def batch_limit_from_env() -> int:
    """Return ``SETTLEMENT_BATCH_LIMIT`` or the built-in default."""
    raw = os.getenv("SETTLEMENT_BATCH_LIMIT")
    if raw is None or not raw.strip():
        return FALLBACK_BATCH_LIMIT
    try:
        limit = int(raw)
    except ValueError as exc:
        raise ValueError(f"SETTLEMENT_BATCH_LIMIT must be an integer, got {raw!r}") from exc
    if limit <= 0:
        raise ValueError("SETTLEMENT_BATCH_LIMIT must be positive")
    return limit


@dataclass
class BetSettlement:
    """Outcome of one settlement attempt.

    Attributes
    ----------
    bet_id : int
        Bet that was processed.
    status : str
        ``"won"``, ``"lost"``, ``"no_result"``, ``"skipped"`` (already
        terminal, or settled concurrently) or ``"error"``.
    win_amount : Optional[Decimal]
        Amount credited; ``0`` for losses, stored value for skipped bets.
    outcomes : list[SettlementOutcome]
        One evaluated outcome per province.
    code : Optional[str]
        ``NO_RESULT`` or the error code when not settled.
    detail : Optional[str]
        Human-readable explanation accompanying ``code``.
    """

    bet_id: int
    status: str
    win_amount: Optional[Decimal] = None
    outcomes: list[SettlementOutcome] = field(default_factory=list)
    code: Optional[str] = None
    detail: Optional[str] = None

    @property
    def match_count(self) -> int:
        return sum(outcome.match_count for outcome in self.outcomes)


@dataclass
class BatchSummary:
    """Aggregate of a settlement pass."""

    processed: int = 0
    won: int = 0
    lost: int = 0
    no_result: int = 0
    skipped: int = 0
    errored: int = 0
    total_win_amount: Decimal = Decimal("0")
    errors: list[dict] = field(default_factory=list)

    def add(self, result: BetSettlement) -> None:
        self.processed += 1
        if result.status == RESULT_WON:
            self.won += 1
            self.total_win_amount += result.win_amount or Decimal("0")
        elif result.status == RESULT_LOST:
            self.lost += 1
        elif result.status == RESULT_NO_RESULT:
            self.no_result += 1
        elif result.status == RESULT_SKIPPED:
            self.skipped += 1
        else:
            self.errored += 1
            self.errors.append(
                {"bet_id": result.bet_id, "code": result.code, "detail": result.detail}
            )


class SettlementEngine:
    """Drive pending bets to a terminal status with an audited payout."""

    def __init__(
        self,
        session: Session,
        *,
        registry: Optional[StrategyRegistry] = None,
        batch_limit: Optional[int] = None,
    ) -> None:
        """Create a settlement engine bound to a SQLAlchemy session.

        Parameters
        ----------
        session : Session
            Active session used for lookups and the status transition.
        registry : Optional[StrategyRegistry], default: None
            Match strategies keyed by bet type id. Typically omitted, in which
            case the default registry is used.
        batch_limit : Optional[int], default: None
            Maximum number of bets per :meth:`settle_batch` call. Falls back
            to ``SETTLEMENT_BATCH_LIMIT``.
        """
        self._session = session
        self._registry = registry or DEFAULT_STRATEGY_REGISTRY
        self._batch_limit = batch_limit if batch_limit is not None else batch_limit_from_env()

    def settle_one(self, bet_id: int) -> BetSettlement:
        """Settle a single bet.

        Parameters
        ----------
        bet_id : int
            Primary key of the bet.

        Returns
        -------
        BetSettlement
            ``won``/``lost`` after a transition, ``no_result`` while any draw
            result is missing, ``skipped`` for a terminal bet, or ``error``
            with the code of the configuration, data or domain problem. A
            configuration problem also flags the bet with ``needs_review``.

        Raises
        ------
        ValueError
            If no bet has id ``bet_id``.
        """
        bet = self._session.get(Bet, bet_id)
        if bet is None:
            raise ValueError(f"Bet {bet_id} does not exist")
        if bet.status != STATUS_PENDING:
            return BetSettlement(bet_id=bet.id, status=RESULT_SKIPPED, win_amount=bet.win_amount)

        try:
            return self._settle_pending(bet)
        except SettlementError as exc:
            logger.warning("Bet %s not settled: %s", bet.id, exc)
            self._record_failure(bet, exc)
            return BetSettlement(
                bet_id=bet.id, status=RESULT_ERROR, code=exc.code, detail=exc.detail
            )

    def settle_batch(
        self,
        *,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        bet_ids: Optional[Iterable[int]] = None,
        limit: Optional[int] = None,
    ) -> BatchSummary:
        """Settle pending bets matching the criteria, each in its own savepoint.

        Parameters
        ----------
        date_from, date_to : Optional[date]
            Inclusive draw-date range.
        bet_ids : Optional[Iterable[int]]
            Restrict the pass to these bets.
        limit : Optional[int]
            Upper bound on bets processed; defaults to the engine batch limit.

        Returns
        -------
        BatchSummary
            Counts per result and one error entry per failed bet. A failing
            bet never stops the remaining ones.
        """
        candidates = self.pending_bet_ids(
            date_from=date_from, date_to=date_to, bet_ids=bet_ids, limit=limit
        )
        summary = BatchSummary()
        for bet_id in candidates:
            try:
                with self._session.begin_nested():
                    result = self.settle_one(bet_id)
            except SQLAlchemyError as exc:
                logger.exception("Database error while settling bet %s", bet_id)
                result = BetSettlement(
                    bet_id=bet_id, status=RESULT_ERROR, code=DATABASE_ERROR, detail=str(exc)
                )
            except Exception as exc:
                logger.exception("Unexpected error while settling bet %s", bet_id)
                result = BetSettlement(
                    bet_id=bet_id, status=RESULT_ERROR, code=UNEXPECTED_ERROR, detail=repr(exc)
                )
            summary.add(result)

        logger.info(
            "Settlement pass: processed=%d won=%d lost=%d no_result=%d skipped=%d errored=%d",
            summary.processed,
            summary.won,
            summary.lost,
            summary.no_result,
            summary.skipped,
            summary.errored,
        )
        return summary

    def pending_bet_ids(
        self,
        *,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        bet_ids: Optional[Iterable[int]] = None,
        limit: Optional[int] = None,
    ) -> list[int]:
        """Ids of pending bets matching the criteria, oldest draw first."""
        effective_limit = limit if limit is not None else self._batch_limit
        if effective_limit <= 0:
            raise ValueError("limit must be a positive integer")
        if date_from is not None and date_to is not None and date_from > date_to:
            raise ValueError("date_from must not be after date_to")

        stmt = select(Bet.id).where(Bet.status == STATUS_PENDING)
        if date_from is not None:
            stmt = stmt.where(Bet.draw_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(Bet.draw_date <= date_to)
        if bet_ids is not None:
            ids = list(bet_ids)
            if not ids:
                return []
            stmt = stmt.where(Bet.id.in_(ids))
        stmt = stmt.order_by(Bet.draw_date, Bet.id).limit(effective_limit)
        return list(self._session.scalars(stmt))

    def _settle_pending(self, bet: Bet) -> BetSettlement:
        _check_bet_row(bet)
        bet_type = BetType.get_by_bet_type_id(self._session, bet.bet_type)
        if bet_type is None:
            raise UnknownBetType(f"bet type '{bet.bet_type}' is not configured")

        invalid = check_variant(bet_type, bet.bet_variant)
        if invalid is not None:
            raise invalid.to_error(bet.bet_type)

        regions = Province.region_map(self._session, bet.provinces)
        draws: list[tuple[str, str, DrawResult]] = []
        missing: list[str] = []
        for province_id in bet.provinces:
            draw = DrawResult.get_for(self._session, province_id, bet.draw_date)
            if draw is None:
                missing.append(province_id)
            else:
                draws.append((province_id, regions.get(province_id, bet.region_type), draw))
        if missing:
            logger.debug("Bet %s waiting for results: %s", bet.id, ", ".join(missing))
            if bet.settlement_error is not None or bet.needs_review:
                self._clear_failure(bet)
            return BetSettlement(
                bet_id=bet.id,
                status=RESULT_NO_RESULT,
                code=NO_RESULT,
                detail=f"no draw result for {', '.join(missing)} on {bet.draw_date.isoformat()}",
            )

        denomination = Decimal(bet.denomination)
        win_amount = Decimal("0")
        outcomes: list[SettlementOutcome] = []
        province_details: list[dict] = []
        for province_id, region, draw in draws:
            view = BetView(
                bet_type=bet.bet_type,
                variant=bet.bet_variant,
                numbers=list(bet.numbers),
                region=region,
                province_id=province_id,
            )
            outcome = self._registry.evaluate(draw, view)
            if not outcome.is_implemented:
                raise UnimplementedBetType(outcome.detail or bet.bet_type, bet_type=bet.bet_type)

            match_details = []
            ratios = set()
            for match in outcome.matches:
                ratio = resolve_ratio(bet_type, bet.bet_variant, condition=match.half)
                if isinstance(ratio, Unresolved):
                    raise ratio.to_error(bet.bet_type)
                amount = denomination * ratio
                win_amount += amount
                ratios.add(ratio)
                entry = match.as_dict()
                entry.update({"ratio": str(ratio), "amount": str(amount)})
                match_details.append(entry)
                logger.debug(
                    "Bet %s matched %s on %s/%s (%s) ratio=%s",
                    bet.id,
                    match.number,
                    province_id,
                    match.tier,
                    match.half,
                    ratio,
                )
            if len(ratios) == 1:
                outcome.ratio = ratios.pop()
            outcomes.append(outcome)
            province_details.append(
                {
                    "province_id": province_id,
                    "region": region,
                    "draw_result_id": draw.id,
                    "match_count": outcome.match_count,
                    "matches": match_details,
                }
            )

        status = STATUS_WON if win_amount > 0 else STATUS_LOST
        details = {
            "bet_type": bet.bet_type,
            "variant": bet.bet_variant,
            "match_count": sum(o.match_count for o in outcomes),
            "win_amount": str(win_amount),
            "provinces": province_details,
        }
        if not self._transition(bet, status, win_amount, details):
            return BetSettlement(bet_id=bet.id, status=RESULT_SKIPPED, win_amount=bet.win_amount)

        logger.info("Bet %s settled as %s (win_amount=%s)", bet.id, status, win_amount)
        return BetSettlement(
            bet_id=bet.id,
            status=RESULT_WON if status == STATUS_WON else RESULT_LOST,
            win_amount=win_amount,
            outcomes=outcomes,
        )

    def _transition(self, bet: Bet, status: str, win_amount: Decimal, details: dict) -> bool:
        """Move ``bet`` out of pending unless another pass already did.

        Returns ``True`` when this call changed the row; only then is the win
        transaction written.
        """
        now = datetime.now(timezone.utc)
        details = dict(details, settled_at=dt_iso(now))
        result = self._session.execute(
            update(Bet)
            .where(Bet.id == bet.id, Bet.status == STATUS_PENDING)
            .values(
                status=status,
                win_amount=win_amount,
                winning_details=details,
                settled_at=now,
                settlement_error=None,
                needs_review=False,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        changed = result.rowcount == 1
        if not changed:
            logger.info("Bet %s was settled by another pass; skipping", bet.id)
        elif status == STATUS_WON:
            self._session.add(
                Transaction(
                    user_id=bet.user_id,
                    bet_id=bet.id,
                    amount=win_amount,
                    type=TRANSACTION_WIN,
                    status="completed",
                    description=f"Winnings for bet {bet.id} ({bet.bet_type})",
                )
            )
        self._session.flush()
        self._session.refresh(bet)
        return changed

    def _clear_failure(self, bet: Bet) -> None:
        # An earlier failure no longer applies once the bet is only waiting.
        self._session.execute(
            update(Bet)
            .where(Bet.id == bet.id, Bet.status == STATUS_PENDING)
            .values(
                settlement_error=None,
                needs_review=False,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        self._session.flush()
        self._session.refresh(bet)

    def _record_failure(self, bet: Bet, exc: SettlementError) -> None:
        self._session.execute(
            update(Bet)
            .where(Bet.id == bet.id, Bet.status == STATUS_PENDING)
            .values(
                settlement_error=str(exc),
                needs_review=isinstance(exc, ConfigurationError),
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        self._session.flush()
        self._session.refresh(bet)


def _check_bet_row(bet: Bet) -> None:
    """Raise :class:`MalformedBet` when stored numbers or provinces are unusable."""
    numbers = bet.numbers
    if not isinstance(numbers, list) or not numbers:
        raise MalformedBet("numbers must be a non-empty list", bet_type=bet.bet_type)
    for number in numbers:
        if not isinstance(number, str) or not number.isdigit() or not number.isascii():
            raise MalformedBet(
                f"bet number {number!r} is not a digit string", bet_type=bet.bet_type
            )
    provinces = bet.provinces
    if not isinstance(provinces, list) or not provinces:
        raise MalformedBet("provinces must be a non-empty list", bet_type=bet.bet_type)
    if not all(isinstance(pid, str) and pid for pid in provinces):
        raise MalformedBet("province ids must be non-empty strings", bet_type=bet.bet_type)
    if len(set(provinces)) != len(provinces):
        raise MalformedBet("provinces must not repeat", bet_type=bet.bet_type)


__all__ = [
    "BatchSummary",
    "BetSettlement",
    "NO_RESULT",
    "RESULT_ERROR",
    "RESULT_LOST",
    "RESULT_NO_RESULT",
    "RESULT_SKIPPED",
    "RESULT_WON",
    "SettlementEngine",
    "UNEXPECTED_ERROR",
    "batch_limit_from_env",
]
