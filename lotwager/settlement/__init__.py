"""Pricing, matching and settlement of lottery bets."""

from .config import (
    ConditionalRule,
    ConfigResolution,
    ScalarRule,
    Unresolved,
    VariantRule,
    parse_rule,
    resolve_config,
    resolve_ratio,
    resolve_value,
)
from .engine import BatchSummary, BetSettlement, SettlementEngine
from .errors import (
    ConfigurationError,
    DataError,
    DomainError,
    InvalidSelection,
    PricingRejected,
    SettlementError,
)
from .matching import (
    BetView,
    DEFAULT_STRATEGY_REGISTRY,
    Match,
    MatchStrategy,
    SettlementOutcome,
    StrategyRegistry,
)
from .numbers import generate_numbers, permutations, zodiac_numbers
from .pricing import BetDraft, PriceQuote, price

__all__ = [
    "BatchSummary",
    "BetDraft",
    "BetSettlement",
    "BetView",
    "ConditionalRule",
    "ConfigResolution",
    "ConfigurationError",
    "DEFAULT_STRATEGY_REGISTRY",
    "DataError",
    "DomainError",
    "InvalidSelection",
    "Match",
    "MatchStrategy",
    "PriceQuote",
    "PricingRejected",
    "ScalarRule",
    "SettlementEngine",
    "SettlementError",
    "SettlementOutcome",
    "StrategyRegistry",
    "Unresolved",
    "VariantRule",
    "generate_numbers",
    "parse_rule",
    "permutations",
    "price",
    "resolve_config",
    "resolve_ratio",
    "resolve_value",
    "zodiac_numbers",
]
