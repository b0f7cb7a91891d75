"""Exception hierarchy for pricing and settlement.

Every engine condition carries a stable ``code`` so batch summaries and the
``settlement_error`` column can record it without parsing messages.
"""

from __future__ import annotations

from typing import Optional, Sequence


class SettlementError(Exception):
    """Base class for conditions raised by the settlement engine."""

    code = "SETTLEMENT_ERROR"

    def __init__(self, detail: str, *, bet_type: Optional[str] = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.bet_type = bet_type

    def __str__(self) -> str:
        return f"{self.code}: {self.detail}"


class ConfigurationError(SettlementError):
    """The bet type configuration cannot produce a concrete value."""

    code = "CONFIGURATION_ERROR"


class MissingVariantConfig(ConfigurationError):
    code = "MISSING_VARIANT_CONFIG"


class UnresolvedConfig(ConfigurationError):
    code = "UNRESOLVED_CONFIG"


class MalformedRuleShape(ConfigurationError):
    code = "MALFORMED_RULE_SHAPE"


class UnsupportedRegion(ConfigurationError):
    code = "UNSUPPORTED_REGION"


class DataError(SettlementError):
    """Input data (e.g. a draw result) is unusable."""

    code = "DATA_ERROR"


class MalformedDrawResult(DataError):
    code = "MALFORMED_DRAW_RESULT"


class MalformedBet(DataError):
    """A stored bet row holds numbers or provinces no strategy can evaluate."""

    code = "MALFORMED_BET"


class DomainError(SettlementError):
    """The bet itself cannot be evaluated under the known rules."""

    code = "DOMAIN_ERROR"


class UnimplementedBetType(DomainError):
    code = "UNIMPLEMENTED_BET_TYPE"


class InvalidVariant(DomainError):
    code = "INVALID_VARIANT"


class UnknownBetType(DomainError):
    code = "UNKNOWN_BET_TYPE"


# Codes produced by the resolver, mapped to the exception a caller raises
# when it treats the unresolved value as fatal.
ERROR_BY_CODE = {
    cls.code: cls
    for cls in (
        MissingVariantConfig,
        UnresolvedConfig,
        MalformedRuleShape,
        UnsupportedRegion,
        MalformedDrawResult,
        MalformedBet,
        UnimplementedBetType,
        InvalidVariant,
        UnknownBetType,
    )
}


class PricingRejected(ValueError):
    """Raised at placement when a bet cannot be priced completely."""

    def __init__(self, message: str, unresolved: Sequence = ()) -> None:
        super().__init__(message)
        self.unresolved = list(unresolved)


class InvalidSelection(ValueError):
    """Raised by the number generators for out-of-domain input."""


__all__ = [
    "ConfigurationError",
    "DataError",
    "DomainError",
    "ERROR_BY_CODE",
    "InvalidSelection",
    "InvalidVariant",
    "MalformedBet",
    "MalformedDrawResult",
    "MalformedRuleShape",
    "MissingVariantConfig",
    "PricingRejected",
    "SettlementError",
    "UnimplementedBetType",
    "UnknownBetType",
    "UnresolvedConfig",
    "UnsupportedRegion",
]
