"""Resolution of polymorphic bet type configuration.

``bet_multipliers``, ``combination_count`` and ``winning_ratio`` are stored as
raw JSON in one of three shapes::

    75                                   # scalar
    {"b2": 75, "b3": 650}                # variant -> value
    {"xien2": {"default": 17, "3": 20}}  # variant -> condition -> value

:func:`parse_rule` turns the raw value into a tagged rule object once and
:func:`resolve_value` walks it. Nothing here raises for configuration
problems; an :class:`Unresolved` value is returned instead and callers decide
whether it is fatal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Union

from .errors import (
    ERROR_BY_CODE,
    MalformedRuleShape,
    SettlementError,
    UnresolvedConfig,
)

DEFAULT_CONDITION = "default"

MISSING_VARIANT_CONFIG = "MISSING_VARIANT_CONFIG"
UNRESOLVED_CONDITION = "UNRESOLVED_CONDITION"
UNRESOLVED_CONFIG = "UNRESOLVED_CONFIG"
MALFORMED_RULE_SHAPE = "MALFORMED_RULE_SHAPE"
UNSUPPORTED_REGION = "UNSUPPORTED_REGION"
INVALID_VARIANT = "INVALID_VARIANT"


@dataclass(frozen=True)
class ScalarRule:
    """A single value that applies to every variant."""

    value: Decimal


@dataclass(frozen=True)
class VariantRule:
    """Variant id -> value."""

    values: Mapping[str, Decimal]


@dataclass(frozen=True)
class ConditionalRule:
    """Variant id -> condition -> value.

    Variants mapped straight to a number are kept in ``scalars`` and take
    precedence over the conditional entries in ``conditions``.
    """

    scalars: Mapping[str, Decimal]
    conditions: Mapping[str, Mapping[str, Decimal]]


Rule = Union[ScalarRule, VariantRule, ConditionalRule]


@dataclass(frozen=True)
class Unresolved:
    """A configuration value that could not be determined."""

    code: str
    detail: str

    def to_error(self, bet_type: Optional[str] = None) -> SettlementError:
        """Return the exception a caller raises when treating this as fatal."""
        error_cls = ERROR_BY_CODE.get(self.code, UnresolvedConfig)
        return error_cls(self.detail, bet_type=bet_type)

    def as_dict(self) -> dict[str, str]:
        return {"code": self.code, "detail": self.detail}


Resolved = Union[Decimal, Unresolved]


def _to_decimal(raw: Any, where: str) -> Decimal:
    # bool is an int subclass; true/false is never a ratio.
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str, Decimal)):
        raise MalformedRuleShape(f"{where}: expected a number, got {raw!r}")
    try:
        value = Decimal(str(raw))
    except InvalidOperation as exc:
        raise MalformedRuleShape(f"{where}: '{raw}' is not a number") from exc
    if not value.is_finite():
        raise MalformedRuleShape(f"{where}: '{raw}' is not a finite number")
    return value


def parse_rule(raw: Any, *, name: str = "rule") -> Rule:
    """Parse a raw JSON configuration value into a rule object.

    Raises
    ------
    MalformedRuleShape
        If ``raw`` is none of the three supported shapes.
    """
    if isinstance(raw, Mapping):
        scalars: dict[str, Decimal] = {}
        conditions: dict[str, dict[str, Decimal]] = {}
        for variant, entry in raw.items():
            where = f"{name}[{variant}]"
            if isinstance(entry, Mapping):
                conditions[str(variant)] = {
                    str(cond): _to_decimal(value, f"{where}[{cond}]")
                    for cond, value in entry.items()
                }
            else:
                scalars[str(variant)] = _to_decimal(entry, where)
        if conditions:
            return ConditionalRule(scalars=scalars, conditions=conditions)
        return VariantRule(values=scalars)
    return ScalarRule(value=_to_decimal(raw, name))


def resolve_value(
    rule: Rule,
    variant: Optional[str],
    condition: Optional[str] = None,
) -> Resolved:
    """Resolve ``rule`` for ``variant`` and optional ``condition``.

    Order is fixed: a scalar applies regardless of variant; a variant map
    requires ``variant``; for a conditional map, a variant mapped straight to
    a number wins, otherwise ``condition`` is looked up with a fallback to the
    ``"default"`` entry.
    """
    if isinstance(rule, ScalarRule):
        return rule.value

    if variant is None:
        return Unresolved(
            MISSING_VARIANT_CONFIG, "value is keyed by variant but no variant was given"
        )

    if isinstance(rule, VariantRule):
        if variant in rule.values:
            return rule.values[variant]
        return Unresolved(MISSING_VARIANT_CONFIG, f"no value for variant '{variant}'")

    if variant in rule.scalars:
        return rule.scalars[variant]
    if variant not in rule.conditions:
        return Unresolved(MISSING_VARIANT_CONFIG, f"no value for variant '{variant}'")

    by_condition = rule.conditions[variant]
    if condition is not None and condition in by_condition:
        return by_condition[condition]
    if DEFAULT_CONDITION in by_condition:
        return by_condition[DEFAULT_CONDITION]
    return Unresolved(
        UNRESOLVED_CONDITION,
        f"variant '{variant}' has no entry for condition '{condition}' and no default",
    )


def conservative_value(rule: Rule, variant: Optional[str]) -> Resolved:
    """Value used for quoting before the winning condition is known.

    Same as :func:`resolve_value` except that a conditional entry without a
    ``"default"`` falls back to its smallest listed value.
    """
    value = resolve_value(rule, variant)
    if (
        isinstance(value, Unresolved)
        and value.code == UNRESOLVED_CONDITION
        and isinstance(rule, ConditionalRule)
        and rule.conditions.get(variant)
    ):
        return min(rule.conditions[variant].values())
    return value


@dataclass(frozen=True)
class ConfigResolution:
    """Concrete multiplier, combination count and ratio for one region.

    Each field is either a :class:`~decimal.Decimal` or an
    :class:`Unresolved`.
    """

    bet_type: str
    variant: Optional[str]
    region: str
    multiplier: Resolved
    combination_count: Resolved
    ratio: Resolved
    errors: tuple[Unresolved, ...] = field(default=())

    @property
    def is_complete(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        if self.errors:
            raise self.errors[0].to_error(self.bet_type)


def _resolve_field(
    raw: Any,
    name: str,
    variant: Optional[str],
    condition: Optional[str],
    *,
    conservative: bool = False,
) -> Resolved:
    try:
        rule = parse_rule(raw, name=name)
    except MalformedRuleShape as exc:
        return Unresolved(MALFORMED_RULE_SHAPE, exc.detail)
    if conservative:
        return conservative_value(rule, variant)
    return resolve_value(rule, variant, condition)


def check_variant(bet_type, variant: Optional[str]) -> Optional[Unresolved]:
    """Return an :class:`Unresolved` when ``variant`` is not declared on ``bet_type``.

    Types that declare no variants accept any value.
    """
    declared = bet_type.variant_ids
    if variant is None or not declared:
        return None
    if variant not in declared:
        return Unresolved(
            INVALID_VARIANT,
            f"variant '{variant}' is not defined for bet type '{bet_type.bet_type_id}'",
        )
    return None


def resolve_config(
    bet_type,
    variant: Optional[str],
    region: str,
    condition: Optional[str] = None,
    *,
    conservative: bool = False,
) -> ConfigResolution:
    """Resolve every configuration value of ``bet_type`` for one region.

    Parameters
    ----------
    bet_type : BetType
        Configuration row (or any object with the same attributes).
    variant : Optional[str]
        Variant id chosen on the bet.
    region : str
        Region key, ``"M1"`` or ``"M2"``.
    condition : Optional[str], default: None
        Condition key for conditional ratios, e.g. the half of a match.
    conservative : bool, default: False
        Use :func:`conservative_value` for the ratio (quoting).

    Returns
    -------
    ConfigResolution
        Resolved values; ``errors`` lists every unresolved field.
    """
    bet_type_id = bet_type.bet_type_id
    errors: list[Unresolved] = []

    invalid = check_variant(bet_type, variant)
    if invalid is not None:
        return ConfigResolution(
            bet_type=bet_type_id,
            variant=variant,
            region=region,
            multiplier=invalid,
            combination_count=invalid,
            ratio=invalid,
            errors=(invalid,),
        )

    region_rules = bet_type.region_rules or {}
    region_rule = region_rules.get(region) if isinstance(region_rules, Mapping) else None
    if region_rule is None:
        unsupported = Unresolved(
            UNSUPPORTED_REGION,
            f"bet type '{bet_type_id}' has no rules for region '{region}'",
        )
        multiplier: Resolved = unsupported
        combination_count: Resolved = unsupported
        errors.append(unsupported)
    elif not isinstance(region_rule, Mapping):
        malformed = Unresolved(
            MALFORMED_RULE_SHAPE, f"region_rules[{region}] must be an object"
        )
        multiplier = combination_count = malformed
        errors.append(malformed)
    else:
        if "bet_multipliers" in region_rule:
            multiplier = _resolve_field(
                region_rule["bet_multipliers"],
                f"region_rules[{region}].bet_multipliers",
                variant,
                None,
            )
        else:
            multiplier = Unresolved(
                UNRESOLVED_CONFIG, f"region_rules[{region}] has no bet_multipliers"
            )
        if isinstance(multiplier, Unresolved):
            errors.append(multiplier)

        # Combination count is informational and defaults to one.
        combination_count = _resolve_field(
            region_rule.get("combination_count", 1),
            f"region_rules[{region}].combination_count",
            variant,
            None,
        )
        if isinstance(combination_count, Unresolved):
            errors.append(combination_count)

    if bet_type.winning_ratio is None:
        ratio: Resolved = Unresolved(UNRESOLVED_CONFIG, "winning_ratio is not set")
    else:
        ratio = _resolve_field(
            bet_type.winning_ratio,
            "winning_ratio",
            variant,
            condition,
            conservative=conservative,
        )
    if isinstance(ratio, Unresolved):
        errors.append(ratio)

    return ConfigResolution(
        bet_type=bet_type_id,
        variant=variant,
        region=region,
        multiplier=multiplier,
        combination_count=combination_count,
        ratio=ratio,
        errors=tuple(errors),
    )


def resolve_ratio(
    bet_type, variant: Optional[str], condition: Optional[str] = None
) -> Resolved:
    """Resolve only the win ratio of ``bet_type`` (region independent)."""
    invalid = check_variant(bet_type, variant)
    if invalid is not None:
        return invalid
    if bet_type.winning_ratio is None:
        return Unresolved(UNRESOLVED_CONFIG, "winning_ratio is not set")
    return _resolve_field(bet_type.winning_ratio, "winning_ratio", variant, condition)


__all__ = [
    "ConditionalRule",
    "ConfigResolution",
    "DEFAULT_CONDITION",
    "INVALID_VARIANT",
    "MALFORMED_RULE_SHAPE",
    "MISSING_VARIANT_CONFIG",
    "Rule",
    "ScalarRule",
    "UNRESOLVED_CONDITION",
    "UNRESOLVED_CONFIG",
    "UNSUPPORTED_REGION",
    "Unresolved",
    "VariantRule",
    "check_variant",
    "conservative_value",
    "parse_rule",
    "resolve_config",
    "resolve_ratio",
    "resolve_value",
]
