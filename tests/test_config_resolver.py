from __future__ import annotations

import unittest
from decimal import Decimal

from lotwager.models import BetType
from lotwager.settlement.config import (
    ConditionalRule,
    ScalarRule,
    Unresolved,
    VariantRule,
    conservative_value,
    parse_rule,
    resolve_config,
    resolve_ratio,
    resolve_value,
)
from lotwager.settlement.errors import (
    InvalidVariant,
    MalformedRuleShape,
    MissingVariantConfig,
    UnresolvedConfig,
    UnsupportedRegion,
)


def _bet_type(**overrides) -> BetType:
    fields = dict(
        bet_type_id="bao_lo",
        name="Cover",
        variants=[{"id": "b2", "name": "2"}, {"id": "b3", "name": "3"}],
        region_rules={
            "M1": {"bet_multipliers": {"b2": 18, "b3": 17}, "combination_count": 1},
            "M2": {"bet_multipliers": {"b2": 27, "b3": 23}},
        },
        winning_ratio={"b2": 75, "b3": 650},
    )
    fields.update(overrides)
    return BetType(**fields)


class ParseRuleTests(unittest.TestCase):
    def test_scalar(self) -> None:
        self.assertEqual(parse_rule(75), ScalarRule(Decimal("75")))
        self.assertEqual(parse_rule("1.5"), ScalarRule(Decimal("1.5")))

    def test_variant_map(self) -> None:
        rule = parse_rule({"b2": 75, "b3": 650.0})
        self.assertIsInstance(rule, VariantRule)
        self.assertEqual(rule.values["b3"], Decimal("650.0"))

    def test_mixed_map_is_conditional(self) -> None:
        rule = parse_rule({"x2": 17, "da3": {"default": 750, "three_once": 7500}})
        self.assertIsInstance(rule, ConditionalRule)
        self.assertEqual(rule.scalars, {"x2": Decimal("17")})
        self.assertEqual(rule.conditions["da3"]["three_once"], Decimal("7500"))

    def test_malformed_shapes(self) -> None:
        for raw in ([75], True, None, "abc", {"b2": [1]}, {"b2": {"x": {"y": 1}}}, "NaN"):
            with self.subTest(raw=raw):
                with self.assertRaises(MalformedRuleShape):
                    parse_rule(raw)


class ResolveValueTests(unittest.TestCase):
    def test_scalar_ignores_variant(self) -> None:
        rule = parse_rule(75)
        self.assertEqual(resolve_value(rule, None), Decimal("75"))
        self.assertEqual(resolve_value(rule, "anything"), Decimal("75"))

    def test_variant_map_requires_variant(self) -> None:
        rule = parse_rule({"b2": 75})
        self.assertEqual(resolve_value(rule, "b2"), Decimal("75"))
        missing = resolve_value(rule, None)
        self.assertIsInstance(missing, Unresolved)
        self.assertEqual(missing.code, "MISSING_VARIANT_CONFIG")
        self.assertEqual(resolve_value(rule, "b4").code, "MISSING_VARIANT_CONFIG")

    def test_condition_lookup_and_default_fallback(self) -> None:
        rule = parse_rule({"dd": {"head": 70, "default": 75}})
        self.assertEqual(resolve_value(rule, "dd", "head"), Decimal("70"))
        self.assertEqual(resolve_value(rule, "dd", "tail"), Decimal("75"))
        self.assertEqual(resolve_value(rule, "dd"), Decimal("75"))

    def test_condition_without_default_is_unresolved(self) -> None:
        rule = parse_rule({"dd": {"head": 70, "tail": 80}})
        result = resolve_value(rule, "dd", "cover")
        self.assertIsInstance(result, Unresolved)
        self.assertEqual(result.code, "UNRESOLVED_CONDITION")

    def test_variant_scalar_wins_in_mixed_map(self) -> None:
        rule = parse_rule({"x2": 17, "x3": {"default": 65}})
        self.assertEqual(resolve_value(rule, "x2", "pair"), Decimal("17"))
        self.assertEqual(resolve_value(rule, "x3", "pair"), Decimal("65"))

    def test_conservative_value_uses_default_then_minimum(self) -> None:
        with_default = parse_rule({"da3": {"two_once": 750, "three_once": 7500, "default": 1000}})
        self.assertEqual(conservative_value(with_default, "da3"), Decimal("1000"))
        without_default = parse_rule({"da3": {"two_once": 750, "three_once": 7500}})
        self.assertEqual(conservative_value(without_default, "da3"), Decimal("750"))
        self.assertEqual(conservative_value(parse_rule(75), None), Decimal("75"))


class ResolveConfigTests(unittest.TestCase):
    def test_complete_resolution(self) -> None:
        resolution = resolve_config(_bet_type(), "b2", "M1")
        self.assertTrue(resolution.is_complete)
        self.assertEqual(resolution.multiplier, Decimal("18"))
        self.assertEqual(resolution.combination_count, Decimal("1"))
        self.assertEqual(resolution.ratio, Decimal("75"))
        resolution.raise_for_errors()

    def test_combination_count_defaults_to_one(self) -> None:
        resolution = resolve_config(_bet_type(), "b3", "M2")
        self.assertEqual(resolution.combination_count, Decimal("1"))
        self.assertEqual(resolution.multiplier, Decimal("23"))

    def test_unsupported_region(self) -> None:
        bet_type = _bet_type(region_rules={"M1": {"bet_multipliers": 1}})
        resolution = resolve_config(bet_type, "b2", "M2")
        self.assertFalse(resolution.is_complete)
        self.assertEqual(resolution.errors[0].code, "UNSUPPORTED_REGION")
        with self.assertRaises(UnsupportedRegion):
            resolution.raise_for_errors()

    def test_undeclared_variant(self) -> None:
        resolution = resolve_config(_bet_type(), "b9", "M1")
        self.assertEqual([e.code for e in resolution.errors], ["INVALID_VARIANT"])
        with self.assertRaises(InvalidVariant):
            resolution.raise_for_errors()

    def test_variant_missing_from_multiplier_map(self) -> None:
        bet_type = _bet_type(region_rules={"M1": {"bet_multipliers": {"b2": 18}}})
        resolution = resolve_config(bet_type, "b3", "M1")
        self.assertEqual(resolution.multiplier.code, "MISSING_VARIANT_CONFIG")
        self.assertEqual(resolution.ratio, Decimal("650"))
        with self.assertRaises(MissingVariantConfig):
            resolution.raise_for_errors()

    def test_missing_multiplier_and_malformed_ratio(self) -> None:
        bet_type = _bet_type(region_rules={"M1": {"combination_count": 1}}, winning_ratio=[75])
        resolution = resolve_config(bet_type, "b2", "M1")
        codes = [e.code for e in resolution.errors]
        self.assertEqual(codes, ["UNRESOLVED_CONFIG", "MALFORMED_RULE_SHAPE"])
        with self.assertRaises(UnresolvedConfig):
            resolution.raise_for_errors()

    def test_type_without_variants_accepts_missing_variant(self) -> None:
        bet_type = BetType(
            bet_type_id="nt",
            name="First prize",
            region_rules={"M2": {"bet_multipliers": 1}},
            winning_ratio=75,
        )
        resolution = resolve_config(bet_type, None, "M2")
        self.assertTrue(resolution.is_complete)
        self.assertEqual(resolve_ratio(bet_type, None, "tail"), Decimal("75"))


if __name__ == "__main__":
    unittest.main()
