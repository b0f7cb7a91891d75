from __future__ import annotations

import unittest
from collections import Counter
from math import factorial, prod

from lotwager.settlement.errors import InvalidSelection
from lotwager.settlement.numbers import (
    ALL_TWO_DIGIT,
    ZODIAC_GROUPS,
    generate_numbers,
    high_low_numbers,
    merge_unique,
    permutations,
    sequence_numbers,
    validate_numbers,
    zodiac_numbers,
)


class ZodiacTests(unittest.TestCase):
    def test_groups_partition_all_two_digit_numbers(self) -> None:
        seen: list[str] = []
        for group in ZODIAC_GROUPS:
            seen.extend(zodiac_numbers(group))
        self.assertEqual(len(seen), 100)
        self.assertEqual(sorted(seen), list(ALL_TWO_DIGIT))

    def test_known_group(self) -> None:
        self.assertEqual(
            zodiac_numbers("ty"), ["00", "12", "24", "36", "48", "60", "72", "84", "96"]
        )
        self.assertEqual(zodiac_numbers("hoi")[0], "11")

    def test_unknown_group(self) -> None:
        with self.assertRaises(InvalidSelection):
            zodiac_numbers("dragon")


class PermutationTests(unittest.TestCase):
    def _expected_count(self, number: str) -> int:
        return factorial(len(number)) // prod(factorial(r) for r in Counter(number).values())

    def test_cardinality_follows_multiset_rule(self) -> None:
        for number in ("12", "123", "112", "1122", "1234", "9", "10203"):
            with self.subTest(number=number):
                result = permutations(number)
                self.assertEqual(len(result), self._expected_count(number))
                self.assertEqual(len(result), len(set(result)))
                self.assertTrue(all(sorted(p) == sorted(number) for p in result))

    def test_all_equal_digits_yield_one(self) -> None:
        self.assertEqual(permutations("777"), ["777"])

    def test_output_is_sorted(self) -> None:
        self.assertEqual(permutations("121"), ["112", "121", "211"])

    def test_rejects_bad_input(self) -> None:
        for bad in ("", "1a", "12 ", "１２"):
            with self.subTest(bad=bad):
                with self.assertRaises(InvalidSelection):
                    permutations(bad)
        with self.assertRaises(InvalidSelection):
            permutations("123", digit_count=2)
        with self.assertRaises(InvalidSelection):
            permutations("1234567")


class HighLowTests(unittest.TestCase):
    def test_halves_and_parity(self) -> None:
        self.assertEqual(high_low_numbers("high"), [f"{n}" for n in range(50, 100)])
        self.assertEqual(len(high_low_numbers("low")), 50)
        self.assertEqual(high_low_numbers("low")[0], "00")
        self.assertTrue(all(int(n) % 2 == 0 for n in high_low_numbers("even")))
        self.assertEqual(len(high_low_numbers("odd")), 50)

    def test_intersections(self) -> None:
        self.assertEqual(len(high_low_numbers("high_even")), 25)
        self.assertEqual(high_low_numbers("low_odd")[:3], ["01", "03", "05"])
        union = set()
        for key in ("high_even", "high_odd", "low_even", "low_odd"):
            union.update(high_low_numbers(key))
        self.assertEqual(union, set(ALL_TWO_DIGIT))

    def test_unknown_key(self) -> None:
        with self.assertRaises(InvalidSelection):
            high_low_numbers("middle")


class SequenceTests(unittest.TestCase):
    def test_fixed_digit_sequences(self) -> None:
        self.assertEqual(sequence_numbers("tens", "3")[:3], ["30", "31", "32"])
        self.assertEqual(sequence_numbers("units", "3")[:3], ["03", "13", "23"])
        with self.assertRaises(InvalidSelection):
            sequence_numbers("tens", "34")
        with self.assertRaises(InvalidSelection):
            sequence_numbers("units")

    def test_predefined_sequences(self) -> None:
        self.assertEqual(len(sequence_numbers("doubles")), 10)
        self.assertEqual(
            sequence_numbers("ascending"),
            ["01", "12", "23", "34", "45", "56", "67", "78", "89"],
        )
        self.assertEqual(sequence_numbers("descending")[-1], "98")
        self.assertEqual(
            sequence_numbers("sum_nine"),
            ["09", "18", "27", "36", "45", "54", "63", "72", "81", "90"],
        )
        self.assertEqual(len(sequence_numbers("cross")), 20)

    def test_unknown_sequence(self) -> None:
        with self.assertRaises(InvalidSelection):
            sequence_numbers("fibonacci")


class GenerateNumbersTests(unittest.TestCase):
    def test_dispatch(self) -> None:
        self.assertEqual(generate_numbers("zodiac", "ty"), zodiac_numbers("ty"))
        self.assertEqual(generate_numbers("permutation", value="12"), ["12", "21"])
        self.assertEqual(generate_numbers("sequence", "tens", "0")[1], "01")
        self.assertEqual(generate_numbers("high_low", "low_even")[0], "00")
        self.assertEqual(generate_numbers("manual", value=["07", "70"]), ["07", "70"])

    def test_manual_checks_digit_count(self) -> None:
        with self.assertRaises(InvalidSelection):
            generate_numbers("manual", value=["07", "123"], digit_count=2)
        with self.assertRaises(InvalidSelection):
            generate_numbers("manual", value="07")
        with self.assertRaises(InvalidSelection):
            validate_numbers([])

    def test_unknown_method(self) -> None:
        with self.assertRaises(InvalidSelection):
            generate_numbers("astrology", "ty")

    def test_merge_unique_keeps_first_seen_order(self) -> None:
        self.assertEqual(merge_unique(["12", "21"], ["21", "33"]), ["12", "21", "33"])


if __name__ == "__main__":
    unittest.main()
