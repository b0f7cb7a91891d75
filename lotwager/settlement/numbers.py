"""Number-set generators used by the selection methods.

Every generator returns zero-padded digit strings and raises
:class:`~lotwager.settlement.errors.InvalidSelection` for input outside its
domain instead of returning a partial result.
"""

from __future__ import annotations

from itertools import permutations as _orderings
from typing import Iterable, Optional, Sequence

from .errors import InvalidSelection

ALL_TWO_DIGIT = tuple(f"{n:02d}" for n in range(100))

# Group key -> remainder mod 12; the twelve groups partition 00..99.
ZODIAC_GROUPS = (
    "ty",
    "suu",
    "dan",
    "mao",
    "thin",
    "ti",
    "ngo",
    "mui",
    "than",
    "dau",
    "tuat",
    "hoi",
)

HIGH_LOW_KEYS = (
    "high",
    "low",
    "even",
    "odd",
    "high_even",
    "high_odd",
    "low_even",
    "low_odd",
)

SEQUENCE_KEYS = (
    "tens",
    "units",
    "doubles",
    "ascending",
    "descending",
    "sum_nine",
    "cross",
)

SELECTION_METHODS = ("manual", "zodiac", "permutation", "high_low", "sequence")

MAX_PERMUTATION_DIGITS = 6


def _require_digits(value: str, *, length: Optional[int] = None, what: str = "number") -> str:
    if not isinstance(value, str):
        raise InvalidSelection(f"{what} must be a string of digits, got {value!r}")
    if not value or not value.isdigit() or not value.isascii():
        raise InvalidSelection(f"{what} '{value}' must contain only digits 0-9")
    if length is not None and len(value) != length:
        raise InvalidSelection(f"{what} '{value}' must have exactly {length} digits")
    return value


def zodiac_numbers(group: str) -> list[str]:
    """Return the two-digit numbers of zodiac ``group`` (e.g. ``"ty"``)."""
    try:
        index = ZODIAC_GROUPS.index(group)
    except ValueError as exc:
        raise InvalidSelection(f"Unknown zodiac group '{group}'") from exc
    return [n for n in ALL_TWO_DIGIT if int(n) % 12 == index]


def permutations(number: str, *, digit_count: Optional[int] = None) -> list[str]:
    """Every distinct ordering of the digits of ``number``, lexicographically sorted.

    The result has ``k! / prod(r_i!)`` entries where ``r_i`` are the repeat
    counts of each digit; ``"111"`` yields ``["111"]``.

    Parameters
    ----------
    number : str
        Digit string to permute.
    digit_count : Optional[int], default: None
        When given, ``number`` must have exactly this many digits.
    """
    _require_digits(number, length=digit_count)
    if len(number) > MAX_PERMUTATION_DIGITS:
        raise InvalidSelection(
            f"number '{number}' is longer than {MAX_PERMUTATION_DIGITS} digits"
        )
    return sorted({"".join(p) for p in _orderings(number)})


def high_low_numbers(key: str) -> list[str]:
    """Numbers in one of the high/low and even/odd partitions of 00..99.

    ``high`` is 50-99 and ``low`` is 00-49. Combined keys such as
    ``high_even`` are the intersection of the two partitions.
    """
    if key not in HIGH_LOW_KEYS:
        raise InvalidSelection(f"Unknown high/low key '{key}'")

    def keep(n: int) -> bool:
        for part in key.split("_"):
            if part == "high" and n < 50:
                return False
            if part == "low" and n >= 50:
                return False
            if part == "even" and n % 2:
                return False
            if part == "odd" and not n % 2:
                return False
        return True

    return [s for s in ALL_TWO_DIGIT if keep(int(s))]


def sequence_numbers(key: str, value: Optional[str] = None) -> list[str]:
    """Numbers of a fixed sequence.

    ``tens`` and ``units`` take a single digit ``value`` (``tens`` with ``"3"``
    gives 30..39, ``units`` with ``"3"`` gives 03, 13, .., 93). The others are
    fixed: ``doubles`` (00, 11, ..), ``ascending`` (01, 12, .., 89),
    ``descending`` (10, 21, .., 98), ``sum_nine`` (09, 18, .., 90) and
    ``cross`` (doubles plus sum_nine).
    """
    if key in ("tens", "units"):
        if value is None:
            raise InvalidSelection(f"sequence '{key}' requires a digit")
        digit = _require_digits(value, length=1, what="digit")
        if key == "tens":
            return [f"{digit}{i}" for i in range(10)]
        return [f"{i}{digit}" for i in range(10)]
    if key == "doubles":
        return [f"{i}{i}" for i in range(10)]
    if key == "ascending":
        return [f"{i}{i + 1}" for i in range(9)]
    if key == "descending":
        return [f"{i + 1}{i}" for i in range(9)]
    if key == "sum_nine":
        return [f"{i}{9 - i}" for i in range(10)]
    if key == "cross":
        return merge_unique(sequence_numbers("doubles"), sequence_numbers("sum_nine"))
    raise InvalidSelection(f"Unknown sequence '{key}'")


def validate_numbers(numbers: Iterable[str], digit_count: Optional[int] = None) -> list[str]:
    """Check manually entered numbers; returns them as a list unchanged."""
    checked = [_require_digits(n, length=digit_count) for n in numbers]
    if not checked:
        raise InvalidSelection("at least one number is required")
    return checked


def merge_unique(*groups: Sequence[str]) -> list[str]:
    """Concatenate number groups, dropping repeats and keeping first-seen order."""
    return list(dict.fromkeys(n for group in groups for n in group))


def generate_numbers(
    method: str,
    key: Optional[str] = None,
    value=None,
    *,
    digit_count: Optional[int] = None,
) -> list[str]:
    """Dispatch to the generator for selection ``method``.

    Parameters
    ----------
    method : str
        One of ``"manual"``, ``"zodiac"``, ``"permutation"``, ``"high_low"``,
        ``"sequence"``.
    key : Optional[str]
        Group or sequence key for ``zodiac``, ``high_low`` and ``sequence``.
    value
        The digit string for ``permutation``, the list of numbers for
        ``manual`` and the digit for ``tens``/``units`` sequences.
    digit_count : Optional[int]
        Digit count enforced on ``manual`` and ``permutation`` input.
    """
    if method == "manual":
        if isinstance(value, str) or value is None:
            raise InvalidSelection("manual selection requires a list of numbers")
        return validate_numbers(value, digit_count)
    if method == "permutation":
        return permutations(value, digit_count=digit_count)
    if method == "zodiac":
        return zodiac_numbers(key)
    if method == "high_low":
        return high_low_numbers(key)
    if method == "sequence":
        return sequence_numbers(key, value)
    raise InvalidSelection(f"Unknown selection method '{method}'")


__all__ = [
    "ALL_TWO_DIGIT",
    "HIGH_LOW_KEYS",
    "SELECTION_METHODS",
    "SEQUENCE_KEYS",
    "ZODIAC_GROUPS",
    "generate_numbers",
    "high_low_numbers",
    "merge_unique",
    "permutations",
    "sequence_numbers",
    "validate_numbers",
    "zodiac_numbers",
]
