"""
Baseline comparator.

Compares the value produced by the current run (expected) with the stored
baseline and reports which fields no longer match.
"""

import html
from dataclasses import dataclass, field
from typing import Any, Hashable, List, Optional

from .values import MISSING, formatValue, isMappingLike, keyedView, looseEquals, normalizeKey


def _displayText(text: str) -> str:
    # Lone surrogates cannot be encoded as UTF-8, show them as escapes
    return html.escape(text).encode("utf-8", "backslashreplace").decode("utf-8")


@dataclass(frozen=True)
class MismatchEntry:
    """
    One differing field.

    Attributes:
        key: Field key in the expected mapping, or None when the whole value
            is reported (expected is a scalar or a plain sequence)
        expected: Value produced by the current run
        stored: Value from the baseline, MISSING if the key is absent there
    """

    key: Optional[Hashable]
    expected: Any
    stored: Any

    @property
    def isWholeValue(self) -> bool:
        return self.key is None

    @property
    def label(self) -> str:
        """HTML-escaped header line used in reports: ``[key]``, or ``[*]`` for the whole value."""
        return "[*]" if self.isWholeValue else f"[{_displayText(str(self.key))}]"

    def expectedText(self) -> str:
        """HTML-escaped text representation of the expected value."""
        return _displayText(formatValue(self.expected))

    def storedText(self) -> str:
        """HTML-escaped text representation of the stored value."""
        return _displayText(formatValue(self.stored))

    def asTuple(self) -> tuple:
        return (self.key, self.expected, self.stored)


@dataclass(frozen=True)
class MatchResult:
    """Outcome of one comparison. No mismatches means the assert succeeds."""

    mismatches: List[MismatchEntry] = field(default_factory=list)

    @property
    def isMatch(self) -> bool:
        return not self.mismatches

    def __bool__(self) -> bool:
        return self.isMatch


def _fieldsEqual(expected: Any, stored: Any) -> bool:
    if stored is MISSING:
        return False
    return looseEquals(expected, stored)


def compareValues(expected: Any, stored: Any) -> MatchResult:
    """
    Compare current value against the stored baseline.

    If the values are loosely equal the result is a match. Otherwise, for a
    mapping the keys of ``expected`` are checked one by one in their order
    (keys that exist only in ``stored`` are ignored), and anything else is
    reported as a single whole-value mismatch.

    Args:
        expected: Value produced by the current run
        stored: Baseline value

    Returns:
        MatchResult with mismatches in expected's key order

    Example:
        >>> compareValues({"a": 2, "b": "x"}, {"a": 1, "b": "x"}).mismatches[0].asTuple()
        ('a', 2, 1)
    """
    if looseEquals(expected, stored):
        return MatchResult()

    if not isMappingLike(expected):
        return MatchResult([MismatchEntry(key=None, expected=expected, stored=stored)])

    storedView = keyedView(stored)
    mismatches: List[MismatchEntry] = []
    for key, value in expected.items():
        storedValue = storedView.get(normalizeKey(key), MISSING)
        if not _fieldsEqual(value, storedValue):
            mismatches.append(MismatchEntry(key=key, expected=value, stored=storedValue))

    # Empty here means stored only has extra keys, which still counts as a match
    return MatchResult(mismatches)
