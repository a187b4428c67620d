"""
Loose value equality for snapshot comparison.

Values are classified into a small set of kinds (see ValueKind) and compared
with coercion rules in the spirit of a web host's general-purpose ``==``:
numbers equal numeric strings, sequences equal index-keyed mappings, and type
identity is never required.

Rules, applied in order:
    1. BOOL on either side: compare truthiness. ``""``, ``"0"``, ``0``,
       ``0.0``, ``None`` and empty containers are false.
    2. NULL vs NULL is equal; NULL vs STRING is equal only to ``""``;
       NULL vs anything else compares truthiness with False.
    3. NUMBER vs NUMBER compares numerically.
    4. NUMBER vs STRING: numeric string (surrounding whitespace allowed)
       compares numerically (exactly for integers), otherwise the number's
       text is compared.
    5. STRING vs STRING: two numeric strings compare numerically, otherwise
       the text must match exactly.
    6. SEQUENCE/MAPPING vs SEQUENCE/MAPPING: a sequence is viewed as a mapping
       from index to item. Equal when the key sets match (integer-like string
       keys count as integers) and every value is loosely equal. Key order
       does not matter.
    7. Container vs scalar is never equal.
    8. OTHER (anything unrecognized) falls back to ``==``.
"""

import math
import re
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Mapping

import lib.utils as utils

_NUMERIC_PATTERN = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")
_INT_KEY_PATTERN = re.compile(r"^(0|-?[1-9]\d*)$")


class _Missing:
    """Marker for a key that is absent from the stored value."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class ValueKind(Enum):
    """Tagged variants of a structured value."""

    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    OTHER = "other"


def classifyValue(value: Any) -> ValueKind:
    if value is None or value is MISSING:
        return ValueKind.NULL
    # bool before number: bool is an int subclass
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    if isinstance(value, (list, tuple)):
        return ValueKind.SEQUENCE
    return ValueKind.OTHER


def isMappingLike(value: Any) -> bool:
    return classifyValue(value) == ValueKind.MAPPING


def isNumericString(value: str) -> bool:
    return bool(_NUMERIC_PATTERN.match(value))


def looseTruthy(value: Any) -> bool:
    kind = classifyValue(value)
    if kind == ValueKind.STRING:
        return value not in ("", "0")
    if kind == ValueKind.NULL:
        return False
    return bool(value)


def normalizeKey(key: Any) -> Any:
    """Integer-like string keys become int, so ``{"1": x}`` and ``{1: x}`` share a key."""
    if isinstance(key, str) and _INT_KEY_PATTERN.match(key):
        return int(key)
    if isinstance(key, bool):
        return int(key)
    return key


def asKeyedMapping(value: Any) -> Dict[Any, Any]:
    """View a sequence or mapping as a dict with normalized keys."""
    if isinstance(value, Mapping):
        return {normalizeKey(key): item for key, item in value.items()}
    return dict(enumerate(value))


def keyedView(container: Any) -> Dict[Any, Any]:
    """
    Keyed view of a stored container for repeated lookups, tolerating JSON's string keys.

    Scalars have no keys, so their view is empty. Look keys up with
    ``view.get(normalizeKey(key), MISSING)``.
    """
    if classifyValue(container) not in (ValueKind.MAPPING, ValueKind.SEQUENCE):
        return {}
    return asKeyedMapping(container)


def _numbersEqual(left: float, right: float) -> bool:
    if math.isnan(left) or math.isnan(right):
        return False
    return left == right


def _numberText(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def looseEquals(left: Any, right: Any) -> bool:
    """
    Compare two values with loose (coercive) equality.

    Example:
        >>> looseEquals(1, "1")
        True
        >>> looseEquals({"a": [1, 2]}, {"a": ("1", 2.0)})
        True
        >>> looseEquals("abc", "ABC")
        False
    """
    leftKind = classifyValue(left)
    rightKind = classifyValue(right)

    if ValueKind.BOOL in (leftKind, rightKind):
        return looseTruthy(left) == looseTruthy(right)

    if leftKind == ValueKind.NULL or rightKind == ValueKind.NULL:
        if leftKind == rightKind:
            return True
        other = right if leftKind == ValueKind.NULL else left
        if classifyValue(other) == ValueKind.STRING:
            return other == ""
        return not looseTruthy(other)

    if leftKind == ValueKind.NUMBER and rightKind == ValueKind.NUMBER:
        # int and float compare exactly, NaN never equals
        return left == right

    if {leftKind, rightKind} == {ValueKind.NUMBER, ValueKind.STRING}:
        number, text = (left, right) if leftKind == ValueKind.NUMBER else (right, left)
        if isNumericString(text):
            if isinstance(number, int):
                # Exact, an int may be too large for float
                return Decimal(text.strip()) == number
            return _numbersEqual(number, float(text))
        return _numberText(number) == text

    if leftKind == ValueKind.STRING and rightKind == ValueKind.STRING:
        if left == right:
            return True
        if isNumericString(left) and isNumericString(right):
            return _numbersEqual(float(left), float(right))
        return False

    containerKinds = (ValueKind.SEQUENCE, ValueKind.MAPPING)
    if leftKind in containerKinds and rightKind in containerKinds:
        leftMap = asKeyedMapping(left)
        rightMap = asKeyedMapping(right)
        if leftMap.keys() != rightMap.keys():
            return False
        return all(looseEquals(item, rightMap[key]) for key, item in leftMap.items())

    if leftKind in containerKinds or rightKind in containerKinds:
        return False

    return left == right


def formatValue(value: Any) -> str:
    """
    Text form of a value for diff display (not HTML-escaped).

    Scalars render as their text (None and MISSING as ``""``, True as ``"1"``,
    False as ``""``); containers render as indented JSON so that a line diff
    points at the changed entry.
    """
    kind = classifyValue(value)
    if kind == ValueKind.NULL:
        return ""
    if kind == ValueKind.BOOL:
        return "1" if value else ""
    if kind == ValueKind.NUMBER:
        return _numberText(value)
    if kind == ValueKind.STRING:
        return value
    if kind in (ValueKind.SEQUENCE, ValueKind.MAPPING):
        try:
            return utils.jsonDumps(value, sort_keys=False, indent=2, default=repr)
        except (TypeError, ValueError):
            return repr(value)
    return repr(value)
