"""
Value converters for baseline serialization.

A converter turns the value under test into the byte blob stored on disk and
back. JSON is the default: it round-trips None, booleans, numbers, strings,
lists and dicts. Tuples come back as lists and mapping keys as strings, which
the loose comparator treats as equal to the originals.
"""

import json
from typing import Any, Dict, Protocol

import lib.utils as utils


class ValueConverter(Protocol):
    """Protocol for converting values to stored bytes and back."""

    def encode(self, obj: Any) -> bytes:
        """
        Convert value to bytes for storage.

        Raises:
            TypeError, ValueError: If the value cannot be serialized
        """
        ...

    def decode(self, data: bytes) -> Any:
        """
        Decode stored bytes back to a value.

        Raises:
            ValueError: If the data is not a valid serialized value
        """
        ...


class JsonValueConverter(ValueConverter):
    """
    JSON converter for structured values.

    Keys keep their insertion order (no sorting) so that the comparator walks
    the same key order the value was produced in.
    """

    def __init__(self, *, indent: int | None = None):
        self.indent = indent

    def encode(self, obj: Any) -> bytes:
        # Unserializable values raise TypeError instead of being stringified
        dumpKwargs: Dict[str, Any] = {"sort_keys": False, "default": None, "allow_nan": False}
        if self.indent is not None:
            dumpKwargs["indent"] = self.indent
        return utils.jsonDumps(obj, **dumpKwargs).encode("utf-8")

    def decode(self, data: bytes) -> Any:
        return json.loads(data.decode("utf-8"))
