"""
lib.snapshot - Record/replay snapshot testing engine.

Captures a structured value produced during a run, stores it under a
fingerprint of the run's identity (site origin, path, query parameters and an
optional suffix) and later asserts that a freshly produced value still matches
the stored baseline, printing per-field diffs when it does not.

Core Components:
- Identity / RequestContext: what a baseline is keyed by
- Sha1FingerprintGenerator: content-addressed key from an Identity
- SnapshotStore: flat directory of serialized baselines
- compareValues / looseEquals: loose structural comparison
- DiffRenderer: external ``diff -u`` or in-process difflib
- SnapshotDispatcher: save / assert / clear commands with gating

Example Usage:
    >>> from lib.snapshot import RequestContext, SnapshotDispatcher, SnapshotStore
    >>>
    >>> dispatcher = SnapshotDispatcher(SnapshotStore("/tmp/refact"))
    >>> request = RequestContext.fromUrl("https://example.jp/archives/1234?TEST=save")
    >>> dispatcher.dispatch({"title": "Hello", "count": 3}, request)
    True
    >>>
    >>> # Later, after refactoring
    >>> request = RequestContext.fromUrl("https://example.jp/archives/1234?TEST=assert")
    >>> dispatcher.dispatch({"title": "Hello", "count": "3"}, request)
    True
"""

from .comparator import MatchResult, MismatchEntry, compareValues
from .diff import BuiltinDiffRenderer, DiffRenderer, ExternalDiffRenderer
from .dispatcher import (
    DispatcherSettings,
    HaltProcessing,
    SnapshotCommand,
    SnapshotDispatcher,
    SnapshotEventDict,
)
from .exceptions import (
    SnapshotDeleteError,
    SnapshotDirectoryError,
    SnapshotError,
    SnapshotKeyError,
    SnapshotReadError,
    SnapshotWriteError,
)
from .fingerprint import KeyGenerator, Sha1FingerprintGenerator
from .identity import DEFAULT_CONTROL_KEY, Identity, RequestContext
from .store import Snapshot, SnapshotStore
from .value_converter import JsonValueConverter, ValueConverter
from .values import MISSING, ValueKind, classifyValue, formatValue, looseEquals

__all__ = [
    # Identity
    "DEFAULT_CONTROL_KEY",
    "Identity",
    "RequestContext",
    # Fingerprints
    "KeyGenerator",
    "Sha1FingerprintGenerator",
    # Store
    "Snapshot",
    "SnapshotStore",
    "ValueConverter",
    "JsonValueConverter",
    # Comparison
    "MISSING",
    "ValueKind",
    "classifyValue",
    "formatValue",
    "looseEquals",
    "MatchResult",
    "MismatchEntry",
    "compareValues",
    # Diff rendering
    "DiffRenderer",
    "BuiltinDiffRenderer",
    "ExternalDiffRenderer",
    # Dispatcher
    "DispatcherSettings",
    "HaltProcessing",
    "SnapshotCommand",
    "SnapshotDispatcher",
    "SnapshotEventDict",
    # Exceptions
    "SnapshotError",
    "SnapshotKeyError",
    "SnapshotDirectoryError",
    "SnapshotWriteError",
    "SnapshotReadError",
    "SnapshotDeleteError",
]
