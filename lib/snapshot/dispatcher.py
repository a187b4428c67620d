"""
Snapshot command dispatcher.

Reads the control command from the host request (``?TEST=save`` and friends)
and runs it against the snapshot store:

- save: store the value under the request fingerprint
- assert: compare the value with the stored baseline and print diffs
- clear: remove every baseline and halt the caller's processing

Anything else, or no command at all, is a successful no-op.
"""

import logging
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, TypedDict

import lib.utils as utils

from .comparator import MatchResult, compareValues
from .diff import BuiltinDiffRenderer, DiffRenderer
from .exceptions import SnapshotError
from .fingerprint import KeyGenerator, Sha1FingerprintGenerator
from .identity import DEFAULT_CONTROL_KEY, Identity, RequestContext
from .store import SnapshotStore

logger = logging.getLogger(__name__)
eventsLogger = logging.getLogger("lib.snapshot.events")

FEATURE_LOGGING = "logging"
FEATURE_HTML = "html"

CLEAR_ACK = "clear"

HTML_REPORT_HEADER = """<!DOCTYPE html>
<html dir="ltr">
<head>
<meta charset="UTF-8">
</head>
<body>
<pre>

"""
HTML_REPORT_FOOTER = "</pre>\n</body>\n</html>\n"


class SnapshotCommand(str, Enum):
    """Commands accepted in the control key."""

    SAVE = "save"
    CLEAR = "clear"
    ASSERT = "assert"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["SnapshotCommand"]:
        try:
            return cls(value)
        except ValueError:
            return None


class SnapshotEventDict(TypedDict):
    """Structured log event, one per dispatched command."""

    command: str
    url: str
    suffix: str
    key: str
    outcome: str


class HaltProcessing(SystemExit):
    """
    Raised after ``clear`` to stop the caller's processing.

    Subclasses SystemExit, so a host that does not catch it ends the process
    the same way an explicit exit would. ``code`` is 0 when the store was
    cleared and 1 when some files could not be removed.
    """

    def __init__(self, message: str, code: int = 0):
        super().__init__(code)
        self.message = message


@dataclass
class DispatcherSettings:
    """
    Gating configuration held by a dispatcher.

    Attributes:
        enabled: Global switch; when False every dispatch is a successful no-op
        controlKey: Query parameter carrying the command
        features: Auxiliary switches (``logging``, ``html``); missing entries
            count as enabled for logging and disabled for html
    """

    enabled: bool = True
    controlKey: str = DEFAULT_CONTROL_KEY
    features: Dict[str, bool] = field(default_factory=dict)

    def isFeatureEnabled(self, name: str) -> bool:
        return bool(self.features.get(name, name == FEATURE_LOGGING))

    @classmethod
    def fromConfig(cls, config: Dict[str, Any]) -> "DispatcherSettings":
        """
        Build settings from the ``[snapshot]`` config section.

        Example:
            >>> DispatcherSettings.fromConfig({"query-key": "REFACT", "features": {"html": True}})
        """
        return cls(
            enabled=bool(config.get("enabled", True)),
            controlKey=str(config.get("query-key", DEFAULT_CONTROL_KEY)),
            features={str(k): bool(v) for k, v in config.get("features", {}).items()},
        )


def _writeStdout(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


class SnapshotDispatcher:
    """
    Runs snapshot commands for host requests.

    Args:
        store: Baseline store
        settings: Gating configuration (defaults: enabled, ``TEST`` key)
        keyGenerator: Fingerprint generator (SHA-1 by default)
        diffRenderer: Renderer for mismatch diffs (difflib by default)
        accessCheck: Optional zero-argument predicate; False skips dispatch
        emit: Output writer for reports and acknowledgements (stdout by default)
        eventSink: Optional receiver of structured events; when None, events
            are logged as JSON on the ``lib.snapshot.events`` logger

    Example:
        >>> dispatcher = SnapshotDispatcher(SnapshotStore("/tmp/refact"))
        >>> request = RequestContext.fromUrl("https://example.jp/archives/1?TEST=save")
        >>> dispatcher.dispatch({"title": "Hello"}, request)
        True
    """

    def __init__(
        self,
        store: SnapshotStore,
        settings: Optional[DispatcherSettings] = None,
        keyGenerator: Optional[KeyGenerator[Identity]] = None,
        diffRenderer: Optional[DiffRenderer] = None,
        accessCheck: Optional[Callable[[], bool]] = None,
        emit: Optional[Callable[[str], None]] = None,
        eventSink: Optional[Callable[[SnapshotEventDict], None]] = None,
    ):
        self.store = store
        self.settings = settings if settings is not None else DispatcherSettings()
        self.keyGenerator: KeyGenerator[Identity] = (
            keyGenerator if keyGenerator is not None else Sha1FingerprintGenerator()
        )
        self.diffRenderer: DiffRenderer = diffRenderer if diffRenderer is not None else BuiltinDiffRenderer()
        self.accessCheck = accessCheck
        self.emit: Callable[[str], None] = emit if emit is not None else _writeStdout
        self.eventSink = eventSink

    def isActive(self) -> bool:
        """Whether gating lets commands through right now."""
        if not self.settings.enabled:
            return False
        if self.accessCheck is None:
            return True
        try:
            return bool(self.accessCheck())
        except Exception as e:
            logger.error(f"Access check failed, skipping snapshot command: {e}")
            return False

    def dispatch(self, value: Any, request: RequestContext, suffix: str = "") -> bool:
        """
        Run the command found in the request's control key.

        Args:
            value: Structured value produced by the current run
            request: Host request (origin, path, query parameters)
            suffix: Disambiguation suffix mixed into the fingerprint

        Returns:
            True on success or no-op, False when saving failed, the baseline
            is missing or the value does not match it

        Raises:
            HaltProcessing: After a ``clear`` command
        """
        if not self.isActive():
            return True

        rawCommand = request.get(self.settings.controlKey)
        if rawCommand is None:
            return True

        command = SnapshotCommand.parse(rawCommand)
        if command is None:
            logger.warning(f"Unknown snapshot command '{rawCommand}' in '{self.settings.controlKey}', ignoring")
            return True

        identity = request.identity(self.settings.controlKey, suffix)

        match command:
            case SnapshotCommand.SAVE:
                return self.save(value, identity)
            case SnapshotCommand.ASSERT:
                return self.assertMatches(value, identity)
            case SnapshotCommand.CLEAR:
                self.clear(identity)

        return True

    def save(self, value: Any, identity: Identity) -> bool:
        key = self.keyGenerator.generateKey(identity)
        try:
            self.store.save(key, value)
            ok = True
        except SnapshotError as e:
            logger.error(f"Failed to save snapshot for {identity.url()}: {e}")
            ok = False

        self._logEvent(SnapshotCommand.SAVE, identity, key, ok)
        return ok

    def assertMatches(self, value: Any, identity: Identity) -> bool:
        """Compare value with the baseline saved for identity, emitting diffs on mismatch."""
        key = self.keyGenerator.generateKey(identity)
        try:
            snapshot = self.store.load(key)
        except SnapshotError as e:
            logger.error(f"Failed to load snapshot for {identity.url()}: {e}")
            self._logEvent(SnapshotCommand.ASSERT, identity, key, False)
            return False

        if snapshot is None:
            self.emit(f"Baseline not found: {key}\n")
            self._logEvent(SnapshotCommand.ASSERT, identity, key, False)
            return False

        result = compareValues(value, snapshot.value)
        if not result.isMatch:
            self.emit(self.renderReport(result))

        self._logEvent(SnapshotCommand.ASSERT, identity, key, result.isMatch)
        return result.isMatch

    def renderReport(self, result: MatchResult) -> str:
        """Mismatch report: ``[key]`` header and diff for every differing field."""
        parts = []
        for entry in result.mismatches:
            parts.append(f"{entry.label}\n")
            parts.append(self.diffRenderer.render(entry.expectedText(), entry.storedText()))

        report = "".join(parts)
        if self.settings.isFeatureEnabled(FEATURE_HTML):
            report = HTML_REPORT_HEADER + report + HTML_REPORT_FOOTER
        return report

    def clear(self, identity: Optional[Identity] = None) -> None:
        """
        Remove every baseline, print the acknowledgement and halt.

        Raises:
            HaltProcessing: Always
        """
        try:
            self.store.clear()
            ok = True
        except SnapshotError as e:
            logger.error(f"Failed to clear snapshots: {e}")
            ok = False

        if identity is not None:
            self._logEvent(SnapshotCommand.CLEAR, identity, "", ok)

        self.emit(f"{CLEAR_ACK}\n")
        raise HaltProcessing(CLEAR_ACK, code=0 if ok else 1)

    def _logEvent(self, command: SnapshotCommand, identity: Identity, key: str, ok: bool) -> None:
        if not self.settings.isFeatureEnabled(FEATURE_LOGGING):
            return

        event: SnapshotEventDict = {
            "command": command.value,
            "url": identity.url(),
            "suffix": identity.suffix,
            "key": key,
            "outcome": "OK" if ok else "fail",
        }
        if self.eventSink is not None:
            self.eventSink(event)
        else:
            eventsLogger.info(f"Snapshot event: {utils.jsonDumps(event, sort_keys=False)}")
