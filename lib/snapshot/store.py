"""
Filesystem snapshot store

This module stores baselines as files in a flat directory. The file name is
the fingerprint key and the file content is the serialized value.
"""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

from .exceptions import (
    SnapshotDeleteError,
    SnapshotDirectoryError,
    SnapshotKeyError,
    SnapshotReadError,
    SnapshotWriteError,
)
from .value_converter import JsonValueConverter, ValueConverter

logger = logging.getLogger(__name__)

# Maximum allowed key length
MAX_KEY_LENGTH = 255

# Allowed characters: alphanumeric, underscore, hyphen, dot
ALLOWED_KEY_PATTERN = re.compile(r"^[a-zA-Z0-9_\-\.]+$")

TEMP_SUFFIX = ".tmp"


def validateKey(key: str) -> str:
    """
    Validate a store key so that it always names a file directly inside the root.

    Unlike a sanitizer this never rewrites the key: two different identities
    must never end up sharing a file.

    Args:
        key: The store key (normally a hex fingerprint)

    Returns:
        The key unchanged

    Raises:
        SnapshotKeyError: If the key is empty, too long, contains path
            separators, ``..`` or any character outside [A-Za-z0-9_.-]

    Examples:
        >>> validateKey("3f786850e387550fdab836ed7e6dc881de23001b")
        '3f786850e387550fdab836ed7e6dc881de23001b'
        >>> validateKey("../etc/passwd")
        Traceback (most recent call last):
        ...
        SnapshotKeyError: Snapshot key contains invalid characters: '../etc/passwd'
    """
    if not key or not key.strip():
        raise SnapshotKeyError("Snapshot key cannot be empty or only whitespace")

    if len(key) > MAX_KEY_LENGTH:
        raise SnapshotKeyError(
            f"Snapshot key exceeds maximum length of {MAX_KEY_LENGTH} characters. Length: {len(key)}"
        )

    if not ALLOWED_KEY_PATTERN.fullmatch(key) or ".." in key:
        raise SnapshotKeyError(f"Snapshot key contains invalid characters: '{key}'")

    if key.endswith(TEMP_SUFFIX):
        raise SnapshotKeyError(f"Snapshot key cannot end with '{TEMP_SUFFIX}': '{key}'")

    return key


@dataclass(frozen=True)
class Snapshot:
    """Baseline loaded from the store."""

    key: str
    value: Any


class SnapshotStore:
    """
    Filesystem-based baseline store.

    Features:
    - Root directory is created on demand (with parents)
    - Flat layout: one file per fingerprint, no subdirectories
    - Writes go to ``<key>.tmp`` first, are fsynced and renamed over the target
    - Short writes are failures, never success
    - Every failure mode is its own SnapshotError subclass

    Args:
        rootDir: Directory holding the baselines
        converter: Value serializer (JSON by default)

    Raises:
        SnapshotDirectoryError: If rootDir cannot be created or is not a directory

    Example:
        >>> store = SnapshotStore("/tmp/refact")
        >>> store.save("3f78...", {"a": 1})
        >>> store.load("3f78...").value
        {'a': 1}
        >>> store.clear()
        1
    """

    def __init__(self, rootDir: str | Path, converter: Optional[ValueConverter] = None):
        self.rootDir = Path(rootDir)
        self.converter: ValueConverter = converter if converter is not None else JsonValueConverter()

        try:
            self.rootDir.mkdir(parents=True, exist_ok=True)
        except Exception as e:
            raise SnapshotDirectoryError(f"Failed to create snapshot directory '{rootDir}': {e}", originalError=e)

        if not self.rootDir.is_dir():
            raise SnapshotDirectoryError(f"Snapshot path '{rootDir}' exists but is not a directory")

    def _getFilePath(self, key: str) -> Path:
        return self.rootDir / validateKey(key)

    def save(self, key: str, value: Any) -> None:
        """
        Serialize value and write it under key, overwriting any previous baseline.

        Args:
            key: Fingerprint key
            value: Structured value (scalars, sequences, mappings, nested)

        Raises:
            SnapshotKeyError: If the key is invalid
            SnapshotWriteError: If the value cannot be serialized or the file
                cannot be fully written
        """
        filePath = self._getFilePath(key)

        try:
            payload = self.converter.encode(value)
        except (TypeError, ValueError) as e:
            raise SnapshotWriteError(f"Failed to serialize value for key '{key}': {e}", originalError=e)

        tempPath = filePath.with_name(filePath.name + TEMP_SUFFIX)
        try:
            # Unbuffered, so write() reports what actually reached the file
            with open(tempPath, "wb", buffering=0) as f:
                view = memoryview(payload)
                written = 0
                while written < len(payload):
                    count = f.write(view[written:])
                    if not count:
                        raise SnapshotWriteError(
                            f"Short write for key '{key}': {written} of {len(payload)} bytes written"
                        )
                    written += count
                os.fsync(f.fileno())

            os.chmod(tempPath, 0o644)
            tempPath.replace(filePath)

        except Exception as e:
            if tempPath.exists():
                try:
                    tempPath.unlink()
                except OSError as cleanupError:
                    logger.warning(f"Failed to remove temporary file {tempPath}: {cleanupError}")

            if isinstance(e, SnapshotWriteError):
                raise
            raise SnapshotWriteError(f"Failed to write snapshot with key '{key}': {e}", originalError=e)

        logger.debug(f"Saved snapshot {key} ({len(payload)} bytes)")

    def load(self, key: str) -> Optional[Snapshot]:
        """
        Read baseline for key.

        Returns:
            Snapshot if a baseline exists, None if nothing was saved under key

        Raises:
            SnapshotKeyError: If the key is invalid
            SnapshotReadError: If the file exists but cannot be read or decoded
        """
        filePath = self._getFilePath(key)

        try:
            with open(filePath, "rb") as f:
                data = f.read()
        except FileNotFoundError:
            return None
        except Exception as e:
            raise SnapshotReadError(f"Failed to read snapshot with key '{key}': {e}", originalError=e)

        try:
            value = self.converter.decode(data)
        except (ValueError, UnicodeDecodeError) as e:
            raise SnapshotReadError(f"Failed to decode snapshot with key '{key}': {e}", originalError=e)

        return Snapshot(key=key, value=value)

    def exists(self, key: str) -> bool:
        filePath = self._getFilePath(key)
        return filePath.is_file()

    def list(self) -> List[str]:
        """Sorted keys of all stored baselines (temporary files excluded)."""
        try:
            return sorted(
                entry.name
                for entry in os.scandir(self.rootDir)
                if entry.is_file(follow_symlinks=False) and not entry.name.endswith(TEMP_SUFFIX)
            )
        except OSError as e:
            raise SnapshotReadError(f"Failed to list snapshot directory '{self.rootDir}': {e}", originalError=e)

    def clear(self) -> int:
        """
        Delete every file directly inside the root directory.

        Subdirectories are left alone and the root itself stays in place.
        All deletions are attempted before any failure is reported.

        Returns:
            Number of files removed

        Raises:
            SnapshotDeleteError: If the directory cannot be scanned or any file
                could not be removed
        """
        try:
            entries = [entry for entry in os.scandir(self.rootDir) if not entry.is_dir(follow_symlinks=False)]
        except OSError as e:
            raise SnapshotDeleteError(
                f"Failed to scan snapshot directory '{self.rootDir}': {e}", failedPaths=[], originalError=e
            )

        removed = 0
        failedPaths: List[str] = []
        firstError: Optional[Exception] = None
        for entry in entries:
            try:
                os.unlink(entry.path)
                removed += 1
            except FileNotFoundError:
                # Removed by somebody else meanwhile
                continue
            except OSError as e:
                logger.error(f"Failed to delete snapshot file {entry.path}: {e}")
                failedPaths.append(entry.name)
                if firstError is None:
                    firstError = e

        if failedPaths:
            raise SnapshotDeleteError(
                f"Failed to delete {len(failedPaths)} file(s) in '{self.rootDir}'",
                failedPaths=failedPaths,
                originalError=firstError,
            )

        logger.info(f"Cleared {removed} snapshot file(s) in {self.rootDir}")
        return removed
