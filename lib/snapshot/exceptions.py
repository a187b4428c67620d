"""
Snapshot store exceptions

This module defines the exception hierarchy for the snapshot store.
All store-related errors inherit from SnapshotError base class, so callers
can tell an I/O failure apart from "no baseline saved yet" (which is not an
error at all, see SnapshotStore.load).
"""

from typing import List, Optional


class SnapshotError(Exception):
    """
    Base exception for all snapshot store errors.

    Args:
        message: Description of the error
        originalError: The original exception that caused this error (optional)
    """

    def __init__(self, message: str, originalError: Optional[Exception] = None):
        super().__init__(message)
        self.originalError = originalError


class SnapshotKeyError(SnapshotError):
    """
    Exception raised when a snapshot key is invalid.

    Raised when a key:
    - Is empty or only whitespace
    - Contains characters outside of [A-Za-z0-9_.-]
    - Contains path traversal sequences
    - Exceeds maximum length
    """

    pass


class SnapshotDirectoryError(SnapshotError):
    """Exception raised when the store root cannot be created or is not a directory."""

    pass


class SnapshotWriteError(SnapshotError):
    """
    Exception raised when a baseline cannot be written.

    Covers failing to open the destination, short writes (not every byte of the
    serialized payload could be written), flush/fsync failures and values that
    cannot be serialized at all.
    """

    pass


class SnapshotReadError(SnapshotError):
    """Exception raised when an existing baseline cannot be read or decoded."""

    pass


class SnapshotDeleteError(SnapshotError):
    """
    Exception raised when clearing the store fails for one or more files.

    All deletions are attempted before this is raised.

    Args:
        message: Description of the error
        failedPaths: Names of the files that could not be removed
        originalError: The first underlying exception (optional)
    """

    def __init__(self, message: str, failedPaths: List[str], originalError: Optional[Exception] = None):
        super().__init__(message, originalError=originalError)
        self.failedPaths = failedPaths
