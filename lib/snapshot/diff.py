"""
Diff renderers for mismatch reports.

A renderer turns the text forms of an expected and a stored field into a
line-oriented unified diff for humans to read. The output is never parsed.

Available Renderers:
    - ExternalDiffRenderer: runs ``diff -u`` over two scratch files
    - BuiltinDiffRenderer: in-process ``difflib.unified_diff``
"""

import difflib
import logging
import os
import subprocess
import tempfile
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_DIFF_COMMAND = ("diff", "-u")


class DiffRenderer(ABC):
    """Interface for turning two text representations into diff text."""

    @abstractmethod
    def render(self, expectedText: str, storedText: str) -> str:
        """
        Render a unified diff from expected to stored.

        Args:
            expectedText: Text form of the value produced by the current run
            storedText: Text form of the baseline value

        Returns:
            Diff text. Implementations never raise; failures are reported
            inside the returned text.
        """
        pass


class BuiltinDiffRenderer(DiffRenderer):
    """Unified diff computed with difflib, no external process involved."""

    def __init__(self, contextLines: int = 3):
        self.contextLines = contextLines

    def render(self, expectedText: str, storedText: str) -> str:
        lines = difflib.unified_diff(
            expectedText.splitlines(keepends=True),
            storedText.splitlines(keepends=True),
            fromfile="expected",
            tofile="saved",
            n=self.contextLines,
        )
        # Lines without a trailing newline would otherwise run together
        return "".join(line if line.endswith("\n") else line + "\n" for line in lines)


class ExternalDiffRenderer(DiffRenderer):
    """
    Unified diff produced by an external line-diff utility.

    Both texts are written to scratch files (``EXPECTED_*`` and ``SAVED_*``),
    the diff command is run over them and its stdout is returned. The scratch
    files are removed on every exit path.

    If the utility is missing or fails (exit status above 1), the optional
    fallback renderer is used; without one a short explanation is returned.

    Args:
        command: Diff command and its options, file names are appended
        scratchDir: Directory for scratch files (None: system temp dir)
        fallback: Renderer used when the external process is unavailable

    Example:
        >>> renderer = ExternalDiffRenderer(fallback=BuiltinDiffRenderer())
        >>> print(renderer.render("a\\nb\\n", "a\\nc\\n"))
    """

    def __init__(
        self,
        command: Sequence[str] = DEFAULT_DIFF_COMMAND,
        scratchDir: Optional[str] = None,
        fallback: Optional[DiffRenderer] = None,
    ):
        if not command:
            raise ValueError("Diff command cannot be empty")
        self.command: List[str] = list(command)
        self.scratchDir = scratchDir or None
        self.fallback = fallback

    def _writeScratch(self, prefix: str, text: str) -> str:
        fd, path = tempfile.mkstemp(prefix=prefix, dir=self.scratchDir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", errors="backslashreplace") as f:
                f.write(text)
        except Exception:
            os.unlink(path)
            raise
        return path

    def _degrade(self, reason: str, expectedText: str, storedText: str) -> str:
        logger.warning(f"External diff unavailable: {reason}")
        if self.fallback is not None:
            return self.fallback.render(expectedText, storedText)
        return f"(diff unavailable: {reason})\n"

    def render(self, expectedText: str, storedText: str) -> str:
        scratchPaths: List[str] = []
        try:
            scratchPaths.append(self._writeScratch("EXPECTED_", expectedText))
            scratchPaths.append(self._writeScratch("SAVED_", storedText))

            result = subprocess.run(
                self.command + scratchPaths,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
            # diff(1): 0 - same, 1 - different, 2 - trouble
            if result.returncode > 1 or result.returncode < 0:
                return self._degrade(
                    f"{self.command[0]} exited with {result.returncode}: {result.stderr.strip()}",
                    expectedText,
                    storedText,
                )
            return result.stdout

        except (OSError, ValueError) as e:
            return self._degrade(str(e), expectedText, storedText)

        finally:
            for path in scratchPaths:
                try:
                    os.unlink(path)
                except OSError as e:
                    logger.warning(f"Failed to remove diff scratch file {path}: {e}")
