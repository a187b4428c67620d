"""
Pytest configuration and common fixtures for Refact integration tests.

All fixtures follow camelCase naming convention.
"""

import logging
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest

# ============================================================================
# Logging Isolation
# ============================================================================


@pytest.fixture(autouse=True)
def restoreRootLogger() -> Generator[None, None, None]:
    """
    Restore root logger handlers and level after each test.

    RefactApp runs initLogging(), which replaces root handlers.
    """
    rootLogger = logging.getLogger()
    handlers = rootLogger.handlers[:]
    level = rootLogger.level
    yield
    for handler in rootLogger.handlers[:]:
        if handler not in handlers:
            rootLogger.removeHandler(handler)
    for handler in handlers:
        if handler not in rootLogger.handlers:
            rootLogger.addHandler(handler)
    rootLogger.setLevel(level)


# ============================================================================
# Filesystem Fixtures
# ============================================================================


@pytest.fixture
def tempDir(monkeypatch) -> Generator[Path, None, None]:
    """
    Temporary working directory.

    The process cwd is moved there, so no stray .env or refact.toml is picked up.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        monkeypatch.chdir(tmpdir)
        yield Path(tmpdir)


@pytest.fixture
def dataDir(tempDir) -> Path:
    """Snapshot directory used by the test config."""
    return tempDir / "snapshots"


@pytest.fixture
def writeConfig(tempDir, dataDir) -> Callable[..., Path]:
    """
    Factory writing refact.toml into tempDir.

    Extra TOML text is appended after the default sections.
    """

    def _writeConfig(extra: str = "", enabled: bool = True) -> Path:
        configPath = tempDir / "refact.toml"
        configPath.write_text(
            f"""
[snapshot]
data-dir = "{dataDir.as_posix()}"
query-key = "TEST"
enabled = {"true" if enabled else "false"}

[diff]
renderer = "builtin"
{extra}
""",
            encoding="utf-8",
        )
        return configPath

    return _writeConfig


@pytest.fixture
def writeValue(tempDir) -> Callable[[str, str], Path]:
    """Factory writing a JSON value file into tempDir."""

    def _writeValue(name: str, content: str) -> Path:
        valuePath = tempDir / name
        valuePath.write_text(content, encoding="utf-8")
        return valuePath

    return _writeValue
