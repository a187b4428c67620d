"""
Data models for page probe results.
"""

from typing import Any, TypedDict


class ProbeResult(TypedDict):
    """Fetched page turned into a value for snapshotting"""

    status: int  # HTTP status code
    contentType: str  # Media type without parameters, e.g. "application/json"
    body: Any  # Decoded JSON for JSON responses, text otherwise
