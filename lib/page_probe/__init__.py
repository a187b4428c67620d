"""
Page Probe Async Client Library

Fetches a page over HTTP and returns its status, content type and body as a
structured value, ready to be saved or asserted by lib.snapshot.

Example usage:
    from lib.page_probe import PageProbeClient

    client = PageProbeClient(requestTimeout=10)
    result = await client.fetch("https://example.jp/archives/1234")
"""

from .client import PageProbeClient
from .models import ProbeResult

__all__ = [
    "PageProbeClient",
    "ProbeResult",
]
