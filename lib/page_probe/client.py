"""
Page Probe Async Client

This module provides the PageProbeClient class which fetches a page over HTTP
and turns the response into a structured value that can be saved as a
snapshot baseline or asserted against one.
"""

import json
import logging
from typing import Dict, Optional

import httpx

from .models import ProbeResult

logger = logging.getLogger(__name__)


class PageProbeClient:
    """
    Async client fetching pages for snapshot testing

    Creates a new HTTP session for each request.

    Example usage:
        client = PageProbeClient(requestTimeout=10)
        result = await client.fetch("https://example.jp/archives/1234")
        if result:
            print(result["status"], result["contentType"])
    """

    def __init__(
        self,
        requestTimeout: float = 10,
        headers: Optional[Dict[str, str]] = None,
        followRedirects: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize page probe client

        Args:
            requestTimeout: HTTP request timeout (seconds)
            headers: Extra headers sent with every request (cookies, user agent...)
            followRedirects: Whether to follow HTTP redirects
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.requestTimeout = requestTimeout
        self.headers = dict(headers or {})
        self.followRedirects = followRedirects
        self.transport = transport

    async def fetch(self, url: str) -> Optional[ProbeResult]:
        """
        Fetch page and convert the response to a ProbeResult

        Non-2xx responses are still returned: the status code is part of what
        a baseline records.

        Args:
            url: Page URL (without the snapshot control key)

        Returns:
            ProbeResult, or None on timeout or network error
        """
        try:
            logger.debug(f"Probing {url}")

            async with httpx.AsyncClient(
                timeout=self.requestTimeout,
                headers=self.headers,
                follow_redirects=self.followRedirects,
                transport=self.transport,
            ) as session:
                response = await session.get(url)

            contentType = response.headers.get("content-type", "").split(";")[0].strip().lower()
            logger.debug(f"Probe response: {response.status_code} {contentType}")

            body = response.text
            if contentType == "application/json" or contentType.endswith("+json"):
                try:
                    body = response.json()
                except json.JSONDecodeError as e:
                    logger.warning(f"Failed to parse JSON response from {url}, keeping text: {e}")

            return {
                "status": response.status_code,
                "contentType": contentType,
                "body": body,
            }

        except httpx.TimeoutException:
            logger.error(f"Request timeout for {url}")
            return None
        except httpx.RequestError as e:
            logger.error(f"Network error for {url}: {e}")
            return None
