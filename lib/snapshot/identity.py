"""
Run identity for snapshot testing, dood!

An Identity is what a baseline is keyed by: the site origin, the request path,
the query parameters (minus the control key) and an optional disambiguation
suffix. RequestContext is the raw host request the identity is derived from.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit

DEFAULT_CONTROL_KEY = "TEST"

ParamPairs = Tuple[Tuple[str, str], ...]


def collapseParams(pairs) -> ParamPairs:
    """
    Collapse repeated query keys the way a host query-string parser does.

    The first occurrence keeps its position, the last occurrence wins the value:
    ``a=1&b=2&a=3`` becomes ``(("a", "3"), ("b", "2"))``.
    """
    collapsed: Dict[str, str] = {}
    for key, value in pairs:
        collapsed[str(key)] = str(value)
    return tuple(collapsed.items())


def splitUrl(url: str) -> Tuple[str, str, ParamPairs]:
    """Split URL into (origin, path, decoded query pairs)."""
    parts = urlsplit(url)
    origin = f"{parts.scheme}://{parts.netloc}" if parts.scheme else parts.netloc
    params = collapseParams(parse_qsl(parts.query, keep_blank_values=True))
    return origin, parts.path, params


@dataclass(frozen=True)
class Identity:
    """
    Canonical identity of one test case.

    Attributes:
        origin: Site origin, e.g. ``https://example.jp``
        path: Request path, e.g. ``/archives/1234``
        params: Query parameters in original order, control key excluded
        suffix: Disambiguation suffix for cases that share a URL but produce
            different values (PC vs smartphone rendering and such)
    """

    origin: str
    path: str
    params: ParamPairs = ()
    suffix: str = ""

    def url(self) -> str:
        """URL-like form of the identity, without the suffix."""
        query = "&".join(f"{key}={value}" for key, value in self.params)
        return f"{self.origin}{self.path}" + (f"?{query}" if query else "")

    def canonicalString(self) -> str:
        return self.url() + self.suffix

    @classmethod
    def fromUrl(cls, url: str, controlKey: str = DEFAULT_CONTROL_KEY, suffix: str = "") -> "Identity":
        """
        Build identity from a full request URL.

        Example:
            >>> Identity.fromUrl("https://example.jp/p?code=1&TEST=save").url()
            'https://example.jp/p?code=1'
        """
        return RequestContext.fromUrl(url).identity(controlKey, suffix)


@dataclass(frozen=True)
class RequestContext:
    """Host request as seen by the dispatcher: origin, path and all query params."""

    origin: str
    path: str
    params: ParamPairs = field(default_factory=tuple)

    @classmethod
    def fromUrl(cls, url: str) -> "RequestContext":
        origin, path, params = splitUrl(url)
        return cls(origin=origin, path=path, params=params)

    @classmethod
    def fromParams(cls, origin: str, path: str, params: Dict[str, str]) -> "RequestContext":
        return cls(origin=origin, path=path, params=collapseParams(params.items()))

    def get(self, key: str) -> Optional[str]:
        for name, value in self.params:
            if name == key:
                return value
        return None

    def identity(self, controlKey: str = DEFAULT_CONTROL_KEY, suffix: str = "") -> Identity:
        """Identity of this request with the control key filtered out."""
        filtered = tuple((name, value) for name, value in self.params if name != controlKey)
        return Identity(origin=self.origin, path=self.path, params=filtered, suffix=suffix)

    def urlWithout(self, controlKey: str) -> str:
        """Request URL with the control key removed (what a probe should fetch)."""
        params = self.identity(controlKey).params
        return f"{self.origin}{self.path}" + (f"?{urlencode(params)}" if params else "")
