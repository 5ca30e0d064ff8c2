from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import ClassVar, FrozenSet, Union

from rescache._core.models import Request
from rescache._utils import url_path

STATIC_ASSET_SUFFIXES = frozenset(
    {
        ".js",
        ".css",
        ".png",
        ".jpg",
        ".jpeg",
        ".svg",
        ".ico",
        ".webp",
        ".woff",
        ".woff2",
    }
)


class CachePolicy(abc.ABC):
    name: ClassVar[str]

    write_back: bool
    """Whether a response fetched from the network is stored in the current generation."""


@dataclass(frozen=True)
class NetworkFirst(CachePolicy):
    """
    Prefer the network, fall back to the current generation when it is unreachable.
    """

    name: ClassVar[str] = "NetworkFirst"

    write_back: bool = True


@dataclass(frozen=True)
class CacheFirst(CachePolicy):
    """
    Prefer the current generation, go to the network only on a miss.
    """

    name: ClassVar[str] = "CacheFirst"

    write_back: bool = False


AnyPolicy = Union[NetworkFirst, CacheFirst]


@dataclass
class PolicyRouter:
    """
    Chooses the caching policy for a request.

    Navigations and HTML documents, as well as static assets, prefer fresh
    network copies so that new deployments show up promptly. Everything
    else is served from the cache when possible.
    """

    static_suffixes: FrozenSet[str] = field(default_factory=lambda: STATIC_ASSET_SUFFIXES)
    """Path suffixes (lower case, with the leading dot) treated as static assets."""

    html_marker: str = "text/html"
    """Media type that marks a request for an HTML document."""

    network_first: NetworkFirst = field(default_factory=NetworkFirst)
    cache_first: CacheFirst = field(default_factory=CacheFirst)

    def classify(self, request: Request) -> AnyPolicy:
        if request.is_navigation or self.html_marker in request.accepted_types:
            return self.network_first

        if self.is_static_asset(request):
            return self.network_first

        return self.cache_first

    def is_static_asset(self, request: Request) -> bool:
        path = url_path(request.url).lower()
        return any(path.endswith(suffix) for suffix in self.static_suffixes)
