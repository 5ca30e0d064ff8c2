from __future__ import annotations

import hashlib
import typing as tp
from pathlib import Path
from typing import AsyncIterator, Iterable
from urllib.parse import urljoin, urlsplit, urlunsplit

T = tp.TypeVar("T")


async def make_async_iterator(
    iterable: Iterable[bytes],
) -> AsyncIterator[bytes]:
    for item in iterable:
        yield item


def strip_fragment(url: str) -> str:
    """
    Remove the fragment part of the URL.

    Fragments are never sent to the server, so two URLs that differ only
    in their fragment address the same resource.

    Example:
        >>> strip_fragment("https://example.com/index.html#top")
        'https://example.com/index.html'
    """
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, ""))


def url_path(url: str) -> str:
    return urlsplit(url).path


def resolve_url(base_url: str, path: str) -> str:
    """
    Resolve a manifest path against the base URL of the application.

    Example:
        >>> resolve_url("https://example.com/app/", "/manifest.json")
        'https://example.com/manifest.json'
    """
    return urljoin(base_url, path)


def request_signature(method: str, url: str) -> str:
    """
    Build the cache key for a request.

    The key depends only on the method and the URL (without its fragment),
    so every write for the same resource replaces the previous one.
    """
    raw = f"{method.upper()} {strip_fragment(url)}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def unique(iterable: tp.Iterable[T]) -> tp.List[T]:
    """Return the items of the iterable in order, without duplicates."""
    seen: tp.Set[T] = set()
    result: tp.List[T] = []
    for item in iterable:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def ensure_cache_dict(base_path: Path | None = None) -> Path:
    _base_path = base_path if base_path is not None else Path(".cache/rescache")
    _gitignore_file = _base_path / ".gitignore"

    _base_path.mkdir(parents=True, exist_ok=True)

    if not _gitignore_file.is_file():
        with open(_gitignore_file, "w", encoding="utf-8") as f:
            f.write("# Automatically created by rescache\n*")
    return _base_path


def filter_mapping(mapping: tp.Mapping[str, T], keys_to_exclude: tp.Iterable[str]) -> tp.Dict[str, T]:
    """
    Filter out specified keys from a string-keyed mapping using case-insensitive comparison.

    Example:
        >>> filter_mapping({"a": 1, "B": 2, "c": 3}, ["b"])
        {'a': 1, 'c': 3}
    """
    exclude_set = {k.lower() for k in keys_to_exclude}
    return {k: v for k, v in mapping.items() if k.lower() not in exclude_set}
