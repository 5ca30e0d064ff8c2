from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Literal,
    Mapping,
    TypedDict,
    cast,
)

from rescache._core._headers import Headers, parse_accept
from rescache._utils import make_async_iterator, request_signature

RequestMode = Literal["navigate", "same-origin", "no-cors", "cors"]


class AnyIterable:
    def __init__(self, content: bytes | None = None) -> None:
        self.consumed = False
        self.content = content

    async def __anext__(self) -> bytes:
        if self.content is not None and not self.consumed:
            self.consumed = True
            return self.content
        raise StopAsyncIteration()

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self

    def __eq__(self, value: Any) -> bool:
        return isinstance(value, AnyIterable)


class RequestMetadata(TypedDict, total=False):
    # All the names here should be prefixed with "rescache_" to avoid collisions with user data
    rescache_navigate: bool
    """Marks the request as a navigation even when `mode` says otherwise."""


@dataclass
class Request:
    method: str
    url: str
    headers: Headers = field(default_factory=lambda: Headers({}))
    stream: AsyncIterator[bytes] = field(default_factory=lambda: AnyIterable())
    mode: RequestMode = "cors"
    metadata: RequestMetadata | Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_navigation(self) -> bool:
        return self.mode == "navigate" or bool(self.metadata.get("rescache_navigate"))

    @property
    def accepted_types(self) -> list[str]:
        return parse_accept(self.headers.get("accept", ""))

    @property
    def signature(self) -> str:
        return request_signature(self.method, self.url)


class ResponseMetadata(TypedDict, total=False):
    # All the names here should be prefixed with "rescache_" to avoid collisions with user data
    rescache_from_cache: bool
    """Indicates whether the response was served from a generation."""

    rescache_policy: str
    """Name of the policy the request was classified into."""

    rescache_generation: str
    """Name of the generation the response was read from or written to."""

    rescache_created_at: float
    """Timestamp when the response was stored."""


@dataclass
class Response:
    status_code: int
    headers: Headers = field(default_factory=lambda: Headers({}))
    stream: AsyncIterator[bytes] = field(default_factory=lambda: AnyIterable())
    metadata: ResponseMetadata | Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    async def _aiter_stream(self) -> AsyncIterator[bytes]:
        if hasattr(self, "collected_body"):
            yield getattr(self, "collected_body")
            return
        if isinstance(self.stream, (AsyncIterator, AsyncIterable)):
            async for chunk in self.stream:
                yield chunk
        else:
            raise TypeError("Response stream is not an AsyncIterator")

    async def aread(self) -> bytes:
        """
        Asynchronously reads the entire response body without consuming the stream.
        """
        if hasattr(self, "collected_body"):
            return cast(bytes, getattr(self, "collected_body"))

        if not isinstance(self.stream, (AsyncIterator, AsyncIterable)):
            raise TypeError("Response stream is not an AsyncIterator")

        collected = b"".join([chunk async for chunk in self.stream])
        setattr(self, "collected_body", collected)
        self.stream = make_async_iterator([collected])
        return collected

    async def aclone(self) -> "Response":
        """
        Read the body and return an independent copy of the response.

        Both the original and the copy can be consumed afterwards.
        """
        body = await self.aread()
        return Response(
            status_code=self.status_code,
            headers=self.headers.copy(),
            stream=make_async_iterator([body]),
            metadata=dict(self.metadata),
        )


@dataclass
class EntryMeta:
    created_at: float = field(default_factory=time.time)


@dataclass
class Entry:
    id: uuid.UUID
    generation: str
    request: Request
    meta: EntryMeta
    response: Response
    cache_key: str
    extra: Mapping[str, Any] = field(default_factory=dict)
