from __future__ import annotations

import uuid
from typing import Any, Mapping, Optional, cast

import msgpack

from rescache._core._headers import Headers
from rescache._core.models import AnyIterable, Entry, EntryMeta, Request, Response


def filter_out_rescache_metadata(data: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if not k.startswith("rescache_")}


def pack(value: Entry, /) -> bytes:
    """
    Serialize everything of an entry except the response body.
    """
    return cast(
        bytes,
        msgpack.packb(
            {
                "id": value.id.bytes,
                "generation": value.generation,
                "request": {
                    "method": value.request.method,
                    "url": value.request.url,
                    "mode": value.request.mode,
                    "headers": value.request.headers._headers,
                    "extra": filter_out_rescache_metadata(value.request.metadata),
                },
                "response": {
                    "status_code": value.response.status_code,
                    "headers": value.response.headers._headers,
                    "extra": filter_out_rescache_metadata(value.response.metadata),
                },
                "meta": {
                    "created_at": value.meta.created_at,
                },
                "cache_key": value.cache_key,
            }
        ),
    )


def unpack(value: Optional[bytes], /) -> Optional[Entry]:
    if value is None:
        return None
    data = msgpack.unpackb(value)
    return Entry(
        id=uuid.UUID(bytes=data["id"]),
        generation=data["generation"],
        request=Request(
            method=data["request"]["method"],
            url=data["request"]["url"],
            mode=data["request"]["mode"],
            headers=Headers(data["request"]["headers"]),
            metadata=data["request"]["extra"],
        ),
        response=Response(
            status_code=data["response"]["status_code"],
            headers=Headers(data["response"]["headers"]),
            metadata=data["response"]["extra"],
            stream=AnyIterable(),
        ),
        meta=EntryMeta(
            created_at=data["meta"]["created_at"],
        ),
        cache_key=data["cache_key"],
    )
