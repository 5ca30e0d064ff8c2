#!/usr/bin/env uv run
# /// script
# requires-python = ">=3.9"
# dependencies = [
#     "rescache",
# ]
#
# [tool.uv.sources]
# rescache = { path = "../", editable = true }
# ///

import asyncio
from typing import cast

import anysqlite
import httpx

from rescache import AsyncSqliteStorage, ProxyOptions, ResponseMetadata
from rescache.httpx import AsyncCacheClient

BASE_URL = "https://example.com"


async def fetch_and_print(client: AsyncCacheClient, path: str, **kwargs) -> None:
    print(f"\n➡ Requesting {path}...")
    try:
        response = await client.get(path, **kwargs)
    except httpx.TransportError as exc:
        print(f"❌ Failed: {exc!r}")
        return
    meta = cast(ResponseMetadata, response.extensions)

    print(f"📦 Status: {response.status_code}")
    print(f"🧭 Policy: {meta['rescache_policy']}")
    print(f"🔄 From Cache: {meta['rescache_from_cache']}")
    print(f"🗂 Generation: {meta['rescache_generation']}")


async def main() -> None:
    storage = AsyncSqliteStorage(connection=await anysqlite.connect(":memory:"))
    options = ProxyOptions(scheme="example", version="1", core_assets=("/",), base_url=BASE_URL)

    async with AsyncCacheClient(base_url=BASE_URL, storage=storage, options=options) as client:
        await fetch_and_print(client, "/", headers={"Sec-Fetch-Mode": "navigate"})
        await fetch_and_print(client, "/favicon.ico")
        await fetch_and_print(client, "/robots.txt")


if __name__ == "__main__":
    asyncio.run(main())
