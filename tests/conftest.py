from datetime import date
from typing import Any, AsyncIterator, Dict, List, Optional, Set, Tuple

import anysqlite
import pytest

from rescache import (
    AsyncBaseStorage,
    AsyncInMemoryStorage,
    AsyncSqliteStorage,
    Headers,
    ProxyOptions,
    Request,
    Response,
    Unreachable,
)
from rescache._utils import make_async_iterator

CORE_ASSETS = {
    "/": b"<html>home</html>",
    "/index.html": b"<html>index</html>",
    "/manifest.json": b'{"name": "smart-home"}',
}


class FakeNetwork:
    """
    Request sender serving canned resources and recording every call.
    """

    def __init__(self) -> None:
        self.resources: Dict[str, Tuple[int, bytes, Dict[str, str]]] = {}
        self.calls: List[str] = []
        self.failing: Set[str] = set()
        self.offline = False

    def add(self, url: str, body: bytes, status: int = 200, headers: Optional[Dict[str, str]] = None) -> None:
        self.resources[url] = (status, body, headers or {"content-type": "text/plain"})

    def calls_for(self, url: str) -> int:
        return self.calls.count(url)

    async def __call__(self, request: Request) -> Response:
        self.calls.append(request.url)
        if self.offline or request.url in self.failing:
            raise Unreachable(f"Could not reach {request.url}", url=request.url)

        status, body, headers = self.resources.get(request.url, (404, b"not found", {}))
        return Response(
            status_code=status,
            headers=Headers(headers),
            stream=make_async_iterator([body]),
        )


@pytest.fixture
def network() -> FakeNetwork:
    fake = FakeNetwork()
    for url, body in CORE_ASSETS.items():
        fake.add(url, body, headers={"content-type": "text/html"})
    return fake


@pytest.fixture
def options() -> ProxyOptions:
    return ProxyOptions(scheme="smart-home", version="3")


@pytest.fixture(params=["memory", "sqlite"])
async def storage(request: Any) -> AsyncIterator[AsyncBaseStorage]:
    if request.param == "memory":
        yield AsyncInMemoryStorage()
        return

    sqlite_storage = AsyncSqliteStorage(connection=await anysqlite.connect(":memory:"))
    yield sqlite_storage
    await sqlite_storage.close()


def format_value(value: Any, col_name: str, col_type: str) -> str:
    """Format a value for display based on its type and column name."""

    if value is None:
        return "NULL"

    if col_type.upper() == "BLOB":
        if isinstance(value, bytes):
            try:
                decoded = value.decode("utf-8")
                if all(32 <= ord(c) <= 126 or c in "\n\r\t" for c in decoded):
                    return f"(str) '{decoded}'"
            except UnicodeDecodeError:
                pass
            return f"(bytes) {len(value)} bytes"
        return repr(value)

    # Timestamps only show the date
    if col_name.endswith("_at") and isinstance(value, (int, float)):
        return date.fromtimestamp(value).isoformat()

    if col_type.upper() == "TEXT":
        return f"'{value}'"

    return str(value)


async def aprint_sqlite_state(conn: anysqlite.Connection, exclude_columns: Tuple[str, ...] = ()) -> str:
    """
    Print all tables and their rows in a pretty format suitable for inline snapshots.

    Args:
        conn: SQLite database connection
        exclude_columns: Columns left out of the output

    Returns:
        Formatted string representation of the database state
    """
    cursor = await conn.cursor()

    await cursor.execute("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name")
    tables = [row[0] for row in await cursor.fetchall()]

    output_lines = []
    output_lines.append("=" * 80)
    output_lines.append("DATABASE SNAPSHOT")
    output_lines.append("=" * 80)

    for table_name in tables:
        await cursor.execute(f"PRAGMA table_info({table_name})")
        columns = await cursor.fetchall()
        column_names = [col[1] for col in columns]
        column_types = {col[1]: col[2] for col in columns}

        await cursor.execute(f"SELECT * FROM {table_name} ORDER BY 1")
        rows = await cursor.fetchall()

        output_lines.append("")
        output_lines.append(f"TABLE: {table_name}")
        output_lines.append("-" * 80)
        output_lines.append(f"Rows: {len(rows)}")
        output_lines.append("")

        if not rows:
            output_lines.append("  (empty)")
            continue

        for idx, row in enumerate(rows, 1):
            output_lines.append(f"  Row {idx}:")

            for col_name, value in zip(column_names, row):
                if col_name in exclude_columns:
                    continue
                col_type = column_types[col_name]
                formatted_value = format_value(value, col_name, col_type)
                output_lines.append(f"    {col_name:15} = {formatted_value}")

            if idx < len(rows):
                output_lines.append("")

    output_lines.append("")
    output_lines.append("=" * 80)

    return "\n".join(output_lines)


@pytest.fixture
def sqlite_state():
    return aprint_sqlite_state
