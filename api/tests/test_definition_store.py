from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import pytest

from signal_console.core.errors import InvalidRequestError, NotFoundError
from signal_console.services.definitions import SCORE_DEFINITIONS, TAG_DEFINITIONS, DefinitionStore

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


class FakeTransaction:
    async def __aenter__(self) -> "FakeTransaction":
        return self

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False


class FakeConnection:
    def __init__(
        self,
        *,
        on_fetchrow: Callable[[str, tuple[Any, ...]], Any] | None = None,
        fetch_rows: list[dict[str, Any]] | None = None,
        execute_status: str = "UPDATE 1",
    ) -> None:
        self.on_fetchrow = on_fetchrow
        self.fetch_rows = fetch_rows or []
        self.execute_status = execute_status
        self.calls: list[tuple[str, str, tuple[Any, ...]]] = []

    async def fetch(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        self.calls.append(("fetch", sql, args))
        return self.fetch_rows

    async def fetchrow(self, sql: str, *args: Any) -> Any:
        self.calls.append(("fetchrow", sql, args))
        return self.on_fetchrow(sql, args) if self.on_fetchrow else None

    async def execute(self, sql: str, *args: Any) -> str:
        self.calls.append(("execute", sql, args))
        return self.execute_status

    def transaction(self) -> FakeTransaction:
        return FakeTransaction()


class FakeProvider:
    def __init__(self, conn: FakeConnection) -> None:
        self.conn = conn

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[FakeConnection]:
        yield self.conn


def _inserted_row(table, args: tuple[Any, ...]) -> dict[str, Any]:
    row = {table.id_column: args[0], "is_active": True, "created_at": NOW, "updated_at": NOW}
    row.update(dict(zip(table.insertable, args[1:])))
    return row


def _score_row(**overrides: Any) -> dict[str, Any]:
    row = {
        "score_id": "S1",
        "score_code": "score_s1",
        "score_name": "Engagement",
        "description": None,
        "min_value": Decimal("0"),
        "max_value": Decimal("100"),
        "direction": "higher_is_better",
        "source_type": "manual",
        "is_active": True,
        "created_at": NOW,
        "updated_at": NOW,
    }
    row.update(overrides)
    return row


def test_create_tag_generates_id_and_default_code() -> None:
    conn = FakeConnection(on_fetchrow=lambda _sql, args: _inserted_row(TAG_DEFINITIONS, args))
    store = DefinitionStore(FakeProvider(conn), TAG_DEFINITIONS)

    row = asyncio.run(store.create_definition({"tag_name": " High intent ", "description": "  ", "value_type": "string"}))

    tag_id = row["tag_id"]
    assert row["tag_code"] == f"tag_{tag_id.replace('-', '')[:8]}"
    assert row["tag_name"] == "High intent"
    assert row["description"] is None
    assert row["is_multi_valued"] is False
    assert row["source_type"] == "manual"
    assert row["is_active"] is True
    _, sql, _ = conn.calls[0]
    assert "insert into tag_definitions" in sql


def test_create_keeps_explicit_code() -> None:
    conn = FakeConnection(on_fetchrow=lambda _sql, args: _inserted_row(TAG_DEFINITIONS, args))
    store = DefinitionStore(FakeProvider(conn), TAG_DEFINITIONS)
    row = asyncio.run(store.create_definition({"tag_name": "Churn risk", "tag_code": "churn_risk"}))
    assert row["tag_code"] == "churn_risk"


def test_create_requires_name() -> None:
    conn = FakeConnection()
    store = DefinitionStore(FakeProvider(conn), TAG_DEFINITIONS)
    with pytest.raises(InvalidRequestError, match="tag_name is required."):
        asyncio.run(store.create_definition({"tag_name": "   "}))
    assert conn.calls == []


def test_create_score_rejects_inverted_range() -> None:
    conn = FakeConnection()
    store = DefinitionStore(FakeProvider(conn), SCORE_DEFINITIONS)
    with pytest.raises(InvalidRequestError, match="min_value must be less than or equal to max_value"):
        asyncio.run(store.create_definition({"score_name": "Fit", "min_value": 10, "max_value": 1}))
    assert conn.calls == []


def test_list_clamps_limit_and_converts_decimals() -> None:
    conn = FakeConnection(fetch_rows=[_score_row()])
    store = DefinitionStore(FakeProvider(conn), SCORE_DEFINITIONS)

    rows = asyncio.run(store.list_definitions(include_inactive=True, limit=5000))

    _, sql, args = conn.calls[0]
    assert args == (True, 1000)
    assert "order by updated_at desc, score_id asc" in sql
    assert rows[0]["max_value"] == 100.0
    assert isinstance(rows[0]["max_value"], float)


def test_update_sets_only_provided_columns() -> None:
    def on_fetchrow(sql: str, args: tuple[Any, ...]) -> dict[str, Any]:
        if "for update" in sql:
            return _score_row()
        return _score_row(score_name=args[1])

    conn = FakeConnection(on_fetchrow=on_fetchrow)
    store = DefinitionStore(FakeProvider(conn), SCORE_DEFINITIONS)

    row = asyncio.run(store.update_definition("S1", {"score_name": "Engagement v2"}))

    assert row["score_name"] == "Engagement v2"
    _, update_sql, update_args = conn.calls[1]
    assert "score_name = $2" in update_sql
    assert "updated_at = now()" in update_sql
    assert "min_value" not in update_sql.split("returning")[0]
    assert update_args == ("S1", "Engagement v2")


def test_update_validates_merged_range() -> None:
    conn = FakeConnection(on_fetchrow=lambda _sql, _args: _score_row())
    store = DefinitionStore(FakeProvider(conn), SCORE_DEFINITIONS)
    with pytest.raises(InvalidRequestError, match="min_value"):
        asyncio.run(store.update_definition("S1", {"min_value": 150}))
    assert len(conn.calls) == 1


def test_update_unknown_definition_raises_not_found() -> None:
    conn = FakeConnection(on_fetchrow=lambda _sql, _args: None)
    store = DefinitionStore(FakeProvider(conn), TAG_DEFINITIONS)
    with pytest.raises(NotFoundError, match="tag definition not found."):
        asyncio.run(store.update_definition("missing", {"tag_name": "x"}))


def test_update_requires_id_and_changes() -> None:
    store = DefinitionStore(FakeProvider(FakeConnection()), TAG_DEFINITIONS)
    with pytest.raises(InvalidRequestError, match="tag_id is required."):
        asyncio.run(store.update_definition(None, {"tag_name": "x"}))
    with pytest.raises(InvalidRequestError, match="at least one field"):
        asyncio.run(store.update_definition("T1", {"unknown": "x", "tag_name": None}))


def test_update_rejects_blank_name() -> None:
    conn = FakeConnection(
        on_fetchrow=lambda _sql, _args: {
            "tag_id": "T1",
            "tag_code": "tag_t1",
            "tag_name": "Old",
            "description": None,
            "value_type": "string",
            "is_multi_valued": False,
            "source_type": "manual",
            "is_active": True,
            "created_at": NOW,
            "updated_at": NOW,
        }
    )
    store = DefinitionStore(FakeProvider(conn), TAG_DEFINITIONS)
    with pytest.raises(InvalidRequestError, match="tag_name is required."):
        asyncio.run(store.update_definition("T1", {"tag_name": "  "}))


def test_delete_is_soft_and_reports_status() -> None:
    conn = FakeConnection(execute_status="UPDATE 1")
    store = DefinitionStore(FakeProvider(conn), TAG_DEFINITIONS)

    result = asyncio.run(store.delete_definition("T1"))

    assert result == {"id": "T1", "status": "deleted"}
    _, sql, args = conn.calls[0]
    assert "set is_active = false" in sql
    assert args == ("T1",)


def test_delete_unknown_definition_raises_not_found() -> None:
    store = DefinitionStore(FakeProvider(FakeConnection(execute_status="UPDATE 0")), SCORE_DEFINITIONS)
    with pytest.raises(NotFoundError, match="score definition not found."):
        asyncio.run(store.delete_definition("missing"))
