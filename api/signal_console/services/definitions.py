from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
import logging
from typing import Any
from uuid import uuid4

import asyncpg  # type: ignore[import-untyped]

from signal_console.core.coerce import coerce_text
from signal_console.core.database import ConnectionProvider, affected_rows, get_connection_provider
from signal_console.core.errors import InvalidRequestError, NotFoundError

logger = logging.getLogger(__name__)

DEFINITION_LIST_DEFAULT_LIMIT = 200
DEFINITION_LIST_MAX_LIMIT = 1000
TAG_VALUE_TYPES = {"string", "number", "boolean", "date"}
SCORE_DIRECTIONS = {"higher_is_better", "lower_is_better"}


@dataclass(frozen=True, slots=True)
class DefinitionTable:
    kind: str
    table: str
    columns: tuple[str, ...]
    insertable: tuple[str, ...]
    updatable: frozenset[str]
    defaults: tuple[tuple[str, Any], ...] = ()

    @property
    def id_column(self) -> str:
        return f"{self.kind}_id"

    @property
    def code_column(self) -> str:
        return f"{self.kind}_code"

    @property
    def name_column(self) -> str:
        return f"{self.kind}_name"


TAG_DEFINITIONS = DefinitionTable(
    kind="tag",
    table="tag_definitions",
    columns=(
        "tag_code",
        "tag_name",
        "description",
        "value_type",
        "is_multi_valued",
        "source_type",
        "is_active",
        "created_at",
        "updated_at",
    ),
    insertable=("tag_code", "tag_name", "description", "value_type", "is_multi_valued", "source_type"),
    updatable=frozenset({"tag_code", "tag_name", "description", "value_type", "is_multi_valued", "is_active"}),
    defaults=(("value_type", "string"), ("is_multi_valued", False), ("source_type", "manual")),
)

SCORE_DEFINITIONS = DefinitionTable(
    kind="score",
    table="score_definitions",
    columns=(
        "score_code",
        "score_name",
        "description",
        "min_value",
        "max_value",
        "direction",
        "source_type",
        "is_active",
        "created_at",
        "updated_at",
    ),
    insertable=("score_code", "score_name", "description", "min_value", "max_value", "direction", "source_type"),
    updatable=frozenset({"score_code", "score_name", "description", "min_value", "max_value", "direction", "is_active"}),
    defaults=(("direction", "higher_is_better"), ("source_type", "manual")),
)


class DefinitionStore:
    """CRUD over one master table (tags or scores).

    Deletes are soft: the row stays and ``is_active`` is cleared, so it only
    shows up again when listing with ``include_inactive``.
    """

    def __init__(self, provider: ConnectionProvider, table: DefinitionTable) -> None:
        self.provider = provider
        self.table = table

    async def list_definitions(
        self,
        *,
        include_inactive: bool = False,
        limit: int = DEFINITION_LIST_DEFAULT_LIMIT,
    ) -> list[dict[str, Any]]:
        bounded_limit = max(1, min(limit, DEFINITION_LIST_MAX_LIMIT))
        async with self.provider.acquire() as conn:
            rows = await conn.fetch(
                f"""
                select {self._select_list()}
                from {self.table.table}
                where ($1::boolean or is_active = true)
                order by updated_at desc, {self.table.id_column} asc
                limit $2
                """,
                include_inactive,
                bounded_limit,
            )
        return [self._definition_row_to_dict(row) for row in rows]

    async def create_definition(self, fields: dict[str, Any]) -> dict[str, Any]:
        definition_id = str(uuid4())
        values = self._normalize_fields(fields, creating=True)
        for column, default in self.table.defaults:
            if values.get(column) in (None, ""):
                values[column] = default
        if not values.get(self.table.code_column):
            values[self.table.code_column] = f"{self.table.kind}_{definition_id.replace('-', '')[:8]}"
        self._validate_definition(values)

        params: list[Any] = [definition_id]

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        column_sql = ", ".join(self.table.insertable)
        value_sql = ", ".join(bind(values.get(column)) for column in self.table.insertable)
        async with self.provider.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                insert into {self.table.table} (
                  {self.table.id_column},
                  {column_sql},
                  is_active,
                  created_at,
                  updated_at
                )
                values ($1, {value_sql}, true, now(), now())
                returning {self._select_list()}
                """,
                *params,
            )
        logger.info("%s definition created id=%s", self.table.kind, definition_id)
        return self._definition_row_to_dict(row)

    async def update_definition(self, definition_id: str | None, fields: dict[str, Any]) -> dict[str, Any]:
        normalized_id = coerce_text(definition_id)
        if not normalized_id:
            raise InvalidRequestError(f"{self.table.id_column} is required.")

        changes = self._normalize_fields(fields, creating=False)
        if not changes:
            raise InvalidRequestError("at least one field to update is required.")

        async with self.provider.acquire() as conn:
            async with conn.transaction():
                existing = await conn.fetchrow(
                    f"""
                    select {self._select_list()}
                    from {self.table.table}
                    where {self.table.id_column} = $1
                    for update
                    """,
                    normalized_id,
                )
                if not existing:
                    raise NotFoundError(f"{self.table.kind} definition not found.")

                merged = self._definition_row_to_dict(existing)
                merged.update(changes)
                self._validate_definition(merged)

                params: list[Any] = [normalized_id]

                def bind(value: Any) -> str:
                    params.append(value)
                    return f"${len(params)}"

                assignments = [f"{column} = {bind(value)}" for column, value in changes.items()]
                assignments.append("updated_at = now()")
                row = await conn.fetchrow(
                    f"""
                    update {self.table.table}
                    set {", ".join(assignments)}
                    where {self.table.id_column} = $1
                    returning {self._select_list()}
                    """,
                    *params,
                )
        logger.info(
            "%s definition updated id=%s fields=%s",
            self.table.kind,
            normalized_id,
            ",".join(sorted(changes)),
        )
        return self._definition_row_to_dict(row)

    async def delete_definition(self, definition_id: str | None) -> dict[str, Any]:
        normalized_id = coerce_text(definition_id)
        if not normalized_id:
            raise InvalidRequestError(f"{self.table.id_column} is required.")

        async with self.provider.acquire() as conn:
            command_status = await conn.execute(
                f"""
                update {self.table.table}
                set is_active = false,
                    updated_at = now()
                where {self.table.id_column} = $1
                """,
                normalized_id,
            )
        if not affected_rows(command_status):
            raise NotFoundError(f"{self.table.kind} definition not found.")

        logger.info("%s definition deleted id=%s", self.table.kind, normalized_id)
        return {"id": normalized_id, "status": "deleted"}

    def _normalize_fields(self, fields: dict[str, Any], *, creating: bool) -> dict[str, Any]:
        allowed = set(self.table.insertable) if creating else set(self.table.updatable)
        normalized: dict[str, Any] = {}
        for column, value in fields.items():
            if column not in allowed:
                continue
            if column == "description":
                normalized[column] = coerce_text(value)
            elif isinstance(value, str):
                normalized[column] = value.strip()
            elif value is None and not creating and column not in {"min_value", "max_value"}:
                continue
            else:
                normalized[column] = value
        return normalized

    def _validate_definition(self, values: dict[str, Any]) -> None:
        if not coerce_text(values.get(self.table.name_column)):
            raise InvalidRequestError(f"{self.table.name_column} is required.")
        if self.table.code_column in values and not coerce_text(values.get(self.table.code_column)):
            raise InvalidRequestError(f"{self.table.code_column} must be a non-empty string.")

        if self.table is TAG_DEFINITIONS:
            value_type = values.get("value_type") or "string"
            if value_type not in TAG_VALUE_TYPES:
                raise InvalidRequestError(f"value_type must be one of: {', '.join(sorted(TAG_VALUE_TYPES))}")
        elif self.table is SCORE_DEFINITIONS:
            direction = values.get("direction") or "higher_is_better"
            if direction not in SCORE_DIRECTIONS:
                raise InvalidRequestError(f"direction must be one of: {', '.join(sorted(SCORE_DIRECTIONS))}")
            min_value = values.get("min_value")
            max_value = values.get("max_value")
            if min_value is not None and max_value is not None and float(min_value) > float(max_value):
                raise InvalidRequestError("min_value must be less than or equal to max_value")

    def _select_list(self) -> str:
        return ", ".join((f"{self.table.id_column}::text as {self.table.id_column}", *self.table.columns))

    def _definition_row_to_dict(self, row: asyncpg.Record) -> dict[str, Any]:
        payload: dict[str, Any] = {self.table.id_column: row[self.table.id_column]}
        for column in self.table.columns:
            value = row[column]
            if isinstance(value, Decimal):
                value = float(value)
            payload[column] = value
        return payload


@lru_cache
def get_tag_definition_store() -> DefinitionStore:
    return DefinitionStore(get_connection_provider(), TAG_DEFINITIONS)


@lru_cache
def get_score_definition_store() -> DefinitionStore:
    return DefinitionStore(get_connection_provider(), SCORE_DEFINITIONS)
