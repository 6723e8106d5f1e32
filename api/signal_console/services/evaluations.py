"""Read-only access to per-account tag and score evaluations.

Results are returned as ``{"columns": [...], "rows": [{column: value}]}``.
Column names are taken from the prepared statement, so callers never depend
on a fixed row schema and an empty result still reports its columns.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from typing import Any

from signal_console.core.coerce import coerce_text
from signal_console.core.database import ConnectionProvider, get_connection_provider

EVALUATION_DEFAULT_LIMIT = 200
EVALUATION_MAX_LIMIT = 2000


@dataclass(frozen=True, slots=True)
class EvaluationView:
    kind: str
    source_sql: str
    select_sql: str


ACCOUNT_TAG_EVALUATIONS = EvaluationView(
    kind="tag",
    source_sql="""
      account_tag_evaluations e
      left join tag_definitions d on d.tag_id = e.tag_id
    """,
    select_sql="""
      e.account_id::text as account_id,
      e.account_name,
      e.tag_id::text as tag_id,
      d.tag_name,
      e.tag_value,
      e.confidence_score,
      e.created_at
    """,
)

ACCOUNT_SCORE_EVALUATIONS = EvaluationView(
    kind="score",
    source_sql="""
      account_score_evaluations e
      left join score_definitions d on d.score_id = e.score_id
    """,
    select_sql="""
      e.account_id::text as account_id,
      e.account_name,
      e.score_id::text as score_id,
      d.score_name,
      e.score_value,
      e.created_at
    """,
)


@dataclass(slots=True)
class AccountEvaluationFilters:
    account_id: str | None = None
    account_name: str | None = None
    definition_id: str | None = None
    definition_name: str | None = None


class EvaluationStore:
    def __init__(self, provider: ConnectionProvider) -> None:
        self.provider = provider

    async def query_account_tags(
        self,
        filters: AccountEvaluationFilters,
        limit: int = EVALUATION_DEFAULT_LIMIT,
    ) -> dict[str, Any]:
        return await self._query(ACCOUNT_TAG_EVALUATIONS, filters, limit)

    async def query_account_scores(
        self,
        filters: AccountEvaluationFilters,
        limit: int = EVALUATION_DEFAULT_LIMIT,
    ) -> dict[str, Any]:
        return await self._query(ACCOUNT_SCORE_EVALUATIONS, filters, limit)

    async def _query(self, view: EvaluationView, filters: AccountEvaluationFilters, limit: int) -> dict[str, Any]:
        conditions: list[str] = []
        params: list[Any] = []

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        account_id = coerce_text(filters.account_id)
        if account_id:
            conditions.append(f"e.account_id::text = {bind(account_id)}")

        account_name = coerce_text(filters.account_name)
        if account_name:
            conditions.append(f"e.account_name ilike {bind(_contains_pattern(account_name))}")

        definition_id = coerce_text(filters.definition_id)
        if definition_id:
            conditions.append(f"e.{view.kind}_id::text = {bind(definition_id)}")

        definition_name = coerce_text(filters.definition_name)
        if definition_name:
            conditions.append(f"d.{view.kind}_name ilike {bind(_contains_pattern(definition_name))}")

        where_sql = " and ".join(conditions) if conditions else "true"
        limit_token = bind(clamp_limit(limit))

        async with self.provider.acquire() as conn:
            statement = await conn.prepare(
                f"""
                select
                {view.select_sql}
                from {view.source_sql}
                where {where_sql}
                order by e.created_at desc, e.account_id asc
                limit {limit_token}
                """
            )
            columns = [attribute.name for attribute in statement.get_attributes()]
            records = await statement.fetch(*params)

        rows = [{column: _json_value(record[column]) for column in columns} for record in records]
        return {"columns": columns, "rows": rows}


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return EVALUATION_DEFAULT_LIMIT
    return max(1, min(int(limit), EVALUATION_MAX_LIMIT))


def _contains_pattern(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return value


@lru_cache
def get_evaluation_store() -> EvaluationStore:
    return EvaluationStore(get_connection_provider())
