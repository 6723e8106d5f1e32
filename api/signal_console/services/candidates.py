from __future__ import annotations

from functools import lru_cache
from typing import Any

import asyncpg  # type: ignore[import-untyped]

from signal_console.core.database import ConnectionProvider, affected_rows, get_connection_provider
from signal_console.core.errors import NotFoundError

CANDIDATE_LIST_LIMIT = 100

_CANDIDATE_COLUMNS = """
  candidate_id::text as candidate_id,
  type,
  source,
  name_proposed,
  description_proposed,
  logic_proposed,
  status,
  created_at
"""


class CandidateStore:
    """Reads and updates rows of ``feature_candidates``."""

    def __init__(self, provider: ConnectionProvider) -> None:
        self.provider = provider

    async def list_candidates(
        self,
        *,
        candidate_type: str,
        status: str,
        limit: int = CANDIDATE_LIST_LIMIT,
    ) -> list[dict[str, Any]]:
        async with self.provider.acquire() as conn:
            rows = await conn.fetch(
                f"""
                select
                {_CANDIDATE_COLUMNS}
                from feature_candidates
                where type = $1
                  and status = $2
                order by created_at desc, candidate_id asc
                limit $3
                """,
                candidate_type,
                status,
                max(1, min(limit, CANDIDATE_LIST_LIMIT)),
            )
        return [self._candidate_row_to_dict(row) for row in rows]

    async def get_candidate(self, candidate_id: str) -> dict[str, Any]:
        async with self.provider.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                select
                {_CANDIDATE_COLUMNS}
                from feature_candidates
                where candidate_id = $1
                """,
                candidate_id,
            )
        if not row:
            raise NotFoundError("Candidate not found.")
        return self._candidate_row_to_dict(row)

    async def update_status(
        self,
        *,
        candidate_id: str,
        status: str,
        expected_status: str | None = None,
    ) -> int:
        """Set the status of one candidate and return the affected row count.

        With ``expected_status`` the update only applies while the candidate is
        still in that status.
        """
        async with self.provider.acquire() as conn:
            command_status = await conn.execute(
                """
                update feature_candidates
                set status = $2
                where candidate_id = $1
                  and ($3::text is null or status = $3::text)
                """,
                candidate_id,
                status,
                expected_status,
            )
        return affected_rows(command_status)

    async def candidate_exists(self, candidate_id: str) -> bool:
        async with self.provider.acquire() as conn:
            found = await conn.fetchval(
                """
                select 1
                from feature_candidates
                where candidate_id = $1
                limit 1
                """,
                candidate_id,
            )
        return bool(found)

    @staticmethod
    def _candidate_row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        return {
            "candidate_id": row["candidate_id"],
            "type": row["type"],
            "source": row["source"],
            "name_proposed": row["name_proposed"],
            "description_proposed": row["description_proposed"],
            "logic_proposed": row["logic_proposed"],
            "status": row["status"],
            "created_at": row["created_at"],
        }


@lru_cache
def get_candidate_store() -> CandidateStore:
    return CandidateStore(get_connection_provider())
