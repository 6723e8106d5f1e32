from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Protocol

from signal_console.core.coerce import coerce_text
from signal_console.core.errors import AlreadyDecidedError, ConsoleError, InvalidRequestError, NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_CANDIDATE_TYPE = "behavior_feature"
DEFAULT_CANDIDATE_STATUS = "new"
UNDECIDED_STATUS = "new"
ACTION_STATUS = {
    "adopt": "adopted",
    "reject": "rejected",
}


class CandidateRepository(Protocol):
    async def list_candidates(self, *, candidate_type: str, status: str) -> list[dict[str, Any]]: ...

    async def get_candidate(self, candidate_id: str) -> dict[str, Any]: ...

    async def update_status(self, *, candidate_id: str, status: str, expected_status: str | None = None) -> int: ...

    async def candidate_exists(self, candidate_id: str) -> bool: ...


@dataclass(slots=True)
class CandidateDecision:
    candidate_id: str
    status: str


def resolve_list_filters(candidate_type: str | None, status: str | None) -> tuple[str, str]:
    """Apply list defaults to absent filters.

    Only a missing value is defaulted. Empty or unknown values pass through
    unchanged and simply match nothing.
    """
    resolved_type = DEFAULT_CANDIDATE_TYPE if candidate_type is None else candidate_type
    resolved_status = DEFAULT_CANDIDATE_STATUS if status is None else status
    return resolved_type, resolved_status


def resolve_decision(candidate_id: str | None, action: str | None) -> CandidateDecision:
    # Values are matched exactly; no trimming or case folding.
    if not candidate_id or not action:
        raise InvalidRequestError("candidate_id and action are required.")

    next_status = ACTION_STATUS.get(action)
    if next_status is None:
        raise InvalidRequestError('action must be "adopt" or "reject"')
    return CandidateDecision(candidate_id=candidate_id, status=next_status)


class ReviewWorkflow:
    """Candidate listing and the adopt/reject transition.

    By default a decision overwrites whatever status the candidate had. With
    ``enforce_terminal_decisions`` only ``new`` candidates can be decided and
    any other attempt raises :class:`AlreadyDecidedError`.
    """

    def __init__(self, store: CandidateRepository, *, enforce_terminal_decisions: bool = False) -> None:
        self.store = store
        self.enforce_terminal_decisions = enforce_terminal_decisions

    async def list_candidates(
        self,
        candidate_type: str | None = None,
        status: str | None = None,
    ) -> list[dict[str, Any]]:
        normalized_type, normalized_status = resolve_list_filters(candidate_type, status)
        return await self.store.list_candidates(candidate_type=normalized_type, status=normalized_status)

    async def get_candidate(self, candidate_id: str | None) -> dict[str, Any]:
        normalized_id = coerce_text(candidate_id)
        if not normalized_id:
            raise InvalidRequestError("candidate_id is required.")
        return await self.store.get_candidate(normalized_id)

    async def decide(self, candidate_id: str | None, action: str | None) -> CandidateDecision:
        decision = resolve_decision(candidate_id, action)
        expected_status = UNDECIDED_STATUS if self.enforce_terminal_decisions else None

        affected = await self.store.update_status(
            candidate_id=decision.candidate_id,
            status=decision.status,
            expected_status=expected_status,
        )
        if not affected:
            if expected_status is not None and await self.store.candidate_exists(decision.candidate_id):
                raise AlreadyDecidedError(f"candidate {decision.candidate_id} has already been decided")
            raise NotFoundError("Candidate not found.")

        logger.info("candidate decided candidate_id=%s status=%s", decision.candidate_id, decision.status)
        return decision


class ReviewSession:
    """View state of the review console: filters, loaded list and selection.

    Every mutation is followed by a full reload; the loaded list is never
    patched in place.
    """

    def __init__(
        self,
        workflow: ReviewWorkflow,
        *,
        candidate_type: str | None = None,
        status: str | None = None,
    ) -> None:
        self.workflow = workflow
        self.candidate_type, self.status = resolve_list_filters(candidate_type, status)
        self.candidates: list[dict[str, Any]] = []
        self.selected_id: str | None = None
        self.last_error: str | None = None

    @property
    def selected(self) -> dict[str, Any] | None:
        if self.selected_id is None:
            return None
        return next((row for row in self.candidates if row["candidate_id"] == self.selected_id), None)

    async def reload(self) -> list[dict[str, Any]]:
        self.last_error = None
        try:
            rows = await self.workflow.list_candidates(self.candidate_type, self.status)
        except ConsoleError as exc:
            self.last_error = str(exc)
            self.candidates = []
            self.selected_id = None
            raise

        self.candidates = rows
        if self.selected_id is not None and not any(row["candidate_id"] == self.selected_id for row in rows):
            self.selected_id = None
        return rows

    async def change_filters(self, *, candidate_type: str | None = None, status: str | None = None) -> list[dict[str, Any]]:
        self.candidate_type, self.status = resolve_list_filters(candidate_type, status)
        return await self.reload()

    def select(self, candidate_id: str) -> dict[str, Any]:
        for row in self.candidates:
            if row["candidate_id"] == candidate_id:
                self.selected_id = candidate_id
                return row
        raise NotFoundError("Candidate not found.")

    def clear_selection(self) -> None:
        self.selected_id = None

    async def decide(self, action: str) -> CandidateDecision:
        if self.selected_id is None:
            raise InvalidRequestError("no candidate selected")

        self.last_error = None
        try:
            decision = await self.workflow.decide(self.selected_id, action)
        except ConsoleError as exc:
            self.last_error = str(exc)
            raise

        await self.reload()
        return decision
