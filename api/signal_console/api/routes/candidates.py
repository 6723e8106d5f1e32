from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from signal_console.core.config import Settings, get_settings
from signal_console.core.errors import (
    AlreadyDecidedError,
    ConfigurationError,
    InvalidRequestError,
    NotFoundError,
    UpstreamFailureError,
)
from signal_console.schemas.candidates import CandidateDecisionOut, CandidateDecisionRequest, FeatureCandidateOut
from signal_console.services.candidates import get_candidate_store
from signal_console.services.review import ReviewWorkflow

router = APIRouter()


def get_review_workflow(
    store=Depends(get_candidate_store),
    settings: Settings = Depends(get_settings),
) -> ReviewWorkflow:
    return ReviewWorkflow(store, enforce_terminal_decisions=settings.enforce_terminal_decisions)


@router.get("/getFeatureCandidates", response_model=list[FeatureCandidateOut])
async def get_feature_candidates(
    candidate_type: str | None = Query(default=None, alias="type"),
    candidate_status: str | None = Query(default=None, alias="status"),
    workflow: ReviewWorkflow = Depends(get_review_workflow),
) -> list[FeatureCandidateOut]:
    try:
        rows = await workflow.list_candidates(candidate_type, candidate_status)
    except (ConfigurationError, UpstreamFailureError) as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    return [FeatureCandidateOut(**row) for row in rows]


@router.get("/getFeatureCandidate", response_model=FeatureCandidateOut)
async def get_feature_candidate(
    candidate_id: str | None = Query(default=None),
    workflow: ReviewWorkflow = Depends(get_review_workflow),
) -> FeatureCandidateOut:
    try:
        row = await workflow.get_candidate(candidate_id)
    except InvalidRequestError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except (ConfigurationError, UpstreamFailureError) as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    return FeatureCandidateOut(**row)


@router.post("/updateFeatureCandidate", response_model=CandidateDecisionOut)
async def update_feature_candidate(
    payload: CandidateDecisionRequest | None = Body(default=None),
    workflow: ReviewWorkflow = Depends(get_review_workflow),
) -> CandidateDecisionOut:
    payload = payload or CandidateDecisionRequest()
    try:
        decision = await workflow.decide(payload.candidate_id, payload.action)
    except InvalidRequestError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except AlreadyDecidedError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except (ConfigurationError, UpstreamFailureError) as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    return CandidateDecisionOut(candidate_id=decision.candidate_id, status=decision.status)
