from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from signal_console.core.errors import ConfigurationError, NotFoundError, UpstreamFailureError
from signal_console.schemas.evaluations import TableResultOut
from signal_console.services.evaluations import (
    EVALUATION_DEFAULT_LIMIT,
    AccountEvaluationFilters,
    EvaluationStore,
    get_evaluation_store,
)
from signal_console.services.export import export_filename, render_csv

router = APIRouter()

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


@router.get("/getAccountTags", response_model=TableResultOut)
async def get_account_tags(
    account_id: str | None = Query(default=None),
    account_name: str | None = Query(default=None),
    tag_id: str | None = Query(default=None),
    tag_name: str | None = Query(default=None),
    limit: int = Query(default=EVALUATION_DEFAULT_LIMIT, ge=1),
    store: EvaluationStore = Depends(get_evaluation_store),
) -> TableResultOut:
    filters = AccountEvaluationFilters(
        account_id=account_id,
        account_name=account_name,
        definition_id=tag_id,
        definition_name=tag_name,
    )
    table = await _query_tags(store, filters, limit)
    return TableResultOut(**table)


@router.get("/getAccountScores", response_model=TableResultOut)
async def get_account_scores(
    account_id: str | None = Query(default=None),
    account_name: str | None = Query(default=None),
    score_id: str | None = Query(default=None),
    score_name: str | None = Query(default=None),
    limit: int = Query(default=EVALUATION_DEFAULT_LIMIT, ge=1),
    store: EvaluationStore = Depends(get_evaluation_store),
) -> TableResultOut:
    filters = AccountEvaluationFilters(
        account_id=account_id,
        account_name=account_name,
        definition_id=score_id,
        definition_name=score_name,
    )
    table = await _query_scores(store, filters, limit)
    return TableResultOut(**table)


@router.get("/exportAccountTags")
async def export_account_tags(
    account_id: str | None = Query(default=None),
    account_name: str | None = Query(default=None),
    tag_id: str | None = Query(default=None),
    tag_name: str | None = Query(default=None),
    limit: int = Query(default=EVALUATION_DEFAULT_LIMIT, ge=1),
    store: EvaluationStore = Depends(get_evaluation_store),
) -> Response:
    filters = AccountEvaluationFilters(
        account_id=account_id,
        account_name=account_name,
        definition_id=tag_id,
        definition_name=tag_name,
    )
    table = await _query_tags(store, filters, limit)
    return _csv_response(table, kind="tag")


@router.get("/exportAccountScores")
async def export_account_scores(
    account_id: str | None = Query(default=None),
    account_name: str | None = Query(default=None),
    score_id: str | None = Query(default=None),
    score_name: str | None = Query(default=None),
    limit: int = Query(default=EVALUATION_DEFAULT_LIMIT, ge=1),
    store: EvaluationStore = Depends(get_evaluation_store),
) -> Response:
    filters = AccountEvaluationFilters(
        account_id=account_id,
        account_name=account_name,
        definition_id=score_id,
        definition_name=score_name,
    )
    table = await _query_scores(store, filters, limit)
    return _csv_response(table, kind="score")


async def _query_tags(store: EvaluationStore, filters: AccountEvaluationFilters, limit: int) -> dict[str, Any]:
    try:
        return await store.query_account_tags(filters, limit)
    except (ConfigurationError, UpstreamFailureError) as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


async def _query_scores(store: EvaluationStore, filters: AccountEvaluationFilters, limit: int) -> dict[str, Any]:
    try:
        return await store.query_account_scores(filters, limit)
    except (ConfigurationError, UpstreamFailureError) as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


def _csv_response(table: dict[str, Any], *, kind: str) -> Response:
    try:
        content = render_csv(table)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return Response(
        content=content,
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{export_filename(kind)}"'},
    )
