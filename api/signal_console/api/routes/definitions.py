from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from signal_console.core.errors import ConfigurationError, InvalidRequestError, NotFoundError, UpstreamFailureError
from signal_console.schemas.definitions import (
    DefinitionDeleteOut,
    DefinitionDeleteRequest,
    ScoreDefinitionCreateRequest,
    ScoreDefinitionOut,
    ScoreDefinitionUpdateRequest,
    TagDefinitionCreateRequest,
    TagDefinitionOut,
    TagDefinitionUpdateRequest,
)
from signal_console.services.definitions import (
    DEFINITION_LIST_DEFAULT_LIMIT,
    DEFINITION_LIST_MAX_LIMIT,
    DefinitionStore,
    get_score_definition_store,
    get_tag_definition_store,
)

router = APIRouter()


@router.get("/getTagDefinitions", response_model=list[TagDefinitionOut])
async def get_tag_definitions(
    include_inactive: bool = Query(default=False),
    limit: int = Query(default=DEFINITION_LIST_DEFAULT_LIMIT, ge=1, le=DEFINITION_LIST_MAX_LIMIT),
    store: DefinitionStore = Depends(get_tag_definition_store),
) -> list[TagDefinitionOut]:
    rows = await _list_definitions(store, include_inactive=include_inactive, limit=limit)
    return [TagDefinitionOut(**row) for row in rows]


@router.get("/getScoreDefinitions", response_model=list[ScoreDefinitionOut])
async def get_score_definitions(
    include_inactive: bool = Query(default=False),
    limit: int = Query(default=DEFINITION_LIST_DEFAULT_LIMIT, ge=1, le=DEFINITION_LIST_MAX_LIMIT),
    store: DefinitionStore = Depends(get_score_definition_store),
) -> list[ScoreDefinitionOut]:
    rows = await _list_definitions(store, include_inactive=include_inactive, limit=limit)
    return [ScoreDefinitionOut(**row) for row in rows]


@router.post("/createTagDefinition", response_model=TagDefinitionOut, status_code=status.HTTP_201_CREATED)
async def create_tag_definition(
    payload: TagDefinitionCreateRequest,
    store: DefinitionStore = Depends(get_tag_definition_store),
) -> TagDefinitionOut:
    row = await _create_definition(store, payload.model_dump())
    return TagDefinitionOut(**row)


@router.post("/createScoreDefinition", response_model=ScoreDefinitionOut, status_code=status.HTTP_201_CREATED)
async def create_score_definition(
    payload: ScoreDefinitionCreateRequest,
    store: DefinitionStore = Depends(get_score_definition_store),
) -> ScoreDefinitionOut:
    row = await _create_definition(store, payload.model_dump())
    return ScoreDefinitionOut(**row)


@router.post("/updateTagDefinition", response_model=TagDefinitionOut)
async def update_tag_definition(
    payload: TagDefinitionUpdateRequest,
    store: DefinitionStore = Depends(get_tag_definition_store),
) -> TagDefinitionOut:
    row = await _update_definition(store, payload.id, payload.model_dump(exclude_unset=True, exclude={"id"}))
    return TagDefinitionOut(**row)


@router.post("/updateScoreDefinition", response_model=ScoreDefinitionOut)
async def update_score_definition(
    payload: ScoreDefinitionUpdateRequest,
    store: DefinitionStore = Depends(get_score_definition_store),
) -> ScoreDefinitionOut:
    row = await _update_definition(store, payload.id, payload.model_dump(exclude_unset=True, exclude={"id"}))
    return ScoreDefinitionOut(**row)


@router.post("/deleteTagDefinition", response_model=DefinitionDeleteOut)
async def delete_tag_definition(
    payload: DefinitionDeleteRequest | None = Body(default=None),
    store: DefinitionStore = Depends(get_tag_definition_store),
) -> DefinitionDeleteOut:
    result = await _delete_definition(store, payload.id if payload else None)
    return DefinitionDeleteOut(**result)


@router.post("/deleteScoreDefinition", response_model=DefinitionDeleteOut)
async def delete_score_definition(
    payload: DefinitionDeleteRequest | None = Body(default=None),
    store: DefinitionStore = Depends(get_score_definition_store),
) -> DefinitionDeleteOut:
    result = await _delete_definition(store, payload.id if payload else None)
    return DefinitionDeleteOut(**result)


async def _list_definitions(store: DefinitionStore, *, include_inactive: bool, limit: int) -> list[dict[str, Any]]:
    try:
        return await store.list_definitions(include_inactive=include_inactive, limit=limit)
    except (ConfigurationError, UpstreamFailureError) as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


async def _create_definition(store: DefinitionStore, fields: dict[str, Any]) -> dict[str, Any]:
    try:
        return await store.create_definition(fields)
    except InvalidRequestError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except (ConfigurationError, UpstreamFailureError) as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


async def _update_definition(store: DefinitionStore, definition_id: str | None, fields: dict[str, Any]) -> dict[str, Any]:
    try:
        return await store.update_definition(definition_id, fields)
    except InvalidRequestError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except (ConfigurationError, UpstreamFailureError) as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


async def _delete_definition(store: DefinitionStore, definition_id: str | None) -> dict[str, Any]:
    try:
        return await store.delete_definition(definition_id)
    except InvalidRequestError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except (ConfigurationError, UpstreamFailureError) as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
