from fastapi import APIRouter, Body, Depends, HTTPException, status

from signal_console.core.config import Settings, get_settings
from signal_console.core.errors import ConfigurationError, UpstreamFailureError
from signal_console.schemas.generation import GenerateTagCandidatesOut, GenerateTagCandidatesRequest
from signal_console.services import generation

router = APIRouter()


@router.post("/generateTagCandidates", response_model=GenerateTagCandidatesOut)
async def generate_tag_candidates(
    payload: GenerateTagCandidatesRequest | None = Body(default=None),
    settings: Settings = Depends(get_settings),
) -> GenerateTagCandidatesOut:
    options = payload.model_dump() if payload else {}
    try:
        result = await generation.trigger_tag_generation(
            options,
            url=settings.tag_generation_url,
            function_key=settings.tag_generation_key,
            timeout_seconds=settings.tag_generation_timeout_seconds,
        )
    except (ConfigurationError, UpstreamFailureError) as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    return GenerateTagCandidatesOut(**result)
