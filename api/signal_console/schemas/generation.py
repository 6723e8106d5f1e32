from pydantic import BaseModel, Field


class GenerateTagCandidatesRequest(BaseModel):
    sample_size: int | None = Field(default=None, ge=1)
    max_candidates: int | None = Field(default=None, ge=1)
    min_candidates: int | None = Field(default=None, ge=0)


class GenerateTagCandidatesOut(BaseModel):
    message: str
    upstream_status: int | None = None
    upstream_response: str | None = None
