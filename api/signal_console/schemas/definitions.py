from datetime import datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field

TagValueType = Literal["string", "number", "boolean", "date"]
ScoreDirection = Literal["higher_is_better", "lower_is_better"]


class TagDefinitionOut(BaseModel):
    tag_id: str
    tag_code: str
    tag_name: str
    description: str | None = None
    value_type: str
    is_multi_valued: bool
    source_type: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class TagDefinitionCreateRequest(BaseModel):
    tag_code: str | None = None
    tag_name: str | None = None
    description: str | None = None
    value_type: TagValueType = "string"
    is_multi_valued: bool = False
    source_type: str = "manual"


class TagDefinitionUpdateRequest(BaseModel):
    id: str | None = Field(default=None, validation_alias=AliasChoices("id", "tag_id"))
    tag_code: str | None = None
    tag_name: str | None = None
    description: str | None = None
    value_type: TagValueType | None = None
    is_multi_valued: bool | None = None
    is_active: bool | None = None


class ScoreDefinitionOut(BaseModel):
    score_id: str
    score_code: str
    score_name: str
    description: str | None = None
    min_value: float | None = None
    max_value: float | None = None
    direction: str
    source_type: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ScoreDefinitionCreateRequest(BaseModel):
    score_code: str | None = None
    score_name: str | None = None
    description: str | None = None
    min_value: float | None = None
    max_value: float | None = None
    direction: ScoreDirection = "higher_is_better"
    source_type: str = "manual"


class ScoreDefinitionUpdateRequest(BaseModel):
    id: str | None = Field(default=None, validation_alias=AliasChoices("id", "score_id"))
    score_code: str | None = None
    score_name: str | None = None
    description: str | None = None
    min_value: float | None = None
    max_value: float | None = None
    direction: ScoreDirection | None = None
    is_active: bool | None = None


class DefinitionDeleteRequest(BaseModel):
    id: str | None = Field(default=None, validation_alias=AliasChoices("id", "tag_id", "score_id"))


class DefinitionDeleteOut(BaseModel):
    id: str
    status: str
