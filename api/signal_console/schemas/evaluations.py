from typing import Any

from pydantic import BaseModel, Field


class TableResultOut(BaseModel):
    columns: list[str] = Field(default_factory=list)
    rows: list[dict[str, Any]] = Field(default_factory=list)
