from datetime import datetime
from typing import Literal

from pydantic import BaseModel

CandidateType = Literal["behavior_feature", "tag", "score"]
CandidateStatus = Literal["new", "adopted", "rejected"]
CandidateAction = Literal["adopt", "reject"]


class FeatureCandidateOut(BaseModel):
    candidate_id: str
    type: str
    source: str | None = None
    name_proposed: str | None = None
    description_proposed: str | None = None
    logic_proposed: str | None = None
    status: str
    created_at: datetime | None = None


class CandidateDecisionRequest(BaseModel):
    # Presence is checked by the review workflow.
    candidate_id: str | None = None
    action: str | None = None


class CandidateDecisionOut(BaseModel):
    candidate_id: str
    status: CandidateStatus
