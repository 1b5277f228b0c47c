from __future__ import annotations

from enum import Enum
from typing import List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


Number = Union[int, float]


class TrustVerdict(str, Enum):
    AwfulStage = "AwfulStage"
    BadStage = "BadStage"
    LowerStage = "LowerStage"
    GoodStage = "GoodStage"
    PerfectStage = "PerfectStage"
    VerifiedStage = "VerifiedStage"
    CertifiedStage = "CertifiedStage"


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Union[int, str]
    first_name: str
    last_name: Optional[str] = None
    username: Optional[str] = None


class Issuer(BaseModel):
    id: Union[int, str]
    report_id: Union[int, str]


class Factor(BaseModel):
    sampler: str
    score: Number
    max_score: Number


class TrustAnalytics(BaseModel):
    trust_score: Number
    mod_trust_score: Number
    # kept as a plain string: an unknown verdict fails when it is colored, not here
    verdict: str
    report_creation_date: Number
    issuer: Issuer
    factors: List[Factor] = Field(default_factory=list)


class ReportRequest(BaseModel):
    messageId: Optional[str] = ""
    user: User
    chatUsername: Optional[str] = None
