from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class RiskTier(str, Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"


DIMENSIONS = (
    "financial_credibility",
    "study_intent",
    "return_intent",
    "confidence",
    "consistency",
)


class Score(BaseModel):
    model_config = ConfigDict(frozen=True)

    financial_credibility: int = Field(ge=0, le=100)
    study_intent: int = Field(ge=0, le=100)
    return_intent: int = Field(ge=0, le=100)
    confidence: int = Field(ge=0, le=100)
    consistency: int = Field(ge=0, le=100)
    overall: int = Field(ge=0, le=100)
    risk_tier: RiskTier
    weak_areas: list[str] = Field(default_factory=list)
    feedback: str = ""
    ai_analysis: Optional[dict[str, Any]] = None

    def dimensions(self) -> dict[str, int]:
        return {name: getattr(self, name) for name in DIMENSIONS}


class SemanticAnalysis(BaseModel):
    """Shape the language model must return; anything else is discarded."""

    financialCredibility: float = Field(ge=0, le=100)
    studyIntent: float = Field(ge=0, le=100)
    returnIntent: float = Field(ge=0, le=100)
    confidence: float = Field(ge=0, le=100)
    consistency: float = Field(ge=0, le=100)
    keyIssues: list[str] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)


class PracticeFeedback(BaseModel):
    feedback: str = Field(min_length=1)
    score: int = Field(ge=0, le=100)
