from typing import Literal, Optional

from pydantic import BaseModel, Field


class CreateSessionRequest(BaseModel):
    countryId: str = Field(min_length=1)
    mode: Literal["VOICE", "TEXT"] = "VOICE"


class TranscriptLineRequest(BaseModel):
    speaker: Literal["STUDENT", "AI"]
    text: str = Field(min_length=1)
    timestamp: float = Field(ge=0)  # seconds from session start
    confidence: Optional[float] = None
    isFinal: bool = True


class ScoreResponse(BaseModel):
    overallScore: int
    riskLevel: str
    financialCredibility: int
    studyIntent: int
    returnIntent: int
    confidenceScore: int
    consistencyScore: int
    weakAreas: list[str]
    feedback: str
    aiAnalysis: Optional[dict] = None


class PracticeEvaluateRequest(BaseModel):
    question: str = Field(min_length=5)
    answer: str = Field(min_length=1)
    category: str
