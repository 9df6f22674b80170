from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import uuid


class Speaker(str, Enum):
    STUDENT = "STUDENT"
    AI = "AI"


def normalize_speaker(value) -> Optional[Speaker]:
    if isinstance(value, Speaker):
        return value
    raw = str(value or "").strip().upper()
    if raw in {"OFFICER", "ASSISTANT", "INTERVIEWER"}:
        return Speaker.AI
    try:
        return Speaker(raw)
    except ValueError:
        return None


@dataclass
class TranscriptLine:
    """
    One utterance. Partials are mutable until a final from the same
    speaker closes them; finals are append-only.
    """
    speaker: Speaker = Speaker.STUDENT
    text: str = ""
    timestamp: float = 0.0  # seconds from session start
    is_final: bool = True
    confidence: Optional[float] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def from_dict(cls, data: dict) -> Optional["TranscriptLine"]:
        """Builds a line from a stored/wire dict; returns None when unusable."""
        if not isinstance(data, dict):
            return None
        speaker = normalize_speaker(data.get("speaker"))
        if speaker is None:
            return None
        try:
            timestamp = float(data.get("timestamp") or 0.0)
        except (TypeError, ValueError):
            timestamp = 0.0
        confidence = data.get("confidence")
        is_final = data.get("isFinal", data.get("is_final", True))
        return cls(
            speaker=speaker,
            text=str(data.get("text") or ""),
            timestamp=timestamp,
            is_final=bool(is_final),
            confidence=float(confidence) if isinstance(confidence, (int, float)) else None,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "speaker": self.speaker.value,
            "text": self.text,
            "timestamp": self.timestamp,
            "isFinal": self.is_final,
            "confidence": self.confidence,
        }
