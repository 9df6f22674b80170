from borderpass.transcript.buffer import TranscriptBuffer, TranscriptOrderError
from borderpass.transcript.models import Speaker, TranscriptLine, normalize_speaker

__all__ = ["Speaker", "TranscriptBuffer", "TranscriptLine", "TranscriptOrderError", "normalize_speaker"]
