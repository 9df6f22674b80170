import logging
from typing import Iterable, List, Optional

from .models import Speaker, TranscriptLine

logger = logging.getLogger("transcript_buffer")


class TranscriptOrderError(ValueError):
    pass


class TranscriptBuffer:
    """
    Ordered transcript for ONE interview session.

    Each speaker has at most one open partial. A newer partial replaces it
    in place, a final closes it. Speakers never touch each other's open
    partial, so interleaved partial bursts stay on their own lines.
    """

    def __init__(self, lines: Optional[Iterable[TranscriptLine]] = None):
        self.lines: List[TranscriptLine] = []
        self._open_partial: dict[Speaker, int] = {}
        self.last_timestamp: float = 0.0
        for line in lines or []:
            self.add(line)

    def add(self, line: TranscriptLine) -> TranscriptLine:
        if line.timestamp < self.last_timestamp:
            raise TranscriptOrderError(
                f"timestamp {line.timestamp} is earlier than {self.last_timestamp}"
            )
        if line.is_final:
            return self.apply_final(line)
        return self.apply_partial(line)

    def apply_partial(self, line: TranscriptLine) -> TranscriptLine:
        self.last_timestamp = max(self.last_timestamp, line.timestamp)
        index = self._open_partial.get(line.speaker)
        if index is None:
            line.is_final = False
            self.lines.append(line)
            self._open_partial[line.speaker] = len(self.lines) - 1
            return line

        current = self.lines[index]
        current.text = line.text
        current.timestamp = line.timestamp
        if line.confidence is not None:
            current.confidence = line.confidence
        return current

    def apply_final(self, line: TranscriptLine) -> TranscriptLine:
        self.last_timestamp = max(self.last_timestamp, line.timestamp)
        index = self._open_partial.pop(line.speaker, None)
        if index is None:
            line.is_final = True
            self.lines.append(line)
            return line

        current = self.lines[index]
        current.text = line.text
        current.timestamp = line.timestamp
        current.is_final = True
        if line.confidence is not None:
            current.confidence = line.confidence
        logger.debug("Merged open partial into final | speaker=%s", line.speaker.value)
        return current

    def open_partial(self, speaker: Speaker) -> Optional[TranscriptLine]:
        index = self._open_partial.get(speaker)
        return self.lines[index] if index is not None else None

    def final_lines(self) -> List[TranscriptLine]:
        return [line for line in self.lines if line.is_final]

    def __len__(self) -> int:
        return len(self.lines)

    def snapshot(self) -> dict:
        return {
            "line_count": len(self.lines),
            "final_count": len(self.final_lines()),
            "open_partials": sorted(speaker.value for speaker in self._open_partial),
            "last_timestamp": self.last_timestamp,
        }
