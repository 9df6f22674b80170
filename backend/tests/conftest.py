import sys
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def _test_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("QA_MODE", "true")
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")


def line(speaker: str, text: str, timestamp: float = 0.0, is_final: bool = True):
    from borderpass.transcript.models import Speaker, TranscriptLine

    return TranscriptLine(speaker=Speaker(speaker), text=text, timestamp=timestamp, is_final=is_final)


@pytest.fixture
def make_line():
    return line
