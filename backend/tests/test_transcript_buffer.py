import pytest

from borderpass.transcript.buffer import TranscriptBuffer, TranscriptOrderError
from borderpass.transcript.models import Speaker, TranscriptLine


def test_partial_replaced_in_place_then_finalized(make_line):
    buffer = TranscriptBuffer()
    buffer.add(make_line("STUDENT", "I want", 1.0, is_final=False))
    buffer.add(make_line("STUDENT", "I want to study", 1.5, is_final=False))
    buffer.add(make_line("STUDENT", "I want to study law", 2.0, is_final=True))

    assert len(buffer) == 1
    only = buffer.lines[0]
    assert only.text == "I want to study law"
    assert only.is_final is True
    assert only.timestamp == 2.0
    assert buffer.open_partial(Speaker.STUDENT) is None


def test_final_without_partial_appends(make_line):
    buffer = TranscriptBuffer()
    buffer.add(make_line("STUDENT", "first", 1.0))
    buffer.add(make_line("STUDENT", "second", 2.0))
    assert [item.text for item in buffer.final_lines()] == ["first", "second"]


def test_new_partial_after_final_starts_new_line(make_line):
    buffer = TranscriptBuffer()
    buffer.add(make_line("STUDENT", "done", 1.0))
    buffer.add(make_line("STUDENT", "next", 2.0, is_final=False))
    assert len(buffer) == 2
    assert buffer.lines[0].text == "done"
    assert buffer.open_partial(Speaker.STUDENT).text == "next"


def test_interleaved_partials_merge_per_speaker(make_line):
    buffer = TranscriptBuffer()
    buffer.add(make_line("AI", "Why do", 1.0, is_final=False))
    buffer.add(make_line("STUDENT", "Because", 1.2, is_final=False))
    buffer.add(make_line("AI", "Why do you want", 1.4, is_final=False))
    buffer.add(make_line("STUDENT", "Because the course", 1.6, is_final=False))
    buffer.add(make_line("AI", "Why do you want this visa?", 1.8, is_final=True))
    buffer.add(make_line("STUDENT", "Because the course is unique", 2.0, is_final=True))

    assert [(item.speaker, item.text, item.is_final) for item in buffer.lines] == [
        (Speaker.AI, "Why do you want this visa?", True),
        (Speaker.STUDENT, "Because the course is unique", True),
    ]
    assert buffer.snapshot()["open_partials"] == []


def test_final_from_other_speaker_keeps_open_partial(make_line):
    buffer = TranscriptBuffer()
    buffer.add(make_line("STUDENT", "um", 1.0, is_final=False))
    buffer.add(make_line("AI", "Go on.", 1.5, is_final=True))

    assert buffer.open_partial(Speaker.STUDENT).text == "um"
    assert [item.text for item in buffer.final_lines()] == ["Go on."]


def test_rejects_timestamp_going_backwards(make_line):
    buffer = TranscriptBuffer()
    buffer.add(make_line("STUDENT", "later", 5.0))
    with pytest.raises(TranscriptOrderError):
        buffer.add(make_line("AI", "earlier", 4.0))
    assert len(buffer) == 1


def test_equal_timestamps_are_accepted(make_line):
    buffer = TranscriptBuffer([make_line("AI", "q", 3.0), make_line("STUDENT", "a", 3.0)])
    assert len(buffer) == 2


def test_line_from_dict_normalizes_fields():
    line = TranscriptLine.from_dict({"speaker": "officer", "text": "Hello", "timestamp": "2.5", "isFinal": False, "confidence": 0.8})
    assert line.speaker == Speaker.AI
    assert line.timestamp == 2.5
    assert line.is_final is False
    assert line.confidence == 0.8
    assert TranscriptLine.from_dict({"speaker": "robot", "text": "x"}) is None
