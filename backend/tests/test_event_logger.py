import json
import logging

from borderpass.core.logger import build_event, log_event


def test_build_event_carries_identity_and_redacts_text():
    event = build_event(
        "relay",
        "join",
        "S1",
        user_id="alice",
        connection_id="0123456789abcdef",
        payload={"text": "my bank statement", "speaker": "STUDENT"},
    )

    assert event["session_id"] == "S1"
    assert event["user_id"] == "alice"
    assert event["connection_id"] == "01234567"
    assert event["payload"]["text"] == {"redacted": True, "length": 17}
    assert event["payload"]["speaker"] == "STUDENT"
    assert isinstance(event["ts"], int)


def test_build_event_omits_absent_identity_and_truncates_long_fields():
    event = build_event("ws_relay", "disconnect", reason="x" * 400, sessions=["S1", "S2"])

    assert "user_id" not in event
    assert "connection_id" not in event
    assert event["reason"].endswith("...")
    assert len(event["reason"]) == 259
    assert event["sessions"] == ["S1", "S2"]


def test_log_event_emits_json_at_requested_level(caplog):
    with caplog.at_level(logging.INFO, logger="borderpass.events"):
        log_event("ws_relay", "heartbeat_missed", level=logging.WARNING, user_id="bob", silent_sec=61.0)

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    body = json.loads(record.getMessage())
    assert body["event"] == "heartbeat_missed"
    assert body["user_id"] == "bob"
    assert body["silent_sec"] == 61.0
