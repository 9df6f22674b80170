import json
from contextlib import asynccontextmanager

import pytest
from websockets.exceptions import InvalidHandshake

from borderpass.relay.client import RelayClient
from borderpass.transcript.models import Speaker


class FakeConnection:
    def __init__(self, frames):
        self.frames = [json.dumps(item) if isinstance(item, dict) else item for item in frames]
        self.sent = []
        self.closed = False

    async def send(self, data: str):
        self.sent.append(json.loads(data))

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for frame in self.frames:
            yield frame

    async def close(self):
        self.closed = True


def fake_connector(plan: list):
    urls = []

    @asynccontextmanager
    async def _connect(url):
        urls.append(url)
        item = plan.pop(0)
        if isinstance(item, Exception):
            raise item
        yield item

    return _connect, urls


def _event(message_type: str, timestamp: int, **payload):
    return {"type": message_type, "sessionId": "S1", "payload": payload, "timestamp": timestamp}


def test_build_url_adds_user_id():
    client = RelayClient("ws://localhost:3001/ws?debug=1", "S1", "alice")
    assert client.build_url() == "ws://localhost:3001/ws?debug=1&userId=alice"


def test_backoff_doubles():
    client = RelayClient("ws://relay/ws", "S1", "alice")
    delays = []
    for attempt in range(3):
        client.retry_count = attempt
        delays.append(client.next_delay())
    assert delays == [1.0, 2.0, 4.0]


@pytest.mark.asyncio
async def test_gives_up_after_three_retries():
    connect, urls = fake_connector([OSError("refused") for _ in range(10)])
    client = RelayClient("ws://relay/ws", "S1", "alice", base_delay_sec=0, connect_fn=connect)

    await client.run()

    assert client.connect_attempts == 4
    assert len(urls) == 4
    assert client.retry_count == 3


@pytest.mark.asyncio
async def test_successful_connect_resets_retry_budget():
    plan = [
        OSError("refused"),
        FakeConnection([]),
        OSError("refused"),
        OSError("refused"),
        OSError("refused"),
        OSError("refused"),
    ]
    connect, _ = fake_connector(plan)
    client = RelayClient("ws://relay/ws", "S1", "alice", base_delay_sec=0, connect_fn=connect)

    await client.run()

    assert client.connect_attempts == 5


@pytest.mark.asyncio
async def test_joins_merges_events_and_stops_on_session_end():
    connection = FakeConnection([
        _event("SESSION_START", 1000, participantCount=1),
        {"type": "PING", "sessionId": "", "timestamp": 1100},
        _event("AI_RESPONSE", 1200, text="Why this university?", isFinal=True),
        _event("TRANSCRIPT_PARTIAL", 2000, text="Because"),
        _event("TRANSCRIPT_PARTIAL", 2500, text="Because of the"),
        _event("TRANSCRIPT_FINAL", 3000, text="Because of the research program"),
        _event("SESSION_END", 3500, endedBy="alice"),
        _event("TRANSCRIPT_FINAL", 4000, text="never read"),
    ])
    connect, _ = fake_connector([connection])
    seen = []

    async def _on_event(message):
        seen.append(message["type"])

    client = RelayClient("ws://relay/ws", "S1", "alice", role="student", on_event=_on_event, connect_fn=connect)
    await client.run()

    assert connection.sent[0]["type"] == "JOIN_SESSION"
    assert connection.sent[0]["sessionId"] == "S1"
    assert connection.sent[0]["payload"] == {"role": "student"}
    assert connection.sent[1]["type"] == "PONG"

    lines = client.buffer.lines
    assert [(line.speaker, line.text, line.is_final) for line in lines] == [
        (Speaker.AI, "Why this university?", True),
        (Speaker.STUDENT, "Because of the research program", True),
    ]
    assert lines[1].timestamp == pytest.approx(2.0)
    assert seen[-1] == "SESSION_END"
    assert client.ended.is_set()


@pytest.mark.asyncio
async def test_send_helpers_require_connection():
    client = RelayClient("ws://relay/ws", "S1", "alice")
    assert await client.send_transcript("hello") is False
    assert await client.end_session() is False


@pytest.mark.asyncio
async def test_handshake_rejection_is_retried_with_backoff():
    connect, urls = fake_connector([InvalidHandshake("server returned 503") for _ in range(10)])
    client = RelayClient("ws://relay/ws", "S1", "alice", base_delay_sec=0, connect_fn=connect)

    await client.run()

    assert client.connect_attempts == 4
    assert len(urls) == 4
