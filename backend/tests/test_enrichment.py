import json

import pytest

from borderpass.scoring.engine import ScoringEngine
from borderpass.scoring.enrichment import SemanticAnalyzer, build_conversation


VALID_ANALYSIS = {
    "financialCredibility": 72,
    "studyIntent": 80,
    "returnIntent": 40,
    "confidence": 65,
    "consistency": 90,
    "keyIssues": ["Weak ties to home country"],
    "strengths": ["Clear funding plan"],
}


class _Msg:
    def __init__(self, content):
        self.content = content


class _Choice:
    def __init__(self, content):
        self.message = _Msg(content)


class _Response:
    def __init__(self, content):
        self.choices = [_Choice(content)]


class _Completions:
    def __init__(self, create_fn):
        self.create = create_fn


class _Chat:
    def __init__(self, create_fn):
        self.completions = _Completions(create_fn)


class FakeClient:
    def __init__(self, create_fn):
        self.chat = _Chat(create_fn)


def _client_returning(content: str, calls: list | None = None):
    async def _create(*args, **kwargs):
        if calls is not None:
            calls.append(kwargs)
        return _Response(content)

    return FakeClient(_create)


def test_build_conversation_labels_speakers(make_line):
    conversation = build_conversation([
        make_line("AI", "Why this course?"),
        make_line("STUDENT", "Because of the research."),
        make_line("STUDENT", "   "),
    ])
    assert conversation == "OFFICER: Why this course?\nSTUDENT: Because of the research."


@pytest.mark.asyncio
async def test_call_llm_blank_conversation_short_circuit():
    analyzer = SemanticAnalyzer(client=_client_returning("should not be used"))
    assert await analyzer.call_llm("") == "{}"


@pytest.mark.asyncio
async def test_analyze_success_with_mock(make_line):
    calls = []
    analyzer = SemanticAnalyzer(client=_client_returning(json.dumps(VALID_ANALYSIS), calls), model="test-model")

    result = await analyzer.analyze([make_line("STUDENT", "My sponsor pays")])

    assert result["keyIssues"] == ["Weak ties to home country"]
    assert result["financialCredibility"] == 72
    assert calls[0]["model"] == "test-model"
    assert calls[0]["response_format"] == {"type": "json_object"}
    assert calls[0]["messages"][1]["content"] == "STUDENT: My sponsor pays"


@pytest.mark.asyncio
async def test_analyze_discards_invalid_shape(make_line):
    analyzer = SemanticAnalyzer(client=_client_returning('{"financialCredibility": "lots"}'))
    assert await analyzer.analyze([make_line("STUDENT", "hello")]) is None


@pytest.mark.asyncio
async def test_analyze_discards_non_json(make_line):
    analyzer = SemanticAnalyzer(client=_client_returning("not json at all"))
    assert await analyzer.analyze([make_line("STUDENT", "hello")]) is None


@pytest.mark.asyncio
async def test_call_llm_fallback_after_failures():
    attempts = []

    async def _boom(*args, **kwargs):
        attempts.append(1)
        raise RuntimeError("forced")

    analyzer = SemanticAnalyzer(client=FakeClient(_boom), retries=1, timeout_sec=0.1)

    assert await analyzer.call_llm("STUDENT: hi") == "{}"
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_engine_attaches_analysis_without_touching_rule_scores(make_line):
    transcript = [make_line("STUDENT", "I have a bank statement and a sponsor for my university program")]
    analyzer = SemanticAnalyzer(client=_client_returning(json.dumps(VALID_ANALYSIS)))
    engine = ScoringEngine(analyzer=analyzer)

    enriched = await engine.score(transcript)
    baseline = engine.score_rules(transcript)

    assert enriched.ai_analysis["strengths"] == ["Clear funding plan"]
    assert enriched.dimensions() == baseline.dimensions()
    assert enriched.overall == baseline.overall


@pytest.mark.asyncio
async def test_engine_survives_analyzer_crash(make_line):
    class _ExplodingAnalyzer:
        async def analyze(self, lines):
            raise RuntimeError("provider down")

    engine = ScoringEngine(analyzer=_ExplodingAnalyzer())
    result = await engine.score([make_line("STUDENT", "I have savings")])

    assert result.ai_analysis is None
    assert result.financial_credibility == 20


@pytest.mark.asyncio
async def test_engine_skips_analysis_for_empty_transcript():
    calls = []
    engine = ScoringEngine(analyzer=SemanticAnalyzer(client=_client_returning("{}", calls)))

    result = await engine.score([])

    assert calls == []
    assert result.overall == 0
