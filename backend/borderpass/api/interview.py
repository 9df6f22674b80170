import logging
import time

from fastapi import APIRouter, HTTPException, Query, Request

from borderpass.core.config import ANONYMOUS_USER_ID
from borderpass.schemas import CreateSessionRequest, ScoreResponse, TranscriptLineRequest
from borderpass.scoring.engine import ScoringEngine
from borderpass.scoring.models import Score
from borderpass.session.store import (
    InterviewSession,
    SessionMode,
    SessionNotFoundError,
    SessionStatus,
    SessionStore,
)
from borderpass.system_metrics import increment_metric, observe_scoring_latency_ms
from borderpass.transcript.buffer import TranscriptOrderError
from borderpass.transcript.models import Speaker, TranscriptLine

logger = logging.getLogger("borderpass.api.interview")

router = APIRouter(prefix="/api/interview")


def get_user_id(request: Request) -> str:
    return str(request.headers.get("x-user-id") or "").strip() or ANONYMOUS_USER_ID


def _store(request: Request) -> SessionStore:
    return request.app.state.session_store


def _engine(request: Request) -> ScoringEngine:
    return request.app.state.scoring_engine


async def _owned_session(request: Request, session_id: str) -> InterviewSession:
    session = await _store(request).get_session(session_id)
    if session is None or session.user_id != get_user_id(request):
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def score_to_response(score: Score) -> dict:
    return ScoreResponse(
        overallScore=score.overall,
        riskLevel=score.risk_tier.value,
        financialCredibility=score.financial_credibility,
        studyIntent=score.study_intent,
        returnIntent=score.return_intent,
        confidenceScore=score.confidence,
        consistencyScore=score.consistency,
        weakAreas=list(score.weak_areas),
        feedback=score.feedback,
        aiAnalysis=score.ai_analysis,
    ).model_dump()


@router.post("", status_code=201)
async def create_session(req: CreateSessionRequest, request: Request):
    session = await _store(request).create_session(
        user_id=get_user_id(request),
        country_id=req.countryId,
        mode=SessionMode(req.mode),
    )
    logger.info("Interview session created | session_id=%s mode=%s", session.id, session.mode.value)
    return {"session": session.to_dict()}


@router.get("")
async def list_sessions(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    store = _store(request)
    user_id = get_user_id(request)
    sessions = await store.list_sessions(user_id, offset=(page - 1) * limit, limit=limit)
    total = await store.count_sessions(user_id)

    items = []
    for session in sessions:
        score = await store.get_score(session.id)
        items.append({**session.to_dict(), "score": score_to_response(score) if score else None})
    return {"sessions": items, "total": total, "page": page, "limit": limit}


@router.get("/{session_id}")
async def get_session(session_id: str, request: Request):
    session = await _owned_session(request, session_id)
    lines = await _store(request).get_transcript(session_id, final_only=False)
    score = await _store(request).get_score(session_id)
    return {
        "session": session.to_dict(),
        "transcripts": [line.to_dict() for line in lines],
        "score": score_to_response(score) if score else None,
    }


@router.post("/{session_id}/transcript", status_code=201)
async def append_transcript(session_id: str, req: TranscriptLineRequest, request: Request):
    await _owned_session(request, session_id)
    line = TranscriptLine(
        speaker=Speaker(req.speaker),
        text=req.text,
        timestamp=req.timestamp,
        is_final=req.isFinal,
        confidence=req.confidence,
    )
    try:
        stored = await _store(request).append_transcript(session_id, line)
    except TranscriptOrderError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"transcript": stored.to_dict()}


@router.post("/{session_id}/score")
async def score_session(session_id: str, request: Request):
    await _owned_session(request, session_id)
    store = _store(request)
    increment_metric("scoring_requests_total", 1)

    existing = await store.get_score(session_id)
    if existing is not None:
        increment_metric("scoring_cache_hits", 1)
        return {"score": score_to_response(existing)}

    started = time.perf_counter()
    lines = await store.get_transcript(session_id, final_only=True)
    result = await _engine(request).score(lines)
    observe_scoring_latency_ms((time.perf_counter() - started) * 1000.0)

    # a concurrent request may have stored first; the stored score wins
    stored = await store.save_score(session_id, result)
    await store.set_status(session_id, SessionStatus.COMPLETED)
    logger.info(
        "Interview scored | session_id=%s overall=%s risk=%s",
        session_id,
        stored.overall,
        stored.risk_tier.value,
    )
    return {"score": score_to_response(stored)}
