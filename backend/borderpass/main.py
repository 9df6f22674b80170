from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import os

from borderpass.api.interview import router as interview_router
from borderpass.api.practice import router as practice_router
from borderpass.api.ws_relay import router as relay_ws_router
from borderpass.core.config import QA_MODE, SCORING_ENRICHMENT_ENABLED, WS_HEARTBEAT_INTERVAL_SEC
from borderpass.relay.hub import SessionRelay
from borderpass.scoring.engine import ScoringEngine
from borderpass.scoring.enrichment import SemanticAnalyzer
from borderpass.scoring.practice import PracticeEvaluator
from borderpass.session.store import LocalSessionStore, SessionStore
from borderpass.system_metrics import get_metrics_snapshot

logging.basicConfig(
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger("borderpass.main")


def _get_allowed_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if not raw:
        return [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    return [item.strip() for item in raw.split(",") if item.strip()]


def create_app(
    scoring_engine: ScoringEngine | None = None,
    session_store: SessionStore | None = None,
    relay: SessionRelay | None = None,
    heartbeat_interval_sec: float = WS_HEARTBEAT_INTERVAL_SEC,
    practice_evaluator: PracticeEvaluator | None = None,
) -> FastAPI:
    app = FastAPI(title="BorderPass Interview Relay")
    allowed_origins = _get_allowed_origins()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=False,
    )

    if scoring_engine is None:
        analyzer = SemanticAnalyzer() if SCORING_ENRICHMENT_ENABLED and not QA_MODE else None
        scoring_engine = ScoringEngine(analyzer=analyzer)
    if practice_evaluator is None and SCORING_ENRICHMENT_ENABLED and not QA_MODE:
        practice_evaluator = PracticeEvaluator()

    app.state.scoring_engine = scoring_engine
    app.state.session_store = session_store or LocalSessionStore()
    app.state.relay = relay or SessionRelay()
    app.state.heartbeat_interval_sec = float(heartbeat_interval_sec)
    app.state.practice_evaluator = practice_evaluator

    @app.on_event("startup")
    async def startup_banner():
        if QA_MODE:
            logger.info("[SYSTEM] QA_MODE ENABLED - semantic enrichment bypassed")
        logger.info("[SYSTEM] CORS allow_origins=%s", allowed_origins)
        logger.info(
            "[SYSTEM] scoring enrichment=%s heartbeat_sec=%s",
            app.state.scoring_engine.analyzer is not None,
            app.state.heartbeat_interval_sec,
        )

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok", "service": "relay"}

    @app.get("/metrics")
    async def metrics():
        return get_metrics_snapshot()

    app.include_router(interview_router)
    app.include_router(practice_router)
    app.include_router(relay_ws_router)
    return app


app = create_app()
