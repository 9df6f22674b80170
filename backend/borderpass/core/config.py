import os
from pathlib import Path
from dotenv import load_dotenv

_BACKEND_ROOT = Path(__file__).resolve().parents[2]
_BACKEND_ENV_PATH = _BACKEND_ROOT / ".env"
load_dotenv(dotenv_path=_BACKEND_ENV_PATH, override=False)


def env_flag(name: str, default: str = "false") -> bool:
    return str(os.getenv(name, default)).strip().lower() in {"1", "true", "yes", "on"}


OPENAI_API_KEY = str(os.getenv("OPENAI_API_KEY") or "").strip()
SCORING_MODEL = str(os.getenv("SCORING_MODEL") or "gpt-4o-mini").strip()
SCORING_ENRICHMENT_ENABLED = env_flag("SCORING_ENRICHMENT_ENABLED", "true") and bool(OPENAI_API_KEY)
SCORING_TIMEOUT_SEC = max(1.0, float(os.getenv("SCORING_TIMEOUT_SEC", "15")))
SCORING_RETRIES = max(0, int(os.getenv("SCORING_RETRIES", "1")))

RELAY_HOST = str(os.getenv("RELAY_HOST") or "0.0.0.0").strip()
RELAY_PORT = int(os.getenv("RELAY_PORT") or os.getenv("WS_PORT") or "3001")
WS_HEARTBEAT_INTERVAL_SEC = max(1.0, float(os.getenv("WS_HEARTBEAT_INTERVAL_SEC", "30")))
MAX_WS_TEXT_BYTES = max(1024, int(os.getenv("WS_MAX_TEXT_BYTES", "65536")))

QA_MODE = env_flag("QA_MODE")

# user id for callers that send no userId / X-User-Id
ANONYMOUS_USER_ID = "anonymous"
