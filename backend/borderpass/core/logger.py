import json
import logging
import time
from typing import Any, Optional

logger = logging.getLogger("borderpass.events")

# spoken content never reaches the log, only its length
_REDACTED_KEYS = {"text", "transcript", "transcript_text", "prompt", "feedback", "answer", "question"}
_MAX_FIELD_CHARS = 256
_CONNECTION_ID_CHARS = 8


def _redact(value: Any) -> dict:
	if isinstance(value, dict):
		return {"redacted": True, "keys": sorted(str(k) for k in value)}
	return {"redacted": True, "length": len(str(value or ""))}


def _sanitize_value(key: str, value: Any) -> Any:
	if str(key or "").lower() in _REDACTED_KEYS:
		return _redact(value)
	if isinstance(value, str):
		return value if len(value) <= _MAX_FIELD_CHARS else value[:_MAX_FIELD_CHARS] + "..."
	if isinstance(value, (int, float, bool)) or value is None:
		return value
	if isinstance(value, dict):
		return {str(k): _sanitize_value(str(k), v) for k, v in value.items()}
	if isinstance(value, (list, tuple, set)):
		return [_sanitize_value(key, item) for item in value]
	return _sanitize_value(key, str(value))


def build_event(
	component: str,
	event: str,
	session_id: str = "",
	user_id: Optional[str] = None,
	connection_id: Optional[str] = None,
	**fields,
) -> dict:
	"""
	One relay event as a flat dict. Participant identity sits next to the
	session id; connection ids are shortened, they only correlate lines.
	"""
	payload = {
		"ts": int(time.time() * 1000),
		"component": str(component or "borderpass"),
		"event": str(event or "unknown"),
		"session_id": str(session_id or ""),
	}
	if user_id is not None:
		payload["user_id"] = str(user_id)
	if connection_id is not None:
		payload["connection_id"] = str(connection_id)[:_CONNECTION_ID_CHARS]
	payload.update({str(k): _sanitize_value(str(k), v) for k, v in fields.items()})
	return payload


def log_event(
	component: str,
	event: str,
	session_id: str = "",
	level: int = logging.INFO,
	**fields,
) -> dict:
	payload = build_event(component, event, session_id, **fields)
	logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))
	return payload
