import threading
from typing import Any


_lock = threading.Lock()
_metrics: dict[str, float] = {
    "ws_connections_active": 0.0,
    "relay_sessions_active": 0.0,
    "relay_messages_received": 0.0,
    "relay_events_broadcast": 0.0,
    "relay_protocol_errors": 0.0,
    "relay_heartbeats_sent": 0.0,
    "ws_disconnects_total": 0.0,
    "ws_disconnect_client_disconnect": 0.0,
    "ws_disconnect_transport_error": 0.0,
    "ws_disconnect_other": 0.0,
    "scoring_requests_total": 0.0,
    "scoring_cache_hits": 0.0,
    "scoring_enrichment_failures": 0.0,
    "scoring_latency_total_ms": 0.0,
    "scoring_latency_samples": 0.0,
    "practice_evaluations_total": 0.0,
    "practice_evaluation_fallbacks": 0.0,
}


def increment_metric(name: str, amount: float = 1.0) -> None:
    key = str(name or "").strip()
    if not key:
        return
    with _lock:
        _metrics[key] = float(_metrics.get(key, 0.0)) + float(amount)


def decrement_metric(name: str, amount: float = 1.0) -> None:
    key = str(name or "").strip()
    if not key:
        return
    with _lock:
        next_value = float(_metrics.get(key, 0.0)) - float(amount)
        _metrics[key] = max(0.0, next_value)


def set_metric(name: str, value: float) -> None:
    key = str(name or "").strip()
    if not key:
        return
    with _lock:
        _metrics[key] = max(0.0, float(value))


def observe_scoring_latency_ms(value_ms: float) -> None:
    latency = max(0.0, float(value_ms or 0.0))
    with _lock:
        _metrics["scoring_latency_total_ms"] = float(_metrics.get("scoring_latency_total_ms", 0.0)) + latency
        _metrics["scoring_latency_samples"] = float(_metrics.get("scoring_latency_samples", 0.0)) + 1.0


def record_ws_disconnect(reason: str) -> None:
    normalized = str(reason or "").strip().lower().replace(" ", "_").replace("-", "_")
    key_map = {
        "client_disconnect": "ws_disconnect_client_disconnect",
        "transport_error": "ws_disconnect_transport_error",
    }
    with _lock:
        _metrics["ws_disconnects_total"] = float(_metrics.get("ws_disconnects_total", 0.0)) + 1.0
        key = key_map.get(normalized, "ws_disconnect_other")
        _metrics[key] = float(_metrics.get(key, 0.0)) + 1.0


def get_metrics_snapshot() -> dict[str, Any]:
    with _lock:
        snapshot = dict(_metrics)

    samples = snapshot.get("scoring_latency_samples", 0.0)
    snapshot["scoring_latency_avg_ms"] = (
        round(snapshot.get("scoring_latency_total_ms", 0.0) / samples, 2) if samples > 0 else 0.0
    )
    return snapshot
