"""HTTP entrypoint that drives autocomplete sessions (Cloud Run friendly)."""

from __future__ import annotations

import logging
import os
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional, Tuple

from flask import Flask, jsonify, request

from places_autocomplete.core.config import AutocompleteConfig, get_settings
from places_autocomplete.core.coordinator import AutocompleteListener, ResolutionCoordinator, create_coordinator
from places_autocomplete.core.models import Candidate, Coordinate, PlaceType, ResolvedAddress
from places_autocomplete.vendors.local_search import GazetteerSearchEngine, LocalSearchEngine

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App & executors ----------
app = Flask(__name__)
_io_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="places-io")
_callback_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="places-callback")
_engine: Optional[LocalSearchEngine] = None
_sessions: Dict[str, "SessionRecord"] = {}
_sessions_lock = threading.Lock()

SESSION_IDLE_TTL_SECONDS = 15 * 60
MAX_SESSIONS = 1000


class SessionRecord(AutocompleteListener):
    """Listener that keeps the latest session output for polling clients."""

    def __init__(self) -> None:
        self.coordinator: Optional[ResolutionCoordinator] = None
        self.candidates: List[Candidate] = []
        self.address: Optional[ResolvedAddress] = None
        self.dismissed = False
        self.last_seen = time.monotonic()

    def touch(self) -> None:
        self.last_seen = time.monotonic()

    def candidates_updated(self, candidates: List[Candidate]) -> None:
        self.candidates = candidates

    def address_resolved(self, address: ResolvedAddress) -> None:
        self.address = address

    def session_dismissed(self) -> None:
        self.dismissed = True

    def to_payload(self, session_id: str) -> Dict[str, Any]:
        return {
            "session_id": session_id,
            "state": self.coordinator.state.value if self.coordinator else None,
            "candidates": [candidate_payload(index, c) for index, c in enumerate(self.candidates)],
            "address": self.address.to_dict() if self.address else None,
            "dismissed": self.dismissed,
        }


def candidate_payload(index: int, candidate: Candidate) -> Dict[str, Any]:
    return {
        "index": index,
        "primary_label": candidate.primary_label,
        "secondary_label": candidate.secondary_label,
        "source": "google_places" if candidate.has_primary_id else "local_search",
    }


def _get_engine() -> LocalSearchEngine:
    global _engine
    if _engine is None:
        path = get_settings().gazetteer_path
        _engine = GazetteerSearchEngine.from_file(path) if path else GazetteerSearchEngine()
    return _engine


def _build_coordinator(config: AutocompleteConfig, record: SessionRecord) -> ResolutionCoordinator:
    settings = get_settings()
    return create_coordinator(
        config,
        record,
        _get_engine(),
        base_url=settings.places_base_url,
        timeout=settings.request_timeout,
        io_executor=_io_executor,
        callback_executor=_callback_executor,
    )


def _session_or_404(session_id: str) -> Tuple[Optional[SessionRecord], Optional[Any]]:
    with _sessions_lock:
        record = _sessions.get(session_id)
    if record is None:
        return None, (jsonify({"error": f"unknown session: {session_id}"}), 404)
    record.touch()
    return record, None


def _close_records(records: Iterable[SessionRecord]) -> None:
    for record in records:
        if record.coordinator is not None:
            record.coordinator.close()


def _sweep_sessions() -> None:
    """Evict sessions idle past the TTL, then the least recently used ones above the cap."""
    now = time.monotonic()
    with _sessions_lock:
        expired = [sid for sid, record in _sessions.items() if now - record.last_seen > SESSION_IDLE_TTL_SECONDS]
        evicted = [_sessions.pop(sid) for sid in expired]
        overflow = len(_sessions) - MAX_SESSIONS + 1
        if overflow > 0:
            oldest = sorted(_sessions, key=lambda sid: _sessions[sid].last_seen)[:overflow]
            evicted.extend(_sessions.pop(sid) for sid in oldest)
    if evicted:
        logger.info("Evicted %d idle autocomplete sessions", len(evicted))
    _close_records(evicted)


# ---------- Routes ----------


@app.get("/")
def root() -> Any:
    """Simple root to avoid 404 on GET /"""
    return "ok", 200


@app.get("/healthz")
def healthcheck() -> Any:
    settings = get_settings()
    with _sessions_lock:
        active = len(_sessions)
    return (
        jsonify(
            {
                "status": "ok",
                "api_key_configured": bool(settings.google_api_key),
                "active_sessions": active,
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.post("/sessions")
def create_session() -> Any:
    """
    Open an autocomplete session.
    Optional JSON fields: place_type (name), lat + lng (bias point), radius (meters)
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    settings = get_settings()

    place_type = settings.place_type
    if payload.get("place_type") is not None:
        try:
            place_type = PlaceType.from_name(str(payload["place_type"]))
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400

    coordinate = settings.bias_coordinate
    if payload.get("lat") is not None or payload.get("lng") is not None:
        try:
            coordinate = Coordinate(float(payload["lat"]), float(payload["lng"]))
        except (KeyError, TypeError, ValueError):
            return jsonify({"error": "lat and lng must both be numeric"}), 400

    radius = settings.radius
    if payload.get("radius") is not None:
        try:
            radius = float(payload["radius"])
            if radius < 0:
                return jsonify({"error": "radius must not be negative"}), 400
        except (TypeError, ValueError):
            return jsonify({"error": "radius must be numeric"}), 400

    try:
        config = AutocompleteConfig(
            api_key=settings.google_api_key,
            place_type=place_type,
            coordinate=coordinate,
            radius=radius,
            placeholder=settings.search_placeholder,
        )
    except ValueError as exc:
        logger.error("Cannot open session: %s", exc)
        return jsonify({"error": "GOOGLE_API_KEY is not configured"}), 500

    _sweep_sessions()
    record = SessionRecord()
    record.coordinator = _build_coordinator(config, record)
    session_id = uuid.uuid4().hex
    with _sessions_lock:
        _sessions[session_id] = record

    logger.info("Opened session %s place_type=%s bias=%s radius=%s", session_id, place_type.name, coordinate, radius)
    return jsonify({"data": {"session_id": session_id, "placeholder": config.placeholder}}), 201


@app.get("/sessions/<session_id>")
def get_session(session_id: str) -> Any:
    record, error = _session_or_404(session_id)
    if error:
        return error
    payload = record.to_payload(session_id)
    if record.dismissed:
        # the resolved address has been handed to the client; the session is done
        with _sessions_lock:
            _sessions.pop(session_id, None)
        _close_records([record])
    return jsonify({"data": payload}), 200


@app.post("/sessions/<session_id>/query")
def query_session(session_id: str) -> Any:
    record, error = _session_or_404(session_id)
    if error:
        return error

    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    text = payload.get("text")
    if not isinstance(text, str):
        return jsonify({"error": "text must be a string"}), 400

    record.coordinator.on_query_changed(text)
    return jsonify({"data": {"status": "queued"}}), 202


@app.post("/sessions/<session_id>/select")
def select_candidate(session_id: str) -> Any:
    record, error = _session_or_404(session_id)
    if error:
        return error

    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    index = payload.get("index")
    if isinstance(index, bool) or not isinstance(index, int):
        return jsonify({"error": "index must be an integer"}), 400

    candidates = record.candidates
    if not 0 <= index < len(candidates):
        return jsonify({"error": f"index out of range (0..{len(candidates) - 1})"}), 400

    record.coordinator.on_candidate_selected(candidates[index])
    return jsonify({"data": {"status": "queued"}}), 202


@app.delete("/sessions/<session_id>")
def close_session(session_id: str) -> Any:
    with _sessions_lock:
        record = _sessions.pop(session_id, None)
    if record is None:
        return jsonify({"error": f"unknown session: {session_id}"}), 404
    _close_records([record])
    return "", 204


def main() -> None:
    """
    Cloud Run injects PORT (usually 8080); fall back to the configured port locally.
    """
    env_port = os.getenv("PORT")
    logger.info("[BOOT] ENV PORT=%s", env_port)

    port = int(env_port or get_settings().server_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
