"""Flask control server driving a single browser session."""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from typing import Any, Optional

from flask import Flask, jsonify, request

from scenario.payloads import ActionValidationError

from .config import load_config
from .errors import ReplayError, ReplayInProgressError
from .events import EventBuffer, EventHub
from .session import BrowserSession

app = Flask(__name__)
logging.basicConfig(level=logging.INFO)
log = logging.getLogger("replay")

_STATUS_BY_CODE = {
    "IN_PROGRESS": 409,
    "NOT_STARTED": 409,
    "PAGE_NOT_FOUND": 404,
    "SERVICE_UNAVAILABLE": 503,
}

EVENTS = EventBuffer(maxlen=int(os.getenv("REPLAY_EVENT_BUFFER", "1000")))
HUB = EventHub()
HUB.subscribe(EVENTS)

SESSION: Optional[BrowserSession] = None

LOOP = asyncio.new_event_loop()
_LOOP_THREAD: Optional[threading.Thread] = None
_LOOP_LOCK = threading.Lock()


def _ensure_loop() -> None:
    global _LOOP_THREAD
    with _LOOP_LOCK:
        if _LOOP_THREAD is None or not _LOOP_THREAD.is_alive():
            _LOOP_THREAD = threading.Thread(target=LOOP.run_forever, name="replay-loop", daemon=True)
            _LOOP_THREAD.start()


def _run(coro):
    _ensure_loop()
    return asyncio.run_coroutine_threadsafe(coro, LOOP).result()


def _get_session() -> BrowserSession:
    global SESSION
    if SESSION is None:
        SESSION = BrowserSession(load_config(), HUB)
    return SESSION


def _json_body() -> Any:
    return request.get_json(silent=True)


@app.errorhandler(ReplayError)
def handle_replay_error(error: ReplayError):
    status = _STATUS_BY_CODE.get(error.code, 500)
    log.warning("Request failed with %s: %s", error.code, error)
    return jsonify({"error": str(error), "code": error.code, "details": error.details}), status


@app.errorhandler(ActionValidationError)
def handle_validation_error(error: ActionValidationError):
    return jsonify({"error": str(error), "code": error.code, "details": error.details}), 400


@app.post("/browser/start")
def start_browser():
    _run(_get_session().start())
    return jsonify({"status": "started"})


@app.post("/browser/stop")
def stop_browser():
    session = SESSION
    if session is not None:
        _run(session.stop())
    return jsonify({"status": "stopped"})


@app.post("/browser/execute")
def execute_actions():
    data = _json_body()
    if isinstance(data, list):
        data = {"actions": data}
    if not isinstance(data, dict) or not isinstance(data.get("actions"), list):
        return jsonify({"error": "actions must be a list", "code": "VALIDATION"}), 400
    if not data["actions"]:
        return jsonify({"error": "actions cannot be empty", "code": "VALIDATION"}), 400
    session = _get_session()
    if session.is_executing:
        raise ReplayInProgressError()
    result = _run(session.execute_actions(data["actions"], data.get("run_id")))
    return jsonify(result)


@app.post("/browser/assert-mode")
def set_assert_mode():
    data = _json_body() or {}
    if not isinstance(data, dict) or not isinstance(data.get("enabled"), bool):
        return jsonify({"error": "enabled must be a boolean", "code": "VALIDATION"}), 400
    session = SESSION
    updated = 0
    if session is not None and session.is_running:
        updated = _run(session.set_assert_mode(data["enabled"], data.get("assert_type")))
    return jsonify({"enabled": data["enabled"], "updated_pages": updated})


@app.post("/browser/navigate")
def navigate():
    data = _json_body() or {}
    url = str(data.get("url") or "").strip() if isinstance(data, dict) else ""
    if not url:
        return jsonify({"error": "url is required", "code": "VALIDATION"}), 400
    page_index = data.get("page_index")
    if page_index is not None and not isinstance(page_index, int):
        return jsonify({"error": "page_index must be an integer", "code": "VALIDATION"}), 400
    current = _run(_get_session().navigate(url, page_index))
    return jsonify({"url": current})


@app.get("/browser/events")
def list_events():
    raw = request.args.get("since", "0")
    try:
        since = int(raw)
    except ValueError:
        return jsonify({"error": "since must be an integer", "code": "VALIDATION"}), 400
    return jsonify({"events": EVENTS.since(since), "last_seq": EVENTS.last_seq})


@app.get("/healthz")
def health():  # pragma: no cover - trivial endpoint
    return "ok", 200


if __name__ == "__main__":  # pragma: no cover - manual run helper
    app.run(
        os.getenv("REPLAY_SERVER_HOST", "127.0.0.1"),
        int(os.getenv("REPLAY_SERVER_PORT", "7000")),
        threaded=True,
    )
