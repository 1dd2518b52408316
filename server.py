#!/usr/bin/env python3
"""VibeForge - streaming web service for the generation pipeline."""

import logging
import os
import threading
import time
import uuid

from flask import Flask, Response, jsonify, request, stream_with_context
from pydantic import ValidationError

from config.settings import get_settings
from core.credits import InMemoryCreditLedger
from core.events import encode_sse
from core.orchestrator import Orchestrator

logger = logging.getLogger(__name__)

app = Flask(__name__)
settings = get_settings()
ledger = InMemoryCreditLedger(default_balance=settings.starting_credits)
orchestrator = Orchestrator(ledger=ledger, settings=settings)

# Streaming turns keyed by turn_id: {id: {"project", "user", "cancel": Event, "created": ts}}
_turns = {}
# project_id -> turn_id; at most one streaming turn per project
_active_projects = {}
_turns_lock = threading.Lock()


def default_authenticator(token):
    """Resolve a bearer token to a user id. Development default: the token is the id."""
    return token or None


app.config.setdefault("AUTHENTICATOR", default_authenticator)


def _authenticate():
    """Return the user id for the request, or None."""
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    token = header[len("Bearer "):].strip()
    if not token:
        return None
    return app.config["AUTHENTICATOR"](token)


def _claim_project(project_id, user_id):
    """Register a new turn for the project. Returns (turn_id, cancel) or None if busy."""
    with _turns_lock:
        if project_id in _active_projects:
            return None
        turn_id = str(uuid.uuid4())[:8]
        cancel = threading.Event()
        _turns[turn_id] = {
            "project": project_id, "user": user_id, "cancel": cancel, "created": time.time(),
        }
        _active_projects[project_id] = turn_id
    return turn_id, cancel


def _release_turn(turn_id):
    with _turns_lock:
        turn = _turns.pop(turn_id, None)
        if turn and _active_projects.get(turn["project"]) == turn_id:
            del _active_projects[turn["project"]]


@app.route("/api/health")
def api_health():
    with _turns_lock:
        active = len(_turns)
    return jsonify({"status": "ok", "active_turns": active, "provider": settings.provider})


@app.route("/api/credits")
def api_credits():
    user_id = _authenticate()
    if not user_id:
        return jsonify({"error": "Unauthorized"}), 401
    return jsonify({"user_id": user_id, "credits": ledger.get_balance(user_id)})


@app.route("/api/orchestrator", methods=["POST"])
def api_orchestrator():
    """Run one turn and stream its events as SSE.

    Caller errors (auth, credits, request shape, busy project) are answered
    synchronously before the stream opens.
    """
    user_id = _authenticate()
    if not user_id:
        return jsonify({"error": "Unauthorized"}), 401

    if ledger.get_balance(user_id) < settings.credit_cost:
        return jsonify({"error": "no_credits", "message": "Credits exhausted."}), 402

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400
    try:
        state = orchestrator.create_state(data, user_id)
    except ValidationError as e:
        return jsonify({
            "error": "Invalid request",
            "details": e.errors(include_url=False, include_context=False),
        }), 400

    project_id = state.request.projectId or user_id
    claim = _claim_project(project_id, user_id)
    if claim is None:
        return jsonify({"error": "A turn is already running for this project"}), 409
    turn_id, cancel = claim

    events = orchestrator.run_turn(state.request, user_id, cancel, state=state)

    def generate():
        try:
            for event in events:
                yield encode_sse(event)
        finally:
            # client disconnects close this generator; stop the pipeline too
            cancel.set()
            events.close()
            _release_turn(turn_id)

    def on_close():
        cancel.set()
        _release_turn(turn_id)

    response = Response(stream_with_context(generate()), mimetype="text/event-stream")
    response.call_on_close(on_close)
    response.headers["Cache-Control"] = "no-cache"
    response.headers["X-Accel-Buffering"] = "no"
    response.headers["X-Turn-Id"] = turn_id
    return response


@app.route("/api/turns/<turn_id>/cancel", methods=["POST"])
def api_cancel(turn_id):
    """Abort a streaming turn; the stream ends with a cancelled event."""
    user_id = _authenticate()
    if not user_id:
        return jsonify({"error": "Unauthorized"}), 401
    with _turns_lock:
        turn = _turns.get(turn_id)
    # other users' turns are reported as missing
    if not turn or turn.get("user") != user_id:
        return jsonify({"error": "Turn not found"}), 404
    turn["cancel"].set()
    logger.info("Cancellation requested for turn %s", turn_id)
    return jsonify({"turn_id": turn_id, "cancelled": True})


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )
    port = int(os.environ.get("PORT", 5001))
    print(f"VibeForge running at http://localhost:{port}")
    app.run(debug=False, port=port, threaded=True)
