"""Tests for core.events — event dicts and the SSE / NDJSON wire format."""

import json

import pytest

from core.events import (
    CancelledEvent,
    DoneEvent,
    FileGeneratedEvent,
    Phase,
    PhaseEvent,
    PlanEvent,
    ResultEvent,
    SENTINEL,
    ValidationEvent,
    encode_ndjson,
    encode_sse,
    iter_sse_body,
    parse_sse_lines,
)
from core.schemas import Finding, GeneratedFile, Plan


def test_phase_event_dict():
    assert PhaseEvent(Phase.FIXING, "Auto-fixing 2 error(s)…").to_dict() == {
        "type": "phase", "phase": "fixing", "message": "Auto-fixing 2 error(s)…",
    }


def test_plan_event_dumps_plan():
    plan = Plan.model_validate_json(json.dumps({
        "intent": "Add a footer", "risk_level": "low", "conversational": False,
        "steps": [{"id": 1, "action": "create", "target": "Footer"}],
    }))
    data = PlanEvent(plan).to_dict()
    assert data["type"] == "plan"
    assert data["plan"]["intent"] == "Add a footer"
    assert data["plan"]["steps"][0]["target"] == "Footer"


def test_validation_event_skipped_flag_only_when_set():
    finding = Finding(type="syntax", file="A.tsx", message="unclosed tag")
    assert "skipped" not in ValidationEvent([finding], []).to_dict()
    assert ValidationEvent(skipped=True).to_dict()["skipped"] is True


def test_result_event_code_turn():
    data = ResultEvent(
        conversational=False,
        intent="Add a footer",
        files=[GeneratedFile(path="Footer", content="function Footer() {}")],
        deleted_files=["Old.tsx"],
        warnings=[],
    ).to_dict()
    assert data == {
        "type": "result",
        "conversational": False,
        "intent": "Add a footer",
        "files": [{"path": "Footer", "content": "function Footer() {}"}],
        "deletedFiles": ["Old.tsx"],
        "warnings": [],
    }


def test_result_event_conversational_omits_code_fields():
    data = ResultEvent(conversational=True, reply="Hi!").to_dict()
    assert data["reply"] == "Hi!"
    assert "intent" not in data
    assert "warnings" not in data


def test_encode_sse():
    encoded = encode_sse(FileGeneratedEvent("A.tsx", 12))
    assert encoded.startswith("data: ")
    assert encoded.endswith("\n\n")
    assert json.loads(encoded[len("data: "):]) == {
        "type": "file_generated", "path": "A.tsx", "linesCount": 12,
    }


def test_done_is_the_sentinel():
    assert encode_sse(DoneEvent()) == f"data: {SENTINEL}\n\n"
    assert encode_ndjson(DoneEvent()) == "[DONE]\n"


def test_encode_ndjson():
    line = encode_ndjson(CancelledEvent())
    assert line.endswith("\n")
    assert json.loads(line) == {"type": "cancelled", "message": "Cancelled"}


def test_parse_sse_body_stops_at_sentinel():
    body = "".join([
        ": keep-alive\n\n",
        encode_sse(PhaseEvent(Phase.PLANNING, "Analyzing…")),
        "event: message\n",
        encode_sse(ResultEvent(conversational=True, reply="Hi")),
        encode_sse(DoneEvent()),
        encode_sse(PhaseEvent(Phase.ERROR, "after the end")),
    ])
    events = list(iter_sse_body(body))
    assert [e["type"] for e in events] == ["phase", "result"]


def test_parse_sse_handles_crlf():
    lines = ['data: {"type": "phase", "phase": "planning", "message": ""}\r\n', "data: [DONE]\r\n"]
    assert list(parse_sse_lines(lines)) == [{"type": "phase", "phase": "planning", "message": ""}]


def test_parse_sse_rejects_broken_record():
    with pytest.raises(ValueError):
        list(parse_sse_lines(["data: {not json"]))
