"""Typed events streamed from the orchestrator to a caller.

Wire format: one JSON object per record. Over SSE each record is
``data: <json>\\n\\n`` and the stream ends with ``data: [DONE]\\n\\n``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Iterator

SENTINEL = "[DONE]"


class EventType(str, Enum):
    PHASE = "phase"
    PLAN = "plan"
    FILE_GENERATED = "file_generated"
    VALIDATION = "validation"
    RESULT = "result"
    CANCELLED = "cancelled"
    DONE = "done"


class Phase(str, Enum):
    PLANNING = "planning"
    GENERATING = "generating"
    VALIDATING = "validating"
    FIXING = "fixing"
    COMPLETE = "complete"
    ERROR = "error"


# Forward order within one turn; ERROR may follow any of them.
PHASE_ORDER = [Phase.PLANNING, Phase.GENERATING, Phase.VALIDATING, Phase.FIXING, Phase.COMPLETE]


@dataclass
class Event:
    type = None

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError


@dataclass
class PhaseEvent(Event):
    phase: Phase
    message: str = ""
    type = EventType.PHASE

    def to_dict(self):
        return {"type": self.type.value, "phase": self.phase.value, "message": self.message}


@dataclass
class PlanEvent(Event):
    plan: Any  # core.schemas.Plan
    type = EventType.PLAN

    def to_dict(self):
        return {"type": self.type.value, "plan": self.plan.model_dump()}


@dataclass
class FileGeneratedEvent(Event):
    path: str
    lines_count: int
    type = EventType.FILE_GENERATED

    def to_dict(self):
        return {"type": self.type.value, "path": self.path, "linesCount": self.lines_count}


@dataclass
class ValidationEvent(Event):
    errors: list = field(default_factory=list)
    warnings: list = field(default_factory=list)
    skipped: bool = False
    type = EventType.VALIDATION

    def to_dict(self):
        data = {
            "type": self.type.value,
            "errors": [e.model_dump() for e in self.errors],
            "warnings": [w.model_dump() for w in self.warnings],
        }
        if self.skipped:
            data["skipped"] = True
        return data


@dataclass
class ResultEvent(Event):
    conversational: bool
    reply: str | None = None
    intent: str | None = None
    files: list = field(default_factory=list)
    deleted_files: list = field(default_factory=list)
    warnings: list | None = None
    type = EventType.RESULT

    def to_dict(self):
        data = {
            "type": self.type.value,
            "conversational": self.conversational,
            "files": [{"path": f.path, "content": f.content} for f in self.files],
            "deletedFiles": list(self.deleted_files),
        }
        if self.reply is not None:
            data["reply"] = self.reply
        if self.intent is not None:
            data["intent"] = self.intent
        if self.warnings is not None:
            data["warnings"] = [w.model_dump() for w in self.warnings]
        return data


@dataclass
class CancelledEvent(Event):
    message: str = "Cancelled"
    type = EventType.CANCELLED

    def to_dict(self):
        return {"type": self.type.value, "message": self.message}


@dataclass
class DoneEvent(Event):
    """End-of-stream marker; always the last event of a turn."""
    type = EventType.DONE

    def to_dict(self):
        return {"type": self.type.value}


# ----------------------------------------------------------------------
# Encoding
# ----------------------------------------------------------------------

def encode_sse(event: Event) -> str:
    if isinstance(event, DoneEvent):
        return f"data: {SENTINEL}\n\n"
    return f"data: {json.dumps(event.to_dict())}\n\n"


def encode_ndjson(event: Event) -> str:
    if isinstance(event, DoneEvent):
        return SENTINEL + "\n"
    return json.dumps(event.to_dict()) + "\n"


def parse_sse_lines(lines: Iterable[str]) -> Iterator[dict]:
    """Decode SSE ``data:`` lines into event dicts, stopping at the sentinel.

    Comment lines (``:``), blank lines and other SSE fields are skipped.
    A record that is not valid JSON raises ValueError.
    """
    for raw in lines:
        line = raw.rstrip("\r\n")
        if not line or line.startswith(":") or not line.startswith("data:"):
            continue
        data = line[len("data:"):].strip()
        if data == SENTINEL:
            return
        yield json.loads(data)


def iter_sse_body(body: str) -> Iterator[dict]:
    return parse_sse_lines(body.splitlines())
