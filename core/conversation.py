"""Client-side conversation state machine.

A pure reducer folds the event stream into one ``phase`` plus the plan
steps, generated file names and validation findings a UI needs. It replaces
separate "is generating" / "status text" flags with a single value.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from enum import Enum


class ConversationPhase(str, Enum):
    IDLE = "idle"
    PLANNING = "planning"
    GENERATING = "generating"
    VALIDATING = "validating"
    FIXING = "fixing"
    PREVIEWING = "previewing"
    ERROR = "error"


_FORWARD = [
    ConversationPhase.PLANNING,
    ConversationPhase.GENERATING,
    ConversationPhase.VALIDATING,
    ConversationPhase.FIXING,
    ConversationPhase.PREVIEWING,
]

_LABELS = {
    ConversationPhase.IDLE: "",
    ConversationPhase.PLANNING: "Planning…",
    ConversationPhase.GENERATING: "Generating code…",
    ConversationPhase.VALIDATING: "Validating…",
    ConversationPhase.FIXING: "Fixing…",
    ConversationPhase.PREVIEWING: "Preview…",
    ConversationPhase.ERROR: "Error",
}


@dataclass(frozen=True)
class ConversationState:
    phase: ConversationPhase = ConversationPhase.IDLE
    message: str | None = None
    errors: tuple = ()
    warnings: tuple = ()
    plan_steps: tuple = ()
    generated_files: tuple = ()
    started_at: float | None = None


INITIAL_STATE = ConversationState()


# ----------------------------------------------------------------------
# Actions
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class Start:
    now: float = field(default_factory=time.time)


@dataclass(frozen=True)
class SetPhase:
    phase: ConversationPhase
    message: str | None = None


@dataclass(frozen=True)
class SetPlan:
    steps: tuple


@dataclass(frozen=True)
class FileGenerated:
    path: str


@dataclass(frozen=True)
class SetValidation:
    errors: tuple
    warnings: tuple


@dataclass(frozen=True)
class Complete:
    pass


@dataclass(frozen=True)
class Error:
    message: str


@dataclass(frozen=True)
class Reset:
    pass


def reduce(state: ConversationState, action) -> ConversationState:
    """Return the next state. Never mutates ``state``."""
    if isinstance(action, Start):
        return ConversationState(
            phase=ConversationPhase.PLANNING,
            message="Analyzing your request…",
            started_at=action.now,
        )

    if isinstance(action, SetPhase):
        if action.phase == ConversationPhase.ERROR:
            return replace(state, phase=action.phase, message=action.message or state.message)
        if action.phase == state.phase:
            return replace(state, message=action.message or state.message)
        if not _moves_forward(state.phase, action.phase):
            return state
        return replace(state, phase=action.phase, message=action.message or state.message)

    if isinstance(action, SetPlan):
        return replace(state, plan_steps=tuple(action.steps))

    if isinstance(action, FileGenerated):
        if action.path in state.generated_files:
            return state
        return replace(state, generated_files=state.generated_files + (action.path,))

    if isinstance(action, SetValidation):
        return replace(state, errors=tuple(action.errors), warnings=tuple(action.warnings))

    if isinstance(action, Complete):
        if state.phase == ConversationPhase.ERROR:
            return state
        return replace(state, phase=ConversationPhase.IDLE, message=None)

    if isinstance(action, Error):
        return replace(state, phase=ConversationPhase.ERROR, message=action.message)

    if isinstance(action, Reset):
        return INITIAL_STATE

    return state


def _moves_forward(current, target):
    if current not in _FORWARD or target not in _FORWARD:
        return False
    return _FORWARD.index(target) > _FORWARD.index(current)


# ----------------------------------------------------------------------
# Wire events → actions
# ----------------------------------------------------------------------

def action_for_event(event: dict):
    """Map a decoded stream event to an action, or None to ignore it."""
    kind = event.get("type")

    if kind == "phase":
        phase = event.get("phase")
        if phase == "error":
            return Error(event.get("message") or "Error")
        if phase == "complete":
            return SetPhase(ConversationPhase.PREVIEWING, event.get("message"))
        try:
            return SetPhase(ConversationPhase(phase), event.get("message"))
        except ValueError:
            return None

    if kind == "plan":
        steps = (event.get("plan") or {}).get("steps") or []
        return SetPlan(tuple(steps))

    if kind == "file_generated":
        return FileGenerated(event["path"])

    if kind == "validation":
        return SetValidation(tuple(event.get("errors") or ()), tuple(event.get("warnings") or ()))

    if kind == "result":
        return Complete()

    if kind == "cancelled":
        return Reset()

    return None


def fold_events(events, state=None) -> ConversationState:
    """Start a turn and apply every event in order."""
    state = reduce(state or INITIAL_STATE, Start())
    for event in events:
        action = action_for_event(event)
        if action is not None:
            state = reduce(state, action)
    return state


def is_active(state: ConversationState) -> bool:
    return state.phase not in (ConversationPhase.IDLE, ConversationPhase.ERROR)


def phase_label(phase: ConversationPhase) -> str:
    return _LABELS[phase]
