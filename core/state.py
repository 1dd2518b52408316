"""Per-turn pipeline state shared between the orchestrator and its callers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from core.events import Phase


class TurnOutcome(str, Enum):
    COMPLETED = "completed"           # code delivered, or a conversational reply
    CLARIFICATION = "clarification"   # nothing to build yet; a question went back
    ERROR = "error"
    CANCELLED = "cancelled"


@dataclass
class TurnState:
    """Everything the orchestrator learns during one turn."""
    user_id: str
    request: object                    # core.schemas.TurnRequest
    plan: object | None = None         # core.schemas.Plan
    model: str = ""
    complexity: str = "simple"
    generated: list = field(default_factory=list)
    validation: object | None = None   # core.schemas.ValidationResult
    validation_skipped: bool = False
    files: list = field(default_factory=list)
    warnings: list = field(default_factory=list)
    phases: list[Phase] = field(default_factory=list)
    fixer_calls: int = 0
    charged: bool = False
    outcome: TurnOutcome | None = None
    error: str = ""

    @property
    def finished(self) -> bool:
        return self.outcome is not None
