"""
Pydantic schemas for structured agent outputs and turn requests.
"""

import re
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

FindingType = Literal["syntax", "runtime", "security", "import"]

# Placeholders that mean the model elided part of a file.
_ELISION_RE = re.compile(
    r"(\.\.\.\s*existing code\s*\.\.\.|rest of (?:the )?(?:code|file)|rest unchanged"
    r"|unchanged code here|remaining code unchanged)",
    re.IGNORECASE,
)


class _AgentModel(BaseModel):
    """Agent payloads may carry extra keys; declared keys are strict.

    Validate with ``model_validate_json`` so nested objects are accepted
    while scalars are never coerced (``"1"`` is not an int).
    """
    model_config = ConfigDict(extra="ignore", strict=True)


class PlanStep(_AgentModel):
    """One ordered step of a plan."""
    id: int = Field(..., ge=1, description="1-based sequence number")
    action: Literal["create", "modify", "delete"]
    target: str = Field(..., min_length=1, description="File path or feature label")
    path: Optional[str] = Field(None, description="File path, when different from target")
    description: str = ""
    priority: Literal["critical", "normal", "optional"] = "normal"

    @property
    def file_path(self) -> str:
        return self.path or self.target


class Plan(_AgentModel):
    """Planner output for a single turn."""
    intent: str
    risk_level: Literal["low", "medium", "high"]
    conversational: bool
    reply: Optional[str] = None
    clarification_needed: bool = False
    clarification_question: Optional[str] = None
    dependencies_needed: List[str] = Field(default_factory=list)
    steps: List[PlanStep] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_consistency(self):
        ids = [s.id for s in self.steps]
        if ids != list(range(1, len(ids) + 1)):
            raise ValueError(f"step ids must be 1..n in execution order, got {ids}")
        if self.conversational:
            if self.steps:
                raise ValueError("conversational plan must not have steps")
            if not self.reply:
                raise ValueError("conversational plan requires a reply")
        return self

    @property
    def needs_clarification(self) -> bool:
        if self.conversational:
            return False
        return not self.steps or bool(
            self.clarification_needed and self.clarification_question
        )

    def deleted_paths(self) -> List[str]:
        return [s.file_path for s in self.steps if s.action == "delete"]

    def expected_paths(self) -> List[str]:
        return [s.file_path for s in self.steps if s.action != "delete"]


class GeneratedFile(_AgentModel):
    path: str = Field(..., min_length=1)
    content: str

    @field_validator("content")
    @classmethod
    def _complete_body(cls, value):
        if _ELISION_RE.search(value):
            raise ValueError("file content is elided, a complete body is required")
        return value

    @property
    def lines_count(self) -> int:
        return len(self.content.split("\n"))


class GeneratedFileSet(_AgentModel):
    """Generator and Fixer output."""
    files: List[GeneratedFile]


class Finding(_AgentModel):
    type: FindingType
    file: str
    message: str
    severity: Literal["critical", "major", "minor"] = "major"

    def key(self):
        return (self.type, self.file, self.message)


class ValidationResult(_AgentModel):
    valid: Optional[bool] = None
    confidence_score: Optional[float] = Field(None, ge=0, le=100)
    errors: List[Finding] = Field(default_factory=list)
    warnings: List[Finding] = Field(default_factory=list)

    @property
    def blocking(self) -> bool:
        return bool(self.errors)


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class TurnRequest(BaseModel):
    """Caller → pipeline request body."""
    messages: List[ChatMessage] = Field(..., min_length=1)
    projectContext: str = ""
    fileTree: str = ""
    projectId: Optional[str] = None

    @field_validator("messages")
    @classmethod
    def _has_user_message(cls, value):
        if not any(m.role == "user" for m in value):
            raise ValueError("messages must contain at least one user message")
        return value

    @property
    def user_prompt(self) -> str:
        """Content of the most recent user message."""
        for message in reversed(self.messages):
            if message.role == "user":
                return message.content
        return ""
