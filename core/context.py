"""Project metadata carried between turns and injected into agent context."""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass, field

MAX_DECISIONS = 20


def _default_dependencies():
    return [
        "react@18", "react-dom@18", "tailwindcss", "lucide-react",
        "recharts", "framer-motion", "react-router-dom", "date-fns",
    ]


def _default_constraints():
    return [
        "no-import-export-between-files",
        "globals-only",
        "no-cdn-in-generated-code",
        "typescript-style",
        "dark-mode-default",
    ]


@dataclass
class ProjectContext:
    stack: str = "react-tailwind-globals"
    package_manager: str = "cdn-globals"
    dependencies: list[str] = field(default_factory=_default_dependencies)
    features: list[str] = field(default_factory=list)
    decisions: list[dict] = field(default_factory=list)
    constraints: list[str] = field(default_factory=_default_constraints)

    def add_feature(self, feature: str) -> None:
        if feature and feature not in self.features:
            self.features.append(feature)

    def add_dependency(self, dependency: str) -> None:
        if dependency and dependency not in self.dependencies:
            self.dependencies.append(dependency)

    def add_decision(self, decision: str) -> None:
        self.decisions.append({"timestamp": time.time(), "decision": decision})
        # keep the most recent only
        self.decisions = self.decisions[-MAX_DECISIONS:]

    def update_from_result(self, intent: str, dependencies=()) -> None:
        """Record a delivered turn."""
        self.add_feature(intent)
        self.add_decision(f"Implemented: {intent}")
        for dep in dependencies:
            self.add_dependency(dep)

    def to_prompt_string(self) -> str:
        return json.dumps(asdict(self), indent=2)

    def serialize(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def deserialize(cls, raw) -> "ProjectContext":
        """Never raises; unreadable input gives the default context."""
        if not raw:
            return cls()
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            return cls()
        if not isinstance(data, dict):
            return cls()
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        try:
            return cls(**known)
        except TypeError:
            return cls()
