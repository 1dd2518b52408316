"""Planner agent — decides what should change, without writing code."""

from agents.base import StageAgent
from core.schemas import Plan


class PlannerAgent(StageAgent):
    """Produces a Plan from the user request and a snapshot of the project."""

    name = "planner"
    prompt_name = "planner"
    schema = Plan

    def build_payload(self, request, project_context="", file_tree=""):
        history_window = self.settings.history_messages
        history = "\n".join(
            f"[{m.role}]: {m.content}" for m in request.messages[-history_window:]
        )
        context = project_context[: self.settings.planner_context_chars] if project_context \
            else f"Empty project — only {self.settings.entry_path} exists"

        return (
            f"## User Request\n{request.user_prompt}\n\n"
            f"## Conversation History (last {history_window} messages)\n{history}\n\n"
            f"## Current File Tree\n{file_tree or self.settings.entry_path}\n\n"
            f"## Project Context\n{context}"
        )
