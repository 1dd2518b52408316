"""Generator agent — writes complete bodies for the files a plan touches."""

import json
import logging

from agents.base import StageAgent
from core.schemas import GeneratedFileSet

logger = logging.getLogger(__name__)


class GeneratorAgent(StageAgent):
    """Generates full file contents from a plan."""

    name = "generator"
    prompt_name = "generator"
    schema = GeneratedFileSet

    def build_payload(self, plan, project_context="", file_tree=""):
        steps = [s.model_dump(exclude_none=True) for s in plan.steps]
        targets = "\n".join(
            f"- [{s.priority}] {s.action} {s.file_path}: {s.description}" for s in plan.steps
        )
        context = project_context[: self.settings.generator_context_chars] if project_context \
            else f"// Empty project — {self.settings.entry_path} only"

        return (
            f"## Execution Plan\n{json.dumps(steps, indent=2)}\n\n"
            f"## Plan Intent\n{plan.intent}\n\n"
            f"## Dependencies Available\n{', '.join(plan.dependencies_needed) or 'None additional'}\n\n"
            f"## Current Filesystem (full code)\n{context}\n\n"
            f"## File Tree\n{file_tree or self.settings.entry_path}\n\n"
            f"## Files to Generate/Modify\n{targets}\n\n"
            "Every file you return replaces the stored file as-is: return complete bodies only."
        )

    def run(self, model, max_tokens=None, **inputs):
        result = super().run(model, max_tokens=max_tokens, **inputs)
        produced = {f.path for f in result.files}
        missing = [p for p in inputs["plan"].expected_paths() if p not in produced]
        if missing:
            # feature labels and renamed targets land here too; not an error
            logger.info("[generator] planned targets not in output: %s", ", ".join(missing))
        return result
