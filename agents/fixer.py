"""Fixer agent — one correction pass over the files the validator flagged."""

import json

from agents.base import StageAgent, render_files
from core.schemas import GeneratedFileSet


class FixerAgent(StageAgent):
    """Returns replacement bodies for the files it changed, nothing else."""

    name = "fixer"
    prompt_name = "fixer"
    schema = GeneratedFileSet

    def build_payload(self, errors, files, intent=""):
        error_list = [e.model_dump() for e in errors]
        return (
            f"## Errors to Fix\n{json.dumps(error_list, indent=2)}\n\n"
            f"## Original Plan Intent\n{intent}\n\n"
            f"## Current Filesystem\n{render_files(files)}"
        )


def merge_files(generated, fixes):
    """Merge fixer output into generator output by path; the fixer wins.

    Order of the generated files is kept, paths only the fixer produced are
    appended.
    """
    merged = {f.path: f for f in generated}
    for fix in fixes:
        merged[fix.path] = fix
    return list(merged.values())
