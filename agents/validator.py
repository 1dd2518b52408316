"""Validator agent — audits generated files, never mutates them."""

from agents.base import StageAgent, render_files
from config.rules import MOUNT_MESSAGE, MOUNT_PATTERN, STATIC_PATTERNS
from core.quality import apply_severity_policy
from core.schemas import Finding, ValidationResult


class ValidatorAgent(StageAgent):
    """Agent review plus a static pattern scan, bucketed by the severity policy."""

    name = "validator"
    prompt_name = "validator"
    schema = ValidationResult

    def build_payload(self, files, plan):
        expected = ", ".join(s.target for s in plan.steps if s.action == "create")
        return (
            f"## Complete Filesystem After Generation\n{render_files(files)}\n\n"
            f"## Original Plan Intent\n{plan.intent}\n\n"
            f"## Expected Components/Functions\n{expected or 'None new'}"
        )

    def run(self, model, max_tokens=None, **inputs):
        result = super().run(model, max_tokens=max_tokens, **inputs)
        return apply_severity_policy(result, extra=self.scan(inputs["files"]))

    def scan(self, files):
        """Static pattern checks over every generated file."""
        findings = []
        for f in files:
            for line_num, line in enumerate(f.content.split("\n"), 1):
                for pattern, finding_type, severity, message in STATIC_PATTERNS:
                    if pattern.search(line):
                        findings.append(Finding(
                            type=finding_type,
                            file=f.path,
                            message=f"line {line_num}: {message}",
                            severity=severity,
                        ))
            if f.path == self.settings.entry_path and not MOUNT_PATTERN.search(f.content):
                findings.append(Finding(
                    type="runtime", file=f.path, message=MOUNT_MESSAGE, severity="critical",
                ))
        return findings
