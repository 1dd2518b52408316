"""Quality gate evaluation."""

from config.rules import is_blocking
from core.schemas import Finding, ValidationResult


def apply_severity_policy(result: ValidationResult, extra=()) -> ValidationResult:
    """Re-bucket every finding by the documented policy and drop duplicates.

    ``extra`` holds findings from the static scan, merged after the agent's.
    """
    errors, warnings = [], []
    seen = set()
    for finding in list(result.errors) + list(result.warnings) + list(extra):
        if finding.key() in seen:
            continue
        seen.add(finding.key())
        if is_blocking(finding.type, finding.severity):
            errors.append(finding)
        else:
            warnings.append(finding)
    return ValidationResult(
        valid=not errors,
        confidence_score=result.confidence_score,
        errors=errors,
        warnings=warnings,
    )


def fixer_required(result: ValidationResult) -> bool:
    """Errors block auto-acceptance; warnings never do."""
    return len(result.errors) > 0


def unresolved_as_warnings(errors) -> list[Finding]:
    """Findings that stay in the delivered files after a failed fix."""
    return [
        Finding(
            type=e.type, file=e.file, message=f"Unresolved: {e.message}", severity=e.severity,
        )
        for e in errors
    ]
