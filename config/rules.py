"""Validation severity policy and static rule patterns for generated files.

Severity policy (decides whether the Fixer runs):

    type                      severity            bucket
    ------------------------  ------------------  -------
    security                  any                 error
    syntax | import | runtime critical | major    error
    syntax | import | runtime minor               warning

The same table is applied to what the validator agent reports as errors
and as warnings: a "warning" of type security is promoted to an error, and
a minor style nit stays a warning whatever its type.
"""

import re

ALWAYS_ERROR_TYPES = {"security"}


def is_blocking(finding_type, severity):
    """Return True when a finding of this type/severity must block delivery."""
    if finding_type in ALWAYS_ERROR_TYPES:
        return True
    return severity != "minor"


# Patterns scanned line by line. Each entry:
# (pattern_regex, type, severity, message)
STATIC_PATTERNS = [
    (
        re.compile(r"""^\s*import\s+(?:[\w{}*,\s]+\s+from\s+)?["'][^"']+["']"""),
        "import",
        "major",
        "import statement breaks the global-script runtime; destructure from globals instead",
    ),
    (
        re.compile(r"""^\s*export\s+(?:default\s+)?(?:function|const|class|let|var|\{)"""),
        "import",
        "major",
        "export statement breaks the global-script runtime; declare a global instead",
    ),
    (
        re.compile(r"""\beval\s*\("""),
        "security",
        "critical",
        "Use of eval() is unsafe",
    ),
    (
        re.compile(r"""\bdocument\.write\s*\("""),
        "security",
        "major",
        "document.write() is unsafe and breaks the preview",
    ),
    (
        re.compile(r"""dangerouslySetInnerHTML"""),
        "security",
        "major",
        "dangerouslySetInnerHTML allows script injection",
    ),
    (
        re.compile(r"""(?:api[_-]?key|secret|token)\s*[:=]\s*["'][A-Za-z0-9_\-]{16,}["']""",
                   re.IGNORECASE),
        "security",
        "critical",
        "Hardcoded API key or secret",
    ),
    (
        re.compile(r"""<script[^>]+src\s*=\s*["']https?://""", re.IGNORECASE),
        "security",
        "major",
        "External script tag; libraries are pre-loaded as globals",
    ),
]

# The entry file must mount the app.
MOUNT_PATTERN = re.compile(r"""ReactDOM\.createRoot\s*\(""")
MOUNT_MESSAGE = "Entry file does not mount the app with ReactDOM.createRoot(...)"
