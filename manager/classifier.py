"""Keyword-scoring complexity classifier used to pick a model tier."""

import re

from config.settings import get_settings

# Keywords that are prefix patterns (match word starts, e.g. "authenticat" -> "authentication")
_PREFIX_KEYWORDS = {"authenticat", "analytic"}

# Extra weighted hints. A single large-build keyword is enough on its own;
# these only add up.
HINT_WEIGHTS = {
    "page": 1, "pages": 2, "login": 2, "analytic": 2, "checkout": 2,
    "cart": 2, "admin": 2, "users": 1, "roles": 2, "charts": 1, "api": 1,
}

_COMPLEX_SCORE = 4


def _pattern(keyword):
    if keyword in _PREFIX_KEYWORDS:
        return r'\b' + re.escape(keyword)
    return r'\b' + re.escape(keyword) + r'\b'


def classify(request, steps=None, settings=None):
    """Score a request and return ("simple" | "complex", scores_dict).

    Complex when any large-build keyword is present, the text is longer than
    the length threshold, the plan has many steps, or the weighted hints add
    up to the complexity score.
    """
    settings = settings or get_settings()
    text = request.lower()

    scores = {
        "keywords": [k for k in settings.large_build_keywords if re.search(_pattern(k), text)],
        "length": len(text),
        "steps": len(steps or []),
        "hints": sum(w for k, w in HINT_WEIGHTS.items() if re.search(_pattern(k), text)),
    }

    if scores["keywords"]:
        return "complex", scores
    if scores["length"] > settings.complexity_length_threshold:
        return "complex", scores
    if scores["steps"] >= settings.complexity_step_threshold:
        return "complex", scores
    if scores["hints"] >= _COMPLEX_SCORE:
        return "complex", scores
    return "simple", scores


def select_generator_model(request, steps=None, settings=None):
    """Return (model_id, max_tokens, complexity) for the Generator and Fixer."""
    settings = settings or get_settings()
    complexity, _ = classify(request, steps, settings)
    tier = "large" if complexity == "complex" else "standard"
    model = settings.model_override or settings.model_for(tier)
    return model, settings.max_tokens_for(tier), complexity
