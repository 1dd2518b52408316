"""Default pipeline settings."""

DEFAULTS = {
    "entry_path": "App.tsx",
    "provider": "openai",           # "openai" (chat-completions compatible) or "anthropic"
    "base_url": None,               # None = provider's public endpoint
    "models": {
        "fast": "gpt-4o-mini",      # planner + validator
        "standard": "gpt-4o",       # generator/fixer for simple turns
        "large": "gpt-4.1",         # generator/fixer for large builds
    },
    "max_tokens": {
        "fast": 8000,
        "standard": 16000,
        "large": 32000,
    },
    "temperature": 0.2,
    "request_timeout": 120,         # seconds, per agent call
    "history_messages": 10,
    "planner_context_chars": 12000,
    "generator_context_chars": 25000,
    "complexity_length_threshold": 500,
    "complexity_step_threshold": 4,
    "large_build_keywords": [
        "dashboard", "e-commerce", "ecommerce", "multi-page", "saas",
        "admin panel", "crm", "platform", "full app", "authentication",
        "database", "marketplace",
    ],
    "credit_cost": 1,
    "starting_credits": 10,
}
