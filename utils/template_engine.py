"""Stage prompt loading.

Each stage keeps its instructions in ``agents/prompts/<name>.txt``. Every
prompt may embed ``$global_rules``, the shared runtime constraints kept in
``rules.txt``; both are rendered with the same variables.
"""

import os
from string import Template

PROMPTS_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "agents", "prompts")


def load_prompt(name):
    """Read ``agents/prompts/<name>.txt``.

    Raises ValueError when ``name`` resolves to a file outside the prompt
    folder.
    """
    root = os.path.realpath(PROMPTS_DIR)
    target = os.path.realpath(os.path.join(root, name + ".txt"))
    if os.path.commonpath([root, target]) != root:
        raise ValueError(f"Prompt {name!r} is not inside {root}")
    with open(target, "r", encoding="utf-8") as f:
        return f.read()


def render_prompt(name, variables):
    # safe_substitute: placeholders without a value stay in the text
    rules = Template(load_prompt("rules")).safe_substitute(variables)
    return Template(load_prompt(name)).safe_substitute({"global_rules": rules, **variables})
