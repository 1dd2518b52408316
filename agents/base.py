"""Abstract base class for the four pipeline stages."""

import logging
import time
from abc import ABC, abstractmethod

from config.settings import get_settings
from utils.llm import AgentClient, AgentError
from utils.template_engine import render_prompt

logger = logging.getLogger(__name__)


class StageAgent(ABC):
    """One agent-client specialization with a fixed input → output contract.

    Stages hold no per-turn state: everything a call needs comes in through
    ``run``'s arguments and goes out as the validated schema instance.
    """

    name = "base"
    prompt_name = ""    # file under agents/prompts/, without .txt
    schema = None       # pydantic model the JSON answer must satisfy

    def __init__(self, client=None, settings=None):
        self.settings = settings or get_settings()
        self.client = client or AgentClient(settings=self.settings)

    @property
    def system_prompt(self):
        return render_prompt(self.prompt_name, {"entry_path": self.settings.entry_path})

    @abstractmethod
    def build_payload(self, **inputs):
        """Render the stage inputs into the user message."""

    def run(self, model, max_tokens=None, **inputs):
        """Call the model once and return an instance of ``schema``."""
        payload = self.build_payload(**inputs)
        logger.info("[%s] calling %s (%d chars of context)", self.name, model, len(payload))
        started = time.monotonic()
        try:
            result = self.client.call(
                self.system_prompt, payload, model, self.schema, max_tokens=max_tokens,
            )
        except AgentError as e:
            logger.warning("[%s] failed after %.2fs: %s", self.name, time.monotonic() - started, e)
            raise
        logger.info("[%s] done in %.2fs", self.name, time.monotonic() - started)
        return result


def render_files(files):
    """Render generated files as ``--- path ---`` sections."""
    return "\n\n".join(f"--- {f.path} ---\n{f.content}" for f in files)
