"""Agent client: one JSON-producing model call per stage, no retries."""

import json
import logging
import re
import time

import anthropic
import openai
from pydantic import ValidationError

from config.settings import ConfigError, get_settings

logger = logging.getLogger(__name__)

JSON_ONLY_SUFFIX = "\n\nIMPORTANT: Respond ONLY with valid JSON. No markdown fences, no commentary."

_FENCE_OPEN_RE = re.compile(r"^```[\w-]*\s*")
_FENCE_CLOSE_RE = re.compile(r"\s*```$")


class AgentError(Exception):
    """Base class for every agent call failure."""


class AgentCallFailed(AgentError):
    """Network failure or non-2xx response. status_code is None for transport errors."""

    def __init__(self, status_code=None, detail=""):
        self.status_code = status_code
        self.detail = detail
        label = status_code if status_code is not None else "no response"
        super().__init__(f"Agent call failed ({label})")


class EmptyResponse(AgentError):
    def __init__(self):
        super().__init__("Agent returned an empty response")


class MalformedAgentOutput(AgentError):
    """Body was not JSON, or JSON of the wrong shape. raw is for logs only."""

    def __init__(self, raw, reason=""):
        self.raw = raw
        self.reason = reason
        super().__init__("Agent returned malformed output")


def strip_code_fences(text):
    """Remove a leading ```lang and trailing ``` marker if present."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_OPEN_RE.sub("", cleaned, count=1)
        cleaned = _FENCE_CLOSE_RE.sub("", cleaned, count=1)
    return cleaned


# ----------------------------------------------------------------------
# Backends
# ----------------------------------------------------------------------

class OpenAIBackend:
    """Any OpenAI-compatible chat-completions endpoint."""

    name = "openai"

    def __init__(self, api_key, base_url=None, timeout=None):
        self.client = openai.OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    def complete(self, system_prompt, user_message, model, max_tokens, temperature):
        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
            )
        except openai.APIStatusError as e:
            raise AgentCallFailed(e.status_code, str(e)) from e
        except openai.APIError as e:
            # connection errors and timeouts carry no status
            raise AgentCallFailed(None, str(e)) from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


class AnthropicBackend:
    """Anthropic Messages API."""

    name = "anthropic"

    def __init__(self, api_key, base_url=None, timeout=None):
        self.client = anthropic.Anthropic(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    def complete(self, system_prompt, user_message, model, max_tokens, temperature):
        try:
            message = self.client.messages.create(
                model=model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system_prompt + JSON_ONLY_SUFFIX,
                messages=[{"role": "user", "content": user_message}],
            )
        except anthropic.APIStatusError as e:
            raise AgentCallFailed(e.status_code, str(e)) from e
        except anthropic.APIError as e:
            raise AgentCallFailed(None, str(e)) from e

        if message.stop_reason == "max_tokens":
            logger.warning("Anthropic response hit max_tokens (%s) for %s", max_tokens, model)
        return "".join(
            block.text for block in message.content if getattr(block, "type", "") == "text"
        )


_BACKENDS = {
    "openai": OpenAIBackend,
    "anthropic": AnthropicBackend,
}


def get_backend(settings=None):
    """Build the configured backend. Raises ConfigError if no API key is set."""
    settings = settings or get_settings()
    if not settings.api_key:
        raise ConfigError(
            "No API key configured. Set VIBEFORGE_API_KEY (or "
            "OPENAI_API_KEY / ANTHROPIC_API_KEY for the chosen provider)."
        )
    backend_cls = _BACKENDS[settings.provider]
    return backend_cls(
        api_key=settings.api_key,
        base_url=settings.base_url,
        timeout=settings.request_timeout,
    )


# ----------------------------------------------------------------------
# Client
# ----------------------------------------------------------------------

class AgentClient:
    """Sends one instruction + payload and returns the parsed, validated shape."""

    def __init__(self, backend=None, settings=None):
        self.settings = settings or get_settings()
        self._backend = backend

    @property
    def backend(self):
        if self._backend is None:
            self._backend = get_backend(self.settings)
        return self._backend

    def call(self, system_prompt, user_payload, model, schema, max_tokens=None):
        """Run one blocking call.

        Args:
            system_prompt: Role-specific instructions.
            user_payload: Structured context, already rendered to text.
            model: Model id to use.
            schema: Pydantic model class the JSON body must satisfy.
            max_tokens: Completion budget (defaults to the fast tier).

        Returns:
            An instance of ``schema``.

        Raises:
            AgentCallFailed, EmptyResponse, MalformedAgentOutput.
        """
        max_tokens = max_tokens or self.settings.max_tokens_for("fast")
        started = time.monotonic()
        text = self.backend.complete(
            system_prompt, user_payload, model, max_tokens, self.settings.temperature,
        )
        elapsed = time.monotonic() - started
        logger.debug("%s responded in %.2fs (%d chars)", model, elapsed, len(text or ""))

        if not text or not text.strip():
            raise EmptyResponse()
        return parse_agent_json(text, schema)


def parse_agent_json(text, schema):
    """Strip fences, parse JSON and validate it against ``schema``."""
    cleaned = strip_code_fences(text)
    try:
        json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error("Agent JSON parse error: %s. Raw: %s", e, cleaned[:500])
        raise MalformedAgentOutput(cleaned, str(e)) from e

    try:
        return schema.model_validate_json(cleaned)
    except ValidationError as e:
        logger.error(
            "Agent output does not match %s: %s. Raw: %s",
            schema.__name__, e.errors(include_url=False), cleaned[:500],
        )
        raise MalformedAgentOutput(cleaned, str(e)) from e
