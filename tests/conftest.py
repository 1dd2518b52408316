"""Shared fixtures: a scripted model backend and an orchestrator wired to it."""

import json

import pytest

from config.settings import Settings
from core.credits import InMemoryCreditLedger
from core.orchestrator import Orchestrator
from utils.llm import AgentClient

ROLES = ("planner", "generator", "validator", "fixer")


class FakeBackend:
    """Answers each stage with a canned response picked by the prompt's ROLE line.

    A response may be a dict (sent as JSON), a string (sent as-is), an
    exception (raised) or a callable taking the user payload.
    """

    name = "fake"

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def complete(self, system_prompt, user_message, model, max_tokens, temperature):
        role = next(r for r in ROLES if f"ROLE: {r.upper()}" in system_prompt)
        self.calls.append({
            "role": role,
            "model": model,
            "max_tokens": max_tokens,
            "payload": user_message,
            "system": system_prompt,
        })
        response = self.responses[role]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(user_message)
        if isinstance(response, (dict, list)):
            return json.dumps(response)
        return response

    def roles(self):
        return [c["role"] for c in self.calls]

    def call_for(self, role):
        return next(c for c in self.calls if c["role"] == role)


@pytest.fixture
def settings():
    return Settings(api_key="test-key")


@pytest.fixture
def ledger():
    return InMemoryCreditLedger(default_balance=5)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def client_for_agents(backend, settings):
    return AgentClient(backend=backend, settings=settings)


@pytest.fixture
def orchestrator(ledger, client_for_agents, settings):
    return Orchestrator(ledger=ledger, client=client_for_agents, settings=settings)
