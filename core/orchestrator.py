"""Main pipeline orchestrator — plan → generate → validate → (fix) as an event stream.

One turn is a strictly forward walk through the phases. Every transition is
yielded as an event the moment it happens; the stream always ends with a
DoneEvent, whatever the outcome.
"""

import logging
import threading
import time

from agents.fixer import FixerAgent, merge_files
from agents.generator import GeneratorAgent
from agents.planner import PlannerAgent
from agents.validator import ValidatorAgent
from config.settings import get_settings
from core.credits import InMemoryCreditLedger
from core.events import (
    CancelledEvent,
    DoneEvent,
    FileGeneratedEvent,
    Phase,
    PhaseEvent,
    PlanEvent,
    ResultEvent,
    ValidationEvent,
)
from core.quality import fixer_required, unresolved_as_warnings
from core.schemas import TurnRequest
from core.state import TurnOutcome, TurnState
from manager.classifier import select_generator_model
from utils.llm import AgentCallFailed, AgentClient, AgentError

logger = logging.getLogger(__name__)

GENERIC_APOLOGY = (
    "Sorry, something went wrong while working on your request. "
    "Nothing was changed in your project. Please try again."
)
CLARIFY_FALLBACK = "I'm not sure I understand what to change. Could you rephrase?"


class TurnCancelled(Exception):
    """The caller aborted the turn."""


class Orchestrator:
    """Runs one user turn through Planner → Generator → Validator → Fixer.

    The orchestrator never touches the caller's file store; the files it
    delivers in the result event are applied by the caller as one patch.
    It is the only component that deducts credits, once, on completion.
    """

    def __init__(self, ledger=None, client=None, settings=None):
        self.settings = settings or get_settings()
        self.ledger = ledger or InMemoryCreditLedger(
            default_balance=self.settings.starting_credits,
        )
        client = client or AgentClient(settings=self.settings)
        self.planner = PlannerAgent(client, self.settings)
        self.generator = GeneratorAgent(client, self.settings)
        self.validator = ValidatorAgent(client, self.settings)
        self.fixer = FixerAgent(client, self.settings)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create_state(self, request, user_id):
        """Validate the request and build the turn state.

        Raises pydantic.ValidationError for malformed requests, before any
        event is produced.
        """
        if not isinstance(request, TurnRequest):
            request = TurnRequest.model_validate(request)
        return TurnState(user_id=user_id, request=request)

    def run_turn(self, request, user_id, cancel=None, state=None):
        """Return the event iterator for one turn.

        Args:
            request: TurnRequest or its dict form.
            user_id: Whose credits pay for the turn.
            cancel: threading.Event; once set, no further stage is called.
            state: Pre-built TurnState (to inspect the outcome afterwards).
        """
        state = state or self.create_state(request, user_id)
        return self._stream(state, cancel or threading.Event())

    def collect(self, request, user_id, cancel=None):
        """Run a turn to the end and return (state, events)."""
        state = self.create_state(request, user_id)
        events = list(self.run_turn(state.request, user_id, cancel, state=state))
        return state, events

    def plan(self, request):
        """Planner only: no events, no credits."""
        state = self.create_state(request, "dry-run")
        return self.planner.run(
            self.settings.model_for("fast"),
            self.settings.max_tokens_for("fast"),
            request=state.request,
            project_context=state.request.projectContext,
            file_tree=state.request.fileTree,
        )

    # ------------------------------------------------------------------
    # Stream
    # ------------------------------------------------------------------

    def _stream(self, state, cancel):
        started = time.monotonic()
        pipeline = self._pipeline(state, cancel)
        try:
            for event in pipeline:
                if isinstance(event, PhaseEvent):
                    state.phases.append(event.phase)
                yield event
        except TurnCancelled:
            state.outcome = TurnOutcome.CANCELLED
            logger.info("Turn for %s cancelled (charged=%s)", state.user_id, state.charged)
            yield CancelledEvent()
        except GeneratorExit:
            # consumer went away; nothing more may run
            if not state.finished:
                state.outcome = TurnOutcome.CANCELLED
                logger.info("Turn for %s abandoned by the consumer", state.user_id)
            raise
        except Exception as e:
            logger.exception("Orchestrator pipeline error")
            if not state.finished:
                for event in self._fail(state, "internal", e):
                    yield event
        finally:
            pipeline.close()
            logger.info(
                "Turn for %s finished: %s in %.2fs (phases=%s, fixer_calls=%d, charged=%s)",
                state.user_id, state.outcome and state.outcome.value,
                time.monotonic() - started, [p.value for p in state.phases],
                state.fixer_calls, state.charged,
            )
        yield DoneEvent()

    def _pipeline(self, state, cancel):
        request = state.request
        fast_model = self.settings.model_for("fast")
        fast_tokens = self.settings.max_tokens_for("fast")

        # --- Credits ---
        balance = self.ledger.get_balance(state.user_id)
        if balance < self.settings.credit_cost:
            yield from self._fail(state, "credits", None, message="Not enough credits.")
            return

        # --- Planner ---
        yield PhaseEvent(Phase.PLANNING, "Analyzing your request…")
        self._checkpoint(cancel)
        try:
            plan = self.planner.run(
                fast_model, fast_tokens,
                request=request,
                project_context=request.projectContext,
                file_tree=request.fileTree,
            )
        except AgentError as e:
            yield from self._fail(state, "planner", e)
            return
        state.plan = plan
        yield PlanEvent(plan)

        if plan.conversational:
            self._checkpoint(cancel)
            self._charge(state)
            state.outcome = TurnOutcome.COMPLETED
            yield ResultEvent(conversational=True, reply=plan.reply)
            return

        if plan.needs_clarification:
            state.outcome = TurnOutcome.CLARIFICATION
            if plan.clarification_needed and plan.clarification_question:
                reply = plan.clarification_question
            else:
                reply = plan.reply or CLARIFY_FALLBACK
            yield ResultEvent(conversational=True, reply=reply)
            return

        # --- Generator ---
        model, max_tokens, complexity = select_generator_model(
            request.user_prompt, plan.steps, self.settings,
        )
        state.model, state.complexity = model, complexity
        self._checkpoint(cancel)
        mode = "advanced mode" if complexity == "complex" else "fast mode"
        yield PhaseEvent(Phase.GENERATING, f"Building your application ({mode})…")
        try:
            generated = self.generator.run(
                model, max_tokens,
                plan=plan,
                project_context=request.projectContext,
                file_tree=request.fileTree,
            )
        except AgentError as e:
            yield from self._fail(state, "generator", e)
            return
        state.generated = list(generated.files)
        for f in generated.files:
            yield FileGeneratedEvent(f.path, f.lines_count)

        # --- Validator ---
        self._checkpoint(cancel)
        yield PhaseEvent(Phase.VALIDATING, "Validating generated code…")
        try:
            validation = self.validator.run(
                fast_model, fast_tokens, files=generated.files, plan=plan,
            )
        except AgentError as e:
            logger.warning("Validation skipped, delivering unvalidated files: %s", e)
            state.validation_skipped = True
            yield ValidationEvent(skipped=True)
            validation = None
        else:
            state.validation = validation
            yield ValidationEvent(validation.errors, validation.warnings)

        files = list(generated.files)
        warnings = list(validation.warnings) if validation else []

        # --- Fixer (at most once) ---
        if validation is not None and fixer_required(validation):
            self._checkpoint(cancel)
            yield PhaseEvent(
                Phase.FIXING, f"Auto-fixing {len(validation.errors)} error(s)…",
            )
            state.fixer_calls += 1
            try:
                fixes = self.fixer.run(
                    model, max_tokens,
                    errors=validation.errors, files=files, intent=plan.intent,
                )
            except AgentError as e:
                logger.warning("Fixer failed, delivering files with unresolved errors: %s", e)
                warnings.extend(unresolved_as_warnings(validation.errors))
            else:
                for f in fixes.files:
                    yield FileGeneratedEvent(f.path, f.lines_count)
                files = merge_files(files, fixes.files)

        # --- Complete ---
        self._checkpoint(cancel)
        self._charge(state)
        state.files, state.warnings = files, warnings
        state.outcome = TurnOutcome.COMPLETED
        yield PhaseEvent(Phase.COMPLETE, "Code ready!")
        yield ResultEvent(
            conversational=False,
            intent=plan.intent,
            files=files,
            deleted_files=plan.deleted_paths(),
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _checkpoint(self, cancel):
        if cancel.is_set():
            raise TurnCancelled()

    def _charge(self, state):
        """Deduct the turn cost exactly once."""
        if state.charged:
            return
        try:
            self.ledger.deduct(state.user_id, self.settings.credit_cost, "Orchestrator pipeline")
        except Exception:
            logger.exception("Failed to deduct credit for %s", state.user_id)
            return
        state.charged = True

    def _fail(self, state, stage, exc, message=None):
        """Fatal-for-turn: error phase, apology result, nothing charged."""
        state.outcome = TurnOutcome.ERROR
        state.error = str(exc) if exc else (message or stage)
        if exc is not None:
            logger.error("Turn for %s failed in %s: %r", state.user_id, stage, exc)
        yield PhaseEvent(Phase.ERROR, message or _user_message(stage, exc))
        yield ResultEvent(conversational=True, reply=GENERIC_APOLOGY)


def _user_message(stage, exc):
    if isinstance(exc, AgentCallFailed):
        if exc.status_code == 429:
            return "The AI service is busy (rate limited). Please try again shortly."
        if exc.status_code == 402:
            return "The AI service quota is exhausted."
    if stage == "internal":
        return "Internal pipeline error."
    return f"The {stage} step failed."
