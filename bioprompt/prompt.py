"""Drive one biometric authentication attempt to a single outcome."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol

from bioprompt.audit.logger import record_event
from bioprompt.capability import CapabilityDetector, DeviceContext, default_detector
from bioprompt.errors import InvalidTransition, PreconditionError
from bioprompt.focus import FocusHost, FocusWaiter, LoadingCallback
from bioprompt.policy import PromptPolicy, policy as default_policy
from bioprompt.results import (
    CallbackSink,
    Cancelled,
    Failure,
    Outcome,
    ResultTranslator,
    Success,
)

_logger = logging.getLogger(__name__)

HelpCallback = Callable[[str], None]
AuditFn = Callable[..., Any]


@dataclass(frozen=True)
class AuthenticationRequest:
    """Prompt text plus the crypto object to unlock."""

    title: str
    subtitle: Optional[str] = None
    description: Optional[str] = None
    negative_button_text: str = "Cancel"
    crypto_object: Any = None
    confirmation_required: bool = True
    device_credential_allowed: bool = False


class PromptHandle(Protocol):
    def cancel(self) -> None: ...


class AuthenticationPrimitive(Protocol):
    """Platform prompt that reports back through a :class:`CallbackSink`."""

    def authenticate(self, request: AuthenticationRequest, sink: CallbackSink) -> Optional[PromptHandle]: ...


class Phase(str, Enum):
    IDLE = "idle"
    WAITING_FOR_FOCUS = "waiting_for_focus"
    INVOKING = "invoking"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_PHASES = frozenset({Phase.SUCCEEDED, Phase.FAILED, Phase.CANCELLED})

_TRANSITIONS = {
    Phase.IDLE: frozenset({Phase.WAITING_FOR_FOCUS, Phase.CANCELLED}),
    Phase.WAITING_FOR_FOCUS: frozenset({Phase.INVOKING, Phase.CANCELLED}),
    Phase.INVOKING: TERMINAL_PHASES,
}


def _phase_for(outcome: Outcome) -> Phase:
    if isinstance(outcome, Success):
        return Phase.SUCCEEDED
    if isinstance(outcome, Failure):
        return Phase.FAILED
    return Phase.CANCELLED


class AttemptState:
    """Phase, cancellation flag and result slot of one attempt."""

    def __init__(self) -> None:
        self.phase = Phase.IDLE
        self.cancel_requested = False
        self.outcome: Optional[Outcome] = None

    @property
    def terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    def advance(self, phase: Phase) -> None:
        if phase not in _TRANSITIONS.get(self.phase, ()):
            raise InvalidTransition(f"cannot move attempt from {self.phase.value} to {phase.value}")
        self.phase = phase

    def finish(self, outcome: Outcome) -> Outcome:
        self.advance(_phase_for(outcome))
        self.outcome = outcome
        return outcome


class Attempt:
    """Handle on an in-flight attempt; ``await`` it for the outcome.

    Must be used from the event loop thread that started it.
    """

    def __init__(self, state: AttemptState) -> None:
        self.state = state
        self._cancel_event = asyncio.Event()
        self._handle: Optional[PromptHandle] = None
        self._sink: Optional[CallbackSink] = None
        self._task: Optional["asyncio.Task[Outcome]"] = None

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def cancel_requested(self) -> bool:
        return self.state.cancel_requested

    @property
    def outcome(self) -> Optional[Outcome]:
        return self.state.outcome

    def cancel(self) -> bool:
        """Request cancellation; returns ``False`` once the attempt is over.

        While waiting for focus the wait is abandoned and the primitive is
        never invoked. Once the prompt is up the primitive is asked to cancel
        and the attempt finishes when it calls back. A primitive that handed
        back no handle cannot be cancelled, so the attempt finishes as
        cancelled right away and its later callback is dropped.
        """

        if self.state.terminal:
            return False
        if self.state.cancel_requested:
            return True
        self.state.cancel_requested = True
        self._cancel_event.set()
        if self._handle is not None:
            _logger.debug("Cancelling biometric prompt")
            self._handle.cancel()
        elif self._sink is not None:
            self._sink.on_cancel()
        return True

    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def __await__(self):
        return self._task.__await__()


class PromptCoordinator:
    """Orchestrate focus wait, primitive invocation and result translation."""

    def __init__(
        self,
        primitive: AuthenticationPrimitive,
        device: DeviceContext,
        *,
        detector: CapabilityDetector | None = None,
        focus_waiter: FocusWaiter | None = None,
        translator: ResultTranslator | None = None,
        policy: PromptPolicy | None = None,
        audit: AuditFn | None = None,
    ) -> None:
        self.policy = policy or default_policy
        self.primitive = primitive
        self.device = device
        self.detector = detector or default_detector
        self.focus_waiter = focus_waiter or FocusWaiter(self.policy)
        self.translator = translator or ResultTranslator()
        if audit is None and self.policy.audit_enabled:
            audit = record_event
        self._audit = audit

    def start(
        self,
        host: FocusHost,
        request: AuthenticationRequest,
        on_loading_change: Optional[LoadingCallback] = None,
        *,
        on_help: Optional[HelpCallback] = None,
    ) -> Attempt:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise PreconditionError("authenticate() must run on the UI event loop") from exc
        capability = self.detector.detect(self.device)
        if not capability.available:
            raise PreconditionError("no biometric hardware available; check the capability first")

        attempt = Attempt(AttemptState())
        attempt._task = loop.create_task(
            self._run(attempt, host, request, on_loading_change, on_help, capability.value)
        )
        return attempt

    async def authenticate(
        self,
        host: FocusHost,
        request: AuthenticationRequest,
        on_loading_change: Optional[LoadingCallback] = None,
        *,
        on_help: Optional[HelpCallback] = None,
    ) -> Outcome:
        attempt = self.start(host, request, on_loading_change, on_help=on_help)
        return await attempt

    async def _run(
        self,
        attempt: Attempt,
        host: FocusHost,
        request: AuthenticationRequest,
        on_loading_change: Optional[LoadingCallback],
        on_help: Optional[HelpCallback],
        capability: str,
    ) -> Outcome:
        state = attempt.state
        self._record("biometric.attempt.started", {"capability": capability, "api_level": host.api_level})
        state.advance(Phase.WAITING_FOR_FOCUS)
        try:
            focused = await self.focus_waiter.await_focus(
                host, on_loading_change, cancel_event=attempt._cancel_event
            )
        except asyncio.CancelledError:
            self._finish(state, Cancelled("task cancelled while waiting for focus"))
            raise
        if not focused or state.cancel_requested:
            return self._finish(state, Cancelled("cancelled while waiting for focus"))

        state.advance(Phase.INVOKING)
        loop = asyncio.get_running_loop()
        future: "asyncio.Future[Outcome]" = loop.create_future()
        sink = CallbackSink(loop, future, self.translator, on_help=on_help)
        attempt._sink = sink
        try:
            attempt._handle = self.primitive.authenticate(request, sink)
        except Exception as exc:
            _logger.warning("Biometric prompt could not be shown: %s", exc)
            sink.fail(exc)

        try:
            outcome = await future
        except asyncio.CancelledError:
            if attempt._handle is not None:
                attempt._handle.cancel()
            self._finish(state, Cancelled("task cancelled while prompting"))
            raise
        if state.cancel_requested and isinstance(outcome, Success):
            outcome = Cancelled("cancelled while prompting")
        return self._finish(state, outcome)

    def _finish(self, state: AttemptState, outcome: Outcome) -> Outcome:
        state.finish(outcome)
        details: Dict[str, Any] = {}
        if isinstance(outcome, Failure):
            details = {"kind": outcome.kind.value, "should_show": outcome.should_show, "code": outcome.code}
        elif isinstance(outcome, Cancelled):
            details = {"reason": outcome.reason}
        self._record(f"biometric.attempt.{state.phase.value}", details)
        return outcome

    def _record(self, event: str, details: Dict[str, Any]) -> None:
        _logger.info("%s %s", event, details)
        if self._audit is None:
            return
        try:
            self._audit(event, details=details)
        except Exception:
            _logger.warning("Audit event %s not recorded", event, exc_info=True)


__all__ = [
    "Attempt",
    "AttemptState",
    "AuthenticationPrimitive",
    "AuthenticationRequest",
    "Phase",
    "PromptCoordinator",
    "PromptHandle",
]
