"""Biometric capability detection and a focus-aware authentication prompt.

::

    capability = bioprompt.detect_capability(device)
    if capability.available:
        outcome = await bioprompt.authenticate(
            host, request, primitive, device, on_loading_change=spinner.set_visible
        )
        try:
            crypto_object = outcome.unwrap()
        except bioprompt.BiometricError as exc:
            if exc.should_show:
                show_error(exc)
"""
from __future__ import annotations

from typing import Optional

from bioprompt.capability import (
    Capability,
    CapabilityDetector,
    DeviceContext,
    HardwareReport,
    default_detector,
)
from bioprompt.errors import (
    AttemptCancelledError,
    BioPromptError,
    BiometricError,
    InvalidTransition,
    PreconditionError,
)
from bioprompt.focus import FocusHost, FocusWaiter, LoadingCallback
from bioprompt.prompt import (
    Attempt,
    AuthenticationPrimitive,
    AuthenticationRequest,
    Phase,
    PromptCoordinator,
)
from bioprompt.results import (
    CallbackSink,
    Cancelled,
    ErrorKind,
    ErrorPolicy,
    Failure,
    Outcome,
    ResultTranslator,
    Success,
)


def detect_capability(device: DeviceContext) -> Capability:
    """Return the cached capability of *device*, probing it on first use."""

    return default_detector.detect(device)


def can_securely_authenticate(device: DeviceContext) -> bool:
    return default_detector.can_securely_authenticate(device)


async def authenticate(
    host: FocusHost,
    request: AuthenticationRequest,
    primitive: AuthenticationPrimitive,
    device: DeviceContext,
    on_loading_change: Optional[LoadingCallback] = None,
) -> Outcome:
    """Run one attempt with the default detector and policy."""

    coordinator = PromptCoordinator(primitive, device)
    return await coordinator.authenticate(host, request, on_loading_change)


__all__ = [
    "Attempt",
    "AttemptCancelledError",
    "AuthenticationPrimitive",
    "AuthenticationRequest",
    "BioPromptError",
    "BiometricError",
    "CallbackSink",
    "Cancelled",
    "Capability",
    "CapabilityDetector",
    "DeviceContext",
    "ErrorKind",
    "ErrorPolicy",
    "Failure",
    "FocusHost",
    "FocusWaiter",
    "HardwareReport",
    "InvalidTransition",
    "Outcome",
    "Phase",
    "PreconditionError",
    "PromptCoordinator",
    "ResultTranslator",
    "Success",
    "authenticate",
    "can_securely_authenticate",
    "detect_capability",
]
