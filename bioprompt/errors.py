"""Exceptions raised by the biometric prompt flow."""
from __future__ import annotations

from typing import Optional


class BioPromptError(RuntimeError):
    """Base class for errors raised by :mod:`bioprompt`."""


class PreconditionError(BioPromptError):
    """Raised when the prompt flow is used outside its contract.

    Examples are calling :func:`bioprompt.authenticate` without a running event
    loop or on a device whose capability is ``Capability.NONE``. These are
    programmer errors and are never reported as an outcome.
    """


class InvalidTransition(BioPromptError):
    """Raised when an attempt is moved out of a terminal or unexpected phase."""


class BiometricError(BioPromptError):
    """Raised by ``Failure.unwrap()``.

    ``should_show`` tells the caller whether the condition warrants a visible
    error message or should be swallowed silently.
    """

    def __init__(self, kind, should_show: bool, code: Optional[int] = None, message: str = "") -> None:
        super().__init__(message or str(kind))
        self.kind = kind
        self.should_show = should_show
        self.code = code


class AttemptCancelledError(BioPromptError):
    """Raised by ``Cancelled.unwrap()``."""


__all__ = [
    "AttemptCancelledError",
    "BioPromptError",
    "BiometricError",
    "InvalidTransition",
    "PreconditionError",
]
