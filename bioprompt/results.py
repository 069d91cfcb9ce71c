"""Translate authentication primitive callbacks into a single outcome.

The primitive reports through four callbacks: success with the unlocked
crypto object, error with a platform code, cancellation and non-terminal help
messages. :class:`CallbackSink` is what gets handed to the primitive; it
resolves an ``asyncio`` future exactly once on the event loop thread, whatever
thread the primitive calls back on.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from bioprompt.errors import AttemptCancelledError, BiometricError
from bioprompt.policy import PromptPolicy, policy as default_policy

_logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    HW_UNAVAILABLE = "hw_unavailable"
    UNABLE_TO_PROCESS = "unable_to_process"
    TIMEOUT = "timeout"
    NO_SPACE = "no_space"
    CANCELED = "canceled"
    LOCKOUT = "lockout"
    VENDOR = "vendor"
    LOCKOUT_PERMANENT = "lockout_permanent"
    USER_CANCELED = "user_canceled"
    NO_BIOMETRICS = "no_biometrics"
    HW_NOT_PRESENT = "hw_not_present"
    NEGATIVE_BUTTON = "negative_button"
    NO_DEVICE_CREDENTIAL = "no_device_credential"
    SECURITY_UPDATE_REQUIRED = "security_update_required"
    UNKNOWN = "unknown"


# androidx.biometric.BiometricPrompt.ERROR_* codes.
ERROR_HW_UNAVAILABLE = 1
ERROR_UNABLE_TO_PROCESS = 2
ERROR_TIMEOUT = 3
ERROR_NO_SPACE = 4
ERROR_CANCELED = 5
ERROR_LOCKOUT = 7
ERROR_VENDOR = 8
ERROR_LOCKOUT_PERMANENT = 9
ERROR_USER_CANCELED = 10
ERROR_NO_BIOMETRICS = 11
ERROR_HW_NOT_PRESENT = 12
ERROR_NEGATIVE_BUTTON = 13
ERROR_NO_DEVICE_CREDENTIAL = 14
ERROR_SECURITY_UPDATE_REQUIRED = 15

# code -> (kind, should_show). Expected interactions (cancel, dismissal,
# timeout, temporary lockout) stay silent.
DEFAULT_ERROR_TABLE: Dict[int, Tuple[ErrorKind, bool]] = {
    ERROR_HW_UNAVAILABLE: (ErrorKind.HW_UNAVAILABLE, True),
    ERROR_UNABLE_TO_PROCESS: (ErrorKind.UNABLE_TO_PROCESS, True),
    ERROR_TIMEOUT: (ErrorKind.TIMEOUT, False),
    ERROR_NO_SPACE: (ErrorKind.NO_SPACE, True),
    ERROR_CANCELED: (ErrorKind.CANCELED, False),
    ERROR_LOCKOUT: (ErrorKind.LOCKOUT, False),
    ERROR_VENDOR: (ErrorKind.VENDOR, True),
    ERROR_LOCKOUT_PERMANENT: (ErrorKind.LOCKOUT_PERMANENT, True),
    ERROR_USER_CANCELED: (ErrorKind.USER_CANCELED, False),
    ERROR_NO_BIOMETRICS: (ErrorKind.NO_BIOMETRICS, True),
    ERROR_HW_NOT_PRESENT: (ErrorKind.HW_NOT_PRESENT, True),
    ERROR_NEGATIVE_BUTTON: (ErrorKind.NEGATIVE_BUTTON, False),
    ERROR_NO_DEVICE_CREDENTIAL: (ErrorKind.NO_DEVICE_CREDENTIAL, True),
    ERROR_SECURITY_UPDATE_REQUIRED: (ErrorKind.SECURITY_UPDATE_REQUIRED, True),
}


@dataclass(frozen=True)
class Success:
    token: Any = None

    def unwrap(self) -> Any:
        return self.token


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    should_show: bool
    code: Optional[int] = None
    message: str = ""

    def unwrap(self) -> Any:
        raise BiometricError(self.kind, self.should_show, self.code, self.message)


@dataclass(frozen=True)
class Cancelled:
    reason: str = "cancelled"

    def unwrap(self) -> Any:
        raise AttemptCancelledError(self.reason)


Outcome = Union[Success, Failure, Cancelled]


class ErrorPolicy:
    """Classify platform error codes.

    The table is policy rather than mechanism: vendors add codes, so unknown
    codes are treated as user-facing and callers may extend or override the
    mapping with :meth:`with_overrides`.
    """

    def __init__(
        self,
        table: Mapping[int, Tuple[ErrorKind, bool]] | None = None,
        *,
        silent_codes=(),
        shown_codes=(),
    ) -> None:
        self._table: Dict[int, Tuple[ErrorKind, bool]] = dict(
            DEFAULT_ERROR_TABLE if table is None else table
        )
        for code in silent_codes:
            kind, _ = self._table.get(code, (ErrorKind.UNKNOWN, True))
            self._table[code] = (kind, False)
        for code in shown_codes:
            kind, _ = self._table.get(code, (ErrorKind.UNKNOWN, True))
            self._table[code] = (kind, True)

    @classmethod
    def from_policy(cls, policy: PromptPolicy | None = None) -> "ErrorPolicy":
        policy = policy or default_policy
        return cls(silent_codes=policy.silent_error_codes, shown_codes=policy.shown_error_codes)

    def with_overrides(self, overrides: Mapping[int, Tuple[ErrorKind, bool]]) -> "ErrorPolicy":
        table = dict(self._table)
        table.update(overrides)
        return ErrorPolicy(table)

    def classify(self, code: int) -> Tuple[ErrorKind, bool]:
        return self._table.get(code, (ErrorKind.UNKNOWN, True))


class ResultTranslator:
    """Map the primitive's callback shapes onto :data:`Outcome` values."""

    def __init__(self, error_policy: ErrorPolicy | None = None) -> None:
        self.error_policy = error_policy or ErrorPolicy.from_policy()

    def success(self, token: Any) -> Success:
        return Success(token)

    def error(self, code: int, message: str = "") -> Failure:
        kind, should_show = self.error_policy.classify(code)
        return Failure(kind=kind, should_show=should_show, code=code, message=str(message or ""))

    def cancelled(self, reason: str = "cancelled") -> Cancelled:
        return Cancelled(reason)

    def exception(self, exc: BaseException) -> Failure:
        return Failure(kind=ErrorKind.UNKNOWN, should_show=True, message=str(exc))


class CallbackSink:
    """Callback target handed to the authentication primitive.

    Every callback is marshalled onto *loop*. The first terminal callback
    resolves *future*; later ones are logged and dropped. ``on_help`` is
    informational and only forwarded to *on_help*.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        future: "asyncio.Future[Outcome]",
        translator: ResultTranslator,
        *,
        on_help: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._loop = loop
        self._future = future
        self._translator = translator
        self._on_help = on_help

    def on_success(self, token: Any = None) -> None:
        self._dispatch(lambda: self._translator.success(token))

    def on_error(self, code: int, message: str = "") -> None:
        self._dispatch(lambda: self._translator.error(code, message))

    def on_cancel(self) -> None:
        self._dispatch(self._translator.cancelled)

    def on_help(self, message: str) -> None:
        if self._on_help is not None:
            self._loop.call_soon_threadsafe(self._on_help, str(message))

    def fail(self, exc: BaseException) -> None:
        """Convert an exception raised by the primitive into a failure."""

        self._dispatch(lambda: self._translator.exception(exc))

    def _dispatch(self, build: Callable[[], Outcome]) -> None:
        self._loop.call_soon_threadsafe(self._resolve, build)

    def _resolve(self, build: Callable[[], Outcome]) -> None:
        outcome = build()
        if self._future.cancelled():
            _logger.debug("Attempt already cancelled, dropping %r", outcome)
            return
        if self._future.done():
            _logger.warning("Ignoring duplicate authentication result %r", outcome)
            return
        self._future.set_result(outcome)


__all__ = [
    "CallbackSink",
    "Cancelled",
    "DEFAULT_ERROR_TABLE",
    "ErrorKind",
    "ErrorPolicy",
    "Failure",
    "Outcome",
    "ResultTranslator",
    "Success",
]
