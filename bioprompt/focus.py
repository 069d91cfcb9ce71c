"""Wait for the host window to own input focus before prompting.

Some Android releases silently drop the biometric prompt when it is requested
while the host window is unfocused (e.g. right after returning from another
app). The waiter suspends until focus is back and, on releases where the prompt
is known to appear late, drives a loading indicator for the duration.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Protocol

from bioprompt.policy import PromptPolicy, policy as default_policy

_logger = logging.getLogger(__name__)

LoadingCallback = Callable[[bool], None]
FocusListener = Callable[[bool], None]


class FocusHost(Protocol):
    """Host UI as seen by the waiter.

    Listeners receive the new focus state and may be called from any thread.
    """

    api_level: int

    def has_focus(self) -> bool: ...

    def add_focus_listener(self, listener: FocusListener) -> None: ...

    def remove_focus_listener(self, listener: FocusListener) -> None: ...


class FocusWaiter:
    """Suspend until a :class:`FocusHost` has focus."""

    def __init__(self, policy: PromptPolicy | None = None) -> None:
        self.policy = policy or default_policy

    def shows_loading(self, api_level: int) -> bool:
        return api_level in self.policy.loading_api_levels

    async def await_focus(
        self,
        host: FocusHost,
        on_loading_change: Optional[LoadingCallback] = None,
        *,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> bool:
        """Return once *host* has focus.

        Returns ``True`` when focus is held and ``False`` when the wait was
        abandoned through *cancel_event*. If ``on_loading_change(True)`` was
        sent it is always followed by exactly one ``on_loading_change(False)``
        before this coroutine returns or raises, cancellation included.
        """

        if host.has_focus():
            return True

        loop = asyncio.get_running_loop()
        gained = asyncio.Event()

        def _listener(focused: bool) -> None:
            if focused:
                loop.call_soon_threadsafe(gained.set)

        host.add_focus_listener(_listener)
        waiters = [asyncio.ensure_future(gained.wait())]
        if cancel_event is not None:
            waiters.append(asyncio.ensure_future(cancel_event.wait()))
        loading = False
        try:
            # Focus may have arrived between the first check and subscribing.
            if host.has_focus():
                return True
            if on_loading_change is not None and self.shows_loading(host.api_level):
                if self.policy.loading_delay > 0:
                    await asyncio.wait(
                        waiters,
                        timeout=self.policy.loading_delay,
                        return_when=asyncio.FIRST_COMPLETED,
                    )
                if not any(waiter.done() for waiter in waiters):
                    _logger.debug("Host unfocused on api %s, showing loading", host.api_level)
                    loading = True
                    on_loading_change(True)
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
            if cancel_event is not None and cancel_event.is_set():
                _logger.debug("Focus wait abandoned")
                return False
            return True
        finally:
            for waiter in waiters:
                waiter.cancel()
            host.remove_focus_listener(_listener)
            if loading:
                on_loading_change(False)


__all__ = ["FocusHost", "FocusWaiter", "LoadingCallback"]
