"""Kivy window as a focus host."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from bioprompt.android import sdk_int

_logger = logging.getLogger(__name__)


class KivyWindowHost:
    """Expose ``kivy.core.window.Window.focus`` to the focus waiter.

    Kivy dispatches property changes on its main thread; the waiter marshals
    them onto the asyncio loop, so the two may differ.
    """

    def __init__(self, window: Any = None, *, api_level: Optional[int] = None) -> None:
        if window is None:
            # Late import, creating the Kivy window has side effects.
            from kivy.core.window import Window

            window = Window
        self.window = window
        self.api_level = sdk_int() if api_level is None else api_level
        self._bindings: Dict[Callable[[bool], None], Callable[[Any, bool], None]] = {}

    def has_focus(self) -> bool:
        return bool(getattr(self.window, "focus", True))

    def add_focus_listener(self, listener: Callable[[bool], None]) -> None:
        def _on_focus(_window, focused):
            listener(bool(focused))

        self._bindings[listener] = _on_focus
        self.window.bind(focus=_on_focus)

    def remove_focus_listener(self, listener: Callable[[bool], None]) -> None:
        binding = self._bindings.pop(listener, None)
        if binding is None:
            _logger.debug("Focus listener %r was not registered", listener)
            return
        self.window.unbind(focus=binding)


__all__ = ["KivyWindowHost"]
