"""Centralised prompt policy configuration.

The policy aggregates the tunables shared by the focus waiter, the result
translator and the audit trail. Values can be overridden by environment
variables which keeps the behaviour adjustable per device fleet without
requiring code changes.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import FrozenSet


def _load_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _load_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() not in ("0", "false", "no", "off", "")


def _load_int_set(name: str, default: FrozenSet[int]) -> FrozenSet[int]:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return frozenset(int(item) for item in value.split(",") if item.strip())
    except ValueError:
        return default


@dataclass(frozen=True)
class PromptPolicy:
    """Holds runtime tunables for the biometric prompt flow."""

    # API 28 renders the system prompt late, callers get a loading signal there.
    loading_api_levels: FrozenSet[int] = frozenset({28})
    loading_delay: float = 0.0
    silent_error_codes: FrozenSet[int] = field(default_factory=frozenset)
    shown_error_codes: FrozenSet[int] = field(default_factory=frozenset)
    audit_enabled: bool = False


def load_policy() -> PromptPolicy:
    """Load the prompt policy considering environment overrides."""

    return PromptPolicy(
        loading_api_levels=_load_int_set("BIOPROMPT_LOADING_API_LEVELS", frozenset({28})),
        loading_delay=max(0.0, _load_float("BIOPROMPT_LOADING_DELAY", 0.0)),
        silent_error_codes=_load_int_set("BIOPROMPT_SILENT_ERROR_CODES", frozenset()),
        shown_error_codes=_load_int_set("BIOPROMPT_SHOWN_ERROR_CODES", frozenset()),
        audit_enabled=_load_bool("BIOPROMPT_AUDIT", False),
    )


policy = load_policy()


__all__ = ["PromptPolicy", "policy", "load_policy"]
