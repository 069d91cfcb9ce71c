"""Test configuration helpers."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_repo_root_on_path() -> None:
    root = Path(__file__).resolve().parent.parent
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


_ensure_repo_root_on_path()

from bioprompt.capability import HardwareReport, default_detector  # noqa: E402
from bioprompt.results import ERROR_CANCELED  # noqa: E402


class FakeDevice:
    def __init__(self, device_id="device", report=None, *, secure=True):
        self.device_id = device_id
        self.report = report if report is not None else HardwareReport(fingerprint=True)
        self.secure = secure
        self.probes = 0

    def probe_hardware(self):
        self.probes += 1
        return self.report

    def is_securely_enrolled(self):
        return self.secure


class FakeHost:
    def __init__(self, *, focused=True, api_level=28):
        self.focused = focused
        self.api_level = api_level
        self.listeners = []

    def has_focus(self):
        return self.focused

    def add_focus_listener(self, listener):
        self.listeners.append(listener)

    def remove_focus_listener(self, listener):
        self.listeners.remove(listener)

    def set_focus(self, focused):
        self.focused = focused
        for listener in list(self.listeners):
            listener(focused)


class FakeHandle:
    def __init__(self, primitive):
        self.primitive = primitive
        self.cancelled = 0

    def cancel(self):
        self.cancelled += 1
        if self.primitive.report_cancel:
            self.primitive.sink.on_error(ERROR_CANCELED, "Authentication canceled")


class FakePrimitive:
    """Records invocations; tests drive the sink by hand."""

    def __init__(self, *, report_cancel=True, raises=None, returns_handle=True):
        self.calls = []
        self.sink = None
        self.handle = None
        self.report_cancel = report_cancel
        self.raises = raises
        self.returns_handle = returns_handle

    def authenticate(self, request, sink):
        self.calls.append(request)
        self.sink = sink
        if self.raises is not None:
            raise self.raises
        if not self.returns_handle:
            return None
        self.handle = FakeHandle(self)
        return self.handle


@pytest.fixture
def make_device():
    return FakeDevice


@pytest.fixture
def make_host():
    return FakeHost


@pytest.fixture
def make_primitive():
    return FakePrimitive


@pytest.fixture(autouse=True)
def _isolate(monkeypatch, tmp_path):
    """Keep audit files in a temp dir and start with an empty capability cache."""

    monkeypatch.setenv("BIOPROMPT_AUDIT_DIR", str(tmp_path / "audit"))
    default_detector.reset()
    yield
    default_detector.reset()
