"""Classify the biometric hardware a device exposes.

Platforms report biometric features inconsistently across OS versions. The
device probe (see :mod:`bioprompt.android`) hides the per-version queries and
returns a :class:`HardwareReport`; this module turns that report into a single
:class:`Capability` through the :data:`PRECEDENCE` table and memoizes the
result per device for the lifetime of the process.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Hashable, Optional, Protocol

_logger = logging.getLogger(__name__)


class Capability(str, Enum):
    """Type of biometric authentication available on a device."""

    NONE = "none"
    FACE = "face"
    FINGERPRINT = "fingerprint"
    IRIS = "iris"
    MULTIPLE = "multiple"
    # A biometric class this package does not know yet, e.g. an older release
    # running on newer hardware.
    UNKNOWN = "unknown"

    @property
    def available(self) -> bool:
        return self is not Capability.NONE


class BiometricKind(str, Enum):
    FINGERPRINT = "fingerprint"
    FACE = "face"
    IRIS = "iris"


# Platform feature names understood by the classifier.
KIND_BY_FEATURE: Dict[str, BiometricKind] = {
    "android.hardware.fingerprint": BiometricKind.FINGERPRINT,
    "android.hardware.biometrics.face": BiometricKind.FACE,
    "android.hardware.biometrics.iris": BiometricKind.IRIS,
}

# Available kinds -> capability. Any set of two or more kinds is MULTIPLE and
# is resolved in classify() rather than enumerated here.
PRECEDENCE: Dict[FrozenSet[BiometricKind], Capability] = {
    frozenset(): Capability.NONE,
    frozenset({BiometricKind.FINGERPRINT}): Capability.FINGERPRINT,
    frozenset({BiometricKind.FACE}): Capability.FACE,
    frozenset({BiometricKind.IRIS}): Capability.IRIS,
}


@dataclass(frozen=True)
class HardwareReport:
    """Raw biometric features reported by a device probe."""

    fingerprint: bool = False
    face: bool = False
    iris: bool = False
    unrecognized: FrozenSet[str] = field(default_factory=frozenset)
    api_level: int = 0

    @classmethod
    def from_features(cls, features, *, api_level: int = 0) -> "HardwareReport":
        """Build a report from platform feature names."""

        kinds = set()
        unrecognized = set()
        for feature in features:
            kind = KIND_BY_FEATURE.get(feature)
            if kind is None:
                unrecognized.add(feature)
            else:
                kinds.add(kind)
        return cls(
            fingerprint=BiometricKind.FINGERPRINT in kinds,
            face=BiometricKind.FACE in kinds,
            iris=BiometricKind.IRIS in kinds,
            unrecognized=frozenset(unrecognized),
            api_level=api_level,
        )

    @property
    def kinds(self) -> FrozenSet[BiometricKind]:
        flags = (
            (BiometricKind.FINGERPRINT, self.fingerprint),
            (BiometricKind.FACE, self.face),
            (BiometricKind.IRIS, self.iris),
        )
        return frozenset(kind for kind, present in flags if present)


class DeviceContext(Protocol):
    """What the detector needs from a device."""

    @property
    def device_id(self) -> Hashable: ...

    def probe_hardware(self) -> HardwareReport: ...

    def is_securely_enrolled(self) -> bool: ...


def classify(report: HardwareReport) -> Capability:
    """Map *report* to a capability using :data:`PRECEDENCE`.

    Known kinds win over unrecognized classes: a device reporting a fingerprint
    reader and an unmapped feature is ``FINGERPRINT``. ``UNKNOWN`` is returned
    only when the platform reports biometrics none of which are mapped.
    """

    kinds = report.kinds
    capability = PRECEDENCE.get(kinds)
    if capability is None:
        return Capability.MULTIPLE
    if capability is Capability.NONE and report.unrecognized:
        return Capability.UNKNOWN
    return capability


class CapabilityCache:
    """Process-wide capability store, written once per device.

    Hardware is assumed not to change while the process lives, so the first
    detection for a ``device_id`` is kept until :meth:`reset` is called or the
    process restarts. Writers are serialised so the probe runs at most once
    per key even when several threads detect concurrently.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: Dict[Hashable, Capability] = {}

    def get(self, key: Hashable) -> Optional[Capability]:
        return self._values.get(key)

    def get_or_compute(self, key: Hashable, compute) -> Capability:
        value = self._values.get(key)
        if value is not None:
            return value
        with self._lock:
            value = self._values.get(key)
            if value is None:
                value = compute()
                self._values[key] = value
        return value

    def reset(self) -> None:
        """Forget every cached capability. Intended for tests."""

        with self._lock:
            self._values.clear()

    def __len__(self) -> int:
        return len(self._values)


class CapabilityDetector:
    """Detect and memoize the capability of devices."""

    def __init__(self, cache: CapabilityCache | None = None) -> None:
        self.cache = cache if cache is not None else CapabilityCache()

    def detect(self, device: DeviceContext) -> Capability:
        return self.cache.get_or_compute(device.device_id, lambda: self._probe(device))

    def can_securely_authenticate(self, device: DeviceContext) -> bool:
        """Whether *device* has biometrics enrolled in a secure class.

        Enrollment is queried on every call since the user may enroll or
        remove biometrics while the process runs.
        """

        if not self.detect(device).available:
            return False
        return bool(device.is_securely_enrolled())

    def reset(self) -> None:
        self.cache.reset()

    def _probe(self, device: DeviceContext) -> Capability:
        report = device.probe_hardware()
        capability = classify(report)
        _logger.debug(
            "Detected biometric capability %s for %r (api=%s, unrecognized=%s)",
            capability.value,
            device.device_id,
            report.api_level,
            sorted(report.unrecognized),
        )
        return capability


default_detector = CapabilityDetector()


__all__ = [
    "BiometricKind",
    "Capability",
    "CapabilityCache",
    "CapabilityDetector",
    "DeviceContext",
    "HardwareReport",
    "KIND_BY_FEATURE",
    "PRECEDENCE",
    "classify",
    "default_detector",
]
