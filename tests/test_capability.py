import itertools
import threading

import pytest

from bioprompt.capability import (
    Capability,
    CapabilityCache,
    CapabilityDetector,
    HardwareReport,
    classify,
)


@pytest.mark.parametrize(
    "fingerprint,face,iris", list(itertools.product([False, True], repeat=3))
)
def test_classify_every_flag_combination(fingerprint, face, iris):
    report = HardwareReport(fingerprint=fingerprint, face=face, iris=iris)
    count = sum((fingerprint, face, iris))

    capability = classify(report)

    if count == 0:
        assert capability is Capability.NONE
    elif count == 1:
        expected = {
            (True, False, False): Capability.FINGERPRINT,
            (False, True, False): Capability.FACE,
            (False, False, True): Capability.IRIS,
        }[(fingerprint, face, iris)]
        assert capability is expected
    else:
        assert capability is Capability.MULTIPLE


def test_unrecognized_class_is_unknown():
    report = HardwareReport(unrecognized=frozenset({"android.hardware.biometrics.palm"}))
    assert classify(report) is Capability.UNKNOWN
    assert Capability.UNKNOWN.available


def test_known_kind_wins_over_unrecognized_class():
    report = HardwareReport(face=True, unrecognized=frozenset({"vendor.vein"}))
    assert classify(report) is Capability.FACE


def test_report_from_features_splits_known_and_unknown():
    report = HardwareReport.from_features(
        ["android.hardware.fingerprint", "android.hardware.biometrics.iris", "vendor.vein"],
        api_level=30,
    )
    assert report.fingerprint and report.iris and not report.face
    assert report.unrecognized == frozenset({"vendor.vein"})
    assert classify(report) is Capability.MULTIPLE


def test_scenarios_fingerprint_only_and_multiple(make_device):
    detector = CapabilityDetector()
    fingerprint_only = make_device("a", HardwareReport(fingerprint=True))
    fingerprint_and_face = make_device("b", HardwareReport(fingerprint=True, face=True))

    assert detector.detect(fingerprint_only) is Capability.FINGERPRINT
    assert detector.detect(fingerprint_and_face) is Capability.MULTIPLE


def test_detect_is_memoized_per_device(make_device):
    detector = CapabilityDetector()
    device = make_device("phone", HardwareReport(face=True))

    first = detector.detect(device)
    device.report = HardwareReport()
    second = detector.detect(device)

    assert first is second is Capability.FACE
    assert device.probes == 1

    other = make_device("tablet", HardwareReport())
    assert detector.detect(other) is Capability.NONE
    assert len(detector.cache) == 2


def test_reset_forces_fresh_hardware_query(make_device):
    detector = CapabilityDetector()
    device = make_device("phone", HardwareReport(iris=True))
    detector.detect(device)
    detector.reset()
    device.report = HardwareReport()

    assert detector.detect(device) is Capability.NONE
    assert device.probes == 2


def test_cache_computes_once_under_concurrency():
    cache = CapabilityCache()
    calls = []
    barrier = threading.Barrier(8)

    def compute():
        calls.append(1)
        return Capability.IRIS

    def worker():
        barrier.wait()
        cache.get_or_compute("key", compute)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(calls) == 1
    assert cache.get("key") is Capability.IRIS


def test_can_securely_authenticate(make_device):
    detector = CapabilityDetector()

    assert detector.can_securely_authenticate(make_device("a", HardwareReport(fingerprint=True)))
    assert not detector.can_securely_authenticate(
        make_device("b", HardwareReport(fingerprint=True), secure=False)
    )
    assert not detector.can_securely_authenticate(make_device("c", HardwareReport(), secure=True))


def test_enrollment_is_queried_live(make_device):
    detector = CapabilityDetector()
    device = make_device("a", HardwareReport(face=True), secure=False)
    assert not detector.can_securely_authenticate(device)

    device.secure = True
    assert detector.can_securely_authenticate(device)
