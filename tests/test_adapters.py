from types import SimpleNamespace

from bioprompt import android
from bioprompt.capability import Capability, classify
from bioprompt.host import KivyWindowHost


class FakeWindow:
    def __init__(self, focus=True):
        self.focus = focus
        self.bound = []

    def bind(self, focus):
        self.bound.append(focus)

    def unbind(self, focus):
        self.bound.remove(focus)

    def dispatch_focus(self, value):
        self.focus = value
        for callback in list(self.bound):
            callback(self, value)


def test_kivy_host_forwards_focus_changes():
    window = FakeWindow(focus=False)
    host = KivyWindowHost(window, api_level=28)
    seen = []

    assert not host.has_focus()
    host.add_focus_listener(seen.append)
    window.dispatch_focus(True)
    host.remove_focus_listener(seen.append)
    window.dispatch_focus(False)

    assert seen == [True]
    assert window.bound == []
    assert host.has_focus() is False


def test_kivy_host_ignores_unknown_listener():
    host = KivyWindowHost(FakeWindow(), api_level=30)
    host.remove_focus_listener(print)
    assert host.api_level == 30


def test_sdk_int_reads_build_version(monkeypatch):
    monkeypatch.setattr(android, "_autoclass", lambda name: SimpleNamespace(SDK_INT=28))
    assert android.sdk_int() == 28


def test_sdk_int_off_device(monkeypatch):
    def _missing(name):
        raise ImportError("No module named 'jnius'")

    monkeypatch.setattr(android, "_autoclass", _missing)
    assert android.sdk_int() == 0


def test_kivy_host_defaults_api_level_to_sdk(monkeypatch):
    monkeypatch.setattr("bioprompt.host.sdk_int", lambda: 29)
    assert KivyWindowHost(FakeWindow()).api_level == 29


class FakeFingerprintManager:
    def __init__(self, detected=True, enrolled=True):
        self.detected = detected
        self.enrolled = enrolled

    def isHardwareDetected(self):  # noqa: N802
        return self.detected

    def hasEnrolledFingerprints(self):  # noqa: N802
        return self.enrolled


class FakeBiometricManager:
    def __init__(self, result=android.BIOMETRIC_SUCCESS):
        self.result = result
        self.queries = []

    def canAuthenticate(self, authenticators=None):  # noqa: N802
        self.queries.append(authenticators)
        return self.result


class FakeAndroidContext:
    def __init__(self, *, features=(), fingerprint=None, keyguard_secure=True):
        self.features = set(features)
        self.services = {
            "fingerprint": fingerprint,
            "keyguard": SimpleNamespace(isDeviceSecure=lambda: keyguard_secure),
        }

    def getPackageName(self):  # noqa: N802
        return "org.example.vault"

    def getPackageManager(self):  # noqa: N802
        return SimpleNamespace(hasSystemFeature=lambda name: name in self.features)

    def getSystemService(self, name):  # noqa: N802
        return self.services.get(name)


def _android_runtime(monkeypatch, api_level, biometric_manager=None):
    classes = {
        "android.os.Build$VERSION": SimpleNamespace(SDK_INT=api_level),
        "android.content.Context": SimpleNamespace(
            FINGERPRINT_SERVICE="fingerprint", KEYGUARD_SERVICE="keyguard"
        ),
        "androidx.biometric.BiometricManager": SimpleNamespace(
            **{"from": lambda context: biometric_manager}
        ),
    }
    monkeypatch.setattr(android, "_autoclass", classes.__getitem__)


def test_android_device_before_api_23_has_no_biometrics(monkeypatch):
    _android_runtime(monkeypatch, 22)
    device = android.AndroidDevice(FakeAndroidContext(fingerprint=FakeFingerprintManager()))

    assert classify(device.probe_hardware()) is Capability.NONE
    assert device.is_securely_enrolled() is False
    assert device.device_id == ("android", 22, "org.example.vault")


def test_android_device_api_28_uses_fingerprint_manager(monkeypatch):
    _android_runtime(monkeypatch, 28)
    context = FakeAndroidContext(
        features=[android.FEATURE_FACE], fingerprint=FakeFingerprintManager(detected=True)
    )
    device = android.AndroidDevice(context)

    report = device.probe_hardware()

    assert report.api_level == 28
    assert classify(report) is Capability.FINGERPRINT
    assert device.is_securely_enrolled() is True
    context.services["fingerprint"].enrolled = False
    assert device.is_securely_enrolled() is False


def test_android_device_api_30_reports_unrecognized_biometric(monkeypatch):
    manager = FakeBiometricManager(android.BIOMETRIC_SUCCESS)
    _android_runtime(monkeypatch, 30, manager)
    device = android.AndroidDevice(FakeAndroidContext())

    report = device.probe_hardware()

    assert report.unrecognized == frozenset({android.FEATURE_UNRECOGNIZED})
    assert classify(report) is Capability.UNKNOWN
    assert manager.queries == [None]


def test_android_device_api_30_reports_declared_features(monkeypatch):
    manager = FakeBiometricManager()
    _android_runtime(monkeypatch, 30, manager)
    device = android.AndroidDevice(
        FakeAndroidContext(features=[android.FEATURE_FINGERPRINT, android.FEATURE_FACE])
    )

    assert classify(device.probe_hardware()) is Capability.MULTIPLE
    assert manager.queries == []


def test_android_device_api_30_requires_strong_biometric(monkeypatch):
    manager = FakeBiometricManager(android.BIOMETRIC_SUCCESS)
    _android_runtime(monkeypatch, 30, manager)
    device = android.AndroidDevice(FakeAndroidContext(features=[android.FEATURE_FACE]))

    assert device.is_securely_enrolled() is True
    assert manager.queries == [android.BIOMETRIC_STRONG]

    manager.result = 11
    assert device.is_securely_enrolled() is False


def test_android_device_insecure_keyguard_is_not_enrolled(monkeypatch):
    manager = FakeBiometricManager(android.BIOMETRIC_SUCCESS)
    _android_runtime(monkeypatch, 30, manager)
    device = android.AndroidDevice(
        FakeAndroidContext(features=[android.FEATURE_FINGERPRINT], keyguard_secure=False)
    )

    assert device.is_securely_enrolled() is False
    assert manager.queries == []
