"""Android bindings through pyjnius.

Everything here needs the Android runtime and is imported lazily, so the rest
of the package keeps working on desktop and under test.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from bioprompt.capability import HardwareReport, KIND_BY_FEATURE
from bioprompt.prompt import AuthenticationRequest
from bioprompt.results import CallbackSink

_logger = logging.getLogger(__name__)

FEATURE_FINGERPRINT = "android.hardware.fingerprint"
FEATURE_FACE = "android.hardware.biometrics.face"
FEATURE_IRIS = "android.hardware.biometrics.iris"

# Reported when BiometricManager says biometrics work but no known feature is
# declared, i.e. a class newer than this package.
FEATURE_UNRECOGNIZED = "android.hardware.biometrics.unrecognized"

BIOMETRIC_SUCCESS = 0
BIOMETRIC_STRONG = 0x000F


def _autoclass(name: str):
    from jnius import autoclass

    return autoclass(name)


def current_activity():  # pragma: no cover - requires Android runtime
    return _autoclass("org.kivy.android.PythonActivity").mActivity


def sdk_int() -> int:
    """Return ``Build.VERSION.SDK_INT`` or ``0`` off-device."""

    try:
        return int(_autoclass("android.os.Build$VERSION").SDK_INT)
    except Exception as exc:
        _logger.debug("Android SDK level unavailable: %s", exc)
        return 0


class AndroidDevice:
    """Device probe with per-version fallbacks.

    * API < 23: no biometric API at all.
    * API 23-28: only ``FingerprintManager`` exists, face and iris features are
      not declared by the platform.
    * API 29+: ``PackageManager`` declares face and iris, and the unified
      ``BiometricManager`` reveals classes without a declared feature.
    """

    def __init__(self, context: Any = None) -> None:
        self.context = context if context is not None else current_activity()
        self.api_level = sdk_int()

    @property
    def device_id(self):
        return ("android", self.api_level, self.context.getPackageName())

    def _has_feature(self, feature: str) -> bool:
        return bool(self.context.getPackageManager().hasSystemFeature(feature))

    def _legacy_fingerprint(self) -> bool:
        Context = _autoclass("android.content.Context")
        manager = self.context.getSystemService(Context.FINGERPRINT_SERVICE)
        return manager is not None and bool(manager.isHardwareDetected())

    def _biometric_manager(self):
        BiometricManager = _autoclass("androidx.biometric.BiometricManager")
        # "from" is a Python keyword, pyjnius keeps the Java name.
        return getattr(BiometricManager, "from")(self.context)

    def probe_hardware(self) -> HardwareReport:
        if self.api_level < 23:
            return HardwareReport(api_level=self.api_level)
        if self.api_level < 29:
            features = [FEATURE_FINGERPRINT] if self._legacy_fingerprint() else []
            return HardwareReport.from_features(features, api_level=self.api_level)

        features = [feature for feature in KIND_BY_FEATURE if self._has_feature(feature)]
        if not features:
            try:
                if self._biometric_manager().canAuthenticate() == BIOMETRIC_SUCCESS:
                    features.append(FEATURE_UNRECOGNIZED)
            except Exception as exc:
                _logger.debug("BiometricManager query failed: %s", exc)
        return HardwareReport.from_features(features, api_level=self.api_level)

    def is_securely_enrolled(self) -> bool:
        """Whether a strong biometric is enrolled.

        ``BiometricManager.canAuthenticate()`` is not usable on its own: API 28
        falls back to fingerprint enrollment (false negatives for other
        biometrics) and API 29 accepts weak biometrics (false positives).
        """

        if self.api_level < 23:
            return False
        Context = _autoclass("android.content.Context")
        keyguard = self.context.getSystemService(Context.KEYGUARD_SERVICE)
        if keyguard is None or not keyguard.isDeviceSecure():
            return False
        if self.api_level >= 30:
            return self._biometric_manager().canAuthenticate(BIOMETRIC_STRONG) == BIOMETRIC_SUCCESS
        manager = self.context.getSystemService(Context.FINGERPRINT_SERVICE)
        return manager is not None and bool(manager.hasEnrolledFingerprints())


class _PromptHandle:  # pragma: no cover - requires Android runtime
    def __init__(self, prompt) -> None:
        self._prompt = prompt

    def cancel(self) -> None:
        self._prompt.cancelAuthentication()


class AndroidBiometricPrompt:  # pragma: no cover - requires Android runtime
    """``androidx.biometric.BiometricPrompt`` as an authentication primitive."""

    def __init__(self, activity: Any = None) -> None:
        self.activity = activity if activity is not None else current_activity()

    def _prompt_info(self, request: AuthenticationRequest):
        BiometricPrompt = _autoclass("androidx.biometric.BiometricPrompt")
        builder = BiometricPrompt.PromptInfo.Builder()
        builder.setTitle(request.title)
        if request.subtitle:
            builder.setSubtitle(request.subtitle)
        if request.description:
            builder.setDescription(request.description)
        builder.setConfirmationRequired(request.confirmation_required)
        if request.device_credential_allowed:
            builder.setDeviceCredentialAllowed(True)
        else:
            builder.setNegativeButtonText(request.negative_button_text)
        return builder.build()

    def authenticate(self, request: AuthenticationRequest, sink: CallbackSink) -> Optional[_PromptHandle]:
        BiometricPrompt = _autoclass("androidx.biometric.BiometricPrompt")
        executor = self.activity.getMainExecutor()

        class Callback(BiometricPrompt.AuthenticationCallback):  # type: ignore[misc]
            def onAuthenticationSucceeded(self, result):  # noqa: N802
                sink.on_success(result.getCryptoObject())

            def onAuthenticationError(self, error_code, err_string):  # noqa: N802
                sink.on_error(int(error_code), str(err_string))

            def onAuthenticationFailed(self):  # noqa: N802
                # A rejected biometric keeps the prompt open for another try.
                sink.on_help("Biometric not recognized")

        prompt = BiometricPrompt(self.activity, executor, Callback())
        if request.crypto_object is not None:
            prompt.authenticate(self._prompt_info(request), request.crypto_object)
        else:
            prompt.authenticate(self._prompt_info(request))
        return _PromptHandle(prompt)


__all__ = [
    "AndroidBiometricPrompt",
    "AndroidDevice",
    "FEATURE_FACE",
    "FEATURE_FINGERPRINT",
    "FEATURE_IRIS",
    "FEATURE_UNRECOGNIZED",
    "sdk_int",
]
