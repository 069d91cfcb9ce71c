"""Signed audit trail for biometric attempts."""
from bioprompt.audit.logger import record_event, verify_log

__all__ = ["record_event", "verify_log"]
