"""Offline audit trail for biometric attempts, Ed25519 signed and hash chained."""
from __future__ import annotations

import hashlib
import json
import os
import threading
import time
import uuid
from pathlib import Path
from typing import Any, Dict

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

_lock = threading.Lock()


def resolve_audit_dir() -> Path:
    """Return the directory where audit artefacts should be stored.

    Tests and power users can point the trail to a custom location via the
    ``BIOPROMPT_AUDIT_DIR`` environment variable. The variable is read on every
    call so a redirected directory takes effect without reloading the module.
    """

    override = os.environ.get("BIOPROMPT_AUDIT_DIR")
    if override:
        audit_dir = Path(override).expanduser()
    else:
        audit_dir = Path.home() / ".bioprompt_audit"
    audit_dir.mkdir(parents=True, exist_ok=True)
    return audit_dir


def _load_private_key(audit_dir: Path) -> Ed25519PrivateKey:
    key_path = audit_dir / "signing_key.pem"
    if key_path.exists():
        return serialization.load_pem_private_key(key_path.read_bytes(), password=None)
    private_key = Ed25519PrivateKey.generate()
    key_path.write_bytes(
        private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return private_key


def _load_prev_hash(audit_dir: Path) -> str:
    try:
        return (audit_dir / "chain.state").read_text().strip()
    except FileNotFoundError:
        return "GENESIS"


def _encode(payload: Dict[str, Any]) -> bytes:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True).encode("utf-8")


def record_event(event: str, *, details: Dict[str, Any] | None = None) -> Path:
    """Append a signed *event* to the chain and return the written file."""

    with _lock:
        audit_dir = resolve_audit_dir()
        timestamp = int(time.time())
        payload = {
            "event": event,
            "details": details or {},
            "timestamp": timestamp,
            "prev_hash": _load_prev_hash(audit_dir),
        }
        message = _encode(payload)
        signature = _load_private_key(audit_dir).sign(message)
        chain_hash = hashlib.sha3_512(message + signature).hexdigest()
        entry = {
            "payload": payload,
            "signature": signature.hex(),
            "chain_hash": chain_hash,
        }
        file_path = audit_dir / f"audit_{timestamp}_{uuid.uuid4().hex}.json"
        file_path.write_text(json.dumps(entry, ensure_ascii=False, indent=2))
        (audit_dir / "chain.state").write_text(chain_hash)
    return file_path


def verify_log(path: os.PathLike[str] | str) -> bool:
    """Check the signature and chain hash of a single audit file."""

    log_path = Path(path)
    data = json.loads(log_path.read_text())
    message = _encode(data["payload"])
    signature = bytes.fromhex(data.get("signature") or "")
    public_key = _load_private_key(log_path.parent).public_key()
    try:
        public_key.verify(signature, message)
    except InvalidSignature:
        return False
    return hashlib.sha3_512(message + signature).hexdigest() == data.get("chain_hash")


__all__ = ["record_event", "resolve_audit_dir", "verify_log"]
