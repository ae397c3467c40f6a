"""
Key provisioning for the command cipher.

Two durable key sources, chosen by whether a passphrase is configured:

  passphrase — key = PBKDF2-HMAC-SHA256(passphrase, salt, iterations);
               the random salt is created once in <working_dir>/<salt_file>
  key file   — a random 256-bit key created once in <working_dir>/<key_file>

Both files are written with mode 0600. Either way the same working directory
always yields the same key, so encrypted presets survive a restart.

Keys are handed out as bytearrays so CommandCipher.wipe() can zero them.
Transient bytes objects created while decoding or deriving are not reachable
and are left to the garbage collector.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import secrets
from enum import Enum
from pathlib import Path

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from cmdset.config import CmdSetConfig
from cmdset.exceptions import KeyMaterialError

__all__ = ["KeySource", "KEY_LEN", "SALT_LEN", "derive_key", "load_or_create_key"]

logger = logging.getLogger(__name__)

KEY_LEN  = 32
SALT_LEN = 16


class KeySource(str, Enum):
    PASSPHRASE = "passphrase"
    KEY_FILE   = "key_file"


def derive_key(passphrase: str, salt: bytes, iterations: int) -> bytearray:
    """Stretch *passphrase* into a KEY_LEN-byte key."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LEN,
        salt=salt,
        iterations=iterations,
    )
    return bytearray(kdf.derive(passphrase.encode("utf-8")))


# ── File helpers ──────────────────────────────────────────────────────────────

def _write_secret(path: Path, data: bytearray) -> None:
    """Create *path* exclusively with owner-only permissions."""
    fd = os.open(str(path), os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "wb") as fh:
        fh.write(base64.b64encode(data) + b"\n")


def _read_secret(path: Path, expected_len: int) -> bytearray:
    try:
        raw = path.read_bytes().strip()
        data = bytearray(base64.b64decode(raw, validate=True))
    except (OSError, binascii.Error) as exc:
        raise KeyMaterialError(f"Cannot read key material from {path}: {exc}") from exc
    if len(data) != expected_len:
        raise KeyMaterialError(
            f"Key material in {path} has {len(data)} bytes, expected {expected_len}"
        )
    return data


def _load_or_create(path: Path, length: int, label: str) -> bytearray:
    if path.exists():
        return _read_secret(path, length)
    data = bytearray(secrets.token_bytes(length))
    try:
        _write_secret(path, data)
    except FileExistsError:
        # Another process created it first; use theirs.
        return _read_secret(path, length)
    except OSError as exc:
        raise KeyMaterialError(f"Cannot create {label} at {path}: {exc}") from exc
    logger.info("Created new %s at %s", label, path)
    return data


# ── Public API ────────────────────────────────────────────────────────────────

def load_or_create_key(config: CmdSetConfig) -> tuple[bytearray, KeySource]:
    """
    Return the store key for *config* and where it came from.

    Raises:
        KeyMaterialError: key or salt file unreadable, malformed, or not creatable.
    """
    config.root.mkdir(parents=True, exist_ok=True)
    if config.passphrase:
        salt = _load_or_create(config.salt_path, SALT_LEN, "salt file")
        return derive_key(config.passphrase, bytes(salt), config.kdf_iterations), KeySource.PASSPHRASE
    key = _load_or_create(config.key_path, KEY_LEN, "key file")
    return key, KeySource.KEY_FILE
