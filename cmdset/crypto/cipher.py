"""
CommandCipher — authenticated encryption of preset command strings.

Token layout (URL-safe base64, no newlines)::

    version (1 byte) | nonce (12 bytes) | AES-256-GCM ciphertext + 16-byte tag

The optional associated data is authenticated but not stored; the store
passes the preset name so a token moved onto another preset fails to decrypt.
"""

from __future__ import annotations

import base64
import binascii
import logging
import secrets
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from cmdset.crypto.keys import KEY_LEN
from cmdset.exceptions import CryptoError, DecryptionError, StoreClosedError

__all__ = ["CommandCipher", "TOKEN_VERSION"]

logger = logging.getLogger(__name__)

TOKEN_VERSION = 1
_NONCE_LEN = 12
_TAG_LEN   = 16
_HEADER_LEN = 1 + _NONCE_LEN


def _aad(associated_data: Optional[str]) -> Optional[bytes]:
    return associated_data.encode("utf-8") if associated_data is not None else None


class CommandCipher:
    """
    Encrypts and decrypts command strings under one store-scoped key.

    The key lives in a bytearray owned by this object; wipe() zeroes it and
    makes every later call raise StoreClosedError.
    """

    def __init__(self, key: bytearray) -> None:
        if len(key) != KEY_LEN:
            raise CryptoError(f"Cipher key must be {KEY_LEN} bytes, got {len(key)}")
        self._key: Optional[bytearray] = key
        # AESGCM keeps its own copy of the key; wipe() cannot reach it, only
        # drop the reference.
        self._aesgcm: Optional[AESGCM] = AESGCM(key)

    # ── Internal helpers ──────────────────────────────────────────────────

    def _aead(self) -> AESGCM:
        if self._aesgcm is None:
            raise StoreClosedError("Cipher key has been wiped")
        return self._aesgcm

    # ── Public API ────────────────────────────────────────────────────────

    @property
    def is_wiped(self) -> bool:
        return self._key is None

    def encrypt(self, plaintext: str, associated_data: Optional[str] = None) -> str:
        """Return an opaque token for *plaintext*; a fresh nonce is used every call."""
        aead = self._aead()
        nonce = secrets.token_bytes(_NONCE_LEN)
        sealed = aead.encrypt(nonce, plaintext.encode("utf-8"), _aad(associated_data))
        blob = bytes([TOKEN_VERSION]) + nonce + sealed
        return base64.urlsafe_b64encode(blob).decode("ascii")

    def decrypt(self, token: str, associated_data: Optional[str] = None) -> str:
        """
        Return the plaintext sealed in *token*.

        Raises:
            DecryptionError: malformed token, unknown version, wrong key,
                             wrong associated data, or tampered bytes.
        """
        aead = self._aead()
        try:
            blob = base64.urlsafe_b64decode(token.encode("ascii"))
        except (binascii.Error, UnicodeEncodeError, ValueError) as exc:
            raise DecryptionError("Ciphertext is not valid base64") from exc

        if len(blob) < _HEADER_LEN + _TAG_LEN:
            raise DecryptionError("Ciphertext is truncated")
        if blob[0] != TOKEN_VERSION:
            raise DecryptionError(f"Unsupported ciphertext version {blob[0]}")

        nonce = blob[1:_HEADER_LEN]
        try:
            plain = aead.decrypt(nonce, blob[_HEADER_LEN:], _aad(associated_data))
        except InvalidTag as exc:
            raise DecryptionError(
                "Authentication failed: wrong key or corrupted ciphertext"
            ) from exc

        try:
            return plain.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecryptionError("Decrypted command is not valid UTF-8") from exc

    def wipe(self) -> None:
        """Zero the key buffer. Idempotent."""
        if self._key is not None:
            for i in range(len(self._key)):
                self._key[i] = 0
            self._key = None
            self._aesgcm = None
            logger.debug("Cipher key wiped")
