"""
Project-wide custom exception hierarchy.
All modules raise subclasses of CmdSetError — never bare Exception.

Every class carries a ``status`` (a StatusCode member) so the binding layer in
cmdset.api can translate any failure into an integer status code.
"""

from cmdset.status import StatusCode

__all__ = [
    "CmdSetError",
    "ValidationError",
    "StoreClosedError",
    "PresetNotFoundError",
    "PresetExistsError",
    "CapacityExceededError",
    "CryptoError",
    "DecryptionError",
    "SpawnError",
    "PersistenceError",
    "CorruptFormatError",
    "InitError",
    "KeyMaterialError",
]


class CmdSetError(Exception):
    """Root exception for all cmdset errors."""

    status: StatusCode = StatusCode.VALIDATION_ERROR


# ── Validation ────────────────────────────────────────────────────────────────

class ValidationError(CmdSetError):
    """Raised when a name, command or config value is rejected before any mutation."""

    status = StatusCode.VALIDATION_ERROR


class StoreClosedError(ValidationError):
    """Raised when a CmdSet handle is used after cleanup()."""


# ── Lookup ────────────────────────────────────────────────────────────────────

class PresetNotFoundError(CmdSetError):
    """Raised when no active preset has the requested name."""

    status = StatusCode.NOT_FOUND

    def __init__(self, name: str) -> None:
        super().__init__(f"Preset not found: {name!r}")
        self.name = name


class PresetExistsError(CmdSetError):
    """Raised when an active preset already uses the requested name."""

    status = StatusCode.EXISTS

    def __init__(self, name: str) -> None:
        super().__init__(f"Preset already exists: {name!r}")
        self.name = name


# ── Resource ──────────────────────────────────────────────────────────────────

class CapacityExceededError(CmdSetError):
    """Raised when the table already holds its maximum number of presets."""

    status = StatusCode.CAPACITY_EXCEEDED


# ── Crypto ────────────────────────────────────────────────────────────────────

class CryptoError(CmdSetError):
    """Base class for encryption boundary errors."""

    status = StatusCode.DECRYPTION_ERROR


class DecryptionError(CryptoError):
    """Raised when a ciphertext token is corrupt, tampered with, or under another key."""


# ── Execution ─────────────────────────────────────────────────────────────────

class SpawnError(CmdSetError):
    """Raised when the child process for a preset cannot be created."""

    status = StatusCode.SPAWN_ERROR


# ── Persistence ───────────────────────────────────────────────────────────────

class PersistenceError(CmdSetError):
    """Raised on preset file I/O errors."""

    status = StatusCode.IO_ERROR


class CorruptFormatError(PersistenceError):
    """Raised when a preset file parses but violates the table invariants."""

    status = StatusCode.CORRUPT_FORMAT


# ── Init ──────────────────────────────────────────────────────────────────────

class InitError(CmdSetError):
    """Raised when a store handle cannot be opened."""

    status = StatusCode.IO_ERROR


class KeyMaterialError(InitError):
    """Raised when the key or salt file is unreadable or malformed."""
