"""Data models and field validation for the store module."""

import time
from dataclasses import asdict, dataclass
from typing import Optional

from cmdset.config import MAX_COMMAND_LEN, MAX_NAME_LEN
from cmdset.exceptions import ValidationError

__all__ = ["Preset", "ImportResult", "validate_name", "validate_command"]

ENCRYPTED_PLACEHOLDER = "[ENCRYPTED]"

_SECONDS_PER_DAY = 86400


def validate_name(name: str) -> None:
    """
    Reject names that could not round-trip through the preset file or the CLI.

    Rules
    ─────
    1. A non-empty str.
    2. At most MAX_NAME_LEN - 1 UTF-8 bytes.
    3. No control characters (newline, tab, NUL, ...).
    """
    if not isinstance(name, str) or not name:
        raise ValidationError("Preset name must be a non-empty string")
    if len(name.encode("utf-8")) >= MAX_NAME_LEN:
        raise ValidationError(
            f"Preset name too long: {len(name.encode('utf-8'))} bytes "
            f"(max {MAX_NAME_LEN - 1})"
        )
    if not name.isprintable():
        raise ValidationError(f"Preset name contains control characters: {name!r}")


def validate_command(command: str) -> None:
    """Reject an empty or oversized *plaintext* command. Never truncates."""
    if not isinstance(command, str) or not command.strip():
        raise ValidationError("Command must be a non-empty string")
    size = len(command.encode("utf-8"))
    if size >= MAX_COMMAND_LEN:
        raise ValidationError(
            f"Command too long: {size} bytes (max {MAX_COMMAND_LEN - 1})"
        )
    if "\x00" in command:
        raise ValidationError("Command contains a NUL byte")


@dataclass
class Preset:
    """
    One named command preset.

    Fields
    ──────
    name       — unique, case-sensitive key (always plaintext)
    command    — stored representation: plaintext, or a ciphertext token
                 when encrypt is True
    encrypt    — fixed at creation; True means command must be decrypted
                 before use
    active     — False once the preset has been removed from its table
    created_at — epoch seconds, set once (None = now)
    last_used  — epoch seconds of the last execution, 0 = never
    use_count  — number of completed executions
    """
    name:       str
    command:    str
    encrypt:    bool = False
    active:     bool = True
    created_at: Optional[int] = None
    last_used:  int  = 0
    use_count:  int  = 0

    def __post_init__(self) -> None:
        if self.created_at is None:
            self.created_at = int(time.time())

    @property
    def is_encrypted(self) -> bool:
        return self.encrypt

    @property
    def age_days(self) -> int:
        return int((time.time() - self.created_at) / _SECONDS_PER_DAY)

    @property
    def days_since_last_use(self) -> int:
        if self.last_used == 0:
            return -1  # never used
        return int((time.time() - self.last_used) / _SECONDS_PER_DAY)

    @property
    def display_command(self) -> str:
        """Command text safe for listings — never the ciphertext or plaintext of a secret."""
        return ENCRYPTED_PLACEHOLDER if self.encrypt else self.command

    def to_dict(self) -> dict:
        """Serialisable record as written to the preset file (no active flag)."""
        data = asdict(self)
        data.pop("active")
        return data

    def __str__(self) -> str:
        return (
            f"Preset(name={self.name!r}, command={self.display_command!r}, "
            f"uses={self.use_count})"
        )


@dataclass
class ImportResult:
    """
    Outcome of CmdSet.import_().

    imported — names added to the store, in file order
    skipped  — names already present in the store, left untouched
    """
    imported: list
    skipped:  list

    def __str__(self) -> str:
        return f"ImportResult(imported={len(self.imported)}, skipped={len(self.skipped)})"
