"""
Runtime configuration for a CmdSet store handle.

Values come from three layers, later layers winning:
  1. dataclass defaults
  2. environment (CmdSetConfig.from_env)
  3. explicit constructor / CLI arguments (CmdSetConfig.with_overrides)

Environment variables
─────────────────────
  CMDSET_WORKING_DIR     — directory holding the preset, key and salt files
  CMDSET_PASSPHRASE      — switch to passphrase-derived keys
  CMDSET_KDF_ITERATIONS  — PBKDF2 iteration count for passphrase mode
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

from cmdset.exceptions import ValidationError

__all__ = ["CmdSetConfig", "MAX_PRESETS", "MAX_NAME_LEN", "MAX_COMMAND_LEN"]

logger = logging.getLogger(__name__)

# Field budgets in bytes, exclusive: usable lengths are 49 and 499.
MAX_PRESETS     = 100
MAX_NAME_LEN    = 50
MAX_COMMAND_LEN = 500

_MIN_KDF_ITERATIONS = 1_000


@dataclass(frozen=True)
class CmdSetConfig:
    """Runtime configuration for CmdSet."""
    working_dir:    str = "~/.cmdset"
    preset_file:    str = ".cmdset_presets"
    key_file:       str = ".cmdset_key"
    salt_file:      str = ".cmdset_salt"
    passphrase:     str = ""              # empty = random key file
    kdf_iterations: int = 390_000
    capacity:       int = MAX_PRESETS

    def __post_init__(self) -> None:
        if not 1 <= self.capacity <= MAX_PRESETS:
            raise ValidationError(
                f"capacity must be between 1 and {MAX_PRESETS}, got {self.capacity}"
            )
        if self.kdf_iterations < _MIN_KDF_ITERATIONS:
            raise ValidationError(
                f"kdf_iterations must be at least {_MIN_KDF_ITERATIONS}, "
                f"got {self.kdf_iterations}"
            )
        for fname in (self.preset_file, self.key_file, self.salt_file):
            if not fname or Path(fname).name != fname:
                raise ValidationError(f"File names must be bare names, got {fname!r}")

    # ── Derived paths ─────────────────────────────────────────────────────

    @property
    def root(self) -> Path:
        return Path(self.working_dir).expanduser()

    @property
    def preset_path(self) -> Path:
        return self.root / self.preset_file

    @property
    def key_path(self) -> Path:
        return self.root / self.key_file

    @property
    def salt_path(self) -> Path:
        return self.root / self.salt_file

    # ── Constructors ──────────────────────────────────────────────────────

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CmdSetConfig":
        """Build a config from CMDSET_* environment variables."""
        env = os.environ if environ is None else environ
        kwargs: dict = {}
        if env.get("CMDSET_WORKING_DIR"):
            kwargs["working_dir"] = env["CMDSET_WORKING_DIR"]
        if env.get("CMDSET_PASSPHRASE"):
            kwargs["passphrase"] = env["CMDSET_PASSPHRASE"]
        raw_iters = env.get("CMDSET_KDF_ITERATIONS")
        if raw_iters:
            try:
                kwargs["kdf_iterations"] = int(raw_iters)
            except ValueError as exc:
                raise ValidationError(
                    f"CMDSET_KDF_ITERATIONS must be an integer, got {raw_iters!r}"
                ) from exc
        return cls(**kwargs)

    def with_overrides(
        self,
        working_dir: Optional[str] = None,
        passphrase: Optional[str] = None,
    ) -> "CmdSetConfig":
        """Return a copy with any non-None argument applied."""
        changes: dict = {}
        if working_dir is not None:
            changes["working_dir"] = str(working_dir)
        if passphrase is not None:
            changes["passphrase"] = passphrase
        return replace(self, **changes) if changes else self

    def __repr__(self) -> str:
        # Never echo the passphrase into logs or tracebacks.
        secret = "***" if self.passphrase else ""
        return (
            f"CmdSetConfig(working_dir={self.working_dir!r}, "
            f"preset_file={self.preset_file!r}, passphrase={secret!r}, "
            f"capacity={self.capacity})"
        )
