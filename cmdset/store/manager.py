"""
CmdSet — the store handle. The only entry point callers use.

Usage::

    with CmdSet(working_dir="~/.cmdset") as store:
        store.add("greet", "echo hello")
        store.add("deploy", "ssh prod ./deploy.sh", encrypt=True)
        code = store.execute("greet", ["world"])      # runs: echo hello world
        store.save()

    # Encrypted commands stay opaque unless resolved explicitly
    store.find("deploy").command                    # ciphertext token
    store.resolve_command("deploy")                 # "ssh prod ./deploy.sh"

Nothing is persisted implicitly: save() is a separate, explicit checkpoint,
and cleanup() (or leaving the ``with`` block) discards unsaved changes after
zeroing the key.
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from pathlib import Path
from typing import Iterator, Optional, Sequence

from cmdset.config import CmdSetConfig
from cmdset.crypto import CommandCipher, KeySource, load_or_create_key
from cmdset.exceptions import (
    CapacityExceededError,
    CorruptFormatError,
    InitError,
    PersistenceError,
    PresetExistsError,
    PresetNotFoundError,
    StoreClosedError,
    ValidationError,
)
from cmdset.executor import PresetExecutor
from cmdset.store import persistence
from cmdset.store.models import ImportResult, Preset, validate_command, validate_name
from cmdset.store.table import PresetTable

__all__ = ["CmdSet"]

logger = logging.getLogger(__name__)


class CmdSet:
    """
    Orchestrates PresetTable, CommandCipher, PresetExecutor and persistence.

    Args:
        working_dir: Directory for the preset, key and salt files.
                     Overrides config / CMDSET_WORKING_DIR.
        passphrase:  Derive the key from this passphrase instead of a key
                     file. Overrides config / CMDSET_PASSPHRASE.
        config:      Base configuration (default: CmdSetConfig.from_env()).
        autoload:    Load the preset file, if present, while opening.
        executor:    PresetExecutor override (tests inject a fake spawn).

    Raises:
        InitError: the configuration is invalid, the key could not be
                   provisioned, or the preset file could not be loaded.
    """

    def __init__(
        self,
        working_dir: Optional[str] = None,
        passphrase: Optional[str] = None,
        config: Optional[CmdSetConfig] = None,
        autoload: bool = True,
        executor: Optional[PresetExecutor] = None,
    ) -> None:
        try:
            base = config if config is not None else CmdSetConfig.from_env()
            self._config = base.with_overrides(working_dir=working_dir, passphrase=passphrase)
        except ValidationError as exc:
            raise InitError(f"Invalid configuration: {exc}") from exc
        self._executor = executor or PresetExecutor()
        self._table = PresetTable(capacity=self._config.capacity)
        self._closed = False

        try:
            key, self._key_source = load_or_create_key(self._config)
        except OSError as exc:
            raise InitError(f"Cannot prepare working directory {self._config.root}: {exc}") from exc
        self._cipher = CommandCipher(key)

        if autoload:
            try:
                self.load()
            except PersistenceError as exc:
                self._cipher.wipe()
                raise InitError(f"Could not load presets: {exc}") from exc

        logger.info(
            "Opened preset store at %s (%d preset(s), key from %s)",
            self._config.root, self._table.count, self._key_source.value,
        )

    # ── Internal helpers ──────────────────────────────────────────────────

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreClosedError("Store handle has been cleaned up")

    # ── Properties ────────────────────────────────────────────────────────

    @property
    def config(self) -> CmdSetConfig:
        return self._config

    @property
    def working_dir(self) -> Path:
        return self._config.root

    @property
    def preset_path(self) -> Path:
        return self._config.preset_path

    @property
    def key_source(self) -> KeySource:
        return self._key_source

    @property
    def count(self) -> int:
        return self._table.count

    @property
    def capacity(self) -> int:
        return self._table.capacity

    @property
    def closed(self) -> bool:
        return self._closed

    # ── CRUD ──────────────────────────────────────────────────────────────

    def add(self, name: str, command: str, encrypt: bool = False) -> Preset:
        """
        Store *command* under *name*, encrypting it first when *encrypt*.

        Every check runs before the command is encrypted or the table touched.

        Raises:
            ValidationError:       bad name or command.
            PresetExistsError:     name already taken.
            CapacityExceededError: store is full.
        """
        self._ensure_open()
        validate_name(name)
        validate_command(command)
        if name in self._table:
            raise PresetExistsError(name)
        if self._table.is_full():
            raise CapacityExceededError(
                f"Maximum number of presets reached ({self._table.capacity})"
            )

        stored = self._cipher.encrypt(command, associated_data=name) if encrypt else command
        preset = self._table.insert(name, stored, encrypt=encrypt)
        logger.info("Added preset %r%s", name, " (encrypted)" if encrypt else "")
        return preset

    def remove(self, name: str) -> Preset:
        """Raises PresetNotFoundError if *name* is not an active preset."""
        self._ensure_open()
        preset = self._table.remove(name)
        logger.info("Removed preset %r", name)
        return preset

    def find(self, name: str) -> Optional[Preset]:
        """Stored representation (ciphertext for encrypted presets), or None."""
        self._ensure_open()
        return self._table.find(name)

    def get(self, index: int) -> Preset:
        """The *index*-th preset in listing order (stored representation)."""
        self._ensure_open()
        return self._table.get(index)

    def list(self) -> list:
        """All presets in insertion order. Encrypted commands stay encrypted."""
        self._ensure_open()
        return self._table.list()

    def resolve(self, name: str) -> Preset:
        """
        Copy of preset *name* whose command is the plaintext.

        Raises:
            PresetNotFoundError, DecryptionError
        """
        self._ensure_open()
        preset = self._table.find(name)
        if preset is None:
            raise PresetNotFoundError(name)
        if preset.encrypt:
            return replace(preset, command=self._cipher.decrypt(preset.command, associated_data=name))
        return preset

    def resolve_command(self, name: str) -> str:
        return self.resolve(name).command

    def update_usage(self, name: str, timestamp: Optional[int] = None) -> None:
        """Bump use_count and set last_used (default: now) for *name*."""
        self._ensure_open()
        preset = self._table.find(name)
        if preset is None:
            raise PresetNotFoundError(name)
        when = int(time.time()) if timestamp is None else int(timestamp)
        self._table.update_usage(name, when, preset.use_count + 1)

    # ── Execution ─────────────────────────────────────────────────────────

    def execute(self, name: str, extra_args: Sequence[str] = ()) -> int:
        """Run preset *name*; see PresetExecutor.execute()."""
        self._ensure_open()
        return self._executor.execute(self, name, extra_args)

    # ── Persistence ───────────────────────────────────────────────────────

    def save(self) -> None:
        """Write all presets to the preset file. Raises PersistenceError."""
        self._ensure_open()
        persistence.save_table(self._table, self._config.preset_path)

    def load(self) -> int:
        """
        Replace the in-memory table with the preset file's contents.

        The current table is kept if loading fails.

        Returns:
            Number of presets loaded.
        """
        self._ensure_open()
        table = persistence.load_table(self._config.preset_path, capacity=self._config.capacity)
        self._table = table
        return table.count

    def export(self, path: str) -> int:
        """Write an export document to *path*; returns the preset count."""
        self._ensure_open()
        return persistence.export_table(self._table, path)

    def import_(self, path: str) -> ImportResult:
        """
        Merge presets from an export (or preset) file at *path*.

        Presets whose name already exists are skipped. If the rest would not
        fit, nothing is imported.

        Raises:
            PersistenceError, CorruptFormatError, CapacityExceededError
        """
        self._ensure_open()
        incoming = persistence.read_presets(path)

        seen: set = set()
        fresh: list = []
        skipped: list = []
        for preset in incoming:
            try:
                validate_name(preset.name)
            except ValidationError as exc:
                raise CorruptFormatError(f"Invalid preset in {path}: {exc}") from exc
            if preset.name in seen:
                raise CorruptFormatError(f"Duplicate preset name {preset.name!r} in {path}")
            seen.add(preset.name)
            if preset.name in self._table:
                skipped.append(preset.name)
            else:
                fresh.append(preset)

        if self._table.count + len(fresh) > self._table.capacity:
            raise CapacityExceededError(
                f"Importing {len(fresh)} preset(s) would exceed the limit of "
                f"{self._table.capacity} (currently {self._table.count})"
            )

        for preset in fresh:
            self._table.restore(preset)

        if skipped:
            logger.info("Import skipped existing preset(s): %s", ", ".join(skipped))
        logger.info("Imported %d preset(s) from %s", len(fresh), path)
        return ImportResult(imported=[p.name for p in fresh], skipped=skipped)

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def cleanup(self) -> None:
        """Zero key material and drop the in-memory table. Idempotent; never saves."""
        if self._closed:
            return
        self._cipher.wipe()
        self._table.clear()
        self._closed = True
        logger.debug("Store handle at %s cleaned up", self._config.root)

    def __enter__(self) -> "CmdSet":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    # ── Container protocol ────────────────────────────────────────────────

    def __len__(self) -> int:
        return self._table.count

    def __contains__(self, name: object) -> bool:
        return name in self._table

    def __iter__(self) -> Iterator[Preset]:
        return iter(self.list())

    def __repr__(self) -> str:
        state = "closed" if self._closed else f"{self._table.count} preset(s)"
        return f"CmdSet({str(self._config.root)!r}, {state})"
