"""
PresetTable — bounded, ordered, in-memory collection of Preset records.

The table owns the uniqueness and capacity invariants:

* at most ``capacity`` active presets,
* no two active presets share a name (exact, case-sensitive),
* iteration order is insertion order; removing a preset compacts it out
  without reordering the survivors.

Records handed out by find()/list()/get() are copies, so the only way to
change table state is through the methods below.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterator, Optional

from cmdset.config import MAX_PRESETS
from cmdset.exceptions import (
    CapacityExceededError,
    PresetExistsError,
    PresetNotFoundError,
    ValidationError,
)
from cmdset.store.models import Preset, validate_name

__all__ = ["PresetTable"]

logger = logging.getLogger(__name__)


class PresetTable:
    """Fixed-capacity preset table with a name index."""

    def __init__(self, capacity: int = MAX_PRESETS) -> None:
        if capacity < 1:
            raise ValidationError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._order: list[Preset] = []
        self._index: dict[str, Preset] = {}

    # ── Internal helpers ──────────────────────────────────────────────────

    def _check_insertable(self, name: str) -> None:
        validate_name(name)
        if name in self._index:
            raise PresetExistsError(name)
        if len(self._order) >= self._capacity:
            raise CapacityExceededError(
                f"Maximum number of presets reached ({self._capacity})"
            )

    def _append(self, preset: Preset) -> None:
        self._order.append(preset)
        self._index[preset.name] = preset

    def _lookup(self, name: str) -> Preset:
        preset = self._index.get(name)
        if preset is None:
            raise PresetNotFoundError(name)
        return preset

    # ── Public API ────────────────────────────────────────────────────────

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def count(self) -> int:
        """Number of active presets."""
        return len(self._order)

    def is_full(self) -> bool:
        return len(self._order) >= self._capacity

    def insert(self, name: str, command: str, encrypt: bool = False) -> Preset:
        """
        Add a new preset with fresh metadata.

        *command* is stored as given; the caller has already encrypted it
        when *encrypt* is True.

        Raises:
            ValidationError:        bad name or empty command.
            PresetExistsError:      an active preset already has *name*.
            CapacityExceededError:  the table is full.
        """
        self._check_insertable(name)
        if not isinstance(command, str) or not command:
            raise ValidationError("Command must be a non-empty string")
        preset = Preset(name=name, command=command, encrypt=bool(encrypt))
        self._append(preset)
        logger.debug("Inserted preset %r (encrypt=%s)", name, preset.encrypt)
        return replace(preset)

    def restore(self, preset: Preset) -> None:
        """
        Insert an already-built record, keeping its timestamps and counters.

        Used by the persistence layer; enforces the same invariants as insert().
        """
        self._check_insertable(preset.name)
        if not isinstance(preset.command, str) or not preset.command:
            raise ValidationError(f"Preset {preset.name!r} has an empty command")
        self._append(replace(preset, active=True))

    def remove(self, name: str) -> Preset:
        """
        Drop the active preset called *name* and return it (active=False).

        Raises:
            PresetNotFoundError: no active preset has that name.
        """
        preset = self._lookup(name)
        del self._index[name]
        self._order.remove(preset)
        preset.active = False
        logger.debug("Removed preset %r", name)
        return replace(preset)

    def find(self, name: str) -> Optional[Preset]:
        """Return a copy of the active preset called *name*, or None."""
        preset = self._index.get(name)
        return replace(preset) if preset is not None else None

    def list(self) -> list[Preset]:
        """Copies of all active presets, in insertion order."""
        return [replace(p) for p in self._order]

    def get(self, index: int) -> Preset:
        """Return a copy of the *index*-th active preset."""
        if not 0 <= index < len(self._order):
            raise PresetNotFoundError(f"#{index}")
        return replace(self._order[index])

    def update_usage(self, name: str, timestamp: int, use_count: int) -> None:
        """
        Record an execution of *name*.

        Raises:
            PresetNotFoundError: the preset was removed in the meantime.
        """
        preset = self._lookup(name)
        preset.last_used = int(timestamp)
        preset.use_count = int(use_count)

    def clear(self) -> None:
        for preset in self._order:
            preset.active = False
        self._order.clear()
        self._index.clear()

    # ── Container protocol ────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __iter__(self) -> Iterator[Preset]:
        return iter(self.list())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PresetTable):
            return NotImplemented
        return self._capacity == other._capacity and self._order == other._order

    def __repr__(self) -> str:
        return f"PresetTable(count={len(self._order)}, capacity={self._capacity})"
