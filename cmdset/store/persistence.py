"""
Preset file persistence — JSON documents on local disk.

Document shape::

    {
      "version": "2.0",
      "presets": [
        {"name": "ls-all", "command": "ls -la", "encrypt": false,
         "created_at": 1700000000, "last_used": 0, "use_count": 0},
        ...
      ]
    }

Export files add ``"exported_at"`` and ``"count"`` at the top level and are
otherwise identical, so an export can be loaded or imported anywhere.

Encrypted presets are written as their ciphertext token; the persistence
layer never sees plaintext of an encrypted command.
"""

import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Union

from cmdset.config import MAX_PRESETS
from cmdset.exceptions import (
    CapacityExceededError,
    CorruptFormatError,
    PersistenceError,
    PresetExistsError,
    ValidationError,
)
from cmdset.store.models import Preset, validate_command
from cmdset.store.table import PresetTable

__all__ = [
    "FORMAT_VERSION",
    "save_table",
    "export_table",
    "load_table",
    "read_presets",
]

logger = logging.getLogger(__name__)

FORMAT_VERSION = "2.0"

PathLike = Union[str, "os.PathLike[str]"]


# ── Encoding ──────────────────────────────────────────────────────────────────

def _document(table: PresetTable) -> dict:
    return {
        "version": FORMAT_VERSION,
        "presets": [p.to_dict() for p in table.list()],
    }


def _atomic_write_json(path: Path, payload: dict) -> None:
    """Write *payload* next to *path*, then rename over it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2)
            fh.write("\n")
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def save_table(table: PresetTable, path: PathLike) -> None:
    """
    Persist every active preset of *table* to *path*.

    Raises:
        PersistenceError: the file could not be written. *table* is untouched.
    """
    target = Path(path)
    try:
        _atomic_write_json(target, _document(table))
    except OSError as exc:
        raise PersistenceError(f"Could not save presets to {target}: {exc}") from exc
    logger.info("Saved %d preset(s) to %s", table.count, target)


def export_table(table: PresetTable, path: PathLike) -> int:
    """
    Write an export document for *table* to *path*.

    Returns:
        Number of presets exported.
    """
    target = Path(path)
    payload = _document(table)
    payload["exported_at"] = int(time.time())
    payload["count"] = len(payload["presets"])
    try:
        _atomic_write_json(target, payload)
    except OSError as exc:
        raise PersistenceError(f"Could not create export file {target}: {exc}") from exc
    logger.info("Exported %d preset(s) to %s", payload["count"], target)
    return payload["count"]


# ── Decoding ──────────────────────────────────────────────────────────────────

def _field(raw: dict, key: str, kind: type, default: Any, where: str) -> Any:
    if key not in raw:
        if default is None:
            raise CorruptFormatError(f"{where}: missing field {key!r}")
        return default
    value = raw[key]
    # bool is an int subclass; keep the two apart.
    if kind is int and isinstance(value, bool):
        raise CorruptFormatError(f"{where}: field {key!r} must be an integer")
    if not isinstance(value, kind):
        raise CorruptFormatError(
            f"{where}: field {key!r} must be {kind.__name__}, got {type(value).__name__}"
        )
    return value


def _decode_preset(raw: Any, position: int) -> Preset:
    where = f"preset #{position}"
    if not isinstance(raw, dict):
        raise CorruptFormatError(f"{where}: expected an object")
    name      = _field(raw, "name", str, None, where)
    command   = _field(raw, "command", str, None, where)
    encrypt   = _field(raw, "encrypt", bool, False, where)
    created   = _field(raw, "created_at", int, int(time.time()), where)
    last_used = _field(raw, "last_used", int, 0, where)
    use_count = _field(raw, "use_count", int, 0, where)
    if min(created, last_used, use_count) < 0:
        raise CorruptFormatError(f"{where}: timestamps and counters must be >= 0")
    if not encrypt:
        try:
            validate_command(command)
        except ValidationError as exc:
            raise CorruptFormatError(f"{where} ({name!r}): {exc}") from exc
    return Preset(
        name=name,
        command=command,
        encrypt=encrypt,
        created_at=created,
        last_used=last_used,
        use_count=use_count,
    )


def read_presets(path: PathLike) -> list[Preset]:
    """
    Parse the preset document at *path* without building a table.

    Raises:
        PersistenceError:   the file cannot be read.
        CorruptFormatError: invalid JSON or malformed records.
    """
    source = Path(path)
    try:
        text = source.read_text(encoding="utf-8")
    except OSError as exc:
        raise PersistenceError(f"Could not open preset file {source}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise CorruptFormatError(f"{source} is not UTF-8 text") from exc

    try:
        doc = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CorruptFormatError(f"Could not parse JSON in {source}: {exc}") from exc

    if not isinstance(doc, dict) or not isinstance(doc.get("presets"), list):
        raise CorruptFormatError(
            f"Invalid preset file format in {source} - missing presets array"
        )
    version = doc.get("version", FORMAT_VERSION)
    if str(version).split(".")[0] != FORMAT_VERSION.split(".")[0]:
        raise CorruptFormatError(f"Unsupported preset file version {version!r} in {source}")

    return [_decode_preset(raw, i) for i, raw in enumerate(doc["presets"])]


def load_table(path: PathLike, capacity: int = MAX_PRESETS) -> PresetTable:
    """
    Build a fresh PresetTable from the file at *path*.

    A missing file yields an empty table. Duplicate names, invalid names and
    more presets than *capacity* are CorruptFormatError, never dropped.
    """
    source = Path(path)
    table = PresetTable(capacity=capacity)
    if not source.exists():
        logger.debug("No preset file at %s; starting empty", source)
        return table

    for preset in read_presets(source):
        try:
            table.restore(preset)
        except PresetExistsError as exc:
            raise CorruptFormatError(f"Duplicate preset name {preset.name!r} in {source}") from exc
        except CapacityExceededError as exc:
            raise CorruptFormatError(
                f"{source} holds more than {capacity} presets"
            ) from exc
        except ValidationError as exc:
            raise CorruptFormatError(f"Invalid preset in {source}: {exc}") from exc

    logger.info("Loaded %d preset(s) from %s", table.count, source)
    return table
