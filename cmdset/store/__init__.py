"""
store — the preset store engine.

Public API
──────────
Preset        — dataclass representing one named command
ImportResult  — outcome of CmdSet.import_()
PresetTable   — bounded, ordered, in-memory table (uniqueness + capacity)
CmdSet        — store handle: add, remove, find, list, execute, save, load, …
"""

from cmdset.store.models import ImportResult, Preset
from cmdset.store.table import PresetTable
from cmdset.store.manager import CmdSet

__all__ = ["Preset", "ImportResult", "PresetTable", "CmdSet"]
