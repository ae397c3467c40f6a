"""
cmdset — a bounded, persistent registry of named shell-command presets.

Public API
──────────
CmdSet        — store handle (add, remove, find, list, execute, save, load, …)
Preset        — one stored command
CmdSetConfig  — runtime configuration
StatusCode    — integer result codes used by cmdset.api
"""

from cmdset.config import CmdSetConfig
from cmdset.status import StatusCode
from cmdset.store import CmdSet, ImportResult, Preset

__all__ = ["CmdSet", "CmdSetConfig", "ImportResult", "Preset", "StatusCode"]

__version__ = "2.0.0"
