"""
Status-code surface over CmdSet for callers that prefer integer results.

Every call takes the handle returned by init() and reports failures as a
negative StatusCode instead of raising. execute() returns the child's exit
code (>= 0) on success, so one int carries both outcomes::

    handle = api.init("/tmp/presets")
    if api.add(handle, "greet", "echo hello") != StatusCode.OK:
        ...
    rc = api.execute(handle, "greet", ["world"])
    if rc < 0:
        print(api.error_message(rc))
    api.cleanup(handle)
"""

import logging
from typing import Callable, Optional, Sequence

from cmdset.exceptions import CmdSetError
from cmdset.status import StatusCode, error_message
from cmdset.store.manager import CmdSet
from cmdset.store.models import Preset

__all__ = [
    "StatusCode",
    "error_message",
    "init",
    "cleanup",
    "add",
    "remove",
    "find",
    "list_presets",
    "count",
    "execute",
    "save",
    "load",
    "export",
    "import_",
]

logger = logging.getLogger(__name__)


def _status(call: Callable[[], object]) -> int:
    try:
        call()
    except CmdSetError as exc:
        logger.debug("cmdset call failed: %s", exc)
        return int(exc.status)
    return int(StatusCode.OK)


def init(working_dir: Optional[str] = None, passphrase: Optional[str] = None) -> CmdSet:
    """Open a store handle. Raises InitError (the one call that cannot return a code)."""
    return CmdSet(working_dir=working_dir, passphrase=passphrase)


def cleanup(handle: CmdSet) -> None:
    handle.cleanup()


def add(handle: CmdSet, name: str, command: str, encrypt: bool = False) -> int:
    return _status(lambda: handle.add(name, command, encrypt=encrypt))


def remove(handle: CmdSet, name: str) -> int:
    return _status(lambda: handle.remove(name))


def find(handle: CmdSet, name: str) -> Optional[Preset]:
    """Stored representation of *name*, or None (also on a closed handle)."""
    try:
        return handle.find(name)
    except CmdSetError:
        return None


def list_presets(handle: CmdSet) -> list:
    try:
        return handle.list()
    except CmdSetError:
        return []


def count(handle: CmdSet) -> int:
    return 0 if handle.closed else handle.count


def execute(handle: CmdSet, name: str, extra_args: Optional[Sequence[str]] = None) -> int:
    """
    Exit code of the preset, or a negative StatusCode.

    *extra_args* may be a sequence of arguments or one string, which is
    passed as a single argument.
    """
    try:
        return handle.execute(name, extra_args or ())
    except CmdSetError as exc:
        logger.debug("execute %r failed: %s", name, exc)
        return int(exc.status)


def save(handle: CmdSet) -> int:
    return _status(handle.save)


def load(handle: CmdSet) -> int:
    return _status(handle.load)


def export(handle: CmdSet, path: str) -> int:
    return _status(lambda: handle.export(path))


def import_(handle: CmdSet, path: str) -> int:
    return _status(lambda: handle.import_(path))
