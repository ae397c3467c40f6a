"""
PresetExecutor — resolves a preset, spawns it, waits, records usage.

Flow
────
  1. store.resolve_command(name)   → PresetNotFoundError / DecryptionError
  2. compose(command, extra_args)  → CommandPlan (argv or shell mode)
  3. spawn and wait                → SpawnError if the child cannot start
  4. store.update_usage(name)      → only after the child has exited

The child inherits stdin/stdout/stderr. There is no timeout: execute()
blocks for the whole lifetime of the child.
"""

from __future__ import annotations

import logging
import subprocess
from typing import TYPE_CHECKING, Callable, Optional, Sequence

from cmdset.exceptions import PresetNotFoundError, SpawnError
from cmdset.executor.compose import CommandPlan, compose

if TYPE_CHECKING:
    from cmdset.store.manager import CmdSet

__all__ = ["PresetExecutor", "normalize_returncode"]

logger = logging.getLogger(__name__)


def normalize_returncode(returncode: int) -> int:
    """Map subprocess's -N (killed by signal N) to the shell's 128 + N."""
    return 128 - returncode if returncode < 0 else returncode


def _default_spawn(plan: CommandPlan) -> int:
    completed = subprocess.run(plan.args, shell=plan.use_shell, check=False)
    return completed.returncode


class PresetExecutor:
    """
    Runs presets of a CmdSet store.

    Usage (production)::

        code = PresetExecutor().execute(store, "greet", ["world"])

    Usage (tests)::

        spawn = MagicMock(return_value=0)
        PresetExecutor(_spawn=spawn).execute(store, "greet")
    """

    def __init__(self, _spawn: Optional[Callable[[CommandPlan], int]] = None) -> None:
        self._spawn = _spawn or _default_spawn

    def execute(self, store: "CmdSet", name: str, extra_args: Sequence[str] = ()) -> int:
        """
        Run preset *name* with *extra_args* appended and return its exit code.

        Raises:
            PresetNotFoundError: no such preset.
            DecryptionError:     the stored ciphertext does not authenticate;
                                 nothing is spawned.
            ValidationError:     the command cannot be tokenised.
            SpawnError:          the child process could not be created.
        """
        command = store.resolve_command(name)
        plan = compose(command, extra_args)

        logger.info("Executing preset %r (%s mode)", name, "shell" if plan.use_shell else "argv")
        try:
            returncode = self._spawn(plan)
        except OSError as exc:
            raise SpawnError(f"Could not start preset {name!r}: {exc}") from exc

        exit_code = normalize_returncode(returncode)
        logger.info("Preset %r exited with code %d", name, exit_code)

        try:
            store.update_usage(name)
        except PresetNotFoundError:
            logger.warning("Preset %r vanished during execution; usage not recorded", name)
        return exit_code
