"""
Command composition — turns a stored command plus extra arguments into
something subprocess can run without reinterpreting the extra arguments.

Policy
──────
* argv mode  — the stored command has no shell-only syntax. It is split with
  POSIX shlex rules and the extra arguments are appended as separate argv
  entries. No shell is involved.
* shell mode — the stored command needs a shell (pipes, redirection,
  substitutions, globs, env assignments, builtins, ...). It runs through the
  platform shell and every extra argument is shlex-quoted, so each one
  reaches the command as a single literal word.

Either way the human-readable form is ``stored + " " + " ".join(extra_args)``.
"""

import logging
import re
import shlex
from dataclasses import dataclass
from typing import Sequence, Union

from cmdset.exceptions import ValidationError

__all__ = ["CommandPlan", "compose", "needs_shell"]

logger = logging.getLogger(__name__)

# Characters only a shell gives meaning to.
_SHELL_CHARS = frozenset("|&;<>()$`*?[]{}~#!\n")
# A leading NAME=value word is an environment assignment.
_ASSIGNMENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=")
# Builtins that have no standalone executable (or behave differently without a shell).
_SHELL_BUILTINS = frozenset({
    ".", "alias", "cd", "eval", "exec", "exit", "export", "read", "readonly",
    "set", "shift", "source", "trap", "type", "ulimit", "umask", "unalias",
    "unset", "wait",
})


@dataclass
class CommandPlan:
    """
    How one preset invocation will be spawned.

    use_shell — True: ``args`` is a single string for the shell
                False: ``args`` is an argv list
    args      — what subprocess receives
    display   — space-joined command line for logs and messages
    """
    use_shell: bool
    args:      Union[str, list]
    display:   str

    def __str__(self) -> str:
        mode = "shell" if self.use_shell else "argv"
        return f"CommandPlan({mode}: {self.display!r})"


def _split(command: str) -> list[str]:
    try:
        return shlex.split(command, posix=True)
    except ValueError as exc:
        raise ValidationError(f"Cannot parse command {command!r}: {exc}") from exc


def needs_shell(command: str) -> bool:
    """
    Return True iff *command* uses syntax that only a shell interprets.

    Conservative: quoted metacharacters also select shell mode. That is
    always correct (the shell honours the quotes), just not argv-pure.
    """
    if any(ch in _SHELL_CHARS for ch in command):
        return True
    tokens = _split(command)
    if not tokens:
        return False
    return bool(_ASSIGNMENT_RE.match(tokens[0])) or tokens[0] in _SHELL_BUILTINS


def compose(command: str, extra_args: Union[str, Sequence[str]] = ()) -> CommandPlan:
    """
    Build the CommandPlan for *command* with *extra_args* appended.

    A single string in *extra_args* is one argument.

    Raises:
        ValidationError: unbalanced quotes, an empty command, or a
                         non-string extra argument.
    """
    if isinstance(extra_args, str):
        extra = [extra_args] if extra_args else []
    else:
        extra = list(extra_args or ())
    for arg in extra:
        if not isinstance(arg, str):
            raise ValidationError(f"Extra arguments must be strings, got {arg!r}")
        if "\x00" in arg:
            raise ValidationError("Extra arguments must not contain NUL bytes")

    display = " ".join([command, *extra]) if extra else command

    if needs_shell(command):
        quoted = " ".join(shlex.quote(a) for a in extra)
        line = f"{command} {quoted}" if quoted else command
        plan = CommandPlan(use_shell=True, args=line, display=display)
    else:
        argv = _split(command)
        if not argv:
            raise ValidationError("Command is empty after parsing")
        plan = CommandPlan(use_shell=False, args=argv + extra, display=display)

    logger.debug("Composed %s", plan)
    return plan
