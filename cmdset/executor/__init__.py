from cmdset.executor.compose import CommandPlan, compose, needs_shell
from cmdset.executor.runner import PresetExecutor, normalize_returncode

__all__ = [
    "CommandPlan",
    "compose",
    "needs_shell",
    "PresetExecutor",
    "normalize_returncode",
]
