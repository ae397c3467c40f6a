"""
CLI entry point for cmdset.

Usage
─────
  # Store presets (optionally encrypted)
  cmdset add ls-all "ls -la"
  cmdset add -e deploy "ssh prod ./deploy.sh"

  # Run a preset with extra arguments appended
  cmdset exec ls-all /tmp
  cmdset run deploy --dry-run

  # Inspect
  cmdset list
  cmdset list --json
  cmdset show deploy --reveal

  # Move presets between machines
  cmdset export backup.json
  cmdset import backup.json

Global options go before the subcommand: --working-dir DIR, --ask-passphrase,
--debug. Exit status is 0 on success, 1 on any error, and the preset's own
exit status for ``exec``.

Subcommands are implemented as standalone functions (cmd_add, cmd_list,
cmd_exec, ...) so they can be unit-tested without invoking argparse.
"""

import argparse
import getpass
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from cmdset.exceptions import CmdSetError, PersistenceError, PresetNotFoundError
from cmdset.store.manager import CmdSet
from cmdset.store.models import ImportResult, Preset

__all__ = [
    "build_parser",
    "cmd_add",
    "cmd_remove",
    "cmd_list",
    "cmd_show",
    "cmd_exec",
    "cmd_export",
    "cmd_import",
    "cmd_save",
    "cmd_load",
    "cmd_status",
    "main",
]

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_FILE = "cmdset_export.json"

# Short forms of the subcommands.
_CANONICAL = {
    "a":   "add",
    "rm":  "remove",
    "ls":  "list",
    "e":   "exec",
    "run": "exec",
    "exp": "export",
    "imp": "import",
    "s":   "status",
}


# ── Argument parser ────────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    """
    Build and return the top-level argument parser.

    Subcommands: add | remove | list | show | exec | export | import |
                 save | load | status
    """
    parser = argparse.ArgumentParser(
        prog="cmdset",
        description="CmdSet - Command Preset Manager",
    )
    parser.add_argument(
        "--working-dir", "-d",
        default=None,
        dest="working_dir",
        metavar="DIR",
        help="Directory for presets and key material (default: $CMDSET_WORKING_DIR or ~/.cmdset)",
    )
    parser.add_argument(
        "--ask-passphrase",
        action="store_true",
        default=False,
        dest="ask_passphrase",
        help="Prompt for a master passphrase instead of using the key file",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable verbose debug logging",
    )

    sub = parser.add_subparsers(dest="subcommand")

    # ── add ───────────────────────────────────────────────────────────────
    add = sub.add_parser("add", aliases=["a"], help="Add a new preset")
    add.add_argument("name", help="Preset name")
    add.add_argument("cmd", metavar="command", help="Command line to store")
    add.add_argument(
        "-e", "--encrypt",
        action="store_true",
        default=False,
        help="Encrypt the stored command",
    )

    # ── remove ────────────────────────────────────────────────────────────
    rm = sub.add_parser("remove", aliases=["rm"], help="Remove a preset")
    rm.add_argument("name", help="Preset name to remove")

    # ── list ──────────────────────────────────────────────────────────────
    lst = sub.add_parser("list", aliases=["ls"], help="List all presets")
    lst.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Output in JSON format",
    )

    # ── show ──────────────────────────────────────────────────────────────
    show = sub.add_parser("show", help="Show one preset with its usage metadata")
    show.add_argument("name", help="Preset name")
    show.add_argument(
        "--reveal",
        action="store_true",
        default=False,
        help="Decrypt and print the command of an encrypted preset",
    )

    # ── exec ──────────────────────────────────────────────────────────────
    ex = sub.add_parser("exec", aliases=["e", "run"], help="Execute a preset")
    ex.add_argument("name", help="Preset name to execute")
    ex.add_argument(
        "args",
        nargs=argparse.REMAINDER,
        help="Additional arguments appended to the command",
    )

    # ── export / import ───────────────────────────────────────────────────
    exp = sub.add_parser("export", aliases=["exp"], help="Export presets to a JSON file")
    exp.add_argument("filename", nargs="?", default=DEFAULT_EXPORT_FILE,
                     help=f"Export filename (default: {DEFAULT_EXPORT_FILE})")
    imp = sub.add_parser("import", aliases=["imp"], help="Import presets from a JSON file")
    imp.add_argument("filename", nargs="?", default=DEFAULT_EXPORT_FILE,
                     help=f"Import filename (default: {DEFAULT_EXPORT_FILE})")

    # ── persistence checkpoints / status ──────────────────────────────────
    sub.add_parser("save", help="Save presets to disk")
    sub.add_parser("load", help="Reload presets from disk")
    sub.add_parser("status", aliases=["s"], help="Show store status")

    return parser


# ── Helpers ───────────────────────────────────────────────────────────────────


def _autosave(store: CmdSet) -> None:
    """Persist after a mutation; a failed save is a warning, not an error."""
    try:
        store.save()
    except PersistenceError as exc:
        print(f"Warning: Failed to save presets: {exc}", file=sys.stderr)


def _fmt_time(ts: int) -> str:
    if not ts:
        return "never"
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


def _preset_json(preset: Preset) -> dict:
    return {
        "name":       preset.name,
        "command":    preset.display_command,
        "encrypt":    preset.encrypt,
        "created_at": preset.created_at,
        "last_used":  preset.last_used,
        "use_count":  preset.use_count,
    }


# ── Command implementations ───────────────────────────────────────────────────


def cmd_add(store: CmdSet, name: str, command: str, encrypt: bool = False) -> Preset:
    """Add a preset and save the store."""
    preset = store.add(name, command, encrypt=encrypt)
    _autosave(store)
    print(f"Preset '{name}' added successfully")
    return preset


def cmd_remove(store: CmdSet, name: str) -> None:
    """Remove a preset and save the store."""
    store.remove(name)
    _autosave(store)
    print(f"Preset '{name}' removed successfully")


def cmd_list(store: CmdSet, as_json: bool = False) -> None:
    """Print presets to stdout. Encrypted commands are shown as [ENCRYPTED]."""
    presets = store.list()
    if as_json:
        print(json.dumps([_preset_json(p) for p in presets], indent=2))
        return
    if not presets:
        print("No presets found")
        return
    print("Presets:")
    print("--------")
    for i, preset in enumerate(presets, 1):
        print(f"{i}. {preset.name}: {preset.display_command}")
    print(f"\nTotal: {len(presets)} preset(s)")


def cmd_show(store: CmdSet, name: str, reveal: bool = False) -> Preset:
    """Print one preset; with *reveal*, decrypt an encrypted command."""
    preset = store.resolve(name) if reveal else store.find(name)
    if preset is None:
        raise PresetNotFoundError(name)
    command = preset.command if reveal else preset.display_command
    print(f"Name:       {preset.name}")
    print(f"Command:    {command}")
    print(f"Encrypted:  {'yes' if preset.encrypt else 'no'}")
    print(f"Created:    {_fmt_time(preset.created_at)}")
    print(f"Last used:  {_fmt_time(preset.last_used)}")
    print(f"Use count:  {preset.use_count}")
    return preset


def cmd_exec(store: CmdSet, name: str, args: Optional[list] = None) -> int:
    """Run a preset, persist its usage, and return the child's exit code."""
    extra = list(args or [])
    if extra and extra[0] == "--":
        extra = extra[1:]
    exit_code = store.execute(name, extra)
    _autosave(store)
    return exit_code


def cmd_export(store: CmdSet, filename: str) -> Path:
    """Export all presets (ciphertext stays ciphertext) to *filename*."""
    out_path = Path(filename)
    exported = store.export(str(out_path))
    print(f"Exported {exported} preset(s) to '{out_path}'")
    return out_path


def cmd_import(store: CmdSet, filename: str) -> ImportResult:
    """Import presets from *filename*, skip existing names, save the store."""
    result = store.import_(filename)
    _autosave(store)
    print(f"Imported {len(result.imported)} preset(s) from '{filename}'")
    for name in result.skipped:
        print(f"  skipped '{name}' (already exists)")
    return result


def cmd_save(store: CmdSet) -> None:
    store.save()
    print(f"Saved {store.count} preset(s) to '{store.preset_path}'")


def cmd_load(store: CmdSet) -> int:
    loaded = store.load()
    print(f"Loaded {loaded} preset(s) from '{store.preset_path}'")
    return loaded


def cmd_status(store: CmdSet) -> None:
    print("Session Status:")
    print(f"  Working directory: {store.working_dir}")
    print(f"  Preset file:       {store.preset_path}")
    print(f"  Key source:        {store.key_source.value}")
    print(f"  Active presets:    {store.count} / {store.capacity}")


# ── Entry point ───────────────────────────────────────────────────────────────


def _dispatch(store: CmdSet, ns: argparse.Namespace, subcommand: str) -> int:
    if subcommand == "add":
        cmd_add(store, ns.name, ns.cmd, encrypt=ns.encrypt)
    elif subcommand == "remove":
        cmd_remove(store, ns.name)
    elif subcommand == "list":
        cmd_list(store, as_json=ns.json)
    elif subcommand == "show":
        cmd_show(store, ns.name, reveal=ns.reveal)
    elif subcommand == "exec":
        return cmd_exec(store, ns.name, ns.args)
    elif subcommand == "export":
        cmd_export(store, ns.filename)
    elif subcommand == "import":
        cmd_import(store, ns.filename)
    elif subcommand == "save":
        cmd_save(store)
    elif subcommand == "load":
        cmd_load(store)
    elif subcommand == "status":
        cmd_status(store)
    return 0


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point. Returns exit code."""
    parser = build_parser()
    ns = parser.parse_args(argv)

    level = logging.DEBUG if ns.debug else logging.WARNING
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")

    if ns.subcommand is None:
        parser.print_help()
        return 1
    subcommand = _CANONICAL.get(ns.subcommand, ns.subcommand)

    passphrase = None
    if ns.ask_passphrase:
        passphrase = getpass.getpass("Enter master password for encryption: ")

    try:
        with CmdSet(working_dir=ns.working_dir, passphrase=passphrase) as store:
            return _dispatch(store, ns, subcommand)
    except CmdSetError as exc:
        logger.debug("%s failed", subcommand, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nOperation cancelled", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
