"""
Unit tests for cmdset/executor/

Coverage plan
─────────────
compose.py → argv vs shell mode, extra-arg quoting, builtins, env
             assignments, unbalanced quotes, empty commands, bad extras
runner.py  → return-code normalisation, fake spawn (plan contents, usage
             bookkeeping, spawn failure, vanished preset), real children
             (echo output, exit status, signal death, missing binary),
             encrypted presets, tampered ciphertext never spawns
"""

import base64
import json
import sys
from unittest.mock import MagicMock

import pytest

from cmdset.config import CmdSetConfig
from cmdset.exceptions import (
    DecryptionError,
    PresetNotFoundError,
    SpawnError,
    ValidationError,
)

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def config(tmp_path):
    return CmdSetConfig(working_dir=str(tmp_path / "store"))


def _store(config, spawn=None):
    from cmdset.executor.runner import PresetExecutor
    from cmdset.store.manager import CmdSet
    executor = PresetExecutor(_spawn=spawn) if spawn is not None else None
    return CmdSet(config=config, executor=executor)


# ─────────────────────────────────────────────────────────────────────────────
# 1. compose()
# ─────────────────────────────────────────────────────────────────────────────

class TestNeedsShell:

    @pytest.mark.parametrize("command", [
        "ls -la",
        "echo hello",
        "git commit -m 'a message'",
        "/usr/bin/env python3 -V",
    ])
    def test_plain_commands_use_argv(self, command):
        from cmdset.executor.compose import needs_shell
        assert needs_shell(command) is False

    @pytest.mark.parametrize("command", [
        "ls | wc -l",
        "echo hi > out.txt",
        "make && make install",
        "echo $HOME",
        "echo `date`",
        "ls *.py",
        "sleep 1; echo done",
        "FOO=bar env",
        "cd /tmp",
        "export X=1",
        "source ~/.bashrc",
    ])
    def test_shell_syntax_detected(self, command):
        from cmdset.executor.compose import needs_shell
        assert needs_shell(command) is True

    def test_unbalanced_quote_raises(self):
        from cmdset.executor.compose import needs_shell
        with pytest.raises(ValidationError):
            needs_shell("echo 'oops")


class TestCompose:

    def test_argv_mode_appends_extra_args(self):
        from cmdset.executor.compose import compose
        plan = compose("echo hello", ["world"])
        assert plan.use_shell is False
        assert plan.args == ["echo", "hello", "world"]
        assert plan.display == "echo hello world"

    def test_argv_mode_keeps_extra_args_verbatim(self):
        from cmdset.executor.compose import compose
        plan = compose("echo", ["a b", "$HOME", "; rm -rf /"])
        assert plan.args == ["echo", "a b", "$HOME", "; rm -rf /"]

    def test_argv_mode_respects_quotes_in_stored_command(self):
        from cmdset.executor.compose import compose
        plan = compose("git commit -m 'two words'")
        assert plan.args == ["git", "commit", "-m", "two words"]

    def test_no_extra_args_display_is_stored_command(self):
        from cmdset.executor.compose import compose
        assert compose("ls -la").display == "ls -la"

    def test_shell_mode_quotes_extra_args(self):
        from cmdset.executor.compose import compose
        plan = compose("ls | grep", ["a b", "$(reboot)"])
        assert plan.use_shell is True
        assert plan.args == "ls | grep 'a b' '$(reboot)'"
        assert plan.display == "ls | grep a b $(reboot)"

    def test_shell_mode_without_extra_args(self):
        from cmdset.executor.compose import compose
        plan = compose("echo $HOME")
        assert plan.args == "echo $HOME"

    def test_unbalanced_quotes_rejected(self):
        from cmdset.executor.compose import compose
        with pytest.raises(ValidationError):
            compose('echo "unterminated')

    def test_blank_command_rejected(self):
        from cmdset.executor.compose import compose
        with pytest.raises(ValidationError):
            compose("   ")

    @pytest.mark.parametrize("bad", [[1], [None], ["ok\x00no"]])
    def test_bad_extra_args_rejected(self, bad):
        from cmdset.executor.compose import compose
        with pytest.raises(ValidationError):
            compose("echo", bad)

    def test_single_string_is_one_argument(self):
        from cmdset.executor.compose import compose
        plan = compose("echo hello", "big world")
        assert plan.args == ["echo", "hello", "big world"]
        assert plan.display == "echo hello big world"

    def test_single_string_quoted_in_shell_mode(self):
        from cmdset.executor.compose import compose
        assert compose("echo $HOME", "a b").args == "echo $HOME 'a b'"

    def test_plan_carries_only_spawn_inputs(self):
        from dataclasses import fields
        from cmdset.executor.compose import CommandPlan
        assert [f.name for f in fields(CommandPlan)] == ["use_shell", "args", "display"]

    def test_empty_string_adds_nothing(self):
        from cmdset.executor.compose import compose
        assert compose("echo hello", "").args == ["echo", "hello"]


# ─────────────────────────────────────────────────────────────────────────────
# 2. Runner with an injected spawn
# ─────────────────────────────────────────────────────────────────────────────

class TestNormalizeReturncode:

    @pytest.mark.parametrize("raw,expected", [(0, 0), (3, 3), (-15, 143), (-9, 137)])
    def test_mapping(self, raw, expected):
        from cmdset.executor.runner import normalize_returncode
        assert normalize_returncode(raw) == expected


class TestExecutorWithFakeSpawn:

    def test_spawn_receives_composed_plan(self, config):
        spawn = MagicMock(return_value=0)
        with _store(config, spawn) as s:
            s.add("greet", "echo hello")
            assert s.execute("greet", ["world"]) == 0
        plan = spawn.call_args.args[0]
        assert plan.args == ["echo", "hello", "world"]
        assert plan.use_shell is False

    def test_string_extra_args_reach_spawn_whole(self, config):
        spawn = MagicMock(return_value=0)
        with _store(config, spawn) as s:
            s.add("greet", "echo hello")
            s.execute("greet", "world")
        assert spawn.call_args.args[0].args == ["echo", "hello", "world"]

    def test_usage_recorded_after_run(self, config):
        spawn = MagicMock(return_value=0)
        with _store(config, spawn) as s:
            s.add("greet", "echo hello")
            s.execute("greet")
            s.execute("greet")
            p = s.find("greet")
            assert p.use_count == 2
            assert p.last_used > 0

    def test_nonzero_exit_still_records_usage(self, config):
        spawn = MagicMock(return_value=7)
        with _store(config, spawn) as s:
            s.add("fail", "false")
            assert s.execute("fail") == 7
            assert s.find("fail").use_count == 1

    def test_signal_exit_is_normalised(self, config):
        spawn = MagicMock(return_value=-15)
        with _store(config, spawn) as s:
            s.add("x", "true")
            assert s.execute("x") == 143

    def test_spawn_oserror_becomes_spawn_error(self, config):
        spawn = MagicMock(side_effect=FileNotFoundError("nope"))
        with _store(config, spawn) as s:
            s.add("x", "no-such-binary")
            with pytest.raises(SpawnError):
                s.execute("x")
            assert s.find("x").use_count == 0

    def test_missing_preset_never_spawns(self, config):
        spawn = MagicMock(return_value=0)
        with _store(config, spawn) as s:
            with pytest.raises(PresetNotFoundError):
                s.execute("ghost")
        spawn.assert_not_called()

    def test_encrypted_preset_runs_plaintext(self, config):
        spawn = MagicMock(return_value=0)
        with _store(config, spawn) as s:
            s.add("secret", "echo topsecret", encrypt=True)
            s.execute("secret")
        assert spawn.call_args.args[0].args == ["echo", "topsecret"]

    def test_preset_removed_while_running_is_tolerated(self, config):
        from cmdset.executor.runner import PresetExecutor
        from cmdset.store.manager import CmdSet

        holder = {}

        def spawn(plan):
            holder["store"].remove("greet")
            return 0

        with CmdSet(config=config, executor=PresetExecutor(_spawn=spawn)) as s:
            holder["store"] = s
            s.add("greet", "echo hello")
            assert s.execute("greet") == 0
            assert s.find("greet") is None

    def test_tampered_ciphertext_never_spawns(self, config):
        with _store(config) as s:
            s.add("secret", "echo topsecret", encrypt=True)
            s.save()

        doc = json.loads(config.preset_path.read_text())
        blob = bytearray(base64.urlsafe_b64decode(doc["presets"][0]["command"]))
        blob[-1] ^= 0x01
        doc["presets"][0]["command"] = base64.urlsafe_b64encode(bytes(blob)).decode()
        config.preset_path.write_text(json.dumps(doc))

        spawn = MagicMock(return_value=0)
        with _store(config, spawn) as s:
            with pytest.raises(DecryptionError):
                s.execute("secret")
            assert s.find("secret").use_count == 0
        spawn.assert_not_called()

    def test_ciphertext_moved_to_other_name_fails(self, config):
        with _store(config) as s:
            s.add("a", "echo a", encrypt=True)
            s.add("b", "echo b", encrypt=True)
            s.save()

        doc = json.loads(config.preset_path.read_text())
        doc["presets"][1]["command"] = doc["presets"][0]["command"]
        config.preset_path.write_text(json.dumps(doc))

        spawn = MagicMock(return_value=0)
        with _store(config, spawn) as s:
            assert s.resolve_command("a") == "echo a"
            with pytest.raises(DecryptionError):
                s.execute("b")
        spawn.assert_not_called()


# ─────────────────────────────────────────────────────────────────────────────
# 3. Runner with real child processes
# ─────────────────────────────────────────────────────────────────────────────

@posix_only
class TestExecutorRealProcesses:

    def test_greet_world(self, config, capfd):
        with _store(config) as s:
            s.add("greet", "echo hello")
            assert s.execute("greet", ["world"]) == 0
        assert capfd.readouterr().out == "hello world\n"

    def test_extra_args_not_interpreted_in_shell_mode(self, config, capfd):
        with _store(config) as s:
            s.add("quoted", "true; echo")
            assert s.execute("quoted", ["$HOME", "a;b"]) == 0
        assert capfd.readouterr().out == "$HOME a;b\n"

    def test_exit_status_propagates(self, config):
        with _store(config) as s:
            s.add("three", "sh -c 'exit 3'")
            assert s.execute("three") == 3
            assert s.find("three").use_count == 1

    def test_signal_death_maps_to_128_plus_n(self, config):
        with _store(config) as s:
            s.add("term", "sh -c 'kill -TERM $$'")
            assert s.execute("term") == 143

    def test_missing_binary_raises_spawn_error(self, config):
        with _store(config) as s:
            s.add("ghost", "definitely-not-a-real-binary-xyz")
            with pytest.raises(SpawnError):
                s.execute("ghost")
            assert s.find("ghost").use_count == 0

    def test_encrypted_preset_output(self, config, capfd):
        with _store(config) as s:
            s.add("secret", "echo topsecret", encrypt=True)
            assert s.execute("secret") == 0
        assert capfd.readouterr().out == "topsecret\n"
