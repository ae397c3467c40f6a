"""
Unit tests for cmdset/api.py and cmdset/status.py

Coverage plan
─────────────
status.py → numeric values, error_message for known and unknown codes
api.py    → each call maps its failure to the matching negative code;
            execute returns the child's exit code on success
"""

import sys
from unittest.mock import MagicMock

import pytest

from cmdset import api
from cmdset.status import StatusCode, error_message


@pytest.fixture
def handle(tmp_path, monkeypatch):
    monkeypatch.delenv("CMDSET_PASSPHRASE", raising=False)
    monkeypatch.delenv("CMDSET_KDF_ITERATIONS", raising=False)
    h = api.init(str(tmp_path / "store"))
    yield h
    api.cleanup(h)


# ─────────────────────────────────────────────────────────────────────────────
# 1. Status codes
# ─────────────────────────────────────────────────────────────────────────────

class TestStatusCode:

    def test_values(self):
        assert StatusCode.OK == 0
        assert StatusCode.CAPACITY_EXCEEDED == -1
        assert StatusCode.IO_ERROR == -2
        assert StatusCode.NOT_FOUND == -3
        assert StatusCode.EXISTS == -4
        assert StatusCode.VALIDATION_ERROR == -5
        assert StatusCode.DECRYPTION_ERROR == -6
        assert StatusCode.CORRUPT_FORMAT == -7

    def test_every_code_has_a_message(self):
        for code in StatusCode:
            assert error_message(code) != "Unknown error"

    def test_unknown_code(self):
        assert error_message(-99) == "Unknown error"

    def test_exceptions_carry_codes(self):
        from cmdset.exceptions import CorruptFormatError, PresetNotFoundError
        assert PresetNotFoundError("x").status is StatusCode.NOT_FOUND
        assert CorruptFormatError("bad").status is StatusCode.CORRUPT_FORMAT


# ─────────────────────────────────────────────────────────────────────────────
# 2. Flat API
# ─────────────────────────────────────────────────────────────────────────────

class TestApi:

    def test_add_find_count(self, handle):
        assert api.add(handle, "greet", "echo hello") == StatusCode.OK
        assert api.count(handle) == 1
        assert api.find(handle, "greet").command == "echo hello"

    def test_add_duplicate(self, handle):
        api.add(handle, "a", "true")
        assert api.add(handle, "a", "true") == StatusCode.EXISTS
        assert api.count(handle) == 1

    def test_add_invalid(self, handle):
        assert api.add(handle, "", "true") == StatusCode.VALIDATION_ERROR
        assert api.add(handle, "a", "x" * 500) == StatusCode.VALIDATION_ERROR

    def test_remove_missing(self, handle):
        assert api.remove(handle, "ghost") == StatusCode.NOT_FOUND

    def test_find_missing_is_none(self, handle):
        assert api.find(handle, "ghost") is None

    def test_list_presets(self, handle):
        api.add(handle, "a", "true")
        api.add(handle, "b", "true")
        assert [p.name for p in api.list_presets(handle)] == ["a", "b"]

    def test_execute_missing(self, handle):
        assert api.execute(handle, "ghost") == StatusCode.NOT_FOUND

    @pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")
    def test_execute_returns_exit_code(self, handle):
        api.add(handle, "three", "sh -c 'exit 3'")
        assert api.execute(handle, "three") == 3

    @pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")
    def test_execute_string_argument_is_one_word(self, handle, capfd):
        api.add(handle, "greet", "echo hello")
        assert api.execute(handle, "greet", "world") == 0
        assert capfd.readouterr().out == "hello world\n"

    def test_init_with_bad_environment_raises_init_error(self, tmp_path, monkeypatch):
        from cmdset.exceptions import InitError
        monkeypatch.setenv("CMDSET_KDF_ITERATIONS", "abc")
        with pytest.raises(InitError):
            api.init(str(tmp_path / "bad"))

    def test_execute_spawn_failure(self, handle):
        handle._executor._spawn = MagicMock(side_effect=OSError("boom"))
        api.add(handle, "x", "true")
        assert api.execute(handle, "x") == StatusCode.SPAWN_ERROR

    def test_save_load_export_import(self, handle, tmp_path):
        api.add(handle, "a", "true")
        assert api.save(handle) == StatusCode.OK
        assert api.load(handle) == StatusCode.OK
        out = str(tmp_path / "out.json")
        assert api.export(handle, out) == StatusCode.OK
        assert api.import_(handle, out) == StatusCode.OK
        assert api.count(handle) == 1

    def test_import_missing_file(self, handle, tmp_path):
        assert api.import_(handle, str(tmp_path / "nope.json")) == StatusCode.IO_ERROR

    def test_closed_handle(self, handle):
        api.cleanup(handle)
        assert api.count(handle) == 0
        assert api.find(handle, "a") is None
        assert api.list_presets(handle) == []
        assert api.add(handle, "a", "true") == StatusCode.VALIDATION_ERROR
