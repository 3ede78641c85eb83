"""
CLI (cli/__main__.py)

Tests `faultline run`, `faultline validate` and `faultline codes`
through click's CliRunner.
"""

import json
import os
import sys
import textwrap

import pytest
from click.testing import CliRunner

from faultline.cli.__main__ import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def isolated(monkeypatch, tmp_path, no_last_exception):
    """Run from an empty directory with argv/path restored afterwards."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(sys, "argv", list(sys.argv))
    monkeypatch.setattr(sys, "path", list(sys.path))
    for key in [k for k in os.environ if k.startswith("FAULTLINE_")]:
        monkeypatch.delenv(key)
    return tmp_path


def write_script(path, body):
    path.write_text(textwrap.dedent(body))
    return str(path)


class TestHelp:

    def test_group_help(self, runner):
        result = runner.invoke(cli, ["--help"], obj={})
        assert result.exit_code == 0
        assert "Faultline" in result.output
        for command in ("run", "validate", "codes"):
            assert command in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"], obj={})
        assert result.exit_code == 0
        assert "faultline" in result.output


class TestCodes:

    def test_default_masks(self, runner, isolated):
        result = runner.invoke(cli, ["codes"], obj={})
        assert result.exit_code == 0
        lines = {line.split()[0]: line for line in result.output.splitlines() if line.strip()}
        assert "background" in lines["WARNING"]
        assert "ignore" in lines["NOTICE"]
        assert "terminal" in lines["RECOVERABLE_ERROR"]
        assert "always" in lines["ERROR"]

    def test_masks_from_config(self, runner, isolated):
        (isolated / "faultline.yaml").write_text("ignore_mask: WARNING\nbackground_mask: NOTICE\n")
        result = runner.invoke(cli, ["codes", "--config", "faultline.yaml"], obj={})
        assert result.exit_code == 0
        lines = {line.split()[0]: line for line in result.output.splitlines() if line.strip()}
        assert "ignore" in lines["WARNING"]
        assert "background" in lines["NOTICE"]

    def test_invalid_masks(self, runner, isolated):
        (isolated / "faultline.yaml").write_text("ignore_mask: ERROR\n")
        result = runner.invoke(cli, ["codes", "-c", "faultline.yaml"], obj={})
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


class TestValidate:

    def test_valid(self, runner, isolated):
        (isolated / "faultline.yaml").write_text(
            "faultline:\n  log_directory: logs\n  mode: production\n"
        )
        (isolated / "logs").mkdir()
        result = runner.invoke(cli, ["validate", "--config", "faultline.yaml"], obj={})
        assert result.exit_code == 0, result.output
        assert "Configuration is valid" in result.output
        assert "production" in result.output
        assert (isolated / "logs" / "errors.txt").exists()

    def test_quiet(self, runner, isolated):
        (isolated / "faultline.json").write_text(json.dumps({"log_destination_terminal": "errors.txt"}))
        result = runner.invoke(cli, ["-q", "validate", "-c", "faultline.json"], obj={})
        assert result.exit_code == 0
        assert result.output == ""

    def test_missing_destination(self, runner, isolated):
        result = runner.invoke(cli, ["validate"], obj={})
        assert result.exit_code == 1
        assert "log destination is required" in result.output

    def test_unwritable_destination(self, runner, isolated):
        (isolated / "faultline.yaml").write_text("log_destination_terminal: missing/errors.txt\n")
        result = runner.invoke(cli, ["validate", "-c", "faultline.yaml"], obj={})
        assert result.exit_code == 1

    def test_env_file(self, runner, isolated):
        (isolated / ".env").write_text("FAULTLINE_LOG_DESTINATION_TERMINAL=errors.txt\nFAULTLINE_MODE=silent\n")
        result = runner.invoke(cli, ["validate"], obj={})
        assert result.exit_code == 0, result.output
        assert "silent" in result.output


class TestRun:

    def test_clean_script(self, runner, isolated):
        script = write_script(isolated / "app.py", """
            import sys
            print("args", sys.argv[1:])
        """)
        result = runner.invoke(cli, ["run", "--log", "errors.txt", script, "one", "two"], obj={})
        assert result.exit_code == 0, result.output
        assert "args ['one', 'two']" in result.output
        assert (isolated / "errors.txt").read_text() == ""

    def test_warnings_logged_without_halting(self, runner, isolated):
        script = write_script(isolated / "app.py", """
            import warnings
            warnings.warn("careful", UserWarning)
            print("finished")
        """)
        result = runner.invoke(cli, ["run", "--log", "errors.txt", script], obj={})
        assert result.exit_code == 0, result.output
        assert "finished" in result.output
        (entry,) = [json.loads(line) for line in (isolated / "errors.txt").read_text().splitlines()]
        assert entry["terminal"] is False
        assert entry["log"][0]["error"] == "USER_WARNING"

    def test_uncaught_exception_halts(self, runner, isolated):
        script = write_script(isolated / "app.py", """
            def main():
                raise RuntimeError("script failure")

            main()
        """)
        result = runner.invoke(
            cli, ["run", "--log", "errors.txt", "--mode", "silent", script], obj={},
        )
        assert result.exit_code == 1
        (entry,) = [json.loads(line) for line in (isolated / "errors.txt").read_text().splitlines()]
        assert entry["terminal"] is True
        assert entry["log"][0]["exception"] == "RuntimeError"
        assert entry["log"][0]["backtrace"][-1]["function"] == "main"

    def test_script_exit_code_kept(self, runner, isolated):
        script = write_script(isolated / "app.py", """
            import sys
            sys.exit(3)
        """)
        result = runner.invoke(cli, ["run", "--log", "errors.txt", script], obj={})
        assert result.exit_code == 3

    def test_invalid_mode(self, runner, isolated):
        script = write_script(isolated / "app.py", "print('never')\n")
        result = runner.invoke(cli, ["run", "--log", "errors.txt", "--mode", "loud", script], obj={})
        assert result.exit_code == 1
        assert "never" not in result.output
