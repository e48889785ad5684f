"""Tests for the stash command line."""

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from stash import cli, store, supervisor
from stash.errors import LaunchError


@pytest.fixture
def config_home(monkeypatch, tmp_path):
    """Point the config lookup at an empty temporary directory."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    return tmp_path / "config"


def _write_config(config_home: Path, text: str) -> None:
    path = config_home / "stash" / "stash.toml"
    path.parent.mkdir(parents=True)
    path.write_text(text)


def test_parse_args_strips_double_dash():
    args = cli.parse_args(["--retain", "3", "--", "ls", "-la"])
    assert args.cmd == ["ls", "-la"]
    assert args.retain == 3


def test_parse_args_without_double_dash():
    args = cli.parse_args(["make", "test"])
    assert args.cmd == ["make", "test"]


def test_parse_args_ignore_list_stops_at_double_dash():
    args = cli.parse_args(["--ignore", "vim", "htop", "--", "vim", "file.txt"])
    assert args.ignore == ["vim", "htop"]
    assert args.cmd == ["vim", "file.txt"]


def test_parse_args_repeated_ignore_extends():
    args = cli.parse_args(["--ignore", "vim", "--ignore", "less", "--", "ls"])
    assert args.ignore == ["vim", "less"]


def test_parse_args_requires_command():
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_args([])
    assert exc_info.value.code == 2


@pytest.mark.parametrize("value", ["0", "-1", "many"])
def test_parse_args_rejects_bad_retain(value):
    with pytest.raises(SystemExit):
        cli.parse_args(["--retain", value, "--", "ls"])


def test_build_invocation_defaults(config_home):
    invocation = cli.build_invocation(cli.parse_args(["--", "ls"]))

    assert invocation.cmd == ["ls"]
    assert invocation.retain == 20
    assert invocation.log_dir == Path.home() / ".cache" / "stash"
    assert invocation.ignore == frozenset()


def test_build_invocation_merges_config(config_home):
    """Config ignore list plus --ignore entries; CLI options override the file."""
    _write_config(config_home, 'ignore = ["vim", "less"]\nretain = 5\nlog_dir = "/tmp/a"\n')

    args = cli.parse_args(
        ["--ignore", "htop", "vim", "--retain", "7", "--log-dir", "~/logs", "--", "ls"]
    )
    invocation = cli.build_invocation(args)

    assert invocation.ignore == frozenset({"vim", "less", "htop"})
    assert invocation.retain == 7
    assert invocation.log_dir == Path.home() / "logs"


def test_build_invocation_uses_config_values(config_home):
    _write_config(config_home, 'retain = 5\nlog_dir = "/tmp/a"\n')

    invocation = cli.build_invocation(cli.parse_args(["--", "ls"]))

    assert invocation.retain == 5
    assert invocation.log_dir == Path("/tmp/a")


def test_main_exits_with_child_code(config_home, tmp_path):
    with patch.object(supervisor, "run", return_value=3) as mock_run:
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--log-dir", str(tmp_path / "logs"), "--", "ls"])

    assert exc_info.value.code == 3
    invocation = mock_run.call_args[0][0]
    assert invocation.cmd == ["ls"]


def test_main_bad_config(config_home, capsys):
    """A malformed config aborts before anything is launched."""
    _write_config(config_home, "ignore = [\n")

    with patch.object(supervisor, "run") as mock_run:
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--", "ls"])

    assert exc_info.value.code == cli.CONFIG_ERROR_EXIT
    mock_run.assert_not_called()
    assert "invalid TOML" in capsys.readouterr().err


def test_main_launch_failure(config_home, tmp_path, capsys):
    with patch.object(supervisor, "run", side_effect=LaunchError("nope", "command not found")):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--log-dir", str(tmp_path), "--", "nope"])

    assert exc_info.value.code == supervisor.LAUNCH_FAILURE_EXIT
    assert "command not found" in capsys.readouterr().err


def test_main_log_dir_unwritable(config_home, tmp_path, capsys):
    blocker = tmp_path / "file"
    blocker.write_text("")

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--log-dir", str(blocker / "logs"), "--", sys.executable, "-c", "pass"])

    assert exc_info.value.code == cli.IO_ERROR_EXIT
    assert "cannot write log" in capsys.readouterr().err


def test_main_ignored_program_is_not_logged(config_home, tmp_path):
    """Scenario: an ignored program runs with its exit code relayed and no log."""
    log_dir = tmp_path / "logs"
    prog = Path(sys.executable).name
    _write_config(config_home, f'ignore = ["{prog}"]\n')

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--log-dir", str(log_dir), "--", sys.executable, "-c", "raise SystemExit(5)"])

    assert exc_info.value.code == 5
    assert store.list_logs(log_dir) == []


def test_main_config_path(config_home, capsys):
    cli.main(["--config-path"])
    assert capsys.readouterr().out.strip() == str(config_home / "stash" / "stash.toml")


def test_main_init_config(config_home, capsys):
    cli.main(["--init-config"])
    assert (config_home / "stash" / "stash.toml").exists()
    assert "Config file at" in capsys.readouterr().out


def test_main_init_config_honors_config_option(config_home, tmp_path, capsys):
    """--init-config writes to the file named by --config, not the default location."""
    custom = tmp_path / "custom" / "stash.toml"

    cli.main(["--config", str(custom), "--init-config"])

    assert custom.exists()
    assert "ignore" in custom.read_text()
    assert not (config_home / "stash" / "stash.toml").exists()
    assert str(custom) in capsys.readouterr().out
