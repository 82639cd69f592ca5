"""Tests for the command line entry point."""

import logging

import dotenv
import pytest
import structlog

from homestack import cli
from homestack.core.logging_config import LOG_FILE_NAME, setup_logging


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch):
    """Leave structlog configured by the capture fixture and ignore stray .env files."""
    monkeypatch.setattr(cli, "setup_logging", lambda **kwargs: None)
    monkeypatch.setattr(cli, "load_dotenv", lambda *args, **kwargs: False)


def test_parse_args_splits_options_from_tokens():
    args = cli.parse_args(["--fan-out", "parallel", "media", "up", "--build"])

    assert args.fan_out == "parallel"
    assert args.tokens == ["media", "up", "--build"]


def test_parse_args_without_tokens():
    assert cli.parse_args([]).tokens == []


def test_dotenv_found_from_working_directory(monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "load_dotenv", dotenv.load_dotenv)
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.delenv("LOG_LEVEL")
    project = tmp_path / "project"
    (project / "nested").mkdir(parents=True)
    (project / ".env").write_text("LOG_LEVEL=DEBUG\n")
    monkeypatch.chdir(project / "nested")

    assert cli.parse_args([]).log_level == "DEBUG"


def test_missing_root_exits_before_dispatch(capsys):
    assert cli.run(["up"]) == 1
    assert "HOMESTACK_ROOT is not set" in capsys.readouterr().err


def test_missing_root_is_fatal_even_for_help(capsys):
    assert cli.run(["help"]) == 1


def test_password(stacks_root, capsys):
    assert cli.run(["--root", str(stacks_root), "password", "8"]) == 0
    assert len(capsys.readouterr().out.strip()) == 11


def test_root_from_environment(monkeypatch, stacks_root, capsys):
    monkeypatch.setenv("HOMESTACK_ROOT", str(stacks_root))

    assert cli.run(["list"]) == 0
    assert "media" in capsys.readouterr().out


def test_unknown_command(stacks_root, capsys):
    assert cli.run(["--root", str(stacks_root), "bogus"]) == 1

    captured = capsys.readouterr()
    assert "Unknown command: bogus" in captured.err
    assert "Usage: homestack" in captured.out


def test_usage_error_reported(stacks_root, capsys):
    assert cli.run(["--root", str(stacks_root), "password", "abc"]) == 1
    assert captured_error(capsys).startswith("Error: password length must be an integer")


def test_unknown_stack_reported(stacks_root, capsys):
    assert cli.run(["--root", str(stacks_root), "nope", "up"]) == 1
    assert "Stack 'nope' not found" in captured_error(capsys)


def test_main_exits_with_status(monkeypatch):
    monkeypatch.setattr(cli, "run", lambda: 7)

    with pytest.raises(SystemExit) as exc_info:
        cli.main()
    assert exc_info.value.code == 7


def captured_error(capsys) -> str:
    return capsys.readouterr().err.strip()


class TestSetupLogging:
    """Logging setup writes JSON lines to the optional log file."""

    @pytest.fixture(autouse=True)
    def restore_logging(self):
        yield
        root_logger = logging.getLogger()
        for handler in root_logger.handlers:
            handler.close()
        root_logger.handlers.clear()
        structlog.reset_defaults()

    def test_console_only(self):
        setup_logging(log_level="INFO")

        root_logger = logging.getLogger()
        assert root_logger.level == logging.INFO
        assert len(root_logger.handlers) == 1

    def test_with_log_file(self, tmp_path):
        log_dir = tmp_path / "logs"

        setup_logging(log_level="DEBUG", log_dir=log_dir)
        structlog.get_logger("homestack").info("Stack started", stack="media")

        assert len(logging.getLogger().handlers) == 2
        content = (log_dir / LOG_FILE_NAME).read_text()
        assert '"event": "Stack started"' in content
        assert '"stack": "media"' in content
