"""Unit tests for homefs.cli module."""

import json
import logging

import pytest
import typer
from typer.testing import CliRunner

from homefs.cli import app
from homefs.cli.constants import ExitCodes
from homefs.cli.utils import mask_token, setup_logging


@pytest.fixture
def cli_env(clean_env, home_dir, tmp_path, monkeypatch):
    """Point the CLI at the test home and a config file outside it."""
    clean_env.setenv("HOMEFS_HOME", str(home_dir))
    # Root logging is left to pytest while commands run
    monkeypatch.setattr("homefs.cli.utils.setup_logging", lambda *args, **kwargs: None)
    return tmp_path / "homefs.json"


@pytest.mark.unit
@pytest.mark.cli
class TestCLIFramework:
    """Tests for CLI framework and structure."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_app_is_typer_instance(self):
        assert isinstance(app, typer.Typer)

    def test_help_lists_commands(self):
        result = self.runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in ("serve", "tools", "call", "info", "config"):
            assert command in result.stdout

    def test_version(self):
        result = self.runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "homefs version" in result.stdout


@pytest.mark.unit
@pytest.mark.cli
class TestCallCommand:
    """Tests for running a tool from the command line."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_call_prints_json_response(self, cli_env, sample_home):
        result = self.runner.invoke(
            app, ["--config", str(cli_env), "call", "fs_read", '{"path": "notes.txt"}']
        )

        assert result.exit_code == ExitCodes.SUCCESS
        response = json.loads(result.stdout)
        assert response["success"] is True
        assert response["result"]["content"] == "alpha\nbeta\ngamma\n"

    def test_call_without_arguments(self, cli_env, home_dir):
        result = self.runner.invoke(app, ["--config", str(cli_env), "call", "fs_info"])

        assert result.exit_code == ExitCodes.SUCCESS
        assert json.loads(result.stdout)["result"]["home_dir"] == str(home_dir)

    def test_tool_error_exit_code(self, cli_env, sample_home):
        result = self.runner.invoke(
            app, ["--config", str(cli_env), "call", "fs_delete", '{"path": "~/.ssh"}']
        )

        assert result.exit_code == ExitCodes.GENERAL_ERROR
        assert json.loads(result.stdout)["error"] == "protected_path"
        assert (sample_home / ".ssh").exists()

    @pytest.mark.parametrize("arguments", ["{bad json", "[1, 2]"])
    def test_bad_arguments(self, cli_env, arguments):
        result = self.runner.invoke(app, ["--config", str(cli_env), "call", "fs_read", arguments])
        assert result.exit_code == ExitCodes.USAGE_ERROR

    def test_unknown_tool(self, cli_env):
        result = self.runner.invoke(app, ["--config", str(cli_env), "call", "fs_chmod"])

        assert result.exit_code == ExitCodes.USAGE_ERROR
        assert "Unknown tool" in result.stdout

    def test_invalid_config_file(self, cli_env):
        cli_env.write_text("{not json")

        result = self.runner.invoke(app, ["--config", str(cli_env), "call", "fs_info"])

        assert result.exit_code == ExitCodes.GENERAL_ERROR
        assert "Error loading configuration" in result.stdout


@pytest.mark.unit
@pytest.mark.cli
class TestInfoCommands:
    """Tests for the tools and info commands."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_tools_table(self, cli_env):
        result = self.runner.invoke(app, ["--config", str(cli_env), "tools"])

        assert result.exit_code == 0
        assert "fs_info" in result.stdout
        assert "fs_search" in result.stdout
        assert "fs_rm" not in result.stdout

    def test_info(self, cli_env):
        result = self.runner.invoke(app, ["--config", str(cli_env), "info"])

        assert result.exit_code == 0
        assert "Sandbox:" in result.stdout
        assert "(disabled)" in result.stdout


@pytest.mark.unit
@pytest.mark.cli
class TestConfigCommands:
    """Tests for config init and config show."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_init_with_token(self, cli_env):
        result = self.runner.invoke(
            app, ["--config", str(cli_env), "config", "init", "--token", "abc123456"]
        )

        assert result.exit_code == 0
        assert "Configuration saved" in result.stdout
        data = json.loads(cli_env.read_text())
        assert data["server"]["token"] == "abc123456"

    def test_init_generates_token(self, cli_env):
        result = self.runner.invoke(app, ["--config", str(cli_env), "config", "init"])

        assert result.exit_code == 0
        token = json.loads(cli_env.read_text())["server"]["token"]
        assert len(token) >= 32
        assert token in result.stdout

    def test_init_no_auth(self, cli_env):
        self.runner.invoke(app, ["--config", str(cli_env), "config", "init", "--no-auth"])
        assert json.loads(cli_env.read_text())["server"]["token"] == ""

    def test_init_refuses_to_overwrite(self, cli_env):
        cli_env.write_text("{}")

        result = self.runner.invoke(app, ["--config", str(cli_env), "config", "init"])

        assert result.exit_code == ExitCodes.GENERAL_ERROR
        assert cli_env.read_text() == "{}"

    def test_init_force(self, cli_env):
        cli_env.write_text("{}")

        result = self.runner.invoke(
            app, ["--config", str(cli_env), "config", "init", "--force", "--base-dir", "~/apps"]
        )

        assert result.exit_code == 0
        assert json.loads(cli_env.read_text())["sandbox"]["base_dir"] == "~/apps"

    def test_show_masks_token(self, cli_env):
        self.runner.invoke(app, ["--config", str(cli_env), "config", "init", "--token", "abc123456"])

        result = self.runner.invoke(app, ["--config", str(cli_env), "config", "show"])

        assert result.exit_code == 0
        assert "****3456" in result.stdout
        assert "abc123456" not in result.stdout


@pytest.mark.unit
@pytest.mark.cli
class TestCliUtils:
    """Tests for CLI helper functions."""

    @pytest.mark.parametrize(
        "token,expected", [("", "(disabled)"), ("abc", "****"), ("abcdefgh", "****efgh")]
    )
    def test_mask_token(self, token, expected):
        assert mask_token(token) == expected

    def test_setup_logging_to_file(self, tmp_path):
        log_file = tmp_path / "logs" / "homefs.log"
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging("debug", log_file)
            logging.getLogger("homefs.test").debug("hello from test")
            for handler in root.handlers:
                handler.flush()

            assert root.level == logging.DEBUG
            assert "homefs.test - DEBUG - hello from test" in log_file.read_text()
        finally:
            for handler in root.handlers[:]:
                root.removeHandler(handler)
                handler.close()
            for handler in saved_handlers:
                root.addHandler(handler)
            root.setLevel(saved_level)
