"""Tests for the shimrun CLI."""

from unittest.mock import AsyncMock
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from shimrun.main import cli
from shimrun.process.launcher import BOOTSTRAP_MODULE
from shimrun.settings import ENV_ALIAS_CONFIG
from shimrun.settings import ENV_DISABLE_CACHE
from shimrun.settings import ENV_IPC_FD
from shimrun.settings import ENV_TRANSFORMER


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """Run the CLI in an empty project with an empty home directory."""
    home = tmp_path / "home"
    project = tmp_path / "project"
    home.mkdir()
    project.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(project)
    return project


def invoke(*args):
    return CliRunner().invoke(cli, list(args))


class TestRun:
    """Tests for the run command."""

    def test_script_and_passthrough_args(self, isolated):
        """Test options after the script go to the script."""
        with patch("shimrun.main.run_child", new=AsyncMock(return_value=0)) as run_child:
            result = invoke("run", "app.ts", "--port", "80", "-v")

        assert result.exit_code == 0
        command = run_child.call_args.args[0]
        assert command.argv[-6:] == ["-m", BOOTSTRAP_MODULE, "app.ts", "--port", "80", "-v"]

    def test_child_exit_code_is_propagated(self, isolated):
        """Test the child's exit code becomes ours."""
        with patch("shimrun.main.run_child", new=AsyncMock(return_value=143)):
            result = invoke("run", "app.ts")
        assert result.exit_code == 143

    def test_flags_become_child_environment(self, isolated):
        """Test loader flags reach the child environment."""
        (isolated / "tsconfig.json").write_text("{}")
        with patch("shimrun.main.run_child", new=AsyncMock(return_value=0)) as run_child:
            invoke("run", "--tsconfig", "tsconfig.json", "--no-cache", "--transformer", "passthrough", "app.ts")

        env = run_child.call_args.args[0].env
        assert env[ENV_ALIAS_CONFIG] == str((isolated / "tsconfig.json").resolve())
        assert env[ENV_DISABLE_CACHE] == "1"
        assert env[ENV_TRANSFORMER] == "passthrough"

    def test_eval_takes_positionals_as_arguments(self, isolated):
        """Test positionals after -e are arguments."""
        with patch("shimrun.main.run_child", new=AsyncMock(return_value=0)) as run_child:
            invoke("run", "-e", "print(1)", "extra")

        assert run_child.call_args.args[0].argv[-3:] == ["--eval", "print(1)", "extra"]

    def test_python_args(self, isolated):
        """Test --python-arg values reach the interpreter."""
        with patch("shimrun.main.run_child", new=AsyncMock(return_value=0)) as run_child:
            invoke("run", "--python-arg=-X", "--python-arg=dev", "app.ts")

        argv = run_child.call_args.args[0].argv
        assert argv[1:3] == ["-X", "dev"]

    def test_settings_file_is_used(self, isolated):
        """Test project settings feed the loader."""
        (isolated / ".shimrun").mkdir()
        (isolated / ".shimrun" / "settings.yaml").write_text("aliases: paths.json\ntransform:\n  cache: false\n")
        with patch("shimrun.main.run_child", new=AsyncMock(return_value=0)) as run_child:
            invoke("run", "app.ts")

        env = run_child.call_args.args[0].env
        assert env[ENV_ALIAS_CONFIG] == str((isolated / "paths.json").resolve())
        assert env[ENV_DISABLE_CACHE] == "1"

    def test_invalid_settings_exit_1(self, isolated):
        """Test invalid settings exit with 1."""
        (isolated / ".shimrun").mkdir()
        (isolated / ".shimrun" / "settings.yaml").write_text("watch:\n  include: 5\n")
        result = invoke("run", "app.ts")
        assert result.exit_code == 1


class TestWatch:
    """Tests for the watch command."""

    def test_requires_a_script(self, isolated):
        """Test watch without a script exits with 1."""
        result = invoke("watch")
        assert result.exit_code == 1

    def test_builds_supervisor_options(self, isolated):
        """Test watch options reach the supervisor."""
        (isolated / "lib").mkdir()
        with patch("shimrun.main.WatchSupervisor") as supervisor_cls:
            supervisor_cls.return_value.run = AsyncMock(return_value=130)
            result = invoke("watch", "--include", "lib", "--exclude", "generated", "--no-clear-screen", "app.ts", "x")

        assert result.exit_code == 130
        options = supervisor_cls.call_args.args[0]
        assert options.command.argv[-2:] == ["app.ts", "x"]
        assert options.roots == [isolated.resolve(), (isolated / "lib").resolve()]
        assert "generated" in options.exclude
        assert options.clear_screen is False

    def test_child_gets_no_ipc_channel(self, isolated, monkeypatch):
        """Watch children get no channel, so none is advertised in their environment."""
        monkeypatch.setenv(ENV_IPC_FD, "7")
        with patch("shimrun.main.WatchSupervisor") as supervisor_cls:
            supervisor_cls.return_value.run = AsyncMock(return_value=0)
            invoke("watch", "app.ts")

        assert ENV_IPC_FD not in supervisor_cls.call_args.args[0].command.env


def test_version():
    """Test --version."""
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "version" in result.output
