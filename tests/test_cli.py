"""Tests for the servicehost command line."""

from unittest.mock import MagicMock, patch

import pytest
import typer
from typer.testing import CliRunner

from servicehost import __version__
from servicehost.cli.commands import app, load_target
from servicehost.daemon.base import DaemonInfo, DaemonStatus
from servicehost.daemon.resolve import UnsupportedPlatformError
from servicehost.sample import SampleService

runner = CliRunner()


@pytest.fixture(autouse=True)
def _no_log_setup():
    with patch("servicehost.log.configure_logging"):
        yield


class TestLoadTarget:
    def test_class(self):
        assert load_target("servicehost.sample:SampleService") is SampleService

    def test_nested_attribute(self):
        import os.path

        assert load_target("os:path.join") is os.path.join

    def test_missing_colon(self):
        with pytest.raises(typer.BadParameter):
            load_target("servicehost.sample")

    def test_not_callable(self):
        with pytest.raises(typer.BadParameter):
            load_target("servicehost:__version__")


class TestCommands:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"v{__version__}" in result.output

    def test_run_unknown_module(self):
        result = runner.invoke(app, ["run", "no_such_module_xyz:Thing"])
        assert result.exit_code == 1
        assert "cannot load" in result.output

    def test_run_help_option(self):
        result = runner.invoke(app, ["run", "servicehost.sample:SampleService", "-?"])
        assert result.exit_code == 0
        assert "Available options" in result.output

    def test_run_console(self):
        result = runner.invoke(
            app, ["run", "servicehost.sample:SampleService", "-c"], input="\n",
        )
        assert result.exit_code == 0
        assert "Press enter to exit:" in result.output

    def test_run_passes_host_options(self):
        with patch("servicehost.host.launcher.launch", return_value=0) as launch:
            result = runner.invoke(app, [
                "run", "servicehost.sample:SampleService",
                "--name", "sample", "-start=manual", "extra",
            ])

        assert result.exit_code == 0
        config = launch.call_args.args[0]
        assert config.name == "sample"
        assert config.arguments == ["-start=manual", "extra"]
        assert config.entry_arguments == ["run", "servicehost.sample:SampleService", "--name", "sample"]

    def test_status_running(self):
        registrar = MagicMock(scope="user")
        registrar.status.return_value = DaemonInfo(status=DaemonStatus.RUNNING, pid=4242)
        with patch("servicehost.daemon.get_registrar", return_value=registrar):
            result = runner.invoke(app, ["status", "worker"])

        assert result.exit_code == 0
        assert "running" in result.output
        assert "4242" in result.output
        registrar.status.assert_called_once_with("worker")

    def test_status_unsupported_platform(self):
        with patch(
            "servicehost.daemon.get_registrar",
            side_effect=UnsupportedPlatformError("not supported on win32"),
        ):
            result = runner.invoke(app, ["status", "worker"])
        assert result.exit_code == 1
        assert "not supported" in result.output
