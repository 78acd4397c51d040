"""Tests for the service configuration builder and schema."""

from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from servicehost.config import (
    HostSettings,
    ProcessPriority,
    ServiceAccount,
    ServiceConfig,
    StartMode,
)
from servicehost.errors import ConfigurationError


class Dummy:
    pass


class TestIdentity:
    def test_default_name_is_process_name(self):
        with patch("servicehost.config.builder.default_service_name", return_value="worker"):
            assert ServiceConfig.create().name == "worker"

    def test_name_template(self):
        config = ServiceConfig.create("svc-{}-{}", "eu", 3)
        assert config.name == "svc-eu-3"

    def test_display_name_and_description(self):
        spec = (
            ServiceConfig.create("svc")
            .with_display_name("My Service")
            .from_type(Dummy)
            .freeze()
        )
        assert spec.effective_description == "My Service"
        assert spec.model_copy(update={"display_name": None}).effective_description == "servicehost svc"
        assert spec.model_copy(update={"description": "Runs jobs"}).effective_description == "Runs jobs"

    def test_dependencies_deduplicated(self):
        config = ServiceConfig.create("svc").with_dependencies("A", "B").with_dependencies("B", "C")
        assert config.dependencies == ["A", "B", "C"]


class TestArguments:
    def test_duplicates_allowed(self):
        config = ServiceConfig.create("svc").with_arguments(["-v", "-v"]).with_argument("x")
        assert config.arguments == ["-v", "-v", "x"]

    def test_remove_argument(self):
        config = ServiceConfig.create("svc").with_arguments(["-i", "x"])
        config.remove_argument("-i").remove_argument("missing")
        assert config.arguments == ["x"]

    def test_remove_options_by_key(self):
        config = ServiceConfig.create("svc").with_arguments(
            ["-RUNAS=alice;secret", "-w=5", "-W", "x", "-wait", "-runas"]
        )
        config.remove_options("-runas", "-w")
        assert config.arguments == ["x", "-wait"]


class TestAccount:
    def test_default_local_system(self):
        assert ServiceConfig.create("svc").account is ServiceAccount.LOCAL_SYSTEM

    @pytest.mark.parametrize("token,expected", [
        ("l", ServiceAccount.LOCAL_SYSTEM),
        ("LocalSystem", ServiceAccount.LOCAL_SYSTEM),
        ("ls", ServiceAccount.LOCAL_SERVICE),
        ("localservice", ServiceAccount.LOCAL_SERVICE),
        ("ns", ServiceAccount.NETWORK_SERVICE),
        ("network", ServiceAccount.NETWORK_SERVICE),
    ])
    def test_builtin_tokens(self, token, expected):
        config = ServiceConfig.create("svc").run_as(token)
        assert config.account is expected

    def test_builtin_clears_credentials(self):
        config = ServiceConfig.create("svc").run_as_user("alice", "secret").run_as("ns")
        assert config.account is ServiceAccount.NETWORK_SERVICE
        assert config.username is None
        assert config.password is None

    def test_named_user(self):
        config = ServiceConfig.create("svc").run_as("alice;secret")
        assert config.account is ServiceAccount.USER
        assert config.username == "alice"
        assert config.password == "secret"

    def test_malformed_user_raises(self):
        config = ServiceConfig.create("svc").run_as_local_service()
        with pytest.raises(ValueError, match="user;password"):
            config.run_as("alice")
        assert config.account is ServiceAccount.LOCAL_SERVICE

    def test_blank_token_is_noop(self):
        config = ServiceConfig.create("svc").run_as_network_service().run_as("  ")
        assert config.account is ServiceAccount.NETWORK_SERVICE

    def test_user_requires_password(self):
        with pytest.raises(ValueError):
            ServiceConfig.create("svc").run_as_user("alice", None)


class TestStartModeAndPriority:
    def test_start_modes(self):
        config = ServiceConfig.create("svc")
        assert config.start_delayed().start_mode is StartMode.DELAYED
        assert config.start_manually().start_mode is StartMode.MANUAL
        assert config.start_automatically().start_mode is StartMode.AUTOMATIC

    def test_start_mode_flags(self):
        assert StartMode.DELAYED.is_automatic and StartMode.DELAYED.is_delayed
        assert StartMode.AUTOMATIC.is_automatic and not StartMode.AUTOMATIC.is_delayed
        assert not StartMode.MANUAL.is_automatic

    def test_priority_helpers(self):
        config = ServiceConfig.create("svc")
        assert config.with_high_priority().priority is ProcessPriority.HIGH
        assert config.with_below_normal_priority().priority is ProcessPriority.BELOW_NORMAL
        assert config.with_normal_priority().priority is ProcessPriority.NORMAL

    @pytest.mark.parametrize("token,expected", [
        ("high", ProcessPriority.HIGH),
        ("abovenormal", ProcessPriority.ABOVE_NORMAL),
        ("ABOVE_NORMAL", ProcessPriority.ABOVE_NORMAL),
        ("RealTime", ProcessPriority.REALTIME),
        ("bogus", None),
        (None, None),
    ])
    def test_priority_parse(self, token, expected):
        assert ProcessPriority.parse(token) is expected

    def test_nice_values_order(self):
        assert ProcessPriority.IDLE.nice > ProcessPriority.NORMAL.nice > ProcessPriority.HIGH.nice


class TestFreeze:
    def test_requires_factory(self):
        with pytest.raises(ConfigurationError, match="factory"):
            ServiceConfig.create("svc").freeze()

    def test_install_does_not_require_factory(self):
        spec = ServiceConfig.create("svc").with_exe("/opt/svc/run.py").freeze(require_factory=False)
        assert spec.factory is None
        assert spec.executable_path == Path("/opt/svc/run.py")

    def test_user_account_needs_credentials(self):
        config = ServiceConfig.create("svc").from_type(Dummy)
        config.account = ServiceAccount.USER
        with pytest.raises(ConfigurationError):
            config.freeze()

    def test_snapshot_is_immutable(self):
        config = ServiceConfig.create("svc").with_argument("a").from_type(Dummy)
        spec = config.freeze()
        config.with_argument("b")
        assert spec.arguments == ("a",)
        with pytest.raises(ValidationError):
            spec.name = "other"

    def test_carries_factory_and_overrides(self):
        stop = lambda instance: None  # noqa: E731
        spec = ServiceConfig.create("svc").from_factory(Dummy, stop=stop).freeze()
        assert spec.factory is Dummy
        assert spec.stop_override is stop
        assert spec.start_override is None

    def test_password_not_in_repr(self):
        spec = ServiceConfig.create("svc").run_as_user("alice", "hunter2").from_type(Dummy).freeze()
        assert "hunter2" not in repr(spec)


class TestHostSettings:
    def test_defaults(self):
        settings = HostSettings()
        assert settings.log_level == "INFO"
        assert settings.scope == "auto"
        assert settings.interactive is None

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("SERVICEHOST_INTERACTIVE", "false")
        monkeypatch.setenv("SERVICEHOST_DELAYED_START_SECONDS", "30")
        settings = HostSettings()
        assert settings.interactive is False
        assert settings.delayed_start_seconds == 30
