"""Fluent builder for a hosted service configuration."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable, Iterable

import psutil

from servicehost.cli.args import ParsedArg
from servicehost.config.schema import (
    LaunchSpec,
    ProcessPriority,
    ServiceAccount,
    StartMode,
)
from servicehost.errors import ConfigurationError

_LOCAL_SYSTEM_TOKENS = ("l", "local", "localsystem")
_LOCAL_SERVICE_TOKENS = ("ls", "localservice")
_NETWORK_SERVICE_TOKENS = ("ns", "network", "networkservice")


def default_service_name() -> str:
    """Name of the running process, without extension."""
    return Path(psutil.Process().name()).stem


def default_executable_path() -> Path:
    """Location of the program that was launched."""
    return Path(sys.argv[0]).resolve()


class ServiceConfig:
    """
    Accumulates what to run and how to run it.

    Every mutator returns the builder so calls chain. The command-line
    option handlers mutate it in place; freeze() turns it into the
    immutable LaunchSpec handed to the launcher and the registrar.
    """

    def __init__(self, name: str | None = None):
        self.name = name or default_service_name()
        self.display_name: str | None = None
        self.description: str | None = None
        self.dependencies: list[str] = []
        self.arguments: list[str] = []
        self.entry_arguments: list[str] = []
        self.process_args: list[str] | None = None
        self.start_mode = StartMode.AUTOMATIC
        self.priority = ProcessPriority.NORMAL
        self.account = ServiceAccount.LOCAL_SYSTEM
        self.username: str | None = None
        self.password: str | None = None
        self._executable_path: Path | None = None
        self._factory: Callable[[], Any] | None = None
        self._start: Callable[[Any], None] | None = None
        self._stop: Callable[[Any], None] | None = None

    @classmethod
    def create(cls, name: str | None = None, *format_args: Any) -> ServiceConfig:
        """Create a config named after the process, or after a (template) name."""
        config = cls()
        if name:
            config.with_service_name(name, *format_args)
        return config

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def with_service_name(self, name: str, *format_args: Any) -> ServiceConfig:
        self.name = name.format(*format_args) if format_args else name
        return self

    def with_display_name(self, display_name: str) -> ServiceConfig:
        self.display_name = display_name
        return self

    def with_description(self, description: str) -> ServiceConfig:
        self.description = description
        return self

    def with_dependencies(self, *dependencies: str) -> ServiceConfig:
        """Add services this one depends on. Names already present are skipped."""
        for dependency in dependencies:
            if dependency not in self.dependencies:
                self.dependencies.append(dependency)
        return self

    # ------------------------------------------------------------------
    # Arguments
    # ------------------------------------------------------------------

    def with_argument(self, arg: str) -> ServiceConfig:
        self.arguments.append(arg)
        return self

    def with_arguments(self, args: Iterable[str]) -> ServiceConfig:
        self.arguments.extend(args)
        return self

    def remove_argument(self, arg: str) -> ServiceConfig:
        """Remove the first occurrence of an argument, if present."""
        if arg in self.arguments:
            self.arguments.remove(arg)
        return self

    def remove_options(self, *keys: str) -> ServiceConfig:
        """Remove every argument whose option key matches one of keys, ignoring case and value."""
        wanted = {key.lower() for key in keys}
        self.arguments = [
            arg for arg in self.arguments
            if ParsedArg.parse(arg).key.lower() not in wanted
        ]
        return self

    def with_entry_arguments(self, args: Iterable[str]) -> ServiceConfig:
        """Arguments the installed command needs before the service arguments (e.g. a subcommand)."""
        self.entry_arguments = list(args)
        return self

    def with_process_args(self, args: Iterable[str]) -> ServiceConfig:
        """Tokens treated as this process's own command line (default: sys.argv[1:])."""
        self.process_args = list(args)
        return self

    # ------------------------------------------------------------------
    # Priority
    # ------------------------------------------------------------------

    def with_priority(self, priority: ProcessPriority) -> ServiceConfig:
        self.priority = priority
        return self

    def with_below_normal_priority(self) -> ServiceConfig:
        return self.with_priority(ProcessPriority.BELOW_NORMAL)

    def with_normal_priority(self) -> ServiceConfig:
        return self.with_priority(ProcessPriority.NORMAL)

    def with_high_priority(self) -> ServiceConfig:
        return self.with_priority(ProcessPriority.HIGH)

    # ------------------------------------------------------------------
    # Executable and factory
    # ------------------------------------------------------------------

    @property
    def executable_path(self) -> Path:
        return self._executable_path or default_executable_path()

    def with_exe(self, exe_path: str | Path) -> ServiceConfig:
        """Set the program the installed service launches.

        Only needed when installing the service from another process.
        """
        self._executable_path = Path(exe_path)
        return self

    def from_factory(
        self,
        ctor: Callable[[], Any],
        start: Callable[[Any], None] | None = None,
        stop: Callable[[Any], None] | None = None,
    ) -> ServiceConfig:
        """Set the zero-argument callable that creates the hosted object.

        start/stop override the hosted object's own start()/stop() methods.
        """
        self._factory = ctor
        self._start = start
        self._stop = stop
        return self

    def from_type(self, cls: type) -> ServiceConfig:
        """Host instances of cls, created with no arguments."""
        return self.from_factory(cls)

    # ------------------------------------------------------------------
    # Account
    # ------------------------------------------------------------------

    def _run_as_builtin(self, account: ServiceAccount) -> ServiceConfig:
        self.account = account
        self.username = None
        self.password = None
        return self

    def run_as_local_system(self) -> ServiceConfig:
        return self._run_as_builtin(ServiceAccount.LOCAL_SYSTEM)

    def run_as_local_service(self) -> ServiceConfig:
        return self._run_as_builtin(ServiceAccount.LOCAL_SERVICE)

    def run_as_network_service(self) -> ServiceConfig:
        return self._run_as_builtin(ServiceAccount.NETWORK_SERVICE)

    def run_as_user(self, username: str, password: str) -> ServiceConfig:
        if username is None or password is None:
            raise ValueError("run_as_user needs both a username and a password")
        self.account = ServiceAccount.USER
        self.username = username
        self.password = password
        return self

    def run_as(self, account: str | None) -> ServiceConfig:
        """
        Select the account from a token.

        Accepts l/local/localsystem, ls/localservice, ns/network/networkservice
        or 'user;password'. A blank token leaves the account unchanged.
        """
        if not account or not account.strip():
            return self

        token = account.lower()
        if token in _LOCAL_SYSTEM_TOKENS:
            return self.run_as_local_system()
        if token in _LOCAL_SERVICE_TOKENS:
            return self.run_as_local_service()
        if token in _NETWORK_SERVICE_TOKENS:
            return self.run_as_network_service()

        parts = account.split(";")
        if len(parts) != 2:
            raise ValueError("run_as needs 'user;password'")
        return self.run_as_user(parts[0], parts[1])

    # ------------------------------------------------------------------
    # Start mode
    # ------------------------------------------------------------------

    def with_start_mode(self, start_mode: StartMode) -> ServiceConfig:
        self.start_mode = start_mode
        return self

    def start_automatically(self) -> ServiceConfig:
        return self.with_start_mode(StartMode.AUTOMATIC)

    def start_delayed(self) -> ServiceConfig:
        return self.with_start_mode(StartMode.DELAYED)

    def start_manually(self) -> ServiceConfig:
        return self.with_start_mode(StartMode.MANUAL)

    # ------------------------------------------------------------------
    # Finalize and terminal actions
    # ------------------------------------------------------------------

    def freeze(self, require_factory: bool = True) -> LaunchSpec:
        """Validate and snapshot the configuration.

        Installing only describes the service, so it can skip the factory check.
        """
        if not self.name:
            raise ConfigurationError("Service name must not be empty")
        if require_factory and self._factory is None:
            raise ConfigurationError(
                f"No factory configured for service '{self.name}'. Call from_factory() first."
            )
        if self.account is ServiceAccount.USER and (self.username is None or self.password is None):
            raise ConfigurationError("A user account needs both a username and a password")

        return LaunchSpec(
            name=self.name,
            display_name=self.display_name,
            description=self.description,
            dependencies=tuple(self.dependencies),
            arguments=tuple(self.arguments),
            entry_arguments=tuple(self.entry_arguments),
            process_args=tuple(self.process_args) if self.process_args is not None else None,
            start_mode=self.start_mode,
            priority=self.priority,
            account=self.account,
            username=self.username,
            password=self.password,
            executable_path=self.executable_path,
            factory=self._factory,
            start_override=self._start,
            stop_override=self._stop,
        )

    def start(self, *args: str) -> int:
        """Add args and run according to the host options among them. Returns the exit code."""
        from servicehost.host.launcher import launch

        self.with_arguments(args)
        return launch(self)

    def install(self) -> int:
        """Install the service with the current configuration. Returns the exit code."""
        from servicehost.host.launcher import install

        return install(self)
