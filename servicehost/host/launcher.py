"""Run mode selection and execution.

The host options among the configured arguments pick one of four modes:
install, uninstall, console or managed service. Any other argument is left
for the hosted object.
"""

from __future__ import annotations

import os
import signal
import sys
import threading
import time
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from loguru import logger
from rich.console import Console
from rich.table import Table

from servicehost.cli.args import ArgOptions
from servicehost.config.schema import HostSettings, LaunchSpec, ProcessPriority, StartMode
from servicehost.errors import ServiceHostError
from servicehost.host.adapter import FAILURE_EXIT_CODE, HostedService
from servicehost.host.priority import apply_priority

if TYPE_CHECKING:
    from servicehost.config.builder import ServiceConfig

console = Console()


class RunMode(str, Enum):
    SERVICE = "service"
    CONSOLE = "console"
    INSTALL = "install"
    UNINSTALL = "uninstall"
    HELP = "help"


# Checked in this order; the first flag present decides the mode.
MODE_FLAGS = (
    ("-?", RunMode.HELP),
    ("-i", RunMode.INSTALL),
    ("-u", RunMode.UNINSTALL),
    ("-c", RunMode.CONSOLE),
)

# Dropped from the installed command line. The account goes into the
# service definition instead.
INSTALL_STRIPPED_OPTIONS = ("-i", "-u", "-c", "-w", "-runas")

START_REPORT_SECONDS = 2.0

OPTIONS_HELP = (
    ("-u", "Uninstall the service"),
    ("-i", "Install as a service"),
    ("-c", "Run as a console app"),
    ("-w[=seconds]", "Wait on newline (or seconds) before starting (allows attaching a debugger)"),
    ("-priority=[normal|belownormal|high]", "Set the service priority"),
    ("-start=[delayed|auto|manual]", "Set the service start mode"),
    ("-runas=[local|localservice|networkservice|user;password]", "Set the service account"),
    ("-name=<someName>", "Override the name of the service"),
    ("-?", "Show this help"),
    ("[service args]", "Other arguments are passed to the service"),
)

_START_MODES = {
    "a": StartMode.AUTOMATIC,
    "auto": StartMode.AUTOMATIC,
    "automatic": StartMode.AUTOMATIC,
    "m": StartMode.MANUAL,
    "manual": StartMode.MANUAL,
    "d": StartMode.DELAYED,
    "delayed": StartMode.DELAYED,
}

_PRIORITIES = {
    "b": ProcessPriority.BELOW_NORMAL,
    "belownormal": ProcessPriority.BELOW_NORMAL,
    "n": ProcessPriority.NORMAL,
    "normal": ProcessPriority.NORMAL,
    "h": ProcessPriority.HIGH,
    "high": ProcessPriority.HIGH,
}


def is_interactive(settings: HostSettings) -> bool:
    if settings.interactive is not None:
        return settings.interactive
    return sys.stdin is not None and sys.stdin.isatty()


def select_mode(seen: set[str], interactive: bool) -> RunMode:
    for flag, mode in MODE_FLAGS:
        if flag in seen:
            return mode
    return RunMode.CONSOLE if interactive else RunMode.SERVICE


def print_options() -> None:
    table = Table(title="Available options", show_header=False, box=None)
    table.add_column("Option", style="cyan")
    table.add_column("Description")
    for option, description in OPTIONS_HELP:
        table.add_row(option, description)
    console.print(table)


# ----------------------------------------------------------------------
# Option handlers
# ----------------------------------------------------------------------


def _set_start_mode(config: ServiceConfig, value: str | None) -> None:
    mode = _START_MODES.get((value or "").lower())
    if mode is None:
        logger.warning(f"Unrecognised value for 'start': {value}")
        return
    config.with_start_mode(mode)


def _set_priority(config: ServiceConfig, value: str | None) -> None:
    priority = _PRIORITIES.get((value or "").lower()) or ProcessPriority.parse(value)
    if priority is None:
        logger.warning(f"Unrecognised value for 'priority': {value}")
        return
    config.with_priority(priority)


def _set_account(config: ServiceConfig, value: str | None) -> None:
    try:
        config.run_as(value)
    except ValueError as e:
        logger.warning(f"Unrecognised value for 'runas': {e}")


def _rename(config: ServiceConfig, value: str | None) -> None:
    if value:
        config.with_service_name(value)


def wait_before_start(value: str | None, read_line: Callable[[], str] = input) -> None:
    """Pause for a newline, or for a number of seconds, so a debugger can attach."""
    if not value:
        console.print("Press enter to continue...")
        try:
            read_line()
        except EOFError:
            pass
        return

    try:
        seconds = int(value)
    except ValueError:
        logger.warning(f"Unrecognised value for 'wait': {value}")
        return
    logger.info(f"Pausing {seconds} seconds")
    time.sleep(seconds)


def register_options(options: ArgOptions, config: ServiceConfig, seen: set[str]) -> ArgOptions:
    """Register the host options. Mode flags are recorded in seen."""
    for flag, _ in MODE_FLAGS:
        options.on(flag, lambda value, flag=flag: seen.add(flag))
    return (
        options
        .on("-start", lambda value: _set_start_mode(config, value))
        .on("-priority", lambda value: _set_priority(config, value))
        .on("-runas", lambda value: _set_account(config, value))
        .on("-w", wait_before_start)
        .on("-name", lambda value: _rename(config, value))
    )


# ----------------------------------------------------------------------
# Modes
# ----------------------------------------------------------------------


def launch(config: ServiceConfig, settings: HostSettings | None = None) -> int:
    """Apply the host options in the configured arguments and run the selected mode."""
    settings = settings or HostSettings()
    seen: set[str] = set()
    options = register_options(ArgOptions(config.arguments), config, seen)
    options.execute()
    passthrough = options.unhandled()
    if passthrough:
        logger.debug(f"Service arguments: {' '.join(str(arg) for arg in passthrough)}")

    mode = select_mode(seen, is_interactive(settings))
    logger.debug(f"Run mode: {mode.value}")

    if mode is RunMode.HELP:
        print_options()
        return 0
    if mode is RunMode.INSTALL:
        config.remove_options(*INSTALL_STRIPPED_OPTIONS)
        return install(config, settings)
    if mode is RunMode.UNINSTALL:
        config.remove_options("-u")
        return uninstall(config.name, config.executable_path, settings)

    spec = config.freeze()
    if mode is RunMode.CONSOLE:
        return run_console(spec)
    return run_service(spec)


def _report_failure(error: Exception) -> None:
    console.print()
    console.print("[red]*** Failed ***[/red]")
    console.print(f"[red]{error}[/red]")


def install(config: ServiceConfig, settings: HostSettings | None = None) -> int:
    """Register the service. Failures are printed and give a failure exit code."""
    from servicehost.daemon import get_registrar

    try:
        spec = config.freeze(require_factory=False)
        path = get_registrar(settings).install(spec)
    except ServiceHostError as e:
        _report_failure(e)
        return FAILURE_EXIT_CODE
    console.print(f"[green]✓[/green] Installed {spec.name} ({path})")
    return 0


def uninstall(name: str, executable_path: Path, settings: HostSettings | None = None) -> int:
    """Deregister the service. Failures are printed and give a failure exit code."""
    from servicehost.daemon import get_registrar

    try:
        get_registrar(settings).uninstall(name, executable_path)
    except ServiceHostError as e:
        _report_failure(e)
        return FAILURE_EXIT_CODE
    console.print(f"[green]✓[/green] Uninstalled {name}")
    return 0


def _wait_for_exit(wake: threading.Event, read_line: Callable[[], str]) -> None:
    def read_then_wake() -> None:
        try:
            read_line()
        except (EOFError, OSError):
            pass
        wake.set()

    threading.Thread(target=read_then_wake, name="console-input", daemon=True).start()
    try:
        while not wake.wait(0.5):
            pass
    except KeyboardInterrupt:
        console.print("\nShutting down...")


def run_console(spec: LaunchSpec, read_line: Callable[[], str] = input) -> int:
    """Run the hosted object in the foreground until enter is pressed or it stops itself."""
    wake = threading.Event()
    service = HostedService.from_spec(spec, on_stop_requested=wake.set)
    try:
        service.on_start(spec.arguments)
        started = service.wait_started(START_REPORT_SECONDS)
        if service.exit_code != 0:
            console.print("[red]Start failed[/red]")
        else:
            console.print("Started..." if started else "Still starting...")
            console.print("Press enter to exit:")
        _wait_for_exit(wake, read_line)
    finally:
        service.dispose()
    return service.exit_code


class ServiceRunner:
    """
    Hosts a service under a POSIX service manager.

    The manager's stop signal (SIGTERM, or SIGINT) stops the service; a
    start failure stops it too. Returns the service exit code.
    """

    stop_signals = (signal.SIGTERM, signal.SIGINT)

    def __init__(self, service: HostedService, args: tuple[str, ...] | list[str] = ()):
        self.service = service
        self.args = args
        self._wake = threading.Event()

    def _on_signal(self, signum: int, frame: object) -> None:
        logger.info(f"Received {signal.Signals(signum).name}, stopping")
        self._wake.set()

    def request_stop(self) -> None:
        self._wake.set()

    def run(self) -> int:
        self.service.on_stop_requested = self._wake.set
        previous = {sig: signal.signal(sig, self._on_signal) for sig in self.stop_signals}
        try:
            self.service.on_start(self.args)
            while not self._wake.wait(1.0):
                pass
            self.service.stop()
        finally:
            self.service.dispose()
            for sig, handler in previous.items():
                signal.signal(sig, handler)
        return self.service.exit_code


def run_service(spec: LaunchSpec) -> int:
    """Run under the service manager from the executable's directory at the configured priority."""
    os.chdir(Path(spec.executable_path).parent)
    if spec.priority is not ProcessPriority.NORMAL:
        apply_priority(spec.priority)
    return ServiceRunner(HostedService.from_spec(spec), spec.arguments).run()
