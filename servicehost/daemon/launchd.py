"""macOS launchd service registrar."""

import plistlib
import subprocess
from pathlib import Path

from loguru import logger

from servicehost.config.schema import LaunchSpec, ProcessPriority, ServiceAccount
from servicehost.daemon.base import DaemonError, DaemonInfo, DaemonStatus, Registrar
from servicehost.daemon.resolve import get_log_dir, resolve_command

LABEL_PREFIX = "servicehost"
USER_AGENT_DIR = Path.home() / "Library" / "LaunchAgents"
SYSTEM_DAEMON_DIR = Path("/Library/LaunchDaemons")


def label_for(name: str) -> str:
    return f"{LABEL_PREFIX}.{name}"


class LaunchdRegistrar(Registrar):

    def __init__(self, scope: str = "user", delayed_start_seconds: int = 120):
        self.scope = scope
        self.delayed_start_seconds = delayed_start_seconds

    @property
    def plist_dir(self) -> Path:
        return USER_AGENT_DIR if self.scope == "user" else SYSTEM_DAEMON_DIR

    def service_file(self, name: str) -> Path:
        return self.plist_dir / f"{label_for(name)}.plist"

    def build_plist(self, spec: LaunchSpec) -> dict:
        """Build the launchd property list for a launch spec."""
        log_dir = get_log_dir()
        program = resolve_command(spec.executable_path) + list(spec.entry_arguments) + list(spec.arguments)
        if spec.start_mode.is_delayed and self.delayed_start_seconds:
            program = [
                "/bin/sh", "-c",
                f'sleep {self.delayed_start_seconds} && exec "$0" "$@"',
                *program,
            ]

        plist = {
            "Label": label_for(spec.name),
            "ServiceDescription": spec.effective_description,
            "ProgramArguments": program,
            "RunAtLoad": spec.start_mode.is_automatic,
            "WorkingDirectory": str(Path(spec.executable_path).parent),
            "StandardOutPath": str(log_dir / f"{spec.name}.log"),
            "StandardErrorPath": str(log_dir / f"{spec.name}.err.log"),
        }
        if spec.priority is not ProcessPriority.NORMAL:
            plist["Nice"] = spec.priority.nice

        if self.scope == "system":
            if spec.account is ServiceAccount.USER:
                plist["UserName"] = spec.username
            elif spec.account is not ServiceAccount.LOCAL_SYSTEM:
                plist["UserName"] = "nobody"
        elif spec.account is not ServiceAccount.LOCAL_SYSTEM:
            logger.warning(f"Account {spec.account.value} ignored for a launch agent")

        if spec.dependencies:
            logger.warning(f"launchd has no service dependencies; ignoring {', '.join(spec.dependencies)}")
        return plist

    def install(self, spec: LaunchSpec) -> Path:
        path = self.service_file(spec.name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                plistlib.dump(self.build_plist(spec), f)
        except OSError as e:
            raise DaemonError(f"Cannot write {path}: {e}") from e
        logger.info(f"Installed {label_for(spec.name)} ({self.scope} scope)")
        return path

    def uninstall(self, name: str, executable_path: Path | None = None) -> None:
        path = self.service_file(name)
        if not path.exists():
            raise DaemonError(f"Service {name} is not installed.")

        if executable_path is not None:
            with open(path, "rb") as f:
                program = plistlib.load(f).get("ProgramArguments", [])
            if str(executable_path) not in program:
                logger.warning(f"{label_for(name)} was installed for another executable than {executable_path}")

        try:
            subprocess.run(
                ["launchctl", "unload", str(path)],
                capture_output=True, text=True,
            )
        except FileNotFoundError:
            pass
        path.unlink(missing_ok=True)
        logger.info(f"Uninstalled {label_for(name)}")

    def status(self, name: str) -> DaemonInfo:
        path = self.service_file(name)
        if not path.exists():
            return DaemonInfo(status=DaemonStatus.NOT_INSTALLED)

        log_path = get_log_dir() / f"{name}.log"
        try:
            result = subprocess.run(
                ["launchctl", "list", label_for(name)],
                capture_output=True, text=True,
            )
            if result.returncode == 0:
                return DaemonInfo(
                    status=DaemonStatus.RUNNING,
                    pid=self._parse_pid(result.stdout),
                    service_file=path,
                    log_path=log_path,
                )
        except FileNotFoundError:
            pass

        return DaemonInfo(status=DaemonStatus.STOPPED, service_file=path, log_path=log_path)

    @staticmethod
    def _parse_pid(output: str) -> int | None:
        """Extract PID from launchctl list output."""
        for line in output.splitlines():
            if '"PID"' in line:
                parts = line.strip().rstrip(";").split("=")
                if len(parts) == 2:
                    try:
                        return int(parts[1].strip())
                    except ValueError:
                        pass
        return None
