"""Linux systemd service registrar."""

import shlex
import subprocess
from pathlib import Path

from loguru import logger

from servicehost.config.schema import LaunchSpec, ProcessPriority, ServiceAccount
from servicehost.daemon.base import DaemonError, DaemonInfo, DaemonStatus, Registrar
from servicehost.daemon.resolve import get_log_dir, resolve_command

USER_UNIT_DIR = Path.home() / ".config" / "systemd" / "user"
SYSTEM_UNIT_DIR = Path("/etc/systemd/system")


def unit_name(name: str) -> str:
    return name if name.endswith(".service") else f"{name}.service"


def _dependency_unit(name: str) -> str:
    return name if "." in name else f"{name}.service"


class SystemdRegistrar(Registrar):

    def __init__(self, scope: str = "user", delayed_start_seconds: int = 120):
        self.scope = scope
        self.delayed_start_seconds = delayed_start_seconds

    @property
    def unit_dir(self) -> Path:
        return USER_UNIT_DIR if self.scope == "user" else SYSTEM_UNIT_DIR

    def service_file(self, name: str) -> Path:
        return self.unit_dir / unit_name(name)

    def render_unit(self, spec: LaunchSpec) -> str:
        """Build the unit file text for a launch spec."""
        command = resolve_command(spec.executable_path) + list(spec.entry_arguments) + list(spec.arguments)
        dependencies = [_dependency_unit(d) for d in spec.dependencies]
        after = ["network.target", *dependencies]
        wants: list[str] = []

        service_lines = ["Type=simple"]
        if spec.start_mode.is_delayed and self.delayed_start_seconds:
            service_lines.append(f"ExecStartPre=/bin/sleep {self.delayed_start_seconds}")
        service_lines.append(f"ExecStart={shlex.join(command)}")
        service_lines.append(f"WorkingDirectory={Path(spec.executable_path).parent}")
        if spec.priority is not ProcessPriority.NORMAL:
            service_lines.append(f"Nice={spec.priority.nice}")

        if self.scope == "system":
            if spec.account is ServiceAccount.USER:
                service_lines.append(f"User={spec.username}")
                logger.warning("systemd does not use account passwords; password ignored")
            elif spec.account in (ServiceAccount.LOCAL_SERVICE, ServiceAccount.NETWORK_SERVICE):
                service_lines.append("DynamicUser=yes")
            if spec.account is ServiceAccount.NETWORK_SERVICE:
                after.append("network-online.target")
                wants.append("network-online.target")
        elif spec.account is not ServiceAccount.LOCAL_SYSTEM:
            logger.warning(f"Account {spec.account.value} ignored for a user-scope unit")

        unit_lines = [f"Description={spec.effective_description}", f"After={' '.join(after)}"]
        if wants:
            unit_lines.append(f"Wants={' '.join(wants)}")
        if dependencies:
            unit_lines.append(f"Requires={' '.join(dependencies)}")

        wanted_by = "default.target" if self.scope == "user" else "multi-user.target"

        return (
            "[Unit]\n" + "\n".join(unit_lines) + "\n\n"
            "[Service]\n" + "\n".join(service_lines) + "\n\n"
            "[Install]\n" + f"WantedBy={wanted_by}\n"
        )

    def install(self, spec: LaunchSpec) -> Path:
        path = self.service_file(spec.name)
        try:
            self.unit_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(self.render_unit(spec))
        except OSError as e:
            raise DaemonError(f"Cannot write {path}: {e}") from e

        self._ctl("daemon-reload")
        if spec.start_mode.is_automatic:
            self._ctl("enable", unit_name(spec.name))
        logger.info(f"Installed {unit_name(spec.name)} ({self.scope} scope)")
        return path

    def uninstall(self, name: str, executable_path: Path | None = None) -> None:
        path = self.service_file(name)
        if not path.exists():
            raise DaemonError(f"Service {name} is not installed.")

        if executable_path is not None and str(executable_path) not in path.read_text():
            logger.warning(f"{unit_name(name)} was installed for another executable than {executable_path}")

        try:
            self._ctl("disable", unit_name(name))
        except DaemonError:
            pass
        path.unlink(missing_ok=True)
        self._ctl("daemon-reload")
        logger.info(f"Uninstalled {unit_name(name)}")

    def status(self, name: str) -> DaemonInfo:
        path = self.service_file(name)
        if not path.exists():
            return DaemonInfo(status=DaemonStatus.NOT_INSTALLED)

        log_path = get_log_dir() / f"{name}.log"
        try:
            result = subprocess.run(
                [*self._systemctl(), "is-active", unit_name(name)],
                capture_output=True, text=True,
            )
            active = result.stdout.strip() == "active"
        except FileNotFoundError:
            active = False

        return DaemonInfo(
            status=DaemonStatus.RUNNING if active else DaemonStatus.STOPPED,
            pid=self._get_pid(name) if active else None,
            service_file=path,
            log_path=log_path,
        )

    def _get_pid(self, name: str) -> int | None:
        try:
            result = subprocess.run(
                [*self._systemctl(), "show", "-p", "MainPID", unit_name(name)],
                capture_output=True, text=True,
            )
            # Output: MainPID=12345
            for line in result.stdout.splitlines():
                if line.startswith("MainPID="):
                    pid = int(line.split("=", 1)[1])
                    return pid if pid > 0 else None
        except (FileNotFoundError, ValueError):
            pass
        return None

    def _systemctl(self) -> list[str]:
        return ["systemctl", "--user"] if self.scope == "user" else ["systemctl"]

    def _ctl(self, *args: str) -> None:
        command = [*self._systemctl(), *args]
        try:
            subprocess.run(command, check=True, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise DaemonError("systemctl not found") from e
        except subprocess.CalledProcessError as e:
            raise DaemonError(f"{' '.join(command)} failed: {e.stderr.strip()}") from e
