"""Platform detection, scope and command resolution."""

import os
import sys
from pathlib import Path

from servicehost.daemon.base import DaemonError


class UnsupportedPlatformError(DaemonError):
    """Raised on platforms without service manager support (e.g. Windows)."""


def detect_platform() -> str:
    """Return 'macos' or 'linux'. Raises on Windows."""
    if sys.platform == "darwin":
        return "macos"
    elif sys.platform.startswith("linux"):
        return "linux"
    raise UnsupportedPlatformError(
        f"Service registration is not supported on {sys.platform}. "
        "Use -c to run in the foreground."
    )


def resolve_scope(requested: str = "auto") -> str:
    """Return 'system' or 'user'. 'auto' picks system scope when running as root."""
    if requested in ("user", "system"):
        return requested
    return "system" if os.geteuid() == 0 else "user"


def resolve_command(executable_path: Path) -> list[str]:
    """Resolve the command list a service definition launches.

    Python scripts run through the current interpreter; anything else
    (console-script wrappers, frozen executables) runs directly.
    """
    path = Path(executable_path)
    if path.suffix == ".py":
        return [sys.executable, str(path)]
    return [str(path)]


def get_log_dir() -> Path:
    """Return ~/.servicehost/logs/, creating it if needed."""
    log_dir = Path.home() / ".servicehost" / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir
