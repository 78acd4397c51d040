"""Service registration: registrar factory and re-exports."""

from servicehost.config.schema import HostSettings
from servicehost.daemon.base import DaemonError, DaemonInfo, DaemonStatus, Registrar
from servicehost.daemon.resolve import UnsupportedPlatformError, detect_platform, resolve_scope

__all__ = [
    "DaemonError",
    "DaemonInfo",
    "DaemonStatus",
    "Registrar",
    "UnsupportedPlatformError",
    "get_registrar",
]


def get_registrar(settings: HostSettings | None = None) -> Registrar:
    """Return the platform-appropriate Registrar."""
    settings = settings or HostSettings()
    platform = detect_platform()
    scope = resolve_scope(settings.scope)
    if platform == "macos":
        from servicehost.daemon.launchd import LaunchdRegistrar
        return LaunchdRegistrar(scope, settings.delayed_start_seconds)
    else:
        from servicehost.daemon.systemd import SystemdRegistrar
        return SystemdRegistrar(scope, settings.delayed_start_seconds)
