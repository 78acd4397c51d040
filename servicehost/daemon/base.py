"""Abstract service registrar interface and shared types."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from servicehost.config.schema import LaunchSpec
from servicehost.errors import ServiceHostError


class DaemonStatus(Enum):
    RUNNING = "running"
    STOPPED = "stopped"
    NOT_INSTALLED = "not_installed"


@dataclass
class DaemonInfo:
    status: DaemonStatus
    pid: int | None = None
    service_file: Path | None = None
    log_path: Path | None = None


class DaemonError(ServiceHostError):
    """Raised when a registrar operation fails."""


class Registrar(ABC):
    """Registers and deregisters a service with the platform service manager."""

    scope: str = "user"

    @abstractmethod
    def service_file(self, name: str) -> Path:
        """Path of the service definition for name."""

    @abstractmethod
    def install(self, spec: LaunchSpec) -> Path:
        """Write the service definition and register it. Returns its path."""

    @abstractmethod
    def uninstall(self, name: str, executable_path: Path | None = None) -> None:
        """Deregister the service and remove its definition."""

    @abstractmethod
    def status(self, name: str) -> DaemonInfo:
        """Get current service status."""

    def is_installed(self, name: str) -> bool:
        """Check whether the service file exists."""
        return self.service_file(name).exists()
