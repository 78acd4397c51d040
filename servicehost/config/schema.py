"""Configuration schema using Pydantic."""

from enum import Enum
from pathlib import Path
from typing import Any, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StartMode(str, Enum):
    """How the service manager starts the service."""
    AUTOMATIC = "automatic"
    DELAYED = "delayed"
    MANUAL = "manual"

    @property
    def is_automatic(self) -> bool:
        return self in (StartMode.AUTOMATIC, StartMode.DELAYED)

    @property
    def is_delayed(self) -> bool:
        return self is StartMode.DELAYED


class ServiceAccount(str, Enum):
    """Account the installed service runs under."""
    LOCAL_SYSTEM = "local_system"
    LOCAL_SERVICE = "local_service"
    NETWORK_SERVICE = "network_service"
    USER = "user"


class ProcessPriority(str, Enum):
    """Scheduling class of the service process."""
    IDLE = "idle"
    BELOW_NORMAL = "below_normal"
    NORMAL = "normal"
    ABOVE_NORMAL = "above_normal"
    HIGH = "high"
    REALTIME = "realtime"

    @property
    def nice(self) -> int:
        """POSIX nice value for this class."""
        return _NICE_VALUES[self]

    @classmethod
    def parse(cls, token: str | None) -> "ProcessPriority | None":
        """Match a raw token against member names, ignoring case and underscores."""
        if not token:
            return None
        wanted = token.strip().lower().replace("_", "").replace("-", "")
        for member in cls:
            if member.value.replace("_", "") == wanted:
                return member
        return None


_NICE_VALUES = {
    ProcessPriority.IDLE: 19,
    ProcessPriority.BELOW_NORMAL: 10,
    ProcessPriority.NORMAL: 0,
    ProcessPriority.ABOVE_NORMAL: -5,
    ProcessPriority.HIGH: -10,
    ProcessPriority.REALTIME: -20,
}


class LaunchSpec(BaseModel):
    """Immutable description of what to run and how, produced by ServiceConfig.freeze()."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    display_name: str | None = None
    description: str | None = None
    dependencies: tuple[str, ...] = ()
    arguments: tuple[str, ...] = ()
    entry_arguments: tuple[str, ...] = ()  # placed before arguments in the installed command
    process_args: tuple[str, ...] | None = None  # None means sys.argv[1:]
    start_mode: StartMode = StartMode.AUTOMATIC
    priority: ProcessPriority = ProcessPriority.NORMAL
    account: ServiceAccount = ServiceAccount.LOCAL_SYSTEM
    username: str | None = None
    password: str | None = Field(default=None, repr=False)
    executable_path: Path
    factory: Callable[[], Any] | None = Field(default=None, exclude=True, repr=False)
    start_override: Callable[[Any], None] | None = Field(default=None, exclude=True, repr=False)
    stop_override: Callable[[Any], None] | None = Field(default=None, exclude=True, repr=False)

    @property
    def effective_description(self) -> str:
        """Description, else display name, else a generated one."""
        return self.description or self.display_name or f"servicehost {self.name}"


class HostSettings(BaseSettings):
    """Settings for the host process itself, read from SERVICEHOST_* variables."""
    model_config = SettingsConfigDict(env_prefix="SERVICEHOST_")

    log_level: str = "INFO"
    log_file: bool = False  # also log to ~/.servicehost/logs/<name>.log
    interactive: bool | None = None  # override the stdin tty check
    scope: Literal["auto", "user", "system"] = "auto"
    delayed_start_seconds: int = Field(default=120, ge=0)
