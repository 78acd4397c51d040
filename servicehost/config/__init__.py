"""Service configuration: builder, launch descriptor and host settings."""

from servicehost.config.builder import ServiceConfig
from servicehost.config.schema import (
    HostSettings,
    LaunchSpec,
    ProcessPriority,
    ServiceAccount,
    StartMode,
)

__all__ = [
    "HostSettings",
    "LaunchSpec",
    "ProcessPriority",
    "ServiceAccount",
    "ServiceConfig",
    "StartMode",
]
