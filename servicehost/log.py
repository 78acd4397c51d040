"""Loguru sink setup for the host process."""

import sys

from loguru import logger

from servicehost.config.schema import HostSettings

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {thread.name} | {message}"


def configure_logging(settings: HostSettings | None = None, name: str = "servicehost") -> None:
    """Replace the default sink with a stderr sink and, if enabled, a rotating file sink."""
    settings = settings or HostSettings()
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level.upper(), format=CONSOLE_FORMAT)

    if settings.log_file:
        from servicehost.daemon.resolve import get_log_dir

        logger.add(
            get_log_dir() / f"{name}.log",
            level=settings.log_level.upper(),
            format=FILE_FORMAT,
            rotation="10 MB",
            retention=5,
        )
