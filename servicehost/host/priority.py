"""Process priority adjustment."""

import psutil
from loguru import logger

from servicehost.config.schema import ProcessPriority


def apply_priority(priority: ProcessPriority, pid: int | None = None) -> bool:
    """Set the nice value of a process (default: this one). Returns False if refused."""
    try:
        psutil.Process(pid).nice(priority.nice)
    except (psutil.AccessDenied, PermissionError) as e:
        logger.warning(f"Cannot set priority {priority.value}: {e}")
        return False
    logger.debug(f"Process priority set to {priority.value} (nice {priority.nice})")
    return True
