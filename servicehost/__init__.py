"""servicehost - run any object as a console app or a managed background service."""

__version__ = "0.1.0"
__logo__ = "⚙"

from servicehost.config import ServiceConfig  # noqa: E402
from servicehost.host import HostedService  # noqa: E402

__all__ = ["HostedService", "ServiceConfig", "__logo__", "__version__"]
