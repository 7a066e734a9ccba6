import logging
import sys

from schoolcrm.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def _configure_root() -> None:
    global _configured
    if _configured:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger("schoolcrm")
    root.addHandler(handler)
    root.setLevel(settings.log_level.upper())
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the `schoolcrm` namespace sharing one stream handler."""
    _configure_root()
    if not name.startswith("schoolcrm"):
        name = f"schoolcrm.{name}"
    return logging.getLogger(name)
