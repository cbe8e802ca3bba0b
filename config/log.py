import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
HANDLER_NAME = "rewards"

log = logging.getLogger("rewards")


def configure_logging(level: Optional[str] = None) -> None:
    """Attach a single stream handler to the "rewards" logger tree."""
    if level is None:
        from .settings import get_settings
        level = get_settings().log_level

    log.setLevel(level)
    if not any(h.get_name() == HANDLER_NAME for h in log.handlers):
        handler = logging.StreamHandler()
        handler.set_name(HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)
