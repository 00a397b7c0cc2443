import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Attach a single stream handler to the package logger.

    Safe to call more than once; only the level is updated on later calls.

    Args:
        level: logging level name, e.g. "INFO" or "DEBUG".
    """
    global _configured
    logger = logging.getLogger("tickerfeed")
    logger.setLevel(level.upper())
    if _configured:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    _configured = True
