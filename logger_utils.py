import logging
import os
import sys
from config import LOG_LEVEL, LOG_PATH

FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Every logger handed out, so a console handler can be attached to all of them
_loggers = {}


def get_logger(name="linkconf"):
    """Return a non-propagating logger writing to the per-user log file."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(LOG_LEVEL)
        os.makedirs(os.path.dirname(LOG_PATH) or ".", exist_ok=True)
        handler = logging.FileHandler(LOG_PATH, encoding="utf-8")
        handler.setFormatter(logging.Formatter(FORMAT, DATE_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
    _loggers[name] = logger
    return logger


def enable_console(level=logging.INFO):
    """Mirror every linkconf logger to stderr (used by the CLI's --verbose)."""
    for logger in _loggers.values():
        if any(getattr(h, "_linkconf_console", False) for h in logger.handlers):
            continue
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
        handler._linkconf_console = True
        logger.addHandler(handler)
