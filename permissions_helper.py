# -*- coding: utf-8 -*-
"""
Helper functions for reading, parsing and changing POSIX permission modes, and a
context manager that makes a file writable for the duration of an update.
"""
import contextlib
import os
import pathlib
import stat
from config import WRITABLE_MODE
from logger_utils import get_logger

logger = get_logger("linkconf.permissions")


def parse_mode(value: str) -> int:
    """Parse an octal mode string like '444' or '0o644'."""
    text = value.strip().lower()
    if text.startswith("0o"):
        text = text[2:]
    if not text or len(text) > 4 or any(ch not in "01234567" for ch in text):
        raise ValueError(f"Invalid permission mode: {value!r}")
    return int(text, 8)


def format_mode(mode: int) -> str:
    return format(stat.S_IMODE(mode), "03o")


def get_mode(path: pathlib.Path) -> int:
    """Return the permission bits of path."""
    return stat.S_IMODE(os.stat(str(path)).st_mode)


def set_mode(path: pathlib.Path, mode: int):
    os.chmod(str(path), mode)
    logger.info(f"Set permissions for {path}: {format_mode(mode)}")


def is_writable(path: pathlib.Path) -> bool:
    return os.access(str(path), os.W_OK)


@contextlib.contextmanager
def temporarily_writable(path: pathlib.Path, writable_mode: int = WRITABLE_MODE, restore_mode: int | None = None):
    """
    Make path writable, yield its original mode, and restore the mode on exit.

    restore_mode overrides the mode put back afterwards; by default the mode the
    file had on entry is restored. Restoration runs even if the body raises.
    """
    original_mode = get_mode(path)
    final_mode = original_mode if restore_mode is None else restore_mode
    set_mode(path, writable_mode)
    try:
        yield original_mode
    finally:
        try:
            set_mode(path, final_mode)
        except OSError as e:
            logger.error(f"Failed to restore permissions {format_mode(final_mode)} on {path}: {e}")
            raise
