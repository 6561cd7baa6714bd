#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Shared JSON configuration: one file, many hardlinked names, updated under a
temporary write permission.

The file is always rewritten in place. Replacing it (write a temp file, then
rename) would give the canonical name a new inode and leave every other
hardlink pointing at the stale content.
"""

import copy
import fcntl
import json
import os
import pathlib
import stat
from contextlib import contextmanager
from typing import Any, List
from config import DEFAULT_CONFIG, READ_ONLY_MODE, WRITABLE_MODE
from logger_utils import get_logger
from permissions_helper import format_mode, get_mode, set_mode, temporarily_writable

logger = get_logger("linkconf.config")


class ConfigError(Exception):
    """Base class for shared config errors."""


class KeyPathError(ConfigError, KeyError):
    """A dotted key path is empty, malformed, or does not resolve."""

    def __str__(self):
        return Exception.__str__(self)


class UpdateError(ConfigError):
    """A controlled update failed. The underlying cause is chained."""


def split_key_path(key_path: str) -> List[str]:
    parts = key_path.split(".") if key_path else []
    if not parts or any(not part for part in parts):
        raise KeyPathError(f"Invalid key path: {key_path!r}")
    return parts


def serialize(data: dict) -> str:
    # NaN and Infinity are not JSON; refuse them rather than write an unparseable file
    return json.dumps(data, indent=4, allow_nan=False) + "\n"


def parse_value(text: str) -> Any:
    """Interpret text as JSON ('42', 'true', '{"a": 1}'), else keep it as a string."""
    try:
        return json.loads(text)
    except ValueError:
        return text


def _write_in_place(path: pathlib.Path, content: str):
    with open(path, "r+", encoding="utf-8") as f:
        f.seek(0)
        f.truncate()
        f.write(content)
        f.flush()
        os.fsync(f.fileno())


def _open_for_lock(path: pathlib.Path) -> int:
    """
    Open a descriptor to flock, whatever the current mode.

    flock only needs an open descriptor, so either access bit will do. When the
    owner has neither, owner-read is granted just long enough to open it.
    """
    for flags in (os.O_RDONLY, os.O_WRONLY):
        try:
            return os.open(str(path), flags)
        except PermissionError:
            continue
    mode = get_mode(path)
    os.chmod(str(path), mode | stat.S_IRUSR)
    try:
        return os.open(str(path), os.O_RDONLY)
    finally:
        os.chmod(str(path), mode)


@contextmanager
def locked(path: pathlib.Path):
    """
    Hold an exclusive flock on the file itself for the duration of the block.

    The lock belongs to the inode, so callers going through different hardlinked
    names of the same file wait on the same lock.
    """
    fd = _open_for_lock(path)
    try:
        fcntl.flock(fd, fcntl.LOCK_EX)
        yield
    finally:
        fcntl.flock(fd, fcntl.LOCK_UN)
        os.close(fd)


def init_config(path: pathlib.Path, data: dict | None = None, mode: int = READ_ONLY_MODE, overwrite: bool = False) -> pathlib.Path:
    """
    Write the default (or given) config record to path and set its mode.

    An existing file is only replaced with overwrite=True, and then in place so
    that any hardlinks keep seeing it.
    """
    path = pathlib.Path(path)
    record = copy.deepcopy(DEFAULT_CONFIG if data is None else data)
    content = serialize(record)
    if path.exists():
        if not overwrite:
            raise ConfigError(f"Config '{path}' already exists.")
        with locked(path), temporarily_writable(path, WRITABLE_MODE, restore_mode=mode):
            _write_in_place(path, content)
        logger.info(f"Reinitialized config in place: {path}")
        return path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    set_mode(path, mode)
    logger.info(f"Created config: {path} ({format_mode(mode)})")
    return path


def load_config(path: pathlib.Path) -> dict:
    """Read and parse the config at path. Raises ConfigError."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config '{path}': {e}") from e
    except ValueError as e:
        raise ConfigError(f"Config '{path}' is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config '{path}' must contain a JSON object.")
    return data


def _descend(data: dict, parts: List[str], create_missing: bool = False) -> dict:
    node = data
    for depth, part in enumerate(parts):
        if part not in node:
            if not create_missing:
                raise KeyPathError(f"Key '{'.'.join(parts[:depth + 1])}' not found.")
            node[part] = {}
        node = node[part]
        if not isinstance(node, dict):
            raise KeyPathError(f"Key '{'.'.join(parts[:depth + 1])}' is not an object.")
    return node


def get_value(path: pathlib.Path, key_path: str) -> Any:
    parts = split_key_path(key_path)
    parent = _descend(load_config(path), parts[:-1])
    if parts[-1] not in parent:
        raise KeyPathError(f"Key '{key_path}' not found.")
    return parent[parts[-1]]


def update_value(path: pathlib.Path, key_path: str, value: Any, *, writable_mode: int = WRITABLE_MODE,
                 restore_mode: int | None = None, create_missing: bool = False):
    """
    Controlled update that raises UpdateError on failure.

    Locks the file, makes it writable, loads it, sets key_path to value, rewrites
    it in place and restores the permission mode whatever happened.
    """
    path = pathlib.Path(path)
    try:
        parts = split_key_path(key_path)
        with locked(path), temporarily_writable(path, writable_mode, restore_mode):
            data = load_config(path)
            parent = _descend(data, parts[:-1], create_missing=create_missing)
            parent[parts[-1]] = value
            # Serialize before truncating so a bad value cannot leave a half-written file
            content = serialize(data)
            _write_in_place(path, content)
    except (ConfigError, OSError, TypeError, ValueError) as e:
        raise UpdateError(f"Failed to update '{key_path}' in {path}: {e}") from e
    logger.info(f"Updated '{key_path}' in {path}")


def safe_update(path: pathlib.Path, key_path: str, value: Any, **kwargs) -> bool:
    """
    Controlled update that logs and swallows failures.

    Returns:
        True if the value was written, False otherwise.
    """
    try:
        update_value(path, key_path, value, **kwargs)
        return True
    except UpdateError as e:
        logger.error(str(e))
        return False
