# -*- coding: utf-8 -*-
"""
Central configuration for linkconf.
Contains the default config record, permission modes, keybinds, and other constants.
"""
import getpass
import logging
import os

# Record written by `init` and by the scenario
DEFAULT_CONFIG = {
    "database": {
        "host": "default_host",
        "user": "admin",
        "password": "password123",
    }
}

# Permission modes used around a controlled update
READ_ONLY_MODE = 0o444
WRITABLE_MODE = 0o644

# Scenario layout
SHARED_CONFIG_NAME = "shared_config.json"
PROJECT_DIRS = ["project1", "project2"]
PROJECT_CONFIG_NAME = "config.json"

CONFLICT_STRATEGIES = ["fail", "skip", "overwrite", "rename"]

# Keybinds for the TUI
TUI_KEYBINDS = [
    ("h", "go_up", "Go up dir"),
    ("j", "move_down", "Move down"),
    ("k", "move_up", "Move up"),
    ("l", "enter_dir", "Enter dir"),
    ("space", "toggle_select", "Select"),
    ("enter", "deploy", "Hardlink here"),
    ("d", "deploy", "Hardlink here"),
    ("s", "deploy_symlink", "Symlink here"),
    ("delete", "delete_link", "Remove name"),
    ("e", "edit_key", "Edit key"),
    ("n", "new_dir", "New directory"),
    ("q", "quit", "Quit"),
]

LOG_PATH = os.environ.get("LINKCONF_LOG_PATH", f"/tmp/linkconf_{getpass.getuser()}.log")


def resolve_log_level(value: str | None, default: str = "DEBUG") -> str:
    """Return value as a logging level name, or default if it is not one."""
    name = (value or "").strip().upper()
    if isinstance(logging.getLevelName(name), int):
        return name
    return default


LOG_LEVEL = resolve_log_level(os.environ.get("LINKCONF_LOG_LEVEL"))
