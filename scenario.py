#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Walkthroughs of hardlink behaviour.

run_advanced_scenario: one shared config hardlinked into two projects, then
updated once under a temporary write permission; both projects see the change.

demonstrate_link_types: a hardlink survives removal of the original name, a
symlink does not.
"""

import os
import pathlib
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from config import PROJECT_CONFIG_NAME, PROJECT_DIRS, READ_ONLY_MODE, SHARED_CONFIG_NAME
from core import create_hardlink, create_symlink, remove_link
from logger_utils import get_logger
from permissions_helper import get_mode, set_mode
from shared_config import ConfigError, get_value, init_config, safe_update

logger = get_logger("linkconf.scenario")


@dataclass
class ScenarioResult:
    shared_path: pathlib.Path
    linked_paths: List[pathlib.Path]
    updated: bool
    hosts: Dict[pathlib.Path, Optional[str]] = field(default_factory=dict)
    mode: int = 0
    inode: int = 0

    @property
    def consistent(self) -> bool:
        return len(set(self.hosts.values())) == 1


@dataclass
class LinkDemoResult:
    original: pathlib.Path
    hardlink: pathlib.Path
    symlink: pathlib.Path
    hardlink_content: Optional[str]
    symlink_content: Optional[str]
    symlink_dangling: bool


def run_advanced_scenario(base_dir: pathlib.Path, new_host: str = "new_secure_host") -> ScenarioResult:
    """
    Initialize a shared config, hardlink it into each project, lock it down and update it.

    Raises ConfigError if base_dir already holds a shared config or a link cannot be created.
    On a link failure the shared config and any links made so far are removed again.
    """
    base_dir = pathlib.Path(base_dir)
    base_dir.mkdir(parents=True, exist_ok=True)
    shared_path = base_dir / SHARED_CONFIG_NAME

    # Created writable first; the links do not depend on the mode
    init_config(shared_path, mode=0o644)
    linked = []
    for project in PROJECT_DIRS:
        project_dir = base_dir / project
        project_dir.mkdir(exist_ok=True)
        if not create_hardlink(shared_path, project_dir, PROJECT_CONFIG_NAME, conflict_strategy='fail'):
            for path in linked + [shared_path]:
                remove_link(path)
            raise ConfigError(f"Could not link {shared_path} into {project_dir}")
        linked.append(project_dir / PROJECT_CONFIG_NAME)

    set_mode(shared_path, READ_ONLY_MODE)
    updated = safe_update(shared_path, "database.host", new_host)
    if updated:
        logger.info(f"Scenario: database.host set to {new_host!r}")
    else:
        logger.error("Scenario: update of database.host failed")

    hosts = {}
    for path in [shared_path] + linked:
        try:
            hosts[path] = get_value(path, "database.host")
        except ConfigError as e:
            logger.error(f"Scenario: cannot read {path}: {e}")
            hosts[path] = None
    return ScenarioResult(
        shared_path=shared_path,
        linked_paths=linked,
        updated=updated,
        hosts=hosts,
        mode=get_mode(shared_path),
        inode=os.stat(shared_path).st_ino,
    )


def demonstrate_link_types(base_dir: pathlib.Path, content: str = "Hello, links!\n") -> LinkDemoResult:
    base_dir = pathlib.Path(base_dir)
    base_dir.mkdir(parents=True, exist_ok=True)
    original = base_dir / "original.txt"
    original.write_text(content, encoding="utf-8")
    create_hardlink(original, base_dir, "hardlink.txt", conflict_strategy='overwrite')
    create_symlink(original, base_dir, "symlink.txt", conflict_strategy='overwrite', relative=True)
    hardlink = base_dir / "hardlink.txt"
    symlink = base_dir / "symlink.txt"

    remove_link(original)

    try:
        symlink_content = symlink.read_text(encoding="utf-8")
    except FileNotFoundError:
        symlink_content = None
    return LinkDemoResult(
        original=original,
        hardlink=hardlink,
        symlink=symlink,
        hardlink_content=hardlink.read_text(encoding="utf-8"),
        symlink_content=symlink_content,
        symlink_dangling=symlink.is_symlink() and not symlink.exists(),
    )
