#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Core linking logic: hard links (recursive for directories), symbolic links, and removal."""

import os
import pathlib
import shutil # For removing directories during overwrite
from config import CONFLICT_STRATEGIES
from logger_utils import get_logger

logger = get_logger("linkconf.core")

MAX_RENAME_ATTEMPTS = 999


def _exists(path: pathlib.Path) -> bool:
    # A dangling symlink still occupies the name
    return path.exists() or path.is_symlink()


def _remove_existing(path: pathlib.Path) -> bool:
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
            logger.info(f"Removed existing directory: {path}")
        else:
            path.unlink()
            logger.info(f"Removed existing file/link: {path}")
        return True
    except OSError as e:
        logger.error(f"Failed to overwrite '{path}': {e}")
        return False


def _available_name(path: pathlib.Path) -> pathlib.Path | None:
    """Return 'stem (N).suffix' next to path for the first free N, or None."""
    original_stem = path.stem
    original_suffix = path.suffix
    for counter in range(1, MAX_RENAME_ATTEMPTS + 1):
        candidate = path.with_name(f"{original_stem} ({counter}){original_suffix}")
        if not _exists(candidate):
            return candidate
    logger.error(f"Could not find an available name after {MAX_RENAME_ATTEMPTS} attempts for '{original_stem}'.")
    return None


def _resolve_conflict(link_path: pathlib.Path, conflict_strategy: str):
    """
    Apply conflict_strategy to an occupied link_path.

    Returns (path_to_create, done): path_to_create is None when nothing should be
    created; done is the result to report in that case.
    """
    if not _exists(link_path):
        return link_path, True
    logger.warning(f"Destination path '{link_path}' already exists.")
    if conflict_strategy == 'fail':
        logger.error("Conflict resolution set to 'fail'. Aborting.")
        return None, False
    elif conflict_strategy == 'skip':
        logger.info("Conflict resolution set to 'skip'. Skipping creation.")
        return None, True
    elif conflict_strategy == 'overwrite':
        logger.info("Conflict resolution set to 'overwrite'. Attempting to remove existing item...")
        if not _remove_existing(link_path):
            return None, False
        return link_path, True
    elif conflict_strategy == 'rename':
        new_path = _available_name(link_path)
        if new_path is None:
            return None, False
        logger.info(f"Found available name: '{new_path}'")
        return new_path, True
    logger.error(f"Unknown conflict strategy '{conflict_strategy}'. Aborting.")
    return None, False


def create_hardlink(source: pathlib.Path, destination_dir: pathlib.Path, name: str | None = None, conflict_strategy: str = 'fail'):
    """
    Creates a hardlink from source to a name within destination_dir.
    If the source is a directory, it recursively creates hardlinks for all files in the tree (directories are created, not linked).

    Args:
        source: The source file or directory path.
        destination_dir: The directory where the hardlink (or directory structure) will be created.
        name: Optional name for the hardlink or top-level directory. If None, uses the source's name.
        conflict_strategy: How to handle existing files/links at the destination.
                           Options: 'fail' (default), 'skip', 'overwrite', 'rename'.
                           Note: for the top-level directory, 'rename' acts like 'fail'.

    Returns:
        True if successful or skipped, False if failed.
    """
    source = pathlib.Path(source)
    destination_dir = pathlib.Path(destination_dir)
    if conflict_strategy not in CONFLICT_STRATEGIES:
        logger.error(f"Unknown conflict strategy '{conflict_strategy}'. Aborting.")
        return False

    if not source.exists():
        logger.error(f"Source path '{source}' does not exist.")
        return False

    if not destination_dir.is_dir():
        logger.error(f"Destination '{destination_dir}' is not a directory or does not exist.")
        return False

    link_path = destination_dir / (name if name else source.name)

    if source.is_dir():
        return _hardlink_tree(source, link_path, conflict_strategy)

    elif source.is_file():
        link_path, done = _resolve_conflict(link_path, conflict_strategy)
        if link_path is None:
            return done
        try:
            logger.info(f"Creating hardlink: '{source}' -> '{link_path}'")
            os.link(source, link_path)
            return True
        except OSError as e:
            logger.error(f"Error creating hardlink '{link_path}' -> '{source}': {e}")
            return False

    else:
        logger.error(f"Source path '{source}' is not a file or directory. Type not supported.")
        return False


def _hardlink_tree(source: pathlib.Path, target_dir_path: pathlib.Path, conflict_strategy: str) -> bool:
    logger.info(f"Source '{source.name}' is a directory. Recursively hardlinking all files.")
    if _exists(target_dir_path):
        effective_strategy = conflict_strategy
        if conflict_strategy == 'rename':
            logger.warning("'rename' conflict strategy not supported for top-level directory creation. Treating as 'fail'.")
            effective_strategy = 'fail'
        path, done = _resolve_conflict(target_dir_path, effective_strategy)
        if path is None:
            return done

    all_success = True
    for root, dirs, files in os.walk(source):
        rel_root = pathlib.Path(root).relative_to(source)
        dest_root = target_dir_path / rel_root
        try:
            dest_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create directory '{dest_root}': {e}")
            all_success = False
            continue
        for file in files:
            src_file = pathlib.Path(root) / file
            dest_file, done = _resolve_conflict(dest_root / file, conflict_strategy)
            if dest_file is None:
                all_success = all_success and done
                continue
            try:
                logger.info(f"Creating hardlink: '{src_file}' -> '{dest_file}'")
                os.link(src_file, dest_file)
            except OSError as e:
                logger.error(f"Failed to create hardlink '{src_file}' -> '{dest_file}': {e}")
                all_success = False
    return all_success


def create_symlink(target: pathlib.Path, destination_dir: pathlib.Path, name: str | None = None,
                   conflict_strategy: str = 'fail', relative: bool = False):
    """
    Creates a symbolic link inside destination_dir whose content is the path of target.

    Unlike a hardlink the new entry only stores a path: it is created even when
    target is missing and it dangles once target is removed. With relative=True
    the stored path is relative to destination_dir.

    Returns:
        True if successful or skipped, False if failed.
    """
    target = pathlib.Path(target)
    destination_dir = pathlib.Path(destination_dir)
    if conflict_strategy not in CONFLICT_STRATEGIES:
        logger.error(f"Unknown conflict strategy '{conflict_strategy}'. Aborting.")
        return False

    if not destination_dir.is_dir():
        logger.error(f"Destination '{destination_dir}' is not a directory or does not exist.")
        return False

    if not target.exists():
        logger.warning(f"Symlink target '{target}' does not exist. The link will dangle.")

    link_path, done = _resolve_conflict(destination_dir / (name if name else target.name), conflict_strategy)
    if link_path is None:
        return done

    if relative:
        link_target = os.path.relpath(target.absolute(), destination_dir.absolute())
    else:
        link_target = str(target.absolute())
    try:
        logger.info(f"Creating symlink: '{link_path}' -> '{link_target}'")
        os.symlink(link_target, link_path)
        return True
    except OSError as e:
        logger.error(f"Error creating symlink '{link_path}' -> '{link_target}': {e}")
        return False


def remove_link(path: pathlib.Path):
    """
    Remove one name (hardlink or symlink). The data survives while another hardlink remains.

    Returns:
        True if removed, False otherwise.
    """
    path = pathlib.Path(path)
    if path.is_dir() and not path.is_symlink():
        logger.error(f"Refusing to remove directory '{path}'.")
        return False
    try:
        nlink = path.lstat().st_nlink
        path.unlink()
        logger.info(f"Removed name: {path} (remaining links: {nlink - 1})")
        return True
    except OSError as e:
        logger.error(f"Error removing '{path}': {e}")
        return False


def same_storage(first: pathlib.Path, second: pathlib.Path) -> bool:
    """True if both names resolve to the same inode on the same device."""
    try:
        return os.path.samefile(first, second)
    except OSError:
        return False
