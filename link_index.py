#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Link indexing utilities: which names share an inode, and which symlinks dangle."""

import os
import pathlib
import stat
from dataclasses import dataclass
from typing import Iterable, List, Optional

@dataclass
class LinkEntry:
    path: pathlib.Path
    inode: int
    device: int
    nlink: int
    mode: int
    is_hardlink: bool  # True if nlink > 1 on a regular file
    is_dir: bool
    is_symlink: bool
    symlink_target: Optional[str] = None
    dangling: bool = False

    @property
    def kind(self) -> str:
        if self.is_symlink:
            return "Broken symlink" if self.dangling else "Symlink"
        if self.is_dir:
            return "Dir"
        return "Hardlink" if self.is_hardlink else "File"


def describe(path: pathlib.Path) -> LinkEntry:
    """Build a LinkEntry for path without following symlinks. Raises OSError."""
    path = pathlib.Path(path)
    st = path.lstat()
    is_symlink = stat.S_ISLNK(st.st_mode)
    is_dir = stat.S_ISDIR(st.st_mode)
    target = None
    dangling = False
    if is_symlink:
        target = os.readlink(path)
        dangling = not path.exists()
    return LinkEntry(
        path=path,
        inode=st.st_ino,
        device=st.st_dev,
        nlink=st.st_nlink,
        mode=stat.S_IMODE(st.st_mode),
        # Directories always have nlink >= 2 from '.' entries; they are never hardlinks
        is_hardlink=stat.S_ISREG(st.st_mode) and st.st_nlink > 1,
        is_dir=is_dir,
        is_symlink=is_symlink,
        symlink_target=target,
        dangling=dangling,
    )


def scan_links(base_path: pathlib.Path) -> List[LinkEntry]:
    """
    Recursively scan for all files, directories and symlinks under base_path.

    Symlinked directories are reported but not descended into.

    Args:
        base_path: The root directory to scan.

    Returns:
        List of LinkEntry objects.

    Raises:
        OSError: base_path itself is missing or unreadable. Unreadable
                 subdirectories are skipped.
    """
    base_path = pathlib.Path(base_path)

    def _on_error(err: OSError):
        if err.filename is not None and pathlib.Path(err.filename) == base_path:
            raise err

    entries = []
    for root, dirs, files in os.walk(base_path, onerror=_on_error):
        root_path = pathlib.Path(root)
        for name in dirs + files:
            try:
                entries.append(describe(root_path / name))
            except OSError:
                continue  # Permission denied or vanished
    return entries


def list_directory(path: pathlib.Path) -> List[LinkEntry]:
    """Non-recursive listing of path, directories first."""
    entries = []
    for child in pathlib.Path(path).iterdir():
        try:
            entries.append(describe(child))
        except OSError:
            continue
    entries.sort(key=lambda e: (not e.is_dir, e.path.name.lower()))
    return entries


def find_aliases(path: pathlib.Path, search_roots: Iterable[pathlib.Path]) -> List[pathlib.Path]:
    """
    Return every name under search_roots that refers to the same inode as path.

    path itself is included when it lies under one of the roots. Symlinks are not
    aliases: they are separate inodes that store a path.
    """
    st = os.stat(path)
    key = (st.st_dev, st.st_ino)
    found = []
    seen = set()
    for root in search_roots:
        for entry in scan_links(pathlib.Path(root)):
            if entry.is_symlink or entry.is_dir:
                continue
            if (entry.device, entry.inode) != key:
                continue
            resolved = entry.path.absolute()
            if resolved not in seen:
                seen.add(resolved)
                found.append(entry.path)
    return found


def dangling_symlinks(base_path: pathlib.Path) -> List[LinkEntry]:
    return [e for e in scan_links(base_path) if e.is_symlink and e.dangling]
