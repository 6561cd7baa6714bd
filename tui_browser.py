#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
TUI browser for linkconf using Textual, providing nnn-like navigation over link entries.

Each row shows the entry type, its link count, inode and permission mode, so names
sharing one inode are easy to spot. Selected entries can be hardlinked or symlinked
into the current directory, and a key of a JSON config can be edited in place
through the controlled update.
"""

import asyncio
import json
import os
import pathlib
from typing import Optional, Set
from textual.app import App, ComposeResult
from textual.widgets import Header, Footer, DataTable, Static, Input, Button, Label
from textual.reactive import reactive
from textual import events
from textual.containers import Vertical
from textual.screen import ModalScreen
from rich.panel import Panel
from rich.text import Text
from config import TUI_KEYBINDS
from core import create_hardlink, create_symlink, remove_link
from link_index import LinkEntry, list_directory
from logger_utils import get_logger
from permissions_helper import format_mode
from shared_config import parse_value, safe_update

logger = get_logger("linkconf.tui")

class LinkBrowserTUI(App):
    CSS_PATH = None
    BINDINGS = TUI_KEYBINDS

    current_dir = reactive(pathlib.Path.cwd())
    cursor_index: int = reactive(0)

    def __init__(self, start_dir: Optional[str] = None, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.current_dir = pathlib.Path(start_dir) if start_dir else pathlib.Path.cwd()
        self.selected: Set[pathlib.Path] = set()
        self.cursor_index = 0
        self.items: list[LinkEntry] = []
        self.last_status = ""

    def compose(self) -> ComposeResult:
        if os.geteuid() != 0:
            yield Static(Panel("[bold yellow]Not running as root: files owned by other users cannot be relinked or re-moded.[/bold yellow]", style="yellow"), id="root-warning")
        yield Header(show_clock=True)
        yield DataTable(id="filetable")
        yield Footer()

    async def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.add_columns("#", "Name", "Type", "Links", "Inode", "Mode", "Selected")
        await self.load_directory(self.current_dir)
        table.focus()

    async def load_directory(self, path: pathlib.Path, preserve_cursor_index: Optional[int] = None):
        """Loads directory entries into the DataTable, optionally preserving cursor position."""
        self.current_dir = path.resolve()
        logger.debug(f"[load_directory] Loading directory: {self.current_dir}")
        try:
            entries = list_directory(self.current_dir)
        except OSError as e:
            logger.error(f"Error listing directory {self.current_dir}: {e}")
            entries = []
        self.items = entries

        table = self.query_one(DataTable)
        table.clear()
        for idx, entry in enumerate(entries):
            name_text = Text(entry.path.name)
            if entry.is_dir:
                name_text.stylize("bold blue")
            elif entry.is_symlink:
                name_text.stylize("red" if entry.dangling else "cyan")
            elif entry.is_hardlink:
                name_text.stylize("magenta")
            table.add_row(
                str(idx + 1),
                name_text,
                entry.kind,
                Text(str(entry.nlink), style="magenta") if entry.is_hardlink else str(entry.nlink),
                str(entry.inode),
                format_mode(entry.mode),
                Text("✓", style="green") if entry.path.absolute() in self.selected else "",
            )

        if preserve_cursor_index is not None and 0 <= preserve_cursor_index < len(entries):
            self.cursor_index = preserve_cursor_index
        elif self.cursor_index >= len(entries) or self.cursor_index < 0:
            self.cursor_index = 0

        if entries:
            table.move_cursor(row=self.cursor_index)
        self.sub_title = str(self.current_dir)

    def _highlighted(self) -> Optional[LinkEntry]:
        if not self.items or self.cursor_index >= len(self.items):
            return None
        return self.items[self.cursor_index]

    def _reload(self, cursor_index: Optional[int] = None):
        asyncio.create_task(self.load_directory(self.current_dir, preserve_cursor_index=cursor_index))

    async def on_key(self, event: events.Key) -> None:
        """Block arrow keys in the table so only the vim bindings navigate."""
        table = self.query_one(DataTable)
        if table.has_focus and event.key in ("up", "down", "left", "right"):
            event.prevent_default()
            event.stop()

    def action_move_up(self):
        table = self.query_one(DataTable)
        if self.cursor_index > 0:
            self.cursor_index -= 1
            table.move_cursor(row=self.cursor_index)

    def action_move_down(self):
        table = self.query_one(DataTable)
        if self.cursor_index < len(self.items) - 1:
            self.cursor_index += 1
            table.move_cursor(row=self.cursor_index)

    def action_go_up(self):
        parent = self.current_dir.parent
        if parent != self.current_dir:
            asyncio.create_task(self.load_directory(parent))

    def action_enter_dir(self):
        entry = self._highlighted()
        if entry is not None and entry.is_dir:
            asyncio.create_task(self.load_directory(entry.path))

    def action_toggle_select(self):
        entry = self._highlighted()
        if entry is None:
            return
        key = entry.path.absolute()
        if key in self.selected:
            self.selected.remove(key)
        else:
            self.selected.add(key)
        logger.debug(f"[toggle_select] Selected set: {self.selected}")
        if self.cursor_index < len(self.items) - 1:
            self.cursor_index += 1
        self._reload(self.cursor_index)

    def action_delete_link(self):
        entry = self._highlighted()
        if entry is None:
            self.bell()
            return
        if entry.is_dir:
            try:
                entry.path.rmdir()
                logger.info(f"Removed empty directory: {entry.path}")
            except OSError as e:
                logger.error(f"Error removing directory {entry.path.name}: {e}")
                self.bell()
                return
        elif not remove_link(entry.path):
            self.bell()
            return
        self.selected.discard(entry.path.absolute())
        current_index = self.cursor_index
        if current_index >= len(self.items) - 1 and len(self.items) > 1:
            current_index -= 1
        self._reload(current_index)

    def _deploy(self, symbolic: bool):
        if not self.selected:
            self.bell()
            return
        destination_dir = self.current_dir.resolve()
        success_count = 0
        fail_count = 0
        for source_path in sorted(self.selected):
            if symbolic:
                ok = create_symlink(source_path, destination_dir, None, conflict_strategy='rename')
            else:
                ok = create_hardlink(source_path, destination_dir, None, conflict_strategy='rename')
            if ok:
                success_count += 1
            else:
                fail_count += 1
        kind = "Symlink" if symbolic else "Hardlink"
        self.last_status = f"{kind} deployment complete. Success: {success_count}, Failed: {fail_count}."
        logger.info(self.last_status)
        self.notify(self.last_status, severity="error" if fail_count else "information")
        self.selected = set()
        self._reload(self.cursor_index)

    def action_deploy(self):
        self._deploy(symbolic=False)

    def action_deploy_symlink(self):
        self._deploy(symbolic=True)

    def apply_edit(self, path: pathlib.Path, expression: str) -> bool:
        """Apply 'dotted.key=value' to the JSON file at path through safe_update."""
        key_path, sep, raw_value = expression.partition("=")
        if not sep or not key_path.strip():
            self.last_status = "Expected key=value."
            self.notify(self.last_status, severity="error")
            return False
        ok = safe_update(path, key_path.strip(), parse_value(raw_value.strip()))
        self.last_status = f"Updated {key_path.strip()} in {path.name}." if ok else "Configuration update failed."
        self.notify(self.last_status, severity="information" if ok else "error")
        return ok

    def action_edit_key(self):
        entry = self._highlighted()
        if entry is None or entry.is_dir or entry.dangling:
            self.bell()
            return
        path = entry.path

        async def do_edit(expression):
            self.apply_edit(path, expression)
            await self.load_directory(self.current_dir, preserve_cursor_index=self.cursor_index)

        async def cancel_edit():
            pass

        try:
            preview = json.dumps(json.loads(path.read_text(encoding="utf-8")))[:60]
        except (OSError, ValueError):
            preview = path.name
        self.push_screen(TextInputModalScreen(
            prompt=f"key=value for {path.name}  ({preview})",
            initial_value="",
            on_submit=do_edit,
            on_cancel=cancel_edit,
            ok_label="Update",
        ))

    def action_new_dir(self):
        """Prompt for a directory name and create it in the current directory."""
        async def do_create_dir(new_dir_name):
            new_path = self.current_dir / new_dir_name
            if new_path.exists():
                self.bell()
                return
            try:
                new_path.mkdir()
                logger.info(f"Created new directory: {new_path}")
            except OSError as e:
                logger.error(f"Failed to create directory: {e}")
                self.bell()
                return
            await self.load_directory(self.current_dir, preserve_cursor_index=self.cursor_index)

        async def cancel_create_dir():
            pass

        self.push_screen(TextInputModalScreen(
            prompt="New directory name:",
            initial_value="",
            on_submit=do_create_dir,
            on_cancel=cancel_create_dir,
            ok_label="Create",
        ))

    def action_quit(self):
        self.exit()

    def on_unmount(self) -> None:
        logger.info("linkconf TUI session ended.")

    def on_data_table_row_highlighted(self, event) -> None:
        self.cursor_index = event.cursor_row


class TextInputModalScreen(ModalScreen):
    """
    Generic modal dialog for text input.
    Accepts a prompt label, initial value, and async callbacks for submit/cancel.
    """
    def __init__(self, prompt, initial_value, on_submit, on_cancel, ok_label="OK", cancel_label="Cancel"):
        super().__init__()
        self.prompt = prompt
        self.input = Input(value=initial_value, placeholder=prompt)
        self.on_submit = on_submit
        self.on_cancel = on_cancel
        self.error_label = Label("")
        self.ok_button = Button(ok_label, id="ok")
        self.cancel_button = Button(cancel_label, id="cancel")

    def compose(self):
        yield Vertical(
            Label(self.prompt),
            self.input,
            self.error_label,
            self.ok_button,
            self.cancel_button,
        )

    async def on_button_pressed(self, event):
        if event.button.id == "ok":
            await self._try_submit()
        elif event.button.id == "cancel":
            await self._cancel()

    async def on_key(self, event):
        if event.key == "escape":
            await self._cancel()
            event.stop()
        elif event.key == "enter" and self.input.has_focus:
            await self._try_submit()
            event.stop()

    async def _try_submit(self):
        value = self.input.value.strip()
        if not value:
            self.error_label.update("Value cannot be empty.")
            return
        await self.on_submit(value)
        self.dismiss()

    async def _cancel(self):
        await self.on_cancel()
        self.dismiss()


if __name__ == "__main__":
    import sys
    LinkBrowserTUI(start_dir=sys.argv[1] if len(sys.argv) > 1 else None).run()
