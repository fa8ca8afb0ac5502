# Clisage CLI Builder — (c) 2025 rtj.dev LLC — MIT Licensed
"""
AssemblyState: the controller behind the command builder.

It owns every piece of mutable session state (the current path, the value store,
list selections, the active query, the inline edit buffer and the execution
session) and turns key names into state changes. It knows nothing about drawing;
`clisage.render` reads it and `clisage.clisage.Clisage` feeds it keys.

`handle_key` returns an `Action` telling the application whether to keep going,
quit, print the accepted command or start showing a running session.

Key routing, in order of precedence:
1. an execution session exists: keys go to the child (RUNNING) or close the
   finished session (EXITED)
2. an inline edit is active: keys edit the value
3. a query is being typed: keys edit the query
4. otherwise: navigation and panel actions
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from clisage.assembler import CommandAssembler
from clisage.catalog import CatalogEntry, CommandCatalog
from clisage.execution import MIN_COLS, MIN_ROWS, ExecutionSession
from clisage.filtering import FilterEngine, FilterItem
from clisage.focus import FocusController, Panel
from clisage.keymap import encode_key, is_printable, normalize_key
from clisage.logger import logger
from clisage.spec import ArgDecl, FlagDecl, FlagShape
from clisage.utils import clamp
from clisage.values import ArgValue, FlagValue, ValueStore

LIST_PANELS = (Panel.COMMANDS, Panel.FLAGS, Panel.ARGS)
CHROME_ROWS = 4


class Action(Enum):
    NONE = "none"
    QUIT = "quit"
    CANCEL = "cancel"
    ACCEPT = "accept"
    EXECUTE = "execute"


def pty_size(rows: int, cols: int) -> tuple[int, int]:
    """Pseudo-terminal size for a terminal of `rows` x `cols`."""
    return max(rows - CHROME_ROWS, MIN_ROWS), max(cols, MIN_COLS)


@dataclass
class EditBuffer:
    """Inline editor for a text flag or an argument."""

    panel: Panel
    name: str
    text: str = ""
    cursor: int = 0

    def insert(self, text: str) -> None:
        self.text = self.text[: self.cursor] + text + self.text[self.cursor :]
        self.cursor += len(text)

    def backspace(self) -> None:
        if self.cursor > 0:
            self.text = self.text[: self.cursor - 1] + self.text[self.cursor :]
            self.cursor -= 1

    def delete(self) -> None:
        self.text = self.text[: self.cursor] + self.text[self.cursor + 1 :]

    def move(self, delta: int) -> None:
        self.cursor = clamp(self.cursor + delta, 0, len(self.text))

    def home(self) -> None:
        self.cursor = 0

    def end(self) -> None:
        self.cursor = len(self.text)

    def clear_to_start(self) -> None:
        self.text = self.text[self.cursor :]
        self.cursor = 0


class AssemblyState:
    """
    Foreground controller of one command-building session.

    Args:
        catalog (CommandCatalog): The commands to navigate.
        print_only (bool): Accept instead of executing from the preview panel.
        bin_override (str | None): Replaces the spec's binary token(s).
        cwd (str | None): Working directory for executed commands.
    """

    def __init__(
        self,
        catalog: CommandCatalog,
        print_only: bool = False,
        bin_override: str | None = None,
        cwd: str | None = None,
    ) -> None:
        self.catalog = catalog
        self.store = ValueStore()
        self.assembler = CommandAssembler(catalog, self.store, bin_override)
        self.focus = FocusController()
        self.print_only = print_only
        self.cwd = cwd or os.getcwd()

        self.path: tuple[str, ...] = ()
        self.selection: dict[Panel, int] = {panel: 0 for panel in LIST_PANELS}
        self.query = ""
        self.query_panel: Panel | None = None
        self.typing_query = False
        self.edit: EditBuffer | None = None

        self.session: ExecutionSession | None = None
        self.on_session_update: Callable[[], None] | None = None
        self.terminal_size: tuple[int, int] = (24, 80)
        self.result: str | None = None

        self.navigate(())

    @property
    def key(self) -> str:
        return self.catalog.entry(self.path).key

    @property
    def current(self) -> CatalogEntry:
        return self.catalog.entry(self.path)

    @property
    def panel(self) -> Panel:
        return self.focus.active or Panel.PREVIEW

    @property
    def command_display(self) -> str:
        return self.assembler.display(self.path)

    @property
    def command_tokens(self) -> list[str]:
        return self.assembler.tokens(self.path)

    def command_entries(self) -> list[CatalogEntry]:
        return self.catalog.descendants(self.path)

    def flag_decls(self) -> list[FlagDecl]:
        return self.catalog.resolved_flags(self.path)

    def flag_value(self, flag: FlagDecl) -> FlagValue:
        return self.store.flag(self.key, flag.name)

    def arg_rows(self) -> list[tuple[ArgDecl, ArgValue]]:
        values = {arg.name: arg for arg in self.store.get_args(self.key)}
        return [(decl, values[decl.name]) for decl in self.current.node.visible_args]

    def items(self, panel: Panel) -> list[FilterItem]:
        if panel is Panel.COMMANDS:
            return [
                FilterItem(entry.display_name, entry.node.help, entry.key)
                for entry in self.command_entries()
            ]
        if panel is Panel.FLAGS:
            return [FilterItem(flag.label, flag.help) for flag in self.flag_decls()]
        if panel is Panel.ARGS:
            return [FilterItem(decl.label, decl.help) for decl, _ in self.arg_rows()]
        return []

    def engine(self, panel: Panel) -> FilterEngine:
        if panel is self.query_panel:
            return FilterEngine(self.query)
        return FilterEngine()

    def editing(self, panel: Panel, name: str) -> EditBuffer | None:
        edit = self.edit
        if edit is not None and edit.panel is panel and edit.name == name:
            return edit
        return None

    def selected(self, panel: Panel) -> int:
        return self.selection.get(panel, 0)

    def visit(self, path: tuple[str, ...]) -> None:
        """Create values for `path`, seeding inherited globals from its ancestors."""
        entry = self.catalog.entry(path)
        if entry.key in self.store:
            return
        inherited = self.catalog.inherited_flags(path)
        seed = {}
        for flag in inherited:
            value = self.assembler.resolve_global(path, flag.name)
            if value is not None:
                seed[flag.name] = value
        self.store.ensure(entry.key, entry.node, inherited, seed)

    def navigate(self, path: tuple[str, ...], select_child: str | None = None) -> None:
        path = tuple(path)
        self.visit(path)
        self.path = path
        self.edit = None
        self.clear_query()
        self.selection = {panel: 0 for panel in LIST_PANELS}
        if select_child is not None:
            for index, entry in enumerate(self.command_entries()):
                if entry.path == path + (select_child,):
                    self.selection[Panel.COMMANDS] = index
                    break
        self.refresh_focus()
        logger.debug("Navigated to '%s'", self.key)

    def refresh_focus(self) -> None:
        self.focus.refresh(
            has_commands=bool(self.current.node.visible_children),
            has_flags=bool(self.flag_decls()),
            has_args=bool(self.arg_rows()),
        )

    def go_parent(self) -> bool:
        if not self.path:
            return False
        self.navigate(self.path[:-1], select_child=self.path[-1])
        return True

    def enter_selected(self) -> bool:
        entries = self.command_entries()
        if not entries:
            return False
        entry = entries[clamp(self.selected(Panel.COMMANDS), 0, len(entries) - 1)]
        self.navigate(entry.path)
        return True

    def set_focus(self, panel: Panel) -> bool:
        if panel is not self.panel:
            self.clear_query()
        return self.focus.set(panel)

    def cycle_focus(self, forward: bool = True) -> Panel:
        self.clear_query()
        return self.focus.next() if forward else self.focus.prev()

    def move(self, delta: int, panel: Panel | None = None) -> None:
        panel = panel or self.panel
        if panel not in LIST_PANELS:
            return
        items = self.items(panel)
        if not items:
            return
        current = clamp(self.selected(panel), 0, len(items) - 1)
        engine = self.engine(panel)
        if engine.active:
            step = 1 if delta > 0 else -1
            for _ in range(abs(delta)):
                index = engine.next_match(items, current, step)
                if index is None:
                    break
                current = index
        else:
            current = clamp(current + delta, 0, len(items) - 1)
        self.selection[panel] = current

    def select(self, panel: Panel, index: int) -> None:
        total = len(self.items(panel))
        if total:
            self.selection[panel] = clamp(index, 0, total - 1)

    def start_query(self) -> None:
        if self.panel not in LIST_PANELS:
            return
        if self.query_panel is not self.panel:
            self.query = ""
        self.query_panel = self.panel
        self.typing_query = True

    def set_query(self, query: str) -> None:
        self.query = query
        if self.query_panel is None:
            self.query_panel = self.panel
        self._reselect()

    def clear_query(self) -> None:
        self.query = ""
        self.query_panel = None
        self.typing_query = False

    def _reselect(self) -> None:
        panel = self.query_panel
        if panel is None:
            return
        engine = self.engine(panel)
        if not engine.active:
            return
        items = self.items(panel)
        if not items:
            return
        current = clamp(self.selected(panel), 0, len(items) - 1)
        if engine.matches(items[current]):
            return
        best = engine.best_initial_match(items)
        if best is not None:
            self.selection[panel] = best

    def selected_flag(self) -> FlagDecl | None:
        flags = self.flag_decls()
        if not flags:
            return None
        return flags[clamp(self.selected(Panel.FLAGS), 0, len(flags) - 1)]

    def selected_arg(self) -> tuple[ArgDecl, ArgValue] | None:
        rows = self.arg_rows()
        if not rows:
            return None
        return rows[clamp(self.selected(Panel.ARGS), 0, len(rows) - 1)]

    def activate_flag(self, start_edit: bool = True) -> None:
        flag = self.selected_flag()
        if flag is None:
            return
        shape = flag.shape
        if shape is FlagShape.BOOLEAN:
            self.store.toggle(self.key, flag.name)
        elif shape is FlagShape.COUNT:
            self.store.increment(self.key, flag.name)
        elif flag.choices:
            self.store.cycle_choice(self.key, flag.name, flag.choices)
        elif start_edit:
            text = str(self.flag_value(flag).value)
            self.edit = EditBuffer(Panel.FLAGS, flag.name, text, len(text))

    def decrement_flag(self) -> None:
        flag = self.selected_flag()
        if flag is not None and flag.shape is FlagShape.COUNT:
            self.store.decrement(self.key, flag.name)

    def activate_arg(self, start_edit: bool = True) -> None:
        row = self.selected_arg()
        if row is None:
            return
        _, value = row
        if value.choices:
            self.store.cycle_arg(self.key, value.name)
        elif start_edit:
            text = value.value
            self.edit = EditBuffer(Panel.ARGS, value.name, text, len(text))

    def _write_edit(self) -> None:
        if self.edit is None:
            return
        if self.edit.panel is Panel.FLAGS:
            self.store.set_text(self.key, self.edit.name, self.edit.text)
        else:
            self.store.set_arg(self.key, self.edit.name, self.edit.text)

    def accept(self) -> Action:
        self.result = self.command_display
        logger.info("Accepted command: %s", self.result)
        return Action.ACCEPT

    def execute(self) -> Action:
        """Spawn the assembled command in a pty sized to the terminal."""
        if self.session is not None:
            return Action.NONE
        if self.print_only:
            return self.accept()
        rows, cols = pty_size(*self.terminal_size)
        self.session = ExecutionSession.spawn(
            self.command_display,
            self.command_tokens,
            rows,
            cols,
            cwd=self.cwd,
            on_update=self.on_session_update,
        )
        return Action.EXECUTE

    def close_session(self) -> bool:
        if self.session is None or not self.session.exited:
            return False
        self.session.close()
        self.session = None
        return True

    def resize(self, rows: int, cols: int) -> None:
        self.terminal_size = (rows, cols)
        if self.session is not None:
            self.session.resize(*pty_size(rows, cols))

    def current_help(self) -> str:
        panel = self.panel
        if panel is Panel.COMMANDS:
            entries = self.command_entries()
            if entries:
                entry = entries[clamp(self.selected(panel), 0, len(entries) - 1)]
                return entry.node.help or entry.key
        elif panel is Panel.FLAGS:
            flag = self.selected_flag()
            if flag is not None:
                text = flag.help or flag.label
                if flag.choices:
                    text += f" [{', '.join(flag.choices)}]"
                if flag.is_global:
                    text += " (global)"
                return text
        elif panel is Panel.ARGS:
            row = self.selected_arg()
            if row is not None:
                decl, _ = row
                text = decl.help or decl.label
                if decl.choices:
                    text += f" [{', '.join(decl.choices)}]"
                return text
        if self.print_only:
            return "Enter prints the command"
        return "Enter runs the command, p prints it"

    def click(self, panel: Panel, index: int | None = None) -> Action:
        """Pointer click on a panel row; clicking the selected row activates it."""
        if self.session is not None:
            return Action.NONE
        self.edit = None
        self.typing_query = False
        was_focused = panel is self.panel
        was_selected = was_focused and index == self.selected(panel)
        if not self.set_focus(panel):
            return Action.NONE
        if panel is Panel.PREVIEW:
            return self.execute() if was_focused else Action.NONE
        if index is None:
            return Action.NONE
        self.select(panel, index)
        if was_selected:
            return self._activate(panel)
        return Action.NONE

    def scroll(self, panel: Panel, delta: int) -> None:
        if self.session is None and self.edit is None:
            self.move(delta, panel)

    def _activate(self, panel: Panel) -> Action:
        if panel is Panel.COMMANDS:
            self.enter_selected()
        elif panel is Panel.FLAGS:
            self.activate_flag()
        elif panel is Panel.ARGS:
            self.activate_arg()
        elif panel is Panel.PREVIEW:
            return self.execute()
        return Action.NONE

    def handle_key(self, key: str, data: str = "") -> Action:
        if self.session is not None:
            return self._session_key(key, data)
        name = normalize_key(key)
        if name == "c-c":
            return Action.CANCEL
        if self.edit is not None:
            return self._edit_key(name, data)
        if self.typing_query:
            return self._query_key(name, data)
        return self._browse_key(name)

    def _session_key(self, key: str, data: str) -> Action:
        session = self.session
        if session.is_running:
            payload = encode_key(key, data)
            if payload:
                session.write(payload)
        elif session.exited and normalize_key(key) in ("enter", "escape", "q"):
            self.close_session()
        return Action.NONE

    def _edit_key(self, key: str, data: str) -> Action:
        edit = self.edit
        if key in ("enter", "escape"):
            self.edit = None
            return Action.NONE
        if key == "backspace":
            edit.backspace()
        elif key == "delete":
            edit.delete()
        elif key == "left":
            edit.move(-1)
        elif key == "right":
            edit.move(1)
        elif key in ("home", "c-a"):
            edit.home()
        elif key in ("end", "c-e"):
            edit.end()
        elif key == "c-u":
            edit.clear_to_start()
        elif is_printable(key):
            edit.insert(key)
        elif key in ("<any>", "<bracketed-paste>") and data:
            edit.insert("".join(char for char in data if char.isprintable()))
        else:
            return Action.NONE
        self._write_edit()
        return Action.NONE

    def _query_key(self, key: str, data: str) -> Action:
        if key == "escape":
            self.clear_query()
        elif key == "enter":
            self.typing_query = False
        elif key in ("tab", "backtab"):
            self.cycle_focus(forward=key == "tab")
        elif key == "backspace":
            self.set_query(self.query[:-1])
        elif key == "up":
            self.move(-1)
        elif key == "down":
            self.move(1)
        elif is_printable(key):
            self.set_query(self.query + key)
        elif key in ("<any>", "<bracketed-paste>") and data:
            self.set_query(self.query + "".join(c for c in data if c.isprintable()))
        return Action.NONE

    def _browse_key(self, key: str) -> Action:
        panel = self.panel
        if key == "q":
            return Action.QUIT
        if key == "p":
            return self.accept()
        if key == "/":
            self.start_query()
        elif key in ("tab", "backtab"):
            self.cycle_focus(forward=key == "tab")
        elif key == "escape":
            if self.query:
                self.clear_query()
            elif not self.go_parent():
                return Action.QUIT
        elif key in ("up", "k"):
            self.move(-1)
        elif key in ("down", "j"):
            self.move(1)
        elif key in ("pageup", "pagedown"):
            self.move(-10 if key == "pageup" else 10)
        elif key in ("left", "h"):
            self.go_parent()
        elif key in ("right", "l"):
            if panel is Panel.COMMANDS:
                self.enter_selected()
        elif key == "enter":
            return self._activate(panel)
        elif key == " ":
            if panel is Panel.FLAGS:
                self.activate_flag(start_edit=False)
            elif panel is Panel.ARGS:
                self.activate_arg(start_edit=False)
        elif key == "backspace":
            if panel is Panel.FLAGS:
                self.decrement_flag()
        return Action.NONE
