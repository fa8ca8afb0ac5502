# Clisage CLI Builder — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Formatted-text builders for the command builder panels.

Every function reads an `AssemblyState` (or a screen snapshot) and returns
prompt_toolkit style fragments. Rows carry mouse handlers built from the `on_click`
and `on_scroll` callbacks, and the selected row carries a `[SetCursorPosition]`
marker so its window keeps it scrolled into view.

Rows that do not match an active query stay in the list but are dimmed. Highlight
positions come from the field that matched, so a help-text match never marks
characters in the name.
"""
from __future__ import annotations

from typing import Callable

from prompt_toolkit.formatted_text import StyleAndTextTuples
from prompt_toolkit.mouse_events import MouseEvent, MouseEventType
from pyte.screens import Char

from clisage.assembler import PartKind
from clisage.execution import ExecutionSession, ScreenSnapshot
from clisage.filtering import FieldMatch, MatchScores
from clisage.focus import Panel
from clisage.spec import FlagShape
from clisage.state import AssemblyState, EditBuffer
from clisage.values import FlagValue

ClickHandler = Callable[[Panel, "int | None"], None]
ScrollHandler = Callable[[Panel, int], None]

PYTE_COLORS = {
    "black": "ansiblack",
    "red": "ansired",
    "green": "ansigreen",
    "brown": "ansiyellow",
    "yellow": "ansiyellow",
    "blue": "ansiblue",
    "magenta": "ansimagenta",
    "cyan": "ansicyan",
    "white": "ansigray",
    "brightblack": "ansibrightblack",
    "brightred": "ansibrightred",
    "brightgreen": "ansibrightgreen",
    "brightbrown": "ansibrightyellow",
    "brightyellow": "ansibrightyellow",
    "brightblue": "ansibrightblue",
    "brightmagenta": "ansibrightmagenta",
    "brightcyan": "ansibrightcyan",
    "brightwhite": "ansiwhite",
}

PART_STYLES = {
    PartKind.BIN: "class:preview.bin",
    PartKind.GLOBAL_FLAG: "class:preview.flag",
    PartKind.SUBCOMMAND: "class:preview.subcommand",
    PartKind.FLAG: "class:preview.flag",
    PartKind.VALUE: "class:preview.value",
    PartKind.ARG: "class:preview.arg",
}


def mouse_handler(
    panel: Panel,
    index: int | None,
    on_click: ClickHandler | None,
    on_scroll: ScrollHandler | None,
):
    def handler(mouse_event: MouseEvent):
        if mouse_event.event_type == MouseEventType.MOUSE_UP and on_click:
            on_click(panel, index)
            return None
        if mouse_event.event_type == MouseEventType.SCROLL_UP and on_scroll:
            on_scroll(panel, -1)
            return None
        if mouse_event.event_type == MouseEventType.SCROLL_DOWN and on_scroll:
            on_scroll(panel, 1)
            return None
        return NotImplemented

    return handler


def highlight(
    text: str, match: FieldMatch, style: str, match_style: str = "class:row.match"
) -> StyleAndTextTuples:
    """Split `text` into runs, marking the matched positions."""
    if not match.indices:
        return [(style, text)]
    marked = set(match.indices)
    fragments: StyleAndTextTuples = []
    run = ""
    run_marked = False
    for index, char in enumerate(text):
        is_marked = index in marked
        if run and is_marked != run_marked:
            fragments.append((f"{style} {match_style}" if run_marked else style, run))
            run = ""
        run += char
        run_marked = is_marked
    if run:
        fragments.append((f"{style} {match_style}" if run_marked else style, run))
    return fragments


def _with_handler(fragments: StyleAndTextTuples, handler) -> StyleAndTextTuples:
    return [(style, text, handler) for style, text, *_ in fragments]


def _row_style(selected: bool, dimmed: bool) -> str:
    if selected:
        return "class:row.selected"
    if dimmed:
        return "class:row.dim"
    return "class:row"


def _row_prefix(selected: bool) -> StyleAndTextTuples:
    if selected:
        return [("[SetCursorPosition]", ""), ("class:row.selected", "▸ ")]
    return [("class:row", "  ")]


def command_fragments(
    state: AssemblyState,
    on_click: ClickHandler | None = None,
    on_scroll: ScrollHandler | None = None,
) -> StyleAndTextTuples:
    entries = state.command_entries()
    engine = state.engine(Panel.COMMANDS)
    selected = state.selected(Panel.COMMANDS)
    focused = state.panel is Panel.COMMANDS
    base_depth = state.current.depth
    fragments: StyleAndTextTuples = []
    for index, (entry, item) in enumerate(zip(entries, state.items(Panel.COMMANDS))):
        scores = engine.score(item) if engine.active else MatchScores()
        is_selected = focused and index == selected
        style = _row_style(is_selected, engine.active and not scores.matched)
        row: StyleAndTextTuples = []
        row.extend(_row_prefix(is_selected))
        row.append((style, "  " * (entry.depth - base_depth - 1)))
        row.extend(highlight(item.name, scores.name, style))
        if item.help:
            row.append((style, "  "))
            row.extend(highlight(item.help, scores.help, f"{style} class:row.help"))
        if scores.path and not scores.name:
            row.append((style, "  "))
            path_style = f"{style} class:row.path"
            row.extend(highlight(item.path or "", scores.path, path_style))
        handler = mouse_handler(Panel.COMMANDS, index, on_click, on_scroll)
        fragments.extend(_with_handler(row, handler))
        fragments.append(("", "\n"))
    return fragments


def flag_marker(shape: FlagShape, value: FlagValue) -> str:
    if shape is FlagShape.BOOLEAN:
        return "[✓] " if value.is_active else "[ ] "
    if shape is FlagShape.COUNT:
        return f"[{value.value}] " if value.is_active else "[ ] "
    return "[=] "


def _edit_fragments(edit: EditBuffer, style: str) -> StyleAndTextTuples:
    text, cursor = edit.text, edit.cursor
    before, at, after = text[:cursor], text[cursor : cursor + 1], text[cursor + 1 :]
    return [
        (style, before),
        (f"{style} class:edit.cursor", at or " "),
        (style, after),
    ]


def flag_fragments(
    state: AssemblyState,
    on_click: ClickHandler | None = None,
    on_scroll: ScrollHandler | None = None,
) -> StyleAndTextTuples:
    engine = state.engine(Panel.FLAGS)
    selected = state.selected(Panel.FLAGS)
    focused = state.panel is Panel.FLAGS
    fragments: StyleAndTextTuples = []
    flags = state.flag_decls()
    for index, (flag, item) in enumerate(zip(flags, state.items(Panel.FLAGS))):
        value = state.flag_value(flag)
        scores = engine.score(item) if engine.active else MatchScores()
        is_selected = focused and index == selected
        style = _row_style(is_selected, engine.active and not scores.matched)
        row: StyleAndTextTuples = []
        row.extend(_row_prefix(is_selected))
        marker_style = f"{style} class:flag.{'on' if value.is_active else 'off'}"
        row.append((marker_style, flag_marker(flag.shape, value)))
        row.extend(highlight(item.name, scores.name, style))
        editing = state.editing(Panel.FLAGS, flag.name)
        if editing is not None:
            row.append((style, " = "))
            row.extend(_edit_fragments(editing, f"{style} class:flag.value"))
        elif flag.shape is FlagShape.TEXT and value.value:
            row.append((style, " = "))
            row.append((f"{style} class:flag.value", str(value.value)))
        if flag.is_global:
            row.append((f"{style} class:row.help", " (global)"))
        if item.help:
            row.append((style, "  "))
            row.extend(highlight(item.help, scores.help, f"{style} class:row.help"))
        handler = mouse_handler(Panel.FLAGS, index, on_click, on_scroll)
        fragments.extend(_with_handler(row, handler))
        fragments.append(("", "\n"))
    return fragments


def arg_fragments(
    state: AssemblyState,
    on_click: ClickHandler | None = None,
    on_scroll: ScrollHandler | None = None,
) -> StyleAndTextTuples:
    engine = state.engine(Panel.ARGS)
    selected = state.selected(Panel.ARGS)
    focused = state.panel is Panel.ARGS
    fragments: StyleAndTextTuples = []
    for index, ((decl, value), item) in enumerate(
        zip(state.arg_rows(), state.items(Panel.ARGS))
    ):
        scores = engine.score(item) if engine.active else MatchScores()
        is_selected = focused and index == selected
        style = _row_style(is_selected, engine.active and not scores.matched)
        label_style = f"{style} class:arg.required" if decl.required else style
        row: StyleAndTextTuples = []
        row.extend(_row_prefix(is_selected))
        row.extend(highlight(item.name, scores.name, label_style))
        row.append((style, " = "))
        editing = state.editing(Panel.ARGS, decl.name)
        if editing is not None:
            row.extend(_edit_fragments(editing, f"{style} class:arg.value"))
        elif value.value:
            row.append((f"{style} class:arg.value", value.value))
        elif decl.choices:
            row.append((f"{style} class:row.help", "|".join(decl.choices)))
        if item.help:
            row.append((style, "  "))
            row.extend(highlight(item.help, scores.help, f"{style} class:row.help"))
        handler = mouse_handler(Panel.ARGS, index, on_click, on_scroll)
        fragments.extend(_with_handler(row, handler))
        fragments.append(("", "\n"))
    return fragments


def preview_fragments(
    state: AssemblyState, on_click: ClickHandler | None = None
) -> StyleAndTextTuples:
    handler = mouse_handler(Panel.PREVIEW, None, on_click, None)
    fragments: StyleAndTextTuples = [("class:filter.prompt", "$ ", handler)]
    for position, part in enumerate(state.assembler.parts(state.path)):
        if position:
            fragments.append(("", " ", handler))
        fragments.append((PART_STYLES[part.kind], part.display, handler))
    return fragments


def query_fragments(state: AssemblyState) -> StyleAndTextTuples:
    if state.query_panel is None:
        return []
    fragments: StyleAndTextTuples = [
        ("class:filter.prompt", "/"),
        ("class:filter", state.query),
    ]
    if state.typing_query:
        fragments.append(("class:edit.cursor", " "))
    return fragments


def help_fragments(state: AssemblyState) -> StyleAndTextTuples:
    return [("class:helpline", state.current_help())]


def _color(value: str) -> str | None:
    if value == "default":
        return None
    if value in PYTE_COLORS:
        return PYTE_COLORS[value]
    if len(value) == 6:
        return f"#{value}"
    return None


def cell_style(char: Char) -> str:
    parts = []
    fg = _color(char.fg)
    bg = _color(char.bg)
    if fg:
        parts.append(f"fg:{fg}")
    if bg:
        parts.append(f"bg:{bg}")
    if char.bold:
        parts.append("bold")
    if char.italics:
        parts.append("italic")
    if char.underscore:
        parts.append("underline")
    if char.strikethrough:
        parts.append("strike")
    if char.reverse:
        parts.append("reverse")
    return " ".join(parts)


def terminal_fragments(
    snapshot: ScreenSnapshot, show_cursor: bool = True
) -> StyleAndTextTuples:
    """Screen cells as fragments, merging runs of equal style."""
    fragments: StyleAndTextTuples = []
    cursor = snapshot.cursor if show_cursor and not snapshot.cursor_hidden else None
    for y, row in enumerate(snapshot.cells):
        run_style = None
        run = ""
        for x, char in enumerate(row):
            style = cell_style(char)
            if (x, y) == cursor:
                style = f"{style} reverse".strip()
            if run and style != run_style:
                fragments.append((run_style or "", run))
                run = ""
            run += char.data or " "
            run_style = style
        if run:
            fragments.append((run_style or "", run.rstrip() if not run_style else run))
        if y < len(snapshot.cells) - 1:
            fragments.append(("", "\n"))
    return fragments


def status_fragments(session: ExecutionSession) -> StyleAndTextTuples:
    if session.is_running:
        return [
            ("class:status.running", " ● running "),
            ("class:helpline", " keys are sent to the process, Ctrl-C interrupts it"),
        ]
    if not session.exited:
        return [("class:status.running", " … starting ")]
    style = "class:status.ok" if session.succeeded else "class:status.error"
    mark = "✔" if session.succeeded else "✘"
    return [
        (style, f" {mark} {session.exit_status} "),
        ("class:helpline", " Enter, Esc or q returns to the builder"),
    ]
