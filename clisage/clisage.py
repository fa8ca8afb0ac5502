# Clisage CLI Builder — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Main class for constructing and running the Clisage command builder.

`Clisage` puts an `AssemblyState` behind a full screen prompt_toolkit
`Application`:

- a commands panel listing every command below the current path
- a flags panel with the resolved flags (own and inherited globals)
- an args panel with the positional arguments
- a preview panel with the assembled command line
- a query line, a help line and a key-hint bottom bar

Every key press is handed to `AssemblyState.handle_key`; the returned `Action`
decides whether the application keeps running, exits with the accepted command,
or switches to the terminal view of a running `ExecutionSession`. While a session
exists the panels are replaced by the emulated terminal and a status line, and
the screen is redrawn on a short timer until the child's output is complete.

Example:
    from clisage import Clisage, CommandCatalog, loader

    catalog = CommandCatalog(loader("mycli.yaml"))
    command = Clisage(catalog, print_only=True).run()
    if command:
        print(command)
"""
from __future__ import annotations

import asyncio
from typing import Callable

from prompt_toolkit.application import Application
from prompt_toolkit.filters import Condition
from prompt_toolkit.formatted_text import StyleAndTextTuples
from prompt_toolkit.input import Input, create_input
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.key_binding.key_processor import KeyPressEvent
from prompt_toolkit.keys import Keys
from prompt_toolkit.layout import (
    ConditionalContainer,
    Dimension,
    FormattedTextControl,
    HSplit,
    Layout,
    VSplit,
    Window,
)
from prompt_toolkit.output import Output, create_output
from prompt_toolkit.widgets import Frame

from clisage.bottom_bar import BottomBar
from clisage.catalog import CommandCatalog
from clisage.focus import Panel
from clisage.logger import logger
from clisage.render import (
    arg_fragments,
    command_fragments,
    flag_fragments,
    help_fragments,
    preview_fragments,
    query_fragments,
    status_fragments,
    terminal_fragments,
)
from clisage.state import Action, AssemblyState
from clisage.themes import OneColors, get_app_style
from clisage.utils import console_logging_paused

REFRESH_INTERVAL = 0.03
ESCAPE_TIMEOUT = 0.05

# Named keys prompt_toolkit would otherwise swallow in its default bindings.
FORWARDED_KEYS = (
    "escape",
    "c-m",
    "c-j",
    "c-i",
    "s-tab",
    "c-h",
    "up",
    "down",
    "left",
    "right",
    "s-up",
    "s-down",
    "s-left",
    "s-right",
    "c-up",
    "c-down",
    "c-left",
    "c-right",
    "home",
    "end",
    "insert",
    "delete",
    "pageup",
    "pagedown",
    "c-@",
    "c-\\",
    "c-]",
    "c-^",
    "c-_",
    *(f"f{number}" for number in range(1, 13)),
    *(f"c-{letter}" for letter in "abcdefgklnopqrstuvwxyz"),
)


class Clisage:
    """
    Interactive command builder for one command description.

    Args:
        catalog (CommandCatalog): Commands to navigate.
        print_only (bool): Accept the command from the preview panel instead of
            running it.
        bin_override (str | None): Leading token(s) used instead of the spec's bin.
        cwd (str | None): Working directory for executed commands.
        input (Input | None): prompt_toolkit input. Defaults to the terminal, even
            when stdin is redirected.
        output (Output | None): prompt_toolkit output. Defaults to the terminal, so
            stdout stays free for the printed command.
        refresh_interval (float): Redraw period while a command is running.
    """

    def __init__(
        self,
        catalog: CommandCatalog,
        print_only: bool = False,
        bin_override: str | None = None,
        cwd: str | None = None,
        input: Input | None = None,
        output: Output | None = None,
        refresh_interval: float = REFRESH_INTERVAL,
    ) -> None:
        self.catalog = catalog
        self.state = AssemblyState(
            catalog, print_only=print_only, bin_override=bin_override, cwd=cwd
        )
        self.state.on_session_update = self._on_session_update
        self.refresh_interval = refresh_interval
        self.bottom_bar = BottomBar(columns=7, get_width=self._width)
        self._build_bottom_bar()
        self.key_bindings = self._get_key_bindings()
        self.app: Application[str | None] = Application(
            layout=self._build_layout(),
            key_bindings=self.key_bindings,
            style=get_app_style(),
            full_screen=True,
            mouse_support=True,
            before_render=self._sync_size,
            input=input or create_input(always_prefer_tty=True),
            output=output or create_output(always_prefer_tty=True),
        )
        self.app.ttimeoutlen = ESCAPE_TIMEOUT
        self._ticker: asyncio.Task | None = None

    @property
    def title(self) -> str:
        return self.catalog.spec.name

    def _width(self) -> int:
        return self.app.output.get_size().columns

    def _on_session_update(self) -> None:
        self.app.invalidate()

    def _sync_size(self, app: Application) -> None:
        size = app.output.get_size()
        if (size.rows, size.columns) != self.state.terminal_size:
            self.state.resize(size.rows, size.columns)

    def _build_bottom_bar(self) -> None:
        state = self.state

        def browsing() -> bool:
            return state.edit is None and not state.typing_query

        def typing() -> bool:
            return state.edit is not None or state.typing_query

        run_label = "print" if state.print_only else "run"
        self.bottom_bar.add_value_tracker(
            "path", "at", lambda: state.key or self.title, fg=OneColors.LIGHT_YELLOW
        )
        self.bottom_bar.add_hint("move", "↑↓", "move", visible=browsing)
        self.bottom_bar.add_hint("enter", "⏎", "select", visible=browsing)
        self.bottom_bar.add_hint("back", "esc", "back", visible=browsing)
        self.bottom_bar.add_hint("filter", "/", "filter", visible=browsing)
        self.bottom_bar.add_hint("tab", "tab", "panel", visible=browsing)
        self.bottom_bar.add_hint(
            "execute",
            "⏎",
            run_label,
            visible=lambda: browsing() and state.panel is Panel.PREVIEW,
        )
        self.bottom_bar.add_hint("print", "p", "print", visible=browsing)
        self.bottom_bar.add_hint("quit", "q", "quit", visible=browsing)
        self.bottom_bar.add_hint("done", "⏎", "done", visible=typing)
        self.bottom_bar.add_hint("clear", "esc", "leave", visible=typing)

    def _click(self, panel: Panel, index: int | None) -> None:
        self._dispatch(self.state.click(panel, index))

    def _scroll(self, panel: Panel, delta: int) -> None:
        self.state.scroll(panel, delta)

    def _panel_style(self, panel: Panel) -> Callable[[], str]:
        return lambda: "class:panel.focused" if self.state.panel is panel else ""

    def _panel(
        self,
        panel: Panel,
        title: str,
        get_fragments: Callable[[], StyleAndTextTuples],
        height: Dimension | None = None,
    ) -> ConditionalContainer:
        window = Window(
            FormattedTextControl(get_fragments, focusable=False, show_cursor=False),
            wrap_lines=False,
            always_hide_cursor=True,
        )
        frame = Frame(window, title=title, height=height)
        return ConditionalContainer(
            HSplit([frame], style=self._panel_style(panel)),
            filter=Condition(lambda: self.state.focus.is_available(panel)),
        )

    def _header(self) -> StyleAndTextTuples:
        spec = self.catalog.spec
        fragments: StyleAndTextTuples = [("class:preview.bin", f" {spec.name} ")]
        if self.state.key:
            fragments.append(("class:row.path", f"› {self.state.key}"))
        if spec.about:
            fragments.append(("class:row.help", f"  {spec.about}"))
        return fragments

    def _terminal_header(self) -> StyleAndTextTuples:
        session = self.state.session
        if session is None:
            return []
        return [("class:filter.prompt", "$ "), ("class:preview.bin", session.display)]

    def _terminal(self) -> StyleAndTextTuples:
        session = self.state.session
        if session is None:
            return []
        return terminal_fragments(session.snapshot(), show_cursor=session.is_running)

    def _status(self) -> StyleAndTextTuples:
        session = self.state.session
        if session is None:
            return []
        return status_fragments(session)

    def _build_layout(self) -> Layout:
        state = self.state
        has_session = Condition(lambda: state.session is not None)
        commands = self._panel(
            Panel.COMMANDS,
            "Commands",
            lambda: command_fragments(state, self._click, self._scroll),
        )
        flags = self._panel(
            Panel.FLAGS,
            "Flags",
            lambda: flag_fragments(state, self._click, self._scroll),
        )
        args = self._panel(
            Panel.ARGS,
            "Args",
            lambda: arg_fragments(state, self._click, self._scroll),
            height=Dimension(min=3, max=8),
        )
        preview = self._panel(
            Panel.PREVIEW,
            "Command",
            lambda: preview_fragments(state, self._click),
            height=Dimension.exact(3),
        )
        builder = HSplit(
            [
                Window(FormattedTextControl(self._header), height=1),
                VSplit([commands, HSplit([flags, args])]),
                preview,
                ConditionalContainer(
                    Window(
                        FormattedTextControl(lambda: query_fragments(state)), height=1
                    ),
                    filter=Condition(lambda: state.query_panel is not None),
                ),
                Window(FormattedTextControl(lambda: help_fragments(state)), height=1),
                Window(
                    FormattedTextControl(self.bottom_bar.render),
                    height=Dimension(min=1, max=2),
                    style="class:bottom-toolbar",
                ),
            ]
        )
        terminal = HSplit(
            [
                Window(FormattedTextControl(self._terminal_header), height=1),
                Window(FormattedTextControl(self._terminal), wrap_lines=False),
                Window(FormattedTextControl(self._status), height=1),
            ]
        )
        root = HSplit(
            [
                ConditionalContainer(builder, filter=~has_session),
                ConditionalContainer(terminal, filter=has_session),
            ]
        )
        return Layout(root)

    def _get_key_bindings(self) -> KeyBindings:
        """Route every key press through `AssemblyState.handle_key`."""
        kb = KeyBindings()

        def forward(event: KeyPressEvent) -> None:
            press = event.key_sequence[0]
            key = press.key.value if isinstance(press.key, Keys) else press.key
            self._dispatch(self.state.handle_key(key, press.data))

        kb.add(Keys.Any)(forward)
        kb.add(Keys.BracketedPaste)(forward)
        for key in FORWARDED_KEYS:
            kb.add(key)(forward)
        return kb

    def _dispatch(self, action: Action) -> None:
        if action is Action.NONE or self.app.is_done:
            return
        if action is Action.QUIT:
            logger.debug("Quit without a command.")
            self.app.exit(result=None)
        elif action is Action.ACCEPT:
            self.app.exit(result=self.state.result)
        elif action is Action.CANCEL:
            self.app.exit(exception=KeyboardInterrupt())
        elif action is Action.EXECUTE:
            self._ticker = self.app.create_background_task(
                self._refresh_while_running()
            )

    async def _refresh_while_running(self) -> None:
        session = self.state.session
        while session is not None and not session.output_complete:
            self.app.invalidate()
            await asyncio.sleep(self.refresh_interval)
        self.app.invalidate()

    def _shutdown(self) -> None:
        session = self.state.session
        if session is None:
            return
        if not session.exited:
            session.interrupt()
            session.wait(1.0)
        if session.exited:
            self.state.close_session()

    async def run_async(self) -> str | None:
        """Run the builder; returns the accepted command or None on quit."""
        try:
            with console_logging_paused():
                return await self.app.run_async()
        finally:
            self._shutdown()

    def run(self) -> str | None:
        """Blocking variant of `run_async`."""
        try:
            with console_logging_paused():
                return self.app.run()
        finally:
            self._shutdown()
