# Clisage CLI Builder — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Provides the `BottomBar` class, the key-hint and status line shown under the
command builder panels.

Items are registered by name and rendered in registration order, `columns` items
per line. Each item may carry a `visible` predicate so the bar can show the keys
that apply to the current mode (browsing, typing a query, editing a value or
watching a running command) without being rebuilt.

Usage Example:
    bar = BottomBar(columns=6)
    bar.add_hint("quit", "q", "quit")
    bar.add_hint("filter", "/", "filter", visible=lambda: not state.typing_query)
    bar.add_value_tracker("path", "at", lambda: state.key or "<root>")
    bar.render()
"""
from __future__ import annotations

from typing import Any, Callable

from prompt_toolkit.formatted_text import HTML, merge_formatted_text

from clisage.console import console
from clisage.themes import OneColors
from clisage.utils import chunks


class BottomBar:
    """
    Bottom Bar class for displaying key hints in the terminal.

    Args:
        columns (int): Number of items per line.
        get_width (Callable[[], int], optional): Returns the available width.
            Defaults to the rich console width.
    """

    def __init__(self, columns: int = 6, get_width: Callable[[], int] | None = None):
        self.columns = columns
        self.get_width = get_width or (lambda: console.width)
        self._named_items: dict[str, Callable[[], HTML]] = {}
        self._visible: dict[str, Callable[[], bool]] = {}
        self._value_getters: dict[str, Callable[[], Any]] = {}

    @property
    def space(self) -> int:
        return max(self.get_width() // self.columns, 1)

    def add_custom(
        self,
        name: str,
        render_fn: Callable[[], HTML],
        visible: Callable[[], bool] | None = None,
    ) -> None:
        """Add a custom render function to the bottom bar."""
        if not callable(render_fn):
            raise ValueError("`render_fn` must be callable")
        self._add_named(name, render_fn, visible)

    def add_hint(
        self,
        name: str,
        key: str,
        label: str,
        visible: Callable[[], bool] | None = None,
        fg: str = OneColors.CYAN,
    ) -> None:
        def render():
            text = f"{key} {label}"
            padding = " " * max(self.space - len(text), 0)
            return HTML("<style fg='{}'><b>{}</b></style> {}{}").format(
                fg, key, label, padding
            )

        self._add_named(name, render, visible)

    def add_value_tracker(
        self,
        name: str,
        label: str,
        get_value: Callable[[], Any],
        visible: Callable[[], bool] | None = None,
        fg: str = OneColors.LIGHT_YELLOW,
    ) -> None:
        if not callable(get_value):
            raise ValueError("`get_value` must be a callable returning any value")
        self._value_getters[name] = get_value

        def render():
            current = self._value_getters[name]()
            text = f"{label}: {current}"
            return HTML("<style fg='{}'>{}</style>").format(fg, f"{text:<{self.space}}")

        self._add_named(name, render, visible)

    @property
    def values(self) -> dict[str, Any]:
        """Return the current computed values for all registered trackers."""
        return {label: getter() for label, getter in self._value_getters.items()}

    def visible_items(self) -> list[str]:
        return [
            name
            for name in self._named_items
            if name not in self._visible or self._visible[name]()
        ]

    def remove_item(self, name: str) -> None:
        """Remove an item from the bottom bar."""
        self._named_items.pop(name, None)
        self._visible.pop(name, None)
        self._value_getters.pop(name, None)

    def clear(self) -> None:
        """Clear all items from the bottom bar."""
        self._named_items.clear()
        self._visible.clear()
        self._value_getters.clear()

    def _add_named(
        self,
        name: str,
        render_fn: Callable[[], HTML],
        visible: Callable[[], bool] | None,
    ) -> None:
        if name in self._named_items:
            raise ValueError(f"Bottom bar item '{name}' already exists")
        self._named_items[name] = render_fn
        if visible is not None:
            self._visible[name] = visible

    def render(self):
        """Render the bottom bar."""
        lines = []
        items = [self._named_items[name] for name in self.visible_items()]
        for chunk in chunks(items, self.columns):
            lines.extend(list(chunk))
            lines.append(lambda: HTML("\n"))
        return merge_formatted_text([fn() for fn in lines[:-1]])
