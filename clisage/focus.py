# Clisage CLI Builder — (c) 2025 rtj.dev LLC — MIT Licensed
"""focus.py"""
from __future__ import annotations

from enum import Enum


class Panel(Enum):
    """Logical panels of the command builder, in focus order."""

    COMMANDS = "commands"
    FLAGS = "flags"
    ARGS = "args"
    PREVIEW = "preview"


class FocusController:
    """
    Tracks the active panel among those that currently have content.

    The preview panel is always available. `refresh` is called after every
    navigation; when the active panel has disappeared, focus falls back to the first
    available panel.
    """

    def __init__(self) -> None:
        self.available: list[Panel] = [Panel.PREVIEW]
        self.active: Panel | None = None

    def refresh(self, has_commands: bool, has_flags: bool, has_args: bool) -> Panel:
        available = []
        if has_commands:
            available.append(Panel.COMMANDS)
        if has_flags:
            available.append(Panel.FLAGS)
        if has_args:
            available.append(Panel.ARGS)
        available.append(Panel.PREVIEW)
        self.available = available
        if self.active not in available:
            self.active = available[0]
        return self.active

    def is_available(self, panel: Panel) -> bool:
        return panel in self.available

    def set(self, panel: Panel) -> bool:
        if panel not in self.available:
            return False
        self.active = panel
        return True

    def _step(self, offset: int) -> Panel:
        if self.active not in self.available:
            self.active = self.available[0]
            return self.active
        index = self.available.index(self.active)
        self.active = self.available[(index + offset) % len(self.available)]
        return self.active

    def next(self) -> Panel:
        return self._step(1)

    def prev(self) -> Panel:
        return self._step(-1)
