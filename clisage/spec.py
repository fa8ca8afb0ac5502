# Clisage CLI Builder — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Read-only data model for a declarative command description.

A `CommandSpec` is produced once by the spec provider (see `clisage.config`) and is
never mutated afterwards. It describes a command tree: every `SpecNode` carries its
help text, aliases, declared flags (`FlagDecl`), positional arguments (`ArgDecl`)
and child nodes in declaration order.

Flags come in three fixed shapes, decided by the declaration:
- boolean: no value, toggled on/off
- text: takes a value, optionally restricted to `choices`
- count: repeatable short flag, e.g. `-vvv`

Global flags are declared at one level and are visible to every descendant level.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class FlagShape(Enum):
    """The value representation a flag declaration implies."""

    BOOLEAN = "boolean"
    TEXT = "text"
    COUNT = "count"


@dataclass(frozen=True)
class FlagDecl:
    """
    A declared flag.

    Attributes:
        name (str): Stable identifier for the flag within a node.
        short (str | None): Single-character short form without the dash.
        long (str | None): Long form without the leading dashes.
        help (str): Help text.
        takes_value (bool): Whether the flag is followed by a value.
        choices (tuple[str, ...]): Allowed values. Empty means free text.
        default (str | None): Declared default value for text flags.
        is_global (bool): Visible and settable from every descendant level.
        count (bool): Repeatable counter flag.
        hidden (bool): Excluded from the interactive views.
    """

    name: str
    short: str | None = None
    long: str | None = None
    help: str = ""
    takes_value: bool = False
    choices: tuple[str, ...] = ()
    default: str | None = None
    is_global: bool = False
    count: bool = False
    hidden: bool = False

    @property
    def shape(self) -> FlagShape:
        if self.count:
            return FlagShape.COUNT
        if self.takes_value:
            return FlagShape.TEXT
        return FlagShape.BOOLEAN

    @property
    def primary(self) -> str:
        """Flag token preferring the long form."""
        if self.long:
            return f"--{self.long}"
        return f"-{self.short}"

    @property
    def label(self) -> str:
        """Human readable form, e.g. `-o, --output <output>`."""
        forms = []
        if self.short:
            forms.append(f"-{self.short}")
        if self.long:
            forms.append(f"--{self.long}")
        text = ", ".join(forms)
        if self.takes_value:
            text += f" <{self.name}>"
        return text


@dataclass(frozen=True)
class ArgDecl:
    """A declared positional argument."""

    name: str
    required: bool = True
    choices: tuple[str, ...] = ()
    help: str = ""
    hidden: bool = False

    @property
    def label(self) -> str:
        return f"<{self.name}>" if self.required else f"[{self.name}]"


@dataclass(frozen=True)
class SpecNode:
    """One command (or the root) of the command tree."""

    name: str
    help: str = ""
    aliases: tuple[str, ...] = ()
    flags: tuple[FlagDecl, ...] = ()
    args: tuple[ArgDecl, ...] = ()
    children: tuple[SpecNode, ...] = ()
    hidden: bool = False

    def find_child(self, name: str) -> SpecNode | None:
        """Find a direct child by name or alias."""
        for child in self.children:
            if child.name == name or name in child.aliases:
                return child
        return None

    @property
    def visible_flags(self) -> tuple[FlagDecl, ...]:
        return tuple(flag for flag in self.flags if not flag.hidden)

    @property
    def visible_args(self) -> tuple[ArgDecl, ...]:
        return tuple(arg for arg in self.args if not arg.hidden)

    @property
    def visible_children(self) -> tuple[SpecNode, ...]:
        return tuple(child for child in self.children if not child.hidden)


@dataclass(frozen=True)
class CommandSpec:
    """
    A complete command description.

    `bin` is the leading token(s) of an assembled command line and may contain
    whitespace (e.g. `"mise run"`); `name` is the display name and the fallback
    binary when `bin` is empty.
    """

    name: str
    root: SpecNode
    bin: str = ""
    about: str = ""
    source: str = field(default="", compare=False)

    @property
    def binary(self) -> str:
        return (self.bin or self.name).strip()
