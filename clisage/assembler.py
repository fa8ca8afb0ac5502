# Clisage CLI Builder — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Turns the current selection and stored values into a command line.

The same ordered list of `CommandPart`s feeds both outputs:

- `display(path)`: a readable string, values containing whitespace are shown in
  double quotes.
- `tokens(path)`: an argument vector for direct process spawning. Nothing is quoted
  or escaped because no shell ever parses it.

Order of parts:

    <bin tokens> <global flags> <subcommands...> <own flags> <arguments>

Global flags are emitted once, right after the binary. Their value is taken from the
deepest visited level between the root and the current command, so a value set on a
subcommand overrides the one set on its parent.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from clisage.catalog import CatalogEntry, CommandCatalog
from clisage.spec import FlagDecl
from clisage.utils import quote_display
from clisage.values import FlagKind, FlagValue, ValueStore


class PartKind(Enum):
    BIN = "bin"
    GLOBAL_FLAG = "global_flag"
    SUBCOMMAND = "subcommand"
    FLAG = "flag"
    VALUE = "value"
    ARG = "arg"


@dataclass(frozen=True)
class CommandPart:
    kind: PartKind
    text: str

    @property
    def display(self) -> str:
        if self.kind in (PartKind.VALUE, PartKind.ARG):
            return quote_display(self.text)
        return self.text


def format_flag(flag: FlagDecl, value: FlagValue, kind: PartKind) -> list[CommandPart]:
    """Parts for one flag, or nothing when the value is inactive."""
    if not value.is_active:
        return []
    if value.kind is FlagKind.BOOL:
        return [CommandPart(kind, flag.primary)]
    if value.kind is FlagKind.COUNT:
        times = int(value.value)
        if flag.short:
            return [CommandPart(kind, "-" + flag.short * times)]
        return [CommandPart(kind, f"--{flag.long}") for _ in range(times)]
    return [
        CommandPart(kind, flag.primary),
        CommandPart(PartKind.VALUE, str(value.value)),
    ]


class CommandAssembler:
    """
    Pure view over a catalog and a value store.

    Every path passed in must have been visited (`ValueStore.ensure`) first;
    an unvisited current path raises `UnknownPathError`.
    """

    def __init__(
        self,
        catalog: CommandCatalog,
        store: ValueStore,
        bin_override: str | None = None,
    ) -> None:
        self.catalog = catalog
        self.store = store
        self.bin_override = bin_override

    @property
    def binary(self) -> str:
        return (self.bin_override or "").strip() or self.catalog.spec.binary

    def holds_global(self, entry: CatalogEntry, name: str) -> bool:
        """Whether the `name` slot stored at `entry` is a global flag."""
        for flag in entry.node.flags:
            if flag.name == name:
                return flag.is_global
        return any(
            flag.name == name for flag in self.catalog.inherited_flags(entry.path)
        )

    def resolve_global(
        self, path: tuple[str, ...] | list[str], name: str
    ) -> FlagValue | None:
        """Value of global flag `name` at the deepest visited level of `path`."""
        resolved = None
        for entry in self.catalog.ancestors(path):
            if entry.key not in self.store or not self.holds_global(entry, name):
                continue
            value = self.store.get_flags(entry.key).get(name)
            if value is not None:
                resolved = value
        return resolved

    def resolve_globals(
        self, path: tuple[str, ...] | list[str]
    ) -> list[tuple[FlagDecl, FlagValue]]:
        resolved = []
        for flag in self.catalog.resolved_flags(path):
            if not flag.is_global:
                continue
            value = self.resolve_global(path, flag.name)
            if value is not None:
                resolved.append((flag, value))
        return resolved

    def parts(self, path: tuple[str, ...] | list[str]) -> list[CommandPart]:
        path = tuple(path)
        entry = self.catalog.entry(path)
        flags = self.store.get_flags(entry.key)
        args = self.store.get_args(entry.key)

        parts = [CommandPart(PartKind.BIN, token) for token in self.binary.split()]
        for flag, value in self.resolve_globals(path):
            parts.extend(format_flag(flag, value, PartKind.GLOBAL_FLAG))
        parts.extend(CommandPart(PartKind.SUBCOMMAND, name) for name in path)
        for flag in entry.node.visible_flags:
            if flag.is_global or flag.name not in flags:
                continue
            parts.extend(format_flag(flag, flags[flag.name], PartKind.FLAG))
        parts.extend(CommandPart(PartKind.ARG, arg.value) for arg in args if arg.value)
        return parts

    def display(self, path: tuple[str, ...] | list[str]) -> str:
        return " ".join(part.display for part in self.parts(path))

    def tokens(self, path: tuple[str, ...] | list[str]) -> list[str]:
        return [part.text for part in self.parts(path)]
