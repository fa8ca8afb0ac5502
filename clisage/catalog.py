# Clisage CLI Builder — (c) 2025 rtj.dev LLC — MIT Licensed
"""
CommandCatalog: a flattened, immutable view of a command tree.

The catalog is derived once from the root `SpecNode` by a depth-first walk in
declaration order. Hidden nodes, and everything below them, are left out. Each entry
is identified by its `path` (the command names from the root down) and by the
space-joined `key` of that path, which doubles as the lookup key of the `ValueStore`.

The root itself is entry zero with an empty path and an empty key.

Rebuilding for another spec means constructing a new catalog; there is no
incremental update.
"""
from __future__ import annotations

from dataclasses import dataclass

from clisage.exceptions import UnknownPathError
from clisage.logger import logger
from clisage.spec import CommandSpec, FlagDecl, SpecNode


def path_key(path: tuple[str, ...] | list[str]) -> str:
    return " ".join(path)


@dataclass(frozen=True)
class CatalogEntry:
    """One visible node of the command tree."""

    path: tuple[str, ...]
    node: SpecNode

    @property
    def key(self) -> str:
        return path_key(self.path)

    @property
    def depth(self) -> int:
        return len(self.path)

    @property
    def name(self) -> str:
        return self.node.name if self.path else ""

    @property
    def display_name(self) -> str:
        """Name followed by its aliases, e.g. `remove (rm, del)`."""
        if self.node.aliases:
            return f"{self.name} ({', '.join(self.node.aliases)})"
        return self.name


class CommandCatalog:
    """
    Ordered, read-only index of every visible command.

    Args:
        spec (CommandSpec): The command description to flatten.

    Lookups by path or key are O(1). Looking up a path that is not part of the
    catalog raises `UnknownPathError`.
    """

    def __init__(self, spec: CommandSpec) -> None:
        self.spec = spec
        self._entries: list[CatalogEntry] = []
        self._index: dict[str, int] = {}
        self._walk(spec.root, ())
        logger.debug("Catalog for '%s' built with %d entries.", spec.name, len(self))

    def _walk(self, node: SpecNode, path: tuple[str, ...]) -> None:
        entry = CatalogEntry(path=path, node=node)
        self._index[entry.key] = len(self._entries)
        self._entries.append(entry)
        for child in node.visible_children:
            self._walk(child, path + (child.name,))

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def __contains__(self, path: object) -> bool:
        if isinstance(path, str):
            return path in self._index
        if isinstance(path, (list, tuple)):
            return path_key(path) in self._index
        return False

    @property
    def entries(self) -> list[CatalogEntry]:
        return list(self._entries)

    @property
    def root(self) -> CatalogEntry:
        return self._entries[0]

    def entry(self, path: tuple[str, ...] | list[str] | str) -> CatalogEntry:
        key = path if isinstance(path, str) else path_key(path)
        try:
            return self._entries[self._index[key]]
        except KeyError as error:
            raise UnknownPathError(f"Unknown command path: '{key}'") from error

    def node(self, path: tuple[str, ...] | list[str] | str) -> SpecNode:
        return self.entry(path).node

    def index_of(self, path: tuple[str, ...] | list[str] | str) -> int:
        return self._entries.index(self.entry(path))

    def children(self, path: tuple[str, ...] | list[str]) -> list[CatalogEntry]:
        """Direct visible children of a path, in declaration order."""
        parent = self.entry(path)
        return [
            entry
            for entry in self.descendants(parent.path)
            if entry.depth == parent.depth + 1
        ]

    def descendants(self, path: tuple[str, ...] | list[str]) -> list[CatalogEntry]:
        """Every entry below a path, depth-first, excluding the path itself."""
        start = self._index[self.entry(path).key]
        depth = self._entries[start].depth
        result = []
        for entry in self._entries[start + 1 :]:
            if entry.depth <= depth:
                break
            result.append(entry)
        return result

    def ancestors(self, path: tuple[str, ...] | list[str]) -> list[CatalogEntry]:
        """Entries from the root down to and including `path`."""
        path = tuple(path)
        return [self.entry(path[:index]) for index in range(len(path) + 1)]

    def resolve(self, words: list[str]) -> tuple[str, ...]:
        """Resolve command names or aliases into a canonical path."""
        node = self.spec.root
        path: tuple[str, ...] = ()
        for word in words:
            child = node.find_child(word)
            if child is None or child.hidden:
                raise UnknownPathError(f"Unknown command path: '{path_key(words)}'")
            node = child
            path += (child.name,)
        return path

    def resolved_flags(self, path: tuple[str, ...] | list[str]) -> list[FlagDecl]:
        """
        Flags visible at a path: its own, followed by global flags declared on its
        ancestors from the root down. A flag declared closer to the path shadows an
        ancestor flag with the same name.
        """
        node = self.node(path)
        seen = {flag.name for flag in node.flags}
        nearest: dict[str, tuple[int, FlagDecl]] = {}
        ancestors = self.ancestors(path)[:-1]
        for depth in range(len(ancestors) - 1, -1, -1):
            for flag in ancestors[depth].node.visible_flags:
                if flag.is_global and flag.name not in seen:
                    nearest[flag.name] = (depth, flag)
                    seen.add(flag.name)
        inherited = [
            flag
            for ancestor in ancestors
            for flag in ancestor.node.visible_flags
            if nearest.get(flag.name, (None, None))[1] is flag
        ]
        return list(node.visible_flags) + inherited

    def inherited_flags(self, path: tuple[str, ...] | list[str]) -> list[FlagDecl]:
        own = {flag.name for flag in self.node(path).flags}
        return [flag for flag in self.resolved_flags(path) if flag.name not in own]
