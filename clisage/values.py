# Clisage CLI Builder — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Per-path storage of flag and argument values.

`ValueStore` is an arena keyed by command path: the first visit of a path creates
its values from the declared defaults, every later visit finds them untouched.
Entries are never removed during a session, so navigating away from a command and
back again shows exactly what the operator left there.

`FlagValue` is a small tagged value. Its `kind` is fixed from the flag declaration
when the value is created; a mutation meant for another kind raises
`FlagValueError` rather than silently changing the representation.

All mutations go through the store and address a single value by name within a
single path.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from clisage.exceptions import FlagValueError, UnknownPathError
from clisage.logger import logger
from clisage.spec import ArgDecl, FlagDecl, FlagShape, SpecNode


class FlagKind(Enum):
    BOOL = "bool"
    TEXT = "text"
    COUNT = "count"

    @classmethod
    def for_shape(cls, shape: FlagShape) -> FlagKind:
        return {
            FlagShape.BOOLEAN: cls.BOOL,
            FlagShape.TEXT: cls.TEXT,
            FlagShape.COUNT: cls.COUNT,
        }[shape]


@dataclass(frozen=True)
class FlagValue:
    """Immutable tagged flag value, built with `boolean`, `text` or `count`."""

    kind: FlagKind
    value: bool | str | int

    @classmethod
    def boolean(cls, value: bool = False) -> FlagValue:
        return cls(FlagKind.BOOL, bool(value))

    @classmethod
    def text(cls, value: str = "") -> FlagValue:
        return cls(FlagKind.TEXT, str(value))

    @classmethod
    def count(cls, value: int = 0) -> FlagValue:
        if value < 0:
            raise FlagValueError(f"Count cannot be negative: {value}")
        return cls(FlagKind.COUNT, int(value))

    @classmethod
    def initial(cls, flag: FlagDecl) -> FlagValue:
        kind = FlagKind.for_shape(flag.shape)
        if kind is FlagKind.BOOL:
            return cls.boolean(False)
        if kind is FlagKind.COUNT:
            return cls.count(0)
        return cls.text(flag.default or "")

    @property
    def is_active(self) -> bool:
        """Whether the value contributes to an assembled command."""
        if self.kind is FlagKind.BOOL:
            return self.value is True
        if self.kind is FlagKind.COUNT:
            return self.value > 0  # type: ignore[operator]
        return self.value != ""

    def require(self, kind: FlagKind) -> None:
        if self.kind is not kind:
            raise FlagValueError(
                f"Expected a {kind.value} flag value, found {self.kind.value}"
            )


@dataclass
class ArgValue:
    """Current value of a positional argument; an empty string means unset."""

    name: str
    value: str = ""
    required: bool = True
    choices: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_decl(cls, arg: ArgDecl) -> ArgValue:
        return cls(name=arg.name, value="", required=arg.required, choices=arg.choices)

    @property
    def label(self) -> str:
        return f"<{self.name}>" if self.required else f"[{self.name}]"


def next_choice(choices: tuple[str, ...], current: str, step: int = 1) -> str:
    """
    Cycle `current` through `choices` with "unset" as an extra position:
    unset -> first -> ... -> last -> unset.
    """
    ring = ("",) + tuple(choices)
    try:
        position = ring.index(current)
    except ValueError:
        position = 0
    return ring[(position + step) % len(ring)]


class ValueStore:
    """
    Mapping from path key to flag values and argument values.

    Keys are the space-joined command paths produced by `CommandCatalog`.
    """

    def __init__(self) -> None:
        self._flags: dict[str, dict[str, FlagValue]] = {}
        self._args: dict[str, list[ArgValue]] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._flags

    def __len__(self) -> int:
        return len(self._flags)

    @property
    def keys(self) -> list[str]:
        return list(self._flags)

    def ensure(
        self,
        key: str,
        node: SpecNode,
        inherited: list[FlagDecl] | None = None,
        seed: dict[str, FlagValue] | None = None,
    ) -> bool:
        """
        Create values for `key` unless they already exist.

        Args:
            key (str): Path key from the catalog.
            node (SpecNode): The node the key refers to.
            inherited (list[FlagDecl] | None): Global flags visible from ancestors.
                They get a slot at this level so they can be overridden here.
            seed (dict[str, FlagValue] | None): Starting values for inherited flags,
                usually the values currently resolved from the ancestors.

        Returns:
            bool: True if the entry was created, False if it already existed.
        """
        if key in self._flags:
            return False
        seed = seed or {}
        flags: dict[str, FlagValue] = {}
        for flag in node.flags:
            flags[flag.name] = FlagValue.initial(flag)
        for flag in inherited or []:
            if flag.name in flags:
                continue
            value = seed.get(flag.name)
            if value is None or value.kind is not FlagKind.for_shape(flag.shape):
                value = FlagValue.initial(flag)
            flags[flag.name] = value
        self._flags[key] = flags
        self._args[key] = [ArgValue.from_decl(arg) for arg in node.args]
        logger.debug("Initialized values for '%s' (%d flags).", key, len(flags))
        return True

    def get_flags(self, key: str) -> dict[str, FlagValue]:
        try:
            return self._flags[key]
        except KeyError as error:
            raise UnknownPathError(f"No values for path '{key}'") from error

    def get_args(self, key: str) -> list[ArgValue]:
        try:
            return self._args[key]
        except KeyError as error:
            raise UnknownPathError(f"No values for path '{key}'") from error

    def flag(self, key: str, name: str) -> FlagValue:
        flags = self.get_flags(key)
        try:
            return flags[name]
        except KeyError as error:
            raise FlagValueError(f"No flag '{name}' at path '{key}'") from error

    def arg(self, key: str, name: str) -> ArgValue:
        for arg in self.get_args(key):
            if arg.name == name:
                return arg
        raise FlagValueError(f"No argument '{name}' at path '{key}'")

    def _put(self, key: str, name: str, value: FlagValue) -> FlagValue:
        self.get_flags(key)[name] = value
        return value

    def toggle(self, key: str, name: str) -> FlagValue:
        current = self.flag(key, name)
        current.require(FlagKind.BOOL)
        return self._put(key, name, FlagValue.boolean(not current.value))

    def set_bool(self, key: str, name: str, value: bool) -> FlagValue:
        self.flag(key, name).require(FlagKind.BOOL)
        return self._put(key, name, FlagValue.boolean(value))

    def set_text(self, key: str, name: str, value: str) -> FlagValue:
        self.flag(key, name).require(FlagKind.TEXT)
        return self._put(key, name, FlagValue.text(value))

    def increment(self, key: str, name: str) -> FlagValue:
        current = self.flag(key, name)
        current.require(FlagKind.COUNT)
        return self._put(key, name, FlagValue.count(int(current.value) + 1))

    def decrement(self, key: str, name: str) -> FlagValue:
        """Decrease a count, never going below zero."""
        current = self.flag(key, name)
        current.require(FlagKind.COUNT)
        return self._put(key, name, FlagValue.count(max(0, int(current.value) - 1)))

    def cycle_choice(
        self, key: str, name: str, choices: tuple[str, ...], step: int = 1
    ) -> FlagValue:
        current = self.flag(key, name)
        current.require(FlagKind.TEXT)
        if not choices:
            raise FlagValueError(f"Flag '{name}' has no choices to cycle")
        return self._put(
            key, name, FlagValue.text(next_choice(choices, str(current.value), step))
        )

    def set_arg(self, key: str, name: str, value: str) -> ArgValue:
        arg = self.arg(key, name)
        arg.value = value
        return arg

    def cycle_arg(self, key: str, name: str, step: int = 1) -> ArgValue:
        arg = self.arg(key, name)
        if not arg.choices:
            raise FlagValueError(f"Argument '{name}' has no choices to cycle")
        arg.value = next_choice(arg.choices, arg.value, step)
        return arg
