# Clisage CLI Builder — (c) 2025 rtj.dev LLC — MIT Licensed
"""config.py
Spec provider for Clisage: loads a command description and validates it.

A description is a YAML, TOML or JSON document:

    name: mycli
    bin: mycli
    about: Example tool
    flags:
      - flag: -v --verbose
        count: true
        global: true
    commands:
      deploy:
        help: Deploy the app
        args:
          - name: <environment>
            choices: [dev, staging, prod]
        flags:
          - flag: -t --tag <tag>

The raw document is validated with the pydantic models below and converted into
the immutable `clisage.spec` dataclasses. Every problem is reported as a
`SpecError`.
"""
from __future__ import annotations

import json
import os
import subprocess
from pathlib import Path
from typing import Any

import toml
import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from clisage.exceptions import SpecError
from clisage.logger import logger
from clisage.spec import ArgDecl, CommandSpec, FlagDecl, SpecNode

SPEC_COMMAND_TIMEOUT = 30


def _as_str_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, (str, int, float, bool)):
        value = [value]
    if isinstance(value, (list, tuple)):
        return [
            str(item).lower() if isinstance(item, bool) else str(item)
            for item in value
        ]
    return value


def _normalize_short(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.lstrip("-")
    if len(value) != 1:
        raise ValueError(f"short flag must be a single character, got '{value}'")
    return value


def _normalize_long(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.lstrip("-")
    if not value or any(char.isspace() for char in value):
        raise ValueError(f"invalid long flag '{value}'")
    return value


class RawFlag(BaseModel):
    """Raw flag declaration. `flag` is the usage shorthand: `-o --output <file>`."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str | None = None
    usage: str | None = Field(default=None, alias="flag")
    short: str | None = None
    long: str | None = None
    help: str = ""
    takes_value: bool = False
    choices: list[str] = Field(default_factory=list)
    default: str | None = None
    is_global: bool = Field(default=False, alias="global")
    count: bool = False
    hide: bool = False

    @model_validator(mode="before")
    @classmethod
    def from_shorthand(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"flag": data}
        return data

    @field_validator("short")
    @classmethod
    def validate_short(cls, value: str | None) -> str | None:
        return _normalize_short(value)

    @field_validator("long")
    @classmethod
    def validate_long(cls, value: str | None) -> str | None:
        return _normalize_long(value)

    @field_validator("choices", mode="before")
    @classmethod
    def validate_choices(cls, value: Any) -> Any:
        return _as_str_list(value)

    @field_validator("default", mode="before")
    @classmethod
    def validate_default(cls, value: Any) -> Any:
        if isinstance(value, bool):
            return str(value).lower()
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @model_validator(mode="after")
    def expand_usage(self) -> RawFlag:
        if self.usage:
            for token in self.usage.replace(",", " ").split():
                if token.startswith("--"):
                    self.long = self.long or _normalize_long(token)
                elif token.startswith("-"):
                    self.short = self.short or _normalize_short(token)
                elif token[0] in "<[":
                    self.takes_value = True
                else:
                    raise ValueError(
                        f"unexpected token '{token}' in flag '{self.usage}'"
                    )
        if self.choices or self.default is not None:
            self.takes_value = True
        if self.count and self.takes_value:
            raise ValueError(
                f"flag '{self.usage or self.name}' cannot both count and take a value"
            )
        if not self.short and not self.long:
            raise ValueError(
                f"flag '{self.usage or self.name}' needs a short or long form"
            )
        self.name = self.name or self.long or self.short
        return self


class RawArg(BaseModel):
    """Raw positional argument. `<name>` is required, `[name]` is optional."""

    model_config = ConfigDict(extra="forbid")

    name: str
    required: bool = True
    choices: list[str] = Field(default_factory=list)
    help: str = ""
    hide: bool = False

    @model_validator(mode="before")
    @classmethod
    def from_shorthand(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"name": data}
        return data

    @field_validator("choices", mode="before")
    @classmethod
    def validate_choices(cls, value: Any) -> Any:
        return _as_str_list(value)

    @model_validator(mode="after")
    def expand_brackets(self) -> RawArg:
        name = self.name.strip()
        if name.startswith("<") and name.endswith(">"):
            name = name[1:-1]
            self.required = True
        elif name.startswith("[") and name.endswith("]"):
            name = name[1:-1]
            self.required = False
        if not name:
            raise ValueError("argument name cannot be empty")
        self.name = name
        return self


class RawCommand(BaseModel):
    """Raw command. `commands` may be a list of commands or a name -> body mapping."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    help: str = ""
    aliases: list[str] = Field(default_factory=list)
    hide: bool = False
    flags: list[RawFlag] = Field(default_factory=list)
    args: list[RawArg] = Field(default_factory=list)
    commands: list[RawCommand] = Field(default_factory=list)

    @field_validator("aliases", mode="before")
    @classmethod
    def validate_aliases(cls, value: Any) -> Any:
        return _as_str_list(value)

    @field_validator("flags", "args", "commands", mode="before")
    @classmethod
    def validate_none(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("commands", mode="before")
    @classmethod
    def validate_commands(cls, value: Any) -> Any:
        if isinstance(value, dict):
            commands = []
            for name, body in value.items():
                if body is None:
                    body = {}
                elif isinstance(body, str):
                    body = {"help": body}
                elif not isinstance(body, dict):
                    raise ValueError(f"command '{name}' must be a mapping")
                commands.append({**body, "name": str(name)})
            return commands
        return value

    @model_validator(mode="after")
    def validate_unique(self) -> RawCommand:
        seen: set[str] = set()
        for command in self.commands:
            if not command.name:
                raise ValueError("every subcommand needs a name")
            for word in [command.name, *command.aliases]:
                if word in seen:
                    raise ValueError(
                        f"duplicate command name or alias '{word}' under "
                        f"'{self.name or '<root>'}'"
                    )
                seen.add(word)
        flag_names: set[str] = set()
        for flag in self.flags:
            if flag.name in flag_names:
                raise ValueError(
                    f"duplicate flag '{flag.name}' on '{self.name or '<root>'}'"
                )
            flag_names.add(flag.name)  # type: ignore[arg-type]
        return self


class RawSpec(RawCommand):
    """Top level of a command description."""

    bin: str = ""
    about: str = ""

    @model_validator(mode="after")
    def validate_name(self) -> RawSpec:
        if not self.name:
            if not self.bin.strip():
                raise ValueError("a spec needs a 'name' or a 'bin'")
            self.name = self.bin.split()[0]
        return self


def convert_flag(raw: RawFlag) -> FlagDecl:
    return FlagDecl(
        name=raw.name or "",
        short=raw.short,
        long=raw.long,
        help=raw.help,
        takes_value=raw.takes_value,
        choices=tuple(raw.choices),
        default=raw.default,
        is_global=raw.is_global,
        count=raw.count,
        hidden=raw.hide,
    )


def convert_arg(raw: RawArg) -> ArgDecl:
    return ArgDecl(
        name=raw.name,
        required=raw.required,
        choices=tuple(raw.choices),
        help=raw.help,
        hidden=raw.hide,
    )


def convert_command(raw: RawCommand, name: str | None = None) -> SpecNode:
    return SpecNode(
        name=name or raw.name or "",
        help=raw.help,
        aliases=tuple(raw.aliases),
        flags=tuple(convert_flag(flag) for flag in raw.flags),
        args=tuple(convert_arg(arg) for arg in raw.args),
        children=tuple(convert_command(command) for command in raw.commands),
        hidden=raw.hide,
    )


def _format_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "<root>"
        problems.append(f"  {location}: {item['msg']}")
    return "\n".join(problems)


def parse_spec(raw_spec: Any, source: str = "<memory>") -> CommandSpec:
    """Validate a decoded document and build a `CommandSpec`."""
    if not isinstance(raw_spec, dict):
        raise SpecError(
            f"{source}: a command description must be a mapping.\n"
            "Example:\n"
            "name: mycli\n"
            "commands:\n"
            "  deploy:\n"
            "    help: Deploy the app"
        )
    try:
        raw = RawSpec.model_validate(raw_spec)
    except ValidationError as error:
        raise SpecError(
            f"{source}: invalid command description\n{_format_validation_error(error)}"
        ) from error
    spec = CommandSpec(
        name=raw.name or "",
        root=convert_command(raw),
        bin=raw.bin,
        about=raw.about or raw.help,
        source=source,
    )
    logger.debug("Loaded spec '%s' from %s", spec.name, source)
    return spec


def parse_spec_text(
    text: str, fmt: str = "yaml", source: str = "<memory>"
) -> CommandSpec:
    """Decode `text` as yaml, toml or json, then validate it."""
    try:
        if fmt == "yaml":
            raw_spec = yaml.safe_load(text)
        elif fmt == "toml":
            raw_spec = toml.loads(text)
        elif fmt == "json":
            raw_spec = json.loads(text)
        else:
            raise SpecError(f"{source}: unsupported spec format '{fmt}'")
    except (yaml.YAMLError, toml.TomlDecodeError, json.JSONDecodeError) as error:
        raise SpecError(f"{source}: could not parse {fmt}: {error}") from error
    return parse_spec(raw_spec, source)


def loader(file_path: Path | str) -> CommandSpec:
    """
    Load a command description from a YAML, TOML or JSON file.

    Args:
        file_path (Path | str): Path to the spec file.

    Returns:
        CommandSpec: The validated command description.

    Raises:
        SpecError: If the file is missing, has an unsupported suffix or does not
            describe a valid command tree.
    """
    if isinstance(file_path, (str, Path)):
        path = Path(file_path)
    else:
        raise TypeError("file_path must be a string or Path object.")

    if not path.is_file():
        raise SpecError(f"No such spec file: {file_path}")

    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        fmt = "yaml"
    elif suffix == ".toml":
        fmt = "toml"
    elif suffix == ".json":
        fmt = "json"
    else:
        raise SpecError(f"Unsupported spec format: {suffix or path.name}")

    try:
        text = path.read_text(encoding="UTF-8")
    except OSError as error:
        raise SpecError(f"Could not read {path}: {error}") from error
    return parse_spec_text(text, fmt, source=str(path))


def run_spec_command(
    tokens: list[str], cwd: str | None = None, timeout: float = SPEC_COMMAND_TIMEOUT
) -> CommandSpec:
    """
    Run `tokens` (no shell) and read a YAML or JSON description from its stdout.
    """
    if not tokens:
        raise SpecError("Empty spec command")
    source = " ".join(tokens)
    logger.debug("Running spec command: %s", source)
    try:
        result = subprocess.run(
            tokens,
            capture_output=True,
            text=True,
            cwd=cwd,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as error:
        raise SpecError(f"Spec command not found: {tokens[0]}") from error
    except subprocess.TimeoutExpired as error:
        raise SpecError(f"Spec command timed out after {timeout}s: {source}") from error
    except OSError as error:
        raise SpecError(f"Could not run spec command '{source}': {error}") from error
    if result.returncode != 0:
        detail = result.stderr.strip() or result.stdout.strip()
        raise SpecError(
            f"Spec command '{source}' failed with exit status {result.returncode}"
            + (f":\n{detail}" if detail else "")
        )
    if not result.stdout.strip():
        raise SpecError(f"Spec command '{source}' printed nothing")
    return parse_spec_text(result.stdout, "yaml", source=source)


def find_spec_file(cwd: Path | None = None) -> Path | None:
    cwd = cwd or Path.cwd()
    candidates = [
        cwd / "clisage.yaml",
        cwd / "clisage.toml",
        cwd / ".clisage.yaml",
    ]
    if os.environ.get("CLISAGE_SPEC"):
        candidates.append(Path(os.environ["CLISAGE_SPEC"]))
    candidates.append(Path.home() / ".config" / "clisage" / "spec.yaml")
    return next((path for path in candidates if path.is_file()), None)


def resolve_spec(
    spec_command: list[str] | None = None,
    spec_file: str | None = None,
    cwd: Path | None = None,
) -> CommandSpec:
    """Pick exactly one spec source: a spec command, a spec file or a default file."""
    if spec_command and spec_file:
        raise SpecError("Use either --spec-file or a spec command, not both")
    if spec_command:
        return run_spec_command(spec_command, cwd=str(cwd) if cwd else None)
    if spec_file:
        return loader(spec_file)
    found = find_spec_file(cwd)
    if found is None:
        raise SpecError(
            "No command description found. Pass --spec-file PATH, a spec command, "
            "or create ./clisage.yaml"
        )
    return loader(found)


def flag_to_dict(flag: FlagDecl) -> dict[str, Any]:
    data: dict[str, Any] = {"name": flag.name}
    if flag.short:
        data["short"] = flag.short
    if flag.long:
        data["long"] = flag.long
    if flag.help:
        data["help"] = flag.help
    if flag.takes_value:
        data["takes_value"] = True
    if flag.choices:
        data["choices"] = list(flag.choices)
    if flag.default is not None:
        data["default"] = flag.default
    if flag.is_global:
        data["global"] = True
    if flag.count:
        data["count"] = True
    if flag.hidden:
        data["hide"] = True
    return data


def arg_to_dict(arg: ArgDecl) -> dict[str, Any]:
    data: dict[str, Any] = {"name": arg.name, "required": arg.required}
    if arg.choices:
        data["choices"] = list(arg.choices)
    if arg.help:
        data["help"] = arg.help
    if arg.hidden:
        data["hide"] = True
    return data


def node_to_dict(node: SpecNode) -> dict[str, Any]:
    data: dict[str, Any] = {}
    if node.help:
        data["help"] = node.help
    if node.aliases:
        data["aliases"] = list(node.aliases)
    if node.hidden:
        data["hide"] = True
    if node.flags:
        data["flags"] = [flag_to_dict(flag) for flag in node.flags]
    if node.args:
        data["args"] = [arg_to_dict(arg) for arg in node.args]
    if node.children:
        data["commands"] = {child.name: node_to_dict(child) for child in node.children}
    return data


def dump_spec(spec: CommandSpec) -> str:
    """YAML document that `parse_spec_text` reads back into an equal spec."""
    data: dict[str, Any] = {"name": spec.name}
    if spec.bin:
        data["bin"] = spec.bin
    if spec.about:
        data["about"] = spec.about
    data.update(node_to_dict(spec.root))
    data.pop("help", None)
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
