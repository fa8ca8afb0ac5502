# Clisage CLI Builder — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Provides the argument parser for the `clisage` entry point.

Key Components:
- `get_root_parser()`: Creates the root-level parser with the spec source options.
- `parser_to_spec()`: Describes an ArgumentParser as a `CommandSpec`, used by
  `clisage --usage` to print clisage's own command description.
"""
from argparse import (
    REMAINDER,
    SUPPRESS,
    Action,
    ArgumentParser,
    RawDescriptionHelpFormatter,
    _CountAction,
)
from typing import Any, Sequence

from clisage.spec import ArgDecl, CommandSpec, FlagDecl, SpecNode
from clisage.version import __version__


def get_root_parser(
    prog: str | None = "clisage",
    usage: str | None = None,
    description: str | None = (
        "Clisage - Build a command line interactively from a command description."
    ),
    epilog: str | None = (
        "Examples:\n"
        "  clisage --spec-file mycli.yaml\n"
        "  clisage -- mycli --usage\n"
        "  clisage --print --cmd 'docker compose' --spec-file compose.yaml"
    ),
    parents: Sequence[ArgumentParser] | None = None,
    prefix_chars: str = "-",
    fromfile_prefix_chars: str | None = None,
    argument_default: Any = None,
    conflict_handler: str = "error",
    add_help: bool = True,
    allow_abbrev: bool = True,
    exit_on_error: bool = True,
) -> ArgumentParser:
    """
    Construct the root-level ArgumentParser for the clisage CLI.

    The command description comes from exactly one source: trailing spec command
    tokens (run without a shell, stdout parsed as YAML or JSON), `--spec-file`, or
    one of the default spec file locations.

    Args:
        prog (str | None): Name of the program (e.g., 'clisage').
        usage (str | None): Optional custom usage string.
        description (str | None): Description shown in the CLI help.
        epilog (str | None): Message displayed at the end of the help output.
        parents (Sequence[ArgumentParser] | None): Optional parent parsers.
        prefix_chars (str): Characters to denote optional arguments (default: "-").
        fromfile_prefix_chars (str | None): Prefix to indicate argument file input.
        argument_default (Any): Global default value for arguments.
        conflict_handler (str): Strategy to resolve conflicting argument names.
        add_help (bool): Whether to include help (`-h/--help`) in this parser.
        allow_abbrev (bool): Allow abbreviated long options.
        exit_on_error (bool): Whether the parser exits on error or raises.

    Returns:
        ArgumentParser: The root parser.
    """
    parser = ArgumentParser(
        prog=prog,
        usage=usage,
        description=description,
        epilog=epilog,
        formatter_class=RawDescriptionHelpFormatter,
        parents=parents if parents else [],
        prefix_chars=prefix_chars,
        fromfile_prefix_chars=fromfile_prefix_chars,
        argument_default=argument_default,
        conflict_handler=conflict_handler,
        add_help=add_help,
        allow_abbrev=allow_abbrev,
        exit_on_error=exit_on_error,
    )
    parser.add_argument(
        "--cmd",
        metavar="TEXT",
        help="Program to run instead of the description's bin (may contain spaces).",
    )
    parser.add_argument(
        "--spec-file",
        metavar="PATH",
        help="Read the command description from a YAML, TOML or JSON file.",
    )
    parser.add_argument(
        "--print",
        action="store_true",
        dest="print_only",
        help="Print the assembled command instead of running it.",
    )
    parser.add_argument(
        "--usage",
        action="store_true",
        help="Print clisage's own command description as YAML and exit.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging."
    )
    parser.add_argument(
        "--log-mode",
        choices=["cli", "json"],
        help="Log format: rich console or json (default: $CLISAGE_LOG_MODE).",
    )
    parser.add_argument(
        "--log-file",
        metavar="PATH",
        help="Write logs to PATH (default: $CLISAGE_LOG_FILE).",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "spec_command",
        nargs=REMAINDER,
        help="Command that prints the command description, e.g. `-- mycli --usage`.",
    )
    return parser


def _action_to_flag(action: Action) -> FlagDecl | None:
    short = next(
        (option[1:] for option in action.option_strings if len(option) == 2), None
    )
    long = next(
        (option[2:] for option in action.option_strings if option.startswith("--")),
        None,
    )
    if short is None and long is None:
        return None
    takes_value = action.nargs != 0
    return FlagDecl(
        name=action.dest,
        short=short,
        long=long,
        help="" if action.help in (None, SUPPRESS) else str(action.help),
        takes_value=takes_value,
        choices=tuple(str(choice) for choice in action.choices or ()),
        count=isinstance(action, _CountAction),
    )


def parser_to_spec(parser: ArgumentParser) -> CommandSpec:
    """Describe the options and positionals of `parser` as a `CommandSpec`."""
    flags = []
    args = []
    for action in parser._actions:
        if action.option_strings:
            flag = _action_to_flag(action)
            if flag is not None:
                flags.append(flag)
        elif action.help is not SUPPRESS:
            args.append(
                ArgDecl(
                    name=action.dest,
                    required=action.nargs not in ("?", "*", REMAINDER),
                    help=action.help or "",
                )
            )
    prog = parser.prog or "clisage"
    return CommandSpec(
        name=prog,
        root=SpecNode(
            name=prog,
            help=parser.description or "",
            flags=tuple(flags),
            args=tuple(args),
        ),
        bin=prog,
        about=parser.description or "",
        source="<argparse>",
    )
