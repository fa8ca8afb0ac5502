from argparse import ArgumentParser

import pytest

from clisage.parsers import get_root_parser, parser_to_spec
from clisage.spec import FlagShape


def test_root_parser_defaults():
    args = get_root_parser().parse_args([])
    assert args.cmd is None
    assert args.spec_file is None
    assert args.print_only is False
    assert args.usage is False
    assert args.log_mode is None
    assert args.spec_command == []


def test_root_parser_spec_command_keeps_its_flags():
    args = get_root_parser().parse_args(["--print", "mycli", "--usage", "-v"])
    assert args.print_only is True
    assert args.usage is False
    assert args.verbose is False
    assert args.spec_command == ["mycli", "--usage", "-v"]


def test_root_parser_rejects_unknown_log_mode():
    with pytest.raises(SystemExit):
        get_root_parser().parse_args(["--log-mode", "xml"])


def test_parser_to_spec():
    parser = ArgumentParser(prog="tool", description="Does things")
    parser.add_argument("-o", "--output", help="Output file")
    parser.add_argument("-v", "--verbose", action="count", default=0)
    parser.add_argument("--fast", action="store_true")
    parser.add_argument("--mode", choices=["a", "b"])
    parser.add_argument("source")
    parser.add_argument("extra", nargs="?")
    spec = parser_to_spec(parser)

    assert spec.name == "tool"
    assert spec.bin == "tool"
    assert spec.about == "Does things"
    flags = {flag.name: flag for flag in spec.root.flags}
    assert set(flags) == {"help", "output", "verbose", "fast", "mode"}
    assert flags["output"].short == "o"
    assert flags["output"].long == "output"
    assert flags["output"].shape is FlagShape.TEXT
    assert flags["verbose"].shape is FlagShape.COUNT
    assert flags["fast"].shape is FlagShape.BOOLEAN
    assert flags["mode"].choices == ("a", "b")
    assert [(arg.name, arg.required) for arg in spec.root.args] == [
        ("source", True),
        ("extra", False),
    ]


def test_parser_to_spec_describes_clisage():
    spec = parser_to_spec(get_root_parser())
    names = [flag.name for flag in spec.root.flags]
    assert "spec_file" in names
    assert "version" in names
    assert spec.root.args[0].name == "spec_command"
