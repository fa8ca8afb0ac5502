"""
Clisage CLI Builder

Copyright (c) 2025 rtj.dev LLC.
Licensed under the MIT License. See LICENSE file for details.
"""

import logging
import sys
from typing import Sequence

from rich.markup import escape

from clisage.catalog import CommandCatalog
from clisage.clisage import Clisage
from clisage.config import dump_spec, resolve_spec
from clisage.console import error_console
from clisage.exceptions import SpecError
from clisage.logger import logger
from clisage.parsers import get_root_parser, parser_to_spec
from clisage.themes import OneColors
from clisage.utils import setup_logging

EXIT_INTERRUPTED = 130


def main(argv: Sequence[str] | None = None) -> int:
    parser = get_root_parser()
    args = parser.parse_args(argv)

    setup_logging(
        mode=args.log_mode,
        log_filename=args.log_file,
        json_log_to_file=args.log_mode == "json",
    )
    logger.setLevel(logging.DEBUG if args.verbose else logging.INFO)

    if args.usage:
        sys.stdout.write(dump_spec(parser_to_spec(parser)))
        return 0

    spec_command = list(args.spec_command)
    if spec_command and spec_command[0] == "--":
        spec_command = spec_command[1:]

    try:
        spec = resolve_spec(spec_command or None, args.spec_file)
    except SpecError as error:
        error_console.print(f"[{OneColors.DARK_RED}]❌ {escape(str(error))}[/]")
        return 1

    app = Clisage(
        CommandCatalog(spec),
        print_only=args.print_only,
        bin_override=args.cmd,
    )
    try:
        command = app.run()
    except KeyboardInterrupt:
        logger.debug("Interrupted.")
        return EXIT_INTERRUPTED
    if command:
        print(command)
    return 0


if __name__ == "__main__":
    sys.exit(main())
