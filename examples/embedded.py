"""embedded.py

Build the command line of an argparse based tool interactively, then run it.
"""
import subprocess
import sys
from argparse import ArgumentParser

from clisage import Clisage, CommandCatalog
from clisage.parsers import parser_to_spec
from clisage.utils import setup_logging

setup_logging()

parser = ArgumentParser(prog="backup", description="Copy a directory somewhere safe")
parser.add_argument("-n", "--dry-run", action="store_true", help="Only print")
parser.add_argument("-v", "--verbose", action="count", default=0)
parser.add_argument("--compress", choices=["gzip", "zstd", "none"])
parser.add_argument("source", help="Directory to copy")
parser.add_argument("target", nargs="?", help="Destination")

if __name__ == "__main__":
    catalog = CommandCatalog(parser_to_spec(parser))
    command = Clisage(catalog, print_only=True, bin_override="echo backup").run()
    if command:
        sys.exit(subprocess.call(command, shell=True))
