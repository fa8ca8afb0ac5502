# Clisage CLI Builder — (c) 2025 rtj.dev LLC — MIT Licensed
"""utils.py"""
from __future__ import annotations

import logging
import os
import shlex
from contextlib import contextmanager
from itertools import islice
from typing import Iterator

import pythonjsonlogger.json
from rich.logging import RichHandler

from clisage.console import error_console


def chunks(iterator, size):
    """Yield successive n-sized chunks from an iterator."""
    iterator = iter(iterator)
    while True:
        chunk = list(islice(iterator, size))
        if not chunk:
            break
        yield chunk


def quote_display(value: str) -> str:
    """Wrap a value in double quotes when it contains whitespace."""
    if any(char.isspace() for char in value):
        return f'"{value}"'
    return value


def join_tokens(tokens: list[str]) -> str:
    """Shell-quoted rendering of a token list, used for log lines."""
    return " ".join(shlex.quote(token) for token in tokens)


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def running_in_container() -> bool:
    try:
        with open("/proc/1/cgroup", "r", encoding="UTF-8") as f:
            content = f.read()
            return (
                "docker" in content
                or "kubepods" in content
                or "containerd" in content
                or "podman" in content
            )
    except OSError:
        return False


def setup_logging(
    mode: str | None = None,
    log_filename: str | None = None,
    json_log_to_file: bool = False,
    file_log_level: int = logging.DEBUG,
    console_log_level: int = logging.WARNING,
):
    """
    Configure logging for Clisage with support for both CLI-friendly and structured
    JSON output.

    The interactive session owns the terminal while it runs, so console records are
    only useful before the application starts and after it exits. A file handler is
    therefore attached whenever a log file is requested, and it is the place to look
    for debug output of a session.

    Args:
        mode (str | None):
            Logging output mode. Can be:
                - "cli": human-readable Rich console logs (default outside containers)
                - "json": machine-readable JSON logs (default inside containers)
            If not provided, it will use the `CLISAGE_LOG_MODE` environment variable
            or fallback based on container detection.
        log_filename (str | None):
            Path to the log file. Falls back to the `CLISAGE_LOG_FILE` environment
            variable. No file handler is attached when neither is set.
        json_log_to_file (bool):
            Whether to format file logs as JSON (structured) instead of plain text.
            Defaults to False.
        file_log_level (int):
            Logging level for file output. Defaults to `logging.DEBUG`.
        console_log_level (int):
            Logging level for console output. Defaults to `logging.WARNING`.

    Raises:
        ValueError: If an invalid logging `mode` is passed.

    Environment Variables:
        CLISAGE_LOG_MODE: Can override `mode` to enforce "cli" or "json" logging.
        CLISAGE_LOG_FILE: Default log file path.
    """
    if not mode:
        mode = os.getenv("CLISAGE_LOG_MODE") or (
            "json" if running_in_container() else "cli"
        )

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    if root.hasHandlers():
        root.handlers.clear()

    if mode == "cli":
        console_handler: RichHandler | logging.StreamHandler = RichHandler(
            console=error_console,
            rich_tracebacks=True,
            show_time=True,
            show_level=True,
            show_path=False,
            markup=False,
            log_time_format="[%Y-%m-%d %H:%M:%S]",
        )
    elif mode == "json":
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(
            pythonjsonlogger.json.JsonFormatter(
                "%(asctime)s %(name)s %(levelname)s %(message)s"
            )
        )
    else:
        raise ValueError(f"Invalid log mode: {mode}")

    console_handler.setLevel(console_log_level)
    root.addHandler(console_handler)

    log_filename = log_filename or os.getenv("CLISAGE_LOG_FILE")
    if log_filename:
        file_handler = logging.FileHandler(log_filename, "a", "UTF-8")
        file_handler.setLevel(file_log_level)
        if json_log_to_file:
            file_handler.setFormatter(
                pythonjsonlogger.json.JsonFormatter(
                    "%(asctime)s %(name)s %(levelname)s %(message)s"
                )
            )
        else:
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s [%(name)s] [%(levelname)s] %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )
        root.addHandler(file_handler)

    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logger = logging.getLogger("clisage")
    logger.propagate = True
    logger.debug("Logging initialized in '%s' mode.", mode)


@contextmanager
def console_logging_paused() -> Iterator[list[logging.Handler]]:
    """
    Detach the root logger's console handlers for the duration of the block.

    The full screen builder owns the terminal while it runs; a record written to
    stderr would land underneath it and garble the screen. File handlers stay
    attached, so a `--log-file` still records the whole session.
    """
    root = logging.getLogger()
    paused = [
        handler
        for handler in root.handlers
        if not isinstance(handler, logging.FileHandler)
    ]
    for handler in paused:
        root.removeHandler(handler)
    try:
        yield paused
    finally:
        for handler in paused:
            root.addHandler(handler)
