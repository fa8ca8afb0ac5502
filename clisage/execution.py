# Clisage CLI Builder — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Runs an assembled command inside a pseudo-terminal.

`ExecutionSession` drives one child process through a small state machine:

    SPAWNING -> RUNNING -> EXITED

The controller holds no session while idle and drops it again after `close()`.

Three daemon threads do the blocking work so the UI loop never waits on the child:

- reader: drains the pty master into a `pyte` screen until end of stream
- waiter: blocks on the child and records its exit status
- cleanup: once the child has exited, releases the write side of the pty

Data crossing threads is guarded by narrow locks: the screen model by
`_screen_lock`, the exit status by `_status_lock`, the write channel by
`_writer_lock`. The reader owns its file descriptor and closes it when it stops.

A child that cannot be started never raises out of `spawn`; the session goes
straight to EXITED with a shell-style status (127 not found, 126 not executable,
1 otherwise) and the error is printed on the session screen.
"""
from __future__ import annotations

import fcntl
import os
import selectors
import signal
import struct
import subprocess
import termios
import threading
import time
from contextlib import suppress
from dataclasses import dataclass
from enum import Enum
from typing import Callable

import pyte
from pyte.screens import Char

from clisage.exceptions import SessionStateError
from clisage.logger import logger
from clisage.utils import join_tokens

READ_CHUNK = 8192
SELECT_TIMEOUT = 0.05
CLEANUP_GRACE = 0.1
MIN_ROWS = 4
MIN_COLS = 20


class SessionState(Enum):
    SPAWNING = "spawning"
    RUNNING = "running"
    EXITED = "exited"


def describe_returncode(returncode: int) -> str:
    """`subprocess` return codes as a readable status."""
    if returncode >= 0:
        return f"exit status {returncode}"
    number = -returncode
    try:
        name = signal.Signals(number).name
    except ValueError:
        return f"signal {number}"
    return f"signal {number} ({name})"


def set_winsize(fd: int, rows: int, cols: int) -> None:
    fcntl.ioctl(fd, termios.TIOCSWINSZ, struct.pack("HHHH", rows, cols, 0, 0))


def _become_session_leader() -> None:
    os.setsid()
    fcntl.ioctl(0, termios.TIOCSCTTY, 0)


class SessionScreen(pyte.Screen):
    """pyte screen that answers terminal queries (e.g. cursor position) to the child."""

    def __init__(self, columns: int, lines: int, respond: Callable[[bytes], bool]):
        super().__init__(columns, lines)
        self._respond = respond

    def write_process_input(self, data: str) -> None:
        self._respond(data.encode("utf-8"))

    def resize(self, lines: int | None = None, columns: int | None = None) -> None:
        """
        Shrink from the bottom like a terminal emulator does.

        pyte drops rows from the top, which loses output that sits above the cursor.
        Only the rows needed to keep the cursor on screen scroll away here.
        """
        lines = lines or self.lines
        if lines < self.lines:
            scroll = max(0, self.cursor.y + 1 - lines)
            kept = [self.buffer[y] for y in range(scroll, scroll + lines)]
            self.buffer.clear()
            self.buffer.update(enumerate(kept))
            self.cursor.y -= scroll
            self.lines = lines
            self.dirty.update(range(lines))
            self.set_margins()
        super().resize(lines, columns)


@dataclass(frozen=True)
class ScreenSnapshot:
    """A consistent copy of the screen taken under the screen lock."""

    lines: list[str]
    cells: list[list[Char]]
    cursor: tuple[int, int]
    cursor_hidden: bool


class ExecutionSession:
    """
    One child process attached to a pseudo-terminal.

    Args:
        display (str): The command line as shown to the user. Fixed for the session.
        tokens (list[str]): Argument vector passed to the process without a shell.
        rows (int): Terminal rows, at least 4.
        cols (int): Terminal columns, at least 20.
        cwd (str | None): Working directory of the child.
        env (dict[str, str] | None): Extra environment for the child.
        on_update (Callable[[], None] | None): Called from background threads after
            new output or the exit. Must be thread-safe.
    """

    def __init__(
        self,
        display: str,
        tokens: list[str],
        rows: int = 24,
        cols: int = 80,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        on_update: Callable[[], None] | None = None,
    ) -> None:
        self.display = display
        self.tokens = list(tokens)
        self.rows = max(rows, MIN_ROWS)
        self.cols = max(cols, MIN_COLS)
        self.cwd = cwd
        self.env = env or {}
        self.on_update = on_update

        self._state = SessionState.SPAWNING
        self._status_lock = threading.Lock()
        self._exit_code: int | None = None
        self._exit_status: str | None = None
        self._exited = threading.Event()

        self._screen_lock = threading.Lock()
        self.screen = SessionScreen(self.cols, self.rows, self.write_raw)
        self._stream = pyte.ByteStream(self.screen)

        self._writer_lock = threading.Lock()
        self._writer_fd: int | None = None
        self._reader_fd: int | None = None
        self._process: subprocess.Popen | None = None
        self._stop = threading.Event()
        self._reader_done = threading.Event()
        self._threads: list[threading.Thread] = []
        self.closed = False

    @classmethod
    def spawn(
        cls,
        display: str,
        tokens: list[str],
        rows: int = 24,
        cols: int = 80,
        **kwargs,
    ) -> ExecutionSession:
        session = cls(display, tokens, rows, cols, **kwargs)
        session.start()
        return session

    @property
    def state(self) -> SessionState:
        with self._status_lock:
            return self._state

    @property
    def is_running(self) -> bool:
        return self.state is SessionState.RUNNING

    @property
    def exited(self) -> bool:
        return self._exited.is_set()

    @property
    def exit_code(self) -> int | None:
        with self._status_lock:
            return self._exit_code

    @property
    def exit_status(self) -> str | None:
        with self._status_lock:
            return self._exit_status

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def output_complete(self) -> bool:
        """True once the child exited and the reader drained everything."""
        return self._exited.is_set() and self._reader_done.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until `output_complete` or the timeout expires."""
        deadline = None if timeout is None else time.monotonic() + timeout
        if not self._exited.wait(timeout):
            return False
        remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
        return self._reader_done.wait(remaining)

    def start(self) -> None:
        if self.state is not SessionState.SPAWNING:
            raise SessionStateError(
                f"Cannot start a session in state {self.state.name}"
            )
        if not self.tokens:
            self._fail(1, "nothing to execute")
            return

        try:
            master_fd, slave_fd = os.openpty()
        except OSError as error:
            self._fail(1, f"could not allocate a pseudo-terminal: {error}")
            return

        env = {**os.environ, "TERM": "xterm-256color", **self.env}
        try:
            set_winsize(slave_fd, self.rows, self.cols)
            self._process = subprocess.Popen(
                self.tokens,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                preexec_fn=_become_session_leader,
                close_fds=True,
                cwd=self.cwd,
                env=env,
            )
        except FileNotFoundError as error:
            os.close(master_fd)
            if self.cwd is not None and error.filename == self.cwd:
                self._fail(1, f"{self.cwd}: no such working directory")
            else:
                self._fail(127, f"{self.tokens[0]}: command not found")
            return
        except PermissionError:
            os.close(master_fd)
            self._fail(126, f"{self.tokens[0]}: permission denied")
            return
        except (OSError, subprocess.SubprocessError) as error:
            os.close(master_fd)
            self._fail(1, f"{self.tokens[0]}: {error}")
            return
        finally:
            os.close(slave_fd)

        self._reader_fd = master_fd
        self._writer_fd = os.dup(master_fd)
        with self._status_lock:
            self._state = SessionState.RUNNING
        logger.info(
            "Spawned pid %s: %s (%dx%d)",
            self._process.pid,
            join_tokens(self.tokens),
            self.cols,
            self.rows,
        )

        for target, name in (
            (self._read_loop, "reader"),
            (self._wait_loop, "waiter"),
            (self._cleanup_loop, "cleanup"),
        ):
            thread = threading.Thread(
                target=target, name=f"clisage-{name}-{self._process.pid}", daemon=True
            )
            self._threads.append(thread)
            thread.start()

    def _fail(self, code: int, message: str) -> None:
        logger.info("Spawn failed (%d): %s", code, message)
        self._feed(f"{message}\r\n".encode("utf-8"))
        with self._status_lock:
            self._exit_code = code
            self._exit_status = f"{message} (exit status {code})"
            self._state = SessionState.EXITED
        self._reader_done.set()
        self._exited.set()

    def _notify(self) -> None:
        if self.on_update is not None:
            self.on_update()

    def _feed(self, data: bytes) -> None:
        with self._screen_lock:
            self._stream.feed(data)

    def _read_loop(self) -> None:
        fd = self._reader_fd
        selector = selectors.DefaultSelector()
        selector.register(fd, selectors.EVENT_READ)
        try:
            while not self._stop.is_set():
                if not selector.select(timeout=SELECT_TIMEOUT):
                    continue
                try:
                    data = os.read(fd, READ_CHUNK)
                except OSError as error:
                    logger.debug("Output stream ended: %s", error)
                    break
                if not data:
                    break
                self._feed(data)
                self._notify()
        finally:
            selector.close()
            with suppress(OSError):
                os.close(fd)
            self._reader_fd = None
            self._reader_done.set()
            self._notify()

    def _wait_loop(self) -> None:
        returncode = self._process.wait()
        status = describe_returncode(returncode)
        with self._status_lock:
            self._exit_code = returncode if returncode >= 0 else 128 - returncode
            self._exit_status = status
            self._state = SessionState.EXITED
        self._exited.set()
        logger.info("Process %s finished with %s", self._process.pid, status)
        self._notify()

    def _cleanup_loop(self) -> None:
        self._exited.wait()
        self._reader_done.wait(CLEANUP_GRACE)
        time.sleep(CLEANUP_GRACE)
        self._close_writer()

    def _close_writer(self) -> None:
        with self._writer_lock:
            if self._writer_fd is not None:
                with suppress(OSError):
                    os.close(self._writer_fd)
                self._writer_fd = None

    def write_raw(self, data: bytes) -> bool:
        """Write bytes to the child terminal. Returns False if nothing was written."""
        with self._writer_lock:
            if self._writer_fd is None or not data:
                return False
            try:
                while data:
                    written = os.write(self._writer_fd, data)
                    data = data[written:]
            except OSError as error:
                logger.debug("Write to pty failed: %s", error)
                return False
        return True

    def write(self, data: bytes) -> bool:
        """Forward keystrokes to the child. Ignored unless RUNNING."""
        if not self.is_running:
            return False
        return self.write_raw(data)

    def interrupt(self) -> bool:
        return self.write(b"\x03")

    def resize(self, rows: int, cols: int) -> bool:
        """Resize the screen model and the pty in place. Returns True on a change."""
        rows = max(rows, MIN_ROWS)
        cols = max(cols, MIN_COLS)
        if (rows, cols) == (self.rows, self.cols):
            return False
        with self._screen_lock:
            self.screen.resize(lines=rows, columns=cols)
        self.rows, self.cols = rows, cols
        if self.is_running:
            with self._writer_lock:
                if self._writer_fd is not None:
                    with suppress(OSError):
                        set_winsize(self._writer_fd, rows, cols)
            with suppress(OSError):
                self._process.send_signal(signal.SIGWINCH)
        logger.debug("Resized session to %dx%d", cols, rows)
        return True

    def snapshot(self) -> ScreenSnapshot:
        with self._screen_lock:
            buffer = self.screen.buffer
            cells = [
                [buffer[y][x] for x in range(self.screen.columns)]
                for y in range(self.screen.lines)
            ]
            return ScreenSnapshot(
                lines=list(self.screen.display),
                cells=cells,
                cursor=(self.screen.cursor.x, self.screen.cursor.y),
                cursor_hidden=self.screen.cursor.hidden,
            )

    def close(self) -> None:
        """Release the pty. Only allowed once the child has exited."""
        if self.closed:
            return
        if self.state is not SessionState.EXITED:
            raise SessionStateError(
                f"Cannot close a session in state {self.state.name}"
            )
        self._stop.set()
        for thread in self._threads:
            if thread is not threading.current_thread():
                thread.join(timeout=1.0)
        self._close_writer()
        self.closed = True
        logger.debug("Closed session for '%s'", self.display)
