import logging
import signal
import threading
import time

import pyte
import pytest

from clisage.exceptions import SessionStateError
from clisage.execution import (
    ExecutionSession,
    SessionScreen,
    SessionState,
    describe_returncode,
)

TIMEOUT = 10.0


def wait_for(predicate, timeout=TIMEOUT):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


def screen_text(session):
    return "\n".join(line.rstrip() for line in session.snapshot().lines)


def spawn_sh(script, **kwargs):
    return ExecutionSession.spawn(script, ["sh", "-c", script], **kwargs)


def test_output_reaches_the_screen():
    session = spawn_sh("printf 'hello\\n'")
    assert session.wait(TIMEOUT)
    assert session.state is SessionState.EXITED
    assert session.exit_code == 0
    assert session.succeeded
    assert session.exit_status == "exit status 0"
    assert session.snapshot().lines[0].startswith("hello")
    session.close()


def test_nonzero_exit_keeps_last_output():
    session = spawn_sh("printf 'partial output'; exit 3")
    assert session.wait(TIMEOUT)
    assert session.exit_code == 3
    assert not session.succeeded
    assert session.exit_status == "exit status 3"
    assert "partial output" in screen_text(session)
    session.close()


def test_command_not_found_exits_without_raising():
    session = ExecutionSession.spawn(
        "no-such-binary-for-clisage", ["no-such-binary-for-clisage"]
    )
    assert session.state is SessionState.EXITED
    assert session.exit_code == 127
    assert "command not found" in session.exit_status
    assert "no-such-binary-for-clisage: command not found" in screen_text(session)
    assert session.pid is None
    session.close()


def test_nothing_to_execute():
    session = ExecutionSession.spawn("", [])
    assert session.exited
    assert session.exit_code == 1
    assert session.output_complete


def test_keystrokes_are_forwarded():
    session = spawn_sh("read line; echo got:$line")
    assert session.is_running
    assert session.write(b"abc\r")
    assert session.wait(TIMEOUT)
    assert "got:abc" in screen_text(session)
    session.close()


def test_interrupt_and_close():
    session = spawn_sh("sleep 30")
    assert wait_for(lambda: session.pid is not None)
    with pytest.raises(SessionStateError):
        session.close()
    time.sleep(0.2)
    assert session.interrupt()
    assert session.wait(TIMEOUT)
    assert session.exit_code == 128 + signal.SIGINT
    assert session.exit_status == "signal 2 (SIGINT)"
    session.close()
    assert session.closed
    assert not session.write(b"x")
    session.close()


def test_resize_updates_screen_and_pty():
    session = spawn_sh("sleep 0.5; stty size", rows=12, cols=60)
    assert session.resize(10, 40)
    assert not session.resize(10, 40)
    assert session.wait(TIMEOUT)
    assert (session.screen.lines, session.screen.columns) == (10, 40)
    assert "10 40" in screen_text(session)
    session.close()


def test_minimum_size_is_enforced():
    session = ExecutionSession("x", ["true"], rows=1, cols=5)
    assert (session.rows, session.cols) == (4, 20)


def test_on_update_is_called_from_background_threads():
    calls = []
    names = set()

    def on_update():
        calls.append(1)
        names.add(threading.current_thread().name)

    session = spawn_sh("echo tick", on_update=on_update)
    assert session.wait(TIMEOUT)
    assert wait_for(lambda: len(calls) >= 2)
    assert all(name.startswith("clisage-") for name in names)
    session.close()


def test_environment_and_cwd(tmp_path):
    session = spawn_sh(
        'printf "%s %s %s" "$TERM" "$CLISAGE_TEST" "$(pwd)"',
        cwd=str(tmp_path),
        env={"CLISAGE_TEST": "yes"},
        cols=200,
    )
    assert session.wait(TIMEOUT)
    text = screen_text(session)
    assert "xterm-256color yes" in text
    assert tmp_path.name in text
    session.close()


def test_start_twice_is_rejected():
    session = spawn_sh("true")
    with pytest.raises(SessionStateError):
        session.start()
    assert session.wait(TIMEOUT)
    session.close()


def test_display_is_fixed_at_spawn():
    session = spawn_sh("true")
    assert session.display == "true"
    assert session.tokens == ["sh", "-c", "true"]
    assert session.wait(TIMEOUT)
    session.close()


def test_describe_returncode():
    assert describe_returncode(0) == "exit status 0"
    assert describe_returncode(-9) == "signal 9 (SIGKILL)"
    assert describe_returncode(-200) == "signal 200"


def test_resize_while_running_keeps_output():
    session = spawn_sh("printf 'before\\n'; read line; echo after:$line", rows=12)
    assert wait_for(lambda: "before" in screen_text(session))
    assert session.is_running
    assert session.resize(6, 40)
    lines = session.snapshot().lines
    assert len(lines) == 6
    assert lines[0].rstrip() == "before"
    assert session.write(b"go\r")
    assert session.wait(TIMEOUT)
    assert "before" in screen_text(session)
    assert "after:go" in screen_text(session)
    session.close()


def test_shrinking_scrolls_only_what_the_cursor_needs():
    screen = SessionScreen(30, 12, lambda data: True)
    stream = pyte.ByteStream(screen)
    stream.feed("".join(f"line{index}\r\n" for index in range(10)).encode())
    assert screen.cursor.y == 10
    screen.resize(6, 30)
    assert [line.rstrip() for line in screen.display] == [
        "line5",
        "line6",
        "line7",
        "line8",
        "line9",
        "",
    ]
    assert screen.cursor.y == 5


def test_missing_working_directory(tmp_path):
    missing = str(tmp_path / "missing")
    session = ExecutionSession.spawn("true", ["true"], cwd=missing)
    assert session.exited
    assert session.exit_code == 1
    assert f"{missing}: no such working directory" in session.exit_status
    assert "command not found" not in screen_text(session)
    session.close()


def test_spawn_failure_is_not_logged_as_warning(caplog):
    with caplog.at_level(logging.DEBUG, logger="clisage"):
        session = ExecutionSession.spawn(
            "no-such-binary-for-clisage", ["no-such-binary-for-clisage"]
        )
    assert session.exit_code == 127
    failures = [r for r in caplog.records if r.getMessage().startswith("Spawn failed")]
    assert [record.levelno for record in failures] == [logging.INFO]
    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]
    session.close()
