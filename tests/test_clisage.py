import asyncio
import logging
import time

import pytest
from prompt_toolkit.input import create_pipe_input
from prompt_toolkit.output import DummyOutput

from clisage import Clisage
from clisage.focus import Panel

DOWN = "\x1b[B"
ENTER = "\r"
TAB = "\t"


async def wait_until(predicate, timeout: float = 10.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        assert time.monotonic() < deadline, "timed out"
        await asyncio.sleep(0.02)


@pytest.mark.asyncio
async def test_print_key_accepts_command(catalog):
    with create_pipe_input() as pipe:
        app = Clisage(catalog, input=pipe, output=DummyOutput())
        pipe.send_text("p")
        assert await app.run_async() == "mycli"


@pytest.mark.asyncio
async def test_quit_returns_none(catalog):
    with create_pipe_input() as pipe:
        app = Clisage(catalog, input=pipe, output=DummyOutput())
        pipe.send_text("q")
        assert await app.run_async() is None


@pytest.mark.asyncio
async def test_ctrl_c_raises_keyboard_interrupt(catalog):
    with create_pipe_input() as pipe:
        app = Clisage(catalog, input=pipe, output=DummyOutput())
        pipe.send_text("\x03")
        with pytest.raises(KeyboardInterrupt):
            await app.run_async()


@pytest.mark.asyncio
async def test_keys_build_command(catalog):
    with create_pipe_input() as pipe:
        app = Clisage(catalog, input=pipe, output=DummyOutput())
        pipe.send_text(DOWN + ENTER + TAB + " p")
        assert await app.run_async() == "mycli --verbose config"
        assert app.state.path == ("config",)


@pytest.mark.asyncio
async def test_print_only_accepts_from_preview(catalog):
    with create_pipe_input() as pipe:
        app = Clisage(
            catalog,
            print_only=True,
            bin_override="python -m mycli",
            input=pipe,
            output=DummyOutput(),
        )
        app.state.set_focus(Panel.PREVIEW)
        pipe.send_text(ENTER)
        assert await app.run_async() == "python -m mycli"


@pytest.mark.asyncio
async def test_execute_shows_session_until_dismissed(catalog, tmp_path):
    with create_pipe_input() as pipe:
        app = Clisage(
            catalog,
            bin_override="cat",
            cwd=str(tmp_path),
            input=pipe,
            output=DummyOutput(),
            refresh_interval=0.01,
        )
        app.state.set_focus(Panel.PREVIEW)
        task = asyncio.ensure_future(app.run_async())
        pipe.send_text(ENTER)
        await wait_until(lambda: app.state.session is not None)
        session = app.state.session
        await wait_until(lambda: session.is_running)
        pipe.send_text("q\x03")
        await wait_until(lambda: session.output_complete)
        assert session.exit_code == 130
        assert not task.done()
        pipe.send_text("q")
        await wait_until(lambda: app.state.session is None)
        pipe.send_text("q")
        assert await task is None


@pytest.mark.asyncio
async def test_running_session_is_stopped_on_exit(catalog, tmp_path):
    with create_pipe_input() as pipe:
        app = Clisage(
            catalog,
            bin_override="cat",
            cwd=str(tmp_path),
            input=pipe,
            output=DummyOutput(),
        )
        app.state.set_focus(Panel.PREVIEW)
        task = asyncio.ensure_future(app.run_async())
        pipe.send_text(ENTER)
        await wait_until(lambda: app.state.session is not None)
        session = app.state.session
        await wait_until(lambda: session.is_running)
        app.app.exit(result=None)
        assert await task is None
        assert session.exited
        assert app.state.session is None


def test_bottom_bar_follows_mode(catalog):
    with create_pipe_input() as pipe:
        app = Clisage(catalog, input=pipe, output=DummyOutput())
    visible = app.bottom_bar.visible_items()
    assert "path" in visible
    assert "quit" in visible
    assert "execute" not in visible
    assert "done" not in visible
    app.state.set_focus(Panel.PREVIEW)
    assert "execute" in app.bottom_bar.visible_items()
    app.state.set_focus(Panel.COMMANDS)
    app.state.handle_key("/", "/")
    assert "done" in app.bottom_bar.visible_items()
    assert "quit" not in app.bottom_bar.visible_items()


@pytest.mark.asyncio
async def test_console_logging_is_detached_while_running(catalog, tmp_path):
    root = logging.getLogger()
    console = logging.StreamHandler()
    log_file = logging.FileHandler(tmp_path / "session.log")
    root.addHandler(console)
    root.addHandler(log_file)
    try:
        with create_pipe_input() as pipe:
            app = Clisage(catalog, input=pipe, output=DummyOutput())
            task = asyncio.ensure_future(app.run_async())
            await wait_until(lambda: app.app.is_running)
            assert console not in root.handlers
            assert log_file in root.handlers
            pipe.send_text("q")
            assert await task is None
        assert console in root.handlers
    finally:
        root.removeHandler(console)
        root.removeHandler(log_file)
        log_file.close()
