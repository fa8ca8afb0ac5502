import time

import pytest

from clisage.focus import Panel
from clisage.state import Action, AssemblyState, EditBuffer, pty_size
from clisage.values import FlagValue


@pytest.fixture
def state(catalog):
    return AssemblyState(catalog)


def press(state, *keys):
    action = Action.NONE
    for key in keys:
        action = state.handle_key(key, key if len(key) == 1 else "")
    return action


def type_text(state, text):
    for char in text:
        state.handle_key(char, char)


def select_command(state, name):
    names = [entry.name for entry in state.command_entries()]
    state.select(Panel.COMMANDS, names.index(name))


def select_flag(state, name):
    names = [flag.name for flag in state.flag_decls()]
    state.set_focus(Panel.FLAGS)
    state.select(Panel.FLAGS, names.index(name))


def test_initial_state(state):
    assert state.path == ()
    assert state.panel is Panel.COMMANDS
    assert state.command_display == "mycli"
    assert state.focus.available == [Panel.COMMANDS, Panel.FLAGS, Panel.PREVIEW]


def test_enter_and_leave_commands(state):
    select_command(state, "deploy")
    assert press(state, "c-m") is Action.NONE
    assert state.path == ("deploy",)
    assert state.panel is Panel.FLAGS
    assert state.focus.available == [Panel.FLAGS, Panel.ARGS, Panel.PREVIEW]
    press(state, "escape")
    assert state.path == ()
    names = [entry.name for entry in state.command_entries()]
    assert names[state.selected(Panel.COMMANDS)] == "deploy"


def test_escape_at_root_quits(state):
    assert press(state, "escape") is Action.QUIT
    assert press(state, "q") is Action.QUIT


def test_ctrl_c_cancels(state):
    assert press(state, "c-c") is Action.CANCEL


def test_global_flag_scenario(state):
    select_flag(state, "verbose")
    press(state, " ")
    state.navigate(("deploy",))
    state.set_focus(Panel.ARGS)
    press(state, "c-m")
    assert state.command_display == "mycli --verbose deploy dev"
    press(state, "c-m", "c-m")
    assert state.command_display == "mycli --verbose deploy prod"

    select_flag(state, "verbose")
    press(state, " ")
    assert state.command_display == "mycli deploy prod"


def test_values_survive_navigation(state):
    state.navigate(("run",))
    select_flag(state, "debug")
    press(state, "c-m", "c-m", "c-m")
    assert state.command_display == "mycli run --jobs 4 -ddd"
    state.navigate(("deploy",))
    state.navigate(("run",))
    assert state.command_display == "mycli run --jobs 4 -ddd"
    select_flag(state, "debug")
    press(state, "backspace")
    assert state.command_display == "mycli run --jobs 4 -dd"


def test_text_flag_inline_edit(state):
    state.navigate(("run",))
    select_flag(state, "jobs")
    press(state, "c-m")
    assert state.edit == EditBuffer(Panel.FLAGS, "jobs", "4", 1)
    press(state, "backspace")
    type_text(state, "16")
    assert state.command_display == "mycli run --jobs 16"
    press(state, "home")
    type_text(state, "1")
    press(state, "c-m")
    assert state.edit is None
    assert state.command_display == "mycli run --jobs 116"


def test_edit_keeps_keys_local(state):
    state.navigate(("run",))
    state.set_focus(Panel.ARGS)
    press(state, "c-m")
    type_text(state, "q p/")
    assert state.edit is not None
    press(state, "escape")
    assert state.command_display == 'mycli run --jobs 4 "q p/"'


def test_paste_into_edit(state):
    state.navigate(("run",))
    state.set_focus(Panel.ARGS)
    press(state, "c-m")
    state.handle_key("<bracketed-paste>", "build\tall")
    assert state.edit.text == "buildall"


def test_choice_flag_cycles(state):
    select_flag(state, "color")
    press(state, "c-m")
    assert state.command_display == "mycli --color auto"
    press(state, " ", " ", " ")
    assert state.command_display == "mycli"


def test_query_filters_navigation(state):
    press(state, "/")
    assert state.typing_query
    type_text(state, "cfgset")
    names = [entry.key for entry in state.command_entries()]
    assert names[state.selected(Panel.COMMANDS)] == "config set"
    press(state, "c-m")
    assert not state.typing_query
    assert state.query == "cfgset"
    press(state, "c-m")
    assert state.path == ("config", "set")
    assert state.query == ""


def test_query_movement_skips_non_matches(state):
    press(state, "/")
    type_text(state, "'plugin")
    press(state, "c-m")
    keys = [entry.key for entry in state.command_entries()]
    assert keys[state.selected(Panel.COMMANDS)] == "plugin"
    press(state, "down")
    assert keys[state.selected(Panel.COMMANDS)] == "plugin install"
    press(state, "down", "down")
    assert keys[state.selected(Panel.COMMANDS)] == "plugin"
    press(state, "escape")
    assert state.query == ""
    assert state.path == ()


def test_query_backspace_and_escape(state):
    press(state, "/")
    type_text(state, "dep")
    press(state, "backspace")
    assert state.query == "de"
    press(state, "escape")
    assert state.query_panel is None
    assert not state.typing_query


def test_tab_cycles_focus_and_clears_query(state):
    press(state, "/")
    type_text(state, "x")
    press(state, "tab")
    assert state.panel is Panel.FLAGS
    assert state.query == ""
    press(state, "s-tab", "s-tab")
    assert state.panel is Panel.PREVIEW


def test_accept(state):
    assert press(state, "p") is Action.ACCEPT
    assert state.result == "mycli"


def test_print_only_accepts_from_preview(catalog):
    state = AssemblyState(catalog, print_only=True)
    state.set_focus(Panel.PREVIEW)
    assert press(state, "c-m") is Action.ACCEPT
    assert state.session is None


def test_click_selects_then_activates(state):
    assert state.click(Panel.COMMANDS, 1) is Action.NONE
    assert state.selected(Panel.COMMANDS) == 1
    state.click(Panel.COMMANDS, 1)
    assert state.path == ("config",)


def test_click_preview_twice_executes(catalog):
    state = AssemblyState(catalog, bin_override="true")
    assert state.click(Panel.PREVIEW) is Action.NONE
    assert state.click(Panel.PREVIEW) is Action.EXECUTE
    assert state.session.wait(10)
    press(state, "c-m")
    assert state.session is None


def test_scroll_moves_selection(state):
    state.scroll(Panel.COMMANDS, 1)
    state.scroll(Panel.COMMANDS, 1)
    assert state.selected(Panel.COMMANDS) == 2
    state.scroll(Panel.COMMANDS, -5)
    assert state.selected(Panel.COMMANDS) == 0


def test_execute_routes_keys_to_session(catalog, tmp_path):
    state = AssemblyState(catalog, bin_override="cat", cwd=str(tmp_path))
    state.set_focus(Panel.PREVIEW)
    assert press(state, "c-m") is Action.EXECUTE
    session = state.session
    assert session.tokens == ["cat"]
    assert session.cwd == str(tmp_path)
    type_text(state, "hi")
    press(state, "c-m")
    deadline = time.monotonic() + 10
    while "hi" not in session.snapshot().lines[1] and time.monotonic() < deadline:
        time.sleep(0.02)
    assert session.snapshot().lines[1].startswith("hi")
    assert press(state, "q") is Action.NONE
    assert state.session is session
    press(state, "c-m", "c-d")
    assert session.wait(10)
    assert state.close_session()
    assert state.session is None


def test_session_stays_until_dismissed(catalog):
    state = AssemblyState(catalog, bin_override="false")
    state.set_focus(Panel.PREVIEW)
    press(state, "c-m")
    assert state.session.wait(10)
    assert state.session.exit_code == 1
    press(state, "x")
    assert state.session is not None
    press(state, "escape")
    assert state.session is None
    assert state.path == ()


def test_resize_propagates_to_session(catalog):
    state = AssemblyState(catalog)
    state.navigate(())
    state.resize(30, 100)
    assert state.terminal_size == (30, 100)
    assert pty_size(30, 100) == (26, 100)
    assert pty_size(3, 10) == (4, 20)


def test_current_help(state):
    select_command(state, "deploy")
    assert state.current_help() == "Deploy the application"
    select_flag(state, "color")
    assert state.current_help() == "Colorize output [auto, always, never]"
    select_flag(state, "verbose")
    assert state.current_help() == "Print more output (global)"
    state.set_focus(Panel.PREVIEW)
    assert state.current_help() == "Enter runs the command, p prints it"


def test_edit_buffer():
    edit = EditBuffer(Panel.ARGS, "x", "hello", 5)
    edit.move(-2)
    edit.insert("_")
    assert (edit.text, edit.cursor) == ("hel_lo", 4)
    edit.delete()
    assert edit.text == "hel_o"
    edit.backspace()
    edit.clear_to_start()
    assert (edit.text, edit.cursor) == ("o", 0)
    edit.end()
    assert edit.cursor == 1


def test_local_flag_is_not_seeded_as_global(shadow_catalog):
    state = AssemblyState(shadow_catalog)
    state.store.set_text("", "output", "global.txt")
    state.navigate(("mid",))
    state.store.set_text("mid", "output", "mid-local.txt")
    state.navigate(("mid", "leaf"))
    assert state.store.flag("mid leaf", "output") == FlagValue.text("global.txt")
    assert state.command_display == "app --output global.txt mid leaf"
