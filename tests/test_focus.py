from clisage.focus import FocusController, Panel


def test_preview_is_always_available():
    focus = FocusController()
    assert focus.refresh(False, False, False) is Panel.PREVIEW
    assert focus.available == [Panel.PREVIEW]
    assert focus.next() is Panel.PREVIEW
    assert focus.prev() is Panel.PREVIEW


def test_refresh_falls_back_to_first_available():
    focus = FocusController()
    assert focus.refresh(True, True, True) is Panel.COMMANDS
    assert focus.set(Panel.ARGS)
    assert focus.refresh(False, True, False) is Panel.FLAGS


def test_refresh_keeps_active_panel_when_still_available():
    focus = FocusController()
    focus.refresh(True, True, False)
    focus.set(Panel.FLAGS)
    assert focus.refresh(False, True, True) is Panel.FLAGS


def test_cycling_wraps_over_available_panels():
    focus = FocusController()
    focus.refresh(True, False, True)
    cycle = [focus.next() for _ in range(3)]
    assert cycle == [Panel.ARGS, Panel.PREVIEW, Panel.COMMANDS]
    assert focus.prev() is Panel.PREVIEW


def test_set_rejects_unavailable_panel():
    focus = FocusController()
    focus.refresh(True, False, False)
    assert not focus.set(Panel.FLAGS)
    assert focus.active is Panel.COMMANDS
    assert not focus.is_available(Panel.ARGS)
