from src.overlay.state import OverlayState


def test_empty_state_has_no_selection():
    state = OverlayState()
    assert state.images == ()
    assert state.selected is None
    assert state.selected_image is None
    assert state.hidden is False
    assert state.scroll is False


def test_set_selected_wraps_into_range():
    state = OverlayState(["a.png", "b.png", "c.png"])
    state.set_selected(2)
    assert state.selected_image == "c.png"
    state.set_selected(3)
    assert state.selected == 0
    state.set_selected(-1)
    assert state.selected == 2


def test_set_selected_without_images_keeps_none():
    state = OverlayState()
    state.set_selected(4)
    assert state.selected is None


def test_next_and_previous_wrap_around():
    state = OverlayState(["a.png", "b.png"])
    assert state.select_next() == 1
    assert state.select_next() == 0
    assert state.select_previous() == 1
    assert OverlayState().select_next() is None


def test_set_images_keeps_invariant():
    state = OverlayState(["a.png", "b.png", "c.png"])
    state.set_selected(2)
    state.set_images(["a.png"])
    assert state.selected == 0
    state.set_images([])
    assert state.selected is None
    state.set_images(["x.png"])
    assert state.selected == 0


def test_apply_scan_selects_first_image_after_empty_list():
    state = OverlayState()
    assert state.apply_scan(["a.png", "b.png"]) is True
    assert state.selected == 0


def test_apply_scan_follows_previously_selected_file():
    state = OverlayState(["b.png", "c.png"])
    state.set_selected(1)
    assert state.apply_scan(["a.png", "b.png", "c.png"]) is False
    assert state.selected_image == "c.png"
    assert state.selected == 2


def test_apply_scan_resets_when_selection_no_longer_resolves():
    state = OverlayState(["a.png", "b.png"])
    state.set_selected(1)
    assert state.apply_scan(["a.png", "c.png"]) is True
    assert state.selected == 0


def test_apply_scan_to_empty_clears_selection():
    state = OverlayState(["a.png"])
    assert state.apply_scan([]) is True
    assert state.selected is None


def test_toggles_are_immediately_observable():
    state = OverlayState()
    assert state.toggle_hidden() is True
    assert state.hidden is True
    assert state.toggle_scroll() is True
    assert state.toggle_scroll() is False
    snap = state.snapshot()
    assert snap.hidden is True
    assert snap.scroll is False


def test_snapshot_is_immutable_copy():
    state = OverlayState(["a.png", "b.png"])
    state.set_selected(1)
    snap = state.snapshot()
    state.set_images([])
    assert snap.images == ("a.png", "b.png")
    assert snap.selected_image == "b.png"
