"""Tests for page keyboard handling."""

from blessed.keyboard import Keystroke

from music_storefront.domain.purchase import View
from music_storefront.ui.keyboard import handle_key, parse_key
from music_storefront.ui.state import PageState, move_selection


def key(char: str = "", name: str = None) -> Keystroke:
    return Keystroke(char, code=None, name=name)


def test_parse_key_types():
    assert parse_key(key("\n", "KEY_ENTER"))["type"] == "enter"
    assert parse_key(key("", "KEY_UP"))["type"] == "arrow_up"
    assert parse_key(key("b"))["type"] == "char"
    assert parse_key(key("\x03"))["type"] == "ctrl_c"


def test_move_selection_is_clamped():
    state = PageState(selected=0)

    assert move_selection(state, -1, 3).selected == 0
    assert move_selection(state, 5, 3).selected == 2
    assert move_selection(state, 1, 0).selected == 0


def test_storefront_keys():
    state = PageState()

    state, action = handle_key(state, key("", "KEY_DOWN"), 3)
    assert (state.selected, action) == (1, None)
    assert handle_key(state, key(" "), 3)[1] == "toggle"
    assert handle_key(state, key("b"), 3)[0].confirm_purchase

    state, action = handle_key(state, key("v"), 3)
    assert (state.view, action) == (View.VERIFICATION, "verify")


def test_quit_from_storefront():
    state, _ = handle_key(PageState(), key("q"), 3)

    assert state.should_quit


def test_leaving_verification_returns_to_store():
    state = PageState(view=View.VERIFICATION)

    state, action = handle_key(state, key("q"), 3)

    assert state.view is View.STOREFRONT
    assert not state.should_quit
    assert action == "leave_verification"


def test_open_download_only_in_verification():
    assert handle_key(PageState(view=View.VERIFICATION), key("o"), 3)[1] == "open_download"
    assert handle_key(PageState(), key("o"), 3)[1] is None


def test_buy_opens_dialog_before_purchasing():
    state, action = handle_key(PageState(), key("b"), 3)

    assert state.confirm_purchase
    assert action is None


def test_enter_in_dialog_confirms_purchase():
    state = PageState(confirm_purchase=True)

    state, action = handle_key(state, key("\n", "KEY_ENTER"), 3)

    assert action == "buy"
    assert not state.confirm_purchase


def test_escape_in_dialog_cancels_without_quitting():
    state = PageState(confirm_purchase=True)

    state, action = handle_key(state, key("\x1b", "KEY_ESCAPE"), 3)

    assert action is None
    assert not state.confirm_purchase
    assert not state.should_quit


def test_dialog_swallows_other_keys():
    state = PageState(confirm_purchase=True, selected=1)

    state, action = handle_key(state, key(" "), 3)
    assert (state.confirm_purchase, state.selected, action) == (True, 1, None)
    state, action = handle_key(state, key("", "KEY_DOWN"), 3)
    assert (state.selected, action) == (1, None)


def test_dialog_does_not_open_while_purchase_busy():
    state, action = handle_key(PageState(), key("b"), 3, purchase_busy=True)

    assert not state.confirm_purchase
    assert action is None
    assert state.status_level == "warning"


def test_buy_with_empty_catalog_does_nothing():
    state, action = handle_key(PageState(), key("b"), 0)

    assert not state.confirm_purchase
    assert action is None
