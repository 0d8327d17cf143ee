"""Keyboard event handling."""

from typing import Optional

from blessed.keyboard import Keystroke

from ..domain.purchase import View
from .state import (
    PageState,
    close_purchase_confirm,
    move_selection,
    open_purchase_confirm,
    request_quit,
    set_status,
    set_view,
)

PURCHASE_BUSY = "A purchase is already being processed."


def parse_key(key: Keystroke) -> dict:
    """
    Parse keystroke into event dictionary.

    Args:
        key: blessed Keystroke

    Returns:
        Event dictionary describing the key press
    """
    event = {
        'type': 'unknown',
        'name': key.name if hasattr(key, 'name') else None,
        'char': str(key) if key and key.isprintable() else None,
    }

    if key.name == 'KEY_ENTER':
        event['type'] = 'enter'
    elif key.name == 'KEY_ESCAPE':
        event['type'] = 'escape'
    elif key.name == 'KEY_UP':
        event['type'] = 'arrow_up'
    elif key.name == 'KEY_DOWN':
        event['type'] = 'arrow_down'
    elif key == '\x03':  # Ctrl+C
        event['type'] = 'ctrl_c'
    elif key and key.isprintable():
        event['type'] = 'char'

    return event


def handle_key(
    state: PageState,
    key: Keystroke,
    track_count: int,
    purchase_busy: bool = False,
) -> tuple[PageState, Optional[str]]:
    """
    Handle keyboard input and return updated state.

    b opens the purchase dialog for the selected track; only enter in the
    dialog starts the purchase. While a purchase is processing the dialog
    does not open.

    Returns:
        (updated state, action for the page to run or None). Actions are
        'toggle', 'buy', 'verify', 'leave_verification' and 'open_download'.
    """
    event = parse_key(key)
    kind = event['type']
    char = (event['char'] or '').lower()

    if kind == 'ctrl_c':
        return request_quit(state), None

    if state.view is View.VERIFICATION:
        if kind in ('escape', 'enter') or char == 'q':
            return set_view(state, View.STOREFRONT), 'leave_verification'
        if char == 'o':
            return state, 'open_download'
        return state, None

    if state.confirm_purchase:
        if kind == 'enter':
            if purchase_busy:
                return set_status(close_purchase_confirm(state), PURCHASE_BUSY, 'warning'), None
            return close_purchase_confirm(state), 'buy'
        if kind == 'escape' or char in ('q', 'n'):
            return close_purchase_confirm(state), None
        return state, None

    if kind == 'escape' or char == 'q':
        return request_quit(state), None
    if kind == 'arrow_up' or char == 'k':
        return move_selection(state, -1, track_count), None
    if kind == 'arrow_down' or char == 'j':
        return move_selection(state, 1, track_count), None
    if kind == 'enter' or char == ' ':
        return state, 'toggle'
    if char == 'b':
        if track_count <= 0:
            return state, None
        if purchase_busy:
            return set_status(state, PURCHASE_BUSY, 'warning'), None
        return open_purchase_confirm(state), None
    if char == 'v':
        return set_view(state, View.VERIFICATION), 'verify'
    return state, None
