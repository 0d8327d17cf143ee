"""Page state - small dataclass with pure update functions."""

from dataclasses import dataclass, replace
from typing import Optional

from ..domain.purchase import View


@dataclass(frozen=True)
class PageState:
    view: View = View.STOREFRONT
    selected: int = 0
    status_message: Optional[str] = None
    status_level: str = "info"
    should_quit: bool = False
    confirm_purchase: bool = False  # purchase dialog open for the selected track


def move_selection(state: PageState, delta: int, track_count: int) -> PageState:
    """Move the cursor, clamped to the track list."""
    if track_count <= 0:
        return replace(state, selected=0)
    selected = min(max(state.selected + delta, 0), track_count - 1)
    return replace(state, selected=selected)


def set_status(state: PageState, message: Optional[str], level: str = "info") -> PageState:
    return replace(state, status_message=message, status_level=level)


def set_view(state: PageState, view: View) -> PageState:
    return replace(state, view=view, status_message=None, status_level="info")


def request_quit(state: PageState) -> PageState:
    return replace(state, should_quit=True)


def open_purchase_confirm(state: PageState) -> PageState:
    return replace(state, confirm_purchase=True, status_message=None, status_level="info")


def close_purchase_confirm(state: PageState) -> PageState:
    return replace(state, confirm_purchase=False)
