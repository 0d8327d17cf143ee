"""Rendering functions - state in, list of terminal lines out."""

from typing import List, Optional, Sequence

from blessed import Terminal

from ..core.config import StoreConfig
from ..domain.catalog import Track
from ..domain.preview import PreviewDeck, PlaybackSession, terminal_bars
from ..domain.purchase import VerificationLoop, VerificationState
from .state import PageState

# #f97316, the accent used for played waveform bars
ACCENT_RGB = (249, 115, 22)

STOREFRONT_HELP = "↑/↓ select  space play/stop  b buy  v verify purchase  q quit"
VERIFICATION_HELP = "enter back to store  o open download"
CONFIRM_HELP = "enter pay with crypto  esc cancel"


def _status_color(term: Terminal, level: str):
    if level == "error":
        return term.red
    if level == "warning":
        return term.yellow
    return term.green


def render_header(term: Terminal, store: StoreConfig) -> List[str]:
    return [
        term.bold(store.title),
        f"{store.artist} · {term.bright_black(store.tagline)}",
        "",
    ]


def track_badge(track: Track, session: Optional[PlaybackSession]) -> str:
    """Short state label shown next to a track."""
    if not track.has_preview or session is None:
        return "no preview"
    if session.failed:
        return "unavailable"
    if session.is_loading:
        return "loading…"
    if session.is_playing:
        return "playing"
    return ""


def render_waveform_row(term: Terminal, session: Optional[PlaybackSession], columns: int) -> str:
    if session is None or session.failed or not session.waveform:
        return term.bright_black("·" * columns)
    played, remaining = terminal_bars(session.waveform, session.progress, columns)
    return term.color_rgb(*ACCENT_RGB)(played) + term.bright_black(remaining)


def render_track(
    term: Terminal,
    track: Track,
    session: Optional[PlaybackSession],
    selected: bool,
    playing: bool,
) -> List[str]:
    marker = "▶" if playing else ("›" if selected else " ")
    title = term.bold(track.title) if selected else track.title
    pad = " " * max(0, 28 - len(track.title))
    line = f" {marker} {title}{pad}{track.artist[:24]:<24} {track.price_display:>8}  "
    badge = track_badge(track, session)
    if badge:
        line += term.bright_black(badge)

    columns = max(10, min(term.width - 6, 100))
    return [line, "   " + render_waveform_row(term, session, columns), ""]


def render_purchase_confirm(term: Terminal, track: Track) -> List[str]:
    """The purchase dialog shown before a charge is created."""
    width = max(24, min(term.width - 4, 48))
    rule = "─" * width
    lines = [
        term.color_rgb(*ACCENT_RGB)(f"┌{rule}┐"),
        "  " + term.bold("Purchase Track"),
        "",
        f"  {term.bold(track.title)}",
        f"  {track.artist}",
    ]
    if track.cover_art:
        lines.append(f"  {term.bright_black(track.cover_art)}")
    lines += [
        "",
        f"  Price: {term.bold(track.price_display)}",
        "",
        f"  {term.bright_black(CONFIRM_HELP)}",
        term.color_rgb(*ACCENT_RGB)(f"└{rule}┘"),
    ]
    return lines


def render_storefront(
    term: Terminal,
    state: PageState,
    store: StoreConfig,
    tracks: Sequence[Track],
    deck: PreviewDeck,
) -> List[str]:
    """
    Pure function: the storefront view as a list of lines.

    Args:
        term: blessed Terminal instance
        state: Current page state
        store: Artist and store labels
        tracks: Catalog in display order
        deck: Deck holding one session per previewable track
    """
    lines = render_header(term, store)
    if not tracks:
        lines.append(term.bright_black("No tracks in the catalog yet."))
    for index, track in enumerate(tracks):
        session = deck.session(track.id) if track.has_preview else None
        lines.extend(
            render_track(
                term,
                track,
                session,
                selected=index == state.selected,
                playing=deck.playing_id == track.id,
            )
        )
    if state.confirm_purchase and tracks:
        lines.extend(render_purchase_confirm(term, tracks[state.selected]))
    else:
        lines.append(term.bright_black(STOREFRONT_HELP))
    if state.status_message:
        lines.append(_status_color(term, state.status_level)(state.status_message))
    return lines


def render_verification(term: Terminal, loop: Optional[VerificationLoop]) -> List[str]:
    """Pure function: the post-checkout verification view."""
    if loop is None or loop.state is VerificationState.VERIFYING:
        lines = [term.bold("Verifying Your Purchase..."), "Please wait a moment."]
    elif loop.state is VerificationState.PENDING:
        lines = [
            term.bold("Waiting for Confirmation..."),
            loop.message or "",
            term.bright_black("Please keep this page open."),
            term.bright_black(f"Attempt {loop.attempt_count} of {loop.max_attempts}"),
        ]
    elif loop.state is VerificationState.SUCCESS:
        lines = [
            term.green(term.bold("Payment Confirmed!")),
            f'Thank you for your purchase. You can now download "{loop.track_name}". '
            "The link will expire shortly.",
            "",
            term.underline(loop.download_url or ""),
        ]
    else:
        lines = [
            term.red(term.bold("Verification Failed")),
            loop.error or "",
        ]
    return [""] + lines + ["", term.bright_black(VERIFICATION_HELP)]
