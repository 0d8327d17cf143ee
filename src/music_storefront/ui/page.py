"""
Full-screen storefront page.

The page owns the preview deck (and with it the "now playing" register),
the purchase flow and, on the success route, the verification loop. All of
it runs on one asyncio loop; the terminal is polled without blocking once
per frame.
"""

import asyncio
import sys
import webbrowser
from typing import Callable, List, Optional, Sequence, Set

from blessed import Terminal
from loguru import logger

from ..core.config import Config, get_data_dir
from ..core.output import clear_page_mode, set_page_mode
from ..domain.catalog import Track
from ..domain.errors import StorefrontError
from ..domain.preview import (
    MPV_MISSING,
    AudioOutput,
    Envelope,
    MpvOutput,
    PlaybackSession,
    PreviewDeck,
    WaveformCache,
    check_mpv_available,
)
from ..domain.purchase import (
    ChargeCodeStore,
    PurchaseFlow,
    StorefrontApiClient,
    VerificationLoop,
    View,
    select_view,
)
from .keyboard import handle_key
from .rendering import render_storefront, render_verification
from .state import PageState, set_status


def get_charge_store() -> ChargeCodeStore:
    return ChargeCodeStore(get_data_dir() / "client_state.json")


def build_deck(
    config: Config,
    tracks: Sequence[Track],
    output_factory: Optional[Callable[[], AudioOutput]] = None,
) -> PreviewDeck:
    """One session per previewable track, all sharing the preview settings."""
    preview = config.preview
    envelope = Envelope(duration=preview.duration, fade_in=preview.fade_in, fade_out=preview.fade_out)
    cache = WaveformCache(get_data_dir() / "waveforms")
    factory = output_factory or (lambda: MpvOutput(preview.mpv_path, volume=preview.volume))

    return PreviewDeck(
        PlaybackSession(
            track,
            factory,
            envelope=envelope,
            waveform_points=preview.waveform_points,
            frame_interval=1 / preview.frame_rate,
            cache=cache,
        )
        for track in tracks
        if track.has_preview
    )


def build_api_client(config: Config) -> StorefrontApiClient:
    return StorefrontApiClient(
        config.purchase.api_base_url, timeout=config.purchase.request_timeout
    )


class StorefrontPage:
    def __init__(
        self,
        config: Config,
        tracks: Sequence[Track],
        path: str = "/",
        term: Optional[Terminal] = None,
        deck: Optional[PreviewDeck] = None,
        client: Optional[StorefrontApiClient] = None,
        store: Optional[ChargeCodeStore] = None,
    ):
        self.config = config
        self.tracks = list(tracks)
        self.term = term or Terminal()
        # An injected deck brings its own outputs
        self.audio_available = deck is not None or check_mpv_available(config.preview.mpv_path)
        self.deck = deck or build_deck(config, self.tracks)
        self.client = client or build_api_client(config)
        self.store = store or get_charge_store()
        self.flow = PurchaseFlow(self.client, self.store)
        self.verification: Optional[VerificationLoop] = None
        self.state = PageState(view=select_view(path))
        self.frame_interval = 1 / config.preview.frame_rate

        self._tasks: Set[asyncio.Task] = set()
        self._last_frame: List[str] = []
        self._last_size = (0, 0)

    @property
    def selected_track(self) -> Optional[Track]:
        if not self.tracks:
            return None
        return self.tracks[self.state.selected]

    # -- background work ---------------------------------------------------

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _status(self, message: str, level: str = "info") -> None:
        self.state = set_status(self.state, message, level)

    async def _toggle(self, track: Track) -> None:
        if not track.has_preview:
            self._status(f"'{track.title}' has no preview", "warning")
            return
        if not self.audio_available:
            self._status(MPV_MISSING.format(mpv=self.config.preview.mpv_path), "error")
            return
        await self.deck.toggle(track.id)
        session = self.deck.session(track.id)
        if session.failed:
            self._status(f"Preview unavailable for '{track.title}'", "error")

    async def _buy(self, track: Track) -> None:
        if self.flow.busy:
            return
        self._status(f"Creating checkout for '{track.title}'...")
        try:
            url = await asyncio.to_thread(self.flow.initiate_track, track)
        except StorefrontError as e:
            self._status(str(e), "error")
            return
        # Stop any preview while the visitor is away at checkout
        if self.deck.playing_id is not None:
            self.deck.request_pause(self.deck.playing_id)
        self._status(f"Complete payment in your browser, then press v. {url}")

    def _start_verification(self) -> None:
        self._stop_verification()
        self.verification = VerificationLoop(
            self.client,
            self.store,
            poll_interval=self.config.purchase.poll_interval,
            max_attempts=self.config.purchase.max_attempts,
        )
        self.verification.start()
        self.flow.reset()

    def _stop_verification(self) -> None:
        if self.verification is not None:
            self.verification.cancel()
            self.verification = None

    async def _run_action(self, action: Optional[str]) -> None:
        track = self.selected_track
        if action == "toggle" and track is not None:
            self._spawn(self._toggle(track))
        elif action == "buy" and track is not None:
            self._spawn(self._buy(track))
        elif action == "verify":
            self._start_verification()
        elif action == "leave_verification":
            self._stop_verification()
        elif action == "open_download":
            if self.verification is not None and self.verification.download_url:
                webbrowser.open(self.verification.download_url)

    # -- drawing -----------------------------------------------------------

    def render(self) -> List[str]:
        if self.state.view is View.VERIFICATION:
            return render_verification(self.term, self.verification)
        return render_storefront(
            self.term, self.state, self.config.store, self.tracks, self.deck
        )

    def draw(self) -> None:
        """Redraw changed lines; a resize forces a full redraw."""
        term = self.term
        size = (term.width, term.height)
        lines = self.render()[: term.height]
        full = size != self._last_size

        if full:
            sys.stdout.write(term.home + term.clear)
        for y, line in enumerate(lines):
            if full or y >= len(self._last_frame) or self._last_frame[y] != line:
                sys.stdout.write(term.move_xy(0, y) + line + term.clear_eol)
        for y in range(len(lines), min(len(self._last_frame), term.height)):
            sys.stdout.write(term.move_xy(0, y) + term.clear_eol)
        sys.stdout.flush()

        self._last_frame = lines
        self._last_size = size

    # -- main loop ---------------------------------------------------------

    async def run_async(self) -> None:
        preload = asyncio.create_task(self.deck.preload())
        if self.state.view is View.VERIFICATION:
            self._start_verification()
        try:
            while not self.state.should_quit:
                key = self.term.inkey(timeout=0)
                if key:
                    self.state, action = handle_key(
                        self.state, key, len(self.tracks), purchase_busy=self.flow.busy
                    )
                    await self._run_action(action)
                self.draw()
                await asyncio.sleep(self.frame_interval)
        finally:
            self._stop_verification()
            preload.cancel()
            for task in list(self._tasks):
                task.cancel()
            self.deck.close()

    def run(self) -> None:
        set_page_mode(lambda message, level: self._status(message, level))
        try:
            with self.term.fullscreen(), self.term.cbreak(), self.term.hidden_cursor():
                asyncio.run(self.run_async())
        except KeyboardInterrupt:
            # Clean exit on Ctrl+C
            pass
        finally:
            clear_page_mode()
            logger.info("Storefront page closed")
