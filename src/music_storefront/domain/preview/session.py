"""
Per-track preview playback session.

A session owns everything one track needs to preview itself: the decoded
audio, the memoized waveform, the rendered clip, the audio output and the
animation task. Nothing in here knows about other tracks; page-wide
exclusivity is the deck's job.
"""

import asyncio
import os
import tempfile
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Optional

from loguru import logger

from ..catalog.models import Track
from ..errors import DecodeError, FetchError
from .decode import DecodedAudio, load_and_decode
from .envelope import Envelope
from .output import AudioOutput, write_clip
from .waveform import DEFAULT_POINTS, WaveformCache, generate_waveform

ProgressCallback = Callable[[str, float], None]
FinishedCallback = Callable[[str], None]


class TransportState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"


class PlaybackSession:
    """Owned resource bundle for one track's preview.

    Public surface: play / pause / seek_to_zero / dispose, plus
    ensure_loaded for mount-time preloading.
    """

    def __init__(
        self,
        track: Track,
        output_factory: Callable[[], AudioOutput],
        envelope: Optional[Envelope] = None,
        waveform_points: int = DEFAULT_POINTS,
        frame_interval: float = 1 / 30,
        cache: Optional[WaveformCache] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_finished: Optional[FinishedCallback] = None,
    ):
        self.track = track
        self.envelope = envelope or Envelope()
        self.waveform_points = waveform_points
        self.frame_interval = frame_interval
        self.cache = cache
        self.on_progress = on_progress
        self.on_finished = on_finished

        self.state = TransportState.IDLE
        self.progress = 0.0
        self.started_at: Optional[float] = None
        self.decoded: Optional[DecodedAudio] = None
        self.waveform: Optional[List[float]] = None
        self.failed = False
        self.error: Optional[str] = None

        self._output_factory = output_factory
        self._output: Optional[AudioOutput] = None
        # Output commands run in order on one worker thread, off the event loop
        self._commands: Optional[ThreadPoolExecutor] = None
        self._clip_path: Optional[Path] = None
        self._load_task: Optional[asyncio.Task] = None
        self._animation_task: Optional[asyncio.Task] = None
        self._seen_running = False
        # Bumped by every play/pause/dispose; a pending play only starts if
        # nothing superseded it while it was loading.
        self._generation = 0
        self._disposed = False

    # -- status ------------------------------------------------------------

    @property
    def track_id(self) -> str:
        return self.track.id

    @property
    def is_playing(self) -> bool:
        return self.state is TransportState.PLAYING

    @property
    def is_loading(self) -> bool:
        """True only while no waveform exists yet and a load is in flight."""
        return (
            self.waveform is None
            and self._load_task is not None
            and not self._load_task.done()
        )

    @property
    def playable(self) -> bool:
        return self.track.has_preview and not self.failed and not self._disposed

    # -- loading -----------------------------------------------------------

    async def ensure_loaded(self) -> bool:
        """Fetch, decode and derive the waveform once; later calls reuse it.

        Concurrent callers share the same in-flight load. Returns False if
        the track cannot be previewed.
        """
        if not self.playable:
            return False
        if self.decoded is not None and self._clip_path is not None:
            return True
        if self._load_task is None:
            self._load_task = asyncio.create_task(self._load(self.track.audio_preview_source))
        task = self._load_task
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                # The load itself was abandoned (dispose or source change)
                return False
            raise
        finally:
            if self._load_task is task and task.done():
                self._load_task = None

    async def _load(self, source: str) -> bool:
        if self.state is TransportState.IDLE:
            self.state = TransportState.LOADING
        try:
            decoded = await asyncio.to_thread(load_and_decode, source)

            waveform = None
            if self.cache is not None:
                waveform = self.cache.load(self.track.id, source, self.waveform_points)
            if waveform is None:
                waveform = await asyncio.to_thread(
                    generate_waveform, decoded.channel(0), self.waveform_points
                )
                if self.cache is not None:
                    self.cache.save(self.track.id, source, waveform)

            clip = self.envelope.apply(decoded.samples, decoded.sample_rate)
            fd, clip_name = tempfile.mkstemp(prefix="storefront-preview-", suffix=".wav")
            os.close(fd)
            clip_path = await asyncio.to_thread(
                write_clip, clip, decoded.sample_rate, Path(clip_name)
            )
        except (FetchError, DecodeError, OSError) as e:
            logger.error(f"Error processing audio file for track '{self.track.title}': {e}")
            self.failed = True
            self.error = str(e)
            if self.state is TransportState.LOADING:
                self.state = TransportState.IDLE
            return False

        if self._disposed or source != self.track.audio_preview_source:
            # Unmounted or re-pointed while loading
            clip_path.unlink(missing_ok=True)
            return False

        self.decoded = decoded
        self.waveform = waveform
        self._clip_path = clip_path
        if self.state is TransportState.LOADING:
            self.state = TransportState.IDLE
        logger.info(f"Preview ready for '{self.track.title}' ({decoded.duration:.1f}s source)")
        return True

    # -- transport ---------------------------------------------------------

    async def play(self) -> bool:
        """Start the preview from time zero. Returns False if it did not start."""
        self._generation += 1
        generation = self._generation

        if not await self.ensure_loaded():
            return False
        if generation != self._generation or self._disposed:
            logger.debug(f"Play of '{self.track.title}' superseded while loading")
            return False

        if self._output is None:
            output = self._output_factory()
            commands = ThreadPoolExecutor(max_workers=1, thread_name_prefix="preview-output")
            try:
                await asyncio.wrap_future(commands.submit(output.load, self._clip_path))
            except RuntimeError as e:
                logger.error(f"Audio output unavailable for '{self.track.title}': {e}")
                commands.shutdown(wait=False)
                output.close()
                return False
            if self._output is not None or self._disposed:
                # Another play created the output first, or the page went away
                commands.shutdown(wait=False)
                output.close()
            else:
                self._output, self._commands = output, commands
            if generation != self._generation or self._disposed:
                return False

        return await self._start(generation)

    async def _call(self, fn: Callable[..., Any], *args: Any) -> Any:
        return await asyncio.wrap_future(self._commands.submit(fn, *args))

    async def _start(self, generation: int) -> bool:
        self._cancel_animation()
        output = self._output
        await self._call(output.play)
        if generation != self._generation or self._output is not output:
            # Paused while starting; the stop is already queued behind play
            return False
        now = await self._call(output.clock)
        if generation != self._generation or self._output is not output:
            return False

        self.started_at = now or 0.0
        self._seen_running = False
        self.state = TransportState.PLAYING
        self._set_progress(0.0)
        self._animation_task = asyncio.create_task(self._animate(generation, output))
        logger.debug(f"Preview started: '{self.track.title}'")
        return True

    def pause(self) -> None:
        """Stop audible output now and reset progress. Previews do not resume."""
        self._generation += 1
        self._stop()

    def seek_to_zero(self) -> None:
        self.started_at = None
        self._set_progress(0.0)

    def _stop(self) -> None:
        """The single stopped transition shared by pause and natural end."""
        self._cancel_animation()
        if self._output is not None:
            self._commands.submit(self._output.stop)
        if self.state is TransportState.PLAYING:
            self.state = TransportState.PAUSED
        self.seek_to_zero()

    def _finish(self) -> None:
        self._generation += 1
        self._stop()
        logger.debug(f"Preview finished: '{self.track.title}'")
        if self.on_finished:
            self.on_finished(self.track.id)

    def _cancel_animation(self) -> None:
        task = self._animation_task
        self._animation_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    def _set_progress(self, progress: float) -> None:
        self.progress = progress
        if self.on_progress:
            self.on_progress(self.track.id, progress)

    def _current(self, generation: int) -> bool:
        return generation == self._generation and self.state is TransportState.PLAYING

    async def _animate(self, generation: int, output: AudioOutput) -> None:
        """Per-frame progress loop driven by the output's own clock."""
        while self._current(generation):
            now = await self._call(output.clock)
            if not self._current(generation):
                return
            if now is None:
                # Not running yet, or the clip already ran out
                if self._seen_running and await self._call(output.is_idle):
                    if self._current(generation):
                        self._finish()
                    return
            else:
                self._seen_running = True
                if self.started_at is None:
                    self.started_at = now
                progress = self.envelope.progress_at(now - self.started_at)
                self._set_progress(progress)
                if progress >= 1.0:
                    self._finish()
                    return
            await asyncio.sleep(self.frame_interval)

    # -- lifecycle ---------------------------------------------------------

    def _release(self) -> None:
        self._generation += 1
        self._cancel_animation()
        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()
        self._load_task = None
        if self._output is not None:
            # Closing ends playback; queued commands drain as no-ops
            self._commands.shutdown(wait=False)
            self._output.close()
            self._output = None
            self._commands = None
        if self._clip_path is not None:
            self._clip_path.unlink(missing_ok=True)
            self._clip_path = None
        self.decoded = None
        self.waveform = None
        self.state = TransportState.IDLE
        self.progress = 0.0
        self.started_at = None

    def set_track(self, track: Track) -> None:
        """Point the session at new track data; a changed source drops all audio state."""
        if track.audio_preview_source != self.track.audio_preview_source:
            self._release()
            self.failed = False
            self.error = None
        self.track = track

    def dispose(self) -> None:
        """Release decoded audio, the output and the clip. Safe to call twice."""
        if self._disposed:
            return
        self._release()
        self._disposed = True
        logger.debug(f"Session disposed: '{self.track.title}'")
