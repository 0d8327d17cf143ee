"""
Page-level "now playing" register.

The deck is the only place that decides which track is audible. Sessions
ask for transitions through request_play / request_pause and never touch
each other.
"""

import asyncio
from typing import Dict, Iterable, List, Optional

from loguru import logger

from .session import PlaybackSession


class PreviewDeck:
    """Owns the sessions of one page and the id of the one allowed to play."""

    def __init__(self, sessions: Iterable[PlaybackSession] = ()):
        self.playing_id: Optional[str] = None
        # Bumped by every play/pause request; only the latest one may write
        # the register once its play() returns.
        self._generation = 0
        self._sessions: Dict[str, PlaybackSession] = {}
        for session in sessions:
            self.add(session)

    def add(self, session: PlaybackSession) -> None:
        session.on_finished = self.request_pause
        self._sessions[session.track_id] = session

    def session(self, track_id: str) -> PlaybackSession:
        return self._sessions[track_id]

    @property
    def sessions(self) -> List[PlaybackSession]:
        return list(self._sessions.values())

    def playing_sessions(self) -> List[PlaybackSession]:
        return [s for s in self._sessions.values() if s.is_playing]

    async def preload(self) -> None:
        """Mount-time load of every previewable track, concurrently."""
        await asyncio.gather(
            *(s.ensure_loaded() for s in self._sessions.values() if s.playable)
        )

    async def request_play(self, track_id: str) -> bool:
        """Make track_id the only audible preview, restarting it from zero."""
        session = self._sessions.get(track_id)
        if session is None or not session.playable:
            return False

        self._generation += 1
        generation = self._generation

        previous = self.playing_id
        if previous is not None and previous != track_id:
            # Stop the old preview before the new one can start
            self._sessions[previous].pause()
        self.playing_id = track_id

        started = await session.play()
        if generation != self._generation:
            # A newer request owns the register now
            return started
        self.playing_id = track_id if started else None
        if started:
            logger.info(f"Now playing preview: {session.track.title}")
        return started

    def request_pause(self, track_id: str) -> None:
        """Stop track_id; the register is cleared only if it was the playing one."""
        session = self._sessions.get(track_id)
        if session is not None:
            session.pause()
        if self.playing_id == track_id:
            self._generation += 1
            self.playing_id = None

    async def toggle(self, track_id: str) -> bool:
        """Play/pause button semantics. Returns True if the track is now playing."""
        if self.playing_id == track_id:
            self.request_pause(track_id)
            return False
        return await self.request_play(track_id)

    def close(self) -> None:
        """Dispose every session; called when the page goes away."""
        self._generation += 1
        self.playing_id = None
        for session in self._sessions.values():
            session.dispose()
