"""Shared fixtures for preview engine tests: a fake audio output and canned audio."""

import threading
from decimal import Decimal
from pathlib import Path
from typing import List, Optional
from unittest.mock import Mock

import numpy as np
import pytest

from music_storefront.domain.catalog import Track
from music_storefront.domain.preview import DecodedAudio, Envelope, PlaybackSession


class FakeOutput:
    """Audio output whose clock the test moves by hand."""

    def __init__(self):
        self.loaded: Optional[Path] = None
        self.position: Optional[float] = None
        self.plays = 0
        self.stops = 0
        self.closed = False
        self.threads = set()

    def load(self, clip_path: Path) -> None:
        self.loaded = clip_path

    def play(self) -> None:
        self.threads.add(threading.get_ident())
        self.position = 0.0
        self.plays += 1

    def stop(self) -> None:
        self.threads.add(threading.get_ident())
        self.position = None
        self.stops += 1

    def clock(self) -> Optional[float]:
        self.threads.add(threading.get_ident())
        return self.position

    def is_idle(self) -> bool:
        return self.position is None

    def close(self) -> None:
        self.closed = True


def make_track(track_id: str, source: Optional[str] = "media/clip.mp3") -> Track:
    return Track(
        id=track_id,
        title=f"Track {track_id}",
        artist="Julio César THOR",
        price=Decimal("1.00"),
        file_key=f"{track_id}.mp3",
        audio_preview_source=source,
    )


@pytest.fixture
def decoded() -> DecodedAudio:
    # 40 seconds of a quiet ramp at a low sample rate
    samples = np.linspace(0, 0.5, 8000 * 40, dtype=np.float32).reshape(-1, 1)
    return DecodedAudio(samples=samples, sample_rate=8000)


@pytest.fixture
def audio_backend(monkeypatch, decoded):
    """Patch decoding and clip writing; returns the load_and_decode mock."""
    load = Mock(return_value=decoded)

    def fake_write_clip(samples, sample_rate, path):
        path.write_bytes(b"RIFF")
        return path

    monkeypatch.setattr("music_storefront.domain.preview.session.load_and_decode", load)
    monkeypatch.setattr("music_storefront.domain.preview.session.write_clip", fake_write_clip)
    return load


@pytest.fixture
def outputs() -> List[FakeOutput]:
    return []


@pytest.fixture
def make_session(outputs):
    def factory(track_id: str = "1", source: Optional[str] = "media/clip.mp3") -> PlaybackSession:
        def output_factory():
            output = FakeOutput()
            outputs.append(output)
            return output

        return PlaybackSession(
            make_track(track_id, source),
            output_factory,
            envelope=Envelope(),
            waveform_points=50,
            frame_interval=0.001,
        )

    return factory
