"""Fetching and decoding of preview audio."""

import io
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import requests
from loguru import logger
from pydub import AudioSegment

from ..errors import DecodeError, FetchError

MAX_AUDIO_SIZE_MB = 100  # Prevent OOM
FETCH_TIMEOUT = 30


@dataclass
class DecodedAudio:
    """Decoded PCM audio.

    samples is float32, shaped (frames, channels), scaled to [-1, 1].
    """

    samples: np.ndarray
    sample_rate: int

    @property
    def channels(self) -> int:
        return self.samples.shape[1]

    @property
    def duration(self) -> float:
        return self.samples.shape[0] / self.sample_rate if self.sample_rate else 0.0

    def channel(self, index: int = 0) -> np.ndarray:
        return self.samples[:, index]


def is_remote(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def fetch_bytes(source: str, timeout: float = FETCH_TIMEOUT) -> bytes:
    """Fetch raw audio bytes from a URL or a local path.

    Raises:
        FetchError: On non-2xx status, connection failure, missing file or empty body
    """
    if is_remote(source):
        try:
            response = requests.get(source, timeout=timeout)
        except requests.RequestException as e:
            raise FetchError(f"Failed to fetch audio: {e}") from e
        if not response.ok:
            raise FetchError(
                f"Failed to fetch audio: {response.status_code} {response.reason}"
            )
        data = response.content
    else:
        path = Path(source).expanduser()
        try:
            data = path.read_bytes()
        except OSError as e:
            raise FetchError(f"Failed to read audio file {path}: {e}") from e

    if not data:
        raise FetchError("Received empty audio file.")

    size_mb = len(data) / (1024 * 1024)
    if size_mb > MAX_AUDIO_SIZE_MB:
        raise FetchError(f"File too large: {size_mb:.1f}MB > {MAX_AUDIO_SIZE_MB}MB")

    return data


def decode_bytes(data: bytes) -> DecodedAudio:
    """Decode an encoded audio payload into float samples.

    Raises:
        DecodeError: If the payload cannot be decoded
    """
    try:
        audio = AudioSegment.from_file(io.BytesIO(data))
    except FileNotFoundError as e:
        if "ffmpeg" in str(e).lower():
            raise DecodeError("ffmpeg not found. Install: apt install ffmpeg") from e
        raise DecodeError(f"Failed to decode audio: {type(e).__name__}") from e
    except Exception as e:
        raise DecodeError(f"Failed to decode audio: {type(e).__name__}") from e

    if audio.channels < 1 or audio.frame_rate <= 0:
        raise DecodeError("Decoded audio has no channels")

    raw = np.array(audio.get_array_of_samples(), dtype=np.float32)
    full_scale = float(1 << (8 * audio.sample_width - 1))
    samples = (raw / full_scale).reshape(-1, audio.channels)

    return DecodedAudio(samples=samples, sample_rate=audio.frame_rate)


def load_and_decode(source: str) -> DecodedAudio:
    """Fetch and decode a preview source.

    Raises:
        FetchError: If the bytes cannot be obtained
        DecodeError: If the bytes are not decodable audio
    """
    logger.debug(f"Loading preview audio: {source}")
    decoded = decode_bytes(fetch_bytes(source))
    logger.debug(
        f"Decoded {source}: {decoded.duration:.1f}s, "
        f"{decoded.channels}ch @ {decoded.sample_rate}Hz"
    )
    return decoded
