"""Waveform generation and caching for preview visualization."""

import hashlib
import json
from pathlib import Path
from typing import List, Optional

import numpy as np
from loguru import logger

DEFAULT_POINTS = 200


def generate_waveform(channel_data: np.ndarray, target_points: int = DEFAULT_POINTS) -> List[float]:
    """Reduce one channel of samples to target_points normalized magnitudes.

    The channel is split into equal blocks of len // target_points samples
    (the remainder is ignored), each block is reduced to its mean absolute
    value, and everything is divided by the largest block. Silence, or a
    channel shorter than target_points, yields a flat line of zeros.
    """
    if target_points <= 0:
        raise ValueError("target_points must be positive")

    samples = np.asarray(channel_data, dtype=np.float64)
    block_size = len(samples) // target_points
    if block_size == 0:
        return [0.0] * target_points

    # Vectorized block means
    blocks = np.abs(samples[: block_size * target_points]).reshape(target_points, block_size)
    means = np.nan_to_num(blocks.mean(axis=1))

    peak = means.max()
    if peak == 0:
        return [0.0] * target_points

    return np.clip(means / peak, 0.0, 1.0).tolist()


class WaveformCache:
    """On-disk cache of normalized waveforms, one JSON file per track and source."""

    def __init__(self, cache_dir: Path):
        self.cache_dir = cache_dir

    def get_waveform_path(self, track_id: str, source: str, points: int) -> Path:
        """Get the cache path for a track's waveform data."""
        digest = hashlib.sha1(f"{source}|{points}".encode("utf-8")).hexdigest()[:12]
        safe_id = "".join(c if c.isalnum() or c in "-_" else "_" for c in track_id)
        return self.cache_dir / f"{safe_id}-{digest}.json"

    def load(self, track_id: str, source: str, points: int) -> Optional[List[float]]:
        path = self.get_waveform_path(track_id, source, points)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError):
            logger.warning(f"Corrupted waveform cache, regenerating: {path}")
            return None

        peaks = data.get("peaks") if isinstance(data, dict) else None
        if not isinstance(peaks, list) or len(peaks) != points:
            return None
        logger.debug(f"Waveform cache hit for track {track_id}")
        return [float(p) for p in peaks]

    def save(self, track_id: str, source: str, waveform: List[float]) -> None:
        path = self.get_waveform_path(track_id, source, len(waveform))
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump({"version": 1, "source": source, "peaks": waveform}, f)
        except OSError as e:
            # Cache is an optimisation only
            logger.warning(f"Could not write waveform cache {path}: {e}")
