"""Preview gain envelope: fade in, hold, fade out, hard stop."""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class Envelope:
    """Volume-over-time shape of a preview.

    Gain ramps linearly 0 -> 1 over fade_in, holds at 1, then ramps
    linearly 1 -> 0 over fade_out ending exactly at duration. Nothing is
    audible at or after duration.
    """

    duration: float = 30.0
    fade_in: float = 2.0
    fade_out: float = 3.0

    def __post_init__(self) -> None:
        if self.duration <= 0:
            raise ValueError("duration must be positive")
        if self.fade_in < 0 or self.fade_out < 0:
            raise ValueError("fade windows must not be negative")
        if self.fade_in + self.fade_out > self.duration:
            raise ValueError("fade windows exceed the preview duration")

    @property
    def fade_out_start(self) -> float:
        return self.duration - self.fade_out

    def gain_at(self, t: float) -> float:
        """Gain in [0, 1] at t seconds after playback start."""
        if t <= 0 or t >= self.duration:
            return 0.0
        if t < self.fade_in:
            return t / self.fade_in
        if t > self.fade_out_start:
            return (self.duration - t) / self.fade_out
        return 1.0

    def gains(self, n_frames: int, sample_rate: int) -> np.ndarray:
        """Vectorized gain curve for the first n_frames of a clip."""
        t = np.arange(n_frames, dtype=np.float64) / sample_rate
        gain = np.ones(n_frames, dtype=np.float64)
        if self.fade_in > 0:
            gain = np.minimum(gain, t / self.fade_in)
        if self.fade_out > 0:
            gain = np.minimum(gain, (self.duration - t) / self.fade_out)
        gain[t >= self.duration] = 0.0
        return np.clip(gain, 0.0, 1.0)

    def apply(self, samples: np.ndarray, sample_rate: int) -> np.ndarray:
        """Render the bounded, enveloped clip.

        samples is shaped (frames, channels). The result is truncated at
        duration regardless of the asset's length.
        """
        limit = int(round(self.duration * sample_rate))
        clip = samples[:limit]
        gain = self.gains(clip.shape[0], sample_rate).astype(np.float32)
        return clip * gain[:, np.newaxis]

    def progress_at(self, elapsed: float) -> float:
        """Elapsed time as a fraction of the preview, clamped to [0, 1]."""
        return min(max(elapsed / self.duration, 0.0), 1.0)
