"""
Audio output for previews: MPV integration with JSON IPC.

Each track session owns one output (one mpv process and socket) for its
lifetime and must close it on dispose.
"""

import json
import os
import shutil
import socket
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Any, Optional, Protocol

import numpy as np
from loguru import logger
from pydub import AudioSegment

SOCKET_TIMEOUT = 5.0
IPC_TIMEOUT = 2.0

MPV_MISSING = "mpv not found ('{mpv}'). Install mpv to play previews."


class AudioOutput(Protocol):
    """What a playback session needs from an audio engine."""

    def load(self, clip_path: Path) -> None:
        """Prepare a rendered clip for playback (does not start it)."""

    def play(self) -> None:
        """Start the loaded clip from time zero."""

    def stop(self) -> None:
        """Silence output immediately."""

    def clock(self) -> Optional[float]:
        """Current time in seconds on the engine's own clock, or None if not running."""

    def is_idle(self) -> bool:
        """True when nothing is playing (e.g. the clip reached its end)."""

    def close(self) -> None:
        """Release every OS resource held by the output."""


def write_clip(samples: np.ndarray, sample_rate: int, path: Path) -> Path:
    """Write float samples shaped (frames, channels) as 16-bit WAV."""
    pcm = (np.clip(samples, -1.0, 1.0) * 32767).astype("<i2")
    segment = AudioSegment(
        data=pcm.tobytes(),
        sample_width=2,
        frame_rate=sample_rate,
        channels=samples.shape[1],
    )
    segment.export(str(path), format="wav")
    return path


def check_mpv_available(mpv_path: str = "mpv") -> bool:
    """Check if MPV is available on the system."""
    return shutil.which(mpv_path) is not None


class MpvOutput:
    """One idle mpv process driven over its JSON IPC socket."""

    def __init__(self, mpv_path: str = "mpv", volume: int = 80):
        self.mpv_path = mpv_path
        self.volume = volume
        self.process: Optional[subprocess.Popen] = None
        self.socket_path: Optional[str] = None
        self.clip_path: Optional[Path] = None
        self.closed = False

    def _start(self) -> None:
        """Start MPV with JSON IPC."""
        if self.closed:
            raise RuntimeError("Output is closed")
        temp_dir = Path(tempfile.gettempdir())
        self.socket_path = str(temp_dir / f"storefront-mpv-{os.getpid()}-{id(self)}")

        if os.path.exists(self.socket_path):
            os.unlink(self.socket_path)

        cmd = [
            self.mpv_path,
            "--idle=yes",
            "--no-video",
            "--no-terminal",
            f"--input-ipc-server={self.socket_path}",
            f"--volume={self.volume}",
            "--keep-open=no",
            "--load-scripts=no",
        ]
        logger.debug(f"Starting MPV for preview with socket: {self.socket_path}")

        try:
            self.process = subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
            )
        except OSError as e:
            raise RuntimeError(f"Failed to start MPV: {e}") from e

        start_time = time.monotonic()
        while not os.path.exists(self.socket_path):
            if time.monotonic() - start_time > SOCKET_TIMEOUT:
                self.close()
                raise RuntimeError(f"MPV socket creation timeout after {SOCKET_TIMEOUT}s")
            time.sleep(0.05)

    def _is_running(self) -> bool:
        return (
            self.process is not None
            and self.process.poll() is None
            and self.socket_path is not None
            and os.path.exists(self.socket_path)
        )

    def _send(self, command: list[Any]) -> Optional[dict[str, Any]]:
        """Send one JSON IPC command and return the decoded reply."""
        if not self._is_running():
            return None
        try:
            with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
                sock.settimeout(IPC_TIMEOUT)
                sock.connect(self.socket_path)
                sock.sendall((json.dumps({"command": command}) + "\n").encode("utf-8"))
                response = sock.recv(4096).decode("utf-8")
        except OSError as e:
            logger.debug(f"MPV IPC error for {command[0]}: {e}")
            return None

        # mpv may interleave event lines; the reply is the one carrying "error"
        for line in response.splitlines():
            try:
                data = json.loads(line)
            except json.JSONDecodeError:
                continue
            if "error" in data:
                return data
        return None

    def _get_property(self, name: str) -> Any:
        reply = self._send(["get_property", name])
        if reply and reply.get("error") == "success":
            return reply.get("data")
        return None

    def load(self, clip_path: Path) -> None:
        if not self._is_running():
            self._start()
        self.clip_path = clip_path

    def play(self) -> None:
        if self.closed:
            return
        if self.clip_path is None:
            raise RuntimeError("No clip loaded")
        if not self._is_running():
            self._start()
        self._send(["loadfile", str(self.clip_path), "replace"])
        self._send(["set_property", "pause", False])

    def stop(self) -> None:
        self._send(["stop"])

    def clock(self) -> Optional[float]:
        # Position within the current clip; restarts at 0 on every play()
        position = self._get_property("time-pos")
        return float(position) if position is not None else None

    def is_idle(self) -> bool:
        idle = self._get_property("idle-active")
        return idle is None or bool(idle)

    def close(self) -> None:
        """Stop MPV process and cleanup."""
        self.closed = True
        if self.process:
            try:
                self.process.kill()
                self.process.wait(timeout=2.0)
            except (OSError, subprocess.TimeoutExpired):
                pass  # Process already terminated or couldn't be killed
            self.process = None

        if self.socket_path and os.path.exists(self.socket_path):
            try:
                os.unlink(self.socket_path)
            except OSError:
                pass
        self.socket_path = None
