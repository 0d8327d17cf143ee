"""Preview domain - bounded, enveloped track previews with a live waveform.

This domain handles:
- Fetching and decoding preview audio
- Waveform extraction and caching
- The fade-in / hold / fade-out envelope
- Per-track playback sessions over an mpv output
- The page-level "now playing" register
- Waveform bar layout for SVG and terminal rendering
"""

from .decode import DecodedAudio, load_and_decode, fetch_bytes, decode_bytes
from .waveform import generate_waveform, WaveformCache, DEFAULT_POINTS
from .envelope import Envelope
from .output import MPV_MISSING, AudioOutput, MpvOutput, check_mpv_available, write_clip
from .session import PlaybackSession, TransportState
from .deck import PreviewDeck
from .render import Bar, WaveformFrame, layout_bars, to_svg, terminal_bars

__all__ = [
    "DecodedAudio",
    "load_and_decode",
    "fetch_bytes",
    "decode_bytes",
    "generate_waveform",
    "WaveformCache",
    "DEFAULT_POINTS",
    "Envelope",
    "AudioOutput",
    "MpvOutput",
    "MPV_MISSING",
    "check_mpv_available",
    "write_clip",
    "PlaybackSession",
    "TransportState",
    "PreviewDeck",
    "Bar",
    "WaveformFrame",
    "layout_bars",
    "to_svg",
    "terminal_bars",
]
