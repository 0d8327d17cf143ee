"""Waveform rendering: bar layout shared by the SVG and terminal renderers."""

import math
from dataclasses import dataclass, field
from typing import List, Sequence

ACCENT_START = "#f97316"
ACCENT_END = "#ea580c"
DIM_COLOR = "rgba(255, 255, 255, 0.3)"
BLOCKS = " ▁▂▃▄▅▆▇█"


@dataclass(frozen=True)
class Bar:
    x: float
    y: float
    width: float
    height: float
    played: bool


@dataclass
class WaveformFrame:
    """One drawn frame, in CSS units, plus the backing pixel size."""

    width: float
    height: float
    pixel_ratio: float
    progress: float
    bars: List[Bar] = field(default_factory=list)

    @property
    def canvas_width(self) -> int:
        return int(self.width * self.pixel_ratio)

    @property
    def canvas_height(self) -> int:
        return int(self.height * self.pixel_ratio)


def clamp_progress(progress: float) -> float:
    if math.isnan(progress):
        return 0.0
    return min(max(progress, 0.0), 1.0)


def sample_bars(waveform: Sequence[float], count: int) -> List[float]:
    """Nearest-index downsample of the waveform to count bars."""
    if count <= 0 or not waveform:
        return []
    step = len(waveform) / count
    return [waveform[min(int(i * step), len(waveform) - 1)] for i in range(count)]


def layout_bars(
    waveform: Sequence[float],
    progress: float,
    width: float,
    height: float,
    pixel_ratio: float = 1.0,
    bar_width: float = 3,
    bar_gap: float = 2,
) -> WaveformFrame:
    """Lay out vertically centered bars for a container of width x height.

    Bars whose left edge lies before width * progress are marked played.
    """
    progress = clamp_progress(progress)
    frame = WaveformFrame(
        width=width, height=height, pixel_ratio=pixel_ratio or 1.0, progress=progress
    )

    total_bar_width = bar_width + bar_gap
    count = int(width // total_bar_width) if total_bar_width > 0 else 0
    values = sample_bars(waveform, count)
    if not values:
        return frame

    start_offset = (width - count * total_bar_width) / 2
    middle = height / 2
    cutoff = width * progress

    for index, value in enumerate(values):
        bar_height = max(2.0, value * height * 0.95)
        x = start_offset + index * total_bar_width
        frame.bars.append(
            Bar(
                x=x,
                y=middle - bar_height / 2,
                width=bar_width,
                height=bar_height,
                played=progress > 0 and x < cutoff,
            )
        )
    return frame


def to_svg(frame: WaveformFrame) -> str:
    """Serialize a frame as SVG sized for the device pixel ratio."""
    ratio = frame.pixel_ratio
    parts = [
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{frame.canvas_width}" '
        f'height="{frame.canvas_height}" viewBox="0 0 {frame.width:g} {frame.height:g}">',
        f'<defs><linearGradient id="played" x1="0" y1="0" x2="{frame.width:g}" y2="0" '
        'gradientUnits="userSpaceOnUse">'
        f'<stop offset="0" stop-color="{ACCENT_START}"/>'
        f'<stop offset="1" stop-color="{ACCENT_END}"/>'
        "</linearGradient></defs>",
    ]
    for bar in frame.bars:
        fill = "url(#played)" if bar.played else DIM_COLOR
        # Snap to device pixels so edges stay crisp
        x = round(bar.x * ratio) / ratio
        y = round(bar.y * ratio) / ratio
        parts.append(
            f'<rect x="{x:g}" y="{y:g}" width="{bar.width:g}" '
            f'height="{bar.height:g}" fill="{fill}"/>'
        )
    parts.append("</svg>")
    return "".join(parts)


def terminal_bars(waveform: Sequence[float], progress: float, columns: int) -> tuple[str, str]:
    """Render one terminal row of block characters, one column per bar.

    Returns (played, remaining) so the caller can color the two halves.
    """
    progress = clamp_progress(progress)
    values = sample_bars(waveform, columns)
    top = len(BLOCKS) - 1
    # Same floor as the pixel layout: silent bars still show as a thin line
    line = "".join(BLOCKS[max(1, round(v * top))] for v in values)
    played = sum(1 for i in range(len(values)) if progress > 0 and i < columns * progress)
    return line[:played], line[played:]
