import asyncio
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from loguru import logger

from music_storefront.core.config import Config
from music_storefront.domain.catalog import Track, find_track
from music_storefront.domain.errors import DecodeError, FetchError
from music_storefront.domain.preview import (
    WaveformCache,
    generate_waveform,
    layout_bars,
    load_and_decode,
    to_svg,
)

from ..deps import get_catalog, get_config, get_waveform_cache
from ..schemas import TrackInfo, WaveformData

router = APIRouter()


def to_track_info(track: Track) -> TrackInfo:
    """Pure function - catalog record to API shape."""
    return TrackInfo(
        id=track.id,
        title=track.title,
        artist=track.artist,
        price=track.price_display,
        cover_art=track.cover_art,
        has_preview=track.has_preview,
    )


async def load_peaks(
    track_id: str, catalog: List[Track], config: Config, cache: WaveformCache
) -> List[float]:
    """Cached normalized waveform for a catalog track, generated on first request."""
    track = find_track(catalog, track_id)
    if track is None:
        raise HTTPException(404, "Track not found")
    if not track.has_preview:
        raise HTTPException(404, "Track has no preview")

    points = config.preview.waveform_points
    peaks = cache.load(track.id, track.audio_preview_source, points)
    if peaks is None:
        logger.info(f"Generating waveform for track {track_id}")
        try:
            decoded = await asyncio.to_thread(load_and_decode, track.audio_preview_source)
        except FetchError as e:
            raise HTTPException(502, f"Could not fetch preview audio: {e}")
        except DecodeError as e:
            raise HTTPException(422, f"Could not decode preview audio: {e}")
        peaks = generate_waveform(decoded.channel(0), points)
        cache.save(track.id, track.audio_preview_source, peaks)
    return peaks


@router.get("/tracks", response_model=List[TrackInfo], response_model_by_alias=True)
async def list_tracks(catalog: List[Track] = Depends(get_catalog)):
    return [to_track_info(track) for track in catalog]


@router.get("/tracks/{track_id}/waveform", response_model=WaveformData)
async def get_waveform(
    track_id: str,
    catalog: List[Track] = Depends(get_catalog),
    config: Config = Depends(get_config),
    cache: WaveformCache = Depends(get_waveform_cache),
):
    peaks = await load_peaks(track_id, catalog, config, cache)
    return WaveformData(track_id=track_id, points=len(peaks), peaks=peaks)


@router.get("/tracks/{track_id}/waveform.svg")
async def get_waveform_svg(
    track_id: str,
    width: int = Query(600, ge=10, le=4000),
    height: int = Query(80, ge=10, le=1000),
    progress: float = Query(0.0, ge=0.0, le=1.0),
    pixel_ratio: float = Query(1.0, gt=0.0, le=4.0, alias="pixelRatio"),
    catalog: List[Track] = Depends(get_catalog),
    config: Config = Depends(get_config),
    cache: WaveformCache = Depends(get_waveform_cache),
):
    """The waveform drawn as bars, played part in the accent gradient."""
    peaks = await load_peaks(track_id, catalog, config, cache)
    frame = layout_bars(peaks, progress, width, height, pixel_ratio=pixel_ratio)
    return Response(content=to_svg(frame), media_type="image/svg+xml")
