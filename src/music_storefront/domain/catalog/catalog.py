"""
Catalog loading from the [[tracks]] tables of config.toml.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger

from .models import Track

REQUIRED_FIELDS = ("id", "title", "artist", "price", "file_key")


def track_from_dict(data: Dict[str, Any]) -> Track:
    """Build a Track from a config table.

    Raises:
        ValueError: If a required field is missing or the price is not a number
    """
    missing = [name for name in REQUIRED_FIELDS if data.get(name) in (None, "")]
    if missing:
        raise ValueError(f"Track entry missing fields: {', '.join(missing)}")

    try:
        price = Decimal(str(data["price"]))
    except InvalidOperation as e:
        raise ValueError(f"Invalid price for track {data['id']!r}: {data['price']!r}") from e

    return Track(
        id=str(data["id"]),
        title=data["title"],
        artist=data["artist"],
        price=price,
        file_key=data["file_key"],
        cover_art=data.get("cover_art"),
        audio_preview_source=data.get("audio_preview_source") or None,
    )


def load_catalog(entries: Iterable[Dict[str, Any]]) -> List[Track]:
    """Load the catalog, skipping (and logging) malformed entries.

    Duplicate ids keep the first entry.
    """
    tracks: List[Track] = []
    seen: set[str] = set()
    for index, entry in enumerate(entries):
        try:
            track = track_from_dict(entry)
        except ValueError as e:
            logger.warning(f"Skipping catalog entry #{index}: {e}")
            continue
        if track.id in seen:
            logger.warning(f"Skipping duplicate catalog id {track.id!r}")
            continue
        seen.add(track.id)
        tracks.append(track)

    logger.debug(f"Loaded {len(tracks)} catalog tracks")
    return tracks


def find_track(tracks: Iterable[Track], track_id: str) -> Optional[Track]:
    """Look up a track by id."""
    for track in tracks:
        if track.id == track_id:
            return track
    return None
