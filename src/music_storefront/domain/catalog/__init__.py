"""Catalog domain - static track records for the storefront."""

from .models import Track
from .catalog import load_catalog, find_track, track_from_dict

__all__ = ["Track", "load_catalog", "find_track", "track_from_dict"]
