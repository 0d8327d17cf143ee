"""
Catalog domain models.

Contains the static track records shown on the storefront page.
"""

from decimal import Decimal
from typing import NamedTuple, Optional


class Track(NamedTuple):
    """Represents a purchasable track.

    file_key must match the object-storage key exactly. It is passed through
    the charge metadata unmodified because the download step has no other
    way to recover which file was bought.
    """
    id: str
    title: str
    artist: str
    price: Decimal
    file_key: str
    cover_art: Optional[str] = None
    audio_preview_source: Optional[str] = None  # URL or path of the short preview clip

    @property
    def price_display(self) -> str:
        """Price formatted for display, e.g. "$1.00"."""
        return f"${self.price:.2f}"

    @property
    def has_preview(self) -> bool:
        return bool(self.audio_preview_source)
