"""Terminal storefront page built on blessed."""

from .page import StorefrontPage, build_api_client, build_deck, get_charge_store
from .state import PageState

__all__ = [
    "PageState",
    "StorefrontPage",
    "build_api_client",
    "build_deck",
    "get_charge_store",
]
