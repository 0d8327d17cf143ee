"""
Purchase initiation: Idle -> Processing -> Redirected.

Creates a hosted checkout charge for one track, persists the returned charge
code and hands the visitor off to the payment provider.
"""

import webbrowser
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional

from loguru import logger

from ..catalog.models import Track
from ..errors import MissingParameters, StorefrontError
from .api import StorefrontApiClient
from .store import ChargeCodeStore


class PurchaseState(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    REDIRECTED = "redirected"


def _format_price(price) -> str:
    if isinstance(price, Decimal):
        return f"{price:.2f}"
    return str(price).strip() if price is not None else ""


def validate_purchase(
    track_id: Optional[str],
    track_name: Optional[str],
    price: Optional[str],
    file_key: Optional[str],
) -> None:
    """Raise MissingParameters naming every absent or blank field."""
    fields = {
        "trackId": track_id,
        "trackName": track_name,
        "price": price,
        "fileKey": file_key,
    }
    missing = [name for name, value in fields.items() if not value or not str(value).strip()]
    if missing:
        raise MissingParameters(missing)


class PurchaseFlow:
    """One buy button's worth of state."""

    def __init__(
        self,
        client: StorefrontApiClient,
        store: ChargeCodeStore,
        open_url: Callable[[str], bool] = webbrowser.open,
    ):
        self.client = client
        self.store = store
        self.open_url = open_url
        self.state = PurchaseState.IDLE
        self.error: Optional[str] = None
        self.checkout_url: Optional[str] = None

    @property
    def busy(self) -> bool:
        return self.state is PurchaseState.PROCESSING

    def initiate(
        self,
        track_id: Optional[str],
        track_name: Optional[str],
        price: Optional[str],
        file_key: Optional[str],
    ) -> str:
        """Create the charge and redirect to the hosted checkout.

        Returns the checkout URL. On any failure the flow is back in IDLE
        with a readable error and the exception is re-raised.

        Raises:
            MissingParameters: A required field is absent; no request is made
            NetworkError: The backend could not be reached
            UpstreamError: The backend rejected the charge
        """
        if self.busy:
            raise StorefrontError("A purchase is already being processed.")

        self.error = None
        try:
            validate_purchase(track_id, track_name, price, file_key)
        except MissingParameters as e:
            self.error = str(e)
            raise

        self.state = PurchaseState.PROCESSING
        try:
            charge = self.client.create_charge(
                track_name=track_name, track_id=track_id, price=price, file_key=file_key
            )
        except StorefrontError as e:
            self.error = str(e)
            self.state = PurchaseState.IDLE
            raise

        try:
            self.store.set(charge.code)
        except OSError as e:
            logger.error(f"Could not save charge code {charge.code}: {e}")
            self.error = (
                "Could not save your purchase details on this device. "
                "Please check the data directory and try again."
            )
            self.state = PurchaseState.IDLE
            raise StorefrontError(self.error) from e

        self.checkout_url = charge.hosted_url
        self.state = PurchaseState.REDIRECTED
        logger.info(f"Charge {charge.code} created for '{track_name}'")

        try:
            opened = self.open_url(charge.hosted_url)
        except webbrowser.Error as e:
            logger.debug(f"Failed to open browser: {e}")
            opened = False
        if not opened:
            logger.warning(f"Could not open browser for checkout URL {charge.hosted_url}")
        return charge.hosted_url

    def initiate_track(self, track: Track) -> str:
        return self.initiate(
            track_id=track.id,
            track_name=track.title,
            price=_format_price(track.price),
            file_key=track.file_key,
        )

    def reset(self) -> None:
        """Re-enable the buy action after a redirect was abandoned."""
        self.state = PurchaseState.IDLE
        self.checkout_url = None
