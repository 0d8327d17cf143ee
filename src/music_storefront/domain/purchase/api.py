"""
HTTP client for the checkout backend.

Wraps the two endpoints the purchase flow depends on:
charge creation and charge verification.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from loguru import logger

from ..errors import NetworkError, UpstreamError

CREATE_CHARGE_PATH = "/create-coinbase-charge"
VERIFY_CHARGE_PATH = "/get-download-link"


@dataclass
class ChargeCreated:
    hosted_url: str
    code: str


@dataclass
class VerifyResponse:
    """Raw verification answer; interpreting it is the verification loop's job."""

    status_code: int
    content_type: str
    payload: Optional[Dict[str, Any]]
    text: str = ""

    @property
    def is_json(self) -> bool:
        return "application/json" in self.content_type.lower() and self.payload is not None


def _json_or_none(response: requests.Response) -> Optional[Dict[str, Any]]:
    content_type = response.headers.get("Content-Type", "")
    if "application/json" not in content_type.lower():
        return None
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


class StorefrontApiClient:
    """Thin requests wrapper around the checkout backend."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, path: str, body: Dict[str, Any]) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            return self.session.post(url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Request to {url} failed: {e}")
            raise NetworkError(
                "Could not reach the payment server. Please check your connection and try again."
            ) from e

    def create_charge(
        self, track_name: str, track_id: str, price: str, file_key: str
    ) -> ChargeCreated:
        """Create a hosted checkout charge.

        Raises:
            NetworkError: The backend could not be reached
            UpstreamError: Non-2xx answer, malformed body or no checkout URL
        """
        response = self._post(
            CREATE_CHARGE_PATH,
            {
                "trackName": track_name,
                "trackId": track_id,
                "price": price,
                "fileKey": file_key,
            },
        )
        data = _json_or_none(response)

        if not response.ok:
            if data is None:
                message = (
                    "An unexpected server error occurred. Please try again later. "
                    f"(Status: {response.status_code})"
                )
            elif data.get("error"):
                message = str(data["error"])
            else:
                message = f"An unexpected error occurred. (Status: {response.status_code})"
            logger.error(f"Charge creation failed ({response.status_code}): {message}")
            raise UpstreamError(message, status_code=response.status_code)

        hosted_url = (data or {}).get("hosted_url")
        code = (data or {}).get("code")
        if not hosted_url or not code:
            logger.error(f"Charge creation returned no checkout URL: {response.text[:500]}")
            raise UpstreamError(
                "Could not retrieve checkout URL.", status_code=response.status_code
            )

        return ChargeCreated(hosted_url=hosted_url, code=code)

    def verify_charge(self, charge_code: str) -> VerifyResponse:
        """Ask the backend whether a charge has been paid.

        Raises:
            NetworkError: The backend could not be reached
        """
        response = self._post(VERIFY_CHARGE_PATH, {"chargeCode": charge_code})
        return VerifyResponse(
            status_code=response.status_code,
            content_type=response.headers.get("Content-Type", ""),
            payload=_json_or_none(response),
            text=response.text,
        )
