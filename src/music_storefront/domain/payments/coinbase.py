"""
Coinbase Commerce REST client.

Only the two calls the storefront needs: create a fixed-price charge and
fetch a charge by code.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests
from loguru import logger

from ..errors import UpstreamError

API_URL = "https://api.commerce.coinbase.com/charges"
API_VERSION = "2018-03-22"

# Timeline statuses that mean "keep waiting"
PENDING_STATUSES = {"NEW", "PENDING"}
COMPLETED_STATUS = "COMPLETED"


@dataclass
class Charge:
    code: str
    hosted_url: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    timeline: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def last_status(self) -> Optional[str]:
        """Status of the newest timeline entry."""
        if not self.timeline:
            return None
        return self.timeline[-1].get("status")

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Charge":
        return cls(
            code=data.get("code", ""),
            hosted_url=data.get("hosted_url"),
            metadata=data.get("metadata") or {},
            timeline=data.get("timeline") or [],
        )


class CommerceClient:
    def __init__(
        self,
        api_key: str,
        api_url: str = API_URL,
        api_version: str = API_VERSION,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {
            "Content-Type": "application/json",
            "X-CC-Api-Key": api_key,
            "X-CC-Version": api_version,
        }

    def _request(self, method: str, url: str, failure: str, **kwargs) -> Dict[str, Any]:
        try:
            response = self.session.request(
                method, url, headers=self.headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            logger.error(f"Coinbase Commerce request failed: {e}")
            raise UpstreamError(failure) from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.ok:
            logger.error(f"Coinbase API Error ({response.status_code}): {body or response.text[:500]}")
            message = failure
            error = body.get("error") if isinstance(body, dict) else None
            if isinstance(error, dict) and error.get("message"):
                message = error["message"]
            raise UpstreamError(message, status_code=response.status_code)

        if not isinstance(body, dict) or not isinstance(body.get("data"), dict):
            logger.error(f"Unexpected Coinbase response: {response.text[:500]}")
            raise UpstreamError(failure, status_code=response.status_code)
        return body["data"]

    def create_charge(
        self,
        track_id: str,
        track_name: str,
        price: str,
        file_key: str,
        redirect_url: str,
        currency: str = "USD",
    ) -> Charge:
        """Create a fixed-price charge whose metadata names the file to sign later."""
        payload = {
            "name": track_name,
            "description": f"Purchase of the track: {track_name}",
            "local_price": {"amount": price, "currency": currency},
            "pricing_type": "fixed_price",
            "metadata": {
                "trackId": track_id,
                "trackName": track_name,
                "fileKey": file_key,
            },
            "redirect_url": redirect_url,
        }
        data = self._request(
            "POST",
            self.api_url,
            "Failed to create Coinbase Commerce charge.",
            json=payload,
        )
        charge = Charge.from_api(data)
        logger.info(f"Created charge {charge.code} for '{track_name}' ({price} {currency})")
        return charge

    def get_charge(self, code: str) -> Charge:
        data = self._request(
            "GET",
            f"{self.api_url}/{code}",
            "Could not retrieve charge details from Coinbase.",
        )
        return Charge.from_api(data)
