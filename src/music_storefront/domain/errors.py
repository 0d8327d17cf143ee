"""Storefront error taxonomy.

No error here is fatal to the whole page: a failing track degrades to
non-interactive and a failing purchase re-enables the buy action.
"""

from typing import Optional


class StorefrontError(Exception):
    """Base class for storefront errors. str(error) is safe to show to the user."""


class ValidationError(StorefrontError):
    """Input rejected locally, before any network call. Never retried."""


class MissingParameters(ValidationError):
    """A purchase was requested without all required track fields."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing required parameters: {', '.join(missing)}")


class MissingChargeCode(ValidationError):
    """The success route was opened without a persisted charge code."""

    def __init__(self) -> None:
        super().__init__("No payment charge code found. Could not verify purchase.")


class NetworkError(StorefrontError):
    """A remote endpoint could not be reached."""


class FetchError(NetworkError):
    """An audio asset could not be fetched, or its body was empty."""


class DecodeError(StorefrontError):
    """An audio payload could not be decoded into samples."""


class UpstreamError(StorefrontError):
    """The payment backend answered with a non-success or unexpected response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class VerificationTimeout(StorefrontError):
    """Verification attempts were exhausted without a final answer."""

    def __init__(self) -> None:
        super().__init__(
            "Verification timed out. Please check your wallet for transaction "
            "status and contact support if payment was sent."
        )
