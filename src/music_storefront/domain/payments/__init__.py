"""Server-side payment collaborators: Coinbase Commerce charges and R2 download links."""

from .coinbase import (
    API_URL,
    API_VERSION,
    COMPLETED_STATUS,
    PENDING_STATUSES,
    Charge,
    CommerceClient,
)
from .downloads import DownloadSigner, sanitize_endpoint

__all__ = [
    "API_URL",
    "API_VERSION",
    "COMPLETED_STATUS",
    "PENDING_STATUSES",
    "Charge",
    "CommerceClient",
    "DownloadSigner",
    "sanitize_endpoint",
]
