"""
Purchase and post-checkout verification.

PurchaseFlow creates a hosted checkout charge and redirects the visitor;
VerificationLoop polls for the signed download link once they return.
"""

from .api import ChargeCreated, StorefrontApiClient, VerifyResponse
from .callback import wait_for_redirect
from .checkout import PurchaseFlow, PurchaseState, validate_purchase
from .routes import View, select_view
from .store import CHARGE_CODE_KEY, ChargeCodeStore
from .verification import VerificationLoop, VerificationState

__all__ = [
    "CHARGE_CODE_KEY",
    "ChargeCodeStore",
    "ChargeCreated",
    "PurchaseFlow",
    "PurchaseState",
    "StorefrontApiClient",
    "VerificationLoop",
    "VerificationState",
    "VerifyResponse",
    "View",
    "select_view",
    "validate_purchase",
    "wait_for_redirect",
]
