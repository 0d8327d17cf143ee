"""
Post-checkout verification loop.

Polls the verification endpoint with the stored charge code until the
purchase resolves to a download link or a terminal error. The loop owns its
attempt counter, at most one timer handle and at most one in-flight request.
"""

import asyncio
from enum import Enum
from typing import Callable, Optional

from loguru import logger

from ..errors import MissingChargeCode, NetworkError, VerificationTimeout
from .api import StorefrontApiClient, VerifyResponse
from .store import ChargeCodeStore

DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_MAX_ATTEMPTS = 24
DEFAULT_TRACK_NAME = "your track"

PENDING_MESSAGE = (
    "Your payment has been detected. We are waiting for the transaction "
    "to be confirmed on the blockchain. This can take a few moments."
)


class VerificationState(str, Enum):
    VERIFYING = "verifying"
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


def error_message(response: VerifyResponse) -> str:
    """Best available message for a non-success verification response."""
    if response.is_json:
        return str(
            response.payload.get("error")
            or f"Server responded with status: {response.status_code}"
        )
    logger.error(f"Server returned a non-JSON error response: {response.text[:500]}")
    return (
        "Could not verify purchase. The server returned an unexpected response. "
        "Please try again later or contact support. "
        f"(Status: {response.status_code})"
    )


class VerificationLoop:
    """Single-owner poll loop for one visit to the success route."""

    def __init__(
        self,
        client: StorefrontApiClient,
        store: ChargeCodeStore,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        on_change: Optional[Callable[["VerificationLoop"], None]] = None,
    ):
        self.client = client
        self.store = store
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.on_change = on_change

        self.state = VerificationState.VERIFYING
        self.attempt_count = 0
        self.download_url: Optional[str] = None
        self.track_name = DEFAULT_TRACK_NAME
        self.message: Optional[str] = None
        self.error: Optional[str] = None

        self._charge_code: Optional[str] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._request: Optional[asyncio.Task] = None
        self._done: Optional[asyncio.Event] = None
        self._cancelled = False

    @property
    def finished(self) -> bool:
        return self.state in (VerificationState.SUCCESS, VerificationState.ERROR)

    def start(self) -> None:
        """Begin verifying. Must be called from a running event loop."""
        self._done = asyncio.Event()
        self._charge_code = self.store.get()
        if not self._charge_code:
            # Nothing to verify, and nothing to clear
            self._fail(str(MissingChargeCode()), clear=False)
            return
        logger.info(f"Verifying charge {self._charge_code}")
        self._attempt()

    async def wait(self) -> VerificationState:
        """Start if needed, then resolve once the loop reaches SUCCESS or ERROR."""
        if self._done is None:
            self.start()
        await self._done.wait()
        return self.state

    def cancel(self) -> None:
        """Stop polling; used when the verification view goes away."""
        self._cancelled = True
        self._cancel_timer()
        if self._request is not None and not self._request.done():
            self._request.cancel()
        self._request = None
        if self._done is not None:
            self._done.set()

    # -- internals ---------------------------------------------------------

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule(self) -> None:
        # Cancel-then-reschedule keeps a single pending timer
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.poll_interval, self._attempt)

    def _attempt(self) -> None:
        self._timer = None
        if self._cancelled or self.finished:
            return
        if self.attempt_count >= self.max_attempts:
            self._fail(str(VerificationTimeout()))
            return
        if self._request is not None and not self._request.done():
            logger.debug("Verification request already in flight; skipping")
            return
        self.attempt_count += 1
        self._request = asyncio.ensure_future(self._poll_once())

    async def _poll_once(self) -> None:
        try:
            response = await asyncio.to_thread(self.client.verify_charge, self._charge_code)
        except NetworkError as e:
            if not self._cancelled:
                self._fail(str(e))
            return
        except Exception as e:
            logger.exception(f"Unexpected error while verifying charge {self._charge_code}")
            if not self._cancelled:
                self._fail(f"Could not verify purchase: {e}")
            return
        if self._cancelled:
            return
        try:
            self._handle(response)
        except Exception as e:
            logger.exception("Unexpected error while handling verification response")
            if not self.finished:
                self._fail(f"Could not verify purchase: {e}")
            self._done.set()

    def _handle(self, response: VerifyResponse) -> None:
        logger.debug(
            f"Verification attempt {self.attempt_count}/{self.max_attempts}: "
            f"status {response.status_code}"
        )
        if response.status_code == 202:
            self.message = (response.payload or {}).get("message") or PENDING_MESSAGE
            self._set_state(VerificationState.PENDING)
            self._schedule()
            return

        if 200 <= response.status_code < 300:
            url = (response.payload or {}).get("url") if response.is_json else None
            if url:
                self.download_url = url
                self.track_name = response.payload.get("trackName") or DEFAULT_TRACK_NAME
                self._clear_code()
                logger.info(f"Purchase verified: {self.track_name}")
                self._set_state(VerificationState.SUCCESS)
                self._done.set()
                return

        self._fail(error_message(response))

    def _fail(self, message: str, clear: bool = True) -> None:
        self._cancel_timer()
        self.error = message
        if clear:
            self._clear_code()
        logger.warning(f"Verification failed: {message}")
        self._set_state(VerificationState.ERROR)
        self._done.set()

    def _clear_code(self) -> None:
        try:
            self.store.clear()
        except OSError as e:
            logger.error(f"Could not clear stored charge code: {e}")

    def _set_state(self, state: VerificationState) -> None:
        self.state = state
        if self.on_change:
            self.on_change(self)
