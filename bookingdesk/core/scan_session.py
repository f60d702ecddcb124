"""Background QR scan loop for the check-in desk."""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable

from bookingdesk.config import settings
from bookingdesk.schemas.verification import VerificationVerdict
from bookingdesk.services.qr_verification_service import QrVerificationService

logger = logging.getLogger(__name__)

VerdictCallback = Callable[[VerificationVerdict], Awaitable[None] | None]
FrameReader = Callable[[], str | None | Awaitable[str | None]]


async def poll_frames(read: FrameReader, interval: float | None = None) -> AsyncIterator[str]:
    """Yield whatever ``read`` returns, polling every ``interval`` seconds."""
    delay = settings.scan_poll_interval_seconds if interval is None else interval
    while True:
        value = read()
        if asyncio.iscoroutine(value):
            value = await value
        if value:
            yield value
        await asyncio.sleep(delay)


class ScanSession:
    """Feeds scanned strings from a frame source into the verifier.

    The loop runs as its own task and must be stopped when the check-in view
    is dismissed; :meth:`stop` cancels and awaits it so no scan task
    outlives the session.
    """

    def __init__(
        self,
        verifier: QrVerificationService,
        selected_booking_id: int | None,
        stop_on_valid: bool = True,
    ) -> None:
        self.verifier = verifier
        self.selected_booking_id = selected_booking_id
        self.stop_on_valid = stop_on_valid
        self.last_verdict: VerificationVerdict | None = None
        self._task: asyncio.Task | None = None
        self._last_token: str | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, frames: AsyncIterator[str], on_verdict: VerdictCallback | None = None) -> asyncio.Task:
        """Start consuming ``frames`` in the background."""
        if self.running:
            raise RuntimeError("Scan session already running")
        self._last_token = None
        self._task = asyncio.create_task(self._run(frames, on_verdict))
        return self._task

    async def stop(self) -> None:
        """Cancel the scan loop and wait for it to exit. Safe to call twice."""
        task, self._task = self._task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(f"Scan session for booking {self.selected_booking_id} ended with error: {e}")
        logger.info("Scan session stopped")

    async def wait(self) -> VerificationVerdict | None:
        """Wait for the loop to finish on its own."""
        if self._task is not None:
            await self._task
        return self.last_verdict

    async def __aenter__(self) -> "ScanSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def _run(self, frames: AsyncIterator[str], on_verdict: VerdictCallback | None) -> None:
        logger.info(f"Scan session started for booking {self.selected_booking_id}")
        async for raw in frames:
            token = (raw or "").strip()
            if not token or token == self._last_token:
                continue
            self._last_token = token

            verdict = await self.verifier.verify_raw(token, self.selected_booking_id)
            self.last_verdict = verdict
            if on_verdict is not None:
                try:
                    maybe = on_verdict(verdict)
                    if asyncio.iscoroutine(maybe):
                        await maybe
                except Exception as e:
                    logger.error(f"Scan verdict callback failed: {e}")

            if verdict.valid and self.stop_on_valid:
                logger.info(f"Valid token for booking {verdict.booking_id}; ending scan")
                return
