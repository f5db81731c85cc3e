"""
Preview orchestration.

Every mutation schedules a preview; the orchestrator debounces, runs the
URL generation in a cancellable asyncio task and reports the result:

- a newer request cancels the in-flight one (the cancellation is silent)
- each request gets a monotonically increasing id; results and failures of
  a superseded request are dropped
- an unchanged URL is not re-emitted, loading is cleared instead
- callers can await ``wait_for_load()`` until the consumer reports the
  preview as displayed via ``notify_loaded()``
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from pathforge.config import Settings, settings as default_settings
from pathforge.exceptions import PreviewError

from .scheduler import Debouncer, Scheduler

logger = logging.getLogger(__name__)


class PreviewOrchestrator:
    """
    Debounced, cancellable preview URL generation.

    Args:
        scheduler: Timer source for the debounce window
        build_url: Coroutine function producing the preview URL for the
            current state; it is called when the window elapses, so it sees
            the latest state
        on_update: Called with each new URL
        on_error: Called with a PreviewError when generation fails
        on_loading: Called with the loading flag when it changes
    """

    def __init__(
        self,
        scheduler: Scheduler,
        build_url: Callable[[], Awaitable[str]],
        *,
        on_update: Optional[Callable[[str], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        on_loading: Optional[Callable[[bool], None]] = None,
        debounce_ms: Optional[float] = None,
        settings: Optional[Settings] = None,
    ):
        cfg = settings or default_settings
        self._build_url = build_url
        self.on_update = on_update
        self.on_error = on_error
        self.on_loading = on_loading
        self._debouncer = Debouncer(
            scheduler,
            cfg.PREVIEW_DEBOUNCE_MS if debounce_ms is None else debounce_ms,
            self._start_request,
        )
        self._task: Optional[asyncio.Task] = None
        self._request_id = 0
        self._last_url: Optional[str] = None
        self._loading = False
        self._load_waiters: list[asyncio.Future] = []

    @property
    def last_url(self) -> Optional[str]:
        return self._last_url

    @property
    def request_id(self) -> int:
        return self._request_id

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def is_scheduled(self) -> bool:
        return self._debouncer.pending

    def schedule(self) -> None:
        """Request a preview after the debounce window."""
        if not self._debouncer.pending:
            self._set_loading(True)
        self._debouncer.schedule()

    def flush(self) -> None:
        """Start a pending request immediately."""
        self._debouncer.flush()

    def reset(self) -> None:
        """Forget the last emitted URL so the next result is always emitted."""
        self._last_url = None

    async def wait_idle(self) -> None:
        """Wait until the in-flight request (if any) has finished."""
        task = self._task
        if task is not None and not task.done():
            try:
                await task
            except asyncio.CancelledError:
                pass

    def notify_loaded(self) -> None:
        """Report that the consumer has displayed the current preview."""
        self._set_loading(False)
        waiters, self._load_waiters = self._load_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    async def wait_for_load(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the next ``notify_loaded`` call.

        Args:
            timeout: Seconds to wait; None waits indefinitely

        Returns:
            True if the preview was reported loaded, False on timeout
        """
        waiter = asyncio.get_running_loop().create_future()
        self._load_waiters.append(waiter)
        try:
            await asyncio.wait_for(waiter, timeout)
            return True
        except asyncio.TimeoutError:
            return False
        finally:
            if waiter in self._load_waiters:
                self._load_waiters.remove(waiter)

    def cancel(self) -> None:
        """Cancel the debounce timer, the in-flight request and all waiters."""
        self._debouncer.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        waiters, self._load_waiters = self._load_waiters, []
        for waiter in waiters:
            waiter.cancel()

    def _start_request(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._request_id += 1
        request_id = self._request_id
        logger.debug("Starting preview request %d", request_id)
        self._task = asyncio.get_running_loop().create_task(self._run(request_id))

    async def _run(self, request_id: int) -> None:
        try:
            url = await self._build_url()
        except asyncio.CancelledError:
            logger.debug("Preview request %d superseded", request_id)
            return
        except Exception as e:
            if request_id != self._request_id:
                logger.debug("Ignoring failure of superseded preview request %d: %s", request_id, e)
                return
            logger.warning("Preview request %d failed: %s", request_id, e)
            self._set_loading(False)
            if self.on_error is not None:
                error = e
                if not isinstance(error, PreviewError):
                    error = PreviewError(f"Preview generation failed: {e}")
                    error.__cause__ = e
                self.on_error(error)
            return

        if request_id != self._request_id:
            return
        if url == self._last_url:
            # Already displayed; no reload will report completion
            self._set_loading(False)
            return
        self._last_url = url
        if self.on_update is not None:
            self.on_update(url)

    def _set_loading(self, loading: bool) -> None:
        self._loading = loading
        if self.on_loading is not None:
            self.on_loading(loading)
