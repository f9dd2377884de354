"""Device Discovery Loop.

Keeps the device set fresh without user action. While no write is in
flight the loop enumerates immediately and then every ``interval``
seconds. Entering preparing/writing/verifying parks the loop; leaving
that set wakes it and it enumerates again straight away.

Enumeration failures are transient: the device set is emptied and the
failure logged, but the current selection is kept.
"""

import asyncio
import logging

from gosh_usb.backend.base import Backend, BackendError
from gosh_usb.state import actions
from gosh_usb.state.snapshot import AppState
from gosh_usb.state.store import Store

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 8.0


class DeviceDiscoveryLoop:
    """Background poller reconciling the device set with the backend."""

    def __init__(
        self,
        store: Store,
        backend: Backend,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.store = store
        self.backend = backend
        self.interval = interval
        self._wake = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._unsubscribe = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start polling. Must be called from a running event loop."""
        if self.running:
            return
        self._unsubscribe = self.store.subscribe(self._on_state_change)
        self._task = asyncio.create_task(self._run(), name="device-discovery")
        logger.info("Device discovery started (interval %.1fs)", self.interval)

    async def stop(self) -> None:
        """Stop polling and release the store subscription."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Device discovery stopped")

    async def refresh(self) -> bool:
        """Enumerate devices once and reconcile the selection.

        Returns:
            False if no request was issued because a write is in flight,
            True otherwise (even if the enumeration failed).
        """
        if self.store.state.is_writing:
            logger.debug("Skipping device enumeration while writing")
            return False

        self.store.dispatch(actions.DevicesLoading(True))
        try:
            devices = await self.backend.list_devices()
        except BackendError as e:
            logger.warning("Device enumeration failed: %s", e.message)
            if not self.store.state.is_writing:
                self.store.dispatch(actions.DevicesEnumerationFailed())
            return True
        finally:
            self.store.dispatch(actions.DevicesLoading(False))

        if self.store.state.is_writing:
            # A write started while the request was outstanding
            logger.debug("Discarding enumeration that finished after a write started")
            return True

        self.store.dispatch(actions.DevicesEnumerated(tuple(devices)))
        logger.debug("Enumerated %d device(s)", len(devices))
        return True

    def _on_state_change(self, old: AppState, new: AppState) -> None:
        if old.is_writing != new.is_writing:
            self._wake.set()

    async def _run(self) -> None:
        while True:
            if self.store.state.is_writing:
                self._wake.clear()
                await self._wake.wait()
                continue

            self._wake.clear()
            await self.refresh()
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass


__all__ = ["DEFAULT_POLL_INTERVAL", "DeviceDiscoveryLoop"]
