"""Application context.

:class:`AppContext` is the single owner of the store and every component
that reads or mutates it. Components receive the store explicitly; there
is no module-level state. Use it as an async context manager so that
background activities (device polling, validation requests, preference
sync) are always torn down, whatever the exit path::

    async with AppContext(backend, confirm=ask_user) as ctx:
        await ctx.selector.select_image("/tmp/debian.iso")
        await ctx.orchestrator.request_write()
"""

import logging
from types import TracebackType

from gosh_usb.backend.base import Backend
from gosh_usb.config import Settings, get_settings
from gosh_usb.core.checksum import ChecksumVerifier
from gosh_usb.core.discovery import DeviceDiscoveryLoop
from gosh_usb.core.orchestrator import Confirm, Notifier, WriteOrchestrator
from gosh_usb.core.selection import ImageSelector, ValidationGate
from gosh_usb.db import create_all_tables, get_engine, get_session_factory
from gosh_usb.preferences.store import PreferenceStore, PreferencesSync, ThemeApplier
from gosh_usb.state.snapshot import AppState
from gosh_usb.state.store import Store

logger = logging.getLogger(__name__)


def open_preference_store(settings: Settings) -> PreferenceStore:
    """Create the preference tables if needed and return a store over them."""
    engine = get_engine(settings.db_url)
    create_all_tables(engine)
    return PreferenceStore(get_session_factory(engine))


class AppContext:
    """Owns the state store and the components built around it.

    Args:
        backend: Backend performing device and image operations.
        confirm: Async callable answering the destructive-write prompt.
        settings: Application settings; loaded from the environment if omitted.
        preference_store: Preference persistence; opened from
            ``settings.db_url`` if omitted.
        notifier: Optional callable showing post-write notifications.
        apply_theme: Optional callable applying the theme preference.
        poll: Run the device discovery loop in the background.
    """

    def __init__(
        self,
        backend: Backend,
        confirm: Confirm,
        *,
        settings: Settings | None = None,
        preference_store: PreferenceStore | None = None,
        notifier: Notifier | None = None,
        apply_theme: ThemeApplier | None = None,
        poll: bool = True,
    ) -> None:
        self.settings = settings if settings is not None else get_settings()
        self.backend = backend
        self.preference_store = (
            preference_store
            if preference_store is not None
            else open_preference_store(self.settings)
        )
        self.poll = poll

        self.store = Store(AppState.initial(self.preference_store.load()))
        self.discovery = DeviceDiscoveryLoop(
            self.store, backend, interval=self.settings.poll_interval
        )
        self.selector = ImageSelector(self.store, backend)
        self.validation = ValidationGate(self.store, backend)
        self.checksum = ChecksumVerifier(self.store, backend)
        self.orchestrator = WriteOrchestrator(
            self.store, backend, confirm=confirm, notifier=notifier
        )
        self.preferences_sync = PreferencesSync(
            self.store, self.preference_store, apply_theme=apply_theme
        )
        self._started = False

    @property
    def state(self) -> AppState:
        return self.store.state

    async def start(self) -> None:
        """Start background components. Requires a running event loop."""
        if self._started:
            return
        self.preferences_sync.start()
        self.validation.start()
        if self.poll:
            self.discovery.start()
        self._started = True
        logger.debug("Application context started")

    async def close(self) -> None:
        """Stop background components and release their subscriptions."""
        if not self._started:
            return
        await self.discovery.stop()
        await self.validation.close()
        self.preferences_sync.stop()
        self._started = False
        logger.debug("Application context closed")

    async def __aenter__(self) -> "AppContext":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()


__all__ = ["AppContext", "open_preference_store"]
