"""FastAPI application factory and main app.

This module creates the FastAPI application with all routers and
dependency injection configured. Web routes are thin proxies to the
:class:`~gosh_usb.core.AppContext` created in the lifespan.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from gosh_usb import __version__
from gosh_usb.backend import Backend, LocalBackend
from gosh_usb.config import Settings, get_settings
from gosh_usb.core import AppContext
from gosh_usb.preferences import PreferenceStore
from web.confirmation import PendingConfirmation
from web.routers import (
    checksum,
    config,
    devices,
    health,
    image,
    preferences,
    state,
    write,
)


def create_app(
    backend: Backend | None = None,
    *,
    settings: Settings | None = None,
    preference_store: PreferenceStore | None = None,
    poll: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        backend: Backend to drive; a :class:`LocalBackend` if omitted.
        settings: Application settings; loaded from the environment if omitted.
        preference_store: Preference persistence; opened from settings if omitted.
        poll: Run the device discovery loop while the app is up.

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Own the application context for the lifetime of the server."""
        effective = settings if settings is not None else get_settings()
        confirmation = PendingConfirmation()
        ctx = AppContext(
            backend if backend is not None else LocalBackend(settings=effective),
            confirmation,
            settings=effective,
            preference_store=preference_store,
            poll=poll,
        )
        app.state.context = ctx
        app.state.confirmation = confirmation
        app.state.write_task = None
        async with ctx:
            yield
            # Unblock a write still waiting for its confirmation
            confirmation.answer(False)
            task: asyncio.Task[object] | None = app.state.write_task
            if task is not None and not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

    application = FastAPI(
        title="Gosh USB Creator API",
        description="HTTP API for selecting images and devices and writing "
        "images to removable drives",
        version=__version__,
        lifespan=lifespan,
    )

    # Include routers
    application.include_router(health.router, tags=["health"])
    application.include_router(config.router, prefix="/config", tags=["config"])
    application.include_router(state.router, prefix="/state", tags=["state"])
    application.include_router(image.router, prefix="/image", tags=["image"])
    application.include_router(devices.router, prefix="/devices", tags=["devices"])
    application.include_router(checksum.router, prefix="/checksum", tags=["checksum"])
    application.include_router(write.router, prefix="/write", tags=["write"])
    application.include_router(
        preferences.router, prefix="/preferences", tags=["preferences"]
    )

    return application


# Create the default application instance
app = create_app()
