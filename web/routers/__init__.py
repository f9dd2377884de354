"""Router modules for FastAPI web API."""

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

__all__ = [
    "checksum",
    "config",
    "devices",
    "health",
    "image",
    "preferences",
    "state",
    "write",
]
