"""Application context dependencies for FastAPI.

Provides the :class:`~gosh_usb.core.AppContext` created by the
application lifespan, and the pending-confirmation handle, to route
handlers via FastAPI dependency injection.
"""

from typing import Any

from fastapi import HTTPException, Request
from fastapi import status as http_status

from gosh_usb.core import AppContext
from web.confirmation import PendingConfirmation


def get_context(request: Request) -> AppContext:
    """Get the application context from app state.

    Args:
        request: FastAPI request object.

    Returns:
        Application context owning the state store.
    """
    ctx: Any = request.app.state.context
    return ctx  # type: ignore[no-any-return]


def get_confirmation(request: Request) -> PendingConfirmation:
    """Get the pending-confirmation handle from app state."""
    confirmation: Any = request.app.state.confirmation
    return confirmation  # type: ignore[no-any-return]


def conflict(code: str, message: str) -> HTTPException:
    """Build a 409 error for a request that does not fit the current state."""
    return HTTPException(
        status_code=http_status.HTTP_409_CONFLICT,
        detail={"code": code, "message": message},
    )


__all__ = ["conflict", "get_confirmation", "get_context"]
