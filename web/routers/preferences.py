"""Preference endpoints.

Changes are applied to the state store; the application persists them.
Mode and verify-after-write changes are rejected while a write is in
progress.
"""

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from gosh_usb.core import AppContext
from gosh_usb.state import AppState, actions
from gosh_usb.types import AppMode, Theme
from web.deps import conflict, get_context

router = APIRouter()


class PreferencesUpdate(BaseModel):
    """Request body for preference changes; omitted fields are unchanged."""

    theme: Theme | None = None
    verify_after_write: bool | None = None
    mode: AppMode | None = None
    auto_eject: bool | None = None
    show_notification: bool | None = None


def _preferences_response(state: AppState) -> dict[str, Any]:
    return {
        name: value.value if isinstance(value, (Theme, AppMode)) else value
        for name, value in asdict(state.preferences).items()
    }


@router.get("")
def get_preferences(ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    """Get current preferences."""
    return _preferences_response(ctx.state)


@router.patch("")
def update_preferences(
    request: PreferencesUpdate, ctx: AppContext = Depends(get_context)
) -> dict[str, Any]:
    """Change preferences.

    Raises:
        HTTPException: If mode or verify-after-write change while writing.
    """
    locked = request.mode is not None or request.verify_after_write is not None
    if locked and ctx.state.is_writing:
        raise conflict(
            "write_in_progress",
            "Mode and verify-after-write cannot change while writing",
        )

    if request.theme is not None:
        ctx.store.dispatch(actions.ThemeChanged(request.theme))
    if request.verify_after_write is not None:
        ctx.store.dispatch(actions.VerifyAfterWriteChanged(request.verify_after_write))
    if request.mode is not None:
        ctx.store.dispatch(actions.ModeChanged(request.mode))
    if request.auto_eject is not None:
        ctx.store.dispatch(actions.AutoEjectChanged(request.auto_eject))
    if request.show_notification is not None:
        ctx.store.dispatch(actions.ShowNotificationChanged(request.show_notification))
    return _preferences_response(ctx.state)
