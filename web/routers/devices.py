"""Device endpoints.

- GET /devices - Current device set
- POST /devices/refresh - Enumerate devices now
- PUT /devices/selected - Select (or deselect) the destination device
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status
from pydantic import BaseModel

from gosh_usb.core import AppContext
from gosh_usb.state import AppState, actions
from web.deps import conflict, get_context

router = APIRouter()


class DeviceSelection(BaseModel):
    """Request body for device selection; null path deselects."""

    path: str | None


def _devices_response(state: AppState) -> dict[str, Any]:
    return {
        "devices": [d.model_dump(mode="json") for d in state.devices],
        "devices_loading": state.devices_loading,
        "selected_device": (
            state.selected_device.model_dump(mode="json")
            if state.selected_device
            else None
        ),
    }


@router.get("")
def list_devices(ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    """Get the latest enumerated devices and the selection."""
    return _devices_response(ctx.state)


@router.post("/refresh")
async def refresh_devices(ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    """Enumerate devices now.

    Raises:
        HTTPException: If a write is in progress.
    """
    if not await ctx.discovery.refresh():
        raise conflict("write_in_progress", "Cannot refresh devices while writing")
    return _devices_response(ctx.state)


@router.put("/selected")
def select_device(
    request: DeviceSelection, ctx: AppContext = Depends(get_context)
) -> dict[str, Any]:
    """Select the destination device.

    Raises:
        HTTPException: If a write is in progress or the device is unknown.
    """
    state = ctx.state
    if state.is_writing:
        raise conflict("write_in_progress", "Cannot change device while writing")

    if request.path is None:
        ctx.store.dispatch(actions.DeviceSelected(None))
        return _devices_response(ctx.state)

    device = next((d for d in state.devices if d.path == request.path), None)
    if device is None:
        raise HTTPException(
            status_code=http_status.HTTP_404_NOT_FOUND,
            detail={
                "code": "device_not_found",
                "message": f"Device not found: {request.path}",
            },
        )
    ctx.store.dispatch(actions.DeviceSelected(device))
    return _devices_response(ctx.state)
