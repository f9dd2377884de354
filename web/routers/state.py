"""State snapshot endpoint."""

from typing import Any

from fastapi import APIRouter, Depends

from gosh_usb.core import AppContext
from web.deps import get_context

router = APIRouter()


@router.get("")
def get_state(ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    """Get the current application state, including derived values.

    Returns:
        Snapshot as JSON.
    """
    return ctx.state.to_dict()
