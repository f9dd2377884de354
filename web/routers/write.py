"""Write lifecycle endpoints.

- POST /write - Request a write; returns the confirmation prompt
- GET /write/confirmation - The pending confirmation prompt
- POST /write/confirmation - Answer the pending prompt
- GET /write - Lifecycle phase, progress and error
- POST /write/reset - Return from complete/error to idle

A write runs as a background task owned by the application. Declining
the prompt leaves the lifecycle idle; no write is issued.
"""

import asyncio
import logging
from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi import status as http_status
from pydantic import BaseModel

from gosh_usb.core import AppContext, ConfirmationPrompt
from gosh_usb.state import AppState
from web.confirmation import PendingConfirmation
from web.deps import conflict, get_confirmation, get_context

logger = logging.getLogger(__name__)

router = APIRouter()


class ConfirmationAnswer(BaseModel):
    """Request body answering the confirmation prompt."""

    confirm: bool


def _write_response(state: AppState) -> dict[str, Any]:
    return {
        "write_phase": state.write_phase.value,
        "write_progress": (
            state.write_progress.model_dump(mode="json")
            if state.write_progress
            else None
        ),
        "progress_percent": state.progress_percent,
        "write_error": state.write_error,
        "status_message": state.status_message,
        "is_writing": state.is_writing,
        "can_write": state.can_write,
    }


def _not_pending() -> HTTPException:
    return HTTPException(
        status_code=http_status.HTTP_404_NOT_FOUND,
        detail={"code": "no_pending_confirmation", "message": "Nothing to confirm"},
    )


@router.get("")
def get_write(ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    """Get the write lifecycle state."""
    return _write_response(ctx.state)


@router.post("", status_code=http_status.HTTP_202_ACCEPTED)
async def request_write(
    request: Request,
    ctx: AppContext = Depends(get_context),
    confirmation: PendingConfirmation = Depends(get_confirmation),
) -> dict[str, Any]:
    """Request a write of the selected image to the selected device.

    The write waits for ``POST /write/confirmation``.

    Raises:
        HTTPException: If no image or device is selected, the lifecycle
            is not idle, or a confirmation is already pending.
    """
    state = ctx.state
    if confirmation.pending:
        raise conflict("confirmation_pending", "A write is awaiting confirmation")
    if not state.can_write:
        raise conflict(
            "cannot_write",
            "A write needs a selected image and device and an idle lifecycle",
        )

    assert state.selected_device is not None
    prompt = ConfirmationPrompt.for_device(state.selected_device)
    confirmation.open(prompt)
    task = asyncio.create_task(ctx.orchestrator.request_write(), name="write")
    request.app.state.write_task = task
    logger.info("Write requested; awaiting confirmation")
    return {"confirmation": asdict(prompt)}


@router.get("/confirmation")
def get_pending_confirmation(
    confirmation: PendingConfirmation = Depends(get_confirmation),
) -> dict[str, Any]:
    """Get the pending confirmation prompt.

    Raises:
        HTTPException: If nothing is awaiting confirmation.
    """
    if not confirmation.pending or confirmation.prompt is None:
        raise _not_pending()
    return asdict(confirmation.prompt)


@router.post("/confirmation")
async def answer_confirmation(
    answer: ConfirmationAnswer,
    ctx: AppContext = Depends(get_context),
    confirmation: PendingConfirmation = Depends(get_confirmation),
) -> dict[str, Any]:
    """Answer the pending confirmation prompt.

    Raises:
        HTTPException: If nothing is awaiting confirmation.
    """
    if not confirmation.answer(answer.confirm):
        raise _not_pending()
    # Let the write task observe the answer before reporting state
    await asyncio.sleep(0)
    return _write_response(ctx.state)


@router.post("/reset")
def reset_write(ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    """Return the lifecycle from complete or error to idle.

    Raises:
        HTTPException: If the lifecycle is not complete or in error.
    """
    if not ctx.orchestrator.reset():
        raise conflict(
            "cannot_reset",
            f"Cannot reset in phase {ctx.state.write_phase.value}",
        )
    return _write_response(ctx.state)
