"""Checksum endpoints.

- PUT /checksum - Set algorithm and/or expected digest
- POST /checksum - Calculate the digest of the selected image
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status
from pydantic import BaseModel

from gosh_usb.core import AppContext
from gosh_usb.state import AppState
from gosh_usb.types import ChecksumAlgorithm
from web.deps import conflict, get_context

router = APIRouter()


class ChecksumSettings(BaseModel):
    """Request body for checksum settings."""

    algorithm: ChecksumAlgorithm | None = None
    expected: str | None = None


def _checksum_response(state: AppState) -> dict[str, Any]:
    return {
        "algorithm": state.checksum_algorithm.value,
        "calculated": state.calculated_checksum,
        "expected": state.expected_checksum,
        "comparison": state.checksum_comparison.value,
        "loading": state.checksum_loading,
    }


@router.get("")
def get_checksum(ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    """Get checksum state and comparison."""
    return _checksum_response(ctx.state)


@router.put("")
def update_checksum(
    request: ChecksumSettings, ctx: AppContext = Depends(get_context)
) -> dict[str, Any]:
    """Change the algorithm and/or the expected digest."""
    if request.algorithm is not None:
        ctx.checksum.set_algorithm(request.algorithm)
    if request.expected is not None:
        ctx.checksum.set_expected(request.expected)
    return _checksum_response(ctx.state)


@router.post("")
async def calculate_checksum(ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    """Calculate the digest of the selected image.

    Raises:
        HTTPException: If no image is selected, a calculation is already
            running, or the backend failed.
    """
    state = ctx.state
    if state.selected_file is None:
        raise conflict("no_image", "No image selected")
    if state.checksum_loading:
        raise conflict("checksum_in_progress", "Checksum calculation in progress")

    digest = await ctx.checksum.calculate()
    if digest is None:
        raise HTTPException(
            status_code=http_status.HTTP_502_BAD_GATEWAY,
            detail={
                "code": "checksum_failed",
                "message": "Checksum calculation failed",
            },
        )
    return _checksum_response(ctx.state)
