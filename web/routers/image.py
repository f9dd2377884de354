"""Image selection endpoints.

- POST /image - Select an image by path
- DELETE /image - Clear the selected image
- POST /image/validate - Request validation again (advanced mode)
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status
from pydantic import BaseModel

from gosh_usb.core import AppContext
from web.deps import conflict, get_context

router = APIRouter()


class ImageRequest(BaseModel):
    """Request body for image selection."""

    path: str


@router.post("")
async def select_image(
    request: ImageRequest, ctx: AppContext = Depends(get_context)
) -> dict[str, Any]:
    """Select the source image.

    Raises:
        HTTPException: If the file cannot be read.
    """
    info = await ctx.selector.select_image(request.path)
    if info is None:
        raise HTTPException(
            status_code=http_status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "code": "image_unreadable",
                "message": f"Failed to read file: {request.path}",
            },
        )
    return info.model_dump(mode="json")


@router.delete("", status_code=http_status.HTTP_204_NO_CONTENT)
def clear_image(ctx: AppContext = Depends(get_context)) -> None:
    """Clear the selected image."""
    ctx.selector.clear_image()


@router.post("/validate", status_code=http_status.HTTP_202_ACCEPTED)
def revalidate_image(ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    """Request validation of the selected image again.

    Raises:
        HTTPException: If there is no image, the app is not in advanced
            mode, or a validation is already running.
    """
    if not ctx.validation.revalidate():
        raise conflict(
            "validation_unavailable",
            "Validation requires a selected image in advanced mode "
            "and no validation in progress",
        )
    return {"image_validation_loading": True}
