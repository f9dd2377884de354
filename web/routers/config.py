"""Configuration endpoints."""

from typing import Any

from fastapi import APIRouter, Depends

from gosh_usb.core import AppContext
from web.deps import get_context

router = APIRouter()


@router.get("")
def get_config(ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    """Get effective configuration.

    Returns:
        Current configuration as JSON.
    """
    settings = ctx.settings
    return {
        "db_url": settings.db_url,
        "poll_interval": settings.poll_interval,
        "sys_block_dir": str(settings.sys_block_dir),
        "mounts_file": str(settings.mounts_file),
        "write_block_size": settings.write_block_size,
        "checksum_block_size": settings.checksum_block_size,
        "log_level": settings.log_level,
    }
