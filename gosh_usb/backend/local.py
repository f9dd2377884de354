"""Local Linux backend.

Implements the backend contract in-process. Blocking work (sysfs scans,
hashing, device I/O) runs in worker threads via :func:`asyncio.to_thread`
so the event loop stays responsive; progress produced by the writer
thread is marshalled back onto the loop before being emitted on the
``write-progress`` event.

Writing to a device requires the privileges to open it read-write,
typically root.
"""

import asyncio
import logging
from pathlib import Path

from gosh_usb.backend import devices, images, writer
from gosh_usb.backend.base import WRITE_PROGRESS_EVENT, BackendError, WriteIOError
from gosh_usb.backend.models import (
    BlockDevice,
    FileInfo,
    ImageValidation,
    WriteProgress,
)
from gosh_usb.config import Settings, get_settings
from gosh_usb.events import EventChannel
from gosh_usb.types import ChecksumAlgorithm

logger = logging.getLogger(__name__)


class LocalBackend:
    """Backend operating directly on this machine's block devices."""

    def __init__(
        self,
        channel: EventChannel | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        if settings is None:
            settings = get_settings()
        self.channel = channel if channel is not None else EventChannel()
        self.sys_block: Path = settings.sys_block_dir
        self.mounts_file: Path = settings.mounts_file
        self.write_block_size = settings.write_block_size
        self.checksum_block_size = settings.checksum_block_size

    async def list_devices(self) -> list[BlockDevice]:
        try:
            return await asyncio.to_thread(
                devices.list_removable_devices, self.sys_block, self.mounts_file
            )
        except OSError as e:
            raise BackendError(f"Failed to list devices: {e}") from e

    async def get_file_info(self, path: str) -> FileInfo:
        return await asyncio.to_thread(images.get_file_info, path)

    async def validate_image(
        self, path: str, device_size: int | None = None
    ) -> ImageValidation:
        return await asyncio.to_thread(images.validate_image, path, device_size)

    async def calculate_checksum(
        self, path: str, algorithm: ChecksumAlgorithm
    ) -> str:
        return await asyncio.to_thread(
            images.compute_file_checksum, path, algorithm, self.checksum_block_size
        )

    async def write_iso_to_device(
        self, iso_path: str, device_path: str, verify: bool
    ) -> None:
        device = await asyncio.to_thread(
            devices.find_removable_device,
            device_path,
            self.sys_block,
            self.mounts_file,
        )
        if devices.is_partition_path(device.path):
            raise WriteIOError(f"Refusing to write to a partition: {device.path}")

        await asyncio.to_thread(devices.unmount_device, device.path, self.mounts_file)

        loop = asyncio.get_running_loop()

        def report(progress: WriteProgress) -> None:
            loop.call_soon_threadsafe(
                self.channel.emit, WRITE_PROGRESS_EVENT, progress
            )

        result = await asyncio.to_thread(
            writer.write_image_to_device,
            iso_path,
            device.path,
            device_size=device.size,
            verify=verify,
            block_size=self.write_block_size,
            on_progress=report,
        )
        logger.info(
            "Write finished: %d bytes written, verified=%s",
            result.bytes_written,
            result.verified,
        )

    async def eject_device(self, device_path: str) -> None:
        await asyncio.to_thread(
            devices.find_removable_device,
            device_path,
            self.sys_block,
            self.mounts_file,
        )
        await asyncio.to_thread(devices.eject_device, device_path)


__all__ = ["LocalBackend"]
