"""Writer module for the local backend.

This module handles the actual byte-level work:
- Pre-flight checks on the image (regular file, non-empty, fits the device)
- Block writes with progress reporting, flushed and fsync'ed
- Read-back verification comparing image and device block by block

Progress is reported through a callback after every block with the
phase tag, bytes done, total bytes, average speed and ETA.
"""

import logging
import os
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from gosh_usb.backend.base import (
    ImageError,
    ImageNotFoundError,
    VerificationMismatchError,
    WriteIOError,
    WritePermissionError,
)
from gosh_usb.backend.formatting import format_size
from gosh_usb.backend.models import WriteProgress
from gosh_usb.types import ProgressPhase

logger = logging.getLogger(__name__)

# Default block size for I/O operations (4 MiB)
DEFAULT_BLOCK_SIZE = 4 * 1024 * 1024

ProgressCallback = Callable[[WriteProgress], None]


@dataclass
class WriteResult:
    """Result of a write operation.

    Attributes:
        bytes_written: Number of bytes written to the device.
        bytes_verified: Number of bytes compared during verification.
        verified: Whether read-back verification ran and passed.
    """

    bytes_written: int
    bytes_verified: int
    verified: bool


class ProgressMeter:
    """Derives speed and ETA for a running phase."""

    def __init__(
        self,
        phase: ProgressPhase,
        total_bytes: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.phase = phase
        self.total_bytes = total_bytes
        self._clock = clock
        self._started = clock()

    def snapshot(self, bytes_done: int) -> WriteProgress:
        """Build a progress snapshot for the given byte count."""
        elapsed = self._clock() - self._started
        speed_bps = int(bytes_done / elapsed) if elapsed > 0 else 0
        remaining = max(self.total_bytes - bytes_done, 0)
        eta_seconds = remaining // speed_bps if speed_bps > 0 else 0
        return WriteProgress(
            phase=self.phase,
            bytes_written=bytes_done,
            total_bytes=self.total_bytes,
            speed_bps=speed_bps,
            eta_seconds=eta_seconds,
        )


def check_image(image_path: str | Path, device_size: int | None = None) -> int:
    """Run pre-flight checks on an image.

    Args:
        image_path: Image file to write.
        device_size: Capacity of the target device in bytes (0/None: unknown).

    Returns:
        Image size in bytes.

    Raises:
        ImageNotFoundError: Image cannot be stat'ed.
        ImageError: Image is not a regular file, is empty, or is too large.
    """
    image_path = Path(image_path)
    try:
        stat_result = image_path.stat()
    except OSError as e:
        raise ImageNotFoundError(str(image_path), e.strerror) from e

    if not image_path.is_file():
        raise ImageError("Selected image is not a file")

    total_bytes = stat_result.st_size
    if total_bytes == 0:
        raise ImageError("Selected image is empty")
    if device_size and total_bytes > device_size:
        raise ImageError(
            f"Image size ({format_size(total_bytes)}) exceeds device capacity "
            f"({format_size(device_size)})"
        )
    return total_bytes


def _copy_with_progress(
    source: BinaryIO,
    dest: BinaryIO,
    meter: ProgressMeter,
    block_size: int,
    on_progress: ProgressCallback | None,
) -> int:
    """Copy source to dest block by block, reporting progress."""
    bytes_written = 0

    while True:
        chunk = source.read(block_size)
        if not chunk:
            break

        dest.write(chunk)
        bytes_written += len(chunk)

        if on_progress is not None:
            on_progress(meter.snapshot(bytes_written))

    return bytes_written


def _open_device(device_path: str, mode: str) -> BinaryIO:
    try:
        return open(device_path, mode)  # noqa: SIM115
    except PermissionError as e:
        logger.error("Permission denied opening %s: %s", device_path, e)
        raise WritePermissionError(device_path) from e
    except OSError as e:
        raise WriteIOError(f"Failed to open device: {e}") from e


def write_image_to_device(
    image_path: str | Path,
    device_path: str,
    *,
    device_size: int | None = None,
    verify: bool = True,
    block_size: int = DEFAULT_BLOCK_SIZE,
    on_progress: ProgressCallback | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> WriteResult:
    """Write an image file to a device, optionally verifying it.

    Args:
        image_path: Path to the image file.
        device_path: Path to the target device.
        device_size: Device capacity used for the size check.
        verify: Whether to read the data back and compare it.
        block_size: Block size for I/O operations.
        on_progress: Called with a WriteProgress after every block.
        clock: Monotonic clock used for speed/ETA.

    Returns:
        WriteResult with operation details.

    Raises:
        ImageNotFoundError: Image file not found.
        ImageError: Image failed pre-flight checks.
        WritePermissionError: Permission denied on the device.
        WriteIOError: I/O error during write or verification.
        VerificationMismatchError: Read-back data differs from the image.
    """
    total_bytes = check_image(image_path, device_size)
    logger.info(
        "Writing %s (%s) to %s, verify=%s",
        Path(image_path).name,
        format_size(total_bytes),
        device_path,
        verify,
    )

    meter = ProgressMeter(ProgressPhase.WRITING, total_bytes, clock)
    try:
        with open(image_path, "rb") as src, _open_device(device_path, "r+b") as dst:
            bytes_written = _copy_with_progress(
                src, dst, meter, block_size, on_progress
            )

            # Flush all buffers and sync to device
            dst.flush()
            os.fsync(dst.fileno())
    except OSError as e:
        logger.error("I/O error writing to device: %s", e)
        raise WriteIOError(f"Failed to write to device: {e}") from e

    logger.info("Wrote %d bytes to %s", bytes_written, device_path)

    if not verify:
        return WriteResult(bytes_written=bytes_written, bytes_verified=0, verified=False)

    bytes_verified = verify_device(
        image_path,
        device_path,
        total_bytes,
        block_size=block_size,
        on_progress=on_progress,
        clock=clock,
    )
    return WriteResult(
        bytes_written=bytes_written, bytes_verified=bytes_verified, verified=True
    )


def verify_device(
    image_path: str | Path,
    device_path: str,
    total_bytes: int,
    *,
    block_size: int = DEFAULT_BLOCK_SIZE,
    on_progress: ProgressCallback | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """Compare a device's leading bytes with an image, block by block.

    Returns:
        Number of bytes verified.

    Raises:
        WriteIOError: The image or device could not be read.
        VerificationMismatchError: First differing block found.
    """
    logger.info("Verifying %d bytes of %s", total_bytes, device_path)

    meter = ProgressMeter(ProgressPhase.VERIFYING, total_bytes, clock)
    bytes_verified = 0

    try:
        with open(image_path, "rb") as src, _open_device(device_path, "rb") as dev:
            while True:
                expected = src.read(block_size)
                if not expected:
                    break

                actual = dev.read(len(expected))
                if len(actual) != len(expected):
                    raise WriteIOError(
                        "Failed to read device during verification: "
                        f"unexpected end of device at byte {bytes_verified + len(actual)}"
                    )
                if actual != expected:
                    logger.error(
                        "Verification mismatch on %s in block at %d",
                        device_path,
                        bytes_verified,
                    )
                    raise VerificationMismatchError(device_path, bytes_verified)

                bytes_verified += len(expected)
                if on_progress is not None:
                    on_progress(meter.snapshot(bytes_verified))
    except OSError as e:
        logger.error("I/O error verifying device: %s", e)
        raise WriteIOError(f"Failed to read device during verification: {e}") from e

    logger.info("Verification passed for %s", device_path)
    return bytes_verified


__all__ = [
    "DEFAULT_BLOCK_SIZE",
    "ProgressCallback",
    "ProgressMeter",
    "WriteResult",
    "check_image",
    "verify_device",
    "write_image_to_device",
]
