"""Backend contract consumed by the write-lifecycle core.

The backend performs every privileged or long-running operation:
enumerating devices, reading image metadata, computing checksums,
validating image formats, and writing/verifying devices. All calls are
asynchronous. During ``write_iso_to_device`` the backend pushes
:class:`~gosh_usb.backend.models.WriteProgress` payloads onto the
``write-progress`` event of its :class:`~gosh_usb.events.EventChannel`.

Every failure is reported as a :class:`BackendError` carrying a
human-readable message and a stable error code.
"""

from typing import Protocol, runtime_checkable

from gosh_usb.backend.models import BlockDevice, FileInfo, ImageValidation
from gosh_usb.events import EventChannel
from gosh_usb.types import ChecksumAlgorithm

# Event name for progress pushed during write_iso_to_device
WRITE_PROGRESS_EVENT = "write-progress"


class BackendError(Exception):
    """Base exception for backend failures."""

    def __init__(self, message: str, error_code: str = "BACKEND_ERROR") -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class DeviceNotFoundError(BackendError):
    """Device is not (or no longer) a listed removable device."""

    def __init__(self, device_path: str) -> None:
        super().__init__(
            f"Device not found or not removable: {device_path}",
            error_code="DEVICE_NOT_FOUND",
        )
        self.device_path = device_path


class DeviceBusyError(BackendError):
    """A mount point of the device could not be unmounted."""

    def __init__(self, mount_point: str, detail: str) -> None:
        super().__init__(
            f"Failed to unmount {mount_point}: {detail}", error_code="DEVICE_BUSY"
        )
        self.mount_point = mount_point


class ImageNotFoundError(BackendError):
    """Image file does not exist or cannot be read."""

    def __init__(self, image_path: str, detail: str | None = None) -> None:
        message = f"Failed to read file: {image_path}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message, error_code="IMAGE_NOT_FOUND")
        self.image_path = image_path


class ImageError(BackendError):
    """Image is unsuitable for writing (not a file, empty, too large)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, error_code="IMAGE_INVALID")


class UnsupportedAlgorithmError(BackendError):
    """Requested checksum algorithm is not supported."""

    def __init__(self, algorithm: str) -> None:
        super().__init__(
            f"Unsupported algorithm: {algorithm}", error_code="UNSUPPORTED_ALGORITHM"
        )
        self.algorithm = algorithm


class WritePermissionError(BackendError):
    """Permission denied opening the device."""

    def __init__(self, device_path: str) -> None:
        super().__init__(
            f"Permission denied. Run with elevated privileges to write to {device_path}",
            error_code="WRITE_PERMISSION_DENIED",
        )
        self.device_path = device_path


class WriteIOError(BackendError):
    """I/O error while writing or reading back the device."""

    def __init__(self, message: str) -> None:
        super().__init__(message, error_code="WRITE_IO_ERROR")


class VerificationMismatchError(BackendError):
    """Data read back from the device differs from the image."""

    def __init__(self, device_path: str, offset: int) -> None:
        super().__init__(
            "Verification failed: data mismatch detected "
            f"on {device_path} at byte offset {offset}",
            error_code="VERIFY_MISMATCH",
        )
        self.device_path = device_path
        self.offset = offset


@runtime_checkable
class Backend(Protocol):
    """Operations the core delegates to a (possibly privileged) backend."""

    channel: EventChannel

    async def list_devices(self) -> list[BlockDevice]:
        """Enumerate removable block devices."""
        ...

    async def get_file_info(self, path: str) -> FileInfo:
        """Resolve image metadata for a path."""
        ...

    async def validate_image(
        self, path: str, device_size: int | None = None
    ) -> ImageValidation:
        """Validate an image, flagging a size mismatch against device_size."""
        ...

    async def calculate_checksum(
        self, path: str, algorithm: ChecksumAlgorithm
    ) -> str:
        """Compute the hex digest of a file."""
        ...

    async def write_iso_to_device(
        self, iso_path: str, device_path: str, verify: bool
    ) -> None:
        """Write an image to a device, optionally verifying it afterwards."""
        ...

    async def eject_device(self, device_path: str) -> None:
        """Eject a removable device."""
        ...


__all__ = [
    "WRITE_PROGRESS_EVENT",
    "Backend",
    "BackendError",
    "DeviceBusyError",
    "DeviceNotFoundError",
    "ImageError",
    "ImageNotFoundError",
    "UnsupportedAlgorithmError",
    "VerificationMismatchError",
    "WriteIOError",
    "WritePermissionError",
]
