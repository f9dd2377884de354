"""Backend contract and the local Linux implementation.

The write-lifecycle core only talks to a :class:`Backend`; the
:class:`LocalBackend` fulfils that contract on this machine using sysfs,
the mount table and direct device I/O.
"""

from gosh_usb.backend.base import (
    WRITE_PROGRESS_EVENT,
    Backend,
    BackendError,
    DeviceBusyError,
    DeviceNotFoundError,
    ImageError,
    ImageNotFoundError,
    UnsupportedAlgorithmError,
    VerificationMismatchError,
    WriteIOError,
    WritePermissionError,
)
from gosh_usb.backend.formatting import format_eta, format_size, format_speed
from gosh_usb.backend.local import LocalBackend
from gosh_usb.backend.models import (
    BlockDevice,
    FileInfo,
    ImageValidation,
    WriteProgress,
)

__all__ = [
    "WRITE_PROGRESS_EVENT",
    # Contract
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
    # Models
    "BlockDevice",
    "FileInfo",
    "ImageValidation",
    "WriteProgress",
    # Formatting
    "format_eta",
    "format_size",
    "format_speed",
    # Implementation
    "LocalBackend",
]
