"""Pydantic models for backend payloads.

These models validate data crossing the backend boundary: device
enumerations, file metadata, validation verdicts and progress events.
All models are immutable so they can be shared between state snapshots.
"""

from pydantic import BaseModel, ConfigDict, Field

from gosh_usb.types import ProgressPhase


class BlockDevice(BaseModel):
    """A removable block device reported by the backend.

    Attributes:
        path: Device node (e.g., '/dev/sdb').
        name: Display name ("vendor model" or kernel name).
        size: Size in bytes.
        size_human: Human-readable size.
        removable: Whether the kernel reports the device as removable.
        mount_points: Current mount points of the device and its partitions.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    name: str
    size: int = Field(ge=0)
    size_human: str
    removable: bool = True
    mount_points: tuple[str, ...] = ()


class FileInfo(BaseModel):
    """Metadata for a selected source image."""

    model_config = ConfigDict(frozen=True)

    path: str
    name: str
    size: int = Field(ge=0)
    size_human: str


class ImageValidation(BaseModel):
    """Validation verdict for a source image.

    Attributes:
        is_valid: False when any error was found.
        format: Detected format label (e.g., 'ISO 9660 (hybrid)').
        errors: Problems that make the image unsuitable for writing.
        warnings: Problems worth showing but not blocking.
    """

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    format: str
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


class WriteProgress(BaseModel):
    """Progress snapshot pushed by the backend during a write."""

    model_config = ConfigDict(frozen=True)

    phase: ProgressPhase
    bytes_written: int = Field(ge=0)
    total_bytes: int = Field(ge=0)
    speed_bps: int = Field(default=0, ge=0)
    eta_seconds: int = Field(default=0, ge=0)

    @property
    def percent(self) -> int:
        """Completion percentage, rounded half up; 0 when total is unknown."""
        if self.total_bytes <= 0:
            return 0
        return (self.bytes_written * 200 + self.total_bytes) // (self.total_bytes * 2)


__all__ = ["BlockDevice", "FileInfo", "ImageValidation", "WriteProgress"]
