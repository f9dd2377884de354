"""Actions understood by the reducer.

Every state change is expressed as one of these immutable action
objects. Actions carry data only; all logic lives in
:mod:`gosh_usb.state.reducer`.
"""

from dataclasses import dataclass

from gosh_usb.backend.models import BlockDevice, FileInfo, ImageValidation, WriteProgress
from gosh_usb.state.snapshot import Preferences
from gosh_usb.types import AppMode, ChecksumAlgorithm, Theme


class Action:
    """Base class for all actions."""

    __slots__ = ()


# Image selection


@dataclass(frozen=True)
class ImageSelected(Action):
    file: FileInfo


@dataclass(frozen=True)
class ImageCleared(Action):
    pass


# Devices


@dataclass(frozen=True)
class DeviceSelected(Action):
    """Select a device from the current set, or deselect with None."""

    device: BlockDevice | None


@dataclass(frozen=True)
class DevicesLoading(Action):
    loading: bool


@dataclass(frozen=True)
class DevicesEnumerated(Action):
    devices: tuple[BlockDevice, ...]


@dataclass(frozen=True)
class DevicesEnumerationFailed(Action):
    pass


# Checksum


@dataclass(frozen=True)
class ChecksumAlgorithmChanged(Action):
    algorithm: ChecksumAlgorithm


@dataclass(frozen=True)
class ExpectedChecksumChanged(Action):
    value: str


@dataclass(frozen=True)
class ChecksumRequested(Action):
    path: str
    algorithm: ChecksumAlgorithm


@dataclass(frozen=True)
class ChecksumCalculated(Action):
    path: str
    algorithm: ChecksumAlgorithm
    digest: str


@dataclass(frozen=True)
class ChecksumFailed(Action):
    path: str
    algorithm: ChecksumAlgorithm


# Validation


@dataclass(frozen=True)
class ValidationRequested(Action):
    path: str


@dataclass(frozen=True)
class ValidationCompleted(Action):
    path: str
    result: ImageValidation


@dataclass(frozen=True)
class ValidationFailed(Action):
    path: str


# Write lifecycle


@dataclass(frozen=True)
class WriteStarted(Action):
    pass


@dataclass(frozen=True)
class WriteProgressReceived(Action):
    progress: WriteProgress


@dataclass(frozen=True)
class WriteSucceeded(Action):
    pass


@dataclass(frozen=True)
class WriteFailed(Action):
    message: str


@dataclass(frozen=True)
class WriteReset(Action):
    pass


# Preferences


@dataclass(frozen=True)
class PreferencesLoaded(Action):
    preferences: Preferences


@dataclass(frozen=True)
class ThemeChanged(Action):
    theme: Theme


@dataclass(frozen=True)
class VerifyAfterWriteChanged(Action):
    enabled: bool


@dataclass(frozen=True)
class ModeChanged(Action):
    mode: AppMode


@dataclass(frozen=True)
class AutoEjectChanged(Action):
    enabled: bool


@dataclass(frozen=True)
class ShowNotificationChanged(Action):
    enabled: bool


__all__ = [
    "Action",
    "AutoEjectChanged",
    "ChecksumAlgorithmChanged",
    "ChecksumCalculated",
    "ChecksumFailed",
    "ChecksumRequested",
    "DeviceSelected",
    "DevicesEnumerated",
    "DevicesEnumerationFailed",
    "DevicesLoading",
    "ExpectedChecksumChanged",
    "ImageCleared",
    "ImageSelected",
    "ModeChanged",
    "PreferencesLoaded",
    "ShowNotificationChanged",
    "ThemeChanged",
    "ValidationCompleted",
    "ValidationFailed",
    "ValidationRequested",
    "VerifyAfterWriteChanged",
    "WriteFailed",
    "WriteProgressReceived",
    "WriteReset",
    "WriteStarted",
    "WriteSucceeded",
]
