"""Immutable application state snapshot.

:class:`AppState` is the single consistent view every component reads.
It is never mutated; the reducer returns a new instance per transition.
Derived values (``is_writing``, ``progress_percent``, ...) are computed
on every read from the stored fields and never cached.
"""

from dataclasses import dataclass
from typing import Any

from gosh_usb.backend.models import BlockDevice, FileInfo, ImageValidation, WriteProgress
from gosh_usb.types import (
    WRITING_PHASES,
    AppMode,
    ChecksumAlgorithm,
    ChecksumComparison,
    Theme,
    WritePhase,
)

_STATUS_MESSAGES = {
    WritePhase.PREPARING: "Preparing to write...",
    WritePhase.WRITING: "Writing to USB...",
    WritePhase.VERIFYING: "Verifying written data...",
    WritePhase.COMPLETE: "Complete! You can safely remove the USB drive.",
}


@dataclass(frozen=True)
class Preferences:
    """User preferences persisted across sessions."""

    theme: Theme = Theme.SYSTEM
    verify_after_write: bool = True
    mode: AppMode = AppMode.STANDARD
    auto_eject: bool = False
    show_notification: bool = True


def compare_checksums(calculated: str | None, expected: str) -> ChecksumComparison:
    """Compare a calculated digest with a user-typed one.

    The comparison is case-insensitive and ignores surrounding whitespace
    of the expected value. Without both values there is no verdict.
    """
    expected = expected.strip()
    if not calculated or not expected:
        return ChecksumComparison.NONE
    if calculated.lower() == expected.lower():
        return ChecksumComparison.MATCH
    return ChecksumComparison.MISMATCH


@dataclass(frozen=True)
class AppState:
    """Snapshot of the whole application state.

    Attributes:
        selected_file: Chosen source image.
        selected_device: Chosen destination; always from ``devices``.
        devices: Latest enumerated removable devices.
        devices_loading: An enumeration request is outstanding.
        calculated_checksum: Digest of ``selected_file`` under
            ``checksum_algorithm``.
        checksum_algorithm: Algorithm for the next calculation.
        checksum_loading: A checksum request is outstanding.
        expected_checksum: Digest typed by the user for comparison.
        write_phase: Current lifecycle phase.
        write_progress: Latest progress snapshot of the running write.
        write_error: Failure detail; non-null only in the error phase.
        verify_after_write: Request read-back verification.
        theme: Display theme.
        mode: Standard or advanced mode.
        image_validation: Validation verdict for ``selected_file``.
        image_validation_loading: A validation request is outstanding.
        auto_eject: Eject the device after a successful write (advanced).
        show_notification: Notify after a successful write (advanced).
    """

    selected_file: FileInfo | None = None
    selected_device: BlockDevice | None = None
    devices: tuple[BlockDevice, ...] = ()
    devices_loading: bool = False

    calculated_checksum: str | None = None
    checksum_algorithm: ChecksumAlgorithm = ChecksumAlgorithm.SHA256
    checksum_loading: bool = False
    expected_checksum: str = ""

    write_phase: WritePhase = WritePhase.IDLE
    write_progress: WriteProgress | None = None
    write_error: str | None = None

    verify_after_write: bool = True
    theme: Theme = Theme.SYSTEM
    mode: AppMode = AppMode.STANDARD

    image_validation: ImageValidation | None = None
    image_validation_loading: bool = False

    auto_eject: bool = False
    show_notification: bool = True

    @classmethod
    def initial(cls, preferences: Preferences | None = None) -> "AppState":
        """Build the startup state from loaded preferences."""
        if preferences is None:
            preferences = Preferences()
        return cls(
            theme=preferences.theme,
            verify_after_write=preferences.verify_after_write,
            mode=preferences.mode,
            auto_eject=preferences.auto_eject,
            show_notification=preferences.show_notification,
        )

    @property
    def preferences(self) -> Preferences:
        return Preferences(
            theme=self.theme,
            verify_after_write=self.verify_after_write,
            mode=self.mode,
            auto_eject=self.auto_eject,
            show_notification=self.show_notification,
        )

    @property
    def is_writing(self) -> bool:
        return self.write_phase in WRITING_PHASES

    @property
    def can_write(self) -> bool:
        return (
            self.selected_file is not None
            and self.selected_device is not None
            and self.write_phase == WritePhase.IDLE
        )

    @property
    def is_advanced(self) -> bool:
        return self.mode == AppMode.ADVANCED

    @property
    def progress_percent(self) -> int:
        if self.write_progress is None:
            return 0
        return self.write_progress.percent

    @property
    def checksum_comparison(self) -> ChecksumComparison:
        return compare_checksums(self.calculated_checksum, self.expected_checksum)

    @property
    def status_message(self) -> str:
        if self.write_phase == WritePhase.ERROR:
            return self.write_error or "An error occurred."
        return _STATUS_MESSAGES.get(self.write_phase, "")

    def device_paths(self) -> set[str]:
        """Return the paths of the currently known devices."""
        return {device.path for device in self.devices}

    def to_dict(self) -> dict[str, Any]:
        """Serialise the snapshot, including derived values, for JSON output."""

        def dump(model: Any) -> Any:
            return model.model_dump(mode="json") if model is not None else None

        return {
            "selected_file": dump(self.selected_file),
            "selected_device": dump(self.selected_device),
            "devices": [dump(device) for device in self.devices],
            "devices_loading": self.devices_loading,
            "calculated_checksum": self.calculated_checksum,
            "checksum_algorithm": self.checksum_algorithm.value,
            "checksum_loading": self.checksum_loading,
            "expected_checksum": self.expected_checksum,
            "checksum_comparison": self.checksum_comparison.value,
            "write_phase": self.write_phase.value,
            "write_progress": dump(self.write_progress),
            "write_error": self.write_error,
            "progress_percent": self.progress_percent,
            "status_message": self.status_message,
            "is_writing": self.is_writing,
            "can_write": self.can_write,
            "verify_after_write": self.verify_after_write,
            "theme": self.theme.value,
            "mode": self.mode.value,
            "image_validation": dump(self.image_validation),
            "image_validation_loading": self.image_validation_loading,
            "auto_eject": self.auto_eject,
            "show_notification": self.show_notification,
        }


__all__ = ["AppState", "Preferences", "compare_checksums"]
