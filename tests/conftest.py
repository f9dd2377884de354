"""Shared fixtures: a scripted backend and model factories."""

import asyncio

import pytest

from gosh_usb.backend import (
    WRITE_PROGRESS_EVENT,
    BackendError,
    BlockDevice,
    FileInfo,
    ImageNotFoundError,
    ImageValidation,
    WriteProgress,
    format_size,
)
from gosh_usb.config import Settings
from gosh_usb.core.context import open_preference_store
from gosh_usb.events import EventChannel
from gosh_usb.types import ChecksumAlgorithm, ProgressPhase


def make_device(
    path: str = "/dev/sdb",
    name: str = "SanDisk Cruzer",
    size: int = 16 * 1024**3,
    mount_points: tuple[str, ...] = (),
) -> BlockDevice:
    return BlockDevice(
        path=path,
        name=name,
        size=size,
        size_human=format_size(size),
        mount_points=mount_points,
    )


def make_file(path: str = "/images/debian.iso", size: int = 2048) -> FileInfo:
    return FileInfo(
        path=path,
        name=path.rsplit("/", 1)[-1],
        size=size,
        size_human=format_size(size),
    )


def make_progress(
    phase: ProgressPhase | str, bytes_written: int, total_bytes: int = 100
) -> WriteProgress:
    return WriteProgress(
        phase=ProgressPhase(phase),
        bytes_written=bytes_written,
        total_bytes=total_bytes,
    )


class FakeBackend:
    """Backend double with scripted results and a call log.

    Set the ``*_error`` attributes to make a call fail. Progress in
    ``write_progress`` is emitted on the channel during
    ``write_iso_to_device``; if ``write_gate`` is set the write waits
    on it before finishing.
    """

    def __init__(self, devices: list[BlockDevice] | None = None) -> None:
        self.channel = EventChannel()
        self.devices = list(devices) if devices is not None else [make_device()]
        self.files: dict[str, FileInfo] = {}
        self.validations: dict[str, ImageValidation] = {}
        self.checksums: dict[tuple[str, ChecksumAlgorithm], str] = {}
        self.write_progress: list[WriteProgress] = []
        self.write_gate: asyncio.Event | None = None

        self.list_error: BackendError | None = None
        self.validate_error: BackendError | None = None
        self.checksum_error: BackendError | None = None
        self.write_error: Exception | None = None
        self.eject_error: Exception | None = None

        self.calls: list[tuple] = []

    def add_file(self, path: str = "/images/debian.iso", size: int = 2048) -> FileInfo:
        info = make_file(path, size)
        self.files[path] = info
        return info

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    async def list_devices(self) -> list[BlockDevice]:
        self.calls.append(("list_devices",))
        if self.list_error is not None:
            raise self.list_error
        return list(self.devices)

    async def get_file_info(self, path: str) -> FileInfo:
        self.calls.append(("get_file_info", path))
        if path not in self.files:
            raise ImageNotFoundError(path)
        return self.files[path]

    async def validate_image(
        self, path: str, device_size: int | None = None
    ) -> ImageValidation:
        self.calls.append(("validate_image", path, device_size))
        if self.validate_error is not None:
            raise self.validate_error
        return self.validations.get(
            path, ImageValidation(is_valid=True, format="ISO 9660 (hybrid)")
        )

    async def calculate_checksum(self, path: str, algorithm: ChecksumAlgorithm) -> str:
        self.calls.append(("calculate_checksum", path, algorithm))
        if self.checksum_error is not None:
            raise self.checksum_error
        return self.checksums.get((path, algorithm), "ab12" * 16)

    async def write_iso_to_device(
        self, iso_path: str, device_path: str, verify: bool
    ) -> None:
        self.calls.append(("write_iso_to_device", iso_path, device_path, verify))
        for progress in self.write_progress:
            self.channel.emit(WRITE_PROGRESS_EVENT, progress)
        if self.write_gate is not None:
            await self.write_gate.wait()
        if self.write_error is not None:
            raise self.write_error

    async def eject_device(self, device_path: str) -> None:
        self.calls.append(("eject_device", device_path))
        if self.eject_error is not None:
            raise self.eject_error


async def always_confirm(prompt) -> bool:
    return True


async def always_decline(prompt) -> bool:
    return False


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings with the preference store in tmp_path."""
    return Settings(db_url=f"sqlite:///{tmp_path / 'preferences.sqlite'}")


@pytest.fixture
def preference_store(settings):
    return open_preference_store(settings)
