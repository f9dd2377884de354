"""Removable block device discovery for the local backend.

This module handles everything that touches the host's device tables:
- Enumerate removable whole devices from sysfs
- Resolve mount points of a device and its partitions from the mount table
- Unmount a device before writing
- Eject a device after writing

Only whole, removable, non-empty devices are ever reported; virtual
devices (loop, ram, zram, device-mapper) are skipped.
"""

import logging
import re
import subprocess
from pathlib import Path

from gosh_usb.backend.base import BackendError, DeviceBusyError, DeviceNotFoundError
from gosh_usb.backend.formatting import format_size
from gosh_usb.backend.models import BlockDevice

logger = logging.getLogger(__name__)

DEFAULT_SYS_BLOCK = Path("/sys/block")
DEFAULT_MOUNTS_FILE = Path("/proc/mounts")

# sysfs reports sizes in 512-byte sectors regardless of the logical block size
SECTOR_SIZE = 512

_VIRTUAL_PREFIXES = ("loop", "ram", "zram", "dm-")

# Patterns for partition detection
# /dev/sdX1, /dev/hdX1, /dev/vdX1
_PARTITION_PATTERN_SD = re.compile(r"^/dev/[shv]d[a-z]+(\d+)$")
# /dev/nvme0n1p1, /dev/mmcblk0p1, /dev/loop0p1
_PARTITION_PATTERN_P = re.compile(r"^/dev/(?:nvme\d+n\d+|mmcblk\d+|loop\d+)p(\d+)$")


def is_partition_path(device_path: str) -> bool:
    """Check if a device path looks like a partition.

    Args:
        device_path: Path to the device.

    Returns:
        True if the path appears to be a partition, False otherwise.
    """
    return bool(
        _PARTITION_PATTERN_SD.match(device_path)
        or _PARTITION_PATTERN_P.match(device_path)
    )


def _read_sysfs(path: Path) -> str:
    """Read and strip a sysfs attribute, returning '' if unavailable."""
    try:
        return path.read_text().strip()
    except OSError:
        return ""


def get_mount_points(
    device_path: str, mounts_file: Path = DEFAULT_MOUNTS_FILE
) -> list[str]:
    """Get mount points for a device and its partitions.

    Args:
        device_path: Path to the device (e.g., '/dev/sda').
        mounts_file: Mount table to parse.

    Returns:
        List of mount points (empty if none mounted).
    """
    mount_points: list[str] = []
    device_name = Path(device_path).name

    try:
        with open(mounts_file) as f:
            for line in f:
                parts = line.split()
                if len(parts) < 2:
                    continue
                mounted_name = Path(parts[0]).name
                if mounted_name == device_name:
                    mount_points.append(parts[1])
                elif (
                    mounted_name.startswith(device_name)
                    and len(mounted_name) > len(device_name)
                    and (
                        mounted_name[len(device_name)].isdigit()
                        or mounted_name[len(device_name)] == "p"
                    )
                ):
                    # sda1, mmcblk0p1, nvme0n1p1
                    mount_points.append(parts[1])
    except OSError:
        logger.warning("Could not read %s, assuming nothing is mounted", mounts_file)

    return mount_points


def _display_name(device_dir: Path, kernel_name: str) -> str:
    vendor = _read_sysfs(device_dir / "device" / "vendor")
    model = _read_sysfs(device_dir / "device" / "model")
    if vendor and model:
        return f"{vendor} {model}"
    return model or vendor or kernel_name


def list_removable_devices(
    sys_block: Path = DEFAULT_SYS_BLOCK,
    mounts_file: Path = DEFAULT_MOUNTS_FILE,
) -> list[BlockDevice]:
    """Enumerate removable whole block devices.

    Args:
        sys_block: sysfs block directory.
        mounts_file: Mount table used to resolve mount points.

    Returns:
        Devices sorted by path. Empty if sysfs is unavailable.
    """
    devices: list[BlockDevice] = []

    if not sys_block.is_dir():
        logger.debug("%s not present, no devices to list", sys_block)
        return devices

    for entry in sorted(sys_block.iterdir()):
        name = entry.name
        if name.startswith(_VIRTUAL_PREFIXES):
            continue

        if _read_sysfs(entry / "removable") != "1":
            continue

        try:
            size = int(_read_sysfs(entry / "size") or 0) * SECTOR_SIZE
        except ValueError:
            size = 0
        if size == 0:
            continue

        path = f"/dev/{name}"
        devices.append(
            BlockDevice(
                path=path,
                name=_display_name(entry, name),
                size=size,
                size_human=format_size(size),
                removable=True,
                mount_points=tuple(get_mount_points(path, mounts_file)),
            )
        )

    logger.debug("Found %d removable device(s)", len(devices))
    return devices


def find_removable_device(
    device_path: str,
    sys_block: Path = DEFAULT_SYS_BLOCK,
    mounts_file: Path = DEFAULT_MOUNTS_FILE,
) -> BlockDevice:
    """Look up a device among the currently listed removable devices.

    Raises:
        DeviceNotFoundError: The path is not a listed removable device.
    """
    for device in list_removable_devices(sys_block, mounts_file):
        if device.path == device_path:
            return device
    raise DeviceNotFoundError(device_path)


def _run(command: list[str]) -> subprocess.CompletedProcess[str]:
    """Run a command, raising BackendError if it cannot be started."""
    logger.debug("Running: %s", " ".join(command))
    try:
        return subprocess.run(command, capture_output=True, text=True, check=False)
    except OSError as e:
        raise BackendError(
            f"Failed to run {command[0]}: {e.strerror or e}", error_code="COMMAND_FAILED"
        ) from e


def unmount_device(
    device_path: str, mounts_file: Path = DEFAULT_MOUNTS_FILE
) -> list[str]:
    """Unmount every mount point of a device.

    Tries a plain ``umount`` first and falls back to ``pkexec umount``.

    Returns:
        The mount points that were unmounted.

    Raises:
        DeviceBusyError: A mount point could not be unmounted.
    """
    unmounted: list[str] = []
    for mount_point in get_mount_points(device_path, mounts_file):
        result = _run(["umount", mount_point])
        if result.returncode != 0:
            logger.info("umount %s failed, retrying with pkexec", mount_point)
            result = _run(["pkexec", "umount", mount_point])
            if result.returncode != 0:
                raise DeviceBusyError(mount_point, result.stderr.strip())
        logger.info("Unmounted %s", mount_point)
        unmounted.append(mount_point)
    return unmounted


def eject_device(device_path: str) -> None:
    """Eject a device.

    Raises:
        BackendError: The eject command failed.
    """
    result = _run(["eject", device_path])
    if result.returncode != 0:
        detail = result.stderr.strip() or f"exit status {result.returncode}"
        raise BackendError(
            f"Failed to eject {device_path}: {detail}", error_code="EJECT_FAILED"
        )
    logger.info("Ejected %s", device_path)


__all__ = [
    "SECTOR_SIZE",
    "eject_device",
    "find_removable_device",
    "get_mount_points",
    "is_partition_path",
    "list_removable_devices",
    "unmount_device",
]
