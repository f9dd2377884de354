"""Shared type definitions for gosh_usb.

This module contains enums and constants shared across subpackages to
avoid circular imports.
"""

from enum import Enum


class WritePhase(str, Enum):
    """Lifecycle phase of a write attempt."""

    IDLE = "idle"
    PREPARING = "preparing"
    WRITING = "writing"
    VERIFYING = "verifying"
    COMPLETE = "complete"
    ERROR = "error"


class ProgressPhase(str, Enum):
    """Phase tag carried by a backend progress event."""

    WRITING = "writing"
    VERIFYING = "verifying"


class AppMode(str, Enum):
    """Operating mode of the application."""

    STANDARD = "standard"
    ADVANCED = "advanced"


class Theme(str, Enum):
    """Display theme preference."""

    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


class ChecksumAlgorithm(str, Enum):
    """Digest algorithms the backend can compute."""

    SHA256 = "sha256"
    MD5 = "md5"


class ChecksumComparison(str, Enum):
    """Outcome of comparing a calculated digest with an expected one."""

    MATCH = "match"
    MISMATCH = "mismatch"
    NONE = "none"


# Phases during which the device is owned by the backend
WRITING_PHASES = frozenset(
    {WritePhase.PREPARING, WritePhase.WRITING, WritePhase.VERIFYING}
)

# Phases from which only an explicit reset leads back to idle
TERMINAL_PHASES = frozenset({WritePhase.COMPLETE, WritePhase.ERROR})

# Ordering used to keep the writing -> verifying boundary monotonic
PHASE_RANK = {
    WritePhase.PREPARING: 0,
    WritePhase.WRITING: 1,
    WritePhase.VERIFYING: 2,
}


__all__ = [
    "PHASE_RANK",
    "TERMINAL_PHASES",
    "WRITING_PHASES",
    "AppMode",
    "ChecksumAlgorithm",
    "ChecksumComparison",
    "ProgressPhase",
    "Theme",
    "WritePhase",
]
