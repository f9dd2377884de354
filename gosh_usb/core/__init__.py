"""Write-lifecycle orchestration components."""

from gosh_usb.core.checksum import ChecksumVerifier
from gosh_usb.core.context import AppContext, open_preference_store
from gosh_usb.core.discovery import DEFAULT_POLL_INTERVAL, DeviceDiscoveryLoop
from gosh_usb.core.orchestrator import (
    Confirm,
    ConfirmationPrompt,
    Notifier,
    WriteOrchestrator,
    WriteOutcome,
)
from gosh_usb.core.selection import ImageSelector, ValidationGate

__all__ = [
    "DEFAULT_POLL_INTERVAL",
    "AppContext",
    "ChecksumVerifier",
    "Confirm",
    "ConfirmationPrompt",
    "DeviceDiscoveryLoop",
    "ImageSelector",
    "Notifier",
    "ValidationGate",
    "WriteOrchestrator",
    "WriteOutcome",
]
