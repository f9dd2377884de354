"""Write Orchestrator.

Drives one write attempt end to end::

    idle -> (confirm) -> preparing -> writing -> verifying -> complete
                                                          \\-> error

1. The user must confirm a prompt naming the destination device and its
   size. Declining leaves the lifecycle in ``idle``; it is not an error.
2. On confirmation the phase becomes ``preparing`` and the backend write
   is invoked with the image path, the device path and the
   verify-after-write flag.
3. While the invocation runs, ``write-progress`` events are fed to the
   store; the phase follows their tag forward (never backward).
4. Success moves to ``complete``; a backend failure moves to ``error``
   with the failure message surfaced verbatim. Only :meth:`reset` leaves
   either state.

There is no mid-flight cancellation and no timeout: the attempt ends
only when the backend reports success or failure.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from gosh_usb.backend.base import WRITE_PROGRESS_EVENT, Backend, BackendError
from gosh_usb.backend.models import BlockDevice, FileInfo, WriteProgress
from gosh_usb.state import actions
from gosh_usb.state.store import Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfirmationPrompt:
    """Destructive-action prompt shown before a write starts."""

    message: str
    title: str = "Confirm Write"
    ok_label: str = "Write"
    cancel_label: str = "Cancel"
    kind: str = "warning"

    @classmethod
    def for_device(cls, device: BlockDevice) -> "ConfirmationPrompt":
        return cls(
            message=(
                f"This will erase all data on {device.name} "
                f"({device.size_human}). Continue?"
            )
        )


# Async callable answering a confirmation prompt; True means proceed
Confirm = Callable[[ConfirmationPrompt], Awaitable[bool]]

# Callable showing a desktop-style notification (title, body)
Notifier = Callable[[str, str], None]


class WriteOutcome(str, Enum):
    """Result of a write request."""

    REJECTED = "rejected"
    DECLINED = "declined"
    COMPLETED = "completed"
    FAILED = "failed"


class WriteOrchestrator:
    """Sequences confirmation, backend invocation and progress handling."""

    def __init__(
        self,
        store: Store,
        backend: Backend,
        confirm: Confirm,
        notifier: Notifier | None = None,
    ) -> None:
        self.store = store
        self.backend = backend
        self.confirm = confirm
        self.notifier = notifier
        self._confirming = False

    async def request_write(self) -> WriteOutcome:
        """Run one write attempt for the current image and device.

        Returns:
            ``REJECTED`` if the preconditions do not hold (no image, no
            device, not idle, or a confirmation already open),
            ``DECLINED`` if the user declined the prompt, otherwise
            ``COMPLETED`` or ``FAILED``.
        """
        state = self.store.state
        if not state.can_write or self._confirming:
            logger.debug("Write request rejected in phase %s", state.write_phase.value)
            return WriteOutcome.REJECTED

        assert state.selected_device is not None
        prompt = ConfirmationPrompt.for_device(state.selected_device)
        self._confirming = True
        try:
            confirmed = await self.confirm(prompt)
        finally:
            self._confirming = False

        if not confirmed:
            logger.info("Write declined by user")
            return WriteOutcome.DECLINED

        # The selection may have changed while the prompt was open
        state = self.store.state
        if not state.can_write:
            logger.info("Write no longer possible after confirmation")
            return WriteOutcome.REJECTED

        image = state.selected_file
        device = state.selected_device
        verify = state.verify_after_write
        assert image is not None and device is not None

        self.store.dispatch(actions.WriteStarted())
        logger.info(
            "Writing %s to %s (verify=%s)", image.path, device.path, verify
        )

        with self.backend.channel.listen(WRITE_PROGRESS_EVENT, self._on_progress):
            try:
                await self.backend.write_iso_to_device(image.path, device.path, verify)
            except BackendError as e:
                logger.error("Write to %s failed: %s", device.path, e.message)
                self.store.dispatch(actions.WriteFailed(e.message))
                return WriteOutcome.FAILED
            except Exception as e:
                logger.exception("Unexpected error writing to %s", device.path)
                self.store.dispatch(actions.WriteFailed(str(e) or type(e).__name__))
                return WriteOutcome.FAILED

        self.store.dispatch(actions.WriteSucceeded())
        logger.info("Write to %s complete", device.path)
        await self._after_write(image, device)
        return WriteOutcome.COMPLETED

    def reset(self) -> bool:
        """Return from ``complete`` or ``error`` to ``idle``.

        Returns:
            True if the lifecycle was reset.
        """
        before = self.store.state
        return self.store.dispatch(actions.WriteReset()) is not before

    def _on_progress(self, progress: WriteProgress) -> None:
        self.store.dispatch(actions.WriteProgressReceived(progress))

    async def _after_write(self, image: FileInfo, device: BlockDevice) -> None:
        state = self.store.state
        if not state.is_advanced:
            return

        if state.auto_eject:
            try:
                await self.backend.eject_device(device.path)
                logger.info("Ejected %s", device.path)
            except BackendError as e:
                logger.warning("Failed to eject %s: %s", device.path, e.message)
            except Exception:
                logger.warning("Failed to eject %s", device.path, exc_info=True)

        if state.show_notification and self.notifier is not None:
            try:
                self.notifier(
                    "Write complete", f"{image.name} was written to {device.name}"
                )
            except Exception:
                logger.warning("Failed to show notification", exc_info=True)


__all__ = [
    "Confirm",
    "ConfirmationPrompt",
    "Notifier",
    "WriteOrchestrator",
    "WriteOutcome",
]
