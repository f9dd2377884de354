"""Image selection and validation gating.

:class:`ImageSelector` resolves a user-chosen path to image metadata.
:class:`ValidationGate` observes the store and, in advanced mode,
requests a validation verdict exactly once per (image, mode) pair. The
guard is evaluated explicitly on every state change instead of relying
on incidental re-evaluation, so a verdict is never requested twice for
the same selection and a failed request is not retried automatically.
"""

import asyncio
import logging

from gosh_usb.backend.base import Backend, BackendError
from gosh_usb.backend.models import FileInfo
from gosh_usb.state import actions
from gosh_usb.state.snapshot import AppState
from gosh_usb.state.store import Store
from gosh_usb.types import AppMode

logger = logging.getLogger(__name__)

ValidationKey = tuple[str, AppMode]


class ImageSelector:
    """Resolves chosen paths into the selected image."""

    def __init__(self, store: Store, backend: Backend) -> None:
        self.store = store
        self.backend = backend
        self._generation = 0

    async def select_image(self, path: str) -> FileInfo | None:
        """Look up metadata for a path and make it the selected image.

        On failure the previous selection is left untouched.

        Args:
            path: Path chosen by the user (file picker or drop).

        Returns:
            The new image metadata, or None if the lookup failed or a
            newer selection superseded this one.
        """
        self._generation += 1
        generation = self._generation
        try:
            info = await self.backend.get_file_info(path)
        except BackendError as e:
            logger.warning("Failed to get file info for %s: %s", path, e.message)
            return None

        if generation != self._generation:
            logger.debug("Discarding file info for superseded selection %s", path)
            return None

        self.store.dispatch(actions.ImageSelected(info))
        logger.info("Selected image %s (%s)", info.name, info.size_human)
        return info

    def clear_image(self) -> None:
        """Drop the selected image along with its checksum and validation."""
        self._generation += 1
        self.store.dispatch(actions.ImageCleared())


class ValidationGate:
    """Requests image validation once per (image, mode) in advanced mode."""

    def __init__(self, store: Store, backend: Backend) -> None:
        self.store = store
        self.backend = backend
        self._requested: set[ValidationKey] = set()
        self._tasks: set[asyncio.Task[None]] = set()
        self._unsubscribe = None

    def start(self) -> None:
        """Begin observing the store. Must be called from a running event loop."""
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self.store.subscribe(self._on_state_change)
        self._evaluate(self.store.state)

    async def close(self) -> None:
        """Stop observing and cancel outstanding validation requests."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def should_validate(self, state: AppState) -> bool:
        """Guard for issuing a validation request against ``state``."""
        if state.mode != AppMode.ADVANCED or state.selected_file is None:
            return False
        if state.image_validation is not None or state.image_validation_loading:
            return False
        return (state.selected_file.path, state.mode) not in self._requested

    def revalidate(self) -> bool:
        """Explicitly request validation again for the current selection.

        Returns:
            True if a request was issued.
        """
        state = self.store.state
        if state.selected_file is None or state.image_validation_loading:
            return False
        self._requested.discard((state.selected_file.path, state.mode))
        if state.mode != AppMode.ADVANCED:
            return False
        return self._request(state)

    async def wait_idle(self) -> None:
        """Wait for outstanding validation requests to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _on_state_change(self, old: AppState, new: AppState) -> None:
        if new.selected_file is not old.selected_file:
            # A new selection starts a fresh set of (image, mode) attempts
            self._requested.clear()
        self._evaluate(new)

    def _evaluate(self, state: AppState) -> None:
        if self.should_validate(state):
            self._request(state)

    def _request(self, state: AppState) -> bool:
        assert state.selected_file is not None
        path = state.selected_file.path
        self._requested.add((path, state.mode))
        device_size = state.selected_device.size if state.selected_device else None

        task = asyncio.create_task(self._validate(path, device_size))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def _validate(self, path: str, device_size: int | None) -> None:
        self.store.dispatch(actions.ValidationRequested(path))
        logger.debug("Validating %s (device size %s)", path, device_size)
        try:
            result = await self.backend.validate_image(path, device_size)
        except BackendError as e:
            logger.warning("Image validation failed for %s: %s", path, e.message)
            self.store.dispatch(actions.ValidationFailed(path))
            return

        self.store.dispatch(actions.ValidationCompleted(path, result))
        if result.is_valid:
            logger.info("Image %s validated as %s", path, result.format)
        else:
            logger.info("Image %s is not valid: %s", path, "; ".join(result.errors))


__all__ = ["ImageSelector", "ValidationGate", "ValidationKey"]
