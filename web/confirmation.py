"""Confirmation prompts answered over HTTP.

A write started through the API waits on a pending confirmation until a
client answers it with ``POST /write/confirmation``. At most one prompt
is pending at a time.
"""

import asyncio
import logging

from gosh_usb.core.orchestrator import ConfirmationPrompt

logger = logging.getLogger(__name__)


class PendingConfirmation:
    """Confirm callable backed by a future resolved by an API request."""

    def __init__(self) -> None:
        self.prompt: ConfirmationPrompt | None = None
        self._future: asyncio.Future[bool] | None = None

    @property
    def pending(self) -> bool:
        return self._future is not None and not self._future.done()

    def open(self, prompt: ConfirmationPrompt) -> None:
        """Register a prompt ahead of the orchestrator asking it."""
        self.prompt = prompt
        self._future = asyncio.get_running_loop().create_future()

    def answer(self, confirmed: bool) -> bool:
        """Resolve the pending prompt.

        Returns:
            False if no prompt was pending.
        """
        if not self.pending:
            return False
        assert self._future is not None
        self._future.set_result(confirmed)
        logger.info("Write confirmation answered: %s", confirmed)
        return True

    async def __call__(self, prompt: ConfirmationPrompt) -> bool:
        # Reuse the future opened by the request handler, even if already answered
        if self._future is None:
            self.open(prompt)
        assert self._future is not None
        try:
            return await self._future
        finally:
            self.prompt = None
            self._future = None


__all__ = ["PendingConfirmation"]
