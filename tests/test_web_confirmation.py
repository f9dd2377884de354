"""Tests for confirmation prompts answered over HTTP."""

import asyncio

import pytest

from gosh_usb.core import ConfirmationPrompt
from web.confirmation import PendingConfirmation

PROMPT = ConfirmationPrompt("This will erase all data on Stick (1.0 GB). Continue?")


class TestPendingConfirmation:
    """Tests for PendingConfirmation."""

    @pytest.mark.asyncio
    async def test_answer_resolves_waiter(self):
        confirmation = PendingConfirmation()
        waiter = asyncio.create_task(confirmation(PROMPT))
        await asyncio.sleep(0)

        assert confirmation.pending
        assert confirmation.prompt == PROMPT
        assert confirmation.answer(True) is True
        assert await waiter is True
        assert confirmation.prompt is None
        assert not confirmation.pending

    @pytest.mark.asyncio
    async def test_answer_before_waiter_runs(self):
        """An answer given before the write task awaits it is not lost."""
        confirmation = PendingConfirmation()
        confirmation.open(PROMPT)
        assert confirmation.answer(False) is True

        assert await confirmation(PROMPT) is False

    @pytest.mark.asyncio
    async def test_answer_without_prompt(self):
        confirmation = PendingConfirmation()
        assert confirmation.answer(True) is False

    @pytest.mark.asyncio
    async def test_second_answer_rejected(self):
        confirmation = PendingConfirmation()
        confirmation.open(PROMPT)
        assert confirmation.answer(True) is True
        assert confirmation.answer(False) is False
        assert await confirmation(PROMPT) is True
