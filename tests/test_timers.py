"""Tests for the resettable timer."""

import asyncio

import pytest

from pworch.core import ResettableTimer


@pytest.mark.unit
class TestResettableTimer:

    @pytest.mark.asyncio
    async def test_fires_once(self):
        fired = []
        timer = ResettableTimer(0.02, lambda: fired.append(True))

        timer.start()
        assert timer.pending
        await asyncio.sleep(0.06)

        assert fired == [True]
        assert not timer.pending

    @pytest.mark.asyncio
    async def test_refresh_postpones(self):
        fired = []
        timer = ResettableTimer(0.05, lambda: fired.append(True))

        timer.refresh()
        for _ in range(4):
            await asyncio.sleep(0.02)
            timer.refresh()

        assert fired == []
        await asyncio.sleep(0.1)
        assert fired == [True]

    @pytest.mark.asyncio
    async def test_cancel(self):
        fired = []
        timer = ResettableTimer(0.02, lambda: fired.append(True))

        timer.start()
        timer.cancel()
        await asyncio.sleep(0.05)

        assert fired == []

    @pytest.mark.asyncio
    async def test_coroutine_callback(self):
        fired = []

        async def callback():
            await asyncio.sleep(0)
            fired.append(True)

        timer = ResettableTimer(0.01, callback)
        timer.start()
        await asyncio.sleep(0.03)
        await timer.wait_fired()

        assert fired == [True]

    @pytest.mark.asyncio
    async def test_failing_callback_is_contained(self):
        def callback():
            raise RuntimeError("boom")

        timer = ResettableTimer(0.01, callback)
        timer.start()
        await asyncio.sleep(0.03)

        assert not timer.pending
