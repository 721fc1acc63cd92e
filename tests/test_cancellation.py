"""Tests for the cooperative cancellation token."""

import asyncio

from screenplay_narrator.cancellation import CancellationToken


def test_token_starts_uncancelled():
    assert not CancellationToken().is_cancelled


def test_cancel_is_monotonic():
    token = CancellationToken()
    token.cancel()
    token.cancel()
    assert token.is_cancelled


def test_wait_returns_after_cancel():
    async def scenario():
        token = CancellationToken()
        waiter = asyncio.create_task(token.wait())
        await asyncio.sleep(0.01)
        assert not waiter.done()
        token.cancel()
        await asyncio.wait_for(waiter, timeout=1)

    asyncio.run(scenario())


def test_wait_on_already_cancelled_token():
    async def scenario():
        token = CancellationToken()
        token.cancel()
        await asyncio.wait_for(token.wait(), timeout=1)

    asyncio.run(scenario())
