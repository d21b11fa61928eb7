"""Tests for NotificationDispatcher."""

from unittest.mock import AsyncMock

import pytest

from steer.models import Level, NotificationEvent
from steer.services.notify import NotificationDispatcher


@pytest.mark.asyncio
async def test_level_filtering(channel_factory):
    verbose = channel_factory(Level.DEBUG)
    quiet = channel_factory(Level.WARN)
    dispatcher = NotificationDispatcher([verbose, quiet])

    await dispatcher.info("starting")
    await dispatcher.warn("slow host", component="web2")
    delivered = await dispatcher.debug("detail")

    assert delivered == 1
    assert verbose.messages() == ["starting", "web2: slow host", "detail"]
    assert quiet.messages() == ["web2: slow host"]


@pytest.mark.asyncio
async def test_failing_channel_does_not_block_others(channel_factory, caplog):
    broken = channel_factory()
    broken.deliver = AsyncMock(side_effect=ConnectionResetError("irc went away"))
    healthy = channel_factory()
    dispatcher = NotificationDispatcher([broken, healthy])

    delivered = await dispatcher.error("web1 failed")

    assert delivered == 1
    assert healthy.messages() == ["web1 failed"]
    assert dispatcher.get_error_stats() == {"memory": 1}
    assert "irc went away" in caplog.text


@pytest.mark.asyncio
async def test_channel_failing_to_open_is_disabled(channel_factory):
    broken = channel_factory()
    broken.open = AsyncMock(side_effect=OSError("cannot open log"))
    dispatcher = NotificationDispatcher([broken])

    await dispatcher.open()
    assert await dispatcher.info("hello") == 0
    await dispatcher.close()

    assert broken.events == []
    assert broken.flushed == 0
    assert broken.closed


@pytest.mark.asyncio
async def test_close_flushes_then_closes_every_channel(channel_factory):
    first = channel_factory()
    first.flush = AsyncMock(side_effect=RuntimeError("smtp down"))
    second = channel_factory()
    dispatcher = NotificationDispatcher([first, second])

    await dispatcher.open()
    await dispatcher.close()

    assert first.closed
    assert second.flushed == 1
    assert second.closed
    assert dispatcher.get_error_stats() == {"memory": 1}


@pytest.mark.asyncio
async def test_dispatch_preserves_event(channel_factory):
    channel = channel_factory()
    dispatcher = NotificationDispatcher()
    dispatcher.add_channel(channel)
    event = NotificationEvent(Level.FATAL, "lock held", component="steer")

    await dispatcher.dispatch(event)

    assert channel.events == [event]
