"""Tests for the progress channel."""

import pytest

from label_checker.domain.models.events import CompleteEvent, ErrorEvent, ProgressEvent, to_sse
from label_checker.domain.services.progress import ChannelClosedError, ProgressChannel


async def drain(channel: ProgressChannel):
    """Collect every event of a closed channel."""
    return [event async for event in channel]


@pytest.mark.asyncio
async def test_events_end_with_terminal_event():
    """Test iteration stops after the terminal event."""
    channel = ProgressChannel()
    await channel.progress("inizio", 5)
    await channel.progress("testo", 10, {"extracted_text": "OLIO"})
    await channel.complete({"result": "conforme"})

    events = await drain(channel)

    assert [event.type for event in events] == ["progress", "progress", "complete"]
    assert events[1].data == {"extracted_text": "OLIO"}
    assert events[2].progress == 100
    assert channel.closed


@pytest.mark.asyncio
async def test_publish_after_terminal_event_raises():
    """Test nothing can follow the terminal event."""
    channel = ProgressChannel()
    await channel.fail("errore")

    with pytest.raises(ChannelClosedError):
        await channel.progress("tardi", 50)
    with pytest.raises(ChannelClosedError):
        await channel.complete({})

    events = await drain(channel)
    assert len(events) == 1
    assert isinstance(events[0], ErrorEvent)


@pytest.mark.asyncio
async def test_progress_never_decreases():
    """Test a lower percentage is raised to the last published one."""
    channel = ProgressChannel()
    await channel.progress("a", 40)
    await channel.progress("b", 25)
    await channel.progress("c", 120)
    await channel.fail("stop")

    events = await drain(channel)

    assert [event.progress for event in events[:3]] == [40, 40, 100]


def test_sse_encoding():
    """Test events are encoded as SSE data lines without null fields."""
    assert to_sse(ProgressEvent(message="ok", progress=5)) == (
        'data: {"type":"progress","message":"ok","progress":5}\n\n'
    )
    assert to_sse(ErrorEvent(message="no")) == 'data: {"type":"error","message":"no"}\n\n'
    assert to_sse(CompleteEvent(data={})).startswith('data: {"type":"complete"')
