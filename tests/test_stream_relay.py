"""Tests for relaying provider events."""

import asyncio
from collections.abc import AsyncIterator

import pytest

from docchat.domain.streaming import Delta, Done, ProviderError, StreamEvent, UsageOnly
from docchat.domain.usage import UsageInfo
from docchat.errors import ModelCallFailed
from docchat.services.relay import StreamRelay


class _Events:
    def __init__(self, events: list[StreamEvent]) -> None:
        self._events = iter(events)
        self.closed = False

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        return self

    async def __anext__(self) -> StreamEvent:
        try:
            return next(self._events)
        except StopIteration:
            raise StopAsyncIteration from None

    async def aclose(self) -> None:
        self.closed = True


async def _collect(relay: StreamRelay, events: _Events) -> list[str]:
    return [chunk async for chunk in relay.relay(events)]


def test_relay_yields_text_and_captures_last_usage() -> None:
    first = UsageInfo(prompt_tokens=1, completion_tokens=1, total_tokens=2)
    last = UsageInfo(prompt_tokens=5, completion_tokens=3, total_tokens=8)
    events = _Events(
        [
            Delta(text="Hel", usage=first),
            Delta(text=""),
            Delta(text="lo"),
            UsageOnly(usage=last),
            Done(),
            Delta(text="ignored"),
        ]
    )
    relay = StreamRelay()

    chunks = asyncio.run(_collect(relay, events))

    assert chunks == ["Hel", "lo"]
    assert relay.result.full_text == "Hello"
    assert relay.result.usage == last
    assert events.closed


def test_relay_completes_on_exhaustion() -> None:
    relay = StreamRelay()

    chunks = asyncio.run(_collect(relay, _Events([Delta(text="only")])))

    assert chunks == ["only"]
    assert relay.result.full_text == "only"
    assert relay.result.usage is None


def test_provider_error_discards_buffer() -> None:
    events = _Events([Delta(text="partial"), ProviderError(message="boom")])
    relay = StreamRelay()

    with pytest.raises(ModelCallFailed):
        asyncio.run(_collect(relay, events))

    assert events.closed
    with pytest.raises(RuntimeError):
        _ = relay.result


def test_closing_early_closes_provider_stream() -> None:
    events = _Events([Delta(text="a"), Delta(text="b"), Done()])
    relay = StreamRelay()

    async def _first_chunk() -> str:
        chunks = relay.relay(events)
        chunk = await anext(chunks)
        await chunks.aclose()
        return chunk

    assert asyncio.run(_first_chunk()) == "a"
    assert events.closed
    assert not relay.completed
