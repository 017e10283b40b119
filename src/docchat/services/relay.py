"""Forwarding of incremental model output to the caller."""

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from docchat.domain.streaming import Delta, Done, ProviderError, StreamEvent, UsageOnly
from docchat.domain.usage import UsageInfo
from docchat.errors import ModelCallFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelayResult:
    """Accumulated answer of a completed stream."""

    full_text: str
    usage: UsageInfo | None


@dataclass
class StreamRelay:
    """Consumes one provider stream exactly once.

    Text is yielded as soon as it arrives and kept for persistence. The buffer
    is dropped when the provider reports an error, so a partial answer can
    never be read back through ``result``.
    """

    _parts: list[str] = field(default_factory=list)
    _usage: UsageInfo | None = None
    completed: bool = False

    async def relay(self, events: AsyncIterator[StreamEvent]) -> AsyncIterator[str]:
        """Yield text deltas until the provider finishes."""
        try:
            async for event in events:
                match event:
                    case Delta(text=text, usage=usage):
                        self._capture_usage(usage)
                        if text:
                            self._parts.append(text)
                            yield text
                    case UsageOnly(usage=usage):
                        self._capture_usage(usage)
                    case Done():
                        break
                    case ProviderError(message=message):
                        self._parts.clear()
                        raise ModelCallFailed(message)
            self.completed = True
        except (GeneratorExit, asyncio.CancelledError):
            self._parts.clear()
            logger.warning("Output stream closed before the model finished")
            raise
        finally:
            await close_events(events)

    @property
    def result(self) -> RelayResult:
        if not self.completed:
            raise RuntimeError("Stream has not completed")
        return RelayResult(full_text="".join(self._parts), usage=self._usage)

    def _capture_usage(self, usage: UsageInfo | None) -> None:
        if usage is not None:
            self._usage = usage


async def close_events(events: AsyncIterator[StreamEvent]) -> None:
    """Close a provider event iterator if it supports closing."""
    aclose = getattr(events, "aclose", None)
    if aclose is not None:
        await aclose()
