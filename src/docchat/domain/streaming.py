"""Typed events produced by the streaming model provider."""

from dataclasses import dataclass

from docchat.domain.usage import UsageInfo


@dataclass(frozen=True)
class Delta:
    """Incremental text, optionally with usage attached."""

    text: str
    usage: UsageInfo | None = None


@dataclass(frozen=True)
class UsageOnly:
    """Event without content that reports token usage."""

    usage: UsageInfo


@dataclass(frozen=True)
class Done:
    """The provider finished the response."""


@dataclass(frozen=True)
class ProviderError:
    """The provider failed while producing the response."""

    message: str


StreamEvent = Delta | UsageOnly | Done | ProviderError
