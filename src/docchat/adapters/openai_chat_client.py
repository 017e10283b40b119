"""OpenAI client for streamed chat and structured JSON answers."""

import re
from collections.abc import AsyncIterator
from dataclasses import dataclass

from openai import AsyncOpenAI, OpenAIError

from docchat.domain.chat import ChatMessage, ImagePart, TextPart
from docchat.domain.streaming import Delta, Done, ProviderError, StreamEvent, UsageOnly
from docchat.domain.usage import UsageInfo
from docchat.services.chat import ChatModelClient, JsonCompletion

_CODE_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


@dataclass
class OpenAIChatClient(ChatModelClient):
    """Chat client backed by OpenAI Chat Completions and Responses APIs."""

    client: AsyncOpenAI
    store: bool = False

    @classmethod
    def create(cls, api_key: str, store: bool = False) -> "OpenAIChatClient":
        """Create an OpenAI chat client."""
        return cls(client=AsyncOpenAI(api_key=api_key), store=store)

    async def stream_chat(
        self, *, model: str, messages: list[ChatMessage]
    ) -> AsyncIterator[StreamEvent]:
        """Stream a completion as typed events, ending with Done or ProviderError."""
        try:
            stream = await self.client.chat.completions.create(
                model=model,
                messages=[_to_chat_message(message) for message in messages],
                stream=True,
                stream_options={"include_usage": True},
                store=self.store,
            )
        except OpenAIError as exc:
            yield ProviderError(message=str(exc))
            return

        try:
            async for chunk in stream:
                usage = _chat_usage(chunk.usage)
                text = "".join(
                    choice.delta.content or ""
                    for choice in chunk.choices
                    if choice.delta is not None
                )
                if text:
                    yield Delta(text=text, usage=usage)
                elif usage is not None:
                    yield UsageOnly(usage=usage)
        except OpenAIError as exc:
            yield ProviderError(message=str(exc))
            return
        finally:
            await stream.close()
        yield Done()

    async def complete_json(
        self, *, model: str, messages: list[ChatMessage], schema: dict[str, object]
    ) -> JsonCompletion:
        """Call OpenAI Responses API with structured outputs."""
        response = await self.client.responses.create(
            model=model,
            input=[_to_response_message(message) for message in messages],
            text={
                "format": {
                    "type": "json_schema",
                    "name": "document_analysis",
                    "strict": True,
                    "schema": schema,
                }
            },
            store=self.store,
        )
        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty response")
        return JsonCompletion(
            text=strip_code_fence(output_text),
            usage=_response_usage(getattr(response, "usage", None)),
        )

    async def close(self) -> None:
        """Release the underlying HTTP connections."""
        await self.client.close()


def strip_code_fence(text: str) -> str:
    """Return the body of a Markdown code fence, or the text unchanged."""
    match = _CODE_FENCE.search(text)
    if match is None:
        return text.strip()
    return match.group(1).strip()


def _to_chat_message(message: ChatMessage) -> dict[str, object]:
    if isinstance(message.content, str):
        return {"role": message.role, "content": message.content}
    content: list[dict[str, object]] = []
    for part in message.content:
        if isinstance(part, TextPart):
            content.append({"type": "text", "text": part.text})
        elif isinstance(part, ImagePart):
            content.append({"type": "image_url", "image_url": {"url": part.data_url}})
    return {"role": message.role, "content": content}


def _to_response_message(message: ChatMessage) -> dict[str, object]:
    if isinstance(message.content, str):
        return {"role": message.role, "content": message.content}
    content: list[dict[str, object]] = []
    for part in message.content:
        if isinstance(part, TextPart):
            content.append({"type": "input_text", "text": part.text})
        elif isinstance(part, ImagePart):
            content.append({"type": "input_image", "image_url": part.data_url})
    return {"role": message.role, "content": content}


def _chat_usage(usage: object | None) -> UsageInfo | None:
    if usage is None:
        return None
    return UsageInfo(
        prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
        completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
        total_tokens=getattr(usage, "total_tokens", 0) or 0,
    )


def _response_usage(usage: object | None) -> UsageInfo | None:
    if usage is None:
        return None
    return UsageInfo(
        prompt_tokens=getattr(usage, "input_tokens", 0) or 0,
        completion_tokens=getattr(usage, "output_tokens", 0) or 0,
        total_tokens=getattr(usage, "total_tokens", 0) or 0,
    )
