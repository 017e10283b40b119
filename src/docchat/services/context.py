"""Assembly of the ordered message list sent to the model."""

import base64
import binascii
from collections.abc import Iterable, Sequence

from docchat.domain.chat import ChatMessage, ContentPart, ImagePart, TextPart
from docchat.domain.documents import DocumentContext, PageImage


def merge_context(
    system_prompt: str,
    prior_messages: Sequence[ChatMessage],
    existing_documents: Sequence[DocumentContext],
    new_documents: Sequence[DocumentContext],
    user_text: str,
) -> list[ChatMessage]:
    """Build the provider message list for one turn.

    The result starts with a single system message, followed by the prior
    history and the new user message. Document context is inserted directly
    before that final user message so the question stays the most recent turn.
    Identical inputs always produce identical output.
    """
    messages = [ChatMessage.system(system_prompt)]
    messages.extend(message for message in prior_messages if message.role != "system")
    messages.append(ChatMessage.user(user_text))

    context = document_messages([*existing_documents, *new_documents])
    return [*messages[:-1], *context, messages[-1]]


def document_messages(documents: Iterable[DocumentContext]) -> list[ChatMessage]:
    """Synthesize one user message per document that has pages."""
    return [
        ChatMessage.user(_document_parts(document))
        for document in documents
        if document.pages
    ]


def _document_parts(document: DocumentContext) -> tuple[ContentPart, ...]:
    name = document.source_name
    parts: list[ContentPart] = [TextPart(text=f"--- Begin document: {name} ---")]
    for page in document.pages:
        if page.markdown:
            parts.append(TextPart(text=page.markdown))
        parts.extend(
            ImagePart(data_url=to_data_url(image.image_base64))
            for image in page.images
            if _has_payload(image)
        )
    parts.append(TextPart(text=f"--- End document: {name} ---"))
    return tuple(parts)


def _has_payload(image: PageImage) -> bool:
    return bool(image.image_base64)


def to_data_url(image_base64: str) -> str:
    """Return the payload as a data URI, adding the prefix when missing."""
    if image_base64.startswith("data:"):
        return image_base64
    return f"data:{_sniff_mime_type(image_base64)};base64,{image_base64}"


def _sniff_mime_type(image_base64: str) -> str:
    """Infer a basic image MIME type from the decoded file signature."""
    try:
        header = base64.b64decode(image_base64[:24], validate=False)
    except (binascii.Error, ValueError):
        return "image/jpeg"
    if header.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if header[:4] == b"RIFF" and header[8:12] == b"WEBP":
        return "image/webp"
    if header.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    return "image/jpeg"
