"""Document context extraction using an OCR-capable model."""

import logging
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field, ValidationError

from docchat.domain.documents import (
    DocumentContext,
    DocumentPage,
    DocumentUsage,
    PageImage,
)
from docchat.errors import DocumentProcessingFailed
from docchat.prompts import OCR_PROMPT
from docchat.services.storage import guess_mime_type

logger = logging.getLogger(__name__)

OCR_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "pages": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "index": {"type": "integer", "minimum": 0},
                    "markdown": {"type": "string"},
                },
                "required": ["index", "markdown"],
                "additionalProperties": False,
            },
        }
    },
    "required": ["pages"],
    "additionalProperties": False,
}


class OcrClient(Protocol):
    """Interface for model-backed text recognition."""

    async def recognize(  # noqa: PLR0913
        self,
        *,
        model: str,
        file_path: Path,
        file_name: str,
        mime_type: str,
        include_images: bool,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Return the raw page payload for the file at file_path."""


class _OcrImage(BaseModel):
    id: str
    top_left_x: int | None = None
    top_left_y: int | None = None
    bottom_right_x: int | None = None
    bottom_right_y: int | None = None
    image_base64: str | None = None


class _OcrPage(BaseModel):
    index: int = Field(ge=0)
    markdown: str = ""
    images: list[_OcrImage] = Field(default_factory=list)


class _OcrPayload(BaseModel):
    pages: list[_OcrPage]
    model: str | None = None


@dataclass
class DocumentExtractor:
    """Turns raw file bytes into an immutable DocumentContext."""

    client: OcrClient
    model: str
    prompt: str = OCR_PROMPT

    async def extract(
        self,
        file_bytes: bytes,
        source_name: str,
        include_images: bool = False,
        mime_type: str | None = None,
    ) -> DocumentContext:
        """Recognize one file.

        The bytes are staged on disk for the OCR client and the staged copy is
        removed on every exit path. Any recognition or validation failure is
        raised as DocumentProcessingFailed; retrying is left to the caller.
        """
        with _staged_copy(file_bytes, source_name) as staged_path:
            try:
                raw = await self.client.recognize(
                    model=self.model,
                    file_path=staged_path,
                    file_name=source_name,
                    mime_type=mime_type or guess_mime_type(source_name),
                    include_images=include_images,
                    schema=OCR_SCHEMA,
                    prompt=self.prompt,
                )
                payload = _OcrPayload.model_validate(raw)
            except ValidationError as exc:
                raise DocumentProcessingFailed(
                    source_name, "OCR returned an unexpected payload"
                ) from exc
            except Exception as exc:
                raise DocumentProcessingFailed(source_name, str(exc)) from exc

        document = _to_document_context(
            payload, source_name, len(file_bytes), include_images, self.model
        )
        logger.info(
            "Extracted document",
            extra={"source_name": source_name, "pages": document.page_count},
        )
        return document


@contextmanager
def _staged_copy(file_bytes: bytes, source_name: str) -> Iterator[Path]:
    """Write bytes to a private temporary directory for the duration of a call."""
    with tempfile.TemporaryDirectory(prefix="docchat-") as directory:
        staged_path = Path(directory) / _safe_file_name(source_name)
        staged_path.write_bytes(file_bytes)
        yield staged_path


def _safe_file_name(source_name: str) -> str:
    name = Path(source_name).name.strip()
    return name or "document"


def _to_document_context(
    payload: _OcrPayload,
    source_name: str,
    size_bytes: int,
    include_images: bool,
    default_model: str,
) -> DocumentContext:
    pages = tuple(
        DocumentPage(
            index=page.index,
            markdown=page.markdown,
            images=tuple(
                PageImage(
                    id=image.id,
                    top_left_x=image.top_left_x,
                    top_left_y=image.top_left_y,
                    bottom_right_x=image.bottom_right_x,
                    bottom_right_y=image.bottom_right_y,
                    image_base64=image.image_base64 if include_images else None,
                )
                for image in page.images
            ),
        )
        for page in sorted(payload.pages, key=lambda page: page.index)
    )
    return DocumentContext(
        source_name=source_name,
        model=payload.model or default_model,
        pages=pages,
        usage=DocumentUsage(pages_processed=len(pages), doc_size_bytes=size_bytes),
    )
