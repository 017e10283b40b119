"""Models for OCR'd document context."""

from pydantic import BaseModel, ConfigDict, Field


class PageImage(BaseModel):
    """Image extracted from a page, with its bounding box when known."""

    model_config = ConfigDict(frozen=True)

    id: str
    top_left_x: int | None = None
    top_left_y: int | None = None
    bottom_right_x: int | None = None
    bottom_right_y: int | None = None
    image_base64: str | None = None


class DocumentPage(BaseModel):
    """Recognized content of a single page."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    markdown: str
    images: tuple[PageImage, ...] = ()


class DocumentUsage(BaseModel):
    """Processing counters for one document."""

    model_config = ConfigDict(frozen=True)

    pages_processed: int = Field(default=0, ge=0)
    doc_size_bytes: int | None = Field(default=None, ge=0)


class DocumentContext(BaseModel):
    """Immutable OCR result of one uploaded file."""

    model_config = ConfigDict(frozen=True)

    source_name: str
    model: str | None = None
    pages: tuple[DocumentPage, ...] = ()
    usage: DocumentUsage = DocumentUsage()

    @property
    def page_count(self) -> int:
        return len(self.pages)
