"""OpenAI Responses API client for document text recognition."""

import base64
import json
import logging
from dataclasses import dataclass
from pathlib import Path

from openai import AsyncOpenAI

from docchat.services.extraction import OcrClient

logger = logging.getLogger(__name__)


@dataclass
class OpenAIOcrClient(OcrClient):
    """OCR client that asks a vision model for a per-page Markdown transcript.

    Images are sent inline as data URLs. Other files are uploaded through the
    Files API for the duration of the call and deleted afterwards.
    """

    client: AsyncOpenAI
    store: bool = False

    @classmethod
    def create(cls, api_key: str, store: bool = False) -> "OpenAIOcrClient":
        """Create an OpenAI OCR client."""
        return cls(client=AsyncOpenAI(api_key=api_key), store=store)

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
        """Call OpenAI Responses API with structured outputs."""
        file_bytes = file_path.read_bytes()
        if mime_type.startswith("image/"):
            data_url = _to_data_url(file_bytes, mime_type)
            payload = await self._request(
                model=model,
                schema=schema,
                content=[
                    {"type": "input_text", "text": prompt},
                    {"type": "input_image", "image_url": data_url},
                ],
            )
            if include_images:
                _attach_source_image(payload, file_name, data_url)
            return payload

        uploaded = await self.client.files.create(
            file=(file_name, file_bytes), purpose="user_data"
        )
        try:
            return await self._request(
                model=model,
                schema=schema,
                content=[
                    {"type": "input_text", "text": prompt},
                    {"type": "input_file", "file_id": uploaded.id},
                ],
            )
        finally:
            await self._delete_upload(uploaded.id)

    async def close(self) -> None:
        """Release the underlying HTTP connections."""
        await self.client.close()

    async def _request(
        self,
        *,
        model: str,
        schema: dict[str, object],
        content: list[dict[str, object]],
    ) -> dict[str, object]:
        response = await self.client.responses.create(
            model=model,
            input=[{"role": "user", "content": content}],
            text={
                "format": {
                    "type": "json_schema",
                    "name": "document_pages",
                    "strict": True,
                    "schema": schema,
                }
            },
            store=self.store,
        )
        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty response")
        payload = json.loads(output_text)
        if not isinstance(payload, dict):
            raise RuntimeError("OpenAI returned a non-object response")
        payload.setdefault("model", getattr(response, "model", None) or model)
        return payload

    async def _delete_upload(self, file_id: str) -> None:
        try:
            await self.client.files.delete(file_id)
        except Exception:
            logger.warning("Failed to delete uploaded file", extra={"file_id": file_id})


def _to_data_url(file_bytes: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(file_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _attach_source_image(
    payload: dict[str, object], file_name: str, data_url: str
) -> None:
    """Attach the uploaded image itself to the first recognized page."""
    pages = payload.get("pages")
    if not isinstance(pages, list):
        return
    if not pages:
        pages.append({"index": 0, "markdown": ""})
    first = pages[0]
    if isinstance(first, dict):
        first.setdefault("images", []).append(
            {"id": file_name, "image_base64": data_url}
        )
