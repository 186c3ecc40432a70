import asyncio
import base64
import json
from typing import Any

import httpx
import openai

from bol_triage.extraction.client_base import BaseExtractionClient
from bol_triage.extraction.exceptions import (
    ExtractionError,
    ExtractionNetworkError,
    ExtractorNotConfiguredError,
)
from bol_triage.extraction.prompt_loader import load_prompt, load_schema
from bol_triage.pdf.base import BasePdfExtractor, render_pages
from bol_triage.pdf.exceptions import PdfExtractionError

_IMAGE_MIME_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/tiff"})


class OpenAIClientAdapter(BaseExtractionClient):
    """Document-AI client built on an OpenAI-compatible chat API.

    PDFs are sent as page-marked text; images are sent inline as data URLs.
    """

    name = "openai"

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_seconds: int,
        pdf_extractor: BasePdfExtractor,
        base_url: str | None = None,
    ) -> None:
        if not api_key or not model:
            raise ExtractorNotConfiguredError("OpenAI API key and model name are required")
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )
        self._model = model
        self._pdf_extractor = pdf_extractor
        self._classification_template = load_prompt("classification_prompt.txt")
        self._extraction_template = load_prompt("extraction_prompt.txt")
        self._classification_schema = load_schema("classification_schema.json")
        self._extraction_schema = load_schema("extraction_schema.json")

    async def classify(
        self,
        *,
        content: bytes,
        filename: str,
        mime_type: str,
        categories: list[str],
    ) -> dict[str, Any]:
        text = await self._document_text(content, mime_type)
        prompt = self._classification_template.format(
            categories=", ".join(categories),
            document_text=text,
        )
        raw = await self._complete(
            prompt, content, mime_type, "classification", self._classification_schema
        )
        return _parse_json(raw)

    async def extract(
        self,
        *,
        content: bytes,
        filename: str,
        mime_type: str,
        instructions: str,
    ) -> dict[str, Any]:
        text = await self._document_text(content, mime_type)
        prompt = self._extraction_template.format(
            instructions=instructions,
            json_schema=json.dumps(self._extraction_schema),
            document_text=text,
        )
        raw = await self._complete(prompt, content, mime_type, "bol_extraction", self._extraction_schema)
        return _parse_json(raw)

    async def ping(self) -> None:
        try:
            await self._client.models.retrieve(self._model)
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ExtractionNetworkError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise ExtractionNetworkError(f"AI provider API error: {exc}") from exc

    async def _document_text(self, content: bytes, mime_type: str) -> str:
        if mime_type in _IMAGE_MIME_TYPES:
            return "(see attached image)"
        if mime_type != "application/pdf":
            raise ExtractionError(f"Unsupported MIME type for text extraction: {mime_type}")
        try:
            pages = await asyncio.to_thread(self._pdf_extractor.extract_pages, content)
        except PdfExtractionError as exc:
            raise ExtractionError(str(exc)) from exc
        if not any(page.strip() for page in pages):
            raise ExtractionError("PDF has no text layer")
        return render_pages(pages)

    async def _complete(
        self,
        prompt: str,
        content: bytes,
        mime_type: str,
        schema_name: str,
        schema: dict[str, Any],
    ) -> str:
        user_content: Any = prompt
        if mime_type in _IMAGE_MIME_TYPES:
            data_url = f"data:{mime_type};base64,{base64.b64encode(content).decode('ascii')}"
            user_content = [
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": data_url}},
            ]
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                temperature=0.0,
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": schema_name, "strict": True, "schema": schema},
                },
                messages=[{"role": "user", "content": user_content}],
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ExtractionNetworkError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise ExtractionNetworkError(f"AI provider API error: {exc}") from exc

        if not response.choices:
            raise ExtractionError("AI returned no choices")
        message_content = response.choices[0].message.content
        if message_content is None:
            raise ExtractionError("AI returned empty response")
        return message_content


def _parse_json(raw: str) -> dict[str, Any]:
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        lines = cleaned.splitlines()[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = "\n".join(lines)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ExtractionError(f"Invalid JSON response: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ExtractionError("JSON response must be an object")
    return parsed
