import json
from typing import Any

import httpx

from bol_triage.extraction.client_base import BaseExtractionClient
from bol_triage.extraction.exceptions import (
    ExtractionError,
    ExtractionNetworkError,
    ExtractorNotConfiguredError,
)


class XTractFlowClientAdapter(BaseExtractionClient):
    """Client for the XTractFlow document-AI HTTP API."""

    name = "xtractflow"

    def __init__(
        self,
        *,
        api_url: str,
        api_key: str,
        classify_timeout_seconds: int = 30,
        extract_timeout_seconds: int = 45,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_url or not api_key:
            raise ExtractorNotConfiguredError("XTractFlow API URL and API key are required")
        self._api_url = api_url.rstrip("/")
        self._api_key = api_key
        self._classify_timeout = classify_timeout_seconds
        self._extract_timeout = extract_timeout_seconds
        self._transport = transport

    async def classify(
        self,
        *,
        content: bytes,
        filename: str,
        mime_type: str,
        categories: list[str],
    ) -> dict[str, Any]:
        return await self._post(
            "/api/classify",
            files={"document": (filename, content, mime_type)},
            data={"categories": json.dumps(categories)},
            timeout=self._classify_timeout,
        )

    async def extract(
        self,
        *,
        content: bytes,
        filename: str,
        mime_type: str,
        instructions: str,
    ) -> dict[str, Any]:
        return await self._post(
            "/api/extract/natural",
            files={"document": (filename, content, mime_type)},
            data={"natural_language_query": instructions},
            timeout=self._extract_timeout,
        )

    async def ping(self) -> None:
        async with self._client(self._classify_timeout) as client:
            try:
                response = await client.get(f"{self._api_url}/health")
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise ExtractionNetworkError(f"XTractFlow health check failed: {exc}") from exc

    async def _post(
        self,
        path: str,
        *,
        files: dict[str, tuple[str, bytes, str]],
        data: dict[str, str],
        timeout: int,
    ) -> dict[str, Any]:
        async with self._client(timeout) as client:
            try:
                response = await client.post(f"{self._api_url}{path}", files=files, data=data)
                response.raise_for_status()
            except httpx.TimeoutException as exc:
                raise ExtractionNetworkError(f"XTractFlow request to {path} timed out") from exc
            except httpx.HTTPStatusError as exc:
                raise ExtractionNetworkError(
                    f"XTractFlow returned HTTP {exc.response.status_code} for {path}"
                ) from exc
            except httpx.RequestError as exc:
                raise ExtractionNetworkError(f"XTractFlow network error: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise ExtractionError(f"XTractFlow returned invalid JSON for {path}") from exc
        if not isinstance(body, dict):
            raise ExtractionError(f"XTractFlow response for {path} must be an object")
        return body

    def _client(self, timeout: int) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout,
            headers={"Authorization": f"Bearer {self._api_key}"},
            transport=self._transport,
        )
