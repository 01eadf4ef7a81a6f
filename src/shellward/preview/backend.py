"""Remote preview analyzer client."""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from shellward.preview.models import CommandPreview

PREVIEW_ENDPOINT = "/api/command/preview"


class PreviewBackend(Protocol):
    async def preview(self, command: str, cwd: str) -> CommandPreview: ...


class HttpPreviewBackend:
    """Posts ``{command, cwd}`` to a preview endpoint and parses the reply.

    Errors (connection, HTTP status, malformed payload) propagate; the preview
    service turns them into a silent local fallback.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 2.5,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout_s)
        return self._client

    async def preview(self, command: str, cwd: str) -> CommandPreview:
        client = self._get_client()
        response = await client.post(
            self.base_url + PREVIEW_ENDPOINT,
            json={"command": command, "cwd": cwd},
            timeout=self.timeout_s,
        )
        response.raise_for_status()
        payload: Any = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"Unexpected preview payload type: {type(payload).__name__}")
        return CommandPreview.model_validate({"command": command, "cwd": cwd, **payload})

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
