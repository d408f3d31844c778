"""
Translation Server HTTP Client

Async httpx client for the translation server's file and translation
endpoints. Every failure surfaces as core.batch.errors.TransportError
carrying the server's `error` text when the body has one.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote, unquote

import httpx
from pydantic import ValidationError

from core.batch.errors import TransportError
from .models import FileMetadata, TranslationAck, UploadResult, parse_metadata_list

logger = logging.getLogger(__name__)


def _server_message(response: httpx.Response) -> Optional[str]:
    """Extract {"error": "..."} (or "message") from an error body."""
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text or None
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            if body.get(key):
                return str(body[key])
    return None


def _filename_from_disposition(header: Optional[str]) -> Optional[str]:
    """Parse `attachment; filename*=UTF-8''name` (RFC 5987) or filename="name"."""
    if not header:
        return None
    for part in header.split(";"):
        part = part.strip()
        if part.lower().startswith("filename*="):
            value = part.split("=", 1)[1]
            if "''" in value:
                value = value.split("''", 1)[1]
            return unquote(value)
    for part in header.split(";"):
        part = part.strip()
        if part.lower().startswith("filename="):
            return part.split("=", 1)[1].strip('"')
    return None


class TranslationApiClient:
    """
    Client for the translation server REST API.

    Usage:
        async with TranslationApiClient("http://localhost:8080/api") as client:
            files = await client.list_metadata()
            await client.start_translation("a.svg", correlation_id)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        translate_timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            base_url: API root, e.g. http://localhost:8080/api
            timeout: Timeout for ordinary requests
            translate_timeout: Timeout for the start-translation request
                (None = no timeout; the server replies when it finishes)
            http_client: Pre-built client (tests inject MockTransport here)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.translate_timeout = translate_timeout
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
        )

    @property
    def http_client(self) -> httpx.AsyncClient:
        return self._client

    async def __aenter__(self) -> "TranslationApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            server_message = _server_message(e.response)
            logger.error(
                f"{method} {path} failed: HTTP {e.response.status_code}"
                + (f" - {server_message}" if server_message else "")
            )
            raise TransportError(
                f"{method} {path} failed with HTTP {e.response.status_code}",
                status_code=e.response.status_code,
                server_message=server_message,
            ) from e
        except httpx.RequestError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise TransportError(f"{method} {path} failed: {e}") from e

    # ---------- metadata ----------

    async def list_metadata(self) -> List[FileMetadata]:
        """GET /files/metadata"""
        response = await self._request("GET", "/files/metadata")
        try:
            payload = response.json()
        except ValueError as e:
            raise TransportError(f"Metadata payload is not JSON: {e}") from e
        if not isinstance(payload, list):
            raise TransportError("Unexpected metadata payload (expected a list)")
        try:
            return parse_metadata_list(payload)
        except ValidationError as e:
            logger.error(f"Malformed metadata listing: {e}")
            raise TransportError(f"Malformed metadata listing: {e}") from e

    # ---------- translation ----------

    async def start_translation(self, file_name: str, correlation_id: str) -> TranslationAck:
        """POST /translate-file; progress is pushed on the correlation id."""
        response = await self._request(
            "POST",
            "/translate-file",
            json={"fileName": file_name, "clientId": correlation_id},
            timeout=self.translate_timeout,
        )
        try:
            return TranslationAck.model_validate(response.json())
        except ValueError:
            return TranslationAck()

    # ---------- files ----------

    async def upload_file(self, path: Path) -> UploadResult:
        """POST /files/target (multipart)"""
        path = Path(path)
        with path.open("rb") as handle:
            response = await self._request(
                "POST",
                "/files/target",
                files={"file": (path.name, handle.read())},
            )
        return UploadResult.model_validate(response.json())

    async def download_translated(self, file_name: str) -> Tuple[str, bytes]:
        """
        GET /download/translated/{fileName} - latest translated version.

        Returns:
            (server file name, content)
        """
        response = await self._request(
            "GET", f"/download/translated/{quote(file_name, safe='')}"
        )
        name = _filename_from_disposition(response.headers.get("content-disposition"))
        return name or file_name, response.content

    async def delete_batch(self, file_names: List[str]) -> Dict[str, Any]:
        """POST /files/batch-delete"""
        response = await self._request(
            "POST",
            "/files/batch-delete",
            json={"fileNames": list(file_names)},
        )
        try:
            return response.json()
        except ValueError:
            return {}
