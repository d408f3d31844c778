"""
Tests for api.client (TranslationApiClient) with mocked HTTP.
"""

import json

import httpx
import pytest
import respx

from api.client import TranslationApiClient, _filename_from_disposition
from api.models import FileMetadata, TranslationAck
from core.batch.errors import TransportError

BASE_URL = "http://test/api"


class TestFilenameFromDisposition:

    def test_rfc5987(self):
        header = "attachment; filename*=UTF-8''%E5%9B%B3_translated.svg"
        assert _filename_from_disposition(header) == "図_translated.svg"

    def test_plain(self):
        assert _filename_from_disposition('attachment; filename="a.svg"') == "a.svg"

    def test_missing(self):
        assert _filename_from_disposition(None) is None
        assert _filename_from_disposition("inline") is None


@pytest.mark.asyncio
class TestTranslationApiClient:
    """Client behaviour against mocked endpoints."""

    async def test_list_metadata(self):
        with respx.mock:
            respx.get(f"{BASE_URL}/files/metadata").mock(return_value=httpx.Response(200, json=[
                {
                    "fileName": "a.svg",
                    "translated": True,
                    "uploadedAt": "2025-01-15T10:30:00",
                    "translatedAt": "2025-01-15T10:31:12",
                    "outlined": False,
                    "version": 2,
                },
                {"fileName": "b.svg", "outlined": True},
            ]))

            async with TranslationApiClient(BASE_URL) as client:
                files = await client.list_metadata()

        assert all(isinstance(f, FileMetadata) for f in files)
        assert files[0].file_name == "a.svg"
        assert files[0].version == 2
        assert files[0].uploaded_at.year == 2025
        assert files[1].outlined is True
        assert files[1].translated is False
        assert files[1].translated_at is None

    async def test_list_metadata_rejects_non_list(self):
        with respx.mock:
            respx.get(f"{BASE_URL}/files/metadata").mock(
                return_value=httpx.Response(200, json={"files": []})
            )
            async with TranslationApiClient(BASE_URL) as client:
                with pytest.raises(TransportError):
                    await client.list_metadata()

    async def test_list_metadata_malformed_entry(self):
        with respx.mock:
            respx.get(f"{BASE_URL}/files/metadata").mock(
                return_value=httpx.Response(200, json=[{"translated": "maybe"}])
            )
            async with TranslationApiClient(BASE_URL) as client:
                with pytest.raises(TransportError) as exc_info:
                    await client.list_metadata()

        assert "Malformed metadata listing" in str(exc_info.value)

    async def test_list_metadata_not_json(self):
        with respx.mock:
            respx.get(f"{BASE_URL}/files/metadata").mock(
                return_value=httpx.Response(200, text="<html>")
            )
            async with TranslationApiClient(BASE_URL) as client:
                with pytest.raises(TransportError):
                    await client.list_metadata()

    async def test_http_error_carries_server_message(self):
        with respx.mock:
            respx.get(f"{BASE_URL}/files/metadata").mock(
                return_value=httpx.Response(500, json={"error": "Storage unavailable"})
            )
            async with TranslationApiClient(BASE_URL) as client:
                with pytest.raises(TransportError) as exc_info:
                    await client.list_metadata()

        assert exc_info.value.status_code == 500
        assert exc_info.value.server_message == "Storage unavailable"
        assert exc_info.value.display_message == "Storage unavailable"

    async def test_http_error_plain_text_body(self):
        with respx.mock:
            respx.post(f"{BASE_URL}/translate-file").mock(
                return_value=httpx.Response(502, text="Bad Gateway")
            )
            async with TranslationApiClient(BASE_URL) as client:
                with pytest.raises(TransportError) as exc_info:
                    await client.start_translation("a.svg", "cid-1")

        assert exc_info.value.server_message == "Bad Gateway"

    async def test_connection_error(self):
        with respx.mock:
            respx.get(f"{BASE_URL}/files/metadata").mock(side_effect=httpx.ConnectError)
            async with TranslationApiClient(BASE_URL) as client:
                with pytest.raises(TransportError) as exc_info:
                    await client.list_metadata()

        assert exc_info.value.status_code is None

    async def test_start_translation_body(self):
        with respx.mock:
            route = respx.post(f"{BASE_URL}/translate-file").mock(
                return_value=httpx.Response(200, json={"sessionId": "cid-1", "message": "done"})
            )
            async with TranslationApiClient(BASE_URL) as client:
                ack = await client.start_translation("a.svg", "cid-1")

        assert isinstance(ack, TranslationAck)
        assert ack.session_id == "cid-1"
        body = json.loads(route.calls.last.request.content)
        assert body == {"fileName": "a.svg", "clientId": "cid-1"}

    async def test_start_translation_empty_body(self):
        with respx.mock:
            respx.post(f"{BASE_URL}/translate-file").mock(return_value=httpx.Response(200))
            async with TranslationApiClient(BASE_URL) as client:
                ack = await client.start_translation("a.svg", "cid-1")

        assert ack.session_id is None

    async def test_upload_file(self, tmp_path):
        svg = tmp_path / "diagram.svg"
        svg.write_bytes(b"<svg><text>Hi</text></svg>")

        with respx.mock:
            route = respx.post(f"{BASE_URL}/files/target").mock(
                return_value=httpx.Response(200, json={"fileName": "diagram.svg", "outlined": False})
            )
            async with TranslationApiClient(BASE_URL) as client:
                result = await client.upload_file(svg)

        assert result.file_name == "diagram.svg"
        request = route.calls.last.request
        assert request.headers["content-type"].startswith("multipart/form-data")
        assert b'filename="diagram.svg"' in request.read()

    async def test_download_translated(self):
        with respx.mock:
            route = respx.get(url__regex=rf"^{BASE_URL}/download/translated/").mock(
                return_value=httpx.Response(
                    200,
                    content=b"<svg/>",
                    headers={"Content-Disposition": "attachment; filename*=UTF-8''my%20file_translated.svg"},
                )
            )
            async with TranslationApiClient(BASE_URL) as client:
                name, content = await client.download_translated("my file.svg")

        assert name == "my file_translated.svg"
        assert content == b"<svg/>"
        assert route.calls.last.request.url.raw_path == b"/api/download/translated/my%20file.svg"

    async def test_download_missing(self):
        with respx.mock:
            respx.get(url__regex=rf"^{BASE_URL}/download/translated/").mock(
                return_value=httpx.Response(404, json={"error": "Translated file not found"})
            )
            async with TranslationApiClient(BASE_URL) as client:
                with pytest.raises(TransportError) as exc_info:
                    await client.download_translated("a.svg")

        assert exc_info.value.status_code == 404

    async def test_delete_batch(self):
        with respx.mock:
            route = respx.post(f"{BASE_URL}/files/batch-delete").mock(
                return_value=httpx.Response(200, json={"deleted": 2})
            )
            async with TranslationApiClient(BASE_URL) as client:
                result = await client.delete_batch(["a.svg", "b.svg"])

        assert result == {"deleted": 2}
        assert json.loads(route.calls.last.request.content) == {"fileNames": ["a.svg", "b.svg"]}

    async def test_injected_client_not_closed(self):
        http_client = httpx.AsyncClient(base_url=BASE_URL)
        async with TranslationApiClient(BASE_URL, http_client=http_client):
            pass
        assert http_client.is_closed is False
        await http_client.aclose()
