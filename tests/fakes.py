"""
In-memory test doubles for the translation server.
"""
import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from api.models import FileMetadata, UploadResult
from core.batch.errors import TransportError


DEFAULT_SCRIPT = [
    ("progress", {"message": "Extracting text", "percentage": 30}),
    ("progress", {"message": "Translating", "percentage": 80}),
    ("complete", {}),
]


def make_metadata(
    file_name: str,
    outlined: bool = False,
    translated: bool = False,
    version: Optional[int] = None,
) -> FileMetadata:
    """Build a listing entry the way the server reports it."""
    return FileMetadata.model_validate({
        "fileName": file_name,
        "translated": translated,
        "uploadedAt": "2025-01-15T10:30:00",
        "translatedAt": "2025-01-15T10:31:12" if translated else None,
        "outlined": outlined,
        "version": version,
    })


class FakeStream:
    """Push connection fed through an asyncio.Queue (None ends the stream)."""

    def __init__(self, server: "FakeServer", correlation_id: str):
        self.server = server
        self.correlation_id = correlation_id
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def push(self, name: str, data: Any = None):
        self.queue.put_nowait((name, data))

    def end(self):
        self.queue.put_nowait(None)

    def __aiter__(self):
        return self._events()

    async def _events(self):
        while True:
            item = await self.queue.get()
            if item is None:
                return
            yield item

    async def aclose(self):
        if self.closed:
            return
        self.closed = True
        self.server.open_channels -= 1


class FakeServer:
    """
    In-memory translation server.

    Acts as both the HTTP transport and the push channel provider.
    start_translation replays the scripted events for the file onto the
    channel registered under the request's correlation id.
    """

    def __init__(self, metadata: List[FileMetadata]):
        self.metadata = list(metadata)
        self.scripts: Dict[str, List[Tuple[str, Any]]] = {}
        self.start_failures: Dict[str, BaseException] = {}
        self.connect_failure: Optional[BaseException] = None
        self.list_failure: Optional[BaseException] = None
        self.upload_failure: Optional[BaseException] = None
        self.block_ack = False

        self.calls: List[Tuple[str, Any]] = []
        self.start_requests: List[Tuple[str, str]] = []
        self.streams: Dict[str, FakeStream] = {}
        self.open_channels = 0
        self.max_open_channels = 0
        self.cancelled_starts = 0
        self.uploaded: Dict[str, bytes] = {}
        self.downloads: Dict[str, bytes] = {}

    @property
    def list_calls(self) -> int:
        return sum(1 for name, _ in self.calls if name == "list_metadata")

    @property
    def started_files(self) -> List[str]:
        return [name for name, _ in self.start_requests]

    # ---------- channel provider ----------

    async def connect(self, correlation_id: str) -> FakeStream:
        self.calls.append(("connect", correlation_id))
        if self.connect_failure is not None:
            raise self.connect_failure
        stream = FakeStream(self, correlation_id)
        self.streams[correlation_id] = stream
        self.open_channels += 1
        self.max_open_channels = max(self.max_open_channels, self.open_channels)
        return stream

    # ---------- transport ----------

    async def list_metadata(self) -> List[FileMetadata]:
        self.calls.append(("list_metadata", None))
        if self.list_failure is not None:
            raise self.list_failure
        return list(self.metadata)

    async def start_translation(self, file_name: str, correlation_id: str) -> Dict[str, Any]:
        self.calls.append(("start_translation", file_name))
        self.start_requests.append((file_name, correlation_id))

        if file_name in self.start_failures:
            raise self.start_failures[file_name]

        stream = self.streams.get(correlation_id)
        script = self.scripts.get(file_name, DEFAULT_SCRIPT)
        for name, data in script:
            if stream is not None:
                stream.push(name, data)
            if name == "complete":
                self._mark_translated(file_name)

        if self.block_ack:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled_starts += 1
                raise

        return {"sessionId": correlation_id, "message": "Translation complete"}

    async def upload_file(self, path: Path) -> UploadResult:
        path = Path(path)
        self.calls.append(("upload_file", path.name))
        if self.upload_failure is not None:
            raise self.upload_failure
        content = path.read_bytes()
        self.uploaded[path.name] = content
        outlined = b"<text" not in content and path.suffix == ".svg"
        self.metadata.append(make_metadata(path.name, outlined=outlined))
        return UploadResult(file_name=path.name, outlined=outlined, message="uploaded")

    async def download_translated(self, file_name: str) -> Tuple[str, bytes]:
        self.calls.append(("download_translated", file_name))
        if file_name not in self.downloads:
            raise TransportError(
                f"GET /download/translated/{file_name} failed with HTTP 404",
                status_code=404,
                server_message="Translated file not found",
            )
        return file_name, self.downloads[file_name]

    async def delete_batch(self, file_names: List[str]) -> Dict[str, Any]:
        self.calls.append(("delete_batch", list(file_names)))
        self.metadata = [m for m in self.metadata if m.file_name not in file_names]
        return {"deleted": list(file_names)}

    def _mark_translated(self, file_name: str):
        for index, entry in enumerate(self.metadata):
            if entry.file_name == file_name:
                self.metadata[index] = entry.model_copy(update={
                    "translated": True,
                    "version": (entry.version or 0) + 1,
                })

