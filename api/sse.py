"""
Server-Sent Events progress channel

Implements the PushChannelProvider protocol on top of an httpx streaming
GET to /progress/subscribe/{clientId}. The stream yields
(event name, data text) pairs; core.batch.progress_channel decodes them.
"""

import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional, Tuple

import httpx

from core.batch.errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_EVENT = "message"


@dataclass
class SSEParser:
    """
    Incremental text/event-stream parser.

    Feed lines (without line terminators); a blank line dispatches the
    buffered event.
    """
    event: str = ""
    data: List[str] = field(default_factory=list)

    def feed(self, line: str) -> Optional[Tuple[str, str]]:
        if line == "":
            return self._dispatch()

        if line.startswith(":"):
            return None  # comment / keep-alive

        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if name == "event":
            self.event = value
        elif name == "data":
            self.data.append(value)
        # id / retry are not used by this client
        return None

    def flush(self) -> Optional[Tuple[str, str]]:
        """Dispatch whatever is buffered at end of stream."""
        return self._dispatch()

    def _dispatch(self) -> Optional[Tuple[str, str]]:
        if not self.data and not self.event:
            return None
        event = (self.event or DEFAULT_EVENT, "\n".join(self.data))
        self.event = ""
        self.data = []
        return event


class SSEStream:
    """One open event-stream response."""

    def __init__(self, response: httpx.Response, correlation_id: str):
        self.response = response
        self.correlation_id = correlation_id
        self._closed = False

    def __aiter__(self) -> AsyncIterator[Tuple[str, str]]:
        return self._events()

    async def _events(self) -> AsyncIterator[Tuple[str, str]]:
        parser = SSEParser()
        async for line in self.response.aiter_lines():
            event = parser.feed(line.rstrip("\r"))
            if event is not None:
                yield event
        event = parser.flush()
        if event is not None:
            yield event

    async def aclose(self):
        if self._closed:
            return
        self._closed = True
        await self.response.aclose()
        logger.debug(f"SSE stream closed: {self.correlation_id}")


class SSEChannelProvider:
    """
    Opens /progress/subscribe/{clientId} event streams.

    Usage:
        provider = SSEChannelProvider(http_client)
        stream = await provider.connect(correlation_id)
        async for name, data in stream:
            ...
        await stream.aclose()
    """

    def __init__(self, http_client: httpx.AsyncClient, path: str = "/progress/subscribe"):
        self.http_client = http_client
        self.path = path.rstrip("/")

    async def connect(self, correlation_id: str) -> SSEStream:
        request = self.http_client.build_request(
            "GET",
            f"{self.path}/{correlation_id}",
            headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
            # The stream stays open while the server works
            timeout=httpx.Timeout(None, connect=10.0),
        )
        try:
            response = await self.http_client.send(request, stream=True)
        except httpx.RequestError as e:
            raise TransportError(f"Could not subscribe to progress: {e}") from e

        if response.status_code >= 400:
            await response.aread()
            await response.aclose()
            raise TransportError(
                f"Progress subscription failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )

        logger.debug(f"SSE subscription open: {correlation_id}")
        return SSEStream(response, correlation_id)
