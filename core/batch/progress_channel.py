"""
Progress channel adapter.

Wraps a single-subscriber push connection (Server-Sent Events in
production) opened for one correlation id. Raw events are normalised
into ChannelEvent objects and handed to a callback.

Guarantees:
- `progress` events are delivered in arrival order, any number of times
- at most one terminal event (`complete` or `error`) is delivered
- nothing is delivered after close()
- a stream that ends without a terminal event is logged as a possible
  hang and leaves wait_terminal() pending; the caller owns the deadline
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Callable, Dict, Optional, Protocol, Tuple
import asyncio
import json

from config.logging_config import get_logger
from .progress_tracker import clamp_percentage

logger = get_logger(__name__)


class ChannelEventKind(str, Enum):
    """Named events pushed by the server"""
    PROGRESS = "progress"
    COMPLETE = "complete"
    ERROR = "error"


TERMINAL_KINDS = frozenset({ChannelEventKind.COMPLETE, ChannelEventKind.ERROR})

# (event name, data) as read off the wire; data is text or a decoded dict
RawEvent = Tuple[str, Any]


@dataclass(frozen=True)
class ChannelEvent:
    """Normalised push event."""
    kind: ChannelEventKind
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_KINDS

    @property
    def message(self) -> str:
        value = self.payload.get("message")
        return "" if value is None else str(value)

    @property
    def percentage(self) -> int:
        return clamp_percentage(self.payload.get("percentage", 0))

    @classmethod
    def parse(cls, name: str, data: Any = None) -> Optional["ChannelEvent"]:
        """
        Build an event from a raw name/data pair.

        JSON text is decoded; other text becomes {"message": text}.
        Returns None for event names outside the three known kinds.
        """
        try:
            kind = ChannelEventKind((name or "").strip())
        except ValueError:
            return None

        if isinstance(data, (bytes, bytearray)):
            data = data.decode("utf-8", errors="replace")

        if isinstance(data, str):
            text = data.strip()
            try:
                decoded = json.loads(text) if text else {}
            except json.JSONDecodeError:
                decoded = {"message": text}
            data = decoded

        if data is None:
            payload: Dict[str, Any] = {}
        elif isinstance(data, dict):
            payload = dict(data)
        else:
            payload = {"message": str(data)}

        if kind == ChannelEventKind.PROGRESS:
            payload["percentage"] = clamp_percentage(payload.get("percentage", 0))

        return cls(kind=kind, payload=payload)


class ChannelStream(Protocol):
    """Open push connection yielding raw events until closed."""

    def __aiter__(self) -> AsyncIterator[RawEvent]:
        ...

    async def aclose(self) -> None:
        ...


class PushChannelProvider(Protocol):
    """Opens one push connection per correlation id."""

    async def connect(self, correlation_id: str) -> ChannelStream:
        """
        Establish the subscription.

        Returns once the server has accepted the subscription, so events
        emitted afterwards are not lost.
        """
        ...


EventCallback = Callable[[ChannelEvent], None]


class ProgressChannel:
    """
    Scoped subscription for one correlation id.

    Usage:
        async with ProgressChannel(provider, correlation_id, on_event=handle) as channel:
            ...  # issue the start request
            event = await channel.wait_terminal()
    """

    def __init__(
        self,
        provider: PushChannelProvider,
        correlation_id: str,
        on_event: Optional[EventCallback] = None,
    ):
        self.provider = provider
        self.correlation_id = correlation_id
        self.on_event = on_event

        self.terminal: Optional[ChannelEvent] = None
        self.events_received = 0

        self._stream: Optional[ChannelStream] = None
        self._reader: Optional[asyncio.Task] = None
        self._terminal_future: Optional[asyncio.Future] = None
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self._stream is not None and not self._closed

    async def open(self) -> "ProgressChannel":
        """Connect and start reading events in the background."""
        if self._stream is not None or self._closed:
            raise RuntimeError(f"Channel {self.correlation_id} already used")

        loop = asyncio.get_running_loop()
        self._terminal_future = loop.create_future()
        self._stream = await self.provider.connect(self.correlation_id)
        self._reader = asyncio.create_task(
            self._read_events(),
            name=f"progress-channel-{self.correlation_id}",
        )
        logger.debug(f"Progress channel opened: {self.correlation_id}")
        return self

    async def wait_terminal(self) -> ChannelEvent:
        """Wait for the `complete` or `error` event."""
        if self._terminal_future is None:
            raise RuntimeError(f"Channel {self.correlation_id} is not open")
        return await asyncio.shield(self._terminal_future)

    async def close(self):
        """Stop delivering events and release the connection."""
        if self._closed:
            return
        self._closed = True

        if self._reader is not None and not self._reader.done():
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass

        if self._terminal_future is not None and not self._terminal_future.done():
            self._terminal_future.cancel()

        if self._stream is not None:
            try:
                await self._stream.aclose()
            except Exception as e:
                logger.warning(f"Error closing progress channel {self.correlation_id}: {e}")

        logger.debug(f"Progress channel closed: {self.correlation_id}")

    async def __aenter__(self) -> "ProgressChannel":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def _read_events(self):
        """Background reader: normalise and dispatch until terminal."""
        try:
            async for name, data in self._stream:
                if self._closed:
                    return
                try:
                    event = ChannelEvent.parse(name, data)
                except Exception as e:
                    logger.warning(
                        f"Dropping malformed '{name}' event on {self.correlation_id}: {e}"
                    )
                    continue
                if event is None:
                    logger.debug(f"Ignoring unknown event '{name}' on {self.correlation_id}")
                    continue
                self._dispatch(event)
                if self.terminal is not None:
                    return
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Connection dropped by the transport
            if self.terminal is None:
                logger.warning(
                    f"Progress channel {self.correlation_id} dropped before "
                    f"a terminal event: {e}"
                )
            return

        if self.terminal is None and not self._closed:
            logger.warning(
                f"Progress channel {self.correlation_id} ended without a "
                f"terminal event; waiting for the deadline"
            )

    def _dispatch(self, event: ChannelEvent):
        if self._closed or self.terminal is not None:
            return

        self.events_received += 1
        if event.is_terminal:
            self.terminal = event
            if self._terminal_future is not None and not self._terminal_future.done():
                self._terminal_future.set_result(event)

        if self.on_event is not None:
            try:
                self.on_event(event)
            except Exception as e:
                logger.error(f"Progress channel callback error: {e}")
