"""SSE connection handle: a frame queue drained by the streaming response."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import structlog

from devrelay.infra.errors import SessionClosedError

logger = structlog.get_logger()

_CLOSE = object()


def format_sse(event: str, data: str) -> str:
    """Encode one Server-Sent Events frame; multi-line data gets one data: line each."""
    lines = data.split("\n") if data else [""]
    body = "".join(f"data: {line}\n" for line in lines)
    return f"event: {event}\n{body}\n"


class SseConnection:
    """Server-to-client push channel for one session.

    send() enqueues frames; stream() drains them into the HTTP response and
    emits keepalive pings. Frames queued before close() are still delivered.
    """

    def __init__(self, *, keepalive_seconds: float = 15.0) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._keepalive = keepalive_seconds
        self._closed = False
        self._close_callbacks: list[Callable[[], None]] = []

    @property
    def closed(self) -> bool:
        return self._closed

    def on_close(self, callback: Callable[[], None]) -> None:
        """Register a callback fired once when the connection closes."""
        if self._closed:
            callback()
            return
        self._close_callbacks.append(callback)

    def send(self, data: dict[str, Any] | str, *, event: str = "message") -> None:
        if self._closed:
            raise SessionClosedError()
        payload = data if isinstance(data, str) else json.dumps(data, ensure_ascii=False)
        self._queue.put_nowait(format_sse(event, payload))

    def close(self) -> None:
        """Idempotent. Ends stream() after already-queued frames are drained."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSE)
        callbacks, self._close_callbacks = self._close_callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("sse_close_callback_failed")

    async def stream(
        self, is_disconnected: Callable[[], Awaitable[bool]] | None = None
    ) -> AsyncIterator[str]:
        """Yield encoded frames until close() or client disconnect."""
        try:
            while True:
                if is_disconnected is not None and await is_disconnected():
                    break
                try:
                    item = await asyncio.wait_for(self._queue.get(), timeout=self._keepalive)
                except TimeoutError:
                    yield format_sse("ping", "{}")
                    continue
                if item is _CLOSE:
                    break
                yield item
        finally:
            self.close()
