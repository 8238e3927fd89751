"""
Server-Sent Events (SSE) tokenizer and streaming response buffer.

The chat backend answers with an event stream; each event block carries an
optional `event:` label and a `data:` payload that is usually JSON. The
tokenizer works on the fully drained text, the buffer takes care of draining
it from a streamed mitmproxy response.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from collections.abc import Iterable
from dataclasses import dataclass
from dataclasses import field
from typing import Any

logger = logging.getLogger(__name__)

_BLOCK_SEPARATOR = re.compile(r"\n\n+")
_FIELD_LINE = re.compile(r"^(event|data):\s*(.*)$")

_MISSING = object()


@dataclass(frozen=True)
class StreamEvent:
    """One decoded event block, in arrival order."""

    event: str | None = None
    data: Any = None

    @property
    def has_data(self) -> bool:
        return self.data is not None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.event is not None:
            result["event"] = self.event
        if self.data is not None:
            result["data"] = self.data
        return result


def _decode_data(value: str) -> Any:
    try:
        return json.loads(value)
    except (ValueError, RecursionError):
        return value


def _parse_block(block: str) -> StreamEvent | None:
    event_name: str | None = None
    data: Any = _MISSING

    for line in block.strip().split("\n"):
        match = _FIELD_LINE.match(line)
        if not match:
            continue
        key, value = match.groups()
        if key == "event":
            event_name = value
        else:
            data = _decode_data(value)

    if event_name is None and data is _MISSING:
        return None
    return StreamEvent(event=event_name, data=None if data is _MISSING else data)


def tokenize(text: str) -> list[StreamEvent]:
    """
    Split raw SSE text into an ordered list of events.

    Blocks are separated by one or more blank lines. Within a block, `event:`
    sets the label and `data:` is JSON-decoded, falling back to the raw
    string. Blocks without any recognised line are dropped.

    This never raises for string input and is safe to call repeatedly.
    """
    text = text.replace("\r\n", "\n").strip()
    if not text:
        return []

    events = []
    for block in _BLOCK_SEPARATOR.split(text):
        parsed = _parse_block(block)
        if parsed is not None:
            events.append(parsed)

    logger.debug(f"Tokenized {len(events)} SSE events from {len(text)} chars")
    return events


def serialize(events: Iterable[StreamEvent]) -> str:
    """Render events back into SSE text (the inverse of `tokenize`)."""
    blocks = []
    for ev in events:
        lines = []
        if ev.event is not None:
            lines.append(f"event: {ev.event}")
        if ev.data is not None:
            if isinstance(ev.data, str):
                lines.append(f"data: {ev.data}")
            else:
                lines.append(
                    "data: " + json.dumps(ev.data, separators=(",", ":"), ensure_ascii=False)
                )
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) + ("\n\n" if blocks else "")


@dataclass
class StreamBuffer:
    """
    Accumulates the body of a single streamed response.

    The engine only works on complete text, so chunks are collected as-is
    and decoded once the stream is exhausted.
    """

    chunks: list[bytes] = field(default_factory=list)
    byte_count: int = 0

    def process_chunk(self, chunk: bytes) -> bytes:
        """
        Record a chunk and hand it back unchanged.

        Args:
            chunk: Raw bytes from the response stream

        Returns:
            The same chunk, unchanged (pass-through)
        """
        if chunk:
            self.chunks.append(chunk)
            self.byte_count += len(chunk)
        return chunk

    @property
    def chunk_count(self) -> int:
        return len(self.chunks)

    @property
    def body(self) -> bytes:
        """The drained body exactly as received, still content-encoded."""
        return b"".join(self.chunks)

    def finalize(self) -> str:
        """Return the drained body as text. Invalid UTF-8 is replaced, not fatal."""
        return self.body.decode("utf-8", errors="replace")


def is_sse_response(headers: Any) -> bool:
    """
    Check if response headers indicate an SSE stream.

    Args:
        headers: Response headers (dict or mitmproxy Headers object)
    """
    content_type = ""
    if hasattr(headers, "get"):
        content_type = headers.get("content-type", "") or ""
    return "text/event-stream" in content_type.lower()


def create_stream_handler(buffer: StreamBuffer) -> Callable[[bytes], bytes]:
    """
    Create a handler for `flow.response.stream`.

    mitmproxy calls it with each chunk of the body (and once with b"" at the
    end); every chunk is recorded in `buffer` and forwarded unchanged.
    """

    def handler(data: bytes) -> bytes:
        buffer.process_chunk(data)
        if buffer.chunk_count and buffer.chunk_count % 50 == 0:
            logger.debug(f"SSE chunk #{buffer.chunk_count}: {buffer.byte_count} bytes buffered")
        return data

    return handler
