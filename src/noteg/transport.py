"""Content-Length framing of JSON-RPC messages over a byte stream."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterator
from typing import Any, BinaryIO, Protocol

logger = logging.getLogger(__name__)

HEADER_END = b"\r\n\r\n"
_CONTENT_LENGTH = re.compile(rb"Content-Length:\s*(\d+)", re.IGNORECASE)

READ_CHUNK = 4096


class MessageHandler(Protocol):
    def handle(self, message: dict[str, Any]) -> dict[str, Any] | None: ...


class MessageBuffer:
    """Accumulate raw bytes and yield each complete message once it has arrived.

    A message is only extracted when its whole declared payload is buffered;
    anything after it stays buffered for the next message.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    def feed(self, data: bytes) -> None:
        self._buffer.extend(data)

    def __len__(self) -> int:
        return len(self._buffer)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        while True:
            header_end = self._buffer.find(HEADER_END)
            if header_end == -1:
                return

            header = bytes(self._buffer[:header_end])
            match = _CONTENT_LENGTH.search(header)
            if match is None:
                logger.warning("Dropping header block without Content-Length: %r", header)
                del self._buffer[: header_end + len(HEADER_END)]
                continue

            start = header_end + len(HEADER_END)
            end = start + int(match.group(1))
            if len(self._buffer) < end:
                return

            payload = bytes(self._buffer[start:end])
            del self._buffer[:end]

            try:
                message = json.loads(payload)
            except (UnicodeDecodeError, json.JSONDecodeError) as exc:
                logger.error("Dropping malformed message payload: %s", exc)
                continue
            if not isinstance(message, dict):
                logger.error("Dropping non-object message payload: %r", message)
                continue
            yield message


def encode_message(message: dict[str, Any]) -> bytes:
    """Frame a JSON-RPC envelope with its Content-Length header."""
    body = json.dumps(message, separators=(",", ":")).encode("utf-8")
    return b"Content-Length: " + str(len(body)).encode("ascii") + HEADER_END + body


def serve(handler: MessageHandler, reader: BinaryIO, writer: BinaryIO) -> None:
    """Read framed messages until EOF, dispatching each to handler in order."""
    buffer = MessageBuffer()
    while True:
        read = getattr(reader, "read1", reader.read)
        chunk = read(READ_CHUNK)
        if not chunk:
            logger.info("Input stream closed")
            return
        buffer.feed(chunk)
        for message in buffer:
            response = handler.handle(message)
            if response is not None:
                writer.write(encode_message(response))
                writer.flush()
