"""Tests for Content-Length framing and the stdio serve loop."""

from __future__ import annotations

import io
import logging

import pytest

from noteg.lsp import NotegLanguageServer
from noteg.transport import MessageBuffer, encode_message, serve


def frame(body: bytes) -> bytes:
    return b"Content-Length: " + str(len(body)).encode() + b"\r\n\r\n" + body


class TestEncode:
    def test_header_and_body(self) -> None:
        assert encode_message({"id": 1}) == b'Content-Length: 8\r\n\r\n{"id":1}'

    def test_length_counts_bytes(self) -> None:
        data = encode_message({"text": "ünï"})
        header, _, body = data.partition(b"\r\n\r\n")
        assert int(header.split(b":")[1]) == len(body)


class TestMessageBuffer:
    def test_single_message(self) -> None:
        buf = MessageBuffer()
        buf.feed(frame(b'{"method":"initialized"}'))
        assert list(buf) == [{"method": "initialized"}]
        assert len(buf) == 0

    def test_partial_payload_waits(self) -> None:
        data = frame(b'{"id":1,"method":"shutdown"}')
        buf = MessageBuffer()
        buf.feed(data[:-5])
        assert list(buf) == []
        buf.feed(data[-5:])
        assert list(buf) == [{"id": 1, "method": "shutdown"}]

    def test_partial_header_waits(self) -> None:
        buf = MessageBuffer()
        buf.feed(b"Content-Length: 2\r\n")
        assert list(buf) == []
        buf.feed(b"\r\n{}")
        assert list(buf) == [{}]

    def test_multiple_messages_and_residue(self) -> None:
        buf = MessageBuffer()
        buf.feed(frame(b'{"id":1}') + frame(b'{"id":2}') + b"Content-Len")
        assert [m["id"] for m in buf] == [1, 2]
        assert len(buf) == len(b"Content-Len")

    def test_extra_headers_allowed(self) -> None:
        buf = MessageBuffer()
        buf.feed(
            b"Content-Type: application/vscode-jsonrpc; charset=utf-8\r\n"
            b"content-length: 9\r\n\r\n"
            b'{"id":42}'
        )
        assert list(buf) == [{"id": 42}]

    def test_header_without_length_dropped(self, caplog) -> None:
        buf = MessageBuffer()
        buf.feed(b"X-Other: 1\r\n\r\n" + frame(b'{"id":1}'))
        with caplog.at_level(logging.WARNING, logger="noteg.transport"):
            assert list(buf) == [{"id": 1}]
        assert "without Content-Length" in caplog.text

    def test_malformed_json_dropped(self, caplog) -> None:
        buf = MessageBuffer()
        buf.feed(frame(b"{not json}") + frame(b'{"id":2}'))
        with caplog.at_level(logging.ERROR, logger="noteg.transport"):
            assert list(buf) == [{"id": 2}]
        assert "malformed" in caplog.text

    def test_non_object_payload_dropped(self) -> None:
        buf = MessageBuffer()
        buf.feed(frame(b"[1, 2]"))
        assert list(buf) == []


class TestServe:
    def _responses(self, data: bytes) -> list[dict]:
        buf = MessageBuffer()
        buf.feed(data)
        return list(buf)

    def test_requests_answered_in_order(self) -> None:
        reader = io.BytesIO(
            encode_message({"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}})
            + encode_message({"jsonrpc": "2.0", "method": "initialized", "params": {}})
            + encode_message({"jsonrpc": "2.0", "id": 2, "method": "shutdown"})
        )
        writer = io.BytesIO()
        serve(NotegLanguageServer(), reader, writer)

        responses = self._responses(writer.getvalue())
        assert [r["id"] for r in responses] == [1, 2]
        assert "capabilities" in responses[0]["result"]
        assert responses[1]["result"] is None

    def test_notifications_produce_no_output(self) -> None:
        reader = io.BytesIO(
            encode_message(
                {
                    "jsonrpc": "2.0",
                    "method": "textDocument/didOpen",
                    "params": {
                        "textDocument": {
                            "uri": "file:///a.ng",
                            "languageId": "noteg",
                            "version": 1,
                            "text": "let x = 1",
                        }
                    },
                }
            )
        )
        writer = io.BytesIO()
        server = NotegLanguageServer()
        serve(server, reader, writer)
        assert writer.getvalue() == b""
        assert "file:///a.ng" in server.service.documents

    def test_exit_stops_loop(self) -> None:
        reader = io.BytesIO(
            encode_message({"jsonrpc": "2.0", "id": 1, "method": "shutdown"})
            + encode_message({"jsonrpc": "2.0", "method": "exit"})
            + encode_message({"jsonrpc": "2.0", "id": 2, "method": "shutdown"})
        )
        writer = io.BytesIO()
        with pytest.raises(SystemExit) as info:
            serve(NotegLanguageServer(), reader, writer)
        assert info.value.code == 0
        assert [r["id"] for r in self._responses(writer.getvalue())] == [1]

    def test_empty_input(self) -> None:
        writer = io.BytesIO()
        serve(NotegLanguageServer(), io.BytesIO(b""), writer)
        assert writer.getvalue() == b""
