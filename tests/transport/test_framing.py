"""Tests for transport/framing.py module."""

import json

from mcp_cache.transport.framing import LineBuffer, encode_message


class TestLineBuffer:
    """Tests for LineBuffer."""

    def test_complete_line_is_returned(self) -> None:
        """A newline-terminated chunk yields one line."""
        buffer = LineBuffer()
        assert buffer.feed(b'{"a":1}\n') == [b'{"a":1}']
        assert buffer.pending == 0

    def test_partial_line_is_held_until_newline(self) -> None:
        """Fragments accumulate until a newline arrives."""
        buffer = LineBuffer()
        assert buffer.feed(b'{"a":') == []
        assert buffer.pending == 5
        assert buffer.feed(b'1}\n{"b"') == [b'{"a":1}']
        assert buffer.pending == 4

    def test_multiple_lines_in_one_chunk(self) -> None:
        """Every complete line in a chunk is returned in order."""
        buffer = LineBuffer()
        assert buffer.feed(b"one\ntwo\nthree\n") == [b"one", b"two", b"three"]

    def test_blank_lines_and_whitespace_are_dropped(self) -> None:
        """Blank lines are skipped and surrounding whitespace is stripped."""
        buffer = LineBuffer()
        assert buffer.feed(b"\n  \r\n  msg \r\n\n") == [b"msg"]

    def test_multibyte_character_split_across_chunks(self) -> None:
        """UTF-8 sequences split between reads are reassembled intact."""
        payload = json.dumps({"text": "héllo"}, ensure_ascii=False).encode("utf-8") + b"\n"
        split = payload.index("é".encode()) + 1
        buffer = LineBuffer()

        assert buffer.feed(payload[:split]) == []
        (line,) = buffer.feed(payload[split:])
        assert json.loads(line) == {"text": "héllo"}


class TestEncodeMessage:
    """Tests for encode_message."""

    def test_single_terminated_line(self) -> None:
        """Messages are compact JSON followed by exactly one newline."""
        encoded = encode_message({"jsonrpc": "2.0", "id": 1, "method": "ping"})
        assert encoded.endswith(b"\n")
        assert encoded.count(b"\n") == 1
        assert json.loads(encoded) == {"jsonrpc": "2.0", "id": 1, "method": "ping"}

    def test_embedded_newlines_are_escaped(self) -> None:
        """Newlines inside string values never break the framing."""
        encoded = encode_message({"text": "a\nb"})
        assert encoded.count(b"\n") == 1
