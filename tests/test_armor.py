"""Tests for the streaming ASCII armor encoder and decoder."""

from __future__ import annotations

import base64
import io

import pytest
from pgpy.types import Armorable

from antipaste.armor import ArmorWriter, crc24, decode, find_block
from antipaste.errors import ArmorFormatError, ErrorKind


def _armor(data: bytes, **kwargs) -> bytes:
    sink = io.BytesIO()
    writer = ArmorWriter(sink, **kwargs)
    writer.write(data)
    writer.close()
    return sink.getvalue()


class TestCrc24:
    """Tests for the OpenPGP CRC-24."""

    def test_empty_is_init(self):
        assert crc24(b"") == 0xB704CE

    def test_check_value(self):
        """Standard CRC-24/OPENPGP check value."""
        assert crc24(b"123456789") == 0x21CF02

    def test_matches_pgpy(self):
        data = bytes(range(256)) * 3
        assert crc24(data) == Armorable.crc24(bytearray(data))

    def test_chunked_writes_checksum_whole_body(self):
        """The checksum line covers every chunk, not just the last one."""
        data = bytes(range(256)) * 3
        sink = io.BytesIO()
        writer = ArmorWriter(sink)
        for offset in range(0, len(data), 100):
            writer.write(data[offset:offset + 100])
        writer.close()
        expected = b"=" + base64.b64encode(crc24(data).to_bytes(3, "big"))
        assert expected in sink.getvalue().splitlines()


class TestArmorWriter:
    """Tests for ArmorWriter."""

    def test_layout(self):
        """BEGIN line, blank line, body, checksum, END line."""
        text = _armor(b"x" * 100).decode("ascii")
        lines = text.splitlines()
        assert lines[0] == "-----BEGIN PGP MESSAGE-----"
        assert lines[1] == ""
        assert lines[-1] == "-----END PGP MESSAGE-----"
        assert lines[-2].startswith("=") and len(lines[-2]) == 5
        assert all(len(line) <= 64 for line in lines[2:-2])
        assert len(lines[2]) == 64

    def test_streams_full_lines_before_close(self):
        """Complete lines reach the sink as soon as 48 bytes are written."""
        sink = io.BytesIO()
        writer = ArmorWriter(sink)
        writer.write(b"a" * 50)
        partial = sink.getvalue().decode("ascii")
        assert partial.count("\n") == 3
        assert "-----END" not in partial
        writer.close()
        assert sink.getvalue().decode("ascii").endswith("-----END PGP MESSAGE-----\n")

    def test_close_idempotent_and_final(self):
        sink = io.BytesIO()
        writer = ArmorWriter(sink)
        writer.write(b"abc")
        writer.close()
        size = len(sink.getvalue())
        writer.close()
        assert len(sink.getvalue()) == size
        with pytest.raises(ValueError):
            writer.write(b"more")

    def test_sink_left_open(self):
        sink = io.BytesIO()
        writer = ArmorWriter(sink)
        writer.close()
        assert not sink.closed

    def test_headers_written(self):
        text = _armor(b"data", headers={"Comment": "hello"}).decode("ascii")
        assert text.splitlines()[1] == "Comment: hello"

    def test_custom_block_type(self):
        text = _armor(b"k", block_type="PGP PUBLIC KEY BLOCK").decode("ascii")
        assert text.startswith("-----BEGIN PGP PUBLIC KEY BLOCK-----")


class TestDecode:
    """Tests for decode()."""

    @pytest.mark.parametrize("size", [0, 1, 47, 48, 49, 1000])
    def test_decodes_writer_output(self, size):
        data = bytes(i % 251 for i in range(size))
        block = decode(_armor(data))
        assert block.body == data
        assert block.block_type == "PGP MESSAGE"

    def test_accepts_text(self):
        assert decode(_armor(b"hello").decode("ascii")).body == b"hello"

    def test_headers_parsed(self):
        block = decode(_armor(b"data", headers={"Version": "1", "Comment": "c"}))
        assert block.headers == {"Version": "1", "Comment": "c"}
        assert block.body == b"data"

    def test_surrounded_by_html(self):
        """A block embedded in a web page decodes."""
        page = b"<html><pre>\n" + _armor(b"secret") + b"</pre></html>"
        assert decode(page).body == b"secret"

    def test_crlf_line_endings(self):
        armored = _armor(b"windows" * 20).replace(b"\n", b"\r\n")
        assert decode(armored).body == b"windows" * 20

    def test_no_block(self):
        with pytest.raises(ArmorFormatError) as exc_info:
            decode(b"just some text")
        assert exc_info.value.kind == ErrorKind.ARMOR_FORMAT
        assert "no armored block" in exc_info.value.reason

    def test_missing_end_line(self):
        armored = _armor(b"truncated").decode("ascii")
        cut = armored[: armored.index("-----END")]
        with pytest.raises(ArmorFormatError, match="END"):
            decode(cut)

    def test_mismatched_end_line(self):
        armored = _armor(b"x").decode("ascii").replace("END PGP MESSAGE", "END PGP SIGNATURE")
        with pytest.raises(ArmorFormatError):
            decode(armored)

    def test_checksum_mismatch(self):
        lines = _armor(b"payload").decode("ascii").splitlines()
        bad_crc = (crc24(b"payload") ^ 1).to_bytes(3, "big")
        lines[-2] = "=" + base64.b64encode(bad_crc).decode("ascii")
        with pytest.raises(ArmorFormatError, match="checksum"):
            decode("\n".join(lines))

    def test_invalid_base64(self):
        text = "-----BEGIN PGP MESSAGE-----\n\n!!!not base64!!!\n-----END PGP MESSAGE-----\n"
        with pytest.raises(ArmorFormatError, match="base64"):
            decode(text)

    def test_checksum_optional(self):
        body = base64.b64encode(b"no crc").decode("ascii")
        text = f"-----BEGIN PGP MESSAGE-----\n\n{body}\n-----END PGP MESSAGE-----\n"
        assert decode(text).body == b"no crc"


class TestFindBlock:
    """Tests for find_block()."""

    def test_returns_first_block(self):
        first = _armor(b"one").decode("ascii")
        second = _armor(b"two").decode("ascii")
        found = find_block("junk\n" + first + "\nmore junk\n" + second)
        assert decode(found).body == b"one"

    def test_none_without_block(self):
        assert find_block("<html></html>") is None
