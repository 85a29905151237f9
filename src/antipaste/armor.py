"""
ASCII armor -- OpenPGP binary data as text that survives paste sites.

    -----BEGIN PGP MESSAGE-----

    hQEMA8vF0Zf3Hn0pAQf/d0w1...      (64 columns of base64)
    =njUN                              (CRC-24 of the binary data)
    -----END PGP MESSAGE-----

The encoder is a streaming writer: base64 lines go to the sink as soon
as 48 input bytes are available, and ``close()`` emits the checksum and
the END line. The checksum needs the whole body, so the writer keeps a
copy of everything written until it is closed. The decoder finds the
first armored block anywhere in its input, so HTML pages that wrap the
block decode fine.
"""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass, field
from typing import BinaryIO, Optional

from pgpy.types import Armorable

from .errors import ArmorFormatError

MESSAGE_BLOCK = "PGP MESSAGE"
LINE_BYTES = 48  # 64 base64 characters per line


def crc24(data: bytes) -> int:
    """OpenPGP CRC-24 of ``data``, computed by pgpy."""
    return Armorable.crc24(bytearray(data))


_BLOCK_RE = re.compile(
    r"-----BEGIN (?P<type>[A-Z0-9 ,]+)-----[ \t]*\r?\n"
    r"(?P<content>.*?)"
    r"-----END (?P=type)-----",
    re.DOTALL,
)


def find_block(text: str) -> Optional[str]:
    """Return the first complete armored block in ``text``, or None."""
    match = _BLOCK_RE.search(text)
    return match.group(0) if match else None


class ArmorWriter:
    """Streaming armor encoder.

    Bytes written are base64-encoded line by line into ``sink``.
    ``close()`` flushes the last partial line, writes the checksum and
    the END line. The sink itself is left open.
    """

    def __init__(
        self,
        sink: BinaryIO,
        block_type: str = MESSAGE_BLOCK,
        headers: Optional[dict[str, str]] = None,
    ):
        self._sink = sink
        self.block_type = block_type
        self.headers = headers or {}
        self._pending = bytearray()
        self._data = bytearray()
        self._started = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _begin(self) -> None:
        if self._started:
            return
        self._started = True
        lines = [f"-----BEGIN {self.block_type}-----"]
        lines.extend(f"{key}: {value}" for key, value in self.headers.items())
        lines.append("")
        self._sink.write(("\n".join(lines) + "\n").encode("ascii"))

    def write(self, data: bytes) -> int:
        if self._closed:
            raise ValueError("write to closed armor writer")
        self._begin()
        self._data += data
        self._pending += data
        full = len(self._pending) - len(self._pending) % LINE_BYTES
        if full:
            chunk = bytes(self._pending[:full])
            del self._pending[:full]
            out = bytearray()
            for offset in range(0, full, LINE_BYTES):
                out += base64.b64encode(chunk[offset:offset + LINE_BYTES]) + b"\n"
            self._sink.write(bytes(out))
        return len(data)

    def close(self) -> None:
        if self._closed:
            return
        self._begin()
        tail = bytearray()
        if self._pending:
            tail += base64.b64encode(bytes(self._pending)) + b"\n"
            self._pending.clear()
        tail += b"=" + base64.b64encode(crc24(self._data).to_bytes(3, "big")) + b"\n"
        tail += f"-----END {self.block_type}-----\n".encode("ascii")
        self._sink.write(bytes(tail))
        self._closed = True


@dataclass
class ArmoredBlock:
    """A decoded armored block."""

    block_type: str
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)


def decode(data: bytes | str) -> ArmoredBlock:
    """Decode the first armored block found in ``data``.

    Args:
        data: Armored text, possibly surrounded by other text.

    Returns:
        ArmoredBlock with the binary body.

    Raises:
        ArmorFormatError: If no complete block is present, the base64 is
            invalid, or the checksum does not match.
    """
    text = data.decode("latin-1") if isinstance(data, (bytes, bytearray)) else data
    match = _BLOCK_RE.search(text)
    if match is None:
        if "-----BEGIN " in text:
            raise ArmorFormatError("missing or mismatched END line")
        raise ArmorFormatError("no armored block found")

    lines = [line.strip() for line in match.group("content").splitlines()]
    headers: dict[str, str] = {}
    index = 0
    if lines and ": " in lines[0]:
        while index < len(lines) and lines[index]:
            key, sep, value = lines[index].partition(": ")
            if not sep:
                raise ArmorFormatError(f"invalid header line {lines[index]!r}")
            headers[key] = value
            index += 1
    body_lines = [line for line in lines[index:] if line]

    checksum = None
    if body_lines and body_lines[-1].startswith("=") and len(body_lines[-1]) == 5:
        checksum = body_lines.pop()[1:]

    try:
        body = base64.b64decode("".join(body_lines), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ArmorFormatError(f"invalid base64 body: {exc}") from exc

    if checksum is not None:
        try:
            expected = int.from_bytes(base64.b64decode(checksum, validate=True), "big")
        except (binascii.Error, ValueError) as exc:
            raise ArmorFormatError(f"invalid checksum line: {exc}") from exc
        if crc24(body) != expected:
            raise ArmorFormatError("checksum mismatch")

    return ArmoredBlock(block_type=match.group("type"), body=body, headers=headers)
