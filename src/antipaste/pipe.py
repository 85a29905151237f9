"""
Bounded in-process pipe between a producer thread and a consumer.

The writer blocks while the buffer holds ``capacity`` bytes that the
reader has not taken yet, so memory stays bounded however large the
payload. Bytes come out in the order they went in.

Closing the writer marks end of stream. Closing it with an error makes
the reader raise that error once the buffered bytes are drained.
Closing the reader makes further writes raise BrokenPipeError.

Usage:
    reader, writer = pipe(capacity=65536)
    threading.Thread(target=produce, args=(writer,)).start()
    data = reader.read()
"""

from __future__ import annotations

import threading
from typing import Iterator, Optional

DEFAULT_CAPACITY = 64 * 1024
CHUNK_SIZE = 8192


class _Pipe:
    """Shared state guarded by one condition variable."""

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError("pipe capacity must be positive")
        self.capacity = capacity
        self.buffer = bytearray()
        self.cond = threading.Condition()
        self.write_closed = False
        self.read_closed = False
        self.error: Optional[BaseException] = None


class PipeWriter:
    """Write end of a bounded pipe."""

    def __init__(self, state: _Pipe):
        self._p = state

    @property
    def closed(self) -> bool:
        return self._p.write_closed

    def write(self, data: bytes) -> int:
        """Write all of ``data``, blocking while the pipe is full.

        Raises:
            BrokenPipeError: If the reader has been closed.
            ValueError: If the writer has been closed.
        """
        p = self._p
        view = memoryview(bytes(data))
        with p.cond:
            while view:
                if p.write_closed:
                    raise ValueError("write to closed pipe")
                while len(p.buffer) >= p.capacity and not p.read_closed:
                    p.cond.wait()
                if p.read_closed:
                    raise BrokenPipeError("pipe reader closed")
                room = p.capacity - len(p.buffer)
                p.buffer += view[:room]
                view = view[room:]
                p.cond.notify_all()
        return len(data)

    def flush(self) -> None:
        pass

    def close(self, error: Optional[BaseException] = None) -> None:
        """Mark end of stream; with ``error``, the reader raises it instead."""
        p = self._p
        with p.cond:
            if p.write_closed:
                return
            p.write_closed = True
            p.error = error
            p.cond.notify_all()


class PipeReader:
    """Read end of a bounded pipe."""

    def __init__(self, state: _Pipe):
        self._p = state

    @property
    def closed(self) -> bool:
        return self._p.read_closed

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes, or everything until end of stream.

        Blocks until data is available or the writer closes. Returns
        ``b""`` at end of stream.

        Raises:
            Exception: Whatever the writer closed the pipe with.
        """
        if size is None or size < 0:
            chunks = []
            while True:
                chunk = self.read(CHUNK_SIZE)
                if not chunk:
                    return b"".join(chunks)
                chunks.append(chunk)

        p = self._p
        with p.cond:
            while not p.buffer and not p.write_closed and not p.read_closed:
                p.cond.wait()
            if p.read_closed:
                raise ValueError("read from closed pipe")
            if p.buffer:
                chunk = bytes(p.buffer[:size])
                del p.buffer[:size]
                p.cond.notify_all()
                return chunk
            if p.error is not None:
                raise p.error
            return b""

    def __iter__(self) -> Iterator[bytes]:
        while True:
            chunk = self.read(CHUNK_SIZE)
            if not chunk:
                return
            yield chunk

    def close(self) -> None:
        """Stop reading; a blocked or later writer gets BrokenPipeError."""
        p = self._p
        with p.cond:
            p.read_closed = True
            p.buffer.clear()
            p.cond.notify_all()

    def __enter__(self) -> PipeReader:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def pipe(capacity: int = DEFAULT_CAPACITY) -> tuple[PipeReader, PipeWriter]:
    """Create a bounded pipe and return its (reader, writer) ends."""
    state = _Pipe(capacity)
    return PipeReader(state), PipeWriter(state)
