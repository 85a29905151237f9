"""
Crypto pipeline -- plaintext in, armored ciphertext out, and back.

Encryption is two nested writers on top of a transport stream:

    plaintext -> EncryptingWriter -> ArmorWriter -> PipeWriter -> upload

A producer thread drives the writers while the paste handler consumes
the read end of the bounded pipe on the calling thread. The layers must
close innermost first: the encryption layer finalizes the OpenPGP
packets, then the armor layer writes its checksum and END line, then
the pipe signals end of stream. Any other order yields truncated or
unverifiable ciphertext.

pgpy builds OpenPGP messages in memory, so the encryption layer holds
the plaintext until it is closed; everything after it streams.
"""

from __future__ import annotations

import io
import logging
import threading
from typing import BinaryIO, Iterable, Iterator, Optional, Sequence, Union

import pgpy
from pgpy.constants import CompressionAlgorithm, SymmetricKeyAlgorithm
from pgpy.errors import PGPError

from . import armor
from .errors import DecryptionError, EncryptionError, NoMatchingKeyError
from .keystore import KeyEntity
from .pipe import CHUNK_SIZE, DEFAULT_CAPACITY, PipeReader, PipeWriter, pipe

logger = logging.getLogger("antipaste.crypto")

Source = Union[BinaryIO, bytes, str]


def _as_stream(source: Source) -> BinaryIO:
    if isinstance(source, str):
        return io.BytesIO(source.encode("utf-8"))
    if isinstance(source, (bytes, bytearray)):
        return io.BytesIO(bytes(source))
    return source


def _chunks(stream: BinaryIO) -> Iterator[bytes]:
    while True:
        chunk = stream.read(CHUNK_SIZE)
        if not chunk:
            return
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        yield chunk


class EncryptingWriter:
    """OpenPGP layer: encrypts everything written to it for every recipient.

    All recipients share one session key, each gets its own public-key
    session-key packet, so any one of them can decrypt alone. The
    binary message goes to ``sink`` on ``close()``; the sink stays open.
    """

    def __init__(
        self,
        sink: BinaryIO,
        recipients: Sequence[KeyEntity],
        cipher: SymmetricKeyAlgorithm = SymmetricKeyAlgorithm.AES256,
        compression: CompressionAlgorithm = CompressionAlgorithm.ZLIB,
    ):
        if not recipients:
            raise EncryptionError("no recipients")
        self._sink = sink
        self.recipients = [r.public() for r in recipients]
        self.cipher = cipher
        self.compression = compression
        self._plaintext = bytearray()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: bytes) -> int:
        if self._closed:
            raise ValueError("write to closed encrypting writer")
        self._plaintext += data
        return len(data)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        message = pgpy.PGPMessage.new(
            bytes(self._plaintext), format="b", compression=self.compression
        )
        self._plaintext.clear()

        sessionkey = self.cipher.gen_key()
        for recipient in self.recipients:
            try:
                message = recipient.key.encrypt(
                    message, cipher=self.cipher, sessionkey=sessionkey
                )
            except (PGPError, NotImplementedError, ValueError) as exc:
                raise EncryptionError(str(exc), recipient.fingerprint) from exc
        del sessionkey

        data = bytes(message)
        for offset in range(0, len(data), CHUNK_SIZE):
            self._sink.write(data[offset:offset + CHUNK_SIZE])
        logger.debug(
            "Encrypted %d bytes of ciphertext for %d recipients",
            len(data), len(self.recipients),
        )


def encrypt_to(source: Source, recipients: Sequence[KeyEntity], sink: BinaryIO) -> None:
    """Encrypt and armor ``source`` into ``sink``.

    Closes the encryption layer, then the armor layer. ``sink`` is left
    open for the caller to close.

    Args:
        source: Plaintext stream, bytes, or text.
        recipients: Public keys to encrypt for.
        sink: Binary stream receiving armored ciphertext.
    """
    armor_layer = armor.ArmorWriter(sink)
    encryption_layer = EncryptingWriter(armor_layer, recipients)
    for chunk in _chunks(_as_stream(source)):
        encryption_layer.write(chunk)
    encryption_layer.close()
    armor_layer.close()


class CiphertextStream:
    """Lazy, finite, non-restartable stream of armored ciphertext.

    Reads block until the producer thread has written more, and raise
    the producer's error if it failed. ``wait()`` joins the producer.
    """

    def __init__(self, reader: PipeReader):
        self._reader = reader
        self._thread: Optional[threading.Thread] = None
        self.error: Optional[BaseException] = None

    def read(self, size: int = -1) -> bytes:
        return self._reader.read(size)

    def readable(self) -> bool:
        return True

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._reader)

    def close(self) -> None:
        self._reader.close()

    def __enter__(self) -> CiphertextStream:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def wait(self, timeout: Optional[float] = None) -> None:
        """Join the producer; re-raise its error if it failed."""
        if self._thread is not None:
            self._thread.join(timeout)
        if self.error is not None:
            raise self.error


def _produce(
    stream: CiphertextStream,
    source: Source,
    recipients: Sequence[KeyEntity],
    writer: PipeWriter,
) -> None:
    try:
        encrypt_to(source, recipients, writer)
    except Exception as exc:
        logger.error("Encrypt failed: %s", exc)
        stream.error = exc
        writer.close(error=exc)
        return
    writer.close()


def encrypt(
    source: Source,
    recipients: Iterable[KeyEntity],
    capacity: int = DEFAULT_CAPACITY,
) -> CiphertextStream:
    """Start encrypting ``source`` in a producer thread.

    Args:
        source: Plaintext stream, bytes, or text.
        recipients: Public keys to encrypt for.
        capacity: Pipe buffer size in bytes.

    Returns:
        CiphertextStream: Read end of the pipe the producer writes into.
    """
    reader, writer = pipe(capacity)
    stream = CiphertextStream(reader)
    thread = threading.Thread(
        target=_produce,
        args=(stream, source, list(recipients), writer),
        name="antipaste-encrypt",
        daemon=True,
    )
    stream._thread = thread
    thread.start()
    return stream


def _read_all(source: Source) -> bytes | str:
    if isinstance(source, (bytes, bytearray, str)):
        return source
    return source.read()


def decrypt(source: Source, private_ring: Iterable[KeyEntity]) -> bytes:
    """Un-armor and decrypt a message with whichever private key fits.

    Args:
        source: Armored ciphertext as a stream, bytes, or text.
        private_ring: Candidate private keys.

    Returns:
        bytes: The plaintext.

    Raises:
        ArmorFormatError: If the input is not validly armored.
        DecryptionError: If the OpenPGP data is corrupt or not encrypted.
        NoMatchingKeyError: If no private key matches a session-key packet.
    """
    block = armor.decode(_read_all(source))

    try:
        message = pgpy.PGPMessage.from_blob(block.body)
    except Exception as exc:
        raise DecryptionError(f"invalid OpenPGP message: {exc}") from exc
    if not message.is_encrypted:
        raise DecryptionError("message is not encrypted")

    encrypters = set(message.encrypters)
    for entity in private_ring:
        if not entity.is_private or not entity.key_ids() & encrypters:
            continue
        logger.debug("Decrypting with key %s", entity.fingerprint)
        try:
            decrypted = entity.key.decrypt(message)
        except (PGPError, NotImplementedError, ValueError) as exc:
            raise DecryptionError(str(exc)) from exc
        content = decrypted.message
        if isinstance(content, str):
            content = content.encode("utf-8")
        return bytes(content)

    raise NoMatchingKeyError(encrypters)


def decrypt_to(source: Source, private_ring: Iterable[KeyEntity], sink: BinaryIO) -> int:
    """Decrypt ``source`` and write the plaintext to ``sink``.

    Returns:
        int: Number of plaintext bytes written.
    """
    plaintext = decrypt(source, private_ring)
    sink.write(plaintext)
    return len(plaintext)
