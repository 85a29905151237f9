"""Shared test fixtures for antipaste."""

from __future__ import annotations

import io
from pathlib import Path
from typing import BinaryIO

import pytest

from antipaste.handlers.base import PasteHandler
from antipaste.keystore import KeyEntity, KeyStore


@pytest.fixture
def tmp_home(tmp_path: Path) -> Path:
    """Provide an empty antipaste home directory for testing."""
    home = tmp_path / ".antipaste"
    home.mkdir()
    return home


@pytest.fixture(scope="session")
def key_pairs(tmp_path_factory) -> list[KeyEntity]:
    """Three generated private keys, shared by the whole session.

    RSA generation is slow, so every test reuses these.
    """
    store = KeyStore(tmp_path_factory.mktemp("keygen"))
    store.generate_key("Alice", "alice@example.com", "test")
    store.generate_key("Bob", "bob@example.com")
    store.generate_key("Carol", "carol@example.com")
    return list(store.private_ring)


def _write_rings(home: Path, private: list[KeyEntity], public: list[KeyEntity]) -> None:
    (home / "secring.gpg").write_bytes(b"".join(e.to_bytes() for e in private))
    (home / "pubring.gpg").write_bytes(b"".join(e.public().to_bytes() for e in public))


@pytest.fixture
def write_rings():
    """Write ring files straight to disk: write_rings(home, private, public)."""
    return _write_rings


@pytest.fixture
def populated_home(tmp_home: Path, key_pairs: list[KeyEntity]) -> Path:
    """Home holding Alice's private key and all three public keys."""
    _write_rings(tmp_home, key_pairs[:1], key_pairs)
    return tmp_home


class MemoryHandler(PasteHandler):
    """Paste handler that keeps pastes in a dict."""

    def __init__(self, prefix: str = "mem"):
        self._prefix = prefix
        self.pastes: dict[str, bytes] = {}

    @property
    def prefix(self) -> str:
        return self._prefix

    def read_paste(self, locator: str) -> BinaryIO:
        return io.BytesIO(self.pastes[locator])

    def write_paste(self, stream: BinaryIO) -> str:
        ident = str(len(self.pastes) + 1)
        self.pastes[ident] = stream.read()
        return self.locator(ident)


@pytest.fixture
def memory_handler() -> MemoryHandler:
    return MemoryHandler()
