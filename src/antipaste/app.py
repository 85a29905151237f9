"""
The antipaste application -- get, put, and key management in one place.

Loads config and key rings from the home directory, builds the handler
registry once, and runs one operation per call:

    get      locator -> handler download -> decrypt -> sink
    put      source -> encrypt (producer thread) -> handler upload -> locator
    new_key  generate a key pair, save both rings
    find_key search a keyserver
    import_key fetch a key from a keyserver, merge, save
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, Iterable, Optional

import yaml

from . import ANTIPASTE_HOME
from .crypto import Source, decrypt_to, encrypt
from .errors import UnrecognizedLocatorError
from .handlers import create_default_registry
from .hkp import HkpClient, parse_hkp_uri
from .keystore import KeyEntity, KeyStore
from .locator import HandlerRegistry, LocatorDispatcher
from .models import AntipasteConfig, HkpResult, Identity
from .recipients import resolve_recipients

logger = logging.getLogger("antipaste.app")

CONFIG_NAME = "config.yaml"


def load_config(home: Path) -> AntipasteConfig:
    """Load configuration from ``<home>/config.yaml``.

    Returns:
        AntipasteConfig from the file, or defaults if it is missing or bad.
    """
    config_file = home / CONFIG_NAME
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
            return AntipasteConfig(**data)
        except (yaml.YAMLError, ValueError, TypeError) as exc:
            logger.warning("Failed to load config, using defaults: %s", exc)
    return AntipasteConfig()


class Antipaste:
    """One antipaste home: its config, key rings, and paste handlers."""

    def __init__(
        self,
        home: Optional[Path] = None,
        config: Optional[AntipasteConfig] = None,
        registry: Optional[HandlerRegistry] = None,
    ):
        """Load the home directory.

        Args:
            home: Override home directory. Defaults to ~/.antipaste/.
            config: Override configuration instead of reading config.yaml.
            registry: Override the handler registry (tests, custom sites).

        Raises:
            KeyRingFormatError: If a ring file cannot be parsed.
        """
        self.home = Path(home or ANTIPASTE_HOME).expanduser()
        self.config = config or load_config(self.home)
        self.store = KeyStore(self.home)
        self.store.load()
        self.registry = registry or create_default_registry(self.config, self.home)
        self.dispatcher = LocatorDispatcher(self.registry)

    def get(self, locator: str, sink: BinaryIO) -> int:
        """Download and decrypt a paste into ``sink``.

        Returns:
            int: Plaintext bytes written.
        """
        handler, remainder = self.dispatcher.dispatch(locator)
        logger.debug("Reading %s paste %s", handler.prefix, remainder)
        stream = handler.read_paste(remainder)
        try:
            return decrypt_to(stream, self.store.private_ring, sink)
        finally:
            stream.close()

    def put(self, prefix: str, source: Source, recipient_ids: Iterable[str]) -> str:
        """Encrypt ``source`` for the recipients and upload it.

        The handler consumes the ciphertext while the producer thread
        is still encrypting; the producer's error, if any, is re-raised.

        Returns:
            str: Locator of the new paste.
        """
        recipients = resolve_recipients(self.store.public_ring, recipient_ids)
        handler = self.registry.get(prefix)
        if handler is None:
            raise UnrecognizedLocatorError(prefix)

        stream = encrypt(source, recipients, capacity=self.config.pipe_capacity)
        try:
            locator = handler.write_paste(stream)
        finally:
            stream.close()
        stream.wait()
        logger.info(
            "Paste for %s written to %s",
            ", ".join(r.fingerprint[-16:] for r in recipients), locator,
        )
        return locator

    def new_key(self, name: str, email: str = "", comment: str = "") -> KeyEntity:
        """Generate a key pair and save both rings."""
        entity = self.store.generate_key(name, email, comment, key_size=self.config.key_size)
        self.store.save()
        return entity

    def keyserver(self, uri: Optional[str] = None) -> HkpClient:
        return parse_hkp_uri(uri or self.config.keyserver, timeout=self.config.hkp_timeout)

    def find_key(self, term: str, keyserver: Optional[str] = None) -> list[HkpResult]:
        """Search a keyserver (the configured one by default)."""
        return self.keyserver(keyserver).lookup(term)

    def import_key(self, key_id: str, keyserver: Optional[str] = None) -> KeyEntity:
        """Fetch a key from a keyserver, add it to the public ring, save."""
        entity = self.keyserver(keyserver).get(key_id)
        imported = self.store.import_key(entity)
        self.store.save()
        return imported

    def identities(self) -> list[tuple[KeyEntity, Identity]]:
        return self.store.identities()
