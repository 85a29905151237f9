"""
KeyStore -- the two OpenPGP key rings of one antipaste home.

    ~/.antipaste/
    ├── pubring.gpg    # public keys: ours and every imported recipient
    └── secring.gpg    # our private keys (no passphrase)

Both files hold concatenated binary OpenPGP packets, the same layout
gpg 1.x used, so the rings can be inspected with standard tooling.

Rings are append-only. Keys are generated locally or imported from a
keyserver; nothing is ever deleted or revoked. Every save rewrites
both files completely.

Usage:
    store = KeyStore(home)
    store.load()
    entity = store.generate_key("Alice", "alice@example.com", "laptop")
    store.save()
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

import pgpy
from pgpy.constants import (
    CompressionAlgorithm,
    HashAlgorithm,
    KeyFlags,
    PubKeyAlgorithm,
    SymmetricKeyAlgorithm,
)

from .errors import KeyRingFormatError
from .models import Identity

logger = logging.getLogger("antipaste.keystore")

PUBRING_NAME = "pubring.gpg"
SECRING_NAME = "secring.gpg"


class KeyEntity:
    """A primary key with its user ids and subkeys.

    Wraps a ``pgpy.PGPKey``. The entity is private when it carries
    secret key material; ``public()`` returns the projection without it.
    """

    def __init__(self, key: pgpy.PGPKey):
        self.key = key

    @property
    def fingerprint(self) -> str:
        """40 lowercase hex characters, no spaces."""
        return str(self.key.fingerprint).replace(" ", "").lower()

    @property
    def key_id(self) -> str:
        """16 uppercase hex characters, as printed by OpenPGP tooling."""
        return self.key.fingerprint.keyid

    @property
    def is_private(self) -> bool:
        return not self.key.is_public

    @property
    def created(self) -> datetime:
        return self.key.created

    @property
    def identities(self) -> list[Identity]:
        return [
            Identity(name=uid.name or "", email=uid.email or "", comment=uid.comment or "")
            for uid in self.key.userids
        ]

    @property
    def subkey_ids(self) -> list[str]:
        return list(self.key.subkeys)

    def key_ids(self) -> set[str]:
        """Primary key id plus every subkey id."""
        return {self.key_id, *self.key.subkeys}

    def public(self) -> KeyEntity:
        """Public projection; returns self if already public."""
        if not self.is_private:
            return self
        return KeyEntity(self.key.pubkey)

    def to_bytes(self) -> bytes:
        """Binary OpenPGP packets (secret packets included if private)."""
        return bytes(self.key)

    def armored(self) -> str:
        return str(self.key)

    def __repr__(self) -> str:
        kind = "private" if self.is_private else "public"
        return f"<KeyEntity {kind} {self.fingerprint}>"


def parse_key_ring(data: bytes | str) -> list[KeyEntity]:
    """Parse concatenated OpenPGP keys, binary or armored.

    Args:
        data: Raw ring contents.

    Returns:
        Entities in file order. Empty input yields an empty list.

    Raises:
        ValueError: If the data holds no valid primary key.
    """
    if not data.strip():
        return []
    first, others = pgpy.PGPKey.from_blob(data)
    keys = [first] + [k for k in others.values() if k is not first]
    for key in keys:
        if not key.is_primary:
            raise ValueError("no primary key packet found")
    return [KeyEntity(key) for key in keys]


class KeyStore:
    """Owner of the public and private key rings of a home directory.

    Assumes a single process per home directory; there is no locking.
    """

    def __init__(self, home: Path):
        """Initialize the store without touching the disk.

        Args:
            home: antipaste home directory (~/.antipaste).
        """
        self.home = Path(home).expanduser()
        self.pubring_path = self.home / PUBRING_NAME
        self.secring_path = self.home / SECRING_NAME
        self._public: list[KeyEntity] = []
        self._private: list[KeyEntity] = []

    @property
    def public_ring(self) -> tuple[KeyEntity, ...]:
        return tuple(self._public)

    @property
    def private_ring(self) -> tuple[KeyEntity, ...]:
        return tuple(self._private)

    def load(self) -> None:
        """Read both rings from disk, replacing what is in memory.

        A missing ring file is an empty ring.

        Raises:
            KeyRingFormatError: If a ring file exists but cannot be parsed.
        """
        self._public = self._read_ring(self.pubring_path)
        self._private = self._read_ring(self.secring_path)

        known = {entity.fingerprint for entity in self._public}
        for entity in self._private:
            if entity.fingerprint not in known:
                logger.warning(
                    "Private key %s missing from public ring, adding it", entity.fingerprint
                )
                self._public.append(entity.public())
                known.add(entity.fingerprint)

        logger.debug(
            "Loaded %d public and %d private keys from %s",
            len(self._public), len(self._private), self.home,
        )

    @staticmethod
    def _read_ring(path: Path) -> list[KeyEntity]:
        if not path.exists():
            return []
        data = path.read_bytes()
        try:
            return parse_key_ring(data)
        except Exception as exc:
            raise KeyRingFormatError(path, str(exc)) from exc

    def save(self) -> None:
        """Write both rings to disk, overwriting their previous contents.

        The complete ring is written on every call. A failure mid-write
        leaves a truncated file behind.
        """
        self.home.mkdir(mode=0o700, parents=True, exist_ok=True)
        self.home.chmod(0o700)
        self._write_ring(self.pubring_path, self._public)
        self._write_ring(self.secring_path, self._private)
        logger.info(
            "Saved %d public and %d private keys to %s",
            len(self._public), len(self._private), self.home,
        )

    @staticmethod
    def _write_ring(path: Path, ring: Iterable[KeyEntity]) -> None:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        # O_CREAT only applies the mode to new files
        os.fchmod(fd, 0o600)
        with os.fdopen(fd, "wb") as fh:
            fh.write(b"".join(entity.to_bytes() for entity in ring))

    def find(self, fingerprint: str) -> Optional[KeyEntity]:
        """Look up a public entity by its full fingerprint."""
        fingerprint = fingerprint.replace(" ", "").lower()
        for entity in self._public:
            if entity.fingerprint == fingerprint:
                return entity
        return None

    def generate_key(
        self,
        name: str,
        email: str = "",
        comment: str = "",
        key_size: int = 2048,
    ) -> KeyEntity:
        """Generate a new key pair and add it to both rings.

        The primary key signs and certifies; an RSA subkey of the same
        size handles encryption. The key is not passphrase-protected.
        Call ``save()`` to persist it.

        Args:
            name: Display name for the user id.
            email: Email for the user id.
            comment: Comment for the user id.
            key_size: RSA modulus size in bits.

        Returns:
            KeyEntity: The public projection of the new key.
        """
        key = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, key_size)
        uid = pgpy.PGPUID.new(name, comment=comment, email=email)
        key.add_uid(
            uid,
            usage={KeyFlags.Sign, KeyFlags.Certify},
            hashes=[HashAlgorithm.SHA256, HashAlgorithm.SHA512],
            ciphers=[
                SymmetricKeyAlgorithm.AES256,
                SymmetricKeyAlgorithm.AES192,
                SymmetricKeyAlgorithm.AES128,
            ],
            compression=[
                CompressionAlgorithm.ZLIB,
                CompressionAlgorithm.ZIP,
                CompressionAlgorithm.Uncompressed,
            ],
        )
        subkey = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, key_size)
        key.add_subkey(
            subkey,
            usage={KeyFlags.EncryptCommunications, KeyFlags.EncryptStorage},
        )

        private = KeyEntity(key)
        public = private.public()
        self._private.append(private)
        self._public.append(public)
        logger.info("Generated key %s for %s", public.fingerprint, public.identities[0])
        return public

    def import_key(self, entity: KeyEntity) -> KeyEntity:
        """Merge a public key into the public ring.

        A key already present (same fingerprint) is replaced in place,
        so the ring never holds duplicates. Private material is dropped.

        Args:
            entity: Key to import, typically fetched from a keyserver.

        Returns:
            KeyEntity: The public entity now in the ring.
        """
        public = entity.public()
        for index, existing in enumerate(self._public):
            if existing.fingerprint == public.fingerprint:
                self._public[index] = public
                logger.info("Updated key %s", public.fingerprint)
                return public
        self._public.append(public)
        logger.info("Imported key %s", public.fingerprint)
        return public

    def identities(self) -> list[tuple[KeyEntity, Identity]]:
        """Every (entity, identity) pair in the public ring, in ring order."""
        return [
            (entity, identity)
            for entity in self._public
            for identity in entity.identities
        ]

    def has_private(self, fingerprint: str) -> bool:
        return any(entity.fingerprint == fingerprint for entity in self._private)
