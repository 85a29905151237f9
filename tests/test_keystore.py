"""Tests for the key ring store."""

from __future__ import annotations

import os
import stat

import pytest

from antipaste.errors import ErrorKind, KeyRingFormatError
from antipaste.keystore import KeyEntity, KeyStore, parse_key_ring


class TestParseKeyRing:
    """Tests for parse_key_ring()."""

    def test_empty_input(self):
        """Empty data is an empty ring."""
        assert parse_key_ring(b"") == []

    def test_concatenated_keys(self, key_pairs):
        """Every primary key in a concatenated ring is returned in order."""
        data = b"".join(e.public().to_bytes() for e in key_pairs)
        entities = parse_key_ring(data)
        assert [e.fingerprint for e in entities] == [e.fingerprint for e in key_pairs]
        assert all(not e.is_private for e in entities)

    def test_armored_key(self, key_pairs):
        """Armored keys parse the same as binary ones."""
        entities = parse_key_ring(key_pairs[0].public().armored())
        assert entities[0].fingerprint == key_pairs[0].fingerprint

    def test_garbage_raises(self):
        """Text that is not a key cannot be parsed."""
        with pytest.raises(Exception):
            parse_key_ring("this is not a key ring")


class TestKeyEntity:
    """Tests for KeyEntity properties."""

    def test_fingerprint_format(self, key_pairs):
        """Fingerprints are 40 lowercase hex characters."""
        fp = key_pairs[0].fingerprint
        assert len(fp) == 40
        assert fp == fp.lower()
        int(fp, 16)

    def test_key_ids_include_subkeys(self, key_pairs):
        """key_ids() covers the primary key and the encryption subkey."""
        entity = key_pairs[0]
        assert entity.key_id in entity.key_ids()
        assert len(entity.subkey_ids) == 1
        assert set(entity.subkey_ids) <= entity.key_ids()

    def test_public_projection(self, key_pairs):
        """public() drops secret material but keeps identity."""
        private = key_pairs[0]
        public = private.public()
        assert private.is_private
        assert not public.is_private
        assert public.fingerprint == private.fingerprint
        assert public.public() is public

    def test_identities(self, key_pairs):
        """User ids surface as Identity models."""
        identity = key_pairs[0].identities[0]
        assert identity.name == "Alice"
        assert identity.email == "alice@example.com"
        assert identity.comment == "test"
        assert str(identity) == "Alice (test) <alice@example.com>"


class TestKeyStoreLoad:
    """Tests for KeyStore.load()."""

    def test_missing_files_are_empty(self, tmp_home):
        """A fresh home has empty rings."""
        store = KeyStore(tmp_home)
        store.load()
        assert store.public_ring == ()
        assert store.private_ring == ()

    def test_empty_files_are_empty(self, tmp_home):
        """Zero-byte ring files are empty rings."""
        (tmp_home / "pubring.gpg").write_bytes(b"")
        (tmp_home / "secring.gpg").write_bytes(b"")
        store = KeyStore(tmp_home)
        store.load()
        assert store.public_ring == ()

    def test_corrupt_ring_raises(self, tmp_home):
        """A ring file that cannot be parsed raises KeyRingFormatError."""
        path = tmp_home / "pubring.gpg"
        path.write_text("not a key ring at all")
        store = KeyStore(tmp_home)
        with pytest.raises(KeyRingFormatError) as exc_info:
            store.load()
        assert exc_info.value.path == path
        assert exc_info.value.kind == ErrorKind.KEY_RING_FORMAT

    def test_loads_populated_home(self, populated_home, key_pairs):
        """Both rings load with the right sizes."""
        store = KeyStore(populated_home)
        store.load()
        assert len(store.public_ring) == 3
        assert len(store.private_ring) == 1
        assert store.private_ring[0].is_private
        assert all(not e.is_private for e in store.public_ring)

    def test_load_is_idempotent(self, populated_home):
        """Loading twice gives the same rings."""
        store = KeyStore(populated_home)
        store.load()
        first = [e.fingerprint for e in store.public_ring]
        store.load()
        assert [e.fingerprint for e in store.public_ring] == first

    def test_private_key_missing_from_public_ring(self, tmp_home, key_pairs, write_rings):
        """Every private key has a public counterpart after load."""
        write_rings(tmp_home, key_pairs[:2], key_pairs[2:])
        store = KeyStore(tmp_home)
        store.load()
        public = {e.fingerprint for e in store.public_ring}
        assert {e.fingerprint for e in store.private_ring} <= public
        assert len(store.public_ring) == 3


class TestKeyStoreSave:
    """Tests for save(), generate_key() and import_key()."""

    def test_generate_save_load(self, tmp_home):
        """A generated key survives a save/load cycle in both rings."""
        store = KeyStore(tmp_home)
        store.load()
        entity = store.generate_key("Dave", "dave@example.com")
        assert not entity.is_private
        assert len(store.public_ring) == 1
        assert len(store.private_ring) == 1
        store.save()

        reloaded = KeyStore(tmp_home)
        reloaded.load()
        assert [e.fingerprint for e in reloaded.public_ring] == [entity.fingerprint]
        assert [e.fingerprint for e in reloaded.private_ring] == [entity.fingerprint]
        assert reloaded.has_private(entity.fingerprint)

    def test_save_permissions(self, tmp_home, key_pairs):
        """Ring files are readable by the owner only."""
        store = KeyStore(tmp_home)
        store.import_key(key_pairs[1])
        store.save()
        mode = stat.S_IMODE(store.pubring_path.stat().st_mode)
        assert mode == 0o600
        assert stat.S_IMODE(store.secring_path.stat().st_mode) == 0o600

    def test_secret_ring_never_readable_by_others(self, populated_home, monkeypatch):
        """Ring files are 0600 before any key bytes are written."""
        store = KeyStore(populated_home)
        store.load()
        store.secring_path.chmod(0o644)
        seen = []
        real_fdopen = os.fdopen

        def recording_fdopen(fd, *args, **kwargs):
            seen.append(stat.S_IMODE(os.fstat(fd).st_mode))
            return real_fdopen(fd, *args, **kwargs)

        monkeypatch.setattr(os, "fdopen", recording_fdopen)
        old_umask = os.umask(0o022)
        try:
            store.save()
        finally:
            os.umask(old_umask)
        assert seen == [0o600, 0o600]

    def test_save_new_rings_under_loose_umask(self, tmp_path, key_pairs):
        """Freshly created rings are 0600 regardless of the umask."""
        store = KeyStore(tmp_path / "fresh")
        store.import_key(key_pairs[0])
        old_umask = os.umask(0o000)
        try:
            store.save()
        finally:
            os.umask(old_umask)
        assert stat.S_IMODE(store.pubring_path.stat().st_mode) == 0o600
        assert stat.S_IMODE(store.secring_path.stat().st_mode) == 0o600

    def test_save_tightens_existing_home(self, tmp_home, key_pairs):
        """An existing home directory is restricted to its owner."""
        tmp_home.chmod(0o755)
        store = KeyStore(tmp_home)
        store.import_key(key_pairs[0])
        store.save()
        assert stat.S_IMODE(tmp_home.stat().st_mode) == 0o700

    def test_save_creates_home(self, tmp_path, key_pairs):
        """save() creates a missing home directory."""
        home = tmp_path / "new-home"
        store = KeyStore(home)
        store.import_key(key_pairs[0])
        store.save()
        assert (home / "pubring.gpg").exists()

    def test_import_appends_public_only(self, tmp_home, key_pairs):
        """Importing a private key stores only its public projection."""
        store = KeyStore(tmp_home)
        imported = store.import_key(key_pairs[0])
        assert not imported.is_private
        assert store.private_ring == ()
        assert store.find(key_pairs[0].fingerprint) is imported

    def test_import_replaces_same_fingerprint(self, tmp_home, key_pairs):
        """Importing a key twice keeps one copy in its original position."""
        store = KeyStore(tmp_home)
        store.import_key(key_pairs[0])
        store.import_key(key_pairs[1])
        store.import_key(key_pairs[0])
        assert [e.fingerprint for e in store.public_ring] == [
            key_pairs[0].fingerprint,
            key_pairs[1].fingerprint,
        ]

    def test_find_accepts_spaced_uppercase(self, tmp_home, key_pairs):
        """find() normalizes the fingerprint."""
        store = KeyStore(tmp_home)
        store.import_key(key_pairs[2])
        fp = key_pairs[2].fingerprint.upper()
        spaced = " ".join(fp[i:i + 4] for i in range(0, 40, 4))
        assert store.find(spaced).fingerprint == key_pairs[2].fingerprint
        assert store.find("0" * 40) is None

    def test_identities_in_ring_order(self, populated_home):
        """identities() pairs each entity with each of its user ids."""
        store = KeyStore(populated_home)
        store.load()
        names = [identity.name for _, identity in store.identities()]
        assert names == ["Alice", "Bob", "Carol"]
        assert all(isinstance(e, KeyEntity) for e, _ in store.identities())
