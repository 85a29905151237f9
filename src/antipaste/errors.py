"""
Error kinds raised by antipaste.

Every failure surfaces as one member of a closed set of kinds so that
callers and tests can inspect what went wrong without parsing prose.
Each exception carries the structured context of the failure
(offending path, identifier, key ids, locator, ...).
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Iterable, Optional


class ErrorKind(str, Enum):
    """Closed enumeration of failure kinds."""

    KEY_RING_FORMAT = "key_ring_format"
    RECIPIENT_NOT_FOUND = "recipient_not_found"
    AMBIGUOUS_RECIPIENT = "ambiguous_recipient"
    NO_MATCHING_KEY = "no_matching_key"
    ARMOR_FORMAT = "armor_format"
    DECRYPTION = "decryption"
    ENCRYPTION = "encryption"
    KEYSERVER_PROTOCOL = "keyserver_protocol"
    KEY_NOT_FOUND = "key_not_found"
    UNRECOGNIZED_LOCATOR = "unrecognized_locator"
    PASTE_HANDLER = "paste_handler"
    IO = "io"


class AntipasteError(Exception):
    """Base class for every antipaste failure."""

    kind: ErrorKind


class KeyRingFormatError(AntipasteError):
    """A key ring file exists but cannot be parsed."""

    kind = ErrorKind.KEY_RING_FORMAT

    def __init__(self, path: Path, reason: str = ""):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid key ring {path}: {reason}" if reason else f"Invalid key ring {path}")


class RecipientNotFoundError(AntipasteError):
    """No public key matches the given identifier."""

    kind = ErrorKind.RECIPIENT_NOT_FOUND

    def __init__(self, identifier: Optional[str]):
        self.identifier = identifier
        if identifier:
            super().__init__(f"Recipient not found: {identifier}")
        else:
            super().__init__("At least one recipient is required")


class AmbiguousRecipientError(AntipasteError):
    """More than one public key matches the given identifier."""

    kind = ErrorKind.AMBIGUOUS_RECIPIENT

    def __init__(self, identifier: str, fingerprints: Iterable[str]):
        self.identifier = identifier
        self.fingerprints = list(fingerprints)
        super().__init__(
            f"Recipient {identifier!r} matches {len(self.fingerprints)} keys: "
            + ", ".join(self.fingerprints)
        )


class NoMatchingKeyError(AntipasteError):
    """None of our private keys can open the message."""

    kind = ErrorKind.NO_MATCHING_KEY

    def __init__(self, key_ids: Iterable[str]):
        self.key_ids = sorted(key_ids)
        super().__init__(
            "No private key for message encrypted to: "
            + (", ".join(self.key_ids) or "(no recipients)")
        )


class ArmorFormatError(AntipasteError):
    """Input is not validly ASCII-armored."""

    kind = ErrorKind.ARMOR_FORMAT

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"ASCII armor invalid: {reason}")


class DecryptionError(AntipasteError):
    """The OpenPGP message is structurally corrupt or cannot be decrypted."""

    kind = ErrorKind.DECRYPTION

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Decrypt failed: {reason}")


class EncryptionError(AntipasteError):
    """A recipient key cannot be used to encrypt."""

    kind = ErrorKind.ENCRYPTION

    def __init__(self, reason: str, fingerprint: Optional[str] = None):
        self.reason = reason
        self.fingerprint = fingerprint
        super().__init__(f"Encrypt failed: {reason}")


class KeyserverProtocolError(AntipasteError):
    """The keyserver returned a response that violates the HKP format."""

    kind = ErrorKind.KEYSERVER_PROTOCOL

    def __init__(self, reason: str, line_number: Optional[int] = None, line: Optional[str] = None):
        self.reason = reason
        self.line_number = line_number
        self.line = line
        where = f" (line {line_number}: {line!r})" if line_number is not None else ""
        super().__init__(f"Invalid response from keyserver: {reason}{where}")


class KeyNotFoundError(AntipasteError):
    """The keyserver has no parsable key for the requested key id."""

    kind = ErrorKind.KEY_NOT_FOUND

    def __init__(self, key_id: str):
        self.key_id = key_id
        super().__init__(f"Key not found: {key_id}")


class UnrecognizedLocatorError(AntipasteError):
    """A locator matches no registered protocol and no local file."""

    kind = ErrorKind.UNRECOGNIZED_LOCATOR

    def __init__(self, locator: str):
        self.locator = locator
        super().__init__(f"Not an antipaste locator: {locator}")


class PasteHandlerError(AntipasteError):
    """A paste site answered with something the handler cannot use."""

    kind = ErrorKind.PASTE_HANDLER

    def __init__(self, prefix: str, reason: str):
        self.prefix = prefix
        self.reason = reason
        super().__init__(f"{prefix}: {reason}")


def error_kind(exc: BaseException) -> Optional[ErrorKind]:
    """Map any exception to its error kind.

    OSError covers filesystem faults and, through IOError, every
    ``requests`` exception.

    Args:
        exc: The exception to classify.

    Returns:
        The ErrorKind, or None for exceptions outside the closed set.
    """
    if isinstance(exc, AntipasteError):
        return exc.kind
    if isinstance(exc, OSError):
        return ErrorKind.IO
    return None
