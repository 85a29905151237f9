"""
Recipient resolution -- from what the user typed to a public key.

Recipients are named by a suffix of their fingerprint: the last 8 or
16 hex digits, or the whole thing. A suffix that matches more than
one key is refused instead of silently picking one.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from .errors import AmbiguousRecipientError, RecipientNotFoundError
from .keystore import KeyEntity


def _normalize(identifier: str) -> str:
    ident = identifier.strip().replace(" ", "").lower()
    if ident.startswith("0x"):
        ident = ident[2:]
    return ident


def resolve_recipient(ring: Iterable[KeyEntity], identifier: str) -> KeyEntity:
    """Find the public key whose fingerprint ends with ``identifier``.

    Matching is case-insensitive; spaces and a leading ``0x`` are ignored.

    Args:
        ring: Public key ring to search.
        identifier: Fingerprint suffix.

    Returns:
        KeyEntity: The single matching entity.

    Raises:
        RecipientNotFoundError: If nothing matches.
        AmbiguousRecipientError: If more than one key matches.
    """
    suffix = _normalize(identifier)
    if not suffix:
        raise RecipientNotFoundError(identifier)

    matches = [entity for entity in ring if entity.fingerprint.endswith(suffix)]
    if not matches:
        raise RecipientNotFoundError(identifier)
    if len(matches) > 1:
        raise AmbiguousRecipientError(identifier, [m.fingerprint for m in matches])
    return matches[0]


def resolve_recipients(
    ring: Sequence[KeyEntity], identifiers: Iterable[str]
) -> list[KeyEntity]:
    """Resolve every identifier and collapse duplicates by fingerprint.

    Args:
        ring: Public key ring to search.
        identifiers: Fingerprint suffixes, possibly overlapping.

    Returns:
        Unique recipients in first-seen order.

    Raises:
        RecipientNotFoundError: If the list is empty or an identifier
            matches nothing.
        AmbiguousRecipientError: If an identifier matches several keys.
    """
    recipients: dict[str, KeyEntity] = {}
    for identifier in identifiers:
        entity = resolve_recipient(ring, identifier)
        recipients.setdefault(entity.fingerprint, entity.public())
    if not recipients:
        raise RecipientNotFoundError(None)
    return list(recipients.values())
