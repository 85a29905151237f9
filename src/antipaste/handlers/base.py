"""
Paste handler contract -- where the armored ciphertext travels.

Each handler is a thin adapter for one paste site. It only ever sees
ciphertext: ``write_paste`` consumes the armored stream and returns a
locator, ``read_paste`` turns a locator back into the armored bytes.
"""

from __future__ import annotations

import io
import re
from abc import ABC, abstractmethod
from typing import BinaryIO

from .. import armor
from ..errors import PasteHandlerError


def paste_id(locator: str, prefix: str) -> str:
    """Last path component of a locator, without the ``<prefix>:`` tag.

    Accepts a bare id, ``prefix:id``, or a full paste URL.
    """
    fields = locator.strip().strip("/").split("/")
    return re.sub(rf"^{re.escape(prefix)}:", "", fields[-1])


def extract_block(content: bytes | str) -> BinaryIO:
    """Pull the armored block out of an HTML page, if one is present."""
    text = content.decode("utf-8", errors="replace") if isinstance(content, bytes) else content
    block = armor.find_block(text)
    if block is None:
        data = content if isinstance(content, bytes) else content.encode("utf-8")
        return io.BytesIO(data)
    return io.BytesIO((block + "\n").encode("utf-8"))


def id_from_location(prefix: str, location: str | None) -> str:
    """Paste id from the URL a site points to after an upload.

    Raises:
        PasteHandlerError: If the location is missing or has no path.
    """
    if not location:
        raise PasteHandlerError(prefix, "paste location missing from response")
    fields = location.strip().strip('"').rstrip("/").split("/")
    if len(fields) < 2 or not fields[-1]:
        raise PasteHandlerError(prefix, f"invalid paste location: {location}")
    return fields[-1]


class PasteHandler(ABC):
    """Abstract paste site adapter."""

    @property
    @abstractmethod
    def prefix(self) -> str:
        """Protocol prefix used in locators (``gist``, ``pb``, ...)."""

    @abstractmethod
    def read_paste(self, locator: str) -> BinaryIO:
        """Fetch a paste.

        Args:
            locator: The locator remainder after the prefix, or a URL.

        Returns:
            Binary stream of the paste contents.
        """

    @abstractmethod
    def write_paste(self, stream: BinaryIO) -> str:
        """Upload the contents of ``stream``.

        Args:
            stream: Armored ciphertext, read to end of stream.

        Returns:
            Locator string for the new paste.
        """

    def locator(self, ident: str) -> str:
        return f"{self.prefix}:{ident}"
