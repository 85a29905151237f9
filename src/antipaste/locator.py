"""
Locator dispatch -- which paste handler owns a locator string.

    gist:abc123              -> ("gist", "abc123")
    http://example.com/x     -> ("http", "http://example.com/x")
    ./secret.asc             -> ("file", "./secret.asc")

The registry is built once at startup and passed around explicitly.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Iterator, Optional

from .errors import UnrecognizedLocatorError

if TYPE_CHECKING:
    from .handlers.base import PasteHandler

logger = logging.getLogger("antipaste.locator")

HTTP_PREFIX = "http"
FILE_PREFIX = "file"
_URL_SCHEMES = ("http", "https")


def _is_file(locator: str) -> bool:
    """True if ``locator`` names an existing file. Unstattable paths count as not a file."""
    try:
        return Path(locator).expanduser().is_file()
    except (OSError, RuntimeError):
        return False


class HandlerRegistry:
    """Protocol prefix -> paste handler."""

    def __init__(self) -> None:
        self._handlers: dict[str, PasteHandler] = {}

    def register(self, handler: PasteHandler) -> None:
        """Add a handler under its prefix.

        Raises:
            ValueError: If the prefix is already taken.
        """
        prefix = handler.prefix
        if prefix in self._handlers:
            raise ValueError(f"Handler already registered for prefix: {prefix}")
        self._handlers[prefix] = handler
        logger.debug("Registered paste handler %s", prefix)

    def get(self, prefix: str) -> Optional[PasteHandler]:
        return self._handlers.get(prefix)

    def prefixes(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, prefix: object) -> bool:
        return prefix in self._handlers

    def __iter__(self) -> Iterator[PasteHandler]:
        return iter(self._handlers.values())

    def __len__(self) -> int:
        return len(self._handlers)


class LocatorDispatcher:
    """Classifies locators against a registry. Performs no network I/O."""

    def __init__(self, registry: HandlerRegistry):
        self.registry = registry

    def classify(self, locator: str) -> tuple[str, str]:
        """Split a locator into (protocol prefix, remainder).

        URLs keep the whole locator as the remainder; local files are
        classified as ``file``.

        Raises:
            UnrecognizedLocatorError: If no rule applies.
        """
        prefix, sep, remainder = locator.partition(":")
        if sep:
            if prefix.lower() in _URL_SCHEMES:
                return HTTP_PREFIX, locator
            if prefix in self.registry:
                return prefix, remainder
        if _is_file(locator):
            return FILE_PREFIX, locator
        raise UnrecognizedLocatorError(locator)

    def dispatch(self, locator: str) -> tuple[PasteHandler, str]:
        """Classify a locator and return its handler and remainder.

        Raises:
            UnrecognizedLocatorError: If the locator or its protocol is unknown.
        """
        prefix, remainder = self.classify(locator)
        handler = self.registry.get(prefix)
        if handler is None:
            raise UnrecognizedLocatorError(locator)
        return handler, remainder
