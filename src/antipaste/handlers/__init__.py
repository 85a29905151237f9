"""
Paste handlers -- the sites the ciphertext travels through.

dpaste, gist, pastebin (``pb``), paste.ubuntu.com (``ubuntu``), plain
http(s) URLs (read-only), and local files.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import requests

from ..locator import HandlerRegistry
from ..models import AntipasteConfig
from .base import PasteHandler
from .local import FileHandler
from .sites import DpasteHandler, GistHandler, HttpHandler, PastebinHandler, UbuntuHandler

__all__ = [
    "DpasteHandler",
    "FileHandler",
    "GistHandler",
    "HttpHandler",
    "PasteHandler",
    "PastebinHandler",
    "UbuntuHandler",
    "create_default_registry",
]


def create_default_registry(
    config: AntipasteConfig,
    home: Path,
    session: Optional[requests.Session] = None,
) -> HandlerRegistry:
    """Build the registry with every built-in handler.

    Args:
        config: Handler settings.
        home: antipaste home; local pastes go to ``<home>/pastes``.
        session: HTTP session shared by the site handlers.

    Returns:
        HandlerRegistry: Populated once; read-only afterwards.
    """
    session = session or requests.Session()
    registry = HandlerRegistry()
    registry.register(DpasteHandler(config.dpaste, session=session))
    registry.register(GistHandler(config.gist, session=session))
    registry.register(PastebinHandler(config.pastebin, session=session))
    registry.register(UbuntuHandler(config.ubuntu, session=session))
    registry.register(HttpHandler(session=session))
    registry.register(FileHandler(Path(home) / "pastes"))
    return registry
