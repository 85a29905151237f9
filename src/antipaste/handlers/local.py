"""
Local file handler -- pastes as files on disk.

Useful for USB sticks, shared folders, or attaching the ciphertext to
an email by hand. Uploads land in ``<home>/pastes/`` named by content
hash; the returned locator is the file path.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import BinaryIO

from ..locator import FILE_PREFIX
from .base import PasteHandler

logger = logging.getLogger("antipaste.handlers.local")


class FileHandler(PasteHandler):
    """Reads any local file, writes into a paste directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory).expanduser()

    @property
    def prefix(self) -> str:
        return FILE_PREFIX

    def read_paste(self, locator: str) -> BinaryIO:
        return open(Path(locator).expanduser(), "rb")

    def write_paste(self, stream: BinaryIO) -> str:
        data = stream.read()
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.directory.mkdir(mode=0o700, parents=True, exist_ok=True)
        path = self.directory / f"{hashlib.sha256(data).hexdigest()[:16]}.asc"
        path.write_bytes(data)
        logger.info("Paste written to %s", path)
        return str(path)
