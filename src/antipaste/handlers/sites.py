"""
Paste site handlers -- dpaste, GitHub gist, pastebin, paste.ubuntu.com, http.

Each one translates the handler contract into the site's own requests.
The armored ciphertext is uploaded as plain text; these sites never see
anything else.
"""

from __future__ import annotations

import io
import logging
import os
from typing import BinaryIO, Optional

import requests

from ..errors import PasteHandlerError
from ..locator import HTTP_PREFIX
from ..models import DpasteConfig, GistConfig, PastebinConfig, UbuntuConfig
from .base import PasteHandler, extract_block, id_from_location, paste_id

logger = logging.getLogger("antipaste.handlers.sites")


def _read_text(stream: BinaryIO) -> str:
    data = stream.read()
    return data.decode("utf-8") if isinstance(data, bytes) else data


class _SiteHandler(PasteHandler):
    """Shared HTTP plumbing."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: Optional[float] = None):
        self.session = session or requests.Session()
        self.timeout = timeout

    def _fetch(self, url: str) -> requests.Response:
        logger.debug("GET %s", url)
        resp = self.session.get(url, timeout=self.timeout)
        resp.raise_for_status()
        return resp


class DpasteHandler(_SiteHandler):
    """dpaste.org: form upload, raw download."""

    base_url = "https://dpaste.org"

    def __init__(self, config: Optional[DpasteConfig] = None, **kwargs):
        super().__init__(**kwargs)
        self.config = config or DpasteConfig()

    @property
    def prefix(self) -> str:
        return "dpaste"

    def read_paste(self, locator: str) -> BinaryIO:
        ident = paste_id(locator, self.prefix)
        resp = self._fetch(f"{self.base_url}/{ident}/raw")
        return io.BytesIO(resp.content)

    def write_paste(self, stream: BinaryIO) -> str:
        resp = self.session.post(
            f"{self.base_url}/api/",
            data={
                "content": _read_text(stream),
                "lexer": self.config.lexer,
                "expires": str(self.config.expires),
                "title": self.config.title,
            },
            allow_redirects=False,
            timeout=self.timeout,
        )
        resp.raise_for_status()
        location = resp.headers.get("Location") or resp.text.strip()
        ident = id_from_location(self.prefix, location)
        logger.info("Paste written to dpaste: %s", ident)
        return self.locator(ident)


class GistHandler(_SiteHandler):
    """GitHub gists via the REST API."""

    api_url = "https://api.github.com/gists"

    def __init__(self, config: Optional[GistConfig] = None, **kwargs):
        super().__init__(**kwargs)
        self.config = config or GistConfig()

    @property
    def prefix(self) -> str:
        return "gist"

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.config.token_env_var:
            token = os.environ.get(self.config.token_env_var, "")
            if token:
                headers["Authorization"] = f"Bearer {token}"
        return headers

    def read_paste(self, locator: str) -> BinaryIO:
        ident = paste_id(locator, self.prefix)
        logger.debug("GET %s/%s", self.api_url, ident)
        resp = self.session.get(
            f"{self.api_url}/{ident}", headers=self._headers(), timeout=self.timeout
        )
        resp.raise_for_status()
        try:
            files = resp.json().get("files") or {}
        except ValueError as exc:
            raise PasteHandlerError(self.prefix, f"unrecognized response format: {exc}") from exc
        for entry in files.values():
            content = entry.get("content") if isinstance(entry, dict) else None
            if isinstance(content, str):
                return io.BytesIO(content.encode("utf-8"))
        raise PasteHandlerError(self.prefix, f"no file content in gist {ident}")

    def write_paste(self, stream: BinaryIO) -> str:
        payload = {
            "description": self.config.description,
            "public": self.config.public,
            "files": {self.config.filename: {"content": _read_text(stream)}},
        }
        resp = self.session.post(
            self.api_url, json=payload, headers=self._headers(), timeout=self.timeout
        )
        resp.raise_for_status()
        ident = None
        try:
            ident = resp.json().get("id")
        except ValueError:
            pass
        if not ident:
            ident = id_from_location(self.prefix, resp.headers.get("Location"))
        logger.info("Paste written to gist: %s", ident)
        return self.locator(ident)


class PastebinHandler(_SiteHandler):
    """pastebin.com via its developer API."""

    base_url = "https://pastebin.com"

    def __init__(self, config: Optional[PastebinConfig] = None, **kwargs):
        super().__init__(**kwargs)
        self.config = config or PastebinConfig()

    @property
    def prefix(self) -> str:
        return "pb"

    def read_paste(self, locator: str) -> BinaryIO:
        ident = paste_id(locator, self.prefix)
        resp = self._fetch(f"{self.base_url}/raw/{ident}")
        return io.BytesIO(resp.content)

    def write_paste(self, stream: BinaryIO) -> str:
        if not self.config.api_key:
            raise PasteHandlerError(self.prefix, "no pastebin api_key configured")
        resp = self.session.post(
            f"{self.base_url}/api/api_post.php",
            data={
                "api_option": "paste",
                "api_dev_key": self.config.api_key,
                "api_paste_code": _read_text(stream),
            },
            timeout=self.timeout,
        )
        resp.raise_for_status()
        body = resp.text.strip()
        if body.startswith("Bad API request"):
            raise PasteHandlerError(self.prefix, body)
        ident = id_from_location(self.prefix, body)
        logger.info("Paste written to pastebin: %s", ident)
        return self.locator(ident)


class UbuntuHandler(_SiteHandler):
    """paste.ubuntu.com: form upload, ciphertext scraped from the page."""

    base_url = "https://paste.ubuntu.com"

    def __init__(self, config: Optional[UbuntuConfig] = None, **kwargs):
        super().__init__(**kwargs)
        self.config = config or UbuntuConfig()

    @property
    def prefix(self) -> str:
        return "ubuntu"

    def read_paste(self, locator: str) -> BinaryIO:
        ident = paste_id(locator, self.prefix)
        resp = self._fetch(f"{self.base_url}/p/{ident}/")
        return extract_block(resp.text)

    def write_paste(self, stream: BinaryIO) -> str:
        resp = self.session.post(
            f"{self.base_url}/",
            data={
                "poster": self.config.poster,
                "syntax": self.config.syntax,
                "expiration": "",
                "content": _read_text(stream),
            },
            allow_redirects=False,
            timeout=self.timeout,
        )
        resp.raise_for_status()
        ident = id_from_location(self.prefix, resp.headers.get("Location"))
        logger.info("Paste written to paste.ubuntu.com: %s", ident)
        return self.locator(ident)


class HttpHandler(_SiteHandler):
    """Any http(s) URL holding an armored block. Read-only."""

    @property
    def prefix(self) -> str:
        return HTTP_PREFIX

    def read_paste(self, locator: str) -> BinaryIO:
        resp = self._fetch(locator)
        return extract_block(resp.content)

    def write_paste(self, stream: BinaryIO) -> str:
        raise PasteHandlerError(self.prefix, "http locators are read-only")
