"""
HKP keyserver client -- search for keys and fetch them.

Two requests against ``/pks/lookup``:

    op=index&search=<term>&options=mr   machine-readable listing
    op=get&search=0x<keyid>&options=mr  ASCII-armored key export

The listing is line oriented and colon delimited:

    info:1:1
    pub:<keyid>:<algo>:<keylen>:<created>:<expires>:<flags>
    uid:<escaped uid>:<created>:<expires>:<flags>

Each ``uid`` belongs to the nearest preceding ``pub``. Empty dates mean
"unknown" (0) for creation and "never" (NEVER_EXPIRES) for expiration.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional
from urllib.parse import unquote

import requests

from . import armor
from .errors import KeyNotFoundError, KeyserverProtocolError
from .keystore import KeyEntity, parse_key_ring
from .models import DEFAULT_HKP_PORT, NEVER_EXPIRES, HkpResult, HkpUserId

logger = logging.getLogger("antipaste.hkp")

LOOKUP_PATH = "/pks/lookup"

_DIGITS = re.compile(r"\d+")


def _field(fields: list[str], index: int) -> str:
    return fields[index] if index < len(fields) else ""


def _number(value: str, default: int, what: str, line_number: int, line: str) -> int:
    value = value.strip()
    if not value:
        return default
    if not _DIGITS.fullmatch(value):
        raise KeyserverProtocolError(f"invalid {what} {value!r}", line_number, line)
    number = int(value)
    if number > NEVER_EXPIRES:
        raise KeyserverProtocolError(f"{what} out of range {value!r}", line_number, line)
    return number


def parse_index(lines: Iterable[str]) -> list[HkpResult]:
    """Parse a machine-readable ``op=index`` response.

    Args:
        lines: Response lines, with or without line terminators.

    Returns:
        Lookup results in server order.

    Raises:
        KeyserverProtocolError: On a ``uid`` before any ``pub`` or a
            malformed numeric field.
    """
    results: list[HkpResult] = []
    current: Optional[HkpResult] = None

    for line_number, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        if not line.strip():
            continue
        fields = line.split(":")
        record = fields[0].strip().lower()

        if record == "pub":
            current = HkpResult(
                key_id=_field(fields, 1),
                algo=_number(_field(fields, 2), 0, "algorithm", line_number, line),
                key_len=_number(_field(fields, 3), 0, "key length", line_number, line),
                creation=_number(_field(fields, 4), 0, "creation date", line_number, line),
                expiration=_number(
                    _field(fields, 5), NEVER_EXPIRES, "expiration date", line_number, line
                ),
                flags=_field(fields, 6),
            )
            results.append(current)

        elif record == "uid":
            if current is None:
                raise KeyserverProtocolError("'uid' record before 'pub'", line_number, line)
            current.uids.append(
                HkpUserId(
                    uid=unquote(_field(fields, 1)),
                    creation=_number(_field(fields, 2), 0, "creation date", line_number, line),
                    expiration=_number(
                        _field(fields, 3), NEVER_EXPIRES, "expiration date", line_number, line
                    ),
                    flags=_field(fields, 4),
                )
            )

        # info and unknown records carry nothing we use

    return results


class HkpClient:
    """Client for one HKP keyserver.

    No retries. A timeout is only applied when one is given.
    """

    def __init__(
        self,
        hostname: str,
        port: int = DEFAULT_HKP_PORT,
        scheme: str = "http",
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.hostname = hostname
        self.port = port or DEFAULT_HKP_PORT
        self.scheme = scheme
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.hostname}:{self.port}"

    def _get(self, params: dict[str, str]) -> requests.Response:
        url = self.base_url + LOOKUP_PATH
        logger.debug("GET %s %s", url, params)
        return self.session.get(url, params=params, timeout=self.timeout)

    def lookup(self, term: str) -> list[HkpResult]:
        """Search the keyserver.

        Args:
            term: Name, email, or key id to search for.

        Returns:
            Matching keys; empty if the server has none.

        Raises:
            KeyserverProtocolError: If the listing is malformed.
            requests.RequestException: On transport or HTTP errors.
        """
        resp = self._get({"op": "index", "search": term, "options": "mr"})
        if resp.status_code == 404:
            return []
        resp.raise_for_status()
        results = parse_index(resp.text.splitlines())
        logger.info("Keyserver %s returned %d keys for %r", self.hostname, len(results), term)
        return results

    def get(self, key_id: str) -> KeyEntity:
        """Fetch the key with the given key id.

        Args:
            key_id: Key id or fingerprint, with or without ``0x``.

        Returns:
            KeyEntity: The first key in the server's export.

        Raises:
            KeyNotFoundError: If the server has no parsable key.
            requests.RequestException: On transport or HTTP errors.
        """
        key_id = key_id.strip()
        if key_id.lower().startswith("0x"):
            key_id = key_id[2:]

        resp = self._get({"op": "get", "search": f"0x{key_id}", "options": "mr"})
        if resp.status_code == 404:
            raise KeyNotFoundError(key_id)
        resp.raise_for_status()

        block = armor.find_block(resp.text)
        if block is None:
            raise KeyNotFoundError(key_id)
        try:
            entities = parse_key_ring(block)
        except Exception as exc:
            logger.debug("Unparsable key export for %s: %s", key_id, exc)
            raise KeyNotFoundError(key_id) from exc
        if not entities:
            raise KeyNotFoundError(key_id)
        logger.info("Fetched key %s from %s", entities[0].fingerprint, self.hostname)
        return entities[0]


def parse_hkp_uri(uri: str, timeout: Optional[float] = None) -> HkpClient:
    """Build a client from ``host[:port]``.

    An ``hkp://``, ``http://`` or ``https://`` prefix is accepted; ``hkps``
    and ``https`` use TLS.

    Raises:
        ValueError: If the port is not a number.
    """
    uri = uri.strip().rstrip("/")
    scheme = "http"
    if "://" in uri:
        prefix, uri = uri.split("://", 1)
        if prefix.lower() in ("https", "hkps"):
            scheme = "https"
    host, sep, port = uri.partition(":")
    if not host:
        raise ValueError(f"Invalid HKP URI: {uri!r}")
    if sep:
        if not port.isdigit():
            raise ValueError(f"Invalid HKP port: {port!r}")
        return HkpClient(host, int(port), scheme=scheme, timeout=timeout)
    default_port = 443 if scheme == "https" else DEFAULT_HKP_PORT
    return HkpClient(host, default_port, scheme=scheme, timeout=timeout)
