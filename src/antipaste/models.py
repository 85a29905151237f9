"""
Pydantic models for keyserver results, identities, and configuration.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

NEVER_EXPIRES = 0xFFFFFFFFFFFFFFFF
"""Expiration sentinel for keys and user ids without an expiration date."""

DEFAULT_KEYSERVER = "pgp.mit.edu"
DEFAULT_HKP_PORT = 11371


class Identity(BaseModel):
    """One user id on a key: name, email, and comment."""

    name: str = ""
    email: str = ""
    comment: str = ""

    def __str__(self) -> str:
        text = self.name
        if self.comment:
            text += f" ({self.comment})"
        if self.email:
            text += f" <{self.email}>"
        return text.strip()


class HkpUserId(BaseModel):
    """A ``uid`` record from a machine-readable keyserver index."""

    uid: str
    creation: int = 0
    expiration: int = NEVER_EXPIRES
    flags: str = ""


class HkpResult(BaseModel):
    """A ``pub`` record and the ``uid`` records that follow it.

    Attributes:
        key_id: Key id as sent by the server (usually 16 hex chars).
        algo: OpenPGP public-key algorithm id.
        key_len: Key length in bits.
        creation: Creation time, seconds since the epoch (0 if unknown).
        expiration: Expiration time, NEVER_EXPIRES if none.
        flags: Server flags (r=revoked, d=disabled, e=expired).
        uids: User ids in server order.
    """

    key_id: str
    algo: int = 0
    key_len: int = 0
    creation: int = 0
    expiration: int = NEVER_EXPIRES
    flags: str = ""
    uids: list[HkpUserId] = Field(default_factory=list)

    @property
    def never_expires(self) -> bool:
        return self.expiration == NEVER_EXPIRES


class DpasteConfig(BaseModel):
    """Settings for dpaste.org uploads."""

    expires: int = 3600
    lexer: str = "text"
    title: str = ""


class GistConfig(BaseModel):
    """Settings for GitHub gist uploads."""

    description: str = ""
    filename: str = "README"
    public: bool = True
    token_env_var: Optional[str] = "GITHUB_TOKEN"


class PastebinConfig(BaseModel):
    """Settings for pastebin.com uploads."""

    api_key: str = ""


class UbuntuConfig(BaseModel):
    """Settings for paste.ubuntu.com uploads."""

    poster: str = "anonymous"
    syntax: str = "text"


class AntipasteConfig(BaseModel):
    """Persistent configuration, read from ``<home>/config.yaml``."""

    keyserver: str = DEFAULT_KEYSERVER
    hkp_timeout: Optional[float] = None
    key_size: int = Field(default=2048, ge=1024)
    pipe_capacity: int = Field(default=64 * 1024, gt=0)
    dpaste: DpasteConfig = Field(default_factory=DpasteConfig)
    gist: GistConfig = Field(default_factory=GistConfig)
    pastebin: PastebinConfig = Field(default_factory=PastebinConfig)
    ubuntu: UbuntuConfig = Field(default_factory=UbuntuConfig)
