"""Moderation subjects as a discriminated union.

A subject is either a specific post revision (``PostRef``) or an account
(``AccountRef``). The wire discriminator is the ``$type`` field.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

POST_REF_TYPE = "com.atproto.repo.strongRef"
ACCOUNT_REF_TYPE = "com.atproto.admin.defs#repoRef"

ReportType = Literal["post", "account"]


def did_from_uri(uri: str) -> str | None:
    """Extract the account DID from an ``at://<did>/<collection>/<rkey>`` uri.

    Args:
        uri: The record uri

    Returns:
        The DID segment, or None if the uri has none
    """
    parts = uri.split("/")
    if len(parts) < 3 or not parts[2]:
        return None
    return parts[2]


class PostRef(BaseModel):
    """A strong reference to a post: uri plus content address."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["com.atproto.repo.strongRef"] = Field(default=POST_REF_TYPE, alias="$type")
    uri: str
    cid: str

    @property
    def did(self) -> str | None:
        """The DID of the post's author, if the uri carries one."""
        return did_from_uri(self.uri)

    @property
    def key(self) -> str:
        """Identifier used in report deep links."""
        return self.uri


class AccountRef(BaseModel):
    """A reference to an account by DID."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["com.atproto.admin.defs#repoRef"] = Field(default=ACCOUNT_REF_TYPE, alias="$type")
    did: str

    @property
    def key(self) -> str:
        """Identifier used in report deep links."""
        return self.did


Subject = Annotated[PostRef | AccountRef, Field(discriminator="type")]


def report_type_of(subject: PostRef | AccountRef) -> ReportType:
    """Get the report type implied by a subject."""
    if isinstance(subject, AccountRef):
        return "account"
    return "post"


def account_did_of(subject: PostRef | AccountRef) -> str | None:
    """Get the DID of the account a subject belongs to.

    Account subjects carry it directly; post subjects carry it in their uri.
    """
    return subject.did
