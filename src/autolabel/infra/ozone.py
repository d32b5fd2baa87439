"""Ozone moderation API client over XRPC.

Requests go to the labeler account's PDS and are proxied to the labeler
service with the ``atproto-proxy`` header.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
import logfire

from autolabel.core.errors import ModerationApiError
from autolabel.core.events import ACKNOWLEDGE_EVENT_TYPE, LABEL_EVENT_TYPE, ModerationEvent, parse_events
from autolabel.infra.session import raise_for_xrpc

if TYPE_CHECKING:
    from autolabel.core.subjects import AccountRef, PostRef
    from autolabel.infra.session import AtpSession

QUERY_EVENTS = "tools.ozone.moderation.queryEvents"
EMIT_EVENT = "tools.ozone.moderation.emitEvent"


class OzoneClient:
    """Moderation API client for one labeler.

    Implements ModerationApiProtocol. A request rejected because the access
    token expired is retried once after refreshing the session.
    """

    def __init__(self, session: AtpSession, labeler_did: str) -> None:
        """Initialize the client.

        Args:
            session: Authenticated session of the labeler account
            labeler_did: DID of the labeler service
        """
        self.session = session
        self.labeler_did = labeler_did

    @property
    def proxy_header(self) -> dict[str, str]:
        """Service-selector header routing calls to the labeler."""
        return {"atproto-proxy": f"{self.labeler_did}#atproto_labeler"}

    async def login(self) -> None:
        """Create a fresh session for the labeler account."""
        await self.session.login()

    async def _send(
        self,
        method: str,
        nsid: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        url = f"{self.session.service_url}/xrpc/{nsid}"
        headers = {**self.session.auth_headers(), **self.proxy_header}
        try:
            response = await self.session.http.request(method, url, params=params, json=body, headers=headers)
        except httpx.HTTPError as e:
            msg = f"{type(e).__name__}: {e}"
            raise ModerationApiError(msg, details={"nsid": nsid}) from e
        raise_for_xrpc(response)
        return response

    async def _call(
        self,
        method: str,
        nsid: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        await self.session.ensure_valid()
        try:
            return await self._send(method, nsid, params, body)
        except ModerationApiError as e:
            if e.error != "ExpiredToken":
                raise
            logfire.info("Access token expired, refreshing session", nsid=nsid)
            self.session.mark_expired()
            await self.session.ensure_valid()
            return await self._send(method, nsid, params, body)

    async def query_events(
        self,
        *,
        types: list[str] | None = None,
        created_by: str | None = None,
        subject: str | None = None,
        include_all_user_records: bool = False,
        limit: int = 100,
    ) -> list[ModerationEvent]:
        """Query moderation events, newest first.

        Args:
            types: Event $types to include
            created_by: Only events created by this DID
            subject: Only events on this DID or record uri
            include_all_user_records: With an account subject, include
                events on the account's records
            limit: Page size (1-100)

        Returns:
            Parsed events of the kinds this system handles
        """
        params: dict[str, Any] = {"limit": limit}
        if types:
            params["types"] = types
        if created_by:
            params["createdBy"] = created_by
        if subject:
            params["subject"] = subject
        if include_all_user_records:
            params["includeAllUserRecords"] = "true"

        response = await self._call("GET", QUERY_EVENTS, params=params)
        return parse_events(response.json().get("events", []))

    async def emit_label_event(
        self,
        subject: PostRef | AccountRef,
        add_labels: list[str],
        remove_labels: list[str],
        comment: str,
    ) -> None:
        """Add and/or negate labels on a subject."""
        await self._call(
            "POST",
            EMIT_EVENT,
            body={
                "event": {
                    "$type": LABEL_EVENT_TYPE,
                    "createLabelVals": add_labels,
                    "negateLabelVals": remove_labels,
                    "comment": comment,
                },
                "subject": subject.model_dump(by_alias=True),
                "createdBy": self.labeler_did,
            },
        )

    async def emit_acknowledge_event(
        self,
        subject: PostRef | AccountRef,
        comment: str,
    ) -> None:
        """Acknowledge open reports on a subject."""
        await self._call(
            "POST",
            EMIT_EVENT,
            body={
                "event": {"$type": ACKNOWLEDGE_EVENT_TYPE, "comment": comment},
                "subject": subject.model_dump(by_alias=True),
                "createdBy": self.labeler_did,
            },
        )
