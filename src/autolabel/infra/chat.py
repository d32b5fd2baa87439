"""Direct message delivery through the Bluesky chat service."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
import logfire

from autolabel.core.errors import MessagingError, XrpcError
from autolabel.infra.session import raise_for_xrpc

if TYPE_CHECKING:
    from autolabel.infra.session import AtpSession

LIST_CONVOS = "chat.bsky.convo.listConvos"
GET_CONVO_FOR_MEMBERS = "chat.bsky.convo.getConvoForMembers"
SEND_MESSAGE = "chat.bsky.convo.sendMessage"


class ChatGateway:
    """Messaging gateway for the DM-sending account.

    Implements MessagingGatewayProtocol. Owns its own session; a request
    rejected with ExpiredToken is retried once after a refresh.
    """

    def __init__(self, session: AtpSession, chat_service_url: str) -> None:
        """Initialize the gateway.

        Args:
            session: Session of the DM-sending account
            chat_service_url: Chat service base URL, e.g. https://api.bsky.chat
        """
        self.session = session
        self.chat_service_url = chat_service_url.rstrip("/")

    async def _send(
        self,
        method: str,
        nsid: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self.session.http.request(
                method,
                f"{self.chat_service_url}/xrpc/{nsid}",
                params=params,
                json=body,
                headers=self.session.auth_headers(),
            )
        except httpx.HTTPError as e:
            msg = f"{type(e).__name__}: {e}"
            raise MessagingError(msg, details={"nsid": nsid}) from e
        raise_for_xrpc(response, MessagingError)
        return response.json()

    async def _call(
        self,
        method: str,
        nsid: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        await self.session.ensure_valid()
        try:
            return await self._send(method, nsid, params, body)
        except MessagingError as e:
            if e.error != "ExpiredToken":
                raise
            logfire.info("Chat token expired, refreshing session and retrying", nsid=nsid)
            self.session.mark_expired()
            await self.session.ensure_valid()
            return await self._send(method, nsid, params, body)

    async def get_or_create_convo(self, recipient_did: str) -> str:
        """Find the conversation with a recipient, creating it if needed.

        Args:
            recipient_did: DID of the other member

        Returns:
            The conversation id
        """
        data = await self._call("GET", LIST_CONVOS)
        for convo in data.get("convos", []):
            if any(member.get("did") == recipient_did for member in convo.get("members", [])):
                return str(convo["id"])

        data = await self._call("GET", GET_CONVO_FOR_MEMBERS, params={"members": recipient_did})
        return str(data["convo"]["id"])

    async def send_direct_message(
        self,
        recipient_did: str,
        text: str,
        facets: list[dict[str, Any]] | None = None,
    ) -> None:
        """Send a direct message.

        Args:
            recipient_did: DID of the recipient
            text: Message text
            facets: Rich text facets (e.g. links) with UTF-8 byte ranges

        Raises:
            MessagingError: If the message could not be delivered
        """
        with logfire.span("chat.send", recipient=recipient_did):
            try:
                convo_id = await self.get_or_create_convo(recipient_did)
                await self._call(
                    "POST",
                    SEND_MESSAGE,
                    body={"convoId": convo_id, "message": {"text": text, "facets": facets or []}},
                )
            except (XrpcError, KeyError) as e:
                msg = f"Failed to send DM to {recipient_did}: {e}"
                raise MessagingError(msg, details={"recipient": recipient_did}) from e
            logfire.info("Sent DM", recipient=recipient_did)
