"""Authenticated AT Protocol session.

A session is a small state machine:

    unauthenticated --login()--> authenticated --mark_expired()--> expired
                                      ^                               |
                                      +-----------refresh()-----------+

``refresh()`` exchanges the refresh token for new tokens and falls back to
a full login when that fails.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

import httpx
import logfire

from autolabel.core.errors import ModerationApiError, XrpcError

if TYPE_CHECKING:
    from typing import Any

CREATE_SESSION = "/xrpc/com.atproto.server.createSession"
REFRESH_SESSION = "/xrpc/com.atproto.server.refreshSession"


class SessionState(str, Enum):
    """Lifecycle state of a session."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"


def raise_for_xrpc(response: httpx.Response, error_class: type[XrpcError] = ModerationApiError) -> None:
    """Raise an XRPC error for a non-2xx response.

    XRPC error bodies look like ``{"error": "InvalidRequest", "message": "..."}``.

    Args:
        response: The HTTP response to check
        error_class: Error type to raise (ModerationApiError by default)

    Raises:
        XrpcError: If the response status is not 2xx
    """
    if response.is_success:
        return
    error: str | None = None
    message = response.reason_phrase or "request failed"
    try:
        body: Any = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        message = body.get("message") or message
    elif response.text:
        message = response.text
    raise error_class(
        message,
        status=response.status_code,
        error=error,
        details={"url": str(response.request.url)},
    )


class AtpSession:
    """Session capability for one account on a PDS.

    Attributes:
        state: Current lifecycle state
        did: DID of the logged-in account, once authenticated
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        service_url: str,
        identifier: str,
        password: str,
    ) -> None:
        """Initialize an unauthenticated session.

        Args:
            http: Shared async HTTP client
            service_url: PDS base URL, e.g. https://bsky.social
            identifier: Account handle or email
            password: Account (app) password
        """
        self.http = http
        self.service_url = service_url.rstrip("/")
        self.identifier = identifier
        self._password = password
        self.state = SessionState.UNAUTHENTICATED
        self.did: str | None = None
        self._access_jwt: str | None = None
        self._refresh_jwt: str | None = None

    def _apply_tokens(self, data: dict[str, Any]) -> None:
        self._access_jwt = data["accessJwt"]
        self._refresh_jwt = data.get("refreshJwt", self._refresh_jwt)
        self.did = data.get("did", self.did)
        self.state = SessionState.AUTHENTICATED

    async def login(self) -> None:
        """Create a new session with the account's credentials.

        Raises:
            ModerationApiError: If the PDS rejects the login
        """
        with logfire.span("session.login", identifier=self.identifier):
            try:
                response = await self.http.post(
                    f"{self.service_url}{CREATE_SESSION}",
                    json={"identifier": self.identifier, "password": self._password},
                )
            except httpx.HTTPError as e:
                raise ModerationApiError(f"Login request failed: {e}") from e
            raise_for_xrpc(response)
            self._apply_tokens(response.json())
            logfire.info("Session authenticated", identifier=self.identifier, did=self.did)

    async def refresh(self) -> None:
        """Refresh tokens, falling back to a full login.

        Raises:
            ModerationApiError: If both refresh and login fail
        """
        if self._refresh_jwt is None:
            logfire.info("No refresh token available, logging in again", identifier=self.identifier)
            await self.login()
            return

        try:
            response = await self.http.post(
                f"{self.service_url}{REFRESH_SESSION}",
                headers={"Authorization": f"Bearer {self._refresh_jwt}"},
            )
            raise_for_xrpc(response)
        except (httpx.HTTPError, ModerationApiError) as e:
            logfire.warning("Session refresh failed, logging in again", identifier=self.identifier, error=str(e))
            await self.login()
            return

        self._apply_tokens(response.json())
        logfire.info("Session refreshed", identifier=self.identifier)

    async def ensure_valid(self) -> None:
        """Make sure the session can authorize a request.

        Logs in when unauthenticated and refreshes when expired.
        """
        if self.state is SessionState.UNAUTHENTICATED:
            await self.login()
        elif self.state is SessionState.EXPIRED:
            await self.refresh()

    def mark_expired(self) -> None:
        """Record that the backend rejected the access token."""
        if self.state is SessionState.AUTHENTICATED:
            self.state = SessionState.EXPIRED

    def auth_headers(self) -> dict[str, str]:
        """Get the Authorization header for the current access token."""
        if self._access_jwt is None:
            return {}
        return {"Authorization": f"Bearer {self._access_jwt}"}
