"""Failure notifications to moderators.

A moderator is told at most once per report that automated labeling
failed. Reports already notified are remembered for the session and in a
persisted store, so restarts do not repeat notifications.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import logfire

from autolabel.core.errors import StoreError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from autolabel.core.subjects import AccountRef, PostRef
    from autolabel.core.types import MessagingGatewayProtocol, PersistedSetProtocol

LINK_FACET_TYPE = "app.bsky.richtext.facet#link"


def report_link(ozone_url: str, subject: PostRef | AccountRef) -> str:
    """Build the deep link that opens a subject's report in Ozone."""
    return f"{ozone_url.rstrip('/')}/reports?quickOpen={quote(subject.key, safe='')}"


def build_message(summary: str, link: str) -> tuple[str, list[dict[str, Any]]]:
    """Build the notification text and its link facet.

    Facet ranges are UTF-8 byte offsets into the text.

    Returns:
        Tuple of (text, facets)
    """
    prefix = f"❌ Auto-label failed: {summary}\n\nReport: "
    text = prefix + link
    start = len(prefix.encode("utf-8"))
    facets = [
        {
            "index": {"byteStart": start, "byteEnd": start + len(link.encode("utf-8"))},
            "features": [{"$type": LINK_FACET_TYPE, "uri": link}],
        }
    ]
    return text, facets


class NotificationDispatcher:
    """Decides whether and how to notify a moderator, with deduplication."""

    def __init__(
        self,
        gateway: MessagingGatewayProtocol,
        notified: PersistedSetProtocol,
        ozone_url: str,
        preferences: Mapping[str, str],
        trusted_moderators: Iterable[str],
    ) -> None:
        """Initialize the dispatcher.

        Args:
            gateway: Direct message delivery
            notified: Persisted ids of reports already notified
            ozone_url: Ozone base URL for report deep links
            preferences: Moderator DID -> delivery method
            trusted_moderators: Moderators who get DMs without a preference
        """
        self.gateway = gateway
        self.notified = notified
        self.ozone_url = ozone_url
        self.preferences = dict(preferences)
        self.trusted_moderators = frozenset(trusted_moderators)
        self._session_notified: set[str] = set()

    def already_notified(self, report_id: str) -> bool:
        """Check the session set, then the persisted store."""
        return report_id in self._session_notified or self.notified.contains(report_id)

    def delivery_method(self, moderator_did: str) -> str | None:
        """Resolve how to reach a moderator.

        An explicit preference wins; trusted moderators default to DM.
        """
        method = self.preferences.get(moderator_did)
        if method is None and moderator_did in self.trusted_moderators:
            logfire.debug("Using default DM preference for trusted moderator", moderator=moderator_did)
            method = "dm"
        return method

    def _mark_notified(self, report_id: str) -> None:
        self._session_notified.add(report_id)
        try:
            self.notified.add(report_id)
        except StoreError as e:
            logfire.error("Failed to persist notified report", report_id=report_id, error=e.message)

    async def notify_failure(
        self,
        moderator_did: str,
        summary: str,
        subject: PostRef | AccountRef,
        report_id: int | str | None = None,
    ) -> bool:
        """Notify a moderator that labeling failed for a report.

        Args:
            moderator_did: The moderator to notify
            summary: Failed and succeeded labels
            subject: The reported subject, for the deep link
            report_id: Dedup key; None disables deduplication

        Returns:
            True if a notification was delivered
        """
        key = str(report_id) if report_id is not None else None
        if key is not None and self.already_notified(key):
            logfire.info("Already notified about report, skipping", report_id=key)
            return False

        method = self.delivery_method(moderator_did)
        if method is None:
            logfire.info("No notification preference and moderator not trusted", moderator=moderator_did)
            return False

        text, facets = build_message(summary, report_link(self.ozone_url, subject))
        try:
            await self.gateway.send_direct_message(moderator_did, text, facets)
        except Exception as e:
            logfire.error("Failed to deliver notification", moderator=moderator_did, error=str(e))
            return False

        logfire.info("Notified moderator of labeling failure", moderator=moderator_did, report_id=key)
        if key is not None:
            self._mark_notified(key)
        return True
