"""Report polling loop.

The poller fetches the most recent report events, picks out the ones
filed by trusted moderators since the last poll, and hands the label
commands in their comments to the label applier.

On first start there is no cursor: the newest report id (or 0 when there
are none) is recorded as the baseline and nothing is processed, so
history is never replayed.
After that, every report with a greater id is processed exactly once.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import logfire

from autolabel.agent.applier import Moderator
from autolabel.agent.filters import KindFilter, ReporterFilter
from autolabel.core.commands import LabelCommand, parse_commands
from autolabel.core.errors import ModerationApiError, StoreError, is_auth_expired
from autolabel.core.events import REPORT_EVENT_TYPE

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable, Mapping

    from autolabel.agent.applier import LabelApplier
    from autolabel.core.commands import SpanMode
    from autolabel.core.events import ModerationEvent
    from autolabel.core.types import ModerationApiProtocol, PersistedSetProtocol
    from autolabel.infra.store import CursorStore


class ReportPoller:
    """Polls for moderator reports and dispatches their label commands."""

    def __init__(
        self,
        api: ModerationApiProtocol,
        applier: LabelApplier,
        cursor: CursorStore,
        processed: PersistedSetProtocol,
        trusted_reporters: Iterable[str],
        report_type_labels: Mapping[str, list[str]] | None = None,
        span_mode: SpanMode = "keyword",
        polling_seconds: float = 30,
        page_size: int = 100,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the poller.

        Args:
            api: Moderation API for report queries and re-login
            applier: Applies the commands of each report
            cursor: Last report id seen
            processed: Ids of reports already dispatched
            trusted_reporters: DIDs whose reports are acted on
            report_type_labels: Report reason code -> labels added by default
            span_mode: Command parsing mode ("keyword" or "legacy")
            polling_seconds: Delay between polls
            page_size: Report events fetched per poll
            sleep: Awaitable sleep, replaceable in tests
        """
        self.api = api
        self.applier = applier
        self.cursor = cursor
        self.processed = processed
        self.reports = KindFilter(kinds=["report"])
        self.trusted = ReporterFilter(reporters=frozenset(trusted_reporters))
        self.report_type_labels = dict(report_type_labels or {})
        self.span_mode = span_mode
        self.polling_seconds = polling_seconds
        self.page_size = page_size
        self.sleep = sleep

    def commands_for(self, event: ModerationEvent) -> list[LabelCommand]:
        """Build the commands for a report.

        Commands parsed from the comment come first, followed by an add of
        the labels configured for the report's reason.
        """
        commands = parse_commands(event.comment or "", legacy_overlap=self.span_mode == "legacy")
        defaults = self.report_type_labels.get(event.report_type or "", [])
        if defaults:
            commands.append(LabelCommand(action="add", target="default", labels=tuple(defaults)))
        return commands

    async def fetch_reports(self) -> list[ModerationEvent]:
        """Fetch recent report events, oldest first."""
        events = await self.api.query_events(types=[REPORT_EVENT_TYPE], limit=self.page_size)
        reports = [event for event in events if self.reports.matches(event)]
        return sorted(reports, key=lambda event: event.id)

    def _advance(self, event_id: int) -> None:
        try:
            self.cursor.set(event_id)
        except StoreError as e:
            logfire.error("Failed to persist cursor", cursor=event_id, error=e.message)

    def _mark_processed(self, event_id: int) -> None:
        try:
            self.processed.add(event_id)
        except StoreError as e:
            logfire.error("Failed to persist processed report", report_id=event_id, error=e.message)

    async def poll_once(self) -> int:
        """Run a single poll.

        Returns:
            Number of reports dispatched to the applier

        Raises:
            ModerationApiError: If the report query fails
        """
        reports = await self.fetch_reports()
        last_seen = self.cursor.get()

        if last_seen is None:
            # An empty first page still ends the baseline; later reports have id > 0
            baseline = reports[-1].id if reports else 0
            self._advance(baseline)
            logfire.info("Baseline established", cursor=baseline, skipped=len(reports))
            return 0

        dispatched = 0
        for event in reports:
            if event.id <= last_seen:
                continue
            if await self.handle_report(event):
                dispatched += 1
            self._advance(event.id)
        return dispatched

    async def handle_report(self, event: ModerationEvent) -> bool:
        """Process one new report.

        Returns:
            True if the report's commands were dispatched
        """
        if self.processed.contains(event.id):
            logfire.debug("Report already processed, skipping", report_id=event.id)
            return False

        if not self.trusted.matches(event):
            logfire.info("Ignoring report from untrusted reporter", report_id=event.id, reporter=event.created_by)
            return False

        commands = self.commands_for(event)
        if not commands:
            logfire.debug("No label commands in report", report_id=event.id)
            return False

        logfire.info(
            "Processing report",
            report_id=event.id,
            reporter=event.created_by,
            subject=event.subject.key,
            commands=len(commands),
        )
        with logfire.span("poller.report", report_id=event.id):
            await self.applier.process_commands(
                commands,
                event.subject,
                event.subject_type,
                Moderator(did=event.created_by, handle=event.creator_handle),
                event.id,
            )
        self._mark_processed(event.id)
        return True

    async def _relogin(self) -> None:
        try:
            await self.api.login()
            logfire.info("Re-login successful")
        except Exception as e:
            logfire.error("Re-login failed", error=str(e))

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        """Poll until stopped.

        Errors never end the loop. Only the stop event or cancellation do.

        Args:
            stop_event: Optional event that ends the loop when set
        """
        logfire.info(
            "Report poller starting",
            polling_seconds=self.polling_seconds,
            page_size=self.page_size,
            cursor=self.cursor.get(),
            trusted=len(self.trusted.reporters),
        )
        while stop_event is None or not stop_event.is_set():
            try:
                await self.poll_once()
            except Exception as e:
                logfire.error("Error polling reports", error=str(e))
                expired = e.is_auth_expired if isinstance(e, ModerationApiError) else is_auth_expired(e)
                if expired:
                    logfire.info("Session expired, re-authenticating")
                    await self._relogin()

            if stop_event is not None and stop_event.is_set():
                break
            await self.sleep(self.polling_seconds)
        logfire.info("Report poller stopped")
