"""Assemble the report pipeline from settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

from autolabel.agent.applier import LabelApplier, LabelWriter
from autolabel.agent.autoban import AutoBanEvaluator
from autolabel.agent.loop import ReportPoller
from autolabel.agent.notifier import NotificationDispatcher
from autolabel.infra.store import CursorStore, PersistedSet

if TYPE_CHECKING:
    from autolabel.config import Settings
    from autolabel.core.types import MessagingGatewayProtocol, ModerationApiProtocol

CURSOR_FILE = "cursor.txt"
PROCESSED_FILE = "processed_reports.json"
NOTIFIED_FILE = "notified_reports.json"


def build_poller(
    settings: Settings,
    api: ModerationApiProtocol,
    gateway: MessagingGatewayProtocol,
) -> ReportPoller:
    """Wire stores, writer, evaluator, dispatcher and applier into a poller.

    State files live in ``settings.state_dir``.

    Args:
        settings: Application settings
        api: Moderation API client (labeler session)
        gateway: Direct message gateway (DM session)

    Returns:
        A poller ready to run
    """
    state_dir = settings.state_dir
    writer = LabelWriter(api, settings.retry_policy())
    autoban = AutoBanEvaluator(
        api,
        writer,
        labeler_did=settings.labeler_did,
        rules=settings.autoban_rules,
        moderation_labels=settings.moderation_labels,
        history_limit=settings.history_limit,
    )
    notifier = NotificationDispatcher(
        gateway,
        PersistedSet(state_dir / NOTIFIED_FILE, str),
        ozone_url=settings.ozone_url,
        preferences=settings.notification_preferences,
        trusted_moderators=settings.whitelisted_moderators,
    )
    applier = LabelApplier(
        api,
        writer,
        valid_labels=settings.valid_labels,
        notifier=notifier,
        autoban=autoban,
    )
    return ReportPoller(
        api,
        applier,
        cursor=CursorStore(state_dir / CURSOR_FILE),
        processed=PersistedSet(state_dir / PROCESSED_FILE, int),
        trusted_reporters=settings.whitelisted_moderators,
        report_type_labels=settings.report_type_labels,
        span_mode=settings.command_span_mode,
        polling_seconds=settings.polling_seconds,
        page_size=settings.poll_page_size,
    )
