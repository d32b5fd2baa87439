"""Autolabel - moderation auto-labeler for Ozone.

Trusted moderators file reports whose comments carry label commands.
Autolabel polls those reports, applies the requested labels, escalates
accounts that cross auto-ban thresholds and tells moderators when
labeling failed.

Quick Start:
    from autolabel import Settings, build_poller

    poller = build_poller(Settings(), ozone_client, chat_gateway)
    await poller.run()

Core Types:
    - ModerationEvent: A report, label or acknowledge event
    - PostRef / AccountRef: Label subjects
    - LabelCommand: A parsed add/remove command

Agent Components:
    - ReportPoller: Polls reports and dispatches commands
    - LabelApplier: Writes labels, acknowledges or notifies
    - AutoBanEvaluator: Threshold-based account escalation
    - NotificationDispatcher: Deduplicated failure DMs
"""

from importlib.metadata import PackageNotFoundError, version

from autolabel.agent import (
    AutoBanEvaluator,
    CommandResult,
    EventFilter,
    KindFilter,
    LabelApplier,
    LabelWriter,
    Moderator,
    NotificationDispatcher,
    ReportPoller,
    ReporterFilter,
    build_poller,
    resolve_target,
)
from autolabel.config import Settings, configure_settings, get_settings
from autolabel.core import (
    AccountRef,
    AutoBanRule,
    AutolabelError,
    ConfigurationError,
    ErrorCode,
    LabelCommand,
    MessagingError,
    ModerationApiError,
    ModerationEvent,
    PostRef,
    RetryPolicy,
    StoreError,
    UnresolvableTargetError,
    XrpcError,
    parse_autoban_rules,
    parse_commands,
)

try:
    __version__ = version("autolabel")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "AccountRef",
    "AutoBanEvaluator",
    "AutoBanRule",
    "AutolabelError",
    "CommandResult",
    "ConfigurationError",
    "ErrorCode",
    "EventFilter",
    "KindFilter",
    "LabelApplier",
    "LabelCommand",
    "LabelWriter",
    "MessagingError",
    "ModerationApiError",
    "ModerationEvent",
    "Moderator",
    "NotificationDispatcher",
    "PostRef",
    "ReportPoller",
    "ReporterFilter",
    "RetryPolicy",
    "Settings",
    "StoreError",
    "UnresolvableTargetError",
    "XrpcError",
    "__version__",
    "build_poller",
    "configure_settings",
    "get_settings",
    "parse_autoban_rules",
    "parse_commands",
    "resolve_target",
]
