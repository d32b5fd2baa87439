"""Agent layer - target resolution, label application, auto-ban, notifications and the poller."""

from autolabel.agent.applier import CommandResult, LabelApplier, LabelWriter, Moderator, failure_summary
from autolabel.agent.autoban import AutoBanEvaluator
from autolabel.agent.filters import EventFilter, KindFilter, ReporterFilter
from autolabel.agent.loop import ReportPoller
from autolabel.agent.notifier import NotificationDispatcher, build_message, report_link
from autolabel.agent.pipeline import build_poller
from autolabel.agent.resolver import resolve_target

__all__ = [
    "AutoBanEvaluator",
    "CommandResult",
    "EventFilter",
    "KindFilter",
    "LabelApplier",
    "LabelWriter",
    "Moderator",
    "NotificationDispatcher",
    "ReportPoller",
    "ReporterFilter",
    "build_message",
    "build_poller",
    "failure_summary",
    "report_link",
    "resolve_target",
]
