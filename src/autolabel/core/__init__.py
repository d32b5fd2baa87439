"""Core domain types - subjects, events, commands, rules, retry, errors, protocols."""

from autolabel.core.commands import LabelCommand, parse_commands
from autolabel.core.errors import (
    AutolabelError,
    ConfigurationError,
    ErrorCode,
    MessagingError,
    ModerationApiError,
    StoreError,
    UnresolvableTargetError,
    XrpcError,
)
from autolabel.core.events import (
    AcknowledgeDetail,
    LabelDetail,
    ModerationEvent,
    ReportDetail,
    ReportReason,
    parse_events,
)
from autolabel.core.retry import RetryExhaustedError, RetryPolicy
from autolabel.core.rules import AutoBanRule, parse_autoban_rules, tally_labels
from autolabel.core.subjects import AccountRef, PostRef, Subject
from autolabel.core.types import (
    MessagingGatewayProtocol,
    ModerationApiProtocol,
    PersistedSetProtocol,
)

__all__ = [
    "AccountRef",
    "AcknowledgeDetail",
    "AutoBanRule",
    "AutolabelError",
    "ConfigurationError",
    "ErrorCode",
    "LabelCommand",
    "LabelDetail",
    "MessagingError",
    "MessagingGatewayProtocol",
    "ModerationApiError",
    "ModerationApiProtocol",
    "ModerationEvent",
    "PersistedSetProtocol",
    "PostRef",
    "ReportDetail",
    "ReportReason",
    "RetryExhaustedError",
    "RetryPolicy",
    "StoreError",
    "Subject",
    "UnresolvableTargetError",
    "XrpcError",
    "parse_autoban_rules",
    "parse_commands",
    "tally_labels",
]
