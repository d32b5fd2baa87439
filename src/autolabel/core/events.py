"""Moderation event types with Pydantic discriminated unions.

Events are read-only records retrieved from the moderation backend.
The event detail is a closed union discriminated on its ``$type`` field;
events of any other type are not represented and are skipped at parse time
(see ``parse_events``).
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

import logfire
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from autolabel.core.subjects import AccountRef, PostRef, ReportType, Subject, report_type_of

REPORT_EVENT_TYPE = "tools.ozone.moderation.defs#modEventReport"
LABEL_EVENT_TYPE = "tools.ozone.moderation.defs#modEventLabel"
ACKNOWLEDGE_EVENT_TYPE = "tools.ozone.moderation.defs#modEventAcknowledge"

EventKind = Literal["report", "label", "acknowledge"]


class ReportReason(str, Enum):
    """Report reason codes a reporter can select."""

    MISLEADING = "com.atproto.moderation.defs#reasonMisleading"
    SPAM = "com.atproto.moderation.defs#reasonSpam"
    SEXUAL = "com.atproto.moderation.defs#reasonSexual"
    RUDE = "com.atproto.moderation.defs#reasonRude"
    VIOLATION = "com.atproto.moderation.defs#reasonViolation"
    OTHER = "com.atproto.moderation.defs#reasonOther"


class _Detail(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ReportDetail(_Detail):
    """A report raised against a subject."""

    type: Literal["tools.ozone.moderation.defs#modEventReport"] = Field(
        default=REPORT_EVENT_TYPE, alias="$type"
    )
    comment: str | None = None
    report_type: str | None = Field(default=None, alias="reportType")


class LabelDetail(_Detail):
    """A label change: values added and values negated."""

    type: Literal["tools.ozone.moderation.defs#modEventLabel"] = Field(
        default=LABEL_EVENT_TYPE, alias="$type"
    )
    create_label_vals: list[str] = Field(default_factory=list, alias="createLabelVals")
    negate_label_vals: list[str] = Field(default_factory=list, alias="negateLabelVals")
    comment: str | None = None


class AcknowledgeDetail(_Detail):
    """A report acknowledgment."""

    type: Literal["tools.ozone.moderation.defs#modEventAcknowledge"] = Field(
        default=ACKNOWLEDGE_EVENT_TYPE, alias="$type"
    )
    comment: str | None = None


EventDetail = Annotated[
    ReportDetail | LabelDetail | AcknowledgeDetail,
    Field(discriminator="type"),
]

_KINDS: dict[type[_Detail], EventKind] = {
    ReportDetail: "report",
    LabelDetail: "label",
    AcknowledgeDetail: "acknowledge",
}


class ModerationEvent(BaseModel):
    """An immutable moderation event view.

    Attributes:
        id: Monotonically increasing event id (ordering and dedup key)
        event: The event detail (report, label change or acknowledgment)
        subject: The post or account the event concerns
        created_by: DID of the event's creator (the reporter, for reports)
        creator_handle: Handle of the event's creator
        created_at: When the backend recorded the event
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    event: EventDetail
    subject: Subject
    created_by: str = Field(alias="createdBy")
    creator_handle: str = Field(default="", alias="creatorHandle")
    created_at: datetime | None = Field(default=None, alias="createdAt")

    @property
    def kind(self) -> EventKind:
        """The event kind."""
        return _KINDS[type(self.event)]

    @property
    def comment(self) -> str | None:
        """The free-text comment attached to the event, if any."""
        return self.event.comment

    @property
    def report_type(self) -> str | None:
        """The report reason code, for report events."""
        if isinstance(self.event, ReportDetail):
            return self.event.report_type
        return None

    @property
    def subject_type(self) -> ReportType:
        """Whether the event concerns a post or an account."""
        return report_type_of(self.subject)


_event_adapter: TypeAdapter[ModerationEvent] = TypeAdapter(ModerationEvent)


def parse_events(items: list[dict[str, Any]]) -> list[ModerationEvent]:
    """Parse raw event views, skipping kinds this system does not handle.

    Args:
        items: Event views as returned by the backend

    Returns:
        Parsed events in input order
    """
    events: list[ModerationEvent] = []
    for item in items:
        try:
            events.append(_event_adapter.validate_python(item))
        except ValidationError:
            logfire.debug(
                "Skipping unsupported moderation event",
                event_id=item.get("id"),
                event_type=(item.get("event") or {}).get("$type"),
            )
    return events


__all__ = [
    "ACKNOWLEDGE_EVENT_TYPE",
    "LABEL_EVENT_TYPE",
    "REPORT_EVENT_TYPE",
    "AccountRef",
    "AcknowledgeDetail",
    "EventDetail",
    "EventKind",
    "LabelDetail",
    "ModerationEvent",
    "PostRef",
    "ReportDetail",
    "ReportReason",
    "parse_events",
]
