"""Event filtering for the report poller.

Filters decide which moderation events the poller acts on:

    reports = KindFilter(kinds=["report"])
    trusted = ReporterFilter(reporters=settings.whitelisted_moderators)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from autolabel.core.events import EventKind, ModerationEvent


class EventFilter(ABC):
    """Base class for event filters."""

    @abstractmethod
    def matches(self, event: ModerationEvent) -> bool:
        """Check if the event matches this filter.

        Args:
            event: The event to check

        Returns:
            True if the event matches, False otherwise
        """
        ...


@dataclass
class KindFilter(EventFilter):
    """Filter events by kind (report, label, acknowledge).

    Example:
        filter = KindFilter(kinds=["report"])
        filter.matches(event)  # True if event.kind == "report"
    """

    kinds: list[EventKind]

    def matches(self, event: ModerationEvent) -> bool:
        """Check if event kind is in the allowed kinds."""
        return event.kind in self.kinds


@dataclass
class ReporterFilter(EventFilter):
    """Filter events by creator DID.

    Matches events created by one of the given reporters.
    """

    reporters: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        """Accept any iterable of DIDs."""
        self.reporters = frozenset(self.reporters)

    def matches(self, event: ModerationEvent) -> bool:
        """Check if the event's creator is a listed reporter."""
        return event.created_by in self.reporters

