"""Protocol definitions for the pipeline's external collaborators.

The report pipeline depends on these interfaces only. Concrete
implementations live in ``autolabel.infra``; tests substitute mocks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterator

    from autolabel.core.events import ModerationEvent
    from autolabel.core.subjects import AccountRef, PostRef


class ModerationApiProtocol(Protocol):
    """Moderation backend operations.

    Every call is proxied to the labeler service on behalf of the
    labeler's own identity.
    """

    async def login(self) -> None:
        """Create a fresh authenticated session."""
        ...

    async def query_events(
        self,
        *,
        types: list[str] | None = None,
        created_by: str | None = None,
        subject: str | None = None,
        include_all_user_records: bool = False,
        limit: int = 100,
    ) -> list[ModerationEvent]:
        """Query moderation events."""
        ...

    async def emit_label_event(
        self,
        subject: PostRef | AccountRef,
        add_labels: list[str],
        remove_labels: list[str],
        comment: str,
    ) -> None:
        """Add and/or negate labels on a subject."""
        ...

    async def emit_acknowledge_event(
        self,
        subject: PostRef | AccountRef,
        comment: str,
    ) -> None:
        """Acknowledge (resolve) reports on a subject."""
        ...


class MessagingGatewayProtocol(Protocol):
    """Direct message delivery."""

    async def send_direct_message(
        self,
        recipient_did: str,
        text: str,
        facets: list[dict[str, Any]] | None = None,
    ) -> None:
        """Send a direct message. Raises on delivery failure."""
        ...


class PersistedSetProtocol(Protocol):
    """Durable set of handled identifiers."""

    def contains(self, item: str | int) -> bool:
        """Check whether an identifier was recorded."""
        ...

    def add(self, item: str | int) -> None:
        """Record an identifier durably."""
        ...

    def __len__(self) -> int: ...

    def __iter__(self) -> Iterator[str | int]: ...
