"""Pytest configuration and fixtures."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock

import logfire
import pytest

from autolabel.core.events import ModerationEvent

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from autolabel.config import Settings

# Keep log records local during tests
logfire.configure(send_to_logfire=False, console=False)

LABELER_DID = "did:plc:labeler"
MODERATOR_DID = "did:plc:moderator"
AUTHOR_DID = "did:plc:author"
POST_URI = f"at://{AUTHOR_DID}/app.bsky.feed.post/3kabc"
POST_CID = "bafyreipostcid"

REQUIRED_ENV = {
    "BSKY_LABELER_USERNAME": "labeler.example.com",
    "BSKY_LABELER_PASSWORD": "labeler-app-password",
    "BSKY_LABELER_DID": LABELER_DID,
    "BSKY_DM_USERNAME": "notifier.example.com",
    "BSKY_DM_PASSWORD": "notifier-app-password",
    "OZONE_URL": "https://ozone.example.com",
    "POLLING_SECONDS": "30",
    "WHITELISTED_MODERATORS": MODERATOR_DID,
    "VALID_LABELS": "spam,nsfw,rude,spam-ban",
}


# --- Settings ---


@pytest.fixture
def settings_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> dict[str, str]:
    """Set the required environment variables, with state under tmp_path."""
    env = {**REQUIRED_ENV, "STATE_DIR": str(tmp_path / "state")}
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture
def settings(settings_env: dict[str, str]) -> Settings:
    """Create settings from the test environment."""
    from autolabel.config import Settings

    return Settings()  # type: ignore[call-arg]


# --- Mock Fixtures ---


@pytest.fixture
def mock_api() -> AsyncMock:
    """Create a mock moderation API."""
    api = AsyncMock()
    api.login = AsyncMock()
    api.query_events = AsyncMock(return_value=[])
    api.emit_label_event = AsyncMock()
    api.emit_acknowledge_event = AsyncMock()
    return api


@pytest.fixture
def mock_gateway() -> AsyncMock:
    """Create a mock messaging gateway."""
    gateway = AsyncMock()
    gateway.send_direct_message = AsyncMock()
    return gateway


@pytest.fixture
def no_sleep() -> AsyncMock:
    """An awaitable sleep that records delays instead of waiting."""
    return AsyncMock()


# --- Event Factories ---


@pytest.fixture
def post_subject() -> dict[str, Any]:
    """Wire form of a reported post."""
    return {"$type": "com.atproto.repo.strongRef", "uri": POST_URI, "cid": POST_CID}


@pytest.fixture
def account_subject() -> dict[str, Any]:
    """Wire form of a reported account."""
    return {"$type": "com.atproto.admin.defs#repoRef", "did": AUTHOR_DID}


@pytest.fixture
def make_report(post_subject: dict[str, Any]) -> Callable[..., ModerationEvent]:
    """Factory for report events."""

    def _make(
        event_id: int,
        comment: str | None = None,
        created_by: str = MODERATOR_DID,
        subject: dict[str, Any] | None = None,
        report_type: str = "com.atproto.moderation.defs#reasonOther",
        handle: str = "mod.example.com",
    ) -> ModerationEvent:
        return ModerationEvent.model_validate(
            {
                "id": event_id,
                "event": {
                    "$type": "tools.ozone.moderation.defs#modEventReport",
                    "comment": comment,
                    "reportType": report_type,
                },
                "subject": subject or post_subject,
                "createdBy": created_by,
                "creatorHandle": handle,
                "createdAt": "2024-05-01T12:00:00.000Z",
            }
        )

    return _make


@pytest.fixture
def make_label_event(account_subject: dict[str, Any]) -> Callable[..., ModerationEvent]:
    """Factory for label events."""
    counter = iter(range(1000, 100000))

    def _make(
        add: list[str] | None = None,
        remove: list[str] | None = None,
        subject: dict[str, Any] | None = None,
    ) -> ModerationEvent:
        return ModerationEvent.model_validate(
            {
                "id": next(counter),
                "event": {
                    "$type": "tools.ozone.moderation.defs#modEventLabel",
                    "createLabelVals": add or [],
                    "negateLabelVals": remove or [],
                },
                "subject": subject or account_subject,
                "createdBy": LABELER_DID,
            }
        )

    return _make
