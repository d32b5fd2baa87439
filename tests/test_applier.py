"""Tests for the label applier."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from autolabel.agent.applier import LabelApplier, LabelWriter, Moderator, failure_summary
from autolabel.core.commands import LabelCommand
from autolabel.core.errors import ModerationApiError
from autolabel.core.retry import RetryPolicy
from autolabel.core.subjects import AccountRef, PostRef

POST = PostRef(uri="at://did:plc:author/app.bsky.feed.post/3kabc", cid="bafycid")
ACCOUNT = AccountRef(did="did:plc:author")
MODERATOR = Moderator(did="did:plc:moderator", handle="mod.example.com")
VALID_LABELS = ["spam", "nsfw", "rude"]


@pytest.fixture
def notifier() -> AsyncMock:
    """Create a mock notification dispatcher."""
    notifier = AsyncMock()
    notifier.notify_failure = AsyncMock(return_value=True)
    return notifier


@pytest.fixture
def autoban() -> AsyncMock:
    """Create a mock auto-ban evaluator."""
    autoban = AsyncMock()
    autoban.check_thresholds = AsyncMock(return_value=[])
    return autoban


@pytest.fixture
def applier(mock_api: AsyncMock, no_sleep: AsyncMock, notifier: AsyncMock, autoban: AsyncMock) -> LabelApplier:
    """Create an applier over mocks with a non-sleeping retry policy."""
    writer = LabelWriter(mock_api, RetryPolicy(sleep=no_sleep))
    return LabelApplier(mock_api, writer, VALID_LABELS, notifier, autoban)


class TestFailureSummary:
    """Tests for failure_summary."""

    def test_with_successes(self) -> None:
        """Test the summary lists both outcomes."""
        assert failure_summary(["a", "b"], ["c"]) == "Failed: [a, b], Succeeded: [c]"

    def test_without_successes(self) -> None:
        """Test the Succeeded part is omitted when empty."""
        assert failure_summary(["a"], []) == "Failed: [a]"


class TestLabelWriter:
    """Tests for LabelWriter."""

    @pytest.mark.asyncio
    async def test_add_sends_create_label(self, mock_api: AsyncMock, no_sleep: AsyncMock) -> None:
        """Test that an add emits the label as an added value."""
        writer = LabelWriter(mock_api, RetryPolicy(sleep=no_sleep))

        assert await writer.write(POST, "spam", "add", "Auto-added by @mod") is True
        mock_api.emit_label_event.assert_awaited_once_with(POST, ["spam"], [], "Auto-added by @mod")

    @pytest.mark.asyncio
    async def test_remove_sends_negate_label(self, mock_api: AsyncMock, no_sleep: AsyncMock) -> None:
        """Test that a remove emits the label as a negated value."""
        writer = LabelWriter(mock_api, RetryPolicy(sleep=no_sleep))

        assert await writer.write(ACCOUNT, "spam", "remove", "c") is True
        mock_api.emit_label_event.assert_awaited_once_with(ACCOUNT, [], ["spam"], "c")

    @pytest.mark.asyncio
    async def test_exhausted_retries_return_false(self, mock_api: AsyncMock, no_sleep: AsyncMock) -> None:
        """Test that a write failing every attempt reports failure."""
        mock_api.emit_label_event.side_effect = ModerationApiError("ReadTimeout: timed out")
        writer = LabelWriter(mock_api, RetryPolicy(sleep=no_sleep))

        assert await writer.write(POST, "spam", "add", "c") is False
        assert mock_api.emit_label_event.await_count == 3


class TestLabelApplier:
    """Tests for LabelApplier.process_commands."""

    @pytest.mark.asyncio
    async def test_all_succeed_acknowledges(
        self, applier: LabelApplier, mock_api: AsyncMock, notifier: AsyncMock
    ) -> None:
        """Test that a fully successful command acknowledges the report."""
        command = LabelCommand(action="add", target="default", labels=("spam", "nsfw"))

        results = await applier.process_commands([command], POST, "post", MODERATOR, 42)

        assert results[0].succeeded == ["spam", "nsfw"]
        assert results[0].failed == []
        assert results[0].acknowledged is True
        mock_api.emit_label_event.assert_any_await(POST, ["spam"], [], "Auto-added by @mod.example.com")
        mock_api.emit_acknowledge_event.assert_awaited_once_with(
            POST, "Auto-resolved after labeling by @mod.example.com"
        )
        notifier.notify_failure.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_partial_failure_notifies_once_without_ack(
        self, applier: LabelApplier, mock_api: AsyncMock, notifier: AsyncMock
    ) -> None:
        """Test that any failed label blocks acknowledgment and sends one notification."""
        command = LabelCommand(action="add", target="default", labels=("spam", "bogus", "nsfw"))

        async def emit(subject: object, add: list[str], remove: list[str], comment: str) -> None:
            if add == ["nsfw"]:
                raise ModerationApiError("Label rejected", status=400, error="InvalidRequest")

        mock_api.emit_label_event.side_effect = emit

        results = await applier.process_commands([command], POST, "post", MODERATOR, 42)

        assert results[0].succeeded == ["spam"]
        assert results[0].failed == ["bogus", "nsfw"]
        assert results[0].acknowledged is False
        mock_api.emit_acknowledge_event.assert_not_awaited()
        notifier.notify_failure.assert_awaited_once_with(
            "did:plc:moderator",
            "Failed: [bogus, nsfw], Succeeded: [spam]",
            POST,
            42,
        )

    @pytest.mark.asyncio
    async def test_invalid_label_makes_no_network_call(
        self, applier: LabelApplier, mock_api: AsyncMock
    ) -> None:
        """Test that labels outside the allow-list are never written."""
        command = LabelCommand(action="add", target="default", labels=("bogus",))

        results = await applier.process_commands([command], POST, "post", MODERATOR, 1)

        assert results[0].failed == ["bogus"]
        mock_api.emit_label_event.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_remove_uses_removed_comment(self, applier: LabelApplier, mock_api: AsyncMock) -> None:
        """Test the comment on label removals."""
        command = LabelCommand(action="remove", target="account", labels=("rude",))

        await applier.process_commands([command], POST, "post", MODERATOR, 1)

        mock_api.emit_label_event.assert_awaited_once_with(
            ACCOUNT, [], ["rude"], "Auto-removed by @mod.example.com"
        )

    @pytest.mark.asyncio
    async def test_account_target_labels_author_but_acks_post(
        self, applier: LabelApplier, mock_api: AsyncMock
    ) -> None:
        """Test that acknowledgment uses the original reported subject."""
        command = LabelCommand(action="add", target="account", labels=("spam",))

        await applier.process_commands([command], POST, "post", MODERATOR, 1)

        mock_api.emit_label_event.assert_awaited_once_with(ACCOUNT, ["spam"], [], "Auto-added by @mod.example.com")
        assert mock_api.emit_acknowledge_event.await_args.args[0] == POST

    @pytest.mark.asyncio
    async def test_unresolvable_target_is_abandoned(
        self, applier: LabelApplier, mock_api: AsyncMock, notifier: AsyncMock
    ) -> None:
        """Test that an unresolvable command writes, acks and notifies nothing."""
        command = LabelCommand(action="add", target="post", labels=("spam",))

        results = await applier.process_commands([command], ACCOUNT, "account", MODERATOR, 1)

        assert results == []
        mock_api.emit_label_event.assert_not_awaited()
        mock_api.emit_acknowledge_event.assert_not_awaited()
        notifier.notify_failure.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_autoban_checked_after_successful_add(
        self, applier: LabelApplier, autoban: AsyncMock
    ) -> None:
        """Test that each added label is evaluated against the author's account."""
        command = LabelCommand(action="add", target="default", labels=("spam", "rude"))

        await applier.process_commands([command], POST, "post", MODERATOR, 1)

        assert [call.args for call in autoban.check_thresholds.await_args_list] == [
            ("spam", "did:plc:author"),
            ("rude", "did:plc:author"),
        ]

    @pytest.mark.asyncio
    async def test_autoban_not_checked_after_remove(self, applier: LabelApplier, autoban: AsyncMock) -> None:
        """Test that removals never trigger a threshold check."""
        command = LabelCommand(action="remove", target="default", labels=("spam",))

        await applier.process_commands([command], POST, "post", MODERATOR, 1)

        autoban.check_thresholds.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ack_failure_is_not_notified(
        self, applier: LabelApplier, mock_api: AsyncMock, notifier: AsyncMock
    ) -> None:
        """Test that a failed acknowledgment is logged only."""
        mock_api.emit_acknowledge_event.side_effect = ModerationApiError("boom", status=500)
        command = LabelCommand(action="add", target="default", labels=("spam",))

        results = await applier.process_commands([command], POST, "post", MODERATOR, 1)

        assert results[0].acknowledged is False
        notifier.notify_failure.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_error_does_not_stop_later_commands(
        self, applier: LabelApplier, notifier: AsyncMock, mock_api: AsyncMock
    ) -> None:
        """Test that an error inside one command leaves the next one running."""
        notifier.notify_failure.side_effect = RuntimeError("unexpected")
        commands = [
            LabelCommand(action="add", target="default", labels=("bogus",)),
            LabelCommand(action="add", target="default", labels=("spam",)),
        ]

        results = await applier.process_commands(commands, POST, "post", MODERATOR, 1)

        assert len(results) == 1
        assert results[0].succeeded == ["spam"]
        mock_api.emit_acknowledge_event.assert_awaited_once()
