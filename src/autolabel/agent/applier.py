"""Label application for moderator commands.

Each command moves through:

    resolve target -> validate labels -> write labels (with retry)
        -> aggregate -> acknowledge report (all succeeded)
                     -> notify moderator (any failed)

Transport belongs to the moderation API client; this module owns the
orchestration, retry and aggregation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import logfire

from autolabel.agent.resolver import resolve_target
from autolabel.core.errors import UnresolvableTargetError
from autolabel.core.retry import RetryExhaustedError, RetryPolicy
from autolabel.core.subjects import account_did_of

if TYPE_CHECKING:
    from collections.abc import Iterable

    from autolabel.agent.autoban import AutoBanEvaluator
    from autolabel.agent.notifier import NotificationDispatcher
    from autolabel.core.commands import Action, LabelCommand
    from autolabel.core.subjects import AccountRef, PostRef, ReportType
    from autolabel.core.types import ModerationApiProtocol


@dataclass(frozen=True)
class Moderator:
    """The trusted reporter whose comment carried the commands."""

    did: str
    handle: str


@dataclass
class CommandResult:
    """Outcome of one command.

    Attributes:
        command: The command that was processed
        subject: The subject its labels were written to
        succeeded: Labels written successfully
        failed: Labels that failed validation or writing
        acknowledged: Whether the report was acknowledged
        notified: Whether the moderator was sent a failure notification
    """

    command: LabelCommand
    subject: PostRef | AccountRef
    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    acknowledged: bool = False
    notified: bool = False


def failure_summary(failed: list[str], succeeded: list[str]) -> str:
    """Describe a partially failed command.

    Example:
        failure_summary(["a", "b"], ["c"])  # "Failed: [a, b], Succeeded: [c]"
    """
    summary = f"Failed: [{', '.join(failed)}]"
    if succeeded:
        summary += f", Succeeded: [{', '.join(succeeded)}]"
    return summary


class LabelWriter:
    """Writes one label to one subject under a retry policy."""

    def __init__(self, api: ModerationApiProtocol, policy: RetryPolicy | None = None) -> None:
        self.api = api
        self.policy = policy or RetryPolicy()

    async def write(
        self,
        subject: PostRef | AccountRef,
        label: str,
        action: Action,
        comment: str,
    ) -> bool:
        """Add or remove a label.

        Returns:
            True if the backend accepted the change within the retry budget
        """
        add_labels = [label] if action == "add" else []
        remove_labels = [label] if action == "remove" else []
        try:
            await self.policy.run(
                lambda: self.api.emit_label_event(subject, add_labels, remove_labels, comment),
                name=f"{action} label {label}",
            )
        except RetryExhaustedError as e:
            logfire.error(
                "Label write failed",
                label=label,
                action=action,
                attempts=e.attempts,
                error=str(e.last_error),
            )
            return False
        return True


class LabelApplier:
    """Applies parsed label commands to a reported subject."""

    def __init__(
        self,
        api: ModerationApiProtocol,
        writer: LabelWriter,
        valid_labels: Iterable[str],
        notifier: NotificationDispatcher,
        autoban: AutoBanEvaluator | None = None,
    ) -> None:
        """Initialize the applier.

        Args:
            api: Moderation API, used for report acknowledgment
            writer: Retrying label writer
            valid_labels: Allow-list of label values
            notifier: Failure notification dispatcher
            autoban: Threshold evaluator run after each successful add
        """
        self.api = api
        self.writer = writer
        self.valid_labels = frozenset(valid_labels)
        self.notifier = notifier
        self.autoban = autoban

    async def process_commands(
        self,
        commands: list[LabelCommand],
        subject: PostRef | AccountRef,
        report_type: ReportType,
        moderator: Moderator,
        report_id: int | None = None,
    ) -> list[CommandResult]:
        """Apply each command in order.

        Errors are contained per command; this method does not raise.

        Args:
            commands: Commands parsed from the report
            subject: The reported subject
            report_type: Whether the report is about a post or an account
            moderator: The reporter who issued the commands
            report_id: Report event id, the notification dedup key

        Returns:
            Results of the commands that reached label writing
        """
        results: list[CommandResult] = []
        for command in commands:
            result = await self.handle_command(command, subject, report_type, moderator, report_id)
            if result is not None:
                results.append(result)
        return results

    async def handle_command(
        self,
        command: LabelCommand,
        subject: PostRef | AccountRef,
        report_type: ReportType,
        moderator: Moderator,
        report_id: int | None = None,
    ) -> CommandResult | None:
        """Apply a single command.

        Returns:
            The command's result, or None if it was abandoned
        """
        with logfire.span(
            "applier.command",
            action=command.action,
            target=command.target,
            labels=list(command.labels),
            report_id=report_id,
        ):
            try:
                return await self._apply(command, subject, report_type, moderator, report_id)
            except Exception as e:
                logfire.error(
                    "Command processing failed",
                    action=command.action,
                    report_id=report_id,
                    error=str(e),
                )
                return None

    async def _apply(
        self,
        command: LabelCommand,
        subject: PostRef | AccountRef,
        report_type: ReportType,
        moderator: Moderator,
        report_id: int | None,
    ) -> CommandResult | None:
        try:
            target = resolve_target(command.target, report_type, subject)
        except UnresolvableTargetError as e:
            logfire.warning("Abandoning command", reason=e.message, details=e.details)
            return None

        logfire.info(
            "Applying labels",
            action=command.action,
            labels=list(command.labels),
            subject=target.key,
        )

        verb = "added" if command.action == "add" else "removed"
        comment = f"Auto-{verb} by @{moderator.handle}"
        result = CommandResult(command=command, subject=target)

        for label in command.labels:
            if label not in self.valid_labels:
                logfire.warning("Invalid label, not in valid labels list", label=label)
                result.failed.append(label)
                continue

            if await self.writer.write(target, label, command.action, comment):
                result.succeeded.append(label)
                logfire.info("Label written", label=label, action=command.action)
                if command.action == "add":
                    await self._check_autoban(label, target)
            else:
                result.failed.append(label)

        logfire.info("Label results", failed=len(result.failed), succeeded=len(result.succeeded))

        if not result.failed:
            result.acknowledged = await self._acknowledge(subject, moderator)
        else:
            result.notified = await self.notifier.notify_failure(
                moderator.did,
                failure_summary(result.failed, result.succeeded),
                subject,
                report_id,
            )
        return result

    async def _check_autoban(self, label: str, target: PostRef | AccountRef) -> None:
        account_did = account_did_of(target)
        if self.autoban is None or account_did is None:
            return
        await self.autoban.check_thresholds(label, account_did)

    async def _acknowledge(self, subject: PostRef | AccountRef, moderator: Moderator) -> bool:
        """Resolve the report. Failures are logged, never notified."""
        try:
            await self.api.emit_acknowledge_event(
                subject,
                f"Auto-resolved after labeling by @{moderator.handle}",
            )
        except Exception as e:
            logfire.warning("Failed to acknowledge report", subject=subject.key, error=str(e))
            return False
        logfire.info("Report acknowledged automatically", subject=subject.key)
        return True
