"""Auto-ban threshold evaluation.

After a moderation label is added, the account's label history from this
labeler is tallied and every auto-ban rule is checked. Rules that reach
their threshold apply their escalation label to the account.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import logfire

from autolabel.core.events import LABEL_EVENT_TYPE
from autolabel.core.rules import tally_labels
from autolabel.core.subjects import AccountRef

if TYPE_CHECKING:
    from collections.abc import Iterable

    from autolabel.agent.applier import LabelWriter
    from autolabel.core.rules import AutoBanRule
    from autolabel.core.types import ModerationApiProtocol

AUTOBAN_COMMENT = "Auto-applied due to threshold violation"


class AutoBanEvaluator:
    """Escalates accounts whose label points cross a rule threshold."""

    def __init__(
        self,
        api: ModerationApiProtocol,
        writer: LabelWriter,
        labeler_did: str,
        rules: list[AutoBanRule],
        moderation_labels: Iterable[str],
        history_limit: int = 100,
    ) -> None:
        """Initialize the evaluator.

        Args:
            api: Moderation API for the history query
            writer: Label writer used for escalation labels
            labeler_did: This labeler's DID; only its events are counted
            rules: Auto-ban rules
            moderation_labels: Labels that trigger a check and count as points
            history_limit: Maximum history events fetched per check
        """
        self.api = api
        self.writer = writer
        self.labeler_did = labeler_did
        self.rules = list(rules)
        self.moderation_labels = frozenset(moderation_labels)
        self.escalation_labels = frozenset(rule.label for rule in self.rules)
        self.history_limit = history_limit

    def triggers_check(self, label: str) -> bool:
        """Whether adding this label should run a threshold check.

        Escalation labels never trigger a check on themselves.
        """
        return bool(self.rules) and label in self.moderation_labels and label not in self.escalation_labels

    async def label_tally(self, account_did: str) -> dict[str, int]:
        """Fetch the account's label history and tally it."""
        events = await self.api.query_events(
            types=[LABEL_EVENT_TYPE],
            created_by=self.labeler_did,
            subject=account_did,
            include_all_user_records=True,
            limit=self.history_limit,
        )
        tally = tally_labels(events, account_did)
        logfire.debug(
            "Tallied account labels",
            account=account_did,
            events=len(events),
            tally=tally,
        )
        return tally

    async def check_thresholds(self, applied_label: str, account_did: str) -> list[str]:
        """Check every rule for an account and apply the ones that fire.

        Never raises; failures are logged.

        Args:
            applied_label: The label that was just added
            account_did: The account the label belongs to

        Returns:
            Escalation labels successfully applied
        """
        if not self.triggers_check(applied_label):
            return []

        applied: list[str] = []
        with logfire.span("autoban.check", account=account_did, label=applied_label):
            try:
                tally = await self.label_tally(account_did)
                for rule in self.rules:
                    points = rule.points(tally, self.moderation_labels)
                    logfire.info(
                        "Auto-ban check",
                        rule=rule.label,
                        points=points,
                        threshold=rule.threshold,
                        other_cap=rule.other_cap,
                    )
                    if points < rule.threshold:
                        continue
                    logfire.info("Applying auto-ban account label", account=account_did, label=rule.label)
                    if await self.writer.write(AccountRef(did=account_did), rule.label, "add", AUTOBAN_COMMENT):
                        applied.append(rule.label)
                    else:
                        logfire.error("Failed to apply auto-ban label", account=account_did, label=rule.label)
            except Exception as e:
                logfire.error("Error checking auto-ban thresholds", account=account_did, error=str(e))
        return applied
