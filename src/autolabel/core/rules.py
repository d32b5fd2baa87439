"""Auto-ban rules and label point arithmetic.

A rule ``spam-ban:5:2`` reads: apply ``spam-ban`` to an account once its
``spam-ban`` points plus at most 2 points from other moderation labels
reach 5.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from autolabel.core.errors import ConfigurationError
from autolabel.core.events import LabelDetail, ModerationEvent
from autolabel.core.subjects import account_did_of

# Labels with this prefix mark reports, not moderation decisions
REPORT_LABEL_PREFIX = "report:"


@dataclass(frozen=True)
class AutoBanRule:
    """An escalation rule.

    Attributes:
        label: The escalation label to apply to the account
        threshold: Point total at which the rule fires
        other_cap: Maximum points contributed by other moderation labels
    """

    label: str
    threshold: int
    other_cap: int

    def points(self, tally: dict[str, int], moderation_labels: Iterable[str]) -> int:
        """Compute the account's point total under this rule.

        Args:
            tally: Net label counts for the account
            moderation_labels: Labels whose counts contribute as "other" points

        Returns:
            Primary points plus capped other points
        """
        primary = tally.get(self.label, 0)
        other = sum(tally.get(label, 0) for label in set(moderation_labels) if label != self.label)
        return primary + min(self.other_cap, other)


def parse_autoban_rules(config: str) -> list[AutoBanRule]:
    """Parse a comma-separated ``label:threshold:otherCap`` rule list.

    Args:
        config: Rule configuration string; blank means no rules

    Returns:
        Parsed rules in configuration order

    Raises:
        ConfigurationError: If any entry is malformed
    """
    if not config.strip():
        return []

    rules: list[AutoBanRule] = []
    for entry in config.split(","):
        parts = [part.strip() for part in entry.strip().split(":")]
        if len(parts) != 3:
            msg = f"Invalid autoban rule format: {entry.strip()}. Expected format: label:threshold:otherCap"
            raise ConfigurationError(msg, details={"rule": entry.strip()})
        label, threshold, other_cap = parts
        try:
            rules.append(AutoBanRule(label=label, threshold=int(threshold), other_cap=int(other_cap)))
        except ValueError as e:
            msg = f"Invalid autoban rule numbers: {entry.strip()}. Threshold and cap must be integers"
            raise ConfigurationError(msg, details={"rule": entry.strip()}) from e
    return rules


def tally_labels(events: Iterable[ModerationEvent], account_did: str) -> dict[str, int]:
    """Count net label applications on an account.

    Each added label counts +1 and each removed label -1, floored at 0.
    Only label events whose subject belongs to the account are counted;
    ``report:`` labels are ignored.

    Args:
        events: Label history, in any order
        account_did: The account whose labels are tallied

    Returns:
        Mapping of label value to net count
    """
    tally: dict[str, int] = {}
    for event in events:
        if not isinstance(event.event, LabelDetail):
            continue
        if account_did_of(event.subject) != account_did:
            continue
        for label in event.event.create_label_vals:
            if not label.startswith(REPORT_LABEL_PREFIX):
                tally[label] = tally.get(label, 0) + 1
        for label in event.event.negate_label_vals:
            if not label.startswith(REPORT_LABEL_PREFIX):
                tally[label] = max(0, tally.get(label, 0) - 1)
    return tally
