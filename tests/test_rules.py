"""Tests for auto-ban rules and label tallies."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from autolabel.core.errors import ConfigurationError
from autolabel.core.rules import AutoBanRule, parse_autoban_rules, tally_labels

if TYPE_CHECKING:
    from collections.abc import Callable

    from autolabel.core.events import ModerationEvent

MODERATION_LABELS = ["spam-ban", "other1", "other2"]


class TestAutoBanRulePoints:
    """Tests for AutoBanRule.points."""

    def test_threshold_reached_with_capped_other_points(self) -> None:
        """Test 4 primary + min(2, 8) other = 6 reaches 5."""
        rule = AutoBanRule(label="spam-ban", threshold=5, other_cap=2)

        points = rule.points({"spam-ban": 4, "other1": 3, "other2": 5}, MODERATION_LABELS)

        assert points == 6
        assert points >= rule.threshold

    def test_threshold_not_reached(self) -> None:
        """Test 2 primary + 1 other = 3 stays below 5."""
        rule = AutoBanRule(label="spam-ban", threshold=5, other_cap=2)

        points = rule.points({"spam-ban": 2, "other1": 1}, MODERATION_LABELS)

        assert points == 3
        assert points < rule.threshold

    def test_non_moderation_labels_do_not_count(self) -> None:
        """Test that labels outside the moderation set contribute nothing."""
        rule = AutoBanRule(label="spam-ban", threshold=5, other_cap=10)

        assert rule.points({"spam-ban": 1, "cosmetic": 7}, MODERATION_LABELS) == 1

    def test_zero_cap_ignores_other_labels(self) -> None:
        """Test that a cap of zero counts primary points only."""
        rule = AutoBanRule(label="spam-ban", threshold=3, other_cap=0)

        assert rule.points({"spam-ban": 2, "other1": 9}, MODERATION_LABELS) == 2


class TestParseAutobanRules:
    """Tests for parse_autoban_rules."""

    def test_parses_multiple_rules(self) -> None:
        """Test a comma-separated list of rules."""
        rules = parse_autoban_rules("spam-ban:5:2, nsfw-ban:3:0")

        assert rules == [
            AutoBanRule(label="spam-ban", threshold=5, other_cap=2),
            AutoBanRule(label="nsfw-ban", threshold=3, other_cap=0),
        ]

    def test_blank_means_no_rules(self) -> None:
        """Test that an empty or whitespace config yields no rules."""
        assert parse_autoban_rules("") == []
        assert parse_autoban_rules("   ") == []

    @pytest.mark.parametrize("config", ["spam-ban:5", "spam-ban:5:2:1", "spam-ban"])
    def test_wrong_field_count_is_fatal(self, config: str) -> None:
        """Test that entries without exactly three fields are rejected."""
        with pytest.raises(ConfigurationError, match="Expected format"):
            parse_autoban_rules(config)

    def test_non_integer_values_are_fatal(self) -> None:
        """Test that a non-numeric threshold is rejected."""
        with pytest.raises(ConfigurationError) as exc_info:
            parse_autoban_rules("spam-ban:five:2")

        assert exc_info.value.details == {"rule": "spam-ban:five:2"}


class TestTallyLabels:
    """Tests for tally_labels."""

    def test_adds_and_removes(self, make_label_event: Callable[..., ModerationEvent]) -> None:
        """Test +1 per add and -1 per remove."""
        events = [
            make_label_event(add=["spam"]),
            make_label_event(add=["spam", "rude"]),
            make_label_event(remove=["spam"]),
        ]

        assert tally_labels(events, "did:plc:author") == {"spam": 1, "rude": 1}

    def test_floors_at_zero(self, make_label_event: Callable[..., ModerationEvent]) -> None:
        """Test that removals never drive a count negative."""
        events = [
            make_label_event(remove=["spam"]),
            make_label_event(remove=["spam"]),
            make_label_event(add=["spam"]),
        ]

        assert tally_labels(events, "did:plc:author") == {"spam": 1}

    def test_ignores_report_labels(self, make_label_event: Callable[..., ModerationEvent]) -> None:
        """Test that report: labels are not counted."""
        events = [make_label_event(add=["report:spam", "spam"])]

        assert tally_labels(events, "did:plc:author") == {"spam": 1}

    def test_counts_post_labels_for_the_author(self, make_label_event: Callable[..., ModerationEvent]) -> None:
        """Test that labels on the account's posts count toward the account."""
        post = {
            "$type": "com.atproto.repo.strongRef",
            "uri": "at://did:plc:author/app.bsky.feed.post/1",
            "cid": "bafy",
        }
        other = {"$type": "com.atproto.admin.defs#repoRef", "did": "did:plc:someone-else"}
        events = [
            make_label_event(add=["spam"], subject=post),
            make_label_event(add=["spam"], subject=other),
        ]

        assert tally_labels(events, "did:plc:author") == {"spam": 1}
