"""Label commands embedded in a moderator's report comment.

A comment such as ``"add spam, nsfw remove -account old-label"`` carries
two commands: add ``spam`` and ``nsfw`` to the reported subject, and remove
``old-label`` from the subject's account.

Syntax:
    (add|remove) [-account|-a|-post|-p] label[, label...]

Keywords are matched case-insensitively as whole words.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

Action = Literal["add", "remove"]
Target = Literal["default", "post", "account"]
SpanMode = Literal["keyword", "legacy"]

_KEYWORD = re.compile(r"\b(add|remove)\b", re.IGNORECASE)
_TARGET_PREFIX = re.compile(r"^-(account|a|post|p)\s+")
_TARGETS: dict[str, Target] = {
    "account": "account",
    "a": "account",
    "post": "post",
    "p": "post",
}


@dataclass(frozen=True)
class LabelCommand:
    """A parsed label command.

    Attributes:
        action: Whether to add or remove the labels
        target: Subject scope; "default" follows the report's own subject
        labels: Label values, in comment order (never empty)
    """

    action: Action
    target: Target
    labels: tuple[str, ...]


def _spans(comment: str, legacy_overlap: bool) -> list[tuple[Action, str]]:
    """Split a comment into (action, text) spans in comment order.

    In keyword mode a span ends at the next keyword of either kind. In
    legacy mode a span ends at the next occurrence of the same keyword, so
    text belonging to the other keyword leaks into it.
    """
    matches = list(_KEYWORD.finditer(comment))
    spans: list[tuple[Action, str]] = []
    for i, match in enumerate(matches):
        action: Action = "add" if match.group(1).lower() == "add" else "remove"
        end = len(comment)
        for following in matches[i + 1 :]:
            if not legacy_overlap or following.group(1).lower() == action:
                end = following.start()
                break
        spans.append((action, comment[match.end() : end]))
    return spans


def _parse_span(action: Action, text: str) -> LabelCommand | None:
    body = text.strip()
    if not body:
        return None

    target: Target = "default"
    prefix = _TARGET_PREFIX.match(body)
    if prefix:
        target = _TARGETS[prefix.group(1)]
        body = body[prefix.end() :]

    labels = tuple(label.strip() for label in body.split(",") if label.strip())
    if not labels:
        return None
    return LabelCommand(action=action, target=target, labels=labels)


def parse_commands(comment: str, *, legacy_overlap: bool = False) -> list[LabelCommand]:
    """Parse every label command in a comment.

    Args:
        comment: Free-text report comment
        legacy_overlap: Reproduce the historical span-overlap behaviour,
            where a span runs to the next occurrence of its own keyword

    Returns:
        All add-commands in comment order, then all remove-commands
    """
    commands = [
        command
        for action, text in _spans(comment, legacy_overlap)
        if (command := _parse_span(action, text)) is not None
    ]
    return [c for c in commands if c.action == "add"] + [
        c for c in commands if c.action == "remove"
    ]
