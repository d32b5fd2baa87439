"""Label target resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING

from autolabel.core.errors import UnresolvableTargetError
from autolabel.core.subjects import AccountRef, PostRef

if TYPE_CHECKING:
    from autolabel.core.commands import Target
    from autolabel.core.subjects import ReportType


def resolve_target(
    target: Target,
    report_type: ReportType,
    subject: PostRef | AccountRef,
) -> PostRef | AccountRef:
    """Compute the concrete subject a command's labels apply to.

    The effective target is the command's target, or the report's own type
    when the command uses the default target.

    - account: an AccountRef is used as is; a PostRef yields the AccountRef
      of the post's author
    - post: a PostRef is used as is, tying labels to that post revision

    Args:
        target: The command's declared target
        report_type: Whether the report is about a post or an account
        subject: The reported subject

    Returns:
        The subject to label

    Raises:
        UnresolvableTargetError: If the combination has no labelable subject
    """
    effective = report_type if target == "default" else target

    if effective == "account":
        if isinstance(subject, AccountRef):
            return subject
        if subject.did is not None:
            return AccountRef(did=subject.did)
    elif isinstance(subject, PostRef):
        return subject

    msg = f"Cannot apply {effective} labels to {subject.type} subject"
    raise UnresolvableTargetError(
        msg,
        details={"target": effective, "subject": subject.model_dump(by_alias=True)},
    )
