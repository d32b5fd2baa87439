"""Tests for label target resolution."""

import pytest

from autolabel.agent.resolver import resolve_target
from autolabel.core.errors import UnresolvableTargetError
from autolabel.core.subjects import AccountRef, PostRef

POST = PostRef(uri="at://did:plc:author/app.bsky.feed.post/3kabc", cid="bafycid")
ACCOUNT = AccountRef(did="did:plc:author")


class TestResolveTarget:
    """Tests for resolve_target."""

    def test_default_on_post_report_is_the_post(self) -> None:
        """Test that default follows a post report to the post itself."""
        assert resolve_target("default", "post", POST) == POST

    def test_default_on_account_report_is_the_account(self) -> None:
        """Test that default follows an account report to the account."""
        assert resolve_target("default", "account", ACCOUNT) == ACCOUNT

    def test_account_target_on_post_uses_author(self) -> None:
        """Test that an account target on a post resolves to its author."""
        result = resolve_target("account", "post", POST)

        assert result == AccountRef(did="did:plc:author")

    def test_post_target_keeps_cid(self) -> None:
        """Test that a post target keeps the exact post revision."""
        result = resolve_target("post", "post", POST)

        assert isinstance(result, PostRef)
        assert result.cid == "bafycid"

    def test_post_target_on_account_report_fails(self) -> None:
        """Test that an account subject has no post to label."""
        with pytest.raises(UnresolvableTargetError) as exc_info:
            resolve_target("post", "account", ACCOUNT)

        assert exc_info.value.details["target"] == "post"

    def test_account_target_without_did_segment_fails(self) -> None:
        """Test that a uri without a DID cannot resolve to an account."""
        broken = PostRef(uri="at:", cid="bafycid")

        with pytest.raises(UnresolvableTargetError):
            resolve_target("account", "post", broken)
