"""
Tests for the content lifecycle state table.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from pubflow.domain.entities import ContentItem
from pubflow.domain.state import (
    TRANSITIONS,
    apply_transition,
    can_transition,
    target_status,
    transition_updates,
)

NOW = datetime(2025, 3, 10, 9, 0, 0, tzinfo=UTC)
WINDOW = timedelta(days=5)


def make_item(**kwargs) -> ContentItem:
    return ContentItem(title="Item", **kwargs)


class TestTransitionTable:
    """Legal and illegal events."""

    @pytest.mark.parametrize(
        "current,event,expected",
        [
            ("draft", "submit", "transformed"),
            ("transformed", "validate", "validated"),
            ("validated", "validation_failed", "draft"),
            ("validated", "queue_review", "pending_review"),
            ("pending_review", "approve", "approved"),
            ("pending_review", "auto_approve", "approved"),
            ("pending_review", "reject", "draft"),
            ("pending_review", "rewrite", "draft"),
            ("approved", "publish", "published"),
        ],
    )
    def test_legal_transitions(self, current, event, expected) -> None:
        """Each documented edge resolves to its target."""
        assert can_transition(current, event)
        assert target_status(current, event) == expected

    @pytest.mark.parametrize(
        "current,event",
        [
            ("draft", "approve"),
            ("draft", "publish"),
            ("approved", "approve"),
            ("approved", "reject"),
            ("published", "publish"),
            ("published", "rewrite"),
            ("transformed", "approve"),
        ],
    )
    def test_illegal_transitions(self, current, event) -> None:
        """Undocumented edges are refused."""
        assert not can_transition(current, event)
        with pytest.raises(ValueError, match="Invalid transition"):
            target_status(current, event)

    def test_published_is_terminal(self) -> None:
        """No edge leaves published."""
        assert not [key for key in TRANSITIONS if key[0] == "published"]


class TestTransitionUpdates:
    """Lifecycle timestamps follow the status."""

    def test_entering_review_starts_clock(self) -> None:
        """pending_since and auto_approve_at are set on entry."""
        item = make_item(status="validated")

        updates = transition_updates(item, "queue_review", NOW, WINDOW)

        assert updates["status"] == "pending_review"
        assert updates["pending_since"] == NOW
        assert updates["auto_approve_at"] == NOW + WINDOW
        assert updates["updated_at"] == NOW

    def test_entering_review_requires_window(self) -> None:
        """The SLA window is mandatory for pending_review."""
        item = make_item(status="validated")

        with pytest.raises(ValueError, match="SLA window"):
            transition_updates(item, "queue_review", NOW)

    @pytest.mark.parametrize("event", ["approve", "auto_approve", "reject", "rewrite"])
    def test_leaving_review_clears_clock(self, event) -> None:
        """Every exit from pending_review clears the clock."""
        item = make_item(
            status="pending_review",
            pending_since=NOW - timedelta(days=2),
            auto_approve_at=NOW + timedelta(days=3),
        )

        updated = apply_transition(item, event, NOW)

        assert updated.pending_since is None
        assert updated.auto_approve_at is None

    def test_publish_sets_published_at(self) -> None:
        """published_at is stamped on publish."""
        item = make_item(status="approved")

        updated = apply_transition(item, "publish", NOW)

        assert updated.status == "published"
        assert updated.published_at == NOW

    def test_apply_returns_new_item(self) -> None:
        """The original item is not modified."""
        item = make_item(status="draft")

        updated = apply_transition(item, "submit", NOW)

        assert item.status == "draft"
        assert updated.status == "transformed"
        assert updated.id == item.id
