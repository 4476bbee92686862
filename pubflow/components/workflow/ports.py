"""
Workflow component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from pubflow.domain.entities import ContentItem, ContentStatus, Feedback


class ContentRepoPort(Protocol):
    """Content store with conditional status transitions."""

    def get_by_id(self, item_id: UUID) -> ContentItem | None:
        """Get item by ID."""
        ...

    def save(self, item: ContentItem) -> ContentItem:
        """Insert or overwrite an item."""
        ...

    def list_by_status(self, status: ContentStatus, limit: int = 100) -> list[ContentItem]:
        """Items in a status, oldest update first."""
        ...

    def find_unlinked_by_title(self, title: str) -> ContentItem | None:
        """Item with this exact title and no remote post yet."""
        ...

    def transition(
        self,
        item_id: UUID,
        expected_status: ContentStatus,
        updates: dict[str, Any],
        feedback: Feedback | None = None,
        expected_pending_since: datetime | None = None,
    ) -> bool:
        """
        Apply updates only if the item is still in expected_status with the
        expected pending_since.

        Writes feedback in the same transaction when the update wins.
        """
        ...

    def update_fields(self, item_id: UUID, updates: dict[str, Any]) -> None:
        """Update non-status columns."""
        ...


class FeedbackRepoPort(Protocol):
    """Append-only reviewer feedback."""

    def append(self, feedback: Feedback) -> Feedback:
        """Persist feedback."""
        ...

    def list_by_content(
        self, content_id: UUID, feedback_type: str | None = None
    ) -> list[Feedback]:
        """Feedback for an item, oldest first."""
        ...


class TimePort(Protocol):
    """Time port for transition timestamps."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
