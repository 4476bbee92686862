"""
Publish component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from pubflow.domain.entities import ContentItem, ContentStatus

from .models import PublishReceipt, PublishRequest


class CMSPublisherPort(Protocol):
    """External content-management system."""

    def publish(self, request: PublishRequest) -> PublishReceipt:
        """
        Create the post remotely.

        Raises PublishAdapterError on failure.
        """
        ...


class PublishedContentRepoPort(Protocol):
    """Content lookups and writes needed to confirm a publication."""

    def get_by_id(self, item_id: UUID) -> ContentItem | None:
        """Get item by ID."""
        ...

    def find_unlinked_by_title(self, title: str) -> ContentItem | None:
        """Item with this exact title and no remote post yet."""
        ...

    def transition(
        self,
        item_id: UUID,
        expected_status: ContentStatus,
        updates: dict[str, Any],
        feedback: Any = None,
    ) -> bool:
        """Conditional status update."""
        ...

    def update_fields(self, item_id: UUID, updates: dict[str, Any]) -> None:
        """Update non-status columns."""
        ...


class TimePort(Protocol):
    """Time port for publication timestamps."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
