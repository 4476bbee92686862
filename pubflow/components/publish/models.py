"""
Publish component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

# --- Errors ---


class PublishAdapterError(Exception):
    """The CMS rejected the post or could not be reached."""


# --- Adapter contract ---


@dataclass(frozen=True)
class PublishReceipt:
    """What the CMS hands back for a created post."""

    post_id: str
    url: str
    status: str | None = None


@dataclass(frozen=True)
class PublishRequest:
    """Post to create in the CMS."""

    title: str
    body: str
    metadata: dict[str, Any] = field(default_factory=dict)


# --- Input Models ---


@dataclass(frozen=True)
class ConfirmPublicationInput:
    """Inbound publish confirmation from the CMS."""

    post_id: str
    post_url: str
    status: str | None = None
    post_title: str | None = None
    content_queue_id: UUID | None = None


# --- Output Models ---


@dataclass(frozen=True)
class ConfirmationOutput:
    """Outcome of matching a confirmation to a content item."""

    matched: bool
    message: str
    content_id: UUID | None = None
    status_changed: bool = False
