"""
PublicationConfirmationService - Closes the loop when the CMS reports a post.

Key behaviors:
- Match by content id when the CMS echoes it, else by exact title among
  items with no remote post yet
- An approved item reported with status "publish" moves to published via a
  conditional update; other items only get their remote linkage recorded
- No match is not an error: the post exists remotely either way
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from pubflow.domain.entities import ContentItem
from pubflow.domain.state import transition_updates

from .models import ConfirmationOutput, ConfirmPublicationInput, PublishRequest
from .ports import PublishedContentRepoPort, TimePort

logger = logging.getLogger(__name__)

PUBLISHED_REMOTE_STATUS = "publish"


def build_publish_request(item: ContentItem, post_status: str = "draft") -> PublishRequest:
    """Map a content item to the CMS post payload."""
    metadata: dict[str, Any] = {
        "content_id": str(item.id),
        "status": post_status,
        "excerpt": item.meta_description or "",
        "meta_title": item.meta_title or item.title,
        "tags": list(item.target_keywords),
    }
    return PublishRequest(title=item.title, body=item.body_html, metadata=metadata)


class PublicationConfirmationService:
    """Applies inbound publish confirmations to content items."""

    def __init__(
        self,
        repo: PublishedContentRepoPort,
        time_port: TimePort | None = None,
    ) -> None:
        self._repo = repo
        self._time = time_port

    def _now_utc(self) -> datetime:
        if self._time:
            return self._time.now_utc()
        return datetime.now(UTC)

    def _find(self, inp: ConfirmPublicationInput) -> ContentItem | None:
        if inp.content_queue_id is not None:
            return self._repo.get_by_id(inp.content_queue_id)
        if inp.post_title:
            return self._repo.find_unlinked_by_title(inp.post_title)
        return None

    def confirm(self, inp: ConfirmPublicationInput) -> ConfirmationOutput:
        item = self._find(inp)
        if item is None:
            logger.warning(
                "Publish confirmation for remote post %s matched no content", inp.post_id
            )
            return ConfirmationOutput(
                matched=False,
                message="Post published, but no matching content found",
            )

        now = self._now_utc()
        remote = {"remote_post_id": str(inp.post_id), "remote_url": inp.post_url}

        if inp.status == PUBLISHED_REMOTE_STATUS and item.status == "approved":
            updates = transition_updates(item, "publish", now)
            updates.update(remote)
            if self._repo.transition(item.id, "approved", updates):
                logger.info("Content %s confirmed published as post %s", item.id, inp.post_id)
                return ConfirmationOutput(
                    matched=True,
                    message="Content marked as published",
                    content_id=item.id,
                    status_changed=True,
                )
            # Lost to a concurrent writer; record the linkage against whatever won
            item = self._repo.get_by_id(item.id) or item

        self._repo.update_fields(item.id, {**remote, "updated_at": now})
        logger.info(
            "Linked content %s to remote post %s (status %s)",
            item.id,
            inp.post_id,
            item.status,
        )
        return ConfirmationOutput(
            matched=True,
            message=f"Remote post linked; content status is {item.status}",
            content_id=item.id,
        )


# --- Factory ---


def create_confirmation_service(
    repo: PublishedContentRepoPort,
    time_port: TimePort | None = None,
) -> PublicationConfirmationService:
    """Create a PublicationConfirmationService."""
    return PublicationConfirmationService(repo=repo, time_port=time_port)
