"""
WordPress REST adapter (CMSPublisherPort).

Creates posts through /wp-json/wp/v2/posts using an application password.
Tag names are resolved to tag IDs through /wp-json/wp/v2/tags.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from pubflow.components.publish import PublishAdapterError, PublishReceipt, PublishRequest

logger = logging.getLogger(__name__)


class WordPressPublisher:
    """Publishes content items as WordPress posts."""

    def __init__(
        self,
        site_url: str,
        username: str,
        app_password: str,
        timeout_seconds: float = 60.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._posts_url = f"{site_url.rstrip('/')}/wp-json/wp/v2/posts"
        self._tags_url = f"{site_url.rstrip('/')}/wp-json/wp/v2/tags"
        self._auth = httpx.BasicAuth(username, app_password)
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def close(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._owns_client:
            self._client.close()

    def _tag_ids(self, tags: list[Any]) -> list[int]:
        """
        Resolve tag names to WordPress tag IDs. Integer IDs pass through;
        names with no existing tag are logged and left off the post.
        """
        ids: list[int] = []
        for tag in tags:
            if isinstance(tag, int):
                ids.append(tag)
                continue
            name = str(tag).strip()
            if not name:
                continue
            try:
                response = self._client.get(
                    self._tags_url, params={"search": name, "per_page": 100}, auth=self._auth
                )
                response.raise_for_status()
                matches = [
                    t["id"]
                    for t in response.json()
                    if str(t.get("name", "")).casefold() == name.casefold()
                ]
            except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
                logger.warning("Could not look up WordPress tag %r: %s", name, e)
                continue
            if matches:
                ids.append(matches[0])
            else:
                logger.warning("No WordPress tag named %r; left off the post", name)
        return ids

    def publish(self, request: PublishRequest) -> PublishReceipt:
        payload: dict[str, Any] = {
            "title": request.title,
            "content": request.body,
            "status": request.metadata.get("status", "draft"),
        }
        if request.metadata.get("excerpt"):
            payload["excerpt"] = request.metadata["excerpt"]
        if request.metadata.get("slug"):
            payload["slug"] = request.metadata["slug"]
        tag_ids = self._tag_ids(request.metadata.get("tags", []))
        if tag_ids:
            payload["tags"] = tag_ids

        try:
            response = self._client.post(self._posts_url, json=payload, auth=self._auth)
        except httpx.HTTPError as e:
            raise PublishAdapterError(f"WordPress unreachable: {e}") from e

        if not response.is_success:
            raise PublishAdapterError(
                f"WordPress returned {response.status_code}: {response.text[:300]}"
            )

        try:
            data = response.json()
            receipt = PublishReceipt(
                post_id=str(data["id"]),
                url=data["link"],
                status=data.get("status"),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise PublishAdapterError(f"Malformed WordPress response: {e}") from e

        logger.info("Created WordPress post %s at %s", receipt.post_id, receipt.url)
        return receipt
