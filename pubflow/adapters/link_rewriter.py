"""
Remote link rewriting adapter.

Delegates anchor rewriting to an HTTP service that accepts
{"html", "content_id"} and answers
{"success", "content", "transformations": {...}, "issues": [...]}.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

import httpx

from pubflow.components.links import LinkSummary, RewriteResult, RewriterError

logger = logging.getLogger(__name__)


class HttpLinkRewriter:
    """LinkRewriterPort backed by a remote rewriting service."""

    def __init__(
        self,
        endpoint: str,
        timeout_seconds: float = 30.0,
        api_key: str | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def close(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._owns_client:
            self._client.close()

    def rewrite(self, html: str, content_id: UUID | None = None) -> RewriteResult:
        payload: dict[str, Any] = {"html": html}
        if content_id is not None:
            payload["content_id"] = str(content_id)

        try:
            response = self._client.post(self._endpoint, json=payload, headers=self._headers)
        except httpx.HTTPError as e:
            raise RewriterError(f"Rewriter unreachable: {e}") from e

        if response.status_code != 200:
            raise RewriterError(
                f"Rewriter returned {response.status_code}: {response.text[:200]}"
            )

        try:
            data = response.json()
            if not data.get("success", True):
                raise RewriterError(f"Rewriter reported failure: {data.get('error')}")
            counts = data["transformations"]
            return RewriteResult(
                content=data["content"],
                transformations=LinkSummary(
                    internal=int(counts.get("internal", 0)),
                    affiliate=int(counts.get("affiliate", 0)),
                    external=int(counts.get("external", 0)),
                ),
                issues=[str(i) for i in data.get("issues", [])],
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise RewriterError(f"Malformed rewriter response: {e}") from e
