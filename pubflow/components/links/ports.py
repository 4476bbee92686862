"""
Links component port definitions.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from .models import RewriteResult


class LinkRewriterPort(Protocol):
    """Engine that turns raw anchors into annotation tokens."""

    def rewrite(self, html: str, content_id: UUID | None = None) -> RewriteResult:
        """
        Rewrite anchors in html.

        Raises RewriterError when the engine is unavailable.
        """
        ...
