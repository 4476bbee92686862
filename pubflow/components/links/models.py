"""
Links component - Data models.

Annotation tokens replace raw anchors:
    [ge_internal_link url="/programs"]Programs[/ge_internal_link]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal
from uuid import UUID

LinkKind = Literal["internal", "affiliate", "external"]


# --- Errors ---


class RewriterError(Exception):
    """The link rewriting engine could not process the content."""


# --- Summary ---


@dataclass(frozen=True)
class LinkSummary:
    """Per-kind count of rewritten links."""

    internal: int = 0
    affiliate: int = 0
    external: int = 0

    @property
    def total(self) -> int:
        return self.internal + self.affiliate + self.external

    def as_dict(self) -> dict[str, int]:
        return {
            "internal": self.internal,
            "affiliate": self.affiliate,
            "external": self.external,
            "total": self.total,
        }


@dataclass(frozen=True)
class RewriteResult:
    """Raw output of a rewriting engine."""

    content: str
    transformations: LinkSummary
    issues: list[str] = field(default_factory=list)


# --- Input Models ---


@dataclass(frozen=True)
class TransformInput:
    """Input for transforming the links in an HTML body."""

    html: str
    content_id: UUID | None = None


@dataclass(frozen=True)
class AnnotationStatsInput:
    """Input for counting the annotation tokens already in a body."""

    content: str


# --- Output Models ---


@dataclass(frozen=True)
class TransformOutput:
    """
    Output for transform operation.

    On failure, content is the untouched input and issues holds the reason.
    """

    success: bool
    content: str
    transformations: LinkSummary
    issues: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AnnotationStats:
    """Counts of existing annotation tokens and leftover raw anchors."""

    internal: int
    affiliate: int
    external: int
    raw_links: int

    @property
    def total(self) -> int:
        return self.internal + self.affiliate + self.external
