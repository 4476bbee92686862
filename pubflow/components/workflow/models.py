"""
Workflow component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from pubflow.components.links import TransformOutput
from pubflow.components.publish import PublishReceipt
from pubflow.components.validation import ValidationResult
from pubflow.domain.entities import ContentItem, ContentStatus

# --- Errors ---


class WorkflowError(Exception):
    """An infrastructure failure that kept an item in its prior state."""

    code = "workflow_error"

    def __init__(self, message: str, content_id: UUID | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.content_id = content_id


class TransformFailedError(WorkflowError):
    code = "transform_failed"


class ValidationUnavailableError(WorkflowError):
    code = "validation_unavailable"


class PublishFailedError(WorkflowError):
    code = "publish_failed"


@dataclass(frozen=True)
class WorkflowIssue:
    """Non-exceptional reason an operation did not change anything."""

    code: str
    message: str
    content_id: UUID | None = None


# --- Input Models ---


@dataclass(frozen=True)
class CreateDraftInput:
    """Input for creating a draft from generated content."""

    title: str
    body_html: str
    meta_title: str | None = None
    meta_description: str | None = None
    target_keywords: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SubmitInput:
    """Input for submitting a draft through transform and validation."""

    content_id: UUID


@dataclass(frozen=True)
class ValidateInput:
    """Input for re-running validation on a transformed item."""

    content_id: UUID


@dataclass(frozen=True)
class ApproveInput:
    """Input for a manual approval."""

    content_id: UUID
    actor: str | None = None
    note: str | None = None


@dataclass(frozen=True)
class RejectInput:
    """Input for a manual rejection."""

    content_id: UUID
    reason: str
    actor: str | None = None


@dataclass(frozen=True)
class RewriteInput:
    """Input for sending an item back with rewrite instructions."""

    content_id: UUID
    instructions: str
    actor: str | None = None


@dataclass(frozen=True)
class PublishInput:
    """Input for pushing an approved item to the CMS."""

    content_id: UUID


@dataclass(frozen=True)
class CommentInput:
    """Input for attaching a reviewer comment."""

    content_id: UUID
    text: str
    actor: str | None = None


@dataclass(frozen=True)
class GetItemInput:
    """Input for getting an item by ID."""

    content_id: UUID


@dataclass(frozen=True)
class ListByStatusInput:
    """Input for listing items in a status."""

    status: ContentStatus
    limit: int = 100


# --- Output Models ---


@dataclass(frozen=True)
class WorkflowOutcome:
    """
    Result of a workflow operation.

    item is the authoritative state after the operation. changed is False
    when nothing was written (illegal transition or a lost race).
    """

    item: ContentItem | None
    changed: bool
    errors: list[WorkflowIssue] = field(default_factory=list)
    transform: TransformOutput | None = None
    validation: ValidationResult | None = None
    receipt: PublishReceipt | None = None

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class ItemListOutput:
    """Output for list operations."""

    items: list[ContentItem]
