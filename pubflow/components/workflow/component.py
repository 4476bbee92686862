"""
Workflow component - Content lifecycle orchestration.

Invariants:
- pending_since/auto_approve_at are set iff status is pending_review
- published_at is set iff status is published
- Each status change happens at most once per prior status
- Feedback rows exist only for transitions that were applied
"""

from __future__ import annotations

from datetime import timedelta

from pubflow.components.publish import ConfirmationOutput, ConfirmPublicationInput
from pubflow.domain.entities import ContentItem, Feedback
from pubflow.rules.models import Rules

from ._impl import WorkflowConfig, WorkflowService
from .models import (
    ApproveInput,
    CommentInput,
    CreateDraftInput,
    GetItemInput,
    ItemListOutput,
    ListByStatusInput,
    PublishInput,
    RejectInput,
    RewriteInput,
    SubmitInput,
    ValidateInput,
    WorkflowOutcome,
)

WorkflowInput = (
    CreateDraftInput
    | SubmitInput
    | ValidateInput
    | ApproveInput
    | RejectInput
    | RewriteInput
    | PublishInput
    | CommentInput
    | GetItemInput
    | ListByStatusInput
    | ConfirmPublicationInput
)


def build_config(rules: Rules | None) -> WorkflowConfig:
    """Build workflow config from rules."""
    if rules is None:
        return WorkflowConfig()
    return WorkflowConfig(
        sla_window=timedelta(days=rules.sla.window_days),
        post_status=rules.publish.default_post_status,
    )


# --- Component Entry Points ---


def run_create_draft(inp: CreateDraftInput, *, service: WorkflowService) -> ContentItem:
    """Create a new draft item."""
    return service.create_draft(
        title=inp.title,
        body_html=inp.body_html,
        meta_title=inp.meta_title,
        meta_description=inp.meta_description,
        target_keywords=inp.target_keywords,
    )


def run_submit(inp: SubmitInput, *, service: WorkflowService) -> WorkflowOutcome:
    """
    Transform and validate a draft.

    Args:
        inp: Input naming the draft.
        service: Workflow service wired with its collaborators.

    Returns:
        WorkflowOutcome ending in pending_review or draft.

    Raises:
        TransformFailedError: The link rewriter was unavailable.
        ValidationUnavailableError: Validation could not be completed.
    """
    return service.submit(inp.content_id)


def run_validate(inp: ValidateInput, *, service: WorkflowService) -> WorkflowOutcome:
    """Validate an item left in transformed."""
    return service.validate(inp.content_id)


def run_approve(inp: ApproveInput, *, service: WorkflowService) -> WorkflowOutcome:
    """Manually approve a pending item."""
    return service.approve(inp.content_id, actor=inp.actor, note=inp.note)


def run_reject(inp: RejectInput, *, service: WorkflowService) -> WorkflowOutcome:
    """Manually reject a pending item."""
    return service.reject(inp.content_id, inp.reason, actor=inp.actor)


def run_request_rewrite(inp: RewriteInput, *, service: WorkflowService) -> WorkflowOutcome:
    """Send an item back to draft with instructions."""
    return service.request_rewrite(inp.content_id, inp.instructions, actor=inp.actor)


def run_publish(inp: PublishInput, *, service: WorkflowService) -> WorkflowOutcome:
    """
    Publish an approved item.

    Raises:
        PublishFailedError: The CMS call failed; the item stays approved.
    """
    return service.publish(inp.content_id)


def run_comment(inp: CommentInput, *, service: WorkflowService) -> Feedback | None:
    """Attach a comment. Returns None if the item does not exist."""
    return service.comment(inp.content_id, inp.text, actor=inp.actor)


def run_confirm_publication(
    inp: ConfirmPublicationInput, *, service: WorkflowService
) -> ConfirmationOutput:
    """Apply a publish confirmation reported by the CMS."""
    return service.confirm_publication(inp)


def run_get_item(inp: GetItemInput, *, service: WorkflowService) -> ContentItem | None:
    return service.get_item(inp.content_id)


def run_list_by_status(inp: ListByStatusInput, *, service: WorkflowService) -> ItemListOutput:
    return ItemListOutput(items=service.list_by_status(inp.status, inp.limit))


def run(
    inp: WorkflowInput,
    *,
    service: WorkflowService,
) -> WorkflowOutcome | ContentItem | Feedback | ConfirmationOutput | ItemListOutput | None:
    """
    Main entry point for the workflow component.

    Dispatches to appropriate handler based on input type.
    """
    if isinstance(inp, CreateDraftInput):
        return run_create_draft(inp, service=service)
    elif isinstance(inp, SubmitInput):
        return run_submit(inp, service=service)
    elif isinstance(inp, ValidateInput):
        return run_validate(inp, service=service)
    elif isinstance(inp, ApproveInput):
        return run_approve(inp, service=service)
    elif isinstance(inp, RejectInput):
        return run_reject(inp, service=service)
    elif isinstance(inp, RewriteInput):
        return run_request_rewrite(inp, service=service)
    elif isinstance(inp, PublishInput):
        return run_publish(inp, service=service)
    elif isinstance(inp, CommentInput):
        return run_comment(inp, service=service)
    elif isinstance(inp, ConfirmPublicationInput):
        return run_confirm_publication(inp, service=service)
    elif isinstance(inp, GetItemInput):
        return run_get_item(inp, service=service)
    elif isinstance(inp, ListByStatusInput):
        return run_list_by_status(inp, service=service)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
