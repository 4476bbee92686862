from datetime import datetime, timedelta
from typing import Any, Literal

from pubflow.domain.entities import ContentItem, ContentStatus

WorkflowEvent = Literal[
    "submit",
    "validate",
    "validation_failed",
    "queue_review",
    "approve",
    "reject",
    "auto_approve",
    "rewrite",
    "publish",
]

# (from_status, event) -> to_status
TRANSITIONS: dict[tuple[ContentStatus, WorkflowEvent], ContentStatus] = {
    ("draft", "submit"): "transformed",
    ("transformed", "validate"): "validated",
    ("validated", "validation_failed"): "draft",
    ("validated", "queue_review"): "pending_review",
    ("pending_review", "approve"): "approved",
    ("pending_review", "reject"): "draft",
    ("pending_review", "auto_approve"): "approved",
    ("pending_review", "rewrite"): "draft",
    # A rejected item sits in draft with a rejection reason
    ("draft", "rewrite"): "draft",
    ("rejected", "rewrite"): "draft",
    ("approved", "publish"): "published",
}


def can_transition(current: ContentStatus, event: WorkflowEvent) -> bool:
    """
    Determine if an event is legal from the current status.
    """
    return (current, event) in TRANSITIONS


def target_status(current: ContentStatus, event: WorkflowEvent) -> ContentStatus:
    """
    Resolve the status an event leads to.
    Raises ValueError if the event is not legal from the current status.
    """
    if not can_transition(current, event):
        raise ValueError(f"Invalid transition: '{event}' from {current}")
    return TRANSITIONS[(current, event)]


def transition_updates(
    item: ContentItem,
    event: WorkflowEvent,
    now: datetime,
    sla_window: timedelta | None = None,
) -> dict[str, Any]:
    """
    Compute the column updates for applying an event to an item.

    The result always includes the new status and keeps the lifecycle
    timestamps consistent with it:
    - pending_since/auto_approve_at are set only while pending_review
    - published_at is set only once published

    Raises ValueError if the transition is invalid.
    """
    new_status = target_status(item.status, event)

    updates: dict[str, Any] = {
        "status": new_status,
        "updated_at": now,
    }

    if new_status == "pending_review":
        if sla_window is None:
            raise ValueError("An SLA window is required to enter pending_review")
        updates["pending_since"] = now
        updates["auto_approve_at"] = now + sla_window
    elif item.status == "pending_review":
        updates["pending_since"] = None
        updates["auto_approve_at"] = None

    if new_status == "published":
        updates["published_at"] = now
    elif item.published_at is not None:
        updates["published_at"] = None

    return updates


def apply_transition(
    item: ContentItem,
    event: WorkflowEvent,
    now: datetime,
    sla_window: timedelta | None = None,
) -> ContentItem:
    """
    Return a NEW ContentItem with the event applied.
    Raises ValueError if transition is invalid.
    """
    return item.model_copy(update=transition_updates(item, event, now, sla_window))
