"""
WorkflowService - Content item state machine.

Owns every status change of a content item:

    draft -> transformed -> validated -> pending_review -> approved -> published
                               |               |
                               +-> draft       +-> draft (reject / rewrite)

Key behaviors:
- Every status change is one conditional update keyed on the prior status
  and pending_since
- A lost race is a no-op outcome, never an exception
- Feedback is written in the same transaction as the winning update
- Transform, validation-infrastructure and publish failures leave the item
  in its prior state and raise a WorkflowError subclass
- Network calls run with no lock held; the item stays readable meanwhile
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from pubflow.components.links import LinkTransformerService
from pubflow.components.publish import (
    CMSPublisherPort,
    ConfirmationOutput,
    ConfirmPublicationInput,
    PublicationConfirmationService,
    PublishAdapterError,
    build_publish_request,
)
from pubflow.components.validation import ValidationGateService, ValidationResult
from pubflow.domain.entities import ContentItem, ContentStatus, Feedback
from pubflow.domain.state import WorkflowEvent, can_transition, transition_updates

from .models import (
    PublishFailedError,
    TransformFailedError,
    ValidationUnavailableError,
    WorkflowIssue,
    WorkflowOutcome,
)
from .ports import ContentRepoPort, FeedbackRepoPort, TimePort

logger = logging.getLogger(__name__)

# --- Configuration ---


@dataclass(frozen=True)
class WorkflowConfig:
    """Workflow configuration from rules."""

    sla_window: timedelta = timedelta(days=5)
    post_status: str = "draft"


DEFAULT_CONFIG = WorkflowConfig()


# --- WorkflowService ---


class WorkflowService:
    """
    Workflow orchestrator.

    Collaborators are injected so the API, CLI and SLA sweep all drive the
    same transitions against the same store.
    """

    def __init__(
        self,
        repo: ContentRepoPort,
        feedback_repo: FeedbackRepoPort,
        links: LinkTransformerService,
        validator: ValidationGateService,
        publisher: CMSPublisherPort | None = None,
        time_port: TimePort | None = None,
        config: WorkflowConfig | None = None,
    ) -> None:
        self._repo = repo
        self._feedback = feedback_repo
        self._links = links
        self._validator = validator
        self._publisher = publisher
        self._time = time_port
        self._config = config or DEFAULT_CONFIG

    def _now_utc(self) -> datetime:
        if self._time:
            return self._time.now_utc()
        return datetime.now(UTC)

    @property
    def validator(self) -> ValidationGateService:
        return self._validator

    # --- Helpers ---

    def _not_found(self, content_id: UUID) -> WorkflowOutcome:
        return WorkflowOutcome(
            item=None,
            changed=False,
            errors=[
                WorkflowIssue(
                    code="not_found",
                    message=f"Content {content_id} not found",
                    content_id=content_id,
                )
            ],
        )

    def _invalid(self, item: ContentItem, event: WorkflowEvent) -> WorkflowOutcome:
        return WorkflowOutcome(
            item=item,
            changed=False,
            errors=[
                WorkflowIssue(
                    code="invalid_transition",
                    message=f"Cannot {event.replace('_', ' ')} content in '{item.status}' status",
                    content_id=item.id,
                )
            ],
        )

    def _lost_race(
        self, item: ContentItem, event: WorkflowEvent, **extra: Any
    ) -> WorkflowOutcome:
        current = self._repo.get_by_id(item.id)
        logger.info(
            "Transition '%s' on %s lost to a concurrent writer (now %s)",
            event,
            item.id,
            current.status if current else "deleted",
        )
        return WorkflowOutcome(
            item=current,
            changed=False,
            errors=[
                WorkflowIssue(
                    code="state_conflict",
                    message=f"Content changed concurrently; '{event}' not applied",
                    content_id=item.id,
                )
            ],
            **extra,
        )

    def _apply(
        self,
        item: ContentItem,
        event: WorkflowEvent,
        extra_updates: dict[str, Any] | None = None,
        feedback: Feedback | None = None,
    ) -> ContentItem | None:
        """
        Conditionally apply an event. Returns the new item, or None when
        another writer moved the item first.
        """
        now = self._now_utc()
        updates = transition_updates(item, event, now, self._config.sla_window)
        if extra_updates:
            updates.update(extra_updates)

        if not self._repo.transition(
            item.id, item.status, updates, feedback, expected_pending_since=item.pending_since
        ):
            return None

        logger.info(
            "Content %s: %s -> %s (%s)", item.id, item.status, updates["status"], event
        )
        return item.model_copy(update=updates)

    def _load(self, content_id: UUID) -> ContentItem | None:
        return self._repo.get_by_id(content_id)

    # --- Creation ---

    def create_draft(
        self,
        title: str,
        body_html: str,
        meta_title: str | None = None,
        meta_description: str | None = None,
        target_keywords: list[str] | None = None,
    ) -> ContentItem:
        """Create a new item in draft."""
        now = self._now_utc()
        item = ContentItem(
            title=title,
            body_html=body_html,
            meta_title=meta_title,
            meta_description=meta_description,
            target_keywords=list(target_keywords or []),
            status="draft",
            created_at=now,
            updated_at=now,
        )
        self._repo.save(item)
        logger.info("Created draft %s", item.id)
        return item

    # --- Submit / transform / validate ---

    def submit(self, content_id: UUID) -> WorkflowOutcome:
        """
        Run a draft through the link transformer and the validation gate.

        Ends in pending_review when validation passes, or back in draft
        with the validation errors attached.

        Raises TransformFailedError or ValidationUnavailableError on
        infrastructure failures; the item keeps its prior status.
        """
        item = self._load(content_id)
        if item is None:
            return self._not_found(content_id)
        if not can_transition(item.status, "submit"):
            return self._invalid(item, "submit")

        transform = self._links.transform(item.body_html, item.id)
        if not transform.success:
            raise TransformFailedError(
                "; ".join(transform.issues) or "Link transformation failed",
                content_id=item.id,
            )

        transformed = self._apply(
            item,
            "submit",
            {
                "body_html": transform.content,
                "link_summary": transform.transformations.as_dict(),
                "validation_status": "pending",
                "validation_errors": [],
                "rejection_reason": None,
                "rewrite_instructions": None,
            },
        )
        if transformed is None:
            return self._lost_race(item, "submit", transform=transform)

        outcome = self._validate_transformed(transformed)
        return WorkflowOutcome(
            item=outcome.item,
            changed=True,
            errors=outcome.errors,
            transform=transform,
            validation=outcome.validation,
        )

    def validate(self, content_id: UUID) -> WorkflowOutcome:
        """Validate an item sitting in transformed (e.g. after an outage)."""
        item = self._load(content_id)
        if item is None:
            return self._not_found(content_id)
        if not can_transition(item.status, "validate"):
            return self._invalid(item, "validate")
        return self._validate_transformed(item)

    def _validate_transformed(self, item: ContentItem) -> WorkflowOutcome:
        result = self._validator.validate(
            item.body_html, item.title, item.meta_description, item.id
        )
        if result.infrastructure_failure:
            raise ValidationUnavailableError(result.errors[0].message, content_id=item.id)

        validated = self._apply(
            item,
            "validate",
            {
                "validation_status": "valid" if result.passed else "invalid",
                "validation_errors": list(result.errors),
            },
        )
        if validated is None:
            return self._lost_race(item, "validate", validation=result)

        return self._route_validated(validated, result)

    def _route_validated(self, item: ContentItem, result: ValidationResult) -> WorkflowOutcome:
        if result.passed:
            queued = self._apply(item, "queue_review")
            if queued is None:
                return self._lost_race(item, "queue_review", validation=result)
            return WorkflowOutcome(item=queued, changed=True, validation=result)

        returned = self._apply(item, "validation_failed")
        if returned is None:
            return self._lost_race(item, "validation_failed", validation=result)
        return WorkflowOutcome(item=returned, changed=True, validation=result)

    # --- Review ---

    def approve(
        self, content_id: UUID, actor: str | None = None, note: str | None = None
    ) -> WorkflowOutcome:
        """Manual approval of a pending item."""
        item = self._load(content_id)
        if item is None:
            return self._not_found(content_id)
        if not can_transition(item.status, "approve"):
            return self._invalid(item, "approve")

        feedback = Feedback(
            content_id=item.id,
            type="approve",
            payload={"method": "manual", "actor": actor, "note": note},
            created_at=self._now_utc(),
        )
        approved = self._apply(item, "approve", {"auto_approved": False}, feedback)
        if approved is None:
            return self._lost_race(item, "approve")
        return WorkflowOutcome(item=approved, changed=True)

    def reject(self, content_id: UUID, reason: str, actor: str | None = None) -> WorkflowOutcome:
        """Manual rejection; the item returns to draft carrying the reason."""
        if not reason or not reason.strip():
            return WorkflowOutcome(
                item=self._load(content_id),
                changed=False,
                errors=[
                    WorkflowIssue(
                        code="reason_required",
                        message="A rejection reason is required",
                        content_id=content_id,
                    )
                ],
            )

        item = self._load(content_id)
        if item is None:
            return self._not_found(content_id)
        if not can_transition(item.status, "reject"):
            return self._invalid(item, "reject")

        reason = reason.strip()
        feedback = Feedback(
            content_id=item.id,
            type="reject",
            payload={"reason": reason, "actor": actor},
            created_at=self._now_utc(),
        )
        rejected = self._apply(item, "reject", {"rejection_reason": reason}, feedback)
        if rejected is None:
            return self._lost_race(item, "reject")
        return WorkflowOutcome(item=rejected, changed=True)

    def auto_approve(
        self, item: ContentItem, days_pending: int, policy: str
    ) -> WorkflowOutcome:
        """
        SLA auto-approval of a pending item.

        Only the caller whose conditional update wins writes the feedback.
        """
        if not can_transition(item.status, "auto_approve"):
            return self._invalid(item, "auto_approve")

        now = self._now_utc()
        reason = f"{days_pending}-day review SLA expired"
        feedback = Feedback(
            content_id=item.id,
            type="approve",
            payload={
                "method": "auto",
                "reason": reason,
                "days_pending": days_pending,
                "policy": policy,
            },
            created_at=now,
        )
        approved = self._apply(
            item,
            "auto_approve",
            {"auto_approved": True, "auto_approved_at": now},
            feedback,
        )
        if approved is None:
            return self._lost_race(item, "auto_approve")
        return WorkflowOutcome(item=approved, changed=True)

    def record_revalidation(
        self, item: ContentItem, result: ValidationResult
    ) -> ContentItem | None:
        """
        Store a revalidation verdict on an item still waiting in review.

        Status is untouched and nothing is written when the item already
        carries the same verdict. Returns the current item, or None when it
        left review since it was read.
        """
        updates: dict[str, Any] = {
            "validation_status": "valid" if result.passed else "invalid",
            "validation_errors": list(result.errors),
        }
        if (
            item.validation_status == updates["validation_status"]
            and item.validation_errors == updates["validation_errors"]
        ):
            return item

        updates["updated_at"] = self._now_utc()
        if not self._repo.transition(
            item.id, "pending_review", updates, expected_pending_since=item.pending_since
        ):
            return None

        logger.info(
            "Content %s revalidated in review: %s", item.id, updates["validation_status"]
        )
        return item.model_copy(update=updates)

    def request_rewrite(
        self, content_id: UUID, instructions: str, actor: str | None = None
    ) -> WorkflowOutcome:
        """
        Send an item back to draft with rewrite instructions.

        Allowed from pending_review and from a rejected draft. Cost fields
        are left alone so spend keeps accumulating across rewrites.
        """
        if not instructions or not instructions.strip():
            return WorkflowOutcome(
                item=self._load(content_id),
                changed=False,
                errors=[
                    WorkflowIssue(
                        code="instructions_required",
                        message="Rewrite instructions are required",
                        content_id=content_id,
                    )
                ],
            )

        item = self._load(content_id)
        if item is None:
            return self._not_found(content_id)
        rejected_draft = item.status == "draft" and item.rejection_reason is not None
        if not can_transition(item.status, "rewrite") or (
            item.status == "draft" and not rejected_draft
        ):
            return self._invalid(item, "rewrite")

        instructions = instructions.strip()
        feedback = Feedback(
            content_id=item.id,
            type="rewrite",
            payload={"instructions": instructions, "actor": actor},
            created_at=self._now_utc(),
        )
        rewritten = self._apply(
            item, "rewrite", {"rewrite_instructions": instructions}, feedback
        )
        if rewritten is None:
            return self._lost_race(item, "rewrite")
        return WorkflowOutcome(item=rewritten, changed=True)

    def comment(self, content_id: UUID, text: str, actor: str | None = None) -> Feedback | None:
        """Attach a reviewer comment. No status change."""
        if self._load(content_id) is None:
            return None
        return self._feedback.append(
            Feedback(
                content_id=content_id,
                type="comment",
                payload={"text": text, "actor": actor},
                created_at=self._now_utc(),
            )
        )

    # --- Publish ---

    def publish(self, content_id: UUID) -> WorkflowOutcome:
        """
        Push an approved item to the CMS and mark it published.

        Raises PublishFailedError if the CMS call fails; the item stays
        approved and a retry is the caller's decision.
        """
        item = self._load(content_id)
        if item is None:
            return self._not_found(content_id)
        if not can_transition(item.status, "publish"):
            return self._invalid(item, "publish")
        if self._publisher is None:
            raise PublishFailedError("No CMS publisher configured", content_id=item.id)

        try:
            receipt = self._publisher.publish(
                build_publish_request(item, self._config.post_status)
            )
        except PublishAdapterError as e:
            logger.warning("Publish of %s failed: %s", item.id, e)
            raise PublishFailedError(str(e), content_id=item.id) from e

        published = self._apply(
            item,
            "publish",
            {"remote_post_id": receipt.post_id, "remote_url": receipt.url},
        )
        if published is None:
            logger.warning(
                "Content %s was posted as %s but changed state during the call",
                item.id,
                receipt.post_id,
            )
            return self._lost_race(item, "publish", receipt=receipt)
        return WorkflowOutcome(item=published, changed=True, receipt=receipt)

    def confirm_publication(self, inp: ConfirmPublicationInput) -> ConfirmationOutput:
        """Apply an inbound CMS publish confirmation."""
        service = PublicationConfirmationService(self._repo, self._time)
        return service.confirm(inp)

    # --- Queries ---

    def get_item(self, content_id: UUID) -> ContentItem | None:
        return self._repo.get_by_id(content_id)

    def list_by_status(self, status: ContentStatus, limit: int = 100) -> list[ContentItem]:
        return self._repo.list_by_status(status, limit)

    def list_feedback(self, content_id: UUID) -> list[Feedback]:
        return self._feedback.list_by_content(content_id)


# --- Factory ---


def create_workflow_service(
    repo: ContentRepoPort,
    feedback_repo: FeedbackRepoPort,
    links: LinkTransformerService,
    validator: ValidationGateService,
    publisher: CMSPublisherPort | None = None,
    time_port: TimePort | None = None,
    config: WorkflowConfig | None = None,
) -> WorkflowService:
    """Create a WorkflowService."""
    return WorkflowService(
        repo=repo,
        feedback_repo=feedback_repo,
        links=links,
        validator=validator,
        publisher=publisher,
        time_port=time_port,
        config=config,
    )
