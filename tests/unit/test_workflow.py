"""
Tests for WorkflowService.

- submit runs transform + validation and routes to pending_review or draft
- review actions write Feedback only when their transition wins
- infrastructure failures leave the item where it was
- illegal transitions and lost races are no-op outcomes
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from pubflow.components.links import LinkTransformerService
from pubflow.components.publish import ConfirmPublicationInput
from pubflow.components.validation import ValidationGateService, ValidationResult
from pubflow.components.workflow import (
    ApproveInput,
    CreateDraftInput,
    ListByStatusInput,
    PublishFailedError,
    RejectInput,
    SubmitInput,
    TransformFailedError,
    ValidationUnavailableError,
    WorkflowService,
    run,
)
from pubflow.domain.entities import ContentItem, ValidationIssue
from tests.fakes import (
    PASSING_META,
    PASSING_TITLE,
    FailingRewriter,
    MockContentRepo,
    MockFeedbackRepo,
    MockPublisher,
    MockTimePort,
    MockValidationLogRepo,
    article_html,
)


def create_passing(service: WorkflowService, **kwargs) -> ContentItem:
    return service.create_draft(
        title=PASSING_TITLE,
        body_html=article_html(**kwargs),
        meta_description=PASSING_META,
        target_keywords=["online mba"],
    )


def pending_item(service: WorkflowService) -> ContentItem:
    item = create_passing(service)
    outcome = service.submit(item.id)
    assert outcome.item is not None and outcome.item.status == "pending_review"
    return outcome.item


def approved_item(service: WorkflowService) -> ContentItem:
    item = pending_item(service)
    outcome = service.approve(item.id)
    assert outcome.item is not None
    return outcome.item


def codes(outcome) -> list[str]:
    return [e.code for e in outcome.errors]


class TestCreateDraft:
    def test_create_draft(
        self, workflow_service: WorkflowService, content_repo: MockContentRepo
    ) -> None:
        """New items start in draft with zero cost."""
        item = create_passing(workflow_service)

        stored = content_repo.get_by_id(item.id)
        assert stored is not None
        assert stored.status == "draft"
        assert stored.validation_status == "pending"
        assert stored.total_cost == Decimal("0")
        assert stored.pending_since is None


class TestSubmit:
    """draft -> transformed -> validated -> pending_review | draft."""

    def test_passing_content_queued_for_review(
        self,
        workflow_service: WorkflowService,
        time_port: MockTimePort,
        validation_log_repo: MockValidationLogRepo,
    ) -> None:
        item = create_passing(workflow_service)

        outcome = workflow_service.submit(item.id)

        assert outcome.changed
        assert outcome.success
        queued = outcome.item
        assert queued is not None
        assert queued.status == "pending_review"
        assert queued.validation_status == "valid"
        assert queued.pending_since == time_port.now_utc()
        assert queued.auto_approve_at == time_port.now_utc() + timedelta(days=5)
        assert queued.link_summary == {"internal": 3, "affiliate": 0, "external": 1, "total": 4}
        assert "[ge_internal_link" in queued.body_html
        assert outcome.validation is not None and outcome.validation.passed
        assert len(validation_log_repo.logs) == 1

    def test_failing_content_returns_to_draft(
        self, workflow_service: WorkflowService, content_repo: MockContentRepo
    ) -> None:
        """Validation failures are data on the outcome, not exceptions."""
        item = create_passing(workflow_service, external=0)

        outcome = workflow_service.submit(item.id)

        assert outcome.changed
        stored = content_repo.get_by_id(item.id)
        assert stored is not None
        assert stored.status == "draft"
        assert stored.validation_status == "invalid"
        assert stored.pending_since is None
        assert [e.type for e in stored.validation_errors] == ["external_citation_missing"]
        assert outcome.validation is not None and not outcome.validation.passed

    def test_resubmit_is_idempotent_on_links(
        self, workflow_service: WorkflowService, content_repo: MockContentRepo
    ) -> None:
        """A returned draft can be submitted again without double-wrapping links."""
        item = create_passing(workflow_service, external=0)
        first = workflow_service.submit(item.id)
        body_after_first = first.item.body_html if first.item else ""

        second = workflow_service.submit(item.id)

        assert second.transform is not None
        assert second.transform.transformations.total == 0
        assert second.item is not None
        assert second.item.body_html == body_after_first

    def test_transform_failure_keeps_draft(
        self,
        content_repo: MockContentRepo,
        feedback_repo: MockFeedbackRepo,
        validator: ValidationGateService,
        time_port: MockTimePort,
    ) -> None:
        """A rewriter outage raises and the item stays in draft untouched."""
        service = WorkflowService(
            repo=content_repo,
            feedback_repo=feedback_repo,
            links=LinkTransformerService(rewriter=FailingRewriter()),
            validator=validator,
            time_port=time_port,
        )
        item = create_passing(service)

        with pytest.raises(TransformFailedError) as exc:
            service.submit(item.id)

        assert exc.value.content_id == item.id
        stored = content_repo.get_by_id(item.id)
        assert stored is not None
        assert stored.status == "draft"
        assert stored.body_html == item.body_html

    def test_validation_outage_leaves_transformed(
        self,
        workflow_service: WorkflowService,
        validator: ValidationGateService,
        content_repo: MockContentRepo,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Could-not-validate stops in transformed; validate() retries."""
        item = create_passing(workflow_service)

        def boom(*args, **kwargs):
            raise RuntimeError("parser exploded")

        monkeypatch.setattr(validator, "evaluate", boom)
        with pytest.raises(ValidationUnavailableError):
            workflow_service.submit(item.id)

        stored = content_repo.get_by_id(item.id)
        assert stored is not None and stored.status == "transformed"

        monkeypatch.undo()
        retried = workflow_service.validate(item.id)

        assert retried.item is not None
        assert retried.item.status == "pending_review"

    def test_submit_requires_draft(self, workflow_service: WorkflowService) -> None:
        item = pending_item(workflow_service)

        outcome = workflow_service.submit(item.id)

        assert not outcome.changed
        assert codes(outcome) == ["invalid_transition"]

    def test_submit_unknown_item(self, workflow_service: WorkflowService) -> None:
        outcome = workflow_service.submit(uuid4())

        assert outcome.item is None
        assert codes(outcome) == ["not_found"]


class TestReview:
    """Manual approve / reject / rewrite."""

    def test_approve(
        self, workflow_service: WorkflowService, feedback_repo: MockFeedbackRepo
    ) -> None:
        item = pending_item(workflow_service)

        outcome = workflow_service.approve(item.id, actor="editor", note="Looks good")

        approved = outcome.item
        assert approved is not None
        assert approved.status == "approved"
        assert approved.pending_since is None
        assert approved.auto_approve_at is None
        assert not approved.auto_approved
        [fb] = feedback_repo.list_by_content(item.id)
        assert fb.type == "approve"
        assert fb.payload["method"] == "manual"
        assert fb.payload["actor"] == "editor"

    def test_approve_twice_is_conflict_free_noop(
        self, workflow_service: WorkflowService, feedback_repo: MockFeedbackRepo
    ) -> None:
        """The second approval is refused and writes no feedback."""
        item = pending_item(workflow_service)
        workflow_service.approve(item.id)

        outcome = workflow_service.approve(item.id)

        assert not outcome.changed
        assert codes(outcome) == ["invalid_transition"]
        assert len(feedback_repo.list_by_content(item.id, "approve")) == 1

    def test_approve_draft_refused(self, workflow_service: WorkflowService) -> None:
        item = create_passing(workflow_service)

        outcome = workflow_service.approve(item.id)

        assert codes(outcome) == ["invalid_transition"]

    def test_lost_race_is_noop(
        self,
        workflow_service: WorkflowService,
        content_repo: MockContentRepo,
        feedback_repo: MockFeedbackRepo,
    ) -> None:
        """If another writer moves the item first, nothing is written."""
        item = pending_item(workflow_service)
        stale = content_repo.get_by_id(item.id)
        assert stale is not None
        workflow_service.reject(item.id, "Off topic")

        outcome = workflow_service.auto_approve(stale, days_pending=5, policy="elapsed_only")

        assert not outcome.changed
        assert codes(outcome) == ["state_conflict"]
        assert outcome.item is not None and outcome.item.status == "draft"
        assert feedback_repo.list_by_content(item.id, "approve") == []

    def test_stale_snapshot_after_resubmit_is_noop(
        self,
        workflow_service: WorkflowService,
        feedback_repo: MockFeedbackRepo,
        time_port: MockTimePort,
    ) -> None:
        """Rejected and resubmitted while a sweep held an old copy: no approval."""
        item = pending_item(workflow_service)
        time_port.advance(days=6)
        stale = workflow_service.get_item(item.id)
        assert stale is not None

        workflow_service.reject(item.id, "Needs sources")
        time_port.advance(seconds=30)
        resubmitted = workflow_service.submit(item.id)
        assert resubmitted.item is not None
        assert resubmitted.item.status == "pending_review"
        assert resubmitted.item.pending_since == time_port.now_utc()

        outcome = workflow_service.auto_approve(stale, days_pending=6, policy="elapsed_only")

        assert not outcome.changed
        assert codes(outcome) == ["state_conflict"]
        assert outcome.item is not None
        assert outcome.item.status == "pending_review"
        assert outcome.item.pending_since == time_port.now_utc()
        assert feedback_repo.list_by_content(item.id, "approve") == []

    def test_reject_records_reason(
        self, workflow_service: WorkflowService, feedback_repo: MockFeedbackRepo
    ) -> None:
        item = pending_item(workflow_service)

        outcome = workflow_service.reject(item.id, "  Needs better sources  ", actor="editor")

        rejected = outcome.item
        assert rejected is not None
        assert rejected.status == "draft"
        assert rejected.rejection_reason == "Needs better sources"
        assert rejected.pending_since is None
        [fb] = feedback_repo.list_by_content(item.id)
        assert fb.type == "reject"
        assert fb.payload["reason"] == "Needs better sources"

    def test_reject_requires_reason(self, workflow_service: WorkflowService) -> None:
        item = pending_item(workflow_service)

        outcome = workflow_service.reject(item.id, "   ")

        assert codes(outcome) == ["reason_required"]
        assert outcome.item is not None and outcome.item.status == "pending_review"

    def test_rewrite_from_review(
        self, workflow_service: WorkflowService, feedback_repo: MockFeedbackRepo
    ) -> None:
        item = pending_item(workflow_service)

        outcome = workflow_service.request_rewrite(item.id, "Add a tuition table")

        assert outcome.item is not None
        assert outcome.item.status == "draft"
        assert outcome.item.rewrite_instructions == "Add a tuition table"
        assert feedback_repo.list_by_content(item.id, "rewrite")[0].payload["instructions"] == (
            "Add a tuition table"
        )

    def test_rewrite_after_rejection(self, workflow_service: WorkflowService) -> None:
        """A rejected draft can be sent back with instructions."""
        item = pending_item(workflow_service)
        workflow_service.reject(item.id, "Thin content")

        outcome = workflow_service.request_rewrite(item.id, "Expand section 2")

        assert outcome.changed
        assert outcome.item is not None
        assert outcome.item.status == "draft"
        assert outcome.item.rejection_reason == "Thin content"

    def test_rewrite_plain_draft_refused(self, workflow_service: WorkflowService) -> None:
        item = create_passing(workflow_service)

        outcome = workflow_service.request_rewrite(item.id, "Anything")

        assert codes(outcome) == ["invalid_transition"]

    def test_rewrite_keeps_costs(
        self, workflow_service: WorkflowService, content_repo: MockContentRepo
    ) -> None:
        """Spend accumulates across rewrites."""
        item = pending_item(workflow_service)
        content_repo.update_fields(item.id, {"total_cost": Decimal("1.25")})

        outcome = workflow_service.request_rewrite(item.id, "Tighten intro")

        assert outcome.item is not None
        assert outcome.item.total_cost == Decimal("1.25")

    def test_resubmit_clears_review_notes(self, workflow_service: WorkflowService) -> None:
        item = pending_item(workflow_service)
        workflow_service.reject(item.id, "Thin content")

        outcome = workflow_service.submit(item.id)

        assert outcome.item is not None
        assert outcome.item.status == "pending_review"
        assert outcome.item.rejection_reason is None

    def test_comment(
        self, workflow_service: WorkflowService, feedback_repo: MockFeedbackRepo
    ) -> None:
        item = create_passing(workflow_service)

        fb = workflow_service.comment(item.id, "Check the 2024 figures", actor="editor")

        assert fb is not None
        assert fb.type == "comment"
        assert feedback_repo.list_by_content(item.id) == [fb]
        assert workflow_service.comment(uuid4(), "orphan") is None


class TestAutoApprove:
    def test_auto_approve_marks_item(
        self,
        workflow_service: WorkflowService,
        feedback_repo: MockFeedbackRepo,
        time_port: MockTimePort,
    ) -> None:
        item = pending_item(workflow_service)
        time_port.advance(days=5, hours=1)

        outcome = workflow_service.auto_approve(item, days_pending=5, policy="require_valid")

        approved = outcome.item
        assert approved is not None
        assert approved.status == "approved"
        assert approved.auto_approved
        assert approved.auto_approved_at == time_port.now_utc()
        [fb] = feedback_repo.list_by_content(item.id)
        assert fb.payload["method"] == "auto"
        assert fb.payload["days_pending"] == 5


class TestRecordRevalidation:
    FAILED = ValidationResult(
        passed=False, errors=[ValidationIssue(type="raw_links", message="Raw links found")]
    )

    def test_stores_errors_without_moving_item(
        self,
        workflow_service: WorkflowService,
        content_repo: MockContentRepo,
        feedback_repo: MockFeedbackRepo,
    ) -> None:
        item = pending_item(workflow_service)

        current = workflow_service.record_revalidation(item, self.FAILED)

        assert current is not None
        stored = content_repo.get_by_id(item.id)
        assert stored is not None
        assert stored.status == "pending_review"
        assert stored.pending_since == item.pending_since
        assert stored.validation_status == "invalid"
        assert [e.type for e in stored.validation_errors] == ["raw_links"]
        assert feedback_repo.list_by_content(item.id) == []

    def test_same_verdict_writes_nothing(
        self, workflow_service: WorkflowService, content_repo: MockContentRepo
    ) -> None:
        item = pending_item(workflow_service)
        current = workflow_service.record_revalidation(item, self.FAILED)
        assert current is not None
        calls = content_repo.transition_calls

        again = workflow_service.record_revalidation(current, self.FAILED)

        assert again == current
        assert content_repo.transition_calls == calls

    def test_item_left_review(
        self, workflow_service: WorkflowService, content_repo: MockContentRepo
    ) -> None:
        item = pending_item(workflow_service)
        workflow_service.reject(item.id, "Off topic")

        assert workflow_service.record_revalidation(item, self.FAILED) is None
        stored = content_repo.get_by_id(item.id)
        assert stored is not None
        assert stored.status == "draft"
        assert stored.validation_status == "valid"


class TestPublish:
    """approved -> published through the CMS."""

    def test_publish(
        self,
        workflow_service: WorkflowService,
        publisher: MockPublisher,
        time_port: MockTimePort,
    ) -> None:
        item = approved_item(workflow_service)

        outcome = workflow_service.publish(item.id)

        published = outcome.item
        assert published is not None
        assert published.status == "published"
        assert published.published_at == time_port.now_utc()
        assert published.remote_post_id == "1001"
        assert published.remote_url == "https://www.geteducated.com/?p=1001"
        request = publisher.calls[0]
        assert request.title == PASSING_TITLE
        assert request.metadata["content_id"] == str(item.id)
        assert request.metadata["status"] == "draft"

    def test_publish_failure_stays_approved(
        self,
        workflow_service: WorkflowService,
        publisher: MockPublisher,
        content_repo: MockContentRepo,
    ) -> None:
        item = approved_item(workflow_service)
        publisher.should_fail = True

        with pytest.raises(PublishFailedError):
            workflow_service.publish(item.id)

        stored = content_repo.get_by_id(item.id)
        assert stored is not None
        assert stored.status == "approved"
        assert stored.published_at is None

    def test_publish_requires_approval(
        self, workflow_service: WorkflowService, publisher: MockPublisher
    ) -> None:
        item = pending_item(workflow_service)

        outcome = workflow_service.publish(item.id)

        assert codes(outcome) == ["invalid_transition"]
        assert publisher.calls == []

    def test_publish_without_publisher(
        self,
        content_repo: MockContentRepo,
        feedback_repo: MockFeedbackRepo,
        link_service: LinkTransformerService,
        validator: ValidationGateService,
    ) -> None:
        service = WorkflowService(content_repo, feedback_repo, link_service, validator)
        item = approved_item(service)

        with pytest.raises(PublishFailedError, match="No CMS publisher"):
            service.publish(item.id)


class TestConfirmPublication:
    def test_confirm_by_content_id(
        self, workflow_service: WorkflowService, content_repo: MockContentRepo
    ) -> None:
        item = approved_item(workflow_service)

        result = workflow_service.confirm_publication(
            ConfirmPublicationInput(
                post_id="77",
                post_url="https://www.geteducated.com/mba/",
                status="publish",
                content_queue_id=item.id,
            )
        )

        assert result.matched and result.status_changed
        stored = content_repo.get_by_id(item.id)
        assert stored is not None
        assert stored.status == "published"
        assert stored.remote_post_id == "77"


class TestComponentRun:
    def test_run_dispatch(self, workflow_service: WorkflowService) -> None:
        item = run(
            CreateDraftInput(
                title=PASSING_TITLE, body_html=article_html(), meta_description=PASSING_META
            ),
            service=workflow_service,
        )
        run(SubmitInput(item.id), service=workflow_service)
        run(ApproveInput(item.id, actor="editor"), service=workflow_service)

        listed = run(ListByStatusInput("approved"), service=workflow_service)

        assert [i.id for i in listed.items] == [item.id]

    def test_run_reject_input(self, workflow_service: WorkflowService) -> None:
        item = pending_item(workflow_service)

        outcome = run(RejectInput(item.id, "No"), service=workflow_service)

        assert outcome.item.status == "draft"

    def test_run_unknown_input(self, workflow_service: WorkflowService) -> None:
        with pytest.raises(ValueError, match="Unknown input type"):
            run(object(), service=workflow_service)  # type: ignore[arg-type]
