from collections.abc import Callable
from dataclasses import asdict
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from pubflow.api.deps import get_cost_accountant, get_scheduler, get_workflow_service
from pubflow.api.schemas import (
    ApproveRequest,
    CommentRequest,
    ContentCreateRequest,
    CostSummaryResponse,
    FeedbackResponse,
    IssueModel,
    ReceiptModel,
    RejectRequest,
    RewriteRequest,
    SlaStatusResponse,
    ValidationLogResponse,
    ValidationResultModel,
    WorkflowResponse,
)
from pubflow.components.costs import CostAccountantService
from pubflow.components.scheduler import SlaSchedulerService
from pubflow.components.workflow import (
    WorkflowError,
    WorkflowOutcome,
    WorkflowService,
)
from pubflow.domain.entities import ContentItem, ContentStatus

router = APIRouter()

# Outcome codes that map to an HTTP error; anything else is a 200 with changed=False
_ERROR_STATUS = {
    "not_found": 404,
    "invalid_transition": 409,
    "reason_required": 400,
    "instructions_required": 400,
}


def _to_response(outcome: WorkflowOutcome) -> WorkflowResponse:
    for issue in outcome.errors:
        status = _ERROR_STATUS.get(issue.code)
        if status is not None:
            raise HTTPException(
                status_code=status,
                detail={"code": issue.code, "message": issue.message},
            )

    return WorkflowResponse(
        item=outcome.item,
        changed=outcome.changed,
        errors=[IssueModel(code=e.code, message=e.message) for e in outcome.errors],
        link_summary=outcome.transform.transformations.as_dict() if outcome.transform else None,
        validation=(
            ValidationResultModel(**asdict(outcome.validation)) if outcome.validation else None
        ),
        receipt=(
            ReceiptModel(post_id=outcome.receipt.post_id, url=outcome.receipt.url)
            if outcome.receipt
            else None
        ),
    )


def _run_action(action: Callable[[], WorkflowOutcome]) -> WorkflowResponse:
    try:
        outcome = action()
    except WorkflowError as e:
        raise HTTPException(
            status_code=502, detail={"code": e.code, "message": e.message}
        ) from e
    return _to_response(outcome)


def _require_item(service: WorkflowService, item_id: UUID) -> ContentItem:
    item = service.get_item(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Content not found")
    return item


@router.post("", response_model=ContentItem, status_code=201)
def create_content(
    req: ContentCreateRequest,
    service: WorkflowService = Depends(get_workflow_service),
) -> ContentItem:
    """Create a new draft."""
    return service.create_draft(
        title=req.title,
        body_html=req.body_html,
        meta_title=req.meta_title,
        meta_description=req.meta_description,
        target_keywords=req.target_keywords,
    )


@router.get("", response_model=list[ContentItem])
def list_content(
    status: ContentStatus = Query("pending_review"),
    limit: int = Query(100, ge=1, le=1000),
    service: WorkflowService = Depends(get_workflow_service),
) -> list[ContentItem]:
    """List items in a status."""
    return service.list_by_status(status, limit)


@router.get("/{item_id}", response_model=ContentItem)
def get_content(
    item_id: UUID,
    service: WorkflowService = Depends(get_workflow_service),
) -> ContentItem:
    return _require_item(service, item_id)


# --- Transitions ---


@router.post("/{item_id}/submit", response_model=WorkflowResponse)
def submit_content(
    item_id: UUID,
    service: WorkflowService = Depends(get_workflow_service),
) -> WorkflowResponse:
    """Transform links, validate, and queue for review (or return to draft)."""
    return _run_action(lambda: service.submit(item_id))


@router.post("/{item_id}/validate", response_model=WorkflowResponse)
def validate_content(
    item_id: UUID,
    service: WorkflowService = Depends(get_workflow_service),
) -> WorkflowResponse:
    """Retry validation for an item left in transformed."""
    return _run_action(lambda: service.validate(item_id))


@router.post("/{item_id}/approve", response_model=WorkflowResponse)
def approve_content(
    item_id: UUID,
    req: ApproveRequest | None = None,
    service: WorkflowService = Depends(get_workflow_service),
) -> WorkflowResponse:
    req = req or ApproveRequest()
    return _run_action(lambda: service.approve(item_id, actor=req.actor, note=req.note))


@router.post("/{item_id}/reject", response_model=WorkflowResponse)
def reject_content(
    item_id: UUID,
    req: RejectRequest,
    service: WorkflowService = Depends(get_workflow_service),
) -> WorkflowResponse:
    return _run_action(lambda: service.reject(item_id, req.reason, actor=req.actor))


@router.post("/{item_id}/rewrite", response_model=WorkflowResponse)
def rewrite_content(
    item_id: UUID,
    req: RewriteRequest,
    service: WorkflowService = Depends(get_workflow_service),
) -> WorkflowResponse:
    return _run_action(
        lambda: service.request_rewrite(item_id, req.instructions, actor=req.actor)
    )


@router.post("/{item_id}/publish", response_model=WorkflowResponse)
def publish_content(
    item_id: UUID,
    service: WorkflowService = Depends(get_workflow_service),
) -> WorkflowResponse:
    """Push an approved item to the CMS."""
    return _run_action(lambda: service.publish(item_id))


# --- Feedback ---


@router.post("/{item_id}/comment", response_model=FeedbackResponse, status_code=201)
def comment_content(
    item_id: UUID,
    req: CommentRequest,
    service: WorkflowService = Depends(get_workflow_service),
) -> FeedbackResponse:
    feedback = service.comment(item_id, req.text, actor=req.actor)
    if feedback is None:
        raise HTTPException(status_code=404, detail="Content not found")
    return FeedbackResponse(**feedback.model_dump())


@router.get("/{item_id}/feedback", response_model=list[FeedbackResponse])
def list_feedback(
    item_id: UUID,
    service: WorkflowService = Depends(get_workflow_service),
) -> list[FeedbackResponse]:
    _require_item(service, item_id)
    return [FeedbackResponse(**f.model_dump()) for f in service.list_feedback(item_id)]


# --- Read models ---


@router.get("/{item_id}/sla", response_model=SlaStatusResponse)
def get_sla_status(
    item_id: UUID,
    service: WorkflowService = Depends(get_workflow_service),
    scheduler: SlaSchedulerService = Depends(get_scheduler),
) -> SlaStatusResponse:
    item = _require_item(service, item_id)
    return SlaStatusResponse(**asdict(scheduler.status_for(item)))


@router.get("/{item_id}/costs", response_model=CostSummaryResponse)
def get_costs(
    item_id: UUID,
    refresh: bool = False,
    service: WorkflowService = Depends(get_workflow_service),
    accountant: CostAccountantService = Depends(get_cost_accountant),
) -> CostSummaryResponse:
    """Spend for an item; refresh=true also rewrites the cached cost columns."""
    _require_item(service, item_id)
    summary = (
        accountant.refresh_item_costs(item_id) if refresh else accountant.summarize(item_id)
    )
    return CostSummaryResponse(**asdict(summary))


@router.get("/{item_id}/validations", response_model=list[ValidationLogResponse])
def list_validations(
    item_id: UUID,
    limit: int = Query(50, ge=1, le=500),
    service: WorkflowService = Depends(get_workflow_service),
) -> list[ValidationLogResponse]:
    _require_item(service, item_id)
    logs = service.validator.get_history(item_id, limit)
    return [ValidationLogResponse(**log.model_dump()) for log in logs]
