"""
Workflow component - Content lifecycle orchestration.
"""

from ._impl import (
    WorkflowConfig,
    WorkflowService,
    create_workflow_service,
)
from .component import (
    build_config,
    run,
    run_approve,
    run_comment,
    run_confirm_publication,
    run_create_draft,
    run_get_item,
    run_list_by_status,
    run_publish,
    run_reject,
    run_request_rewrite,
    run_submit,
    run_validate,
)
from .models import (
    ApproveInput,
    CommentInput,
    CreateDraftInput,
    GetItemInput,
    ItemListOutput,
    ListByStatusInput,
    PublishFailedError,
    PublishInput,
    RejectInput,
    RewriteInput,
    SubmitInput,
    TransformFailedError,
    ValidateInput,
    ValidationUnavailableError,
    WorkflowError,
    WorkflowIssue,
    WorkflowOutcome,
)
from .ports import ContentRepoPort, FeedbackRepoPort, TimePort

__all__ = [
    # Entry points
    "run",
    "run_approve",
    "run_comment",
    "run_confirm_publication",
    "run_create_draft",
    "run_get_item",
    "run_list_by_status",
    "run_publish",
    "run_reject",
    "run_request_rewrite",
    "run_submit",
    "run_validate",
    # Input models
    "ApproveInput",
    "CommentInput",
    "CreateDraftInput",
    "GetItemInput",
    "ListByStatusInput",
    "PublishInput",
    "RejectInput",
    "RewriteInput",
    "SubmitInput",
    "ValidateInput",
    # Output models
    "ItemListOutput",
    "WorkflowIssue",
    "WorkflowOutcome",
    # Errors
    "PublishFailedError",
    "TransformFailedError",
    "ValidationUnavailableError",
    "WorkflowError",
    # Ports
    "ContentRepoPort",
    "FeedbackRepoPort",
    "TimePort",
    # Service
    "WorkflowConfig",
    "WorkflowService",
    "build_config",
    "create_workflow_service",
]
