"""
Inbound CMS webhooks.

POST /api/webhooks/cms is called by the CMS after a post is published:
{post_id, post_url, post_title?, status, content_queue_id?}, with the shared
secret in the X-Webhook-Secret header or a "secret" body field. With no
secret configured, callbacks are refused unless webhook.require_secret is
false in rules.yaml.
"""

import hmac
import json
import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request

from pubflow.api.deps import (
    get_webhook_require_secret,
    get_webhook_secret,
    get_workflow_service,
)
from pubflow.api.schemas import WebhookResponse
from pubflow.components.publish import ConfirmPublicationInput
from pubflow.components.workflow import WorkflowService

logger = logging.getLogger(__name__)

router = APIRouter()

REQUIRED_FIELDS = ("post_id", "post_url")


def _secret_matches(expected: str | None, provided: Any) -> bool:
    if not expected or not isinstance(provided, str):
        return False
    return hmac.compare_digest(expected.encode(), provided.encode())


def _parse_confirmation(payload: dict[str, Any]) -> ConfirmPublicationInput:
    missing = [f for f in REQUIRED_FIELDS if not payload.get(f)]
    if missing:
        raise HTTPException(
            status_code=400,
            detail=f"Missing required fields: {', '.join(missing)}",
        )

    content_id = None
    raw_id = payload.get("content_queue_id")
    if raw_id:
        try:
            content_id = UUID(str(raw_id))
        except ValueError as e:
            raise HTTPException(status_code=400, detail="Invalid content_queue_id") from e

    return ConfirmPublicationInput(
        post_id=str(payload["post_id"]),
        post_url=str(payload["post_url"]),
        status=payload.get("status"),
        post_title=payload.get("post_title"),
        content_queue_id=content_id,
    )


@router.post("/cms", response_model=WebhookResponse)
async def cms_publish_webhook(
    request: Request,
    secret: str | None = Depends(get_webhook_secret),
    require_secret: bool = Depends(get_webhook_require_secret),
    service: WorkflowService = Depends(get_workflow_service),
) -> WebhookResponse:
    """Record a CMS publish confirmation against the matching content item."""
    raw = await request.body()
    try:
        payload = json.loads(raw) if raw else None
    except ValueError:
        payload = None

    provided = request.headers.get("x-webhook-secret")
    if provided is None and isinstance(payload, dict):
        provided = payload.get("secret")
    if secret is None and not require_secret:
        logger.warning("Accepted CMS webhook with no secret configured")
    elif not _secret_matches(secret, provided):
        logger.warning("Rejected CMS webhook with an invalid secret")
        raise HTTPException(status_code=401, detail="Invalid webhook secret")

    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Body must be a JSON object")

    inp = _parse_confirmation(payload)
    logger.info("CMS webhook: post %s at %s (%s)", inp.post_id, inp.post_url, inp.status)

    result = service.confirm_publication(inp)
    return WebhookResponse(
        success=True,
        message=result.message,
        content_id=result.content_id,
    )
