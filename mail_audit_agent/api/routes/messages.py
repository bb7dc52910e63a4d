"""Chat webhook: one message in, one card out."""

import uuid
from typing import Optional

from fastapi import APIRouter, HTTPException, Request, Response, status

from mail_audit_agent.api.cards import (
    as_attachment,
    build_error_card,
    build_results_card,
    build_welcome_card,
)
from mail_audit_agent.api.models import ActivityReply, ActivityRequest
from mail_audit_agent.services.email_auditor import (
    AuditQueryError,
    EmailAuditor,
    NotReadyError,
)
from mail_audit_agent.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Messages"])

GENERIC_FAILURE = "Sorry, something went wrong while searching Mimecast. Error ID: {error_id}"


def get_auditor(request: Request) -> Optional[EmailAuditor]:
    """Auditor attached to the application at startup, if any."""
    return getattr(request.app.state, "auditor", None)


def _reply(activity: ActivityRequest, card: dict) -> ActivityReply:
    return ActivityReply(reply_to_id=activity.id, attachments=[as_attachment(card)])


@router.post("/messages", response_model=ActivityReply, response_model_exclude_none=True)
async def handle_message(activity: ActivityRequest, request: Request):
    """
    Answer a chat message with an adaptive card.

    - Non-message activities are acknowledged with 202 and no body
    - Empty messages get the welcome card
    - Otherwise the query runs and the results (or an error) are rendered
    """
    if activity.type != "message":
        return Response(status_code=status.HTTP_202_ACCEPTED)

    text = (activity.text or "").strip()
    if not text:
        return _reply(activity, build_welcome_card())

    auditor = get_auditor(request)
    if auditor is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Bot not initialized")

    logger.info(
        "Processing chat message",
        user_id=activity.from_.id if activity.from_ else None,
        conversation_id=activity.conversation.id if activity.conversation else None,
        query=text,
    )

    try:
        result = await auditor.run_query(text)
    except NotReadyError as e:
        logger.error("Chat message received before auditor was ready", error=str(e))
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Bot not initialized")
    except AuditQueryError as e:
        if e.user_facing:
            logger.warning("Query not understood", query=text, error_kind="user_intent", error=str(e.__cause__))
            return _reply(activity, build_error_card(str(e.__cause__)))

        error_id = f"error-{uuid.uuid4().hex[:12]}"
        logger.error(
            "Query failed",
            query=text,
            error_kind="infrastructure",
            error_id=error_id,
            error_type=type(e.__cause__).__name__,
            error=str(e.__cause__),
        )
        return _reply(activity, build_error_card(GENERIC_FAILURE.format(error_id=error_id)))

    return _reply(activity, build_results_card(result))
