"""
Report API endpoints.

Handles:
- Report submission (any member)
- Moderation queue (moderators and admins)
- Report review and dismissal
"""
from typing import Optional

import structlog
from fastapi import APIRouter, Query, status

from tribunal.api.deps import CurrentPrincipal, Intake
from tribunal.core.constants import ReportStatus
from tribunal.schemas.moderation import DismissReportRequest, ReportCreate, ReportResponse
from tribunal.services.report_intake import ReportTarget

router = APIRouter(prefix="/reports", tags=["Reports"])
logger = structlog.get_logger(__name__)


@router.post("", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def submit_report(
    body: ReportCreate,
    principal: CurrentPrincipal,
    intake: Intake,
):
    """Report one topic, reply, post or comment."""
    target = ReportTarget(
        topic_id=body.topic_id,
        reply_id=body.reply_id,
        post_id=body.post_id,
        comment_id=body.comment_id,
    )
    return await intake.submit(
        principal.user_id,
        target,
        body.violation_category,
        body.explanation,
    )


@router.get("/queue", response_model=list[ReportResponse])
async def moderation_queue(
    principal: CurrentPrincipal,
    intake: Intake,
    report_status: Optional[ReportStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
):
    """Open reports, most severe first, oldest first within a severity."""
    return await intake.moderation_queue(principal, status=report_status, limit=limit)


@router.post("/{report_id}/review", response_model=ReportResponse)
async def begin_report_review(
    report_id: str,
    principal: CurrentPrincipal,
    intake: Intake,
):
    return await intake.begin_review(principal, report_id)


@router.post("/{report_id}/dismiss", response_model=ReportResponse)
async def dismiss_report(
    report_id: str,
    body: DismissReportRequest,
    principal: CurrentPrincipal,
    intake: Intake,
):
    """Close a report without taking action."""
    return await intake.dismiss(principal, report_id, body.note)
