"""
Appeal API endpoints.

Handles:
- Appeal submission by the sanctioned member
- Appeal lookup
- Review start, escalation and resolution by moderators and admins
"""
import structlog
from fastapi import APIRouter, status

from tribunal.api.deps import Appeals, CurrentPrincipal, Resolution
from tribunal.schemas.moderation import (
    AppealCreate,
    AppealResponse,
    EscalateAppealRequest,
    ResolveAppealRequest,
)
from tribunal.services.appeal_process import SanctionRef

router = APIRouter(prefix="/appeals", tags=["Appeals"])
logger = structlog.get_logger(__name__)


@router.post("", response_model=AppealResponse, status_code=status.HTTP_201_CREATED)
async def submit_appeal(
    body: AppealCreate,
    principal: CurrentPrincipal,
    appeals: Appeals,
):
    """Appeal one sanction against the caller."""
    ref = SanctionRef(
        moderation_action_id=body.moderation_action_id,
        community_ban_id=body.community_ban_id,
        platform_suspension_id=body.platform_suspension_id,
    )
    return await appeals.submit(principal.user_id, ref, body.appeal_type, body.appeal_text)


@router.get("/{appeal_id}", response_model=AppealResponse)
async def get_appeal(appeal_id: str, principal: CurrentPrincipal, appeals: Appeals):
    return await appeals.get(principal, appeal_id)


@router.post("/{appeal_id}/review", response_model=AppealResponse)
async def begin_appeal_review(appeal_id: str, principal: CurrentPrincipal, resolution: Resolution):
    return await resolution.begin_review(principal, appeal_id)


@router.post("/{appeal_id}/escalate", response_model=AppealResponse)
async def escalate_appeal(
    appeal_id: str,
    body: EscalateAppealRequest,
    principal: CurrentPrincipal,
    resolution: Resolution,
):
    """Hand a community appeal over to administrators."""
    return await resolution.escalate(principal, appeal_id, body.note)


@router.post("/{appeal_id}/resolve", response_model=AppealResponse)
async def resolve_appeal(
    appeal_id: str,
    body: ResolveAppealRequest,
    principal: CurrentPrincipal,
    resolution: Resolution,
):
    """Uphold, overturn or reduce the appealed sanction."""
    return await resolution.resolve(
        principal,
        appeal_id,
        body.decision,
        body.decision_explanation,
        body.penalty_modification,
    )
