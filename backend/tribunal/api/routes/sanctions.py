"""
Sanction API endpoints.

Handles:
- Content removal at community or platform scope
- Effective visibility of a piece of content
- Community bans and platform suspensions
"""
import structlog
from fastapi import APIRouter, status

from tribunal.api.deps import Authority, CurrentPrincipal
from tribunal.schemas.moderation import (
    CommunityBanCreate,
    CommunityBanResponse,
    ContentStateResponse,
    ModerationActionCreate,
    ModerationActionResponse,
    PlatformSuspensionCreate,
    PlatformSuspensionResponse,
)

router = APIRouter(prefix="/moderation", tags=["Moderation"])
logger = structlog.get_logger(__name__)


@router.post("/actions", response_model=ModerationActionResponse, status_code=status.HTTP_201_CREATED)
async def create_moderation_action(
    body: ModerationActionCreate,
    principal: CurrentPrincipal,
    authority: Authority,
):
    """Remove content, optionally resolving the report that prompted it."""
    return await authority.apply_action(
        principal,
        body.target_kind,
        body.target_id,
        body.action_type,
        body.removal_type,
        body.reason_category,
        body.reason_text,
        report_id=body.report_id,
        internal_notes=body.internal_notes,
        report_status=body.report_status,
    )


@router.get("/content/{kind}/{content_id}", response_model=ContentStateResponse)
async def get_content_state(kind: str, content_id: str, authority: Authority):
    """Whether the content is visible, and the removal in effect if not."""
    removal = await authority.effective_content_state(kind, content_id)
    return ContentStateResponse(
        target_kind=kind,
        target_id=content_id,
        is_removed=removal is not None,
        effective_removal=ModerationActionResponse.model_validate(removal) if removal else None,
    )


@router.post("/bans", response_model=CommunityBanResponse, status_code=status.HTTP_201_CREATED)
async def create_community_ban(
    body: CommunityBanCreate,
    principal: CurrentPrincipal,
    authority: Authority,
):
    return await authority.apply_ban(
        principal,
        body.member_id,
        body.community_id,
        body.reason_category,
        body.reason_text,
        body.is_permanent,
        body.expiration_date,
        report_id=body.report_id,
    )


@router.post("/suspensions", response_model=PlatformSuspensionResponse, status_code=status.HTTP_201_CREATED)
async def create_platform_suspension(
    body: PlatformSuspensionCreate,
    principal: CurrentPrincipal,
    authority: Authority,
):
    """Suspend a member platform-wide. Admins only."""
    return await authority.apply_suspension(
        principal,
        body.member_id,
        body.reason_category,
        body.reason_text,
        body.is_permanent,
        body.expiration_date,
        report_id=body.report_id,
    )
