"""
Moderation Pydantic schemas for API request/response validation.

Provides schemas for:
- Reports and the moderation queue
- Content removals, community bans and platform suspensions
- Appeals and appeal decisions
- Error bodies
"""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from tribunal.core.utils import as_utc


class _UtcModel(BaseModel):
    """Response base: timestamps are always rendered as aware UTC."""

    @field_validator("*", mode="after")
    @classmethod
    def _utc(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return as_utc(value)
        return value


class ErrorResponse(BaseModel):
    """Body of every rejected request."""

    error: str = Field(..., description="validation_error, authorization_error, not_found, conflict, rate_limited")
    detail: str


# ============ Report Schemas ============


class ReportCreate(BaseModel):
    """Request to report one piece of content."""

    topic_id: Optional[str] = None
    reply_id: Optional[str] = None
    post_id: Optional[str] = None
    comment_id: Optional[str] = None
    violation_category: str = Field(..., description="hate_speech, threats, doxxing, ..., other")
    explanation: Optional[str] = Field(default=None, max_length=5000)


class ReportResponse(_UtcModel):
    """A submitted report."""

    id: str
    reporter_id: str
    topic_id: Optional[str] = None
    reply_id: Optional[str] = None
    post_id: Optional[str] = None
    comment_id: Optional[str] = None
    violation_category: str
    severity_level: str  # critical, high, medium, low
    status: str  # pending, under_review, resolved, dismissed
    explanation: Optional[str] = None
    community_id: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    resolution_note: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class DismissReportRequest(BaseModel):
    """Request to dismiss a report without action."""

    note: str = Field(..., max_length=2000)


# ============ Sanction Schemas ============


class ModerationActionCreate(BaseModel):
    """Request to remove content."""

    target_kind: str = Field(..., description="topic, reply, post, comment")
    target_id: str
    action_type: str = "remove"
    removal_type: str = Field(..., description="community or platform")
    reason_category: str
    reason_text: str = Field(..., max_length=2000)
    internal_notes: Optional[str] = Field(default=None, max_length=5000)
    report_id: Optional[str] = None
    report_status: str = Field(default="resolved", description="under_review or resolved")


class ModerationActionResponse(_UtcModel):
    """A content removal. Internal notes are never exposed."""

    id: str
    report_id: Optional[str] = None
    target_kind: str
    target_id: str
    target_author_id: str
    community_id: Optional[str] = None
    moderator_id: str
    action_type: str
    removal_type: str
    reason_category: str
    reason_text: str
    status: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ContentStateResponse(BaseModel):
    """Visibility of one piece of content."""

    target_kind: str
    target_id: str
    is_removed: bool
    effective_removal: Optional[ModerationActionResponse] = None


class RestrictionCreate(BaseModel):
    """Fields shared by ban and suspension requests."""

    member_id: str
    reason_category: str
    reason_text: str = Field(..., max_length=2000)
    is_permanent: bool
    expiration_date: Optional[datetime] = None
    report_id: Optional[str] = None


class CommunityBanCreate(RestrictionCreate):
    community_id: str


class PlatformSuspensionCreate(RestrictionCreate):
    pass


class RestrictionResponse(_UtcModel):
    id: str
    member_id: str
    issued_by: str
    report_id: Optional[str] = None
    reason_category: str
    reason_text: str
    is_permanent: bool
    expiration_date: Optional[datetime] = None
    is_active: bool
    is_appealable: bool
    created_at: datetime

    class Config:
        from_attributes = True


class CommunityBanResponse(RestrictionResponse):
    community_id: str


class PlatformSuspensionResponse(RestrictionResponse):
    pass


# ============ Appeal Schemas ============


class AppealCreate(BaseModel):
    """Request to appeal exactly one sanction."""

    moderation_action_id: Optional[str] = None
    community_ban_id: Optional[str] = None
    platform_suspension_id: Optional[str] = None
    appeal_type: str = Field(..., description="content_removal, community_ban, platform_suspension")
    appeal_text: str = Field(..., max_length=5000)


class AppealResponse(_UtcModel):
    """An appeal and, once resolved, its decision."""

    id: str
    appellant_id: str
    moderation_action_id: Optional[str] = None
    community_ban_id: Optional[str] = None
    platform_suspension_id: Optional[str] = None
    appeal_type: str
    appeal_text: str
    status: str  # pending, under_review, upheld, overturned, reduced
    decision: Optional[str] = None
    decision_explanation: Optional[str] = None
    penalty_modification: Optional[dict[str, Any]] = None
    is_escalated: bool
    expected_resolution_at: datetime
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ResolveAppealRequest(BaseModel):
    """Reviewer decision on an appeal."""

    decision: str = Field(..., description="uphold, overturn, reduce_penalty")
    decision_explanation: str = Field(..., max_length=5000)
    penalty_modification: Optional[dict[str, Any]] = Field(
        default=None,
        description='{"duration_days": N} or {"expires_at": "<ISO-8601>"}',
    )


class EscalateAppealRequest(BaseModel):
    note: str = Field(..., max_length=2000)
