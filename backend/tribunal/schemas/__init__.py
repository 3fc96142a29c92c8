"""
Pydantic schemas for API request/response validation.
"""
from tribunal.schemas.moderation import (
    AppealCreate,
    AppealResponse,
    CommunityBanCreate,
    CommunityBanResponse,
    ContentStateResponse,
    DismissReportRequest,
    ErrorResponse,
    EscalateAppealRequest,
    ModerationActionCreate,
    ModerationActionResponse,
    PlatformSuspensionCreate,
    PlatformSuspensionResponse,
    ReportCreate,
    ReportResponse,
    ResolveAppealRequest,
)

__all__ = [
    "AppealCreate",
    "AppealResponse",
    "CommunityBanCreate",
    "CommunityBanResponse",
    "ContentStateResponse",
    "DismissReportRequest",
    "ErrorResponse",
    "EscalateAppealRequest",
    "ModerationActionCreate",
    "ModerationActionResponse",
    "PlatformSuspensionCreate",
    "PlatformSuspensionResponse",
    "ReportCreate",
    "ReportResponse",
    "ResolveAppealRequest",
]
