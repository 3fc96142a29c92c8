"""
SQLAlchemy models for the moderation engine.

Importing this package registers every table on Base.metadata.
"""
from tribunal.models.community import ContentItem, Member
from tribunal.models.report import Report, TARGET_COLUMNS
from tribunal.models.sanction import (
    SANCTION_MODELS,
    CommunityBan,
    ModerationAction,
    PlatformSuspension,
)
from tribunal.models.appeal import Appeal, SANCTION_COLUMNS
from tribunal.models.audit import ModerationAuditLog

__all__ = [
    "Member",
    "ContentItem",
    "Report",
    "TARGET_COLUMNS",
    "ModerationAction",
    "CommunityBan",
    "PlatformSuspension",
    "SANCTION_MODELS",
    "Appeal",
    "SANCTION_COLUMNS",
    "ModerationAuditLog",
]
