"""
Core constants and enums for the moderation engine.

Enum values are the persisted/wire representation, so they must never be
renamed without a migration.
"""
from enum import Enum


class ViolationCategory(str, Enum):
    """Reason a piece of content was reported or sanctioned."""
    HATE_SPEECH = "hate_speech"
    THREATS = "threats"
    DOXXING = "doxxing"
    PERSONAL_ATTACK = "personal_attack"
    OFFENSIVE_LANGUAGE = "offensive_language"
    MISINFORMATION = "misinformation"
    SPAM = "spam"
    TROLLING = "trolling"
    OFF_TOPIC = "off_topic"
    OTHER = "other"


class SeverityLevel(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Queue ordering, most urgent first
SEVERITY_RANK: dict[SeverityLevel, int] = {
    SeverityLevel.CRITICAL: 0,
    SeverityLevel.HIGH: 1,
    SeverityLevel.MEDIUM: 2,
    SeverityLevel.LOW: 3,
}


class ReportStatus(str, Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


OPEN_REPORT_STATUSES = frozenset({ReportStatus.PENDING, ReportStatus.UNDER_REVIEW})


class ContentKind(str, Enum):
    """Kinds of content a report or removal may target."""
    TOPIC = "topic"
    REPLY = "reply"
    POST = "post"
    COMMENT = "comment"


class SanctionScope(str, Enum):
    """Authority tier. Platform dominates community."""
    COMMUNITY = "community"
    PLATFORM = "platform"


TIER_RANK: dict[SanctionScope, int] = {
    SanctionScope.COMMUNITY: 1,
    SanctionScope.PLATFORM: 2,
}


class ActionType(str, Enum):
    REMOVE = "remove"


class ActionStatus(str, Enum):
    # Actions are applied synchronously, there is no queued state
    COMPLETED = "completed"


class SanctionKind(str, Enum):
    MODERATION_ACTION = "moderation_action"
    COMMUNITY_BAN = "community_ban"
    PLATFORM_SUSPENSION = "platform_suspension"


class AppealType(str, Enum):
    CONTENT_REMOVAL = "content_removal"
    COMMUNITY_BAN = "community_ban"
    PLATFORM_SUSPENSION = "platform_suspension"


APPEAL_TYPE_FOR_KIND: dict[SanctionKind, AppealType] = {
    SanctionKind.MODERATION_ACTION: AppealType.CONTENT_REMOVAL,
    SanctionKind.COMMUNITY_BAN: AppealType.COMMUNITY_BAN,
    SanctionKind.PLATFORM_SUSPENSION: AppealType.PLATFORM_SUSPENSION,
}


class AppealStatus(str, Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    UPHELD = "upheld"
    OVERTURNED = "overturned"
    REDUCED = "reduced"


TERMINAL_APPEAL_STATUSES = frozenset(
    {AppealStatus.UPHELD, AppealStatus.OVERTURNED, AppealStatus.REDUCED}
)


class AppealDecision(str, Enum):
    UPHOLD = "uphold"
    OVERTURN = "overturn"
    REDUCE_PENALTY = "reduce_penalty"


STATUS_FOR_DECISION: dict[AppealDecision, AppealStatus] = {
    AppealDecision.UPHOLD: AppealStatus.UPHELD,
    AppealDecision.OVERTURN: AppealStatus.OVERTURNED,
    AppealDecision.REDUCE_PENALTY: AppealStatus.REDUCED,
}


class Role(str, Enum):
    MEMBER = "member"
    MODERATOR = "moderator"
    ADMIN = "admin"
