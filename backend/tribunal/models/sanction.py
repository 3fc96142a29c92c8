"""
Sanction models: content removals, community bans and platform suspensions.

Provides:
- ModerationAction: removal of a piece of content at community or platform scope
- CommunityBan: member barred from one community
- PlatformSuspension: member barred from the whole platform

Every sanction carries an ``active_key`` that is unique while the sanction
is active and NULL once lifted, so the store itself guarantees exactly one
active sanction per scope. Rows are versioned for optimistic concurrency.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from tribunal.core.constants import (
    ActionStatus,
    ActionType,
    ContentKind,
    SanctionKind,
    SanctionScope,
    ViolationCategory,
)
from tribunal.core.errors import ValidationError
from tribunal.core.utils import as_utc, utcnow
from tribunal.db.base import Base, enum_type

_TERM_SQL = (
    "(is_permanent AND expiration_date IS NULL) "
    "OR (NOT is_permanent AND expiration_date IS NOT NULL)"
)


class ExpiringSanctionMixin:
    """Term handling shared by bans and suspensions."""

    is_permanent: Mapped[bool] = mapped_column(Boolean, nullable=False)

    # Present iff the sanction is temporary
    expiration_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def set_term(self, is_permanent: bool, expiration_date: Optional[datetime]) -> None:
        """Set both term fields together, enforcing their mutual exclusion."""
        if is_permanent and expiration_date is not None:
            raise ValidationError("A permanent sanction cannot have an expiration date")
        if not is_permanent and expiration_date is None:
            raise ValidationError("A temporary sanction requires an expiration date")
        self.is_permanent = is_permanent
        self.expiration_date = expiration_date

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.is_permanent or self.expiration_date is None:
            return False
        return as_utc(self.expiration_date) <= (now or utcnow())

    def is_in_effect(self, now: Optional[datetime] = None) -> bool:
        """Active and not yet expired."""
        return self.is_active and not self.is_expired(now)


class ModerationAction(Base):
    """
    Removal of one piece of content.

    A platform removal does not replace a community removal on the same
    content; the effective state is the highest-tier active removal.
    """

    __tablename__ = "moderation_actions"

    kind = SanctionKind.MODERATION_ACTION

    report_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("reports.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Target content
    target_kind: Mapped[ContentKind] = mapped_column(enum_type(ContentKind, 20), nullable=False)
    target_id: Mapped[str] = mapped_column(String(36), nullable=False)
    target_author_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    community_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    # Who took the action
    moderator_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    action_type: Mapped[ActionType] = mapped_column(enum_type(ActionType, 20), nullable=False)
    removal_type: Mapped[SanctionScope] = mapped_column(enum_type(SanctionScope, 20), nullable=False)
    reason_category: Mapped[ViolationCategory] = mapped_column(enum_type(ViolationCategory), nullable=False)
    reason_text: Mapped[str] = mapped_column(Text, nullable=False)

    # Moderator-only
    internal_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[ActionStatus] = mapped_column(
        enum_type(ActionStatus, 20),
        default=ActionStatus.COMPLETED,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    active_key: Mapped[Optional[str]] = mapped_column(String(120), unique=True, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("length(reason_text) > 0", name="ck_moderation_actions_reason"),
        Index("ix_moderation_actions_target", "target_kind", "target_id"),
    )

    @property
    def tier(self) -> SanctionScope:
        return self.removal_type

    @property
    def sanctioned_user_id(self) -> str:
        return self.target_author_id

    @property
    def is_appealable(self) -> bool:
        return True

    def is_in_effect(self, now: Optional[datetime] = None) -> bool:
        return self.is_active

    def uniqueness_key(self) -> str:
        return f"{ContentKind(self.target_kind).value}:{self.target_id}:{SanctionScope(self.removal_type).value}"

    def __repr__(self) -> str:
        return (
            f"<ModerationAction id={self.id} target={self.target_kind}:{self.target_id} "
            f"scope={self.removal_type} active={self.is_active}>"
        )


class CommunityBan(ExpiringSanctionMixin, Base):
    """Member barred from participating in one community."""

    __tablename__ = "community_bans"

    kind = SanctionKind.COMMUNITY_BAN

    member_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    community_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    issued_by: Mapped[str] = mapped_column(String(36), nullable=False)

    report_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("reports.id", ondelete="SET NULL"),
        nullable=True,
    )

    reason_category: Mapped[ViolationCategory] = mapped_column(enum_type(ViolationCategory), nullable=False)
    reason_text: Mapped[str] = mapped_column(Text, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_appealable: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    active_key: Mapped[Optional[str]] = mapped_column(String(120), unique=True, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint(_TERM_SQL, name="ck_community_bans_term"),
        Index("ix_community_bans_member_community", "member_id", "community_id"),
    )

    @property
    def tier(self) -> SanctionScope:
        return SanctionScope.COMMUNITY

    @property
    def sanctioned_user_id(self) -> str:
        return self.member_id

    def uniqueness_key(self) -> str:
        return f"{self.community_id}:{self.member_id}"

    def __repr__(self) -> str:
        return (
            f"<CommunityBan id={self.id} member={self.member_id} community={self.community_id} "
            f"permanent={self.is_permanent} active={self.is_active}>"
        )


class PlatformSuspension(ExpiringSanctionMixin, Base):
    """Member suspended across the whole platform. Admin-only."""

    __tablename__ = "platform_suspensions"

    kind = SanctionKind.PLATFORM_SUSPENSION

    member_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    issued_by: Mapped[str] = mapped_column(String(36), nullable=False)

    report_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("reports.id", ondelete="SET NULL"),
        nullable=True,
    )

    reason_category: Mapped[ViolationCategory] = mapped_column(enum_type(ViolationCategory), nullable=False)
    reason_text: Mapped[str] = mapped_column(Text, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_appealable: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    active_key: Mapped[Optional[str]] = mapped_column(String(120), unique=True, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint(_TERM_SQL, name="ck_platform_suspensions_term"),
    )

    @property
    def tier(self) -> SanctionScope:
        return SanctionScope.PLATFORM

    @property
    def community_id(self) -> None:
        return None

    @property
    def sanctioned_user_id(self) -> str:
        return self.member_id

    def uniqueness_key(self) -> str:
        return self.member_id

    def __repr__(self) -> str:
        return (
            f"<PlatformSuspension id={self.id} member={self.member_id} "
            f"permanent={self.is_permanent} active={self.is_active}>"
        )


SANCTION_MODELS: dict[SanctionKind, type] = {
    SanctionKind.MODERATION_ACTION: ModerationAction,
    SanctionKind.COMMUNITY_BAN: CommunityBan,
    SanctionKind.PLATFORM_SUSPENSION: PlatformSuspension,
}
