"""
Appeal of a sanction by the sanctioned member.
"""
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON,
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
    AppealDecision,
    AppealStatus,
    AppealType,
    SanctionKind,
    TERMINAL_APPEAL_STATUSES,
)
from tribunal.db.base import Base, enum_type

# Column holding the sanction id for each sanction kind
SANCTION_COLUMNS: dict[SanctionKind, str] = {
    SanctionKind.MODERATION_ACTION: "moderation_action_id",
    SanctionKind.COMMUNITY_BAN: "community_ban_id",
    SanctionKind.PLATFORM_SUSPENSION: "platform_suspension_id",
}

_ONE_SANCTION_SQL = " + ".join(
    f"(CASE WHEN {column} IS NOT NULL THEN 1 ELSE 0 END)" for column in SANCTION_COLUMNS.values()
) + " = 1"


class Appeal(Base):
    """
    User appeal of exactly one sanction.

    Appeals are created pending, may move to under_review, and are resolved
    exactly once to upheld, overturned or reduced. They are never deleted.
    ``open_sanction_key`` mirrors the sanction id while the appeal is open
    and is cleared on resolution; its unique constraint allows at most one
    open appeal per sanction.
    """

    __tablename__ = "appeals"

    appellant_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    # Exactly one of these is set
    moderation_action_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("moderation_actions.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    community_ban_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("community_bans.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    platform_suspension_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("platform_suspensions.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    appeal_type: Mapped[AppealType] = mapped_column(enum_type(AppealType), nullable=False)
    appeal_text: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[AppealStatus] = mapped_column(
        enum_type(AppealStatus, 20),
        default=AppealStatus.PENDING,
        nullable=False,
        index=True,
    )

    # Set at resolution only
    decision: Mapped[Optional[AppealDecision]] = mapped_column(enum_type(AppealDecision, 20), nullable=True)
    decision_explanation: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    penalty_modification: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    reviewed_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Handed to administrators by a community moderator
    is_escalated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    escalation_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Advisory SLA deadline, not enforced
    expected_resolution_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    open_sanction_key: Mapped[Optional[str]] = mapped_column(String(36), unique=True, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint(_ONE_SANCTION_SQL, name="ck_appeals_exactly_one_sanction"),
        Index("ix_appeals_status_created", "status", "created_at"),
    )

    @property
    def sanction_kind(self) -> SanctionKind:
        for kind, column in SANCTION_COLUMNS.items():
            if getattr(self, column) is not None:
                return kind
        raise ValueError("Appeal references no sanction")

    @property
    def sanction_id(self) -> str:
        return getattr(self, SANCTION_COLUMNS[self.sanction_kind])

    @property
    def is_terminal(self) -> bool:
        return AppealStatus(self.status) in TERMINAL_APPEAL_STATUSES

    def __repr__(self) -> str:
        return f"<Appeal id={self.id} appellant={self.appellant_id} type={self.appeal_type} status={self.status}>"
