"""
Abuse report submitted by a member against one piece of content.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tribunal.core.constants import ContentKind, ReportStatus, SeverityLevel, ViolationCategory
from tribunal.db.base import Base, enum_type

# Column holding the target id for each content kind
TARGET_COLUMNS: dict[ContentKind, str] = {
    ContentKind.TOPIC: "topic_id",
    ContentKind.REPLY: "reply_id",
    ContentKind.POST: "post_id",
    ContentKind.COMMENT: "comment_id",
}

_ONE_TARGET_SQL = " + ".join(
    f"(CASE WHEN {column} IS NOT NULL THEN 1 ELSE 0 END)" for column in TARGET_COLUMNS.values()
) + " = 1"


class Report(Base):
    """
    A member's report of a guideline violation.

    Exactly one target column is set. Severity is derived from the category
    at submission and never edited afterwards.
    """

    __tablename__ = "reports"

    reporter_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    # Exactly one of these is set
    topic_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    reply_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    post_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    comment_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    violation_category: Mapped[ViolationCategory] = mapped_column(
        enum_type(ViolationCategory),
        nullable=False,
    )
    severity_level: Mapped[SeverityLevel] = mapped_column(
        enum_type(SeverityLevel, 10),
        nullable=False,
        index=True,
    )
    status: Mapped[ReportStatus] = mapped_column(
        enum_type(ReportStatus, 20),
        default=ReportStatus.PENDING,
        nullable=False,
        index=True,
    )

    # Required (>= 20 chars) when category is "other"
    explanation: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Community of the target at submission time, for queue scoping
    community_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)

    # Review bookkeeping
    reviewed_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolution_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(_ONE_TARGET_SQL, name="ck_reports_exactly_one_target"),
        Index("ix_reports_reporter_created", "reporter_id", "created_at"),
    )

    @property
    def target_kind(self) -> ContentKind:
        for kind, column in TARGET_COLUMNS.items():
            if getattr(self, column) is not None:
                return kind
        raise ValueError("Report has no target")

    @property
    def target_id(self) -> str:
        return getattr(self, TARGET_COLUMNS[self.target_kind])

    def __repr__(self) -> str:
        return f"<Report id={self.id} category={self.violation_category} status={self.status}>"
