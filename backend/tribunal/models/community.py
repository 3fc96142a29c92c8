"""
Read-only mirror of the account and content services.

The engine never creates or edits these rows; they exist so that reporter
eligibility and target existence can be checked against the same store
(and inside the same transaction) as the moderation records.
"""
from typing import Optional

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from tribunal.core.constants import ContentKind
from tribunal.db.base import Base, enum_type


class Member(Base):
    """Community member as seen by moderation (identity plus standing)."""

    __tablename__ = "members"

    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)

    # Reputation used to gate report submission
    reputation_score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<Member id={self.id} username={self.username}>"


class ContentItem(Base):
    """A reportable piece of content: topic, reply, post or comment."""

    __tablename__ = "content_items"

    kind: Mapped[ContentKind] = mapped_column(enum_type(ContentKind, 20), nullable=False)

    author_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Community the content was posted in
    community_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)

    __table_args__ = (
        Index("ix_content_items_kind", "kind", "id"),
    )

    def __repr__(self) -> str:
        return f"<ContentItem id={self.id} kind={self.kind} community={self.community_id}>"
