"""Append-only audit trail of moderation decisions."""
from typing import Any, Optional

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from tribunal.db.base import Base


class ModerationAuditLog(Base):
    """
    One row per state change made by the engine.

    Written in the same transaction as the change it records.
    """

    __tablename__ = "moderation_audit_log"

    actor_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    actor_role: Mapped[str] = mapped_column(String(20), nullable=False)

    # e.g. report.submitted, sanction.applied, appeal.resolved
    event: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    entity_type: Mapped[str] = mapped_column(String(30), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)

    details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        Index("ix_moderation_audit_log_entity", "entity_type", "entity_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ModerationAuditLog id={self.id} event={self.event} entity={self.entity_type}:{self.entity_id}>"
