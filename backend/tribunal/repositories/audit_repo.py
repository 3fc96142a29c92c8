"""
Audit log repository.
"""
from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tribunal.core.principal import Principal
from tribunal.models.audit import ModerationAuditLog
from tribunal.repositories.base import BaseRepository


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if hasattr(value, "value"):
        return value.value
    return value


class AuditRepository(BaseRepository[ModerationAuditLog]):
    """Append-only writer and reader for the moderation audit trail."""

    def __init__(self, db: AsyncSession):
        super().__init__(ModerationAuditLog, db)

    async def record(
        self,
        principal: Principal,
        event: str,
        entity_type: str,
        entity_id: str,
        *,
        created_at: Optional[datetime] = None,
        **details: Any,
    ) -> ModerationAuditLog:
        """Stage one audit row in the current transaction."""
        entry = ModerationAuditLog(
            actor_id=principal.user_id,
            actor_role=principal.role.value,
            event=event,
            entity_type=entity_type,
            entity_id=entity_id,
            details={key: _jsonable(value) for key, value in details.items()} or None,
        )
        if created_at is not None:
            entry.created_at = created_at
        return await self.add(entry)

    async def for_entity(self, entity_type: str, entity_id: str) -> Sequence[ModerationAuditLog]:
        result = await self.db.execute(
            select(ModerationAuditLog)
            .where(
                ModerationAuditLog.entity_type == entity_type,
                ModerationAuditLog.entity_id == entity_id,
            )
            .order_by(ModerationAuditLog.created_at.asc())
        )
        return result.scalars().all()
