"""
Lookups against the member and content mirror.
"""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tribunal.core.constants import ContentKind
from tribunal.models.community import ContentItem, Member
from tribunal.repositories.base import BaseRepository


class MemberRepository(BaseRepository[Member]):
    def __init__(self, db: AsyncSession):
        super().__init__(Member, db)


class ContentRepository(BaseRepository[ContentItem]):
    def __init__(self, db: AsyncSession):
        super().__init__(ContentItem, db)

    async def get_content(self, kind: ContentKind, content_id: str) -> Optional[ContentItem]:
        """Content of the given kind, or None if missing or of another kind."""
        result = await self.db.execute(
            select(ContentItem).where(
                ContentItem.id == content_id,
                ContentItem.kind == kind,
            )
        )
        return result.scalar_one_or_none()
