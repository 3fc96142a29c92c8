"""
Ports to systems the engine consumes but does not own.

ContentDirectory answers "does this content exist, who wrote it and where";
ReporterEligibility answers "may this member file reports". The default
implementations read the member/content mirror tables through the caller's
session, so their answers are consistent with the transaction they are
used in. Tests and other deployments may inject their own.
"""
from dataclasses import dataclass
from typing import Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from tribunal.core.config import settings
from tribunal.core.constants import ContentKind
from tribunal.repositories.community_repo import ContentRepository, MemberRepository


@dataclass(frozen=True)
class ContentRef:
    """What moderation needs to know about a piece of content."""

    kind: ContentKind
    content_id: str
    author_id: str
    community_id: Optional[str]


class ContentDirectory(Protocol):
    async def lookup(self, kind: ContentKind, content_id: str) -> Optional[ContentRef]:
        ...


class ReporterEligibility(Protocol):
    async def is_eligible(self, member_id: str) -> bool:
        ...

    async def lock_reporter(self, member_id: str) -> None:
        """Serialize concurrent submissions from one reporter."""
        ...


class SqlContentDirectory:
    """ContentDirectory backed by the content_items mirror."""

    def __init__(self, db: AsyncSession):
        self.content = ContentRepository(db)

    async def lookup(self, kind: ContentKind, content_id: str) -> Optional[ContentRef]:
        item = await self.content.get_content(kind, content_id)
        if item is None:
            return None
        return ContentRef(
            kind=ContentKind(item.kind),
            content_id=item.id,
            author_id=item.author_id,
            community_id=item.community_id,
        )


class ReputationEligibility:
    """
    Reporters must be known members with reputation at or above the
    configured floor.
    """

    def __init__(self, db: AsyncSession, min_reputation: Optional[int] = None):
        self.members = MemberRepository(db)
        self.min_reputation = (
            settings.min_reporter_reputation if min_reputation is None else min_reputation
        )

    async def is_eligible(self, member_id: str) -> bool:
        member = await self.members.get_by_id(member_id)
        if member is None:
            return False
        return member.reputation_score >= self.min_reputation

    async def lock_reporter(self, member_id: str) -> None:
        # Row lock on the reporter; a no-op on SQLite, which serializes writers anyway
        await self.members.get_by_id(member_id, for_update=True)
