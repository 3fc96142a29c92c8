"""
Sanction registry.

Durable store of content removals, community bans and platform
suspensions. Pure storage and query: no business rules live here, and
every mutation happens inside the caller's transaction.
"""
from datetime import datetime
from typing import Optional, Sequence, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tribunal.core.constants import ContentKind, SanctionKind
from tribunal.models.sanction import (
    SANCTION_MODELS,
    CommunityBan,
    ModerationAction,
    PlatformSuspension,
)

Sanction = Union[ModerationAction, CommunityBan, PlatformSuspension]


class SanctionRegistry:
    """
    Storage port for all three sanction kinds.

    Sanction ids are UUIDv4 and unique across kinds, so ``get`` can resolve
    an id without being told which table it lives in.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(
        self,
        sanction_id: str,
        kind: Optional[SanctionKind] = None,
        *,
        for_update: bool = False,
    ) -> Optional[Sanction]:
        """
        Fetch a sanction by id.

        Args:
            sanction_id: Sanction primary key
            kind: Restrict the lookup to one sanction kind
            for_update: Hold a row lock for a read-modify-write

        Returns:
            The sanction or None
        """
        kinds = [kind] if kind is not None else list(SANCTION_MODELS)
        for candidate in kinds:
            model = SANCTION_MODELS[candidate]
            query = select(model).where(model.id == sanction_id)
            if for_update:
                query = query.with_for_update().execution_options(populate_existing=True)
            result = await self.db.execute(query)
            sanction = result.scalar_one_or_none()
            if sanction is not None:
                return sanction
        return None

    async def add(self, sanction: Sanction) -> Sanction:
        """Insert an active sanction, claiming its uniqueness key."""
        sanction.is_active = True
        sanction.active_key = sanction.uniqueness_key()
        self.db.add(sanction)
        await self.db.flush()
        return sanction

    async def set_active(self, sanction: Sanction, active: bool) -> Sanction:
        """Flip a sanction on or off; lifting releases its uniqueness key."""
        sanction.is_active = active
        sanction.active_key = sanction.uniqueness_key() if active else None
        await self.db.flush()
        return sanction

    async def modify_expiration(
        self,
        sanction: Union[CommunityBan, PlatformSuspension],
        new_expiration: Optional[datetime],
        new_is_permanent: bool,
    ) -> Union[CommunityBan, PlatformSuspension]:
        """Replace the term of a ban or suspension."""
        sanction.set_term(new_is_permanent, new_expiration)
        await self.db.flush()
        return sanction

    async def find_active(self, kind: SanctionKind, key: str) -> Optional[Sanction]:
        """The sanction currently holding ``key``, if any."""
        model = SANCTION_MODELS[kind]
        query = (
            select(model)
            .where(model.active_key == key)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def active_removals(
        self,
        target_kind: ContentKind,
        target_id: str,
    ) -> Sequence[ModerationAction]:
        """All active removals on one piece of content."""
        query = select(ModerationAction).where(
            ModerationAction.target_kind == target_kind,
            ModerationAction.target_id == target_id,
            ModerationAction.is_active.is_(True),
        )
        result = await self.db.execute(query)
        return result.scalars().all()

    async def active_restrictions(
        self,
        member_id: str,
        community_id: Optional[str] = None,
    ) -> list[Union[CommunityBan, PlatformSuspension]]:
        """Active suspensions for a member, plus active bans in ``community_id``."""
        restrictions: list[Union[CommunityBan, PlatformSuspension]] = []

        result = await self.db.execute(
            select(PlatformSuspension).where(
                PlatformSuspension.member_id == member_id,
                PlatformSuspension.is_active.is_(True),
            )
        )
        restrictions.extend(result.scalars().all())

        if community_id is not None:
            result = await self.db.execute(
                select(CommunityBan).where(
                    CommunityBan.member_id == member_id,
                    CommunityBan.community_id == community_id,
                    CommunityBan.is_active.is_(True),
                )
            )
            restrictions.extend(result.scalars().all())

        return restrictions
