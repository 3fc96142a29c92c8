"""
Sanction authority service.

Creates content removals, community bans and platform suspensions under
the authority-tier rules, and answers what is currently in effect.
"""
from datetime import datetime
from typing import Optional, Union

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from tribunal.core.constants import (
    TIER_RANK,
    ActionStatus,
    ActionType,
    ContentKind,
    ReportStatus,
    SanctionScope,
    ViolationCategory,
)
from tribunal.core.errors import ConflictError, NotFoundError, ValidationError
from tribunal.core.principal import Principal, require_authority
from tribunal.core.utils import as_utc, utcnow
from tribunal.db.transaction import atomic, with_store_retry
from tribunal.models.sanction import CommunityBan, ModerationAction, PlatformSuspension
from tribunal.repositories.audit_repo import AuditRepository
from tribunal.repositories.sanction_repo import SanctionRegistry
from tribunal.services.collaborators import ContentDirectory, SqlContentDirectory
from tribunal.services.report_intake import ReportIntake, parse_category

logger = structlog.get_logger()

Restriction = Union[CommunityBan, PlatformSuspension]


def _require_reason(reason_text: Optional[str]) -> str:
    text = (reason_text or "").strip()
    if not text:
        raise ValidationError("A reason is required")
    return text


def _parse(enum_cls, value, label: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Unknown {label}: {value}")


def validate_term(
    is_permanent: bool,
    expiration_date: Optional[datetime],
    now: datetime,
) -> Optional[datetime]:
    """
    Check the permanent/expiration pair for a new ban or suspension.

    Returns the expiration normalized to UTC.
    """
    if is_permanent:
        if expiration_date is not None:
            raise ValidationError("A permanent sanction cannot have an expiration date")
        return None
    if expiration_date is None:
        raise ValidationError("A temporary sanction requires an expiration date")
    expiration_date = as_utc(expiration_date)
    if expiration_date <= now:
        raise ValidationError("Expiration date must be in the future")
    return expiration_date


class SanctionAuthority:
    """Service for issuing sanctions at community or platform tier."""

    def __init__(self, db: AsyncSession, content: Optional[ContentDirectory] = None):
        self.db = db
        self.registry = SanctionRegistry(db)
        self.audit = AuditRepository(db)
        self.content = content or SqlContentDirectory(db)
        self.reports = ReportIntake(db, content=self.content)

    async def apply_action(
        self,
        principal: Principal,
        target_kind: ContentKind | str,
        target_id: str,
        action_type: ActionType | str,
        scope: SanctionScope | str,
        reason_category: ViolationCategory | str,
        reason_text: str,
        *,
        report_id: Optional[str] = None,
        internal_notes: Optional[str] = None,
        report_status: ReportStatus | str = ReportStatus.RESOLVED,
        now: Optional[datetime] = None,
    ) -> ModerationAction:
        """
        Remove a piece of content at the given scope.

        A removal at one scope never replaces a removal at the other; the
        content's effective state is the highest-tier active removal.

        Raises:
            ValidationError: Unknown enum value, empty reason, report/target mismatch
            AuthorizationError: Principal's tier or community does not cover the target
            NotFoundError: Target content or report does not exist
            ConflictError: Content already has an active removal at this scope
        """
        now = now or utcnow()
        target_kind = _parse(ContentKind, target_kind, "content kind")
        action_type = _parse(ActionType, action_type, "action type")
        scope = _parse(SanctionScope, scope, "scope")
        reason_category = parse_category(reason_category)
        report_status = _parse(ReportStatus, report_status, "report status")
        reason_text = _require_reason(reason_text)

        async def work() -> ModerationAction:
            async with atomic(self.db):
                content = await self.content.lookup(target_kind, target_id)
                if content is None:
                    raise NotFoundError(f"{target_kind.value.capitalize()} not found")

                require_authority(principal, scope, content.community_id, "remove content")

                action = ModerationAction(
                    report_id=report_id,
                    target_kind=target_kind,
                    target_id=target_id,
                    target_author_id=content.author_id,
                    community_id=content.community_id,
                    moderator_id=principal.user_id,
                    action_type=action_type,
                    removal_type=scope,
                    reason_category=reason_category,
                    reason_text=reason_text,
                    internal_notes=internal_notes,
                    status=ActionStatus.COMPLETED,
                    created_at=now,
                    updated_at=now,
                )

                if await self.registry.find_active(action.kind, action.uniqueness_key()) is not None:
                    raise ConflictError(
                        f"Content already has an active {scope.value} removal",
                        target_kind=target_kind.value,
                        target_id=target_id,
                    )

                if report_id is not None:
                    await self.reports.attach_outcome(
                        principal,
                        report_id,
                        report_status,
                        target=(target_kind, target_id),
                        now=now,
                    )

                await self.registry.add(action)
                await self.audit.record(
                    principal,
                    "sanction.applied",
                    action.kind.value,
                    action.id,
                    created_at=now,
                    scope=scope,
                    target_kind=target_kind,
                    target_id=target_id,
                    report_id=report_id,
                )
            return action

        action = await with_store_retry(work, context={"operation": "sanction.apply_action"})
        logger.info(
            "Content removed",
            action_id=action.id,
            moderator_id=principal.user_id,
            target_kind=target_kind.value,
            target_id=target_id,
            scope=scope.value,
            report_id=report_id,
        )
        return action

    async def effective_content_state(
        self,
        target_kind: ContentKind | str,
        target_id: str,
    ) -> Optional[ModerationAction]:
        """
        The highest-tier active removal on the content, or None if it is visible.

        Raises:
            NotFoundError: Content does not exist
        """
        target_kind = _parse(ContentKind, target_kind, "content kind")
        if await self.content.lookup(target_kind, target_id) is None:
            raise NotFoundError(f"{target_kind.value.capitalize()} not found")

        removals = await self.registry.active_removals(target_kind, target_id)
        if not removals:
            return None
        return max(removals, key=lambda action: TIER_RANK[SanctionScope(action.removal_type)])

    async def apply_ban(
        self,
        principal: Principal,
        member_id: str,
        community_id: str,
        reason_category: ViolationCategory | str,
        reason_text: str,
        is_permanent: bool,
        expiration_date: Optional[datetime] = None,
        *,
        report_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> CommunityBan:
        """Bar a member from one community."""
        now = now or utcnow()
        require_authority(principal, SanctionScope.COMMUNITY, community_id, "ban members")
        ban = CommunityBan(
            member_id=member_id,
            community_id=community_id,
            issued_by=principal.user_id,
            report_id=report_id,
            reason_category=parse_category(reason_category),
            reason_text=_require_reason(reason_text),
            is_appealable=True,
            created_at=now,
            updated_at=now,
        )
        ban.set_term(is_permanent, validate_term(is_permanent, expiration_date, now))
        return await self._apply_restriction(principal, ban, now)

    async def apply_suspension(
        self,
        principal: Principal,
        member_id: str,
        reason_category: ViolationCategory | str,
        reason_text: str,
        is_permanent: bool,
        expiration_date: Optional[datetime] = None,
        *,
        report_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PlatformSuspension:
        """Suspend a member across the platform. Admins only."""
        now = now or utcnow()
        require_authority(principal, SanctionScope.PLATFORM, None, "suspend members")
        suspension = PlatformSuspension(
            member_id=member_id,
            issued_by=principal.user_id,
            report_id=report_id,
            reason_category=parse_category(reason_category),
            reason_text=_require_reason(reason_text),
            is_appealable=True,
            created_at=now,
            updated_at=now,
        )
        suspension.set_term(is_permanent, validate_term(is_permanent, expiration_date, now))
        return await self._apply_restriction(principal, suspension, now)

    async def is_member_restricted(
        self,
        member_id: str,
        community_id: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> bool:
        """Whether an in-effect suspension, or ban in ``community_id``, applies."""
        now = now or utcnow()
        restrictions = await self.registry.active_restrictions(member_id, community_id)
        return any(restriction.is_in_effect(now) for restriction in restrictions)

    async def _apply_restriction(self, principal: Principal, sanction: Restriction, now: datetime) -> Restriction:
        key = sanction.uniqueness_key()

        async def work() -> Restriction:
            async with atomic(self.db):
                existing = await self.registry.find_active(sanction.kind, key)
                if existing is not None:
                    if not existing.is_expired(now):
                        raise ConflictError(
                            f"Member already has an active {sanction.kind.value.replace('_', ' ')}",
                            sanction_id=existing.id,
                        )
                    # Lapsed but never lifted
                    await self.registry.set_active(existing, False)
                    await self.audit.record(
                        principal,
                        "sanction.expired",
                        existing.kind.value,
                        existing.id,
                        created_at=now,
                    )

                if sanction.report_id is not None:
                    await self.reports.attach_outcome(
                        principal,
                        sanction.report_id,
                        ReportStatus.RESOLVED,
                        sanctioned_member_id=sanction.member_id,
                        now=now,
                    )

                await self.registry.add(sanction)
                await self.audit.record(
                    principal,
                    "sanction.applied",
                    sanction.kind.value,
                    sanction.id,
                    created_at=now,
                    member_id=sanction.member_id,
                    community_id=sanction.community_id,
                    is_permanent=sanction.is_permanent,
                    expiration_date=sanction.expiration_date,
                )
            return sanction

        sanction = await with_store_retry(work, context={"operation": f"sanction.apply_{sanction.kind.value}"})
        logger.info(
            "Member sanctioned",
            sanction_id=sanction.id,
            kind=sanction.kind.value,
            member_id=sanction.member_id,
            community_id=sanction.community_id,
            issued_by=principal.user_id,
            is_permanent=sanction.is_permanent,
        )
        return sanction
