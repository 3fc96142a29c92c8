"""
Appeal intake service.

A sanctioned member contests exactly one sanction. At most one appeal per
sanction may be open at a time; once it is resolved a new one may be filed.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from tribunal.core.config import settings
from tribunal.core.constants import APPEAL_TYPE_FOR_KIND, AppealStatus, AppealType, SanctionKind
from tribunal.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from tribunal.core.principal import Member, Principal
from tribunal.core.utils import as_utc, utcnow
from tribunal.db.transaction import atomic, with_store_retry
from tribunal.models.appeal import SANCTION_COLUMNS, Appeal
from tribunal.repositories.appeal_repo import AppealRepository
from tribunal.repositories.audit_repo import AuditRepository
from tribunal.repositories.sanction_repo import SanctionRegistry
from tribunal.services.appeal_resolution import reviewer_may_act

logger = structlog.get_logger()


@dataclass(frozen=True)
class SanctionRef:
    """Reference to the appealed sanction. Exactly one field must be set."""

    moderation_action_id: Optional[str] = None
    community_ban_id: Optional[str] = None
    platform_suspension_id: Optional[str] = None

    @classmethod
    def of(cls, kind: SanctionKind | str, sanction_id: str) -> "SanctionRef":
        return cls(**{SANCTION_COLUMNS[SanctionKind(kind)]: sanction_id})

    def resolve(self) -> tuple[SanctionKind, str]:
        chosen = [
            (kind, getattr(self, column))
            for kind, column in SANCTION_COLUMNS.items()
            if getattr(self, column)
        ]
        if len(chosen) != 1:
            raise ValidationError(
                "Exactly one of moderation_action_id, community_ban_id or "
                "platform_suspension_id must be set"
            )
        return chosen[0]


class AppealProcess:
    """Service for accepting appeals from sanctioned members."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.appeals = AppealRepository(db)
        self.registry = SanctionRegistry(db)
        self.audit = AuditRepository(db)

    async def submit(
        self,
        appellant_id: str,
        sanction_ref: SanctionRef,
        appeal_type: AppealType | str,
        appeal_text: str,
        *,
        now: Optional[datetime] = None,
    ) -> Appeal:
        """
        File an appeal against one sanction.

        Raises:
            ValidationError: Bad reference, type mismatch, empty text, window closed,
                too many open appeals
            NotFoundError: Sanction does not exist
            AuthorizationError: Appellant is not the sanctioned member, or the
                sanction is not appealable
            ConflictError: An appeal on this sanction is already open
        """
        now = now or utcnow()
        kind, sanction_id = sanction_ref.resolve()
        try:
            appeal_type = AppealType(appeal_type)
        except ValueError:
            raise ValidationError(f"Unknown appeal type: {appeal_type}")
        if APPEAL_TYPE_FOR_KIND[kind] != appeal_type:
            raise ValidationError(
                f"Appeal type {appeal_type.value} does not match a {kind.value} reference"
            )
        text = (appeal_text or "").strip()
        if not text:
            raise ValidationError("Appeal text is required")

        async def work() -> Appeal:
            async with atomic(self.db):
                sanction = await self.registry.get(sanction_id, kind, for_update=True)
                if sanction is None:
                    raise NotFoundError("Sanction not found")

                if sanction.sanctioned_user_id != appellant_id:
                    raise AuthorizationError("Only the sanctioned member may appeal")
                if not sanction.is_appealable:
                    raise AuthorizationError("This sanction cannot be appealed")

                window = timedelta(days=settings.appeal_window_days)
                if now - as_utc(sanction.created_at) > window:
                    raise ValidationError(
                        f"Appeals must be filed within {settings.appeal_window_days} days of the sanction"
                    )

                existing = await self.appeals.find_open_for_sanction(sanction_id)
                if existing is not None:
                    raise ConflictError(
                        "An appeal for this sanction is already open",
                        appeal_id=existing.id,
                    )

                open_count = await self.appeals.count_open_for_appellant(appellant_id)
                if open_count >= settings.max_open_appeals_per_member:
                    raise ValidationError(
                        f"At most {settings.max_open_appeals_per_member} appeals may be open at once"
                    )

                appeal = Appeal(
                    appellant_id=appellant_id,
                    appeal_type=appeal_type,
                    appeal_text=text,
                    status=AppealStatus.PENDING,
                    is_escalated=False,
                    expected_resolution_at=now + timedelta(days=settings.appeal_sla_days),
                    open_sanction_key=sanction_id,
                    created_at=now,
                    updated_at=now,
                    **{SANCTION_COLUMNS[kind]: sanction_id},
                )
                await self.appeals.add(appeal)
                await self.audit.record(
                    Member(user_id=appellant_id),
                    "appeal.submitted",
                    "appeal",
                    appeal.id,
                    created_at=now,
                    sanction_kind=kind,
                    sanction_id=sanction_id,
                )
            return appeal

        appeal = await with_store_retry(work, context={"operation": "appeal.submit", "appellant_id": appellant_id})
        logger.info(
            "Appeal submitted",
            appeal_id=appeal.id,
            appellant_id=appellant_id,
            sanction_kind=kind.value,
            sanction_id=sanction_id,
            expected_resolution_at=appeal.expected_resolution_at.isoformat(),
        )
        return appeal

    async def get(self, principal: Principal, appeal_id: str) -> Appeal:
        """
        Fetch an appeal visible to the principal.

        Appellants see their own appeals; reviewers see appeals they could resolve.
        """
        appeal = await self.appeals.get_by_id(appeal_id)
        if appeal is None:
            raise NotFoundError("Appeal not found")
        if appeal.appellant_id == principal.user_id:
            return appeal
        sanction = await self.registry.get(appeal.sanction_id, appeal.sanction_kind)
        if sanction is None or not reviewer_may_act(principal, appeal, sanction):
            raise AuthorizationError("Not allowed to view this appeal")
        return appeal
