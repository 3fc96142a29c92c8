"""
Appeal resolution service.

Reviewers uphold, overturn or reduce the penalty of an appealed sanction.
The appeal, the sanction it mutates and the audit entry commit together.
"""
from datetime import datetime, timedelta
from typing import Any, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from tribunal.core.constants import (
    STATUS_FOR_DECISION,
    AppealDecision,
    AppealStatus,
    SanctionKind,
)
from tribunal.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from tribunal.core.principal import Admin, Moderator, Principal, can_act_at
from tribunal.core.utils import as_utc, utcnow
from tribunal.db.transaction import atomic, with_store_retry
from tribunal.models.appeal import Appeal
from tribunal.repositories.appeal_repo import AppealRepository
from tribunal.repositories.audit_repo import AuditRepository
from tribunal.repositories.sanction_repo import Sanction, SanctionRegistry

logger = structlog.get_logger()


def reviewer_may_act(principal: Principal, appeal: Appeal, sanction: Sanction) -> bool:
    """Reviewer tier must cover the sanction tier; escalated appeals need an admin."""
    if appeal.is_escalated:
        return isinstance(principal, Admin)
    return can_act_at(principal, sanction.tier, sanction.community_id)


def parse_penalty_modification(
    modification: Optional[dict[str, Any]],
    now: datetime,
) -> tuple[dict[str, Any], datetime]:
    """
    Validate a reduce_penalty payload.

    Accepts either ``{"duration_days": N}`` (N > 0, counted from ``now``) or
    ``{"expires_at": <ISO-8601 timestamp>}`` in the future.

    Returns:
        The normalized payload to store and the new expiration date
    """
    if not isinstance(modification, dict) or not modification:
        raise ValidationError("penalty_modification is required to reduce a penalty")

    has_days = modification.get("duration_days") is not None
    has_expiry = modification.get("expires_at") is not None
    if has_days == has_expiry:
        raise ValidationError("penalty_modification needs exactly one of duration_days or expires_at")

    if has_days:
        days = modification["duration_days"]
        if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
            raise ValidationError("duration_days must be a positive integer")
        expiration = now + timedelta(days=days)
        return {"duration_days": days, "expiration_date": expiration.isoformat()}, expiration

    raw = modification["expires_at"]
    if isinstance(raw, datetime):
        expiration = as_utc(raw)
    else:
        try:
            expiration = as_utc(datetime.fromisoformat(str(raw).replace("Z", "+00:00")))
        except ValueError:
            raise ValidationError("expires_at must be an ISO-8601 timestamp")
    if expiration <= now:
        raise ValidationError("expires_at must be in the future")
    return {"expires_at": expiration.isoformat(), "expiration_date": expiration.isoformat()}, expiration


class AppealResolution:
    """Decision engine for appeal reviewers."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.appeals = AppealRepository(db)
        self.registry = SanctionRegistry(db)
        self.audit = AuditRepository(db)

    async def resolve(
        self,
        principal: Principal,
        appeal_id: str,
        decision: AppealDecision | str,
        decision_explanation: str,
        penalty_modification: Optional[dict[str, Any]] = None,
        *,
        now: Optional[datetime] = None,
    ) -> Appeal:
        """
        Resolve an appeal and apply its effect to the sanction.

        uphold leaves the sanction unchanged; overturn lifts it; reduce_penalty
        turns a ban or suspension into a temporary one ending earlier.
        Resolving after the SLA deadline is allowed.

        Raises:
            NotFoundError: Appeal does not exist
            ConflictError: Appeal is already resolved, or changed concurrently
            AuthorizationError: Reviewer's tier does not cover the sanction
            ValidationError: Missing explanation or bad penalty modification
        """
        now = now or utcnow()
        try:
            decision = AppealDecision(decision)
        except ValueError:
            raise ValidationError(f"Unknown decision: {decision}")

        async def work() -> Appeal:
            async with atomic(self.db):
                appeal, sanction = await self._load(appeal_id)
                if appeal.is_terminal:
                    raise ConflictError(f"Appeal is already {AppealStatus(appeal.status).value}")
                if not reviewer_may_act(principal, appeal, sanction):
                    raise AuthorizationError(_denial(appeal, sanction))

                explanation = (decision_explanation or "").strip()
                if not explanation:
                    raise ValidationError("A decision explanation is required")

                modification = None
                if decision == AppealDecision.OVERTURN:
                    await self.registry.set_active(sanction, False)
                elif decision == AppealDecision.REDUCE_PENALTY:
                    modification = await self._reduce(sanction, penalty_modification, now)

                appeal.status = STATUS_FOR_DECISION[decision]
                appeal.decision = decision
                appeal.decision_explanation = explanation
                appeal.penalty_modification = modification
                appeal.reviewed_by = principal.user_id
                appeal.reviewed_at = now
                appeal.open_sanction_key = None
                await self.db.flush()

                await self.audit.record(
                    principal,
                    "appeal.resolved",
                    "appeal",
                    appeal.id,
                    created_at=now,
                    decision=decision,
                    sanction_kind=appeal.sanction_kind,
                    sanction_id=appeal.sanction_id,
                    late=now > as_utc(appeal.expected_resolution_at),
                )
            return appeal

        appeal = await with_store_retry(work, context={"operation": "appeal.resolve", "appeal_id": appeal_id})
        logger.info(
            "Appeal resolved",
            appeal_id=appeal.id,
            reviewer_id=principal.user_id,
            decision=decision.value,
            sanction_id=appeal.sanction_id,
        )
        return appeal

    async def begin_review(
        self,
        principal: Principal,
        appeal_id: str,
        *,
        now: Optional[datetime] = None,
    ) -> Appeal:
        """Move a pending appeal to under_review."""
        now = now or utcnow()
        async with atomic(self.db):
            appeal, sanction = await self._load(appeal_id)
            if AppealStatus(appeal.status) != AppealStatus.PENDING:
                raise ConflictError(f"Appeal is already {AppealStatus(appeal.status).value}")
            if not reviewer_may_act(principal, appeal, sanction):
                raise AuthorizationError(_denial(appeal, sanction))
            appeal.status = AppealStatus.UNDER_REVIEW
            appeal.reviewed_by = principal.user_id
            await self.db.flush()
            await self.audit.record(principal, "appeal.review_started", "appeal", appeal.id, created_at=now)

        logger.info("Appeal review started", appeal_id=appeal.id, reviewer_id=principal.user_id)
        return appeal

    async def escalate(
        self,
        principal: Principal,
        appeal_id: str,
        note: str,
        *,
        now: Optional[datetime] = None,
    ) -> Appeal:
        """Hand a community-tier appeal to platform administrators."""
        now = now or utcnow()
        note = (note or "").strip()
        if not note:
            raise ValidationError("An escalation note is required")

        async with atomic(self.db):
            appeal, sanction = await self._load(appeal_id)
            if appeal.is_terminal:
                raise ConflictError(f"Appeal is already {AppealStatus(appeal.status).value}")
            if appeal.is_escalated:
                raise ConflictError("Appeal is already escalated")
            if not isinstance(principal, Moderator) or not can_act_at(
                principal, sanction.tier, sanction.community_id
            ):
                raise AuthorizationError("Only a moderator of the sanction's community may escalate")

            appeal.is_escalated = True
            appeal.escalation_note = note
            appeal.status = AppealStatus.UNDER_REVIEW
            await self.db.flush()
            await self.audit.record(
                principal,
                "appeal.escalated",
                "appeal",
                appeal.id,
                created_at=now,
                note=note,
            )

        logger.info("Appeal escalated", appeal_id=appeal.id, moderator_id=principal.user_id)
        return appeal

    async def _load(self, appeal_id: str) -> tuple[Appeal, Sanction]:
        appeal = await self.appeals.get_by_id(appeal_id, for_update=True)
        if appeal is None:
            raise NotFoundError("Appeal not found")
        sanction = await self.registry.get(appeal.sanction_id, appeal.sanction_kind, for_update=True)
        if sanction is None:
            raise NotFoundError("Appealed sanction not found")
        return appeal, sanction

    async def _reduce(
        self,
        sanction: Sanction,
        penalty_modification: Optional[dict[str, Any]],
        now: datetime,
    ) -> dict[str, Any]:
        if sanction.kind == SanctionKind.MODERATION_ACTION:
            raise ValidationError("A content removal cannot be reduced; uphold or overturn it")

        modification, expiration = parse_penalty_modification(penalty_modification, now)
        if not sanction.is_permanent and expiration >= as_utc(sanction.expiration_date):
            raise ValidationError("A reduced penalty must end before the current expiration date")

        modification["previous_expiration_date"] = (
            None if sanction.is_permanent else as_utc(sanction.expiration_date).isoformat()
        )
        await self.registry.modify_expiration(sanction, expiration, False)
        return modification


def _denial(appeal: Appeal, sanction: Sanction) -> str:
    if appeal.is_escalated:
        return "Escalated appeals are reviewed by administrators"
    return f"Reviewing a {sanction.tier.value}-tier sanction is outside your authority"
