"""Tests for appeal decisions and their effect on sanctions."""
from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy import select

from conftest import COMMUNITY_ID, NOW
from tribunal.core.constants import AppealDecision, AppealStatus
from tribunal.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from tribunal.core.utils import as_utc
from tribunal.models import ModerationAuditLog
from tribunal.services.appeal_process import AppealProcess, SanctionRef
from tribunal.services.appeal_resolution import AppealResolution, parse_penalty_modification
from tribunal.services.sanction_authority import SanctionAuthority


@pytest.fixture
def authority(db_session):
    return SanctionAuthority(db_session)


@pytest.fixture
def appeals(db_session):
    return AppealProcess(db_session)


@pytest.fixture
def resolution(db_session):
    return AppealResolution(db_session)


@pytest_asyncio.fixture
async def removal(authority, moderator, topic):
    return await authority.apply_action(
        moderator, "topic", topic.id, "remove", "community", "spam", "Advertising", now=NOW
    )


@pytest_asyncio.fixture
async def removal_appeal(appeals, author, removal):
    return await appeals.submit(
        author.id, SanctionRef(moderation_action_id=removal.id), "content_removal", "Not spam", now=NOW
    )


@pytest_asyncio.fixture
async def ban(authority, moderator, author):
    return await authority.apply_ban(
        moderator, author.id, COMMUNITY_ID, "personal_attack", "Harassment", True, now=NOW
    )


@pytest_asyncio.fixture
async def ban_appeal(appeals, author, ban):
    return await appeals.submit(
        author.id, SanctionRef(community_ban_id=ban.id), "community_ban", "I apologise", now=NOW
    )


@pytest_asyncio.fixture
async def suspension(authority, admin, author):
    return await authority.apply_suspension(
        admin, author.id, "hate_speech", "Slurs", False, NOW + timedelta(days=60), now=NOW
    )


@pytest_asyncio.fixture
async def suspension_appeal(appeals, author, suspension):
    return await appeals.submit(
        author.id, SanctionRef(platform_suspension_id=suspension.id), "platform_suspension", "Too long", now=NOW
    )


class TestParsePenaltyModification:
    def test_duration_days(self):
        payload, expiration = parse_penalty_modification({"duration_days": 30}, NOW)
        assert expiration == NOW + timedelta(days=30)
        assert payload["duration_days"] == 30

    def test_expires_at(self):
        _, expiration = parse_penalty_modification({"expires_at": "2026-03-10T00:00:00Z"}, NOW)
        assert expiration == as_utc(NOW.replace(day=10, hour=0))

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            {},
            {"duration_days": 0},
            {"duration_days": -3},
            {"duration_days": "7"},
            {"duration_days": True},
            {"duration_days": 3, "expires_at": "2026-04-01T00:00:00Z"},
            {"expires_at": "yesterday"},
            {"expires_at": "2026-01-01T00:00:00Z"},
        ],
    )
    def test_invalid_payloads(self, payload):
        with pytest.raises(ValidationError):
            parse_penalty_modification(payload, NOW)


class TestResolve:
    @pytest.mark.asyncio
    async def test_uphold_leaves_sanction_alone(self, resolution, moderator, ban, ban_appeal):
        appeal = await resolution.resolve(moderator, ban_appeal.id, "uphold", "Clear harassment", now=NOW)

        assert appeal.status == AppealStatus.UPHELD
        assert appeal.decision == AppealDecision.UPHOLD
        assert appeal.decision_explanation == "Clear harassment"
        assert appeal.reviewed_by == moderator.user_id
        assert appeal.reviewed_at == NOW
        assert appeal.open_sanction_key is None
        assert ban.is_active
        assert ban.is_permanent

    @pytest.mark.asyncio
    async def test_overturn_lifts_sanction(self, resolution, moderator, removal, removal_appeal):
        appeal = await resolution.resolve(moderator, removal_appeal.id, "overturn", "Was on topic", now=NOW)

        assert appeal.status == AppealStatus.OVERTURNED
        assert not removal.is_active
        assert removal.active_key is None

    @pytest.mark.asyncio
    async def test_overturned_removal_frees_scope(
        self, resolution, authority, moderator, topic, removal, removal_appeal
    ):
        await resolution.resolve(moderator, removal_appeal.id, "overturn", "Was on topic", now=NOW)

        assert await authority.effective_content_state("topic", topic.id) is None
        again = await authority.apply_action(
            moderator, "topic", topic.id, "remove", "community", "spam", "Now it is spam", now=NOW
        )
        assert again.is_active

    @pytest.mark.asyncio
    async def test_reduce_permanent_ban(self, resolution, moderator, ban, ban_appeal):
        appeal = await resolution.resolve(
            moderator,
            ban_appeal.id,
            "reduce_penalty",
            "First offence",
            {"duration_days": 30},
            now=NOW,
        )

        assert appeal.status == AppealStatus.REDUCED
        assert appeal.penalty_modification["duration_days"] == 30
        assert not ban.is_permanent
        assert as_utc(ban.expiration_date) == NOW + timedelta(days=30)

    @pytest.mark.asyncio
    async def test_reduce_temporary_suspension_shortens(self, resolution, admin, suspension, suspension_appeal):
        await resolution.resolve(
            admin, suspension_appeal.id, "reduce_penalty", "Partly mitigated", {"duration_days": 10}, now=NOW
        )

        assert as_utc(suspension.expiration_date) == NOW + timedelta(days=10)

    @pytest.mark.asyncio
    async def test_reduce_cannot_lengthen(self, resolution, admin, suspension, suspension_appeal):
        with pytest.raises(ValidationError):
            await resolution.resolve(
                admin, suspension_appeal.id, "reduce_penalty", "Oops", {"duration_days": 90}, now=NOW
            )

    @pytest.mark.asyncio
    async def test_reduce_requires_modification(self, resolution, moderator, ban_appeal):
        with pytest.raises(ValidationError):
            await resolution.resolve(moderator, ban_appeal.id, "reduce_penalty", "Softer", None, now=NOW)

    @pytest.mark.asyncio
    async def test_content_removal_cannot_be_reduced(self, resolution, moderator, removal_appeal):
        with pytest.raises(ValidationError):
            await resolution.resolve(
                moderator, removal_appeal.id, "reduce_penalty", "Softer", {"duration_days": 1}, now=NOW
            )

    @pytest.mark.asyncio
    async def test_explanation_required(self, resolution, moderator, ban_appeal):
        with pytest.raises(ValidationError):
            await resolution.resolve(moderator, ban_appeal.id, "uphold", "   ", now=NOW)

    @pytest.mark.asyncio
    async def test_unknown_decision_rejected(self, resolution, moderator, ban_appeal):
        with pytest.raises(ValidationError):
            await resolution.resolve(moderator, ban_appeal.id, "pardon", "why not", now=NOW)

    @pytest.mark.asyncio
    async def test_missing_appeal_is_not_found(self, resolution, admin):
        with pytest.raises(NotFoundError):
            await resolution.resolve(admin, "missing", "uphold", "n/a", now=NOW)

    @pytest.mark.asyncio
    async def test_terminal_appeal_is_conflict(self, resolution, moderator, ban_appeal):
        await resolution.resolve(moderator, ban_appeal.id, "uphold", "Stands", now=NOW)

        with pytest.raises(ConflictError):
            await resolution.resolve(moderator, ban_appeal.id, "overturn", "Changed my mind", now=NOW)

    @pytest.mark.asyncio
    async def test_moderator_cannot_resolve_platform_sanction(self, resolution, moderator, suspension_appeal):
        with pytest.raises(AuthorizationError):
            await resolution.resolve(moderator, suspension_appeal.id, "overturn", "Lift it", now=NOW)

    @pytest.mark.asyncio
    async def test_other_community_moderator_cannot_resolve(self, resolution, other_moderator, ban_appeal):
        with pytest.raises(AuthorizationError):
            await resolution.resolve(other_moderator, ban_appeal.id, "overturn", "Lift it", now=NOW)

    @pytest.mark.asyncio
    async def test_member_cannot_resolve(self, resolution, author_principal, ban_appeal):
        with pytest.raises(AuthorizationError):
            await resolution.resolve(author_principal, ban_appeal.id, "overturn", "Please", now=NOW)

    @pytest.mark.asyncio
    async def test_admin_resolves_community_sanction(self, resolution, admin, ban, ban_appeal):
        appeal = await resolution.resolve(admin, ban_appeal.id, "overturn", "Insufficient evidence", now=NOW)

        assert appeal.status == AppealStatus.OVERTURNED
        assert not ban.is_active

    @pytest.mark.asyncio
    async def test_late_resolution_is_allowed_and_audited(self, resolution, db_session, moderator, ban_appeal):
        late = NOW + timedelta(days=10)
        await resolution.resolve(moderator, ban_appeal.id, "uphold", "Backlog", now=late)

        result = await db_session.execute(
            select(ModerationAuditLog).where(
                ModerationAuditLog.entity_id == ban_appeal.id,
                ModerationAuditLog.event == "appeal.resolved",
            )
        )
        assert result.scalar_one().details["late"] is True


class TestReviewAndEscalation:
    @pytest.mark.asyncio
    async def test_begin_review(self, resolution, moderator, ban_appeal):
        appeal = await resolution.begin_review(moderator, ban_appeal.id, now=NOW)

        assert appeal.status == AppealStatus.UNDER_REVIEW
        with pytest.raises(ConflictError):
            await resolution.begin_review(moderator, ban_appeal.id, now=NOW)

    @pytest.mark.asyncio
    async def test_under_review_appeal_can_be_resolved(self, resolution, moderator, ban_appeal):
        await resolution.begin_review(moderator, ban_appeal.id, now=NOW)
        appeal = await resolution.resolve(moderator, ban_appeal.id, "uphold", "Confirmed", now=NOW)

        assert appeal.status == AppealStatus.UPHELD

    @pytest.mark.asyncio
    async def test_escalation_hands_appeal_to_admins(self, resolution, moderator, admin, ban, ban_appeal):
        appeal_id = ban_appeal.id
        appeal = await resolution.escalate(moderator, appeal_id, "I issued this ban myself", now=NOW)

        assert appeal.is_escalated
        assert appeal.status == AppealStatus.UNDER_REVIEW

        with pytest.raises(AuthorizationError):
            await resolution.resolve(moderator, appeal_id, "overturn", "Lift", now=NOW)

        resolved = await resolution.resolve(admin, appeal_id, "overturn", "Lift", now=NOW)
        assert resolved.status == AppealStatus.OVERTURNED
        assert not ban.is_active

    @pytest.mark.asyncio
    async def test_escalation_requires_note(self, resolution, moderator, ban_appeal):
        with pytest.raises(ValidationError):
            await resolution.escalate(moderator, ban_appeal.id, "", now=NOW)

    @pytest.mark.asyncio
    async def test_admin_cannot_escalate(self, resolution, admin, ban_appeal):
        with pytest.raises(AuthorizationError):
            await resolution.escalate(admin, ban_appeal.id, "to whom?", now=NOW)

    @pytest.mark.asyncio
    async def test_escalate_twice_is_conflict(self, resolution, moderator, ban_appeal):
        await resolution.escalate(moderator, ban_appeal.id, "conflict of interest", now=NOW)

        with pytest.raises(ConflictError):
            await resolution.escalate(moderator, ban_appeal.id, "again", now=NOW)
