"""Tests for appeal submission."""
from datetime import timedelta

import pytest
import pytest_asyncio

from conftest import COMMUNITY_ID, NOW
from tribunal.core.config import settings
from tribunal.core.constants import AppealStatus, SanctionKind
from tribunal.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from tribunal.models import ContentItem
from tribunal.services.appeal_process import AppealProcess, SanctionRef
from tribunal.services.appeal_resolution import AppealResolution
from tribunal.services.sanction_authority import SanctionAuthority


@pytest.fixture
def appeals(db_session):
    return AppealProcess(db_session)


@pytest.fixture
def authority(db_session):
    return SanctionAuthority(db_session)


@pytest.fixture
def resolution(db_session):
    return AppealResolution(db_session)


@pytest_asyncio.fixture
async def removal(authority, moderator, topic):
    return await authority.apply_action(
        moderator, "topic", topic.id, "remove", "community", "spam", "Advertising", now=NOW
    )


@pytest_asyncio.fixture
async def ban(authority, moderator, author):
    return await authority.apply_ban(
        moderator, author.id, COMMUNITY_ID, "personal_attack", "Harassment", True, now=NOW
    )


class TestSanctionRef:
    def test_requires_exactly_one_reference(self):
        with pytest.raises(ValidationError):
            SanctionRef().resolve()
        with pytest.raises(ValidationError):
            SanctionRef(moderation_action_id="a", community_ban_id="b").resolve()

    def test_of_builds_reference(self):
        assert SanctionRef.of(SanctionKind.COMMUNITY_BAN, "b").resolve() == (SanctionKind.COMMUNITY_BAN, "b")


class TestSubmitAppeal:
    @pytest.mark.asyncio
    async def test_author_appeals_removal(self, appeals, author, removal):
        appeal = await appeals.submit(
            author.id,
            SanctionRef(moderation_action_id=removal.id),
            "content_removal",
            "It was a genuine question",
            now=NOW + timedelta(hours=1),
        )

        assert appeal.status == AppealStatus.PENDING
        assert appeal.is_escalated is False
        assert appeal.moderation_action_id == removal.id
        assert appeal.expected_resolution_at == NOW + timedelta(hours=1) + timedelta(days=settings.appeal_sla_days)

    @pytest.mark.asyncio
    async def test_type_must_match_reference(self, appeals, author, removal):
        with pytest.raises(ValidationError):
            await appeals.submit(
                author.id, SanctionRef(moderation_action_id=removal.id), "community_ban", "text", now=NOW
            )

    @pytest.mark.asyncio
    async def test_empty_text_rejected(self, appeals, author, ban):
        with pytest.raises(ValidationError):
            await appeals.submit(author.id, SanctionRef(community_ban_id=ban.id), "community_ban", "  ", now=NOW)

    @pytest.mark.asyncio
    async def test_missing_sanction_is_not_found(self, appeals, author):
        with pytest.raises(NotFoundError):
            await appeals.submit(
                author.id, SanctionRef(community_ban_id="missing"), "community_ban", "text", now=NOW
            )

    @pytest.mark.asyncio
    async def test_only_sanctioned_member_may_appeal(self, appeals, reporter, ban):
        with pytest.raises(AuthorizationError):
            await appeals.submit(
                reporter.id, SanctionRef(community_ban_id=ban.id), "community_ban", "text", now=NOW
            )

    @pytest.mark.asyncio
    async def test_non_appealable_ban_rejected(self, appeals, db_session, author, ban):
        ban.is_appealable = False
        await db_session.commit()

        with pytest.raises(AuthorizationError):
            await appeals.submit(author.id, SanctionRef(community_ban_id=ban.id), "community_ban", "text", now=NOW)

    @pytest.mark.asyncio
    async def test_appeal_window_closes(self, appeals, author, ban):
        late = NOW + timedelta(days=settings.appeal_window_days, seconds=1)
        with pytest.raises(ValidationError):
            await appeals.submit(author.id, SanctionRef(community_ban_id=ban.id), "community_ban", "text", now=late)

    @pytest.mark.asyncio
    async def test_second_open_appeal_is_conflict(self, appeals, author, ban):
        ref = SanctionRef(community_ban_id=ban.id)
        await appeals.submit(author.id, ref, "community_ban", "first", now=NOW)

        with pytest.raises(ConflictError):
            await appeals.submit(author.id, ref, "community_ban", "second", now=NOW)

    @pytest.mark.asyncio
    async def test_reappeal_after_resolution(self, appeals, resolution, author, moderator, ban):
        ref = SanctionRef(community_ban_id=ban.id)
        first = await appeals.submit(author.id, ref, "community_ban", "first", now=NOW)
        await resolution.resolve(moderator, first.id, "uphold", "Harassment confirmed", now=NOW)

        second = await appeals.submit(author.id, ref, "community_ban", "new evidence", now=NOW + timedelta(days=1))

        assert second.id != first.id
        assert second.status == AppealStatus.PENDING

    @pytest.mark.asyncio
    async def test_open_appeal_cap(self, appeals, authority, db_session, moderator, author):
        items = [ContentItem(kind="topic", author_id=author.id, community_id=COMMUNITY_ID) for _ in range(6)]
        db_session.add_all(items)
        await db_session.commit()

        for item in items[:5]:
            action = await authority.apply_action(
                moderator, "topic", item.id, "remove", "community", "spam", "Advertising", now=NOW
            )
            await appeals.submit(
                author.id, SanctionRef(moderation_action_id=action.id), "content_removal", "please", now=NOW
            )

        action = await authority.apply_action(
            moderator, "topic", items[5].id, "remove", "community", "spam", "Advertising", now=NOW
        )
        with pytest.raises(ValidationError):
            await appeals.submit(
                author.id, SanctionRef(moderation_action_id=action.id), "content_removal", "please", now=NOW
            )


class TestGetAppeal:
    @pytest.mark.asyncio
    async def test_visible_to_appellant_and_reviewer(self, appeals, author, author_principal, moderator, ban):
        appeal = await appeals.submit(author.id, SanctionRef(community_ban_id=ban.id), "community_ban", "t", now=NOW)

        assert (await appeals.get(author_principal, appeal.id)).id == appeal.id
        assert (await appeals.get(moderator, appeal.id)).id == appeal.id

    @pytest.mark.asyncio
    async def test_hidden_from_other_moderators(self, appeals, author, other_moderator, ban):
        appeal = await appeals.submit(author.id, SanctionRef(community_ban_id=ban.id), "community_ban", "t", now=NOW)

        with pytest.raises(AuthorizationError):
            await appeals.get(other_moderator, appeal.id)
