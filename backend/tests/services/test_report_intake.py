"""Tests for report intake: validation, dedup, rate limits and review."""
from datetime import timedelta

import pytest
from sqlalchemy import select

from conftest import COMMUNITY_ID, NOW
from tribunal.core.constants import ReportStatus, SeverityLevel, ViolationCategory
from tribunal.core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from tribunal.core.principal import Member
from tribunal.models import ModerationAuditLog
from tribunal.services.report_intake import ReportIntake, ReportTarget


@pytest.fixture
def intake(db_session):
    return ReportIntake(db_session)


class TestReportTarget:
    def test_resolves_single_target(self):
        assert ReportTarget(reply_id="r1").resolve()[1] == "r1"

    def test_rejects_no_target(self):
        with pytest.raises(ValidationError):
            ReportTarget().resolve()

    def test_rejects_two_targets(self):
        with pytest.raises(ValidationError):
            ReportTarget(topic_id="t1", post_id="p1").resolve()


class TestSubmit:
    """Report submission rules."""

    @pytest.mark.asyncio
    async def test_creates_pending_report_with_severity(self, intake, reporter, topic):
        report = await intake.submit(
            reporter.id, ReportTarget(topic_id=topic.id), "spam", now=NOW
        )

        assert report.status == ReportStatus.PENDING
        assert report.severity_level == SeverityLevel.MEDIUM
        assert report.topic_id == topic.id
        assert report.community_id == COMMUNITY_ID

    @pytest.mark.asyncio
    async def test_writes_audit_entry(self, intake, db_session, reporter, topic):
        report = await intake.submit(reporter.id, ReportTarget(topic_id=topic.id), "threats", now=NOW)

        result = await db_session.execute(
            select(ModerationAuditLog).where(ModerationAuditLog.entity_id == report.id)
        )
        entry = result.scalar_one()
        assert entry.event == "report.submitted"
        assert entry.details["severity"] == "critical"

    @pytest.mark.asyncio
    async def test_unknown_category_rejected(self, intake, reporter, topic):
        with pytest.raises(ValidationError):
            await intake.submit(reporter.id, ReportTarget(topic_id=topic.id), "rudeness", now=NOW)

    @pytest.mark.asyncio
    async def test_other_needs_twenty_characters(self, intake, reporter, topic):
        with pytest.raises(ValidationError):
            await intake.submit(
                reporter.id, ReportTarget(topic_id=topic.id), "other", "x" * 19, now=NOW
            )

    @pytest.mark.asyncio
    async def test_other_exactly_twenty_characters_accepted(self, intake, reporter, topic):
        report = await intake.submit(
            reporter.id, ReportTarget(topic_id=topic.id), "other", "x" * 20, now=NOW
        )
        assert report.severity_level == SeverityLevel.LOW

    @pytest.mark.asyncio
    async def test_other_explanation_is_trimmed_before_counting(self, intake, reporter, topic):
        with pytest.raises(ValidationError):
            await intake.submit(
                reporter.id, ReportTarget(topic_id=topic.id), "other", "   " + "x" * 19 + "   ", now=NOW
            )

    @pytest.mark.asyncio
    async def test_missing_content_is_not_found(self, intake, reporter):
        with pytest.raises(NotFoundError):
            await intake.submit(reporter.id, ReportTarget(topic_id="no-such-topic"), "spam", now=NOW)

    @pytest.mark.asyncio
    async def test_wrong_kind_is_not_found(self, intake, reporter, topic):
        with pytest.raises(NotFoundError):
            await intake.submit(reporter.id, ReportTarget(reply_id=topic.id), "spam", now=NOW)

    @pytest.mark.asyncio
    async def test_ineligible_reporter_rejected(self, intake, low_rep_member, topic):
        with pytest.raises(AuthorizationError):
            await intake.submit(low_rep_member.id, ReportTarget(topic_id=topic.id), "spam", now=NOW)

    @pytest.mark.asyncio
    async def test_unknown_reporter_rejected(self, intake, topic):
        with pytest.raises(AuthorizationError):
            await intake.submit("ghost", ReportTarget(topic_id=topic.id), "spam", now=NOW)


class TestDuplicateSuppression:
    @pytest.mark.asyncio
    async def test_same_target_within_window_is_conflict(self, intake, reporter, topic):
        target = ReportTarget(topic_id=topic.id)
        await intake.submit(reporter.id, target, "spam", now=NOW)

        with pytest.raises(ConflictError):
            await intake.submit(reporter.id, target, "trolling", now=NOW + timedelta(hours=23, minutes=59))

    @pytest.mark.asyncio
    async def test_same_target_after_window_is_accepted(self, intake, reporter, topic):
        target = ReportTarget(topic_id=topic.id)
        first = await intake.submit(reporter.id, target, "spam", now=NOW)
        second = await intake.submit(reporter.id, target, "spam", now=NOW + timedelta(hours=24))
        assert second.id != first.id

    @pytest.mark.asyncio
    async def test_other_reporter_may_report_same_target(self, intake, db_session, reporter, topic):
        from tribunal.models import Member as MemberRow

        second_reporter = MemberRow(username="second", reputation_score=5)
        db_session.add(second_reporter)
        await db_session.commit()

        target = ReportTarget(topic_id=topic.id)
        await intake.submit(reporter.id, target, "spam", now=NOW)
        await intake.submit(second_reporter.id, target, "spam", now=NOW)


class TestRateLimits:
    @pytest.mark.asyncio
    async def test_eleventh_report_in_an_hour_is_rate_limited(self, intake, reporter, topics):
        for i in range(10):
            await intake.submit(
                reporter.id, ReportTarget(topic_id=topics[i].id), "spam", now=NOW + timedelta(minutes=5 * i)
            )

        with pytest.raises(RateLimitError) as excinfo:
            await intake.submit(
                reporter.id, ReportTarget(topic_id=topics[10].id), "spam", now=NOW + timedelta(minutes=55)
            )
        assert excinfo.value.retry_after == 3600

    @pytest.mark.asyncio
    async def test_reports_older_than_an_hour_do_not_count(self, intake, reporter, topics):
        for i in range(10):
            await intake.submit(reporter.id, ReportTarget(topic_id=topics[i].id), "spam", now=NOW)

        report = await intake.submit(
            reporter.id, ReportTarget(topic_id=topics[10].id), "spam", now=NOW + timedelta(hours=1)
        )
        assert report.status == ReportStatus.PENDING

    @pytest.mark.asyncio
    async def test_fifty_first_report_in_a_day_is_rate_limited(self, intake, reporter, topics):
        # 25 minutes apart keeps every trailing hour under the hourly cap
        for i in range(50):
            await intake.submit(
                reporter.id, ReportTarget(topic_id=topics[i].id), "spam", now=NOW + timedelta(minutes=25 * i)
            )

        with pytest.raises(RateLimitError) as excinfo:
            await intake.submit(
                reporter.id, ReportTarget(topic_id=topics[50].id), "spam", now=NOW + timedelta(minutes=25 * 50)
            )
        assert excinfo.value.retry_after == 86400


class TestReview:
    """Review transitions and the moderation queue."""

    @pytest.mark.asyncio
    async def test_begin_review_moves_to_under_review(self, intake, reporter, topic, moderator):
        report = await intake.submit(reporter.id, ReportTarget(topic_id=topic.id), "spam", now=NOW)

        reviewed = await intake.begin_review(moderator, report.id, now=NOW)

        assert reviewed.status == ReportStatus.UNDER_REVIEW
        assert reviewed.reviewed_by == moderator.user_id

    @pytest.mark.asyncio
    async def test_begin_review_twice_is_conflict(self, intake, reporter, topic, moderator):
        report = await intake.submit(reporter.id, ReportTarget(topic_id=topic.id), "spam", now=NOW)
        await intake.begin_review(moderator, report.id, now=NOW)

        with pytest.raises(ConflictError):
            await intake.begin_review(moderator, report.id, now=NOW)

    @pytest.mark.asyncio
    async def test_moderator_of_other_community_cannot_review(self, intake, reporter, topic, other_moderator):
        report = await intake.submit(reporter.id, ReportTarget(topic_id=topic.id), "spam", now=NOW)

        with pytest.raises(AuthorizationError):
            await intake.begin_review(other_moderator, report.id, now=NOW)

    @pytest.mark.asyncio
    async def test_dismiss_requires_note(self, intake, reporter, topic, moderator):
        report = await intake.submit(reporter.id, ReportTarget(topic_id=topic.id), "spam", now=NOW)

        with pytest.raises(ValidationError):
            await intake.dismiss(moderator, report.id, "   ", now=NOW)

    @pytest.mark.asyncio
    async def test_dismiss_closes_report(self, intake, reporter, topic, admin):
        report = await intake.submit(reporter.id, ReportTarget(topic_id=topic.id), "spam", now=NOW)

        dismissed = await intake.dismiss(admin, report.id, "Not spam, just enthusiastic", now=NOW)

        assert dismissed.status == ReportStatus.DISMISSED
        assert dismissed.resolution_note == "Not spam, just enthusiastic"
        with pytest.raises(ConflictError):
            await intake.dismiss(admin, report.id, "again", now=NOW)

    @pytest.mark.asyncio
    async def test_missing_report_is_not_found(self, intake, moderator):
        with pytest.raises(NotFoundError):
            await intake.begin_review(moderator, "missing", now=NOW)

    @pytest.mark.asyncio
    async def test_queue_orders_by_severity_then_age(self, intake, reporter, topics, moderator):
        low = await intake.submit(reporter.id, ReportTarget(topic_id=topics[0].id), "off_topic", now=NOW)
        critical = await intake.submit(
            reporter.id, ReportTarget(topic_id=topics[1].id), "threats", now=NOW + timedelta(minutes=1)
        )
        medium_old = await intake.submit(
            reporter.id, ReportTarget(topic_id=topics[2].id), "spam", now=NOW + timedelta(minutes=2)
        )
        medium_new = await intake.submit(
            reporter.id, ReportTarget(topic_id=topics[3].id), "trolling", now=NOW + timedelta(minutes=3)
        )

        queue = await intake.moderation_queue(moderator)

        assert [r.id for r in queue] == [critical.id, medium_old.id, medium_new.id, low.id]

    @pytest.mark.asyncio
    async def test_queue_is_scoped_to_moderator_community(
        self, intake, reporter, topic, other_topic, moderator, other_moderator, admin
    ):
        await intake.submit(reporter.id, ReportTarget(topic_id=topic.id), "spam", now=NOW)
        await intake.submit(reporter.id, ReportTarget(topic_id=other_topic.id), "spam", now=NOW)

        assert len(await intake.moderation_queue(moderator)) == 1
        assert len(await intake.moderation_queue(other_moderator)) == 1
        assert len(await intake.moderation_queue(admin)) == 2

    @pytest.mark.asyncio
    async def test_queue_excludes_closed_reports(self, intake, reporter, topic, admin):
        report = await intake.submit(reporter.id, ReportTarget(topic_id=topic.id), "spam", now=NOW)
        await intake.dismiss(admin, report.id, "fine", now=NOW)

        assert await intake.moderation_queue(admin) == []

    @pytest.mark.asyncio
    async def test_members_cannot_see_queue(self, intake, reporter):
        with pytest.raises(AuthorizationError):
            await intake.moderation_queue(Member(user_id=reporter.id))


def test_category_enum_covers_ten_categories():
    assert len(ViolationCategory) == 10
