"""
Report intake service.

Handles:
- Validating and recording abuse reports against one piece of content
- Duplicate-report suppression and per-reporter rate limiting
- Severity classification
- Report review transitions (begin review, dismiss) and the moderation queue
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from tribunal.core.config import settings
from tribunal.core.constants import (
    OPEN_REPORT_STATUSES,
    ContentKind,
    ReportStatus,
    SanctionScope,
    ViolationCategory,
)
from tribunal.core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from tribunal.core.principal import Admin, Member, Moderator, Principal, require_authority
from tribunal.core.utils import utcnow
from tribunal.db.transaction import atomic, with_store_retry
from tribunal.models.report import TARGET_COLUMNS, Report
from tribunal.repositories.audit_repo import AuditRepository
from tribunal.repositories.report_repo import ReportRepository
from tribunal.services.collaborators import (
    ContentDirectory,
    ReporterEligibility,
    ReputationEligibility,
    SqlContentDirectory,
)
from tribunal.services.severity import classify_severity

logger = structlog.get_logger()


@dataclass(frozen=True)
class ReportTarget:
    """Reference to reported content. Exactly one field must be set."""

    topic_id: Optional[str] = None
    reply_id: Optional[str] = None
    post_id: Optional[str] = None
    comment_id: Optional[str] = None

    @classmethod
    def of(cls, kind: ContentKind | str, content_id: str) -> "ReportTarget":
        return cls(**{TARGET_COLUMNS[ContentKind(kind)]: content_id})

    def resolve(self) -> tuple[ContentKind, str]:
        """
        Return the (kind, id) pair this target points at.

        Raises:
            ValidationError: If zero or several fields are set
        """
        chosen = [
            (kind, getattr(self, column))
            for kind, column in TARGET_COLUMNS.items()
            if getattr(self, column)
        ]
        if len(chosen) != 1:
            raise ValidationError(
                "Exactly one of topic_id, reply_id, post_id or comment_id must be set"
            )
        return chosen[0]


def parse_category(category: ViolationCategory | str) -> ViolationCategory:
    try:
        return ViolationCategory(category)
    except ValueError:
        raise ValidationError(f"Unknown violation category: {category}")


def check_explanation(category: ViolationCategory, explanation: Optional[str]) -> Optional[str]:
    """
    Enforce the free-text rule for the "other" category.

    Returns the explanation stripped of surrounding whitespace, or None.
    """
    text = (explanation or "").strip()
    if category == ViolationCategory.OTHER and len(text) < settings.other_explanation_min_length:
        raise ValidationError(
            f"Reports in category 'other' need an explanation of at least "
            f"{settings.other_explanation_min_length} characters"
        )
    return text or None


class ReportIntake:
    """Service for receiving and triaging abuse reports."""

    def __init__(
        self,
        db: AsyncSession,
        content: Optional[ContentDirectory] = None,
        eligibility: Optional[ReporterEligibility] = None,
    ):
        self.db = db
        self.reports = ReportRepository(db)
        self.audit = AuditRepository(db)
        self.content = content or SqlContentDirectory(db)
        self.eligibility = eligibility or ReputationEligibility(db)

    async def submit(
        self,
        reporter_id: str,
        target: ReportTarget,
        category: ViolationCategory | str,
        explanation: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> Report:
        """
        Validate and record a report.

        A single ``now`` is pinned for the whole request: it anchors both
        rate-limit windows, the dedup window and the new row's timestamp.

        Raises:
            ValidationError: Bad target, unknown category, short "other" explanation
            AuthorizationError: Reporter is not eligible to file reports
            NotFoundError: Target content does not exist
            ConflictError: Same reporter reported the same target within the dedup window
            RateLimitError: Hourly or daily cap reached
        """
        now = now or utcnow()
        kind, target_id = target.resolve()
        category = parse_category(category)
        text = check_explanation(category, explanation)

        return await with_store_retry(
            lambda: self._submit(reporter_id, kind, target_id, category, text, now),
            context={"operation": "report.submit", "reporter_id": reporter_id},
        )

    async def _submit(
        self,
        reporter_id: str,
        kind: ContentKind,
        target_id: str,
        category: ViolationCategory,
        explanation: Optional[str],
        now: datetime,
    ) -> Report:
        async with atomic(self.db):
            if not await self.eligibility.is_eligible(reporter_id):
                raise AuthorizationError("Reporter is not eligible to submit reports")

            content = await self.content.lookup(kind, target_id)
            if content is None:
                raise NotFoundError(f"{kind.value.capitalize()} not found")

            # Count-then-insert runs under the reporter lock
            await self.eligibility.lock_reporter(reporter_id)

            dedup_since = now - timedelta(hours=settings.report_dedup_window_hours)
            duplicate = await self.reports.find_recent_duplicate(reporter_id, kind, target_id, dedup_since)
            if duplicate is not None:
                raise ConflictError(
                    "You have already reported this content recently",
                    report_id=duplicate.id,
                )

            hourly, daily = await self.reports.count_windows(
                reporter_id,
                hour_start=now - timedelta(hours=1),
                day_start=now - timedelta(hours=24),
            )
            if hourly >= settings.report_hourly_limit:
                raise RateLimitError(
                    f"Report limit reached: {settings.report_hourly_limit} reports per hour",
                    retry_after=3600,
                )
            if daily >= settings.report_daily_limit:
                raise RateLimitError(
                    f"Report limit reached: {settings.report_daily_limit} reports per day",
                    retry_after=86400,
                )

            report = Report(
                reporter_id=reporter_id,
                violation_category=category,
                severity_level=classify_severity(category),
                status=ReportStatus.PENDING,
                explanation=explanation,
                community_id=content.community_id,
                created_at=now,
                updated_at=now,
                **{TARGET_COLUMNS[kind]: target_id},
            )
            await self.reports.add(report)

            await self.audit.record(
                Member(user_id=reporter_id),
                "report.submitted",
                "report",
                report.id,
                created_at=now,
                target_kind=kind,
                target_id=target_id,
                category=category,
                severity=report.severity_level,
            )

        logger.info(
            "Report submitted",
            report_id=report.id,
            reporter_id=reporter_id,
            target_kind=kind.value,
            category=category.value,
            severity=report.severity_level.value,
        )
        return report

    async def begin_review(
        self,
        principal: Principal,
        report_id: str,
        *,
        now: Optional[datetime] = None,
    ) -> Report:
        """Move a pending report to under_review."""
        now = now or utcnow()
        async with atomic(self.db):
            report = await self._get_for_review(principal, report_id, "review reports")
            if ReportStatus(report.status) != ReportStatus.PENDING:
                raise ConflictError(f"Report is already {ReportStatus(report.status).value}")
            report.status = ReportStatus.UNDER_REVIEW
            report.reviewed_by = principal.user_id
            await self.audit.record(principal, "report.review_started", "report", report.id, created_at=now)

        logger.info("Report review started", report_id=report.id, reviewer_id=principal.user_id)
        return report

    async def dismiss(
        self,
        principal: Principal,
        report_id: str,
        note: str,
        *,
        now: Optional[datetime] = None,
    ) -> Report:
        """Close an open report without action."""
        now = now or utcnow()
        if not note or not note.strip():
            raise ValidationError("A dismissal note is required")

        async with atomic(self.db):
            report = await self._get_for_review(principal, report_id, "dismiss reports")
            if ReportStatus(report.status) not in OPEN_REPORT_STATUSES:
                raise ConflictError(f"Report is already {ReportStatus(report.status).value}")
            report.status = ReportStatus.DISMISSED
            report.reviewed_by = principal.user_id
            report.reviewed_at = now
            report.resolution_note = note.strip()
            await self.audit.record(principal, "report.dismissed", "report", report.id, created_at=now)

        logger.info("Report dismissed", report_id=report.id, reviewer_id=principal.user_id)
        return report

    async def attach_outcome(
        self,
        principal: Principal,
        report_id: str,
        status: ReportStatus,
        *,
        target: Optional[tuple[ContentKind, str]] = None,
        sanctioned_member_id: Optional[str] = None,
        now: datetime,
    ) -> Report:
        """
        Record that a sanction was applied on the basis of a report.

        The principal must have authority over the report's community. A
        content removal must act on the reported content (``target``); a ban
        or suspension must sanction the author of the reported content
        (``sanctioned_member_id``).

        Runs inside the caller's transaction so the report and the sanction
        commit together.
        """
        if status not in (ReportStatus.UNDER_REVIEW, ReportStatus.RESOLVED):
            raise ValidationError("Report outcome must be under_review or resolved")

        report = await self.reports.get_by_id(report_id, for_update=True)
        if report is None:
            raise NotFoundError("Report not found")
        require_authority(principal, SanctionScope.COMMUNITY, report.community_id, "act on reports")
        if target is not None and (report.target_kind, report.target_id) != (target[0], target[1]):
            raise ValidationError("Report does not reference the actioned content")
        if sanctioned_member_id is not None:
            content = await self.content.lookup(report.target_kind, report.target_id)
            if content is None or content.author_id != sanctioned_member_id:
                raise ValidationError("Report does not concern the sanctioned member")

        current = ReportStatus(report.status)
        if current == ReportStatus.DISMISSED:
            raise ConflictError("A dismissed report cannot back a sanction")
        # Never move a resolved report backwards
        if current != ReportStatus.RESOLVED:
            report.status = status
        report.reviewed_by = principal.user_id
        if ReportStatus(report.status) == ReportStatus.RESOLVED:
            report.reviewed_at = now
        return report

    async def moderation_queue(
        self,
        principal: Principal,
        *,
        status: Optional[ReportStatus] = None,
        limit: int = 50,
    ) -> Sequence[Report]:
        """
        Reports awaiting review, most severe first.

        Moderators see their own community; admins see everything.
        """
        statuses = [status] if status is not None else sorted(OPEN_REPORT_STATUSES, key=lambda s: s.value)
        if isinstance(principal, Admin):
            return await self.reports.queue(statuses=statuses, limit=limit)
        if isinstance(principal, Moderator):
            return await self.reports.queue(
                community_id=principal.community_id,
                statuses=statuses,
                limit=limit,
            )
        raise AuthorizationError("Moderator or admin role required to view the moderation queue")

    async def _get_for_review(self, principal: Principal, report_id: str, action: str) -> Report:
        report = await self.reports.get_by_id(report_id, for_update=True)
        if report is None:
            raise NotFoundError("Report not found")
        require_authority(principal, SanctionScope.COMMUNITY, report.community_id, action)
        return report
