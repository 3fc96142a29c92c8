"""
Repository layer for data access.

Repositories provide a clean abstraction over the database,
hiding the details of SQL queries and ORM operations from
the moderation services. One repository per aggregate.
"""
from tribunal.repositories.base import BaseRepository
from tribunal.repositories.report_repo import ReportRepository
from tribunal.repositories.sanction_repo import Sanction, SanctionRegistry
from tribunal.repositories.appeal_repo import AppealRepository
from tribunal.repositories.audit_repo import AuditRepository
from tribunal.repositories.community_repo import ContentRepository, MemberRepository

__all__ = [
    "BaseRepository",
    "ReportRepository",
    "Sanction",
    "SanctionRegistry",
    "AppealRepository",
    "AuditRepository",
    "ContentRepository",
    "MemberRepository",
]
