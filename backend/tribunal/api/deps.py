"""
API dependencies for identity and service wiring.

Identity is asserted by the upstream gateway in request headers; this
service trusts them and turns them into a Principal.
"""
from typing import Annotated, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from tribunal.core.errors import AuthorizationError
from tribunal.core.logging import bind_principal
from tribunal.core.principal import Principal, build_principal
from tribunal.db.session import get_db
from tribunal.services.appeal_process import AppealProcess
from tribunal.services.appeal_resolution import AppealResolution
from tribunal.services.report_intake import ReportIntake
from tribunal.services.sanction_authority import SanctionAuthority


async def get_principal(
    x_user_id: Annotated[Optional[str], Header()] = None,
    x_user_role: Annotated[Optional[str], Header()] = None,
    x_community_id: Annotated[Optional[str], Header()] = None,
) -> Principal:
    """
    Build the acting principal from gateway headers.

    Raises AuthorizationError (403) when no identity is supplied and
    ValidationError (400) for an unknown role or a moderator without a
    community.
    """
    if not x_user_id:
        raise AuthorizationError("Missing X-User-Id header")
    principal = build_principal(x_user_id, x_user_role or "member", x_community_id)
    bind_principal(principal)
    return principal


DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentPrincipal = Annotated[Principal, Depends(get_principal)]


def get_report_intake(db: DbSession) -> ReportIntake:
    return ReportIntake(db)


def get_sanction_authority(db: DbSession) -> SanctionAuthority:
    return SanctionAuthority(db)


def get_appeal_process(db: DbSession) -> AppealProcess:
    return AppealProcess(db)


def get_appeal_resolution(db: DbSession) -> AppealResolution:
    return AppealResolution(db)


Intake = Annotated[ReportIntake, Depends(get_report_intake)]
Authority = Annotated[SanctionAuthority, Depends(get_sanction_authority)]
Appeals = Annotated[AppealProcess, Depends(get_appeal_process)]
Resolution = Annotated[AppealResolution, Depends(get_appeal_resolution)]
