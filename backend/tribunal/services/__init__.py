"""
Business logic services.
"""
from tribunal.services.appeal_process import AppealProcess, SanctionRef
from tribunal.services.appeal_resolution import AppealResolution
from tribunal.services.report_intake import ReportIntake, ReportTarget
from tribunal.services.sanction_authority import SanctionAuthority
from tribunal.services.severity import classify_severity

__all__ = [
    "AppealProcess",
    "AppealResolution",
    "ReportIntake",
    "ReportTarget",
    "SanctionAuthority",
    "SanctionRef",
    "classify_severity",
]
