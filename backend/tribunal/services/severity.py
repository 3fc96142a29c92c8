"""
Severity classification for reported violations.

The table is evaluated in priority order and the first matching row wins.
Categories not listed fall through to LOW.
"""
from tribunal.core.constants import SeverityLevel, ViolationCategory

SEVERITY_TABLE: tuple[tuple[frozenset[ViolationCategory], SeverityLevel], ...] = (
    (
        frozenset({
            ViolationCategory.HATE_SPEECH,
            ViolationCategory.THREATS,
            ViolationCategory.DOXXING,
        }),
        SeverityLevel.CRITICAL,
    ),
    (
        frozenset({
            ViolationCategory.PERSONAL_ATTACK,
            ViolationCategory.OFFENSIVE_LANGUAGE,
        }),
        SeverityLevel.HIGH,
    ),
    (
        frozenset({
            ViolationCategory.MISINFORMATION,
            ViolationCategory.SPAM,
            ViolationCategory.TROLLING,
        }),
        SeverityLevel.MEDIUM,
    ),
)

DEFAULT_SEVERITY = SeverityLevel.LOW


def classify_severity(category: ViolationCategory | str) -> SeverityLevel:
    """Map a violation category to its severity level."""
    category = ViolationCategory(category)
    for categories, level in SEVERITY_TABLE:
        if category in categories:
            return level
    return DEFAULT_SEVERITY
