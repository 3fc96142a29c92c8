"""
Acting principals and the single authority check.

A principal is one of Member, Moderator (bound to one community) or Admin.
Every scope decision in the engine goes through can_act_at().
"""
from dataclasses import dataclass
from typing import Optional, Union

from tribunal.core.constants import Role, SanctionScope
from tribunal.core.errors import AuthorizationError, ValidationError


@dataclass(frozen=True)
class Member:
    user_id: str

    @property
    def role(self) -> Role:
        return Role.MEMBER


@dataclass(frozen=True)
class Moderator:
    user_id: str
    community_id: str

    @property
    def role(self) -> Role:
        return Role.MODERATOR


@dataclass(frozen=True)
class Admin:
    user_id: str

    @property
    def role(self) -> Role:
        return Role.ADMIN


Principal = Union[Member, Moderator, Admin]


def can_act_at(
    principal: Principal,
    required_tier: SanctionScope,
    target_community: Optional[str] = None,
) -> bool:
    """
    Return True if the principal's authority covers the requested tier.

    Admins act at any tier. Moderators act only at community tier and only
    inside the community they moderate. Members never act.
    """
    if isinstance(principal, Admin):
        return True
    if isinstance(principal, Moderator):
        return (
            required_tier == SanctionScope.COMMUNITY
            and target_community is not None
            and target_community == principal.community_id
        )
    return False


def require_authority(
    principal: Principal,
    required_tier: SanctionScope,
    target_community: Optional[str] = None,
    action: str = "perform this action",
) -> None:
    """Raise AuthorizationError unless can_act_at() allows the principal."""
    if can_act_at(principal, required_tier, target_community):
        return
    if isinstance(principal, Member):
        raise AuthorizationError(f"Moderator or admin role required to {action}")
    if required_tier == SanctionScope.PLATFORM:
        raise AuthorizationError(f"Platform scope requires an admin to {action}")
    raise AuthorizationError(
        f"Moderators may only {action} in the community they moderate"
    )


def build_principal(
    user_id: str,
    role: str,
    community_id: Optional[str] = None,
) -> Principal:
    """Build a principal from gateway-supplied identity fields."""
    try:
        parsed = Role(role)
    except ValueError:
        raise ValidationError(f"Unknown role: {role}")

    if parsed == Role.ADMIN:
        return Admin(user_id=user_id)
    if parsed == Role.MODERATOR:
        if not community_id:
            raise ValidationError("Moderator principal requires a community id")
        return Moderator(user_id=user_id, community_id=community_id)
    return Member(user_id=user_id)
