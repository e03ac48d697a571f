from dataclasses import dataclass, field
from typing import Optional, Tuple

from accounts.models import Role
from evaluation_app.exceptions import Forbidden
from evaluation_app.models import PositionLevel
from evaluation_app.services.directory import (
    Membership, PrimaryProfile, get_primary_profile, rank_of,
)

ADMIN_ROLES = frozenset({Role.ADMIN.value, Role.HR.value})


@dataclass(frozen=True)
class AuthorizationContext:
    """
    Everything the workflow needs to know about the caller, resolved once
    per request and passed explicitly to every operation.
    """
    user_id: object
    role: str = ""
    primary_department_id: Optional[object] = None
    primary_level: Optional[str] = None
    memberships: Tuple[Membership, ...] = field(default_factory=tuple)
    privileged: bool = False

    @classmethod
    def from_profile(cls, profile: PrimaryProfile) -> "AuthorizationContext":
        role = (profile.role or "").upper()
        holds_md = any(m.level == PositionLevel.MD for m in profile.memberships)
        primary_md = str(profile.primary_level or "").upper() == PositionLevel.MD
        return cls(
            user_id=profile.user_id,
            role=role,
            primary_department_id=profile.primary_department_id,
            primary_level=profile.primary_level,
            memberships=tuple(profile.memberships),
            privileged=role in ADMIN_ROLES or holds_md or primary_md,
        )

    @classmethod
    def for_user(cls, user_or_id) -> "AuthorizationContext":
        user_id = getattr(user_or_id, "pk", user_or_id)
        return cls.from_profile(get_primary_profile(user_id))

    @property
    def is_admin_or_hr(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def is_complete(self) -> bool:
        """A role plus at least one membership with a department and a level."""
        return bool(self.role) and any(m.is_valid for m in self.memberships)

    def assert_complete(self, who="User"):
        if not self.is_complete:
            raise Forbidden(
                f"{who} profile has no role, department or position level.",
                code="PROFILE_INCOMPLETE",
            )

    def rank_in(self, department_id) -> int:
        """Highest rank held in ``department_id``; -1 when not a member."""
        ranks = [rank_of(m.level) for m in self.memberships if m.department_id == department_id]
        return max(ranks, default=-1)

    @property
    def department_ids(self):
        return {m.department_id for m in self.memberships if m.department_id is not None}
