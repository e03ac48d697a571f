"""
Read-only view of the organisation used by eligibility and the
evaluation workflow: who sits where, at which level.
"""
from dataclasses import dataclass, field
from typing import Optional, Tuple

from django.contrib.auth import get_user_model

from accounts.models import LifecycleState
from evaluation_app.exceptions import NotFound
from evaluation_app.models import Evaluation, UserDepartment, rank_of

User = get_user_model()

__all__ = [
    "Membership", "PrimaryProfile", "get_active_memberships",
    "get_primary_profile", "count_evaluations_referencing_cycle", "rank_of",
]


@dataclass(frozen=True)
class Membership:
    department_id: object
    level: str

    @property
    def rank(self) -> int:
        return rank_of(self.level)

    @property
    def is_valid(self) -> bool:
        return self.department_id is not None and bool(self.level)


@dataclass(frozen=True)
class PrimaryProfile:
    user_id: object
    role: str
    primary_department_id: Optional[object] = None
    primary_level: Optional[str] = None
    memberships: Tuple[Membership, ...] = field(default_factory=tuple)


def get_active_memberships(user_id) -> Tuple[Membership, ...]:
    """Current memberships of a user; memberships in soft-deleted departments are skipped."""
    rows = (
        UserDepartment.objects
        .filter(
            user_id=user_id,
            is_active=True,
            ended_at__isnull=True,
            department__state=LifecycleState.ACTIVE,
        )
        .values_list("department_id", "level")
    )
    return tuple(Membership(department_id=d, level=lv) for d, lv in rows)


def get_primary_profile(user_id) -> PrimaryProfile:
    user = (
        User.objects
        .select_related("primary_membership__department")
        .filter(pk=user_id)
        .first()
    )
    if user is None:
        raise NotFound("User not found.")

    primary = user.primary_membership
    if primary is not None and not (primary.is_current and not primary.department.is_deleted):
        primary = None

    return PrimaryProfile(
        user_id=user.pk,
        role=(user.role or "").strip().upper(),
        primary_department_id=primary.department_id if primary else None,
        primary_level=primary.level if primary else None,
        memberships=get_active_memberships(user.pk),
    )


def count_evaluations_referencing_cycle(cycle_id) -> int:
    return Evaluation.objects.filter(cycle_id=cycle_id).count()
