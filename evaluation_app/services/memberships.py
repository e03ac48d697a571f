"""
Department memberships (placements) and their audit trail.

Every mutation writes a ``PositionChangeLog`` row in the same transaction.
"""
import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from evaluation_app.exceptions import BadRequest, Conflict, NotFound
from evaluation_app.models import (
    ChangeKind, Department, PositionChangeLog, PositionLevel, UserDepartment, rank_of,
)

logger = logging.getLogger(__name__)
User = get_user_model()

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 200


def normalize_level(value) -> str:
    level = str(value or "").strip().upper()
    if level not in PositionLevel.values:
        raise BadRequest(f"Invalid position level: {value!r}")
    return level


def _when(value):
    if value in (None, ""):
        return timezone.now()
    if isinstance(value, str):
        parsed = parse_datetime(value)
        if parsed is None:
            raise BadRequest(f"Invalid date: {value!r}")
        value = parsed
    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


def get_membership(membership_id, for_update=False) -> UserDepartment:
    qs = UserDepartment.objects.select_related("user", "department")
    if for_update:
        qs = qs.select_for_update()
    membership = qs.filter(pk=membership_id).first()
    if membership is None:
        raise NotFound("Membership not found.")
    return membership


def _assert_no_other_md(department_id, exclude_user_id=None, exclude_membership_id=None):
    qs = UserDepartment.objects.filter(
        department_id=department_id,
        level=PositionLevel.MD,
        is_active=True,
        ended_at__isnull=True,
    )
    if exclude_user_id is not None:
        qs = qs.exclude(user_id=exclude_user_id)
    if exclude_membership_id is not None:
        qs = qs.exclude(pk=exclude_membership_id)
    if qs.exists():
        raise Conflict("This department already has an active MD.", code="MD_EXISTS")


def _log(kind, membership, actor, reason, effective_date=None, **overrides):
    values = dict(
        kind=kind,
        user_id=membership.user_id,
        actor=actor,
        from_department_id=membership.department_id,
        to_department_id=membership.department_id,
        from_level=membership.level,
        to_level=membership.level,
        from_name=membership.position_name,
        to_name=membership.position_name,
        reason=reason or "",
        effective_date=effective_date or timezone.now(),
    )
    values.update(overrides)
    return PositionChangeLog.objects.create(**values)


def assign_user_to_department(actor, user_id, department_id, level, position_name=None,
                              started_at=None, make_primary=False) -> UserDepartment:
    """
    Place ``user_id`` in ``department_id`` at ``level``.

    An open membership for the same pair is closed and replaced. The new
    membership becomes primary when the user has none, when the replaced one
    was primary, or when ``make_primary`` is set.
    """
    if not user_id or not department_id or not level:
        raise BadRequest("user_id, department_id and level are required.")
    level = normalize_level(level)
    started_at = _when(started_at)

    user = User.objects.filter(pk=user_id).first()
    if user is None:
        raise NotFound("User not found.")
    if not Department.objects.filter(pk=department_id).exists():
        raise NotFound("Department not found.")

    with transaction.atomic():
        if level == PositionLevel.MD:
            _assert_no_other_md(department_id, exclude_user_id=user.pk)

        superseded = UserDepartment.objects.filter(
            user=user, department_id=department_id, is_active=True, ended_at__isnull=True,
        )
        superseded_ids = set(superseded.values_list("pk", flat=True))
        superseded.update(is_active=False, ended_at=timezone.now())

        membership = UserDepartment.objects.create(
            user=user,
            department_id=department_id,
            level=level,
            position_name=position_name or None,
            started_at=started_at,
        )

        if make_primary or user.primary_membership_id is None or user.primary_membership_id in superseded_ids:
            User.objects.filter(pk=user.pk).update(primary_membership=membership)
            user.primary_membership = membership

        _log(
            ChangeKind.TRANSFER, membership, actor, "assign",
            effective_date=started_at,
            from_department_id=None, from_level=None, from_name=None,
        )

    logger.info("user %s assigned to department %s as %s", user.pk, department_id, level)
    return membership


def end_or_rename_assignment(actor, membership_id, ended_at=None, end=False,
                             position_name=None, rename=False, reason=None,
                             effective_date=None) -> UserDepartment:
    """
    Rename a membership and/or end it. Ending clears the user's primary
    pointer when it pointed at this membership.
    """
    if not (end or rename):
        raise BadRequest("Nothing to change: pass end and/or a new position name.")

    with transaction.atomic():
        membership = get_membership(membership_id, for_update=True)
        old_name = membership.position_name
        update_fields = []

        if end:
            membership.ended_at = _when(ended_at)
            membership.is_active = False
            update_fields += ["ended_at", "is_active"]
        if rename:
            membership.position_name = position_name or None
            update_fields.append("position_name")

        membership.save(update_fields=update_fields)

        if end:
            User.objects.filter(
                pk=membership.user_id, primary_membership=membership,
            ).update(primary_membership=None)
            if membership.user.primary_membership_id == membership.pk:
                membership.user.primary_membership = None

        _log(
            ChangeKind.TRANSFER, membership, actor,
            reason or ("end" if end else "rename"),
            effective_date=_when(effective_date),
            from_name=old_name,
        )

    logger.info("membership %s %s", membership.pk, "ended" if end else "renamed")
    return membership


def change_level(actor, membership_id, to_level, position_name=None, rename=False,
                 reason=None, effective_date=None) -> UserDepartment:
    """PROMOTE / DEMOTE / TRANSFER by comparing ranks; the log records both levels."""
    if not to_level:
        raise BadRequest("to_level is required.")

    with transaction.atomic():
        membership = get_membership(membership_id, for_update=True)
        if not membership.is_current:
            raise BadRequest("Membership has already ended.")
        to_level = normalize_level(to_level)

        from_rank, to_rank = rank_of(membership.level), rank_of(to_level)
        if to_rank > from_rank:
            kind = ChangeKind.PROMOTE
        elif to_rank < from_rank:
            kind = ChangeKind.DEMOTE
        else:
            kind = ChangeKind.TRANSFER

        if to_level == PositionLevel.MD:
            _assert_no_other_md(membership.department_id, exclude_membership_id=membership.pk)

        from_level, from_name = membership.level, membership.position_name
        membership.level = to_level
        if rename:
            membership.position_name = position_name or None
        membership.save(update_fields=["level", "position_name"])

        _log(
            kind, membership, actor, reason or "change-level",
            effective_date=_when(effective_date),
            from_level=from_level, from_name=from_name,
        )

    logger.info("membership %s: %s %s -> %s", membership.pk, kind, from_level, to_level)
    return membership


def set_primary_assignment(actor, membership_id) -> UserDepartment:
    with transaction.atomic():
        membership = get_membership(membership_id, for_update=True)
        if not membership.is_current:
            raise BadRequest("Only an active membership can be primary.")
        User.objects.filter(pk=membership.user_id).update(primary_membership=membership)
        membership.user.primary_membership = membership
        _log(ChangeKind.TRANSFER, membership, actor, "set-primary")

    logger.info("membership %s set as primary for user %s", membership.pk, membership.user_id)
    return membership


def _memberships():
    return UserDepartment.objects.select_related("department", "user").order_by(
        "-is_active", "-started_at",
    )


def list_assignments(page=1, limit=DEFAULT_PAGE_SIZE, q="", active_only=False,
                     department_id=None, user_id=None):
    try:
        page = max(1, int(page))
    except (TypeError, ValueError):
        page = 1
    try:
        limit = min(MAX_PAGE_SIZE, max(1, int(limit)))
    except (TypeError, ValueError):
        limit = DEFAULT_PAGE_SIZE

    qs = _memberships()
    if active_only:
        qs = qs.filter(is_active=True, ended_at__isnull=True)
    if department_id:
        qs = qs.filter(department_id=department_id)
    if user_id:
        qs = qs.filter(user_id=user_id)
    if q:
        qs = qs.filter(
            Q(position_name__icontains=q)
            | Q(department__name_th__icontains=q)
            | Q(department__name_en__icontains=q)
            | Q(department__code__icontains=q)
        )

    offset = (page - 1) * limit
    return {
        "rows": list(qs[offset:offset + limit]),
        "total": qs.count(),
        "page": page,
        "limit": limit,
    }


def list_by_user(user_id, active_only=False):
    if not user_id:
        raise BadRequest("user_id is required.")
    qs = _memberships().filter(user_id=user_id)
    if active_only:
        qs = qs.filter(is_active=True, ended_at__isnull=True)
    return list(qs)
