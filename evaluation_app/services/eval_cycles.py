import logging

from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from evaluation_app.exceptions import BadRequest, Conflict, Forbidden, NotFound
from evaluation_app.models import CycleStage, EvalCycle
from evaluation_app.services.directory import count_evaluations_referencing_cycle

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ("id", "code", "year", "stage", "open_at", "close_at", "is_active", "created_at")
DEFAULT_LIMIT = 50
MAX_LIMIT = 200

CYCLE_FIELDS = ("code", "year", "stage", "open_at", "close_at", "is_active", "is_mandatory")


def _as_datetime(value):
    if value in (None, ""):
        return None
    if isinstance(value, str):
        parsed = parse_datetime(value)
        if parsed is None:
            raise BadRequest(f"Invalid date: {value!r}")
        value = parsed
    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


def validate_cycle_dates(open_at, close_at, is_active=True, now=None):
    """
    Window rules shared by create and update; update passes the merged
    next state, so activating a cycle whose window already started fails.
    """
    now = now or timezone.now()
    if open_at is None or close_at is None:
        raise BadRequest("Both open_at and close_at are required.")
    if open_at >= close_at:
        raise BadRequest("open_at must be before close_at.")
    if open_at < now or close_at < now:
        raise BadRequest("Cycle dates cannot be in the past.")
    if is_active and close_at < now:
        raise BadRequest("Cannot activate a cycle that has already closed.")


def _clean(data):
    payload = {k: data[k] for k in CYCLE_FIELDS if k in data}
    if "code" in payload:
        payload["code"] = str(payload["code"] or "").strip()
        if not payload["code"]:
            raise BadRequest("Cycle code is required.")
    if "stage" in payload:
        payload["stage"] = str(payload["stage"] or "").strip().upper()
        if payload["stage"] not in CycleStage.values:
            raise BadRequest(f"Unknown cycle stage: {payload['stage']}")
    if "year" in payload:
        try:
            payload["year"] = int(payload["year"])
        except (TypeError, ValueError):
            raise BadRequest("Cycle year must be a number.")
    for key in ("open_at", "close_at"):
        if key in payload:
            payload[key] = _as_datetime(payload[key])
    for key in ("is_active", "is_mandatory"):
        if key in payload:
            payload[key] = bool(payload[key])
    return payload


def list_cycles(page=1, limit=DEFAULT_LIMIT, sort_by="year", sort="desc"):
    try:
        page = max(1, int(page))
    except (TypeError, ValueError):
        page = 1
    try:
        limit = min(MAX_LIMIT, max(1, int(limit)))
    except (TypeError, ValueError):
        limit = DEFAULT_LIMIT

    sort_by = sort_by if sort_by in SORTABLE_FIELDS else "year"
    sort = "asc" if str(sort).lower() == "asc" else "desc"
    order_field = "cycle_id" if sort_by == "id" else sort_by
    ordering = order_field if sort == "asc" else f"-{order_field}"

    qs = EvalCycle.objects.order_by(ordering, "code")
    offset = (page - 1) * limit
    return {
        "rows": list(qs[offset:offset + limit]),
        "total": qs.count(),
        "page": page,
        "limit": limit,
        "sort_by": sort_by,
        "sort": sort,
    }


def get_cycle(cycle_id) -> EvalCycle:
    cycle = EvalCycle.objects.filter(pk=cycle_id).first()
    if cycle is None:
        raise NotFound("Evaluation cycle not found.")
    return cycle


def create_cycle(data) -> EvalCycle:
    payload = _clean(data)
    missing = [k for k in ("code", "year", "stage") if not payload.get(k)]
    if missing:
        raise BadRequest(f"Missing fields: {', '.join(missing)}")

    payload.setdefault("is_active", True)
    payload.setdefault("is_mandatory", True)
    validate_cycle_dates(payload.get("open_at"), payload.get("close_at"), payload["is_active"])

    if EvalCycle.objects.filter(code=payload["code"]).exists():
        raise Conflict(f"Cycle code {payload['code']} already exists.")
    try:
        with transaction.atomic():
            cycle = EvalCycle.objects.create(**payload)
    except IntegrityError:
        raise Conflict(f"Cycle code {payload['code']} already exists.")

    logger.info("cycle %s created (%s %s)", cycle.code, cycle.year, cycle.stage)
    return cycle


def update_cycle(cycle_id, data) -> EvalCycle:
    cycle = get_cycle(cycle_id)
    payload = _clean(data)

    validate_cycle_dates(
        payload.get("open_at", cycle.open_at),
        payload.get("close_at", cycle.close_at),
        payload.get("is_active", cycle.is_active),
    )

    code = payload.get("code")
    if code and code != cycle.code and EvalCycle.objects.filter(code=code).exists():
        raise Conflict(f"Cycle code {code} already exists.")

    for key, value in payload.items():
        setattr(cycle, key, value)
    try:
        with transaction.atomic():
            cycle.save()
    except IntegrityError:
        raise Conflict(f"Cycle code {cycle.code} already exists.")

    logger.info("cycle %s updated: %s", cycle.code, ", ".join(sorted(payload)) or "-")
    return cycle


def delete_cycle(cycle_id):
    cycle = get_cycle(cycle_id)
    used = count_evaluations_referencing_cycle(cycle.pk)
    if used:
        raise Conflict(
            f"Cycle {cycle.code} is used by {used} evaluation(s).",
            code="CYCLE_IN_USE",
        )
    cycle.delete()
    logger.info("cycle %s deleted", cycle.code)


def ensure_cycle_open(cycle_id, now=None) -> EvalCycle:
    """The cycle must exist, be active and ``now`` must fall inside its window."""
    cycle = get_cycle(cycle_id)
    if not cycle.is_open(now):
        raise Forbidden("Evaluation cycle is not open.", code="CYCLE_CLOSED")
    return cycle
