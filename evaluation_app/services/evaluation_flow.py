"""
Evaluation lifecycle: DRAFT -> SUBMITTED -> APPROVER_APPROVED -> COMPLETED,
with REJECTED reachable from the two middle states and editable again.

Every operation takes the caller's ``AuthorizationContext`` and re-checks
that the cycle is open. Writes are compare-and-swap on ``version`` so two
racing transitions on the same row cannot both succeed.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from evaluation_app.exceptions import BadRequest, Conflict, Forbidden, NotFound
from evaluation_app.models import (
    EvalStatus, EvalType, Evaluation, RATING_FIELDS,
)
from evaluation_app.services.authorization import AuthorizationContext
from evaluation_app.services.eligibility import can_evaluate
from evaluation_app.services.eval_cycles import ensure_cycle_open
from evaluation_app.services.score import compute_scores
from evaluation_app.services.signatures import require_signature

logger = logging.getLogger(__name__)
User = get_user_model()

EDITABLE_STATUSES = (EvalStatus.DRAFT, EvalStatus.REJECTED)
REJECTABLE_STATUSES = (EvalStatus.SUBMITTED, EvalStatus.APPROVER_APPROVED)

OWNER_EDITABLE_FIELDS = RATING_FIELDS + ("type", "submitter_comment")
APPROVER_FIELDS = ("manager_id", "md_id")


@dataclass(frozen=True)
class ApprovalStep:
    approver_field: str
    status: str
    stamp_fields: Tuple[str, ...]
    signature_field: str


MANAGER_STEP = ApprovalStep(
    approver_field="manager_id",
    status=EvalStatus.APPROVER_APPROVED,
    stamp_fields=("approver_at", "manager_signed_at"),
    signature_field="manager_signature",
)
MD_STEP = ApprovalStep(
    approver_field="md_id",
    status=EvalStatus.COMPLETED,
    stamp_fields=("md_at", "md_signed_at", "completed_at"),
    signature_field="md_signature",
)
# order matters: MD never signs before the manager step is settled
APPROVAL_STEPS = (MANAGER_STEP, MD_STEP)

# cleared on (re)submission so a rejected round leaves no stale sign-offs
APPROVAL_STAMPS = (
    "approver_at", "manager_signed_at", "manager_signature",
    "md_at", "md_signed_at", "md_signature",
    "completed_at", "rejected_at",
)


def _same(a, b) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def _apply_signoffs(evaluation, steps, signer_id, signature, now, fields) -> list:
    """
    Apply ``steps`` in order for ``signer_id``.

    A step applies when nobody is assigned to it or the signer is the
    assignee; the chain stops at the first step owned by someone else.
    Returns the steps that were applied.
    """
    applied = []
    for step in steps:
        approver = getattr(evaluation, step.approver_field)
        if approver is not None and not _same(approver, signer_id):
            break
        fields["status"] = step.status
        for stamp in step.stamp_fields:
            fields[stamp] = now
        fields[step.signature_field] = signature
        applied.append(step)
    return applied


def persist_transition(evaluation: Evaluation, fields: dict) -> Evaluation:
    """Write ``fields`` only if nobody changed the row since it was read."""
    updated = (
        Evaluation.objects
        .filter(pk=evaluation.pk, version=evaluation.version)
        .update(**fields, version=F("version") + 1, updated_at=timezone.now())
    )
    if not updated:
        raise Conflict(
            "Evaluation was modified by someone else; reload and try again.",
            code="STALE_EVALUATION",
        )
    evaluation.refresh_from_db()
    return evaluation


def _load(evaluation_id) -> Evaluation:
    evaluation = Evaluation.objects.filter(pk=evaluation_id).first()
    if evaluation is None:
        raise NotFound("Evaluation not found.")
    return evaluation


def _normalize_type(value) -> str:
    eval_type = str(value or EvalType.OPERATIONAL).strip().upper()
    if eval_type not in EvalType.values:
        raise BadRequest(f"Unknown evaluation type: {eval_type}")
    return eval_type


def _check_user(user_id, label):
    if user_id is not None and not User.objects.filter(pk=user_id).exists():
        raise BadRequest(f"{label} does not exist.")


# ── queries ───────────────────────────────────────────────────────────────

def visible_evaluations(ctx: AuthorizationContext):
    """Privileged callers see everything; others only rows they take part in."""
    qs = Evaluation.objects.select_related(
        "cycle", "owner", "owner__primary_membership__department", "manager", "md",
    )
    if ctx.privileged:
        return qs
    me = ctx.user_id
    return qs.filter(Q(owner_id=me) | Q(created_by_id=me) | Q(manager_id=me) | Q(md_id=me))


def get_evaluation(evaluation_id, ctx: AuthorizationContext) -> Evaluation:
    evaluation = visible_evaluations(ctx).filter(pk=evaluation_id).first()
    if evaluation is None:
        raise NotFound("Evaluation not found.")
    return evaluation


# ── transitions ───────────────────────────────────────────────────────────

def create_evaluation(ctx: AuthorizationContext, cycle_id, owner_id, manager_id=None,
                      md_id=None, eval_type=None) -> Evaluation:
    """
    Open the evaluation of ``owner_id`` for ``cycle_id``.

    Idempotent per (cycle, owner): an existing row is returned unchanged.
    """
    evaluation, _ = get_or_create_evaluation(
        ctx, cycle_id, owner_id, manager_id=manager_id, md_id=md_id, eval_type=eval_type,
    )
    return evaluation


def get_or_create_evaluation(ctx: AuthorizationContext, cycle_id, owner_id, manager_id=None,
                             md_id=None, eval_type=None) -> Tuple[Evaluation, bool]:
    """Like ``create_evaluation`` but also tells whether a new row was written."""
    cycle = ensure_cycle_open(cycle_id)

    if not _same(ctx.user_id, owner_id):
        if not can_evaluate(ctx.user_id, owner_id, evaluator_ctx=ctx):
            raise Forbidden("You are not allowed to evaluate this user.", code="FORBIDDEN_EVALUATE")

    existing = Evaluation.objects.filter(cycle_id=cycle.pk, owner_id=owner_id).first()
    if existing is not None:
        return existing, False

    _check_user(owner_id, "Owner")
    _check_user(manager_id, "Manager")
    _check_user(md_id, "MD")

    try:
        with transaction.atomic():
            evaluation = Evaluation.objects.create(
                cycle=cycle,
                owner_id=owner_id,
                created_by_id=ctx.user_id,
                manager_id=manager_id,
                md_id=md_id,
                stage=cycle.stage,
                type=_normalize_type(eval_type),
                status=EvalStatus.DRAFT,
            )
    except IntegrityError:
        # lost the race against a concurrent create for the same owner
        evaluation = Evaluation.objects.filter(cycle_id=cycle.pk, owner_id=owner_id).first()
        if evaluation is None:
            raise
        return evaluation, False

    logger.info("evaluation %s created for owner %s in cycle %s by %s",
                evaluation.pk, owner_id, cycle.code, ctx.user_id)
    return evaluation, True


def update_evaluation(evaluation_id, data: dict, ctx: AuthorizationContext) -> Evaluation:
    evaluation = _load(evaluation_id)
    if evaluation.status not in EDITABLE_STATUSES:
        raise Conflict("Evaluation can no longer be edited once submitted.")
    ensure_cycle_open(evaluation.cycle_id)

    if not _same(ctx.user_id, evaluation.owner_id) and not ctx.is_admin_or_hr:
        raise Forbidden("Only the owner, HR or an admin can edit this evaluation.")

    fields = {k: data[k] for k in OWNER_EDITABLE_FIELDS if k in data}
    approvers = {
        k: data[k] for k in APPROVER_FIELDS
        if k in data and str(data[k]) != str(getattr(evaluation, k))
    }
    if approvers:
        if not ctx.is_admin_or_hr:
            raise Forbidden("Only HR or an admin can reassign approvers.")
        _check_user(approvers.get("manager_id"), "Manager")
        _check_user(approvers.get("md_id"), "MD")
        fields.update(approvers)

    if "type" in fields:
        fields["type"] = _normalize_type(fields["type"])

    merged = {f: getattr(evaluation, f) for f in RATING_FIELDS}
    merged.update({k: v for k, v in fields.items() if k in RATING_FIELDS})
    fields.update(compute_scores(merged, fields.get("type", evaluation.type)))

    evaluation = persist_transition(evaluation, fields)
    logger.info("evaluation %s updated by %s", evaluation.pk, ctx.user_id)
    return evaluation


def submit_evaluation(evaluation_id, ctx: AuthorizationContext, signature=None,
                      comment: Optional[str] = None) -> Evaluation:
    """
    Owner signs and submits. Approval steps with no assignee, or assigned
    to the owner, are signed in the same write.
    """
    evaluation = _load(evaluation_id)
    if not _same(ctx.user_id, evaluation.owner_id):
        raise Forbidden("Only the owner can submit this evaluation.")
    if evaluation.status not in EDITABLE_STATUSES:
        raise Conflict("Evaluation has already been submitted.")
    ensure_cycle_open(evaluation.cycle_id)
    ctx.assert_complete("Submitter")
    raw = require_signature(signature)

    now = timezone.now()
    fields = {stamp: None for stamp in APPROVAL_STAMPS}
    fields.update(compute_scores(evaluation, evaluation.type))
    fields.update(
        status=EvalStatus.SUBMITTED,
        submitted_at=now,
        submitter_signed_at=now,
        submitter_signature=raw,
        submitter_comment=comment,
    )
    if evaluation.created_by_id is None:
        fields["created_by_id"] = ctx.user_id

    _apply_signoffs(evaluation, APPROVAL_STEPS, evaluation.owner_id, raw, now, fields)

    evaluation = persist_transition(evaluation, fields)
    logger.info("evaluation %s submitted by %s -> %s", evaluation.pk, ctx.user_id, evaluation.status)
    return evaluation


def approve_by_manager(evaluation_id, ctx: AuthorizationContext, signature=None,
                       comment: Optional[str] = None) -> Evaluation:
    evaluation = _load(evaluation_id)
    if evaluation.status != EvalStatus.SUBMITTED:
        raise Conflict("Evaluation must be submitted before manager approval.")
    if not _same(ctx.user_id, evaluation.manager_id):
        raise Forbidden("Only the assigned manager can approve this evaluation.")
    ensure_cycle_open(evaluation.cycle_id)
    raw = require_signature(signature)

    now = timezone.now()
    fields = {
        "manager_comment": comment if comment is not None else evaluation.manager_comment,
    }
    _apply_signoffs(evaluation, APPROVAL_STEPS, ctx.user_id, raw, now, fields)

    evaluation = persist_transition(evaluation, fields)
    logger.info("evaluation %s approved by manager %s -> %s", evaluation.pk, ctx.user_id, evaluation.status)
    return evaluation


def approve_by_md(evaluation_id, ctx: AuthorizationContext, signature=None,
                  comment: Optional[str] = None) -> Evaluation:
    evaluation = _load(evaluation_id)
    if evaluation.status != EvalStatus.APPROVER_APPROVED:
        raise Conflict("Evaluation must be approved by the manager first.")
    if not _same(ctx.user_id, evaluation.md_id):
        raise Forbidden("Only the assigned MD can approve this evaluation.")
    ensure_cycle_open(evaluation.cycle_id)
    raw = require_signature(signature)

    now = timezone.now()
    fields = {
        "md_comment": comment if comment is not None else evaluation.md_comment,
    }
    _apply_signoffs(evaluation, (MD_STEP,), ctx.user_id, raw, now, fields)

    evaluation = persist_transition(evaluation, fields)
    logger.info("evaluation %s completed by MD %s", evaluation.pk, ctx.user_id)
    return evaluation


def reject_evaluation(evaluation_id, ctx: AuthorizationContext, comment: Optional[str] = None) -> Evaluation:
    evaluation = _load(evaluation_id)
    if evaluation.status not in REJECTABLE_STATUSES:
        raise Conflict("Evaluation cannot be rejected in its current status.")
    is_manager = _same(ctx.user_id, evaluation.manager_id)
    is_md = _same(ctx.user_id, evaluation.md_id)
    if not (is_manager or is_md):
        raise Forbidden("Only the assigned manager or MD can reject this evaluation.")
    ensure_cycle_open(evaluation.cycle_id)

    fields = {"status": EvalStatus.REJECTED, "rejected_at": timezone.now()}
    if is_manager:
        fields["manager_comment"] = comment if comment is not None else evaluation.manager_comment
    if is_md:
        fields["md_comment"] = comment if comment is not None else evaluation.md_comment

    evaluation = persist_transition(evaluation, fields)
    logger.info("evaluation %s rejected by %s", evaluation.pk, ctx.user_id)
    return evaluation


def delete_evaluation(evaluation_id, ctx: AuthorizationContext):
    evaluation = _load(evaluation_id)
    allowed = (
        ctx.is_admin_or_hr
        or _same(ctx.user_id, evaluation.owner_id)
        or _same(ctx.user_id, evaluation.created_by_id)
    )
    if not allowed:
        raise Forbidden("Only the owner, the creator, HR or an admin can delete this evaluation.")
    if evaluation.status == EvalStatus.COMPLETED:
        raise Conflict("Completed evaluations cannot be deleted.")
    evaluation.delete()
    logger.info("evaluation %s deleted by %s", evaluation_id, ctx.user_id)
