import logging

from django.contrib.auth import get_user_model

from evaluation_app.exceptions import NotFound
from evaluation_app.models import EvalCycle, Evaluation
from evaluation_app.services.authorization import AuthorizationContext
from evaluation_app.services.directory import get_primary_profile, rank_of

logger = logging.getLogger(__name__)
User = get_user_model()


def can_evaluate(evaluator_id, evaluatee_id, evaluator_ctx=None) -> bool:
    """
    Whether ``evaluator_id`` may open an evaluation for ``evaluatee_id``.

    Self-evaluation is always allowed. Otherwise the evaluator needs a
    complete profile; privileged evaluators may evaluate anyone, everyone
    else only people whose primary department they belong to at a strictly
    higher level.
    """
    if str(evaluator_id) == str(evaluatee_id):
        return True

    ctx = evaluator_ctx or AuthorizationContext.for_user(evaluator_id)
    evaluatee = get_primary_profile(evaluatee_id)

    ctx.assert_complete("Evaluator")
    if ctx.privileged:
        return True

    dept = evaluatee.primary_department_id
    if dept is None or not evaluatee.primary_level:
        return False
    return ctx.rank_in(dept) > rank_of(evaluatee.primary_level)


def list_eligible_evaluatees(cycle_id, ctx: AuthorizationContext, include_self=False, include_taken=False):
    """
    Users ``ctx`` may evaluate in ``cycle_id``.

    ``include_taken`` keeps people who already have an evaluation in the
    cycle. When nothing is left and ``include_self`` was asked for, the
    evaluator alone is returned so self-evaluation stays reachable.
    """
    if not EvalCycle.objects.filter(pk=cycle_id).exists():
        raise NotFound("Evaluation cycle not found.")

    taken = set(
        Evaluation.objects.filter(cycle_id=cycle_id).values_list("owner_id", flat=True)
    )

    users = User.objects.select_related("primary_membership")
    if not include_self:
        users = users.exclude(pk=ctx.user_id)

    if ctx.privileged:
        return [u for u in users.order_by("username") if include_taken or u.pk not in taken]

    ctx.assert_complete("Evaluator")

    candidates = users.filter(
        primary_membership__department_id__in=ctx.department_ids,
        primary_membership__is_active=True,
        primary_membership__ended_at__isnull=True,
    ).order_by("username")

    out = []
    for user in candidates:
        if not include_taken and user.pk in taken:
            continue
        primary = user.primary_membership
        if ctx.rank_in(primary.department_id) > rank_of(primary.level):
            out.append(user)

    if not out and include_self:
        me = User.objects.filter(pk=ctx.user_id).first()
        if me is not None:
            out.append(me)

    logger.debug("eligible evaluatees for %s in cycle %s: %d", ctx.user_id, cycle_id, len(out))
    return out
