from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict

from evaluation_app.models import (
    EvalType, PERFORMANCE_FIELDS, RESULT_FIELDS, COMPETENCY_FIELDS,
)

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

PERF_MAX, RESULT_MAX, COMP_MAX = 10, 10, 5

# (threshold, grade), checked top-down
GRADE_BANDS = (
    (Decimal("90"), "A"),
    (Decimal("80"), "B"),
    (Decimal("70"), "C"),
    (Decimal("60"), "D"),
)


def _round2(x) -> Decimal:
    """Round half-up to 2 decimal places."""
    return Decimal(x).quantize(CENT, rounding=ROUND_HALF_UP)


def _clamp(value, upper):
    return min(max(value, ZERO), upper)


def _read(ratings, field):
    if isinstance(ratings, dict):
        return ratings.get(field)
    return getattr(ratings, field, None)


def _clamped(ratings, field, upper) -> Decimal:
    """Missing, non-numeric and non-finite inputs count as 0."""
    raw = _read(ratings, field)
    if raw is None or isinstance(raw, bool):
        return ZERO
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return ZERO
    if not value.is_finite():
        return ZERO
    return _clamp(value, Decimal(upper))


def compute_scores(ratings, eval_type=EvalType.OPERATIONAL) -> Dict[str, Decimal]:
    """
    Derive the four stored scores from the 21 raw ratings.

    ``ratings`` is a mapping or any object exposing the rating attributes
    (an ``Evaluation`` row works). ``eval_type`` only changes the result
    and competency weighting; anything but OPERATIONAL is scored as SUPERVISOR.

    Returns:
        {"score_perf", "score_result", "score_comp", "score_total"} as Decimals
    """
    resp, dev, workload, quality, coord = (
        _clamped(ratings, f, PERF_MAX) for f in PERFORMANCE_FIELDS
    )
    s21, s22, s23, s24 = (_clamped(ratings, f, RESULT_MAX) for f in RESULT_FIELDS)
    comp_sum = sum((_clamped(ratings, f, COMP_MAX) for f in COMPETENCY_FIELDS), ZERO)

    operational = str(eval_type or "").upper() == EvalType.OPERATIONAL

    perf = _round2((2 * resp + 2 * dev + 2 * workload + quality + coord) / 80 * 40)

    if operational:
        result = _round2(((s21 + s22 + s23 + s24) * 2) / 80 * 30)
    else:
        result = _round2((2 * s21 + 2 * s22 + s23 + s24) / 50 * 40)

    comp = _round2(comp_sum / 60 * (30 if operational else 20))

    total = _clamp(_round2(perf + result + comp), HUNDRED)

    # each part is bounded by its share; the total is summed before bounding
    perf = _clamp(perf, Decimal(40))
    result = _clamp(result, Decimal(30 if operational else 40))
    comp = _clamp(comp, Decimal(30 if operational else 20))

    return {
        "score_perf": perf,
        "score_result": result,
        "score_comp": comp,
        "score_total": total,
    }


def compute_grade(total) -> str:
    """A ≥ 90, B ≥ 80, C ≥ 70, D ≥ 60, otherwise E."""
    try:
        value = Decimal(str(total))
    except (InvalidOperation, ValueError):
        return "E"
    if not value.is_finite():
        return "E"
    for threshold, grade in GRADE_BANDS:
        if value >= threshold:
            return grade
    return "E"


def apply_scores(evaluation) -> Dict[str, Decimal]:
    """Recompute and assign scores on an ``Evaluation`` instance (no save)."""
    scores = compute_scores(evaluation, evaluation.type)
    for field, value in scores.items():
        setattr(evaluation, field, value)
    return scores
