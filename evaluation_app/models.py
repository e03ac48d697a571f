import uuid
from django.db import models
from django.utils import timezone
from django.conf import settings

from accounts.models import (
    SoftDeleteModel, LifecycleManager, AllLifecycleManager,
)

# ── Lookup / Enum helpers ────────────────────────────────────────────────

class PositionLevel(models.TextChoices):
    STAF    = "STAF",    "Staff"
    SVR     = "SVR",     "Supervisor"
    ASST    = "ASST",    "Assistant Manager"
    MANAGER = "MANAGER", "Manager"
    MD      = "MD",      "Managing Director"


# strict total order used for every eligibility comparison
LEVEL_RANK = {
    PositionLevel.STAF.value:    1,
    PositionLevel.SVR.value:     2,
    PositionLevel.ASST.value:    3,
    PositionLevel.MANAGER.value: 4,
    PositionLevel.MD.value:      5,
}


def rank_of(level):
    """Rank of a position level; anything unrecognised ranks -1 and loses every comparison."""
    return LEVEL_RANK.get(str(level or "").strip().upper(), -1)


class ChangeKind(models.TextChoices):
    PROMOTE  = "PROMOTE",  "Promote"
    DEMOTE   = "DEMOTE",   "Demote"
    TRANSFER = "TRANSFER", "Transfer"

class CycleStage(models.TextChoices):
    MID_YEAR = "MID_YEAR", "Mid-year"
    YEAR_END = "YEAR_END", "Year-end"

class EvalType(models.TextChoices):
    OPERATIONAL = "OPERATIONAL", "Operational"
    SUPERVISOR  = "SUPERVISOR",  "Supervisor"

class EvalStatus(models.TextChoices):
    DRAFT             = "DRAFT",             "Draft"
    SUBMITTED         = "SUBMITTED",         "Submitted"
    APPROVER_APPROVED = "APPROVER_APPROVED", "Approved by manager"
    COMPLETED         = "COMPLETED",         "Completed"
    REJECTED          = "REJECTED",          "Rejected"


# ── Organisation ─────────────────────────────────────────────────────────
class Organization(SoftDeleteModel):
    organization_id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code       = models.CharField(max_length=32, unique=True)
    name_th    = models.CharField(max_length=180)
    name_en    = models.CharField(max_length=180, blank=True, null=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    objects     = LifecycleManager()
    all_objects = AllLifecycleManager()

    class Meta:
        ordering = ["code"]

    def __str__(self):
        return f"{self.code} {self.name_th}"


class Department(SoftDeleteModel):
    department_id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code          = models.CharField(max_length=32, unique=True)
    name_th       = models.CharField(max_length=180)
    name_en       = models.CharField(max_length=180, blank=True, null=True)
    organization  = models.ForeignKey(Organization, on_delete=models.SET_NULL, null=True, blank=True, related_name="departments")
    created_at    = models.DateTimeField(default=timezone.now)
    updated_at    = models.DateTimeField(auto_now=True)

    objects     = LifecycleManager()
    all_objects = AllLifecycleManager()

    class Meta:
        ordering = ["code"]

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper()
        super().save(*args, **kwargs)

    def __str__(self):
        return self.code


class UserDepartment(models.Model):
    """One row per (user, department, time span); ended rows are kept, never hard-deleted."""
    membership_id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user          = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="memberships")
    department    = models.ForeignKey(Department, on_delete=models.PROTECT, related_name="memberships")
    level         = models.CharField(max_length=8, choices=PositionLevel.choices)
    position_name = models.CharField(max_length=120, blank=True, null=True)
    started_at    = models.DateTimeField(default=timezone.now)
    ended_at      = models.DateTimeField(null=True, blank=True)
    is_active     = models.BooleanField(default=True)

    class Meta:
        ordering = ["-is_active", "-started_at"]
        indexes = [
            models.Index(fields=["user", "is_active"], name="membership_user_active_idx"),
            models.Index(fields=["department", "level", "is_active"], name="membership_dept_level_idx"),
        ]

    @property
    def is_current(self):
        return self.is_active and self.ended_at is None

    def __str__(self):
        return f"{self.user} @ {self.department} ({self.level})"


class PositionChangeLog(models.Model):
    """Append-only audit trail of placement / rank changes."""
    log_id          = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    kind            = models.CharField(max_length=8, choices=ChangeKind.choices)
    user            = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="position_changes")
    actor           = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    from_department = models.ForeignKey(Department, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    to_department   = models.ForeignKey(Department, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    from_level      = models.CharField(max_length=8, choices=PositionLevel.choices, null=True, blank=True)
    to_level        = models.CharField(max_length=8, choices=PositionLevel.choices, null=True, blank=True)
    from_name       = models.CharField(max_length=120, null=True, blank=True)
    to_name         = models.CharField(max_length=120, null=True, blank=True)
    reason          = models.CharField(max_length=255, blank=True, default="")
    effective_date  = models.DateTimeField(default=timezone.now)
    created_at      = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-effective_date", "-created_at"]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("PositionChangeLog rows are write-once.")
        super().save(*args, **kwargs)


# ── Evaluation cycles ─────────────────────────────────────────────────────
class EvalCycle(models.Model):
    cycle_id     = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code         = models.CharField(max_length=40, unique=True)
    year         = models.PositiveIntegerField()
    stage        = models.CharField(max_length=8, choices=CycleStage.choices)
    open_at      = models.DateTimeField()
    close_at     = models.DateTimeField()
    is_active    = models.BooleanField(default=True)
    is_mandatory = models.BooleanField(default=True)
    created_at   = models.DateTimeField(default=timezone.now)
    updated_at   = models.DateTimeField(auto_now=True)

    def is_open(self, now=None):
        now = now or timezone.now()
        return self.is_active and self.open_at <= now <= self.close_at

    def __str__(self):
        return self.code


# ── Evaluations ───────────────────────────────────────────────────────────
PERFORMANCE_FIELDS = (
    "s1_responsibility", "s1_development", "s1_workload",
    "s1_quality_standard", "s1_coordination",
)
RESULT_FIELDS = (
    "s2_value_of_work", "s2_customer_satisfaction",
    "s2_cost_effectiveness", "s2_timeliness",
)
COMPETENCY_FIELDS = (
    "s3_job_knowledge", "s3_attitude", "s3_context_understanding",
    "s3_systematic_thinking", "s3_decision_making", "s3_adaptability",
    "s3_leadership", "s3_verbal_comm", "s3_written_comm",
    "s3_selflessness", "s3_rule_compliance", "s3_self_reliance",
)
RATING_FIELDS = PERFORMANCE_FIELDS + RESULT_FIELDS + COMPETENCY_FIELDS
SCORE_FIELDS = ("score_perf", "score_result", "score_comp", "score_total")


def _rating():
    return models.PositiveSmallIntegerField(null=True, blank=True)


def _score():
    return models.DecimalField(max_digits=5, decimal_places=2, default=0)


class Evaluation(models.Model):
    evaluation_id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    cycle         = models.ForeignKey(EvalCycle, on_delete=models.PROTECT, related_name="evaluations")
    owner         = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="evaluations")
    created_by    = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="created_evaluations")
    manager       = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="managed_evaluations")
    md            = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="md_evaluations")
    stage         = models.CharField(max_length=8, choices=CycleStage.choices)
    type          = models.CharField(max_length=12, choices=EvalType.choices, default=EvalType.OPERATIONAL)
    status        = models.CharField(max_length=20, choices=EvalStatus.choices, default=EvalStatus.DRAFT)

    # Section 1: performance (0..10)
    s1_responsibility   = _rating()
    s1_development      = _rating()
    s1_workload         = _rating()
    s1_quality_standard = _rating()
    s1_coordination     = _rating()
    # Section 2: result (0..10)
    s2_value_of_work         = _rating()
    s2_customer_satisfaction = _rating()
    s2_cost_effectiveness    = _rating()
    s2_timeliness            = _rating()
    # Section 3: competency (0..5)
    s3_job_knowledge         = _rating()
    s3_attitude              = _rating()
    s3_context_understanding = _rating()
    s3_systematic_thinking   = _rating()
    s3_decision_making       = _rating()
    s3_adaptability          = _rating()
    s3_leadership            = _rating()
    s3_verbal_comm           = _rating()
    s3_written_comm          = _rating()
    s3_selflessness          = _rating()
    s3_rule_compliance       = _rating()
    s3_self_reliance         = _rating()

    score_perf   = _score()
    score_result = _score()
    score_comp   = _score()
    score_total  = _score()

    submitted_at        = models.DateTimeField(null=True, blank=True)
    submitter_signed_at = models.DateTimeField(null=True, blank=True)
    submitter_signature = models.BinaryField(null=True, blank=True)
    submitter_comment   = models.TextField(null=True, blank=True)

    approver_at       = models.DateTimeField(null=True, blank=True)
    manager_signed_at = models.DateTimeField(null=True, blank=True)
    manager_signature = models.BinaryField(null=True, blank=True)
    manager_comment   = models.TextField(null=True, blank=True)

    md_at        = models.DateTimeField(null=True, blank=True)
    md_signed_at = models.DateTimeField(null=True, blank=True)
    md_signature = models.BinaryField(null=True, blank=True)
    md_comment   = models.TextField(null=True, blank=True)

    completed_at = models.DateTimeField(null=True, blank=True)
    rejected_at  = models.DateTimeField(null=True, blank=True)

    # bumped on every state-machine write; writes compare-and-swap on it
    version    = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at"]
        constraints = [
            models.UniqueConstraint(fields=["cycle", "owner"], name="uniq_evaluation_per_cycle_owner"),
        ]

    def save(self, *args, **kwargs):
        # scores are recomputed in pre_save, so a partial save must write them too
        update_fields = kwargs.get("update_fields")
        if update_fields is not None:
            kwargs["update_fields"] = set(update_fields) | set(SCORE_FIELDS)
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.cycle} / {self.owner} ({self.status})"
