import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


LIFECYCLE_STATES = [("ACTIVE", "Active"), ("DELETED", "Deleted")]
POSITION_LEVELS = [
    ("STAF", "Staff"), ("SVR", "Supervisor"), ("ASST", "Assistant Manager"),
    ("MANAGER", "Manager"), ("MD", "Managing Director"),
]
CYCLE_STAGES = [("MID_YEAR", "Mid-year"), ("YEAR_END", "Year-end")]
CHANGE_KINDS = [("PROMOTE", "Promote"), ("DEMOTE", "Demote"), ("TRANSFER", "Transfer")]
EVAL_TYPES = [("OPERATIONAL", "Operational"), ("SUPERVISOR", "Supervisor")]
EVAL_STATUSES = [
    ("DRAFT", "Draft"), ("SUBMITTED", "Submitted"), ("APPROVER_APPROVED", "Approved by manager"),
    ("COMPLETED", "Completed"), ("REJECTED", "Rejected"),
]

RATINGS = (
    "s1_responsibility", "s1_development", "s1_workload", "s1_quality_standard", "s1_coordination",
    "s2_value_of_work", "s2_customer_satisfaction", "s2_cost_effectiveness", "s2_timeliness",
    "s3_job_knowledge", "s3_attitude", "s3_context_understanding", "s3_systematic_thinking",
    "s3_decision_making", "s3_adaptability", "s3_leadership", "s3_verbal_comm", "s3_written_comm",
    "s3_selflessness", "s3_rule_compliance", "s3_self_reliance",
)


def _user_fk(related_name, on_delete=django.db.models.deletion.SET_NULL, null=True):
    kwargs = dict(blank=True, null=True) if null else {}
    return models.ForeignKey(
        on_delete=on_delete, related_name=related_name, to=settings.AUTH_USER_MODEL, **kwargs,
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Organization",
            fields=[
                ("state", models.CharField(choices=LIFECYCLE_STATES, default="ACTIVE", max_length=8)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("organization_id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("code", models.CharField(max_length=32, unique=True)),
                ("name_th", models.CharField(max_length=180)),
                ("name_en", models.CharField(blank=True, max_length=180, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["code"],
            },
        ),
        migrations.CreateModel(
            name="Department",
            fields=[
                ("state", models.CharField(choices=LIFECYCLE_STATES, default="ACTIVE", max_length=8)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("department_id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("code", models.CharField(max_length=32, unique=True)),
                ("name_th", models.CharField(max_length=180)),
                ("name_en", models.CharField(blank=True, max_length=180, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("organization", models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="departments",
                    to="evaluation_app.organization",
                )),
            ],
            options={
                "ordering": ["code"],
            },
        ),
        migrations.CreateModel(
            name="EvalCycle",
            fields=[
                ("cycle_id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("code", models.CharField(max_length=40, unique=True)),
                ("year", models.PositiveIntegerField()),
                ("stage", models.CharField(choices=CYCLE_STAGES, max_length=8)),
                ("open_at", models.DateTimeField()),
                ("close_at", models.DateTimeField()),
                ("is_active", models.BooleanField(default=True)),
                ("is_mandatory", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name="UserDepartment",
            fields=[
                ("membership_id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("level", models.CharField(choices=POSITION_LEVELS, max_length=8)),
                ("position_name", models.CharField(blank=True, max_length=120, null=True)),
                ("started_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("ended_at", models.DateTimeField(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("department", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="memberships",
                    to="evaluation_app.department",
                )),
                ("user", _user_fk("memberships", django.db.models.deletion.CASCADE, null=False)),
            ],
            options={
                "ordering": ["-is_active", "-started_at"],
                "indexes": [
                    models.Index(fields=["user", "is_active"], name="membership_user_active_idx"),
                    models.Index(fields=["department", "level", "is_active"], name="membership_dept_level_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PositionChangeLog",
            fields=[
                ("log_id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("kind", models.CharField(choices=CHANGE_KINDS, max_length=8)),
                ("from_level", models.CharField(blank=True, choices=POSITION_LEVELS, max_length=8, null=True)),
                ("to_level", models.CharField(blank=True, choices=POSITION_LEVELS, max_length=8, null=True)),
                ("from_name", models.CharField(blank=True, max_length=120, null=True)),
                ("to_name", models.CharField(blank=True, max_length=120, null=True)),
                ("reason", models.CharField(blank=True, default="", max_length=255)),
                ("effective_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("actor", _user_fk("+")),
                ("from_department", models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+",
                    to="evaluation_app.department",
                )),
                ("to_department", models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+",
                    to="evaluation_app.department",
                )),
                ("user", _user_fk("position_changes", django.db.models.deletion.CASCADE, null=False)),
            ],
            options={
                "ordering": ["-effective_date", "-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Evaluation",
            fields=[
                ("evaluation_id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("stage", models.CharField(choices=CYCLE_STAGES, max_length=8)),
                ("type", models.CharField(choices=EVAL_TYPES, default="OPERATIONAL", max_length=12)),
                ("status", models.CharField(choices=EVAL_STATUSES, default="DRAFT", max_length=20)),
            ] + [
                (name, models.PositiveSmallIntegerField(blank=True, null=True)) for name in RATINGS
            ] + [
                (name, models.DecimalField(decimal_places=2, default=0, max_digits=5))
                for name in ("score_perf", "score_result", "score_comp", "score_total")
            ] + [
                ("submitted_at", models.DateTimeField(blank=True, null=True)),
                ("submitter_signed_at", models.DateTimeField(blank=True, null=True)),
                ("submitter_signature", models.BinaryField(blank=True, null=True)),
                ("submitter_comment", models.TextField(blank=True, null=True)),
                ("approver_at", models.DateTimeField(blank=True, null=True)),
                ("manager_signed_at", models.DateTimeField(blank=True, null=True)),
                ("manager_signature", models.BinaryField(blank=True, null=True)),
                ("manager_comment", models.TextField(blank=True, null=True)),
                ("md_at", models.DateTimeField(blank=True, null=True)),
                ("md_signed_at", models.DateTimeField(blank=True, null=True)),
                ("md_signature", models.BinaryField(blank=True, null=True)),
                ("md_comment", models.TextField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("rejected_at", models.DateTimeField(blank=True, null=True)),
                ("version", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("cycle", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="evaluations",
                    to="evaluation_app.evalcycle",
                )),
                ("owner", _user_fk("evaluations", django.db.models.deletion.CASCADE, null=False)),
                ("created_by", _user_fk("created_evaluations")),
                ("manager", _user_fk("managed_evaluations")),
                ("md", _user_fk("md_evaluations")),
            ],
            options={
                "ordering": ["-updated_at"],
                "constraints": [
                    models.UniqueConstraint(fields=("cycle", "owner"), name="uniq_evaluation_per_cycle_owner"),
                ],
            },
        ),
    ]
