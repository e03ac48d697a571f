import base64

from rest_framework import serializers

from evaluation_app.models import (
    Evaluation, EvalType, PERFORMANCE_FIELDS, RESULT_FIELDS, COMPETENCY_FIELDS,
)
from evaluation_app.serializers.org_serializers import UserBriefSerializer
from evaluation_app.services.score import compute_grade
from evaluation_app.utils import LabelChoiceField


def _b64(value):
    if not value:
        return None
    return base64.b64encode(bytes(value)).decode("ascii")


class EvaluationSerializer(serializers.ModelSerializer):
    """
    Read shape of an evaluation.
    • Owner / approvers return brief info, ids stay available.
    • Signatures come back as base64 text.
    """
    owner      = UserBriefSerializer(read_only=True)
    manager    = UserBriefSerializer(read_only=True)
    md         = UserBriefSerializer(read_only=True)
    cycle_code = serializers.CharField(source="cycle.code", read_only=True)
    grade      = serializers.SerializerMethodField()

    submitter_signature = serializers.SerializerMethodField()
    manager_signature   = serializers.SerializerMethodField()
    md_signature        = serializers.SerializerMethodField()

    class Meta:
        model = Evaluation
        fields = [
            "evaluation_id", "cycle_id", "cycle_code", "stage", "type", "status",
            "owner_id", "owner", "created_by_id", "manager_id", "manager", "md_id", "md",
            *PERFORMANCE_FIELDS, *RESULT_FIELDS, *COMPETENCY_FIELDS,
            "score_perf", "score_result", "score_comp", "score_total", "grade",
            "submitted_at", "submitter_signed_at", "submitter_signature", "submitter_comment",
            "approver_at", "manager_signed_at", "manager_signature", "manager_comment",
            "md_at", "md_signed_at", "md_signature", "md_comment",
            "completed_at", "rejected_at", "version", "created_at", "updated_at",
        ]
        read_only_fields = fields

    def get_grade(self, obj):
        return compute_grade(obj.score_total)

    def get_submitter_signature(self, obj):
        return _b64(obj.submitter_signature)

    def get_manager_signature(self, obj):
        return _b64(obj.manager_signature)

    def get_md_signature(self, obj):
        return _b64(obj.md_signature)


class EvaluationCreateSerializer(serializers.Serializer):
    cycle_id   = serializers.UUIDField()
    owner_id   = serializers.UUIDField(required=False)   # defaults to the caller
    manager_id = serializers.UUIDField(required=False, allow_null=True)
    md_id      = serializers.UUIDField(required=False, allow_null=True)
    type       = LabelChoiceField(choices=EvalType.choices, required=False)


def _rating(upper):
    return serializers.IntegerField(min_value=0, max_value=upper, required=False, allow_null=True)


class EvaluationUpdateSerializer(serializers.Serializer):
    type              = LabelChoiceField(choices=EvalType.choices, required=False)
    submitter_comment = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    manager_id        = serializers.UUIDField(required=False, allow_null=True)
    md_id             = serializers.UUIDField(required=False, allow_null=True)

    def get_fields(self):
        fields = super().get_fields()
        for name in PERFORMANCE_FIELDS + RESULT_FIELDS:
            fields[name] = _rating(10)
        for name in COMPETENCY_FIELDS:
            fields[name] = _rating(5)
        return fields


class SignatureSerializer(serializers.Serializer):
    """Base64 signature, optionally as a data URL; decoded by the service."""
    signature = serializers.CharField(required=False, allow_blank=True, trim_whitespace=True)
    comment   = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class RejectSerializer(serializers.Serializer):
    comment = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class EligibleQuerySerializer(serializers.Serializer):
    include_self  = serializers.BooleanField(default=False)
    include_taken = serializers.BooleanField(default=False)

