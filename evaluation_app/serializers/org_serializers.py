from rest_framework import serializers
from django.contrib.auth import get_user_model

from evaluation_app.models import (
    Organization, Department, UserDepartment, PositionChangeLog, PositionLevel,
)
from evaluation_app.utils import LabelChoiceField

User = get_user_model()


class UserBriefSerializer(serializers.ModelSerializer):
    department = serializers.SerializerMethodField()
    level      = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["user_id", "username", "name", "email", "role", "department", "level"]
        read_only_fields = fields

    def _primary(self, obj):
        membership = obj.primary_membership
        return membership if membership is not None and membership.is_current else None

    def get_department(self, obj):
        membership = self._primary(obj)
        if membership is None:
            return None
        dept = membership.department
        return {"department_id": dept.department_id, "code": dept.code, "name_th": dept.name_th, "name_en": dept.name_en}

    def get_level(self, obj):
        membership = self._primary(obj)
        return membership.level if membership else None


class OrganizationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Organization
        fields = ["organization_id", "code", "name_th", "name_en", "state", "deleted_at", "created_at", "updated_at"]
        read_only_fields = ("organization_id", "state", "deleted_at", "created_at", "updated_at")


class DepartmentSerializer(serializers.ModelSerializer):
    # allow clients to pass "organization_id": null or omit the field entirely
    organization_id = serializers.PrimaryKeyRelatedField(
        source="organization",
        queryset=Organization.objects.all(),
        allow_null=True,
        required=False,
    )
    organization = serializers.CharField(source="organization.code", read_only=True, default=None)

    class Meta:
        model = Department
        fields = [
            "department_id", "code", "name_th", "name_en",
            "organization", "organization_id",
            "state", "deleted_at", "created_at", "updated_at",
        ]
        read_only_fields = ("department_id", "state", "deleted_at", "created_at", "updated_at")

    def validate_code(self, value):
        return value.strip().upper()


class MembershipSerializer(serializers.ModelSerializer):
    department = serializers.SerializerMethodField()
    user       = serializers.CharField(source="user.name", read_only=True)
    is_primary = serializers.SerializerMethodField()

    class Meta:
        model = UserDepartment
        fields = [
            "membership_id", "user_id", "user", "department_id", "department",
            "level", "position_name", "started_at", "ended_at", "is_active", "is_primary",
        ]
        read_only_fields = fields

    def get_department(self, obj):
        dept = obj.department
        return {"code": dept.code, "name_th": dept.name_th, "name_en": dept.name_en}

    def get_is_primary(self, obj):
        return obj.user.primary_membership_id == obj.membership_id


class AssignSerializer(serializers.Serializer):
    user_id       = serializers.UUIDField()
    department_id = serializers.UUIDField()
    level         = LabelChoiceField(choices=PositionLevel.choices)
    position_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    started_at    = serializers.DateTimeField(required=False, allow_null=True)
    make_primary  = serializers.BooleanField(default=False)


class EndOrRenameSerializer(serializers.Serializer):
    end           = serializers.BooleanField(default=False)
    ended_at      = serializers.DateTimeField(required=False, allow_null=True)
    position_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    reason        = serializers.CharField(required=False, allow_blank=True)
    effective_date = serializers.DateTimeField(required=False, allow_null=True)


class ChangeLevelSerializer(serializers.Serializer):
    to_level      = LabelChoiceField(choices=PositionLevel.choices)
    position_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    reason        = serializers.CharField(required=False, allow_blank=True)
    effective_date = serializers.DateTimeField(required=False, allow_null=True)


class PositionChangeLogSerializer(serializers.ModelSerializer):
    user  = serializers.CharField(source="user.name", read_only=True)
    actor = serializers.CharField(source="actor.name", read_only=True, default=None)

    class Meta:
        model = PositionChangeLog
        fields = [
            "log_id", "kind", "user_id", "user", "actor_id", "actor",
            "from_department_id", "to_department_id", "from_level", "to_level",
            "from_name", "to_name", "reason", "effective_date", "created_at",
        ]
        read_only_fields = fields
