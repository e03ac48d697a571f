from rest_framework import serializers
from django.contrib.auth import get_user_model

from accounts.models import Role
from evaluation_app.utils import LabelChoiceField

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    """Create/update serializer. Hashes password & returns user_id."""
    password = serializers.CharField(write_only=True, min_length=8, required=False)
    role = LabelChoiceField(choices=Role.choices, required=False, allow_blank=True)
    primary_membership_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = User
        fields = [
            "user_id", "username", "first_name", "last_name", "name", "email", "phone", "avatar",
            "password", "role", "primary_membership_id", "is_active", "state", "deleted_at",
            "created_at", "updated_at",
        ]
        read_only_fields = ("user_id", "is_active", "state", "deleted_at", "created_at", "updated_at")

    def validate_email(self, value):
        value = (value or "").strip().lower() or None
        if value and User.all_objects.filter(email__iexact=value).exclude(pk=getattr(self.instance, "pk", None)).exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return value

    def create(self, validated_data):  # called by viewset
        password = validated_data.pop("password", None)
        if not password:
            raise serializers.ValidationError({"password": ["This field is required."]})
        user = User(**validated_data)
        user.set_password(password)          # 🔑 hashes!
        user.save()
        return user

    #---------------UPDATE / PATCH----------------
    def update(self, instance, validated_data):
        # change password if supplied
        pwd = validated_data.pop("password", None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        if pwd:
            instance.set_password(pwd)
        instance.save()
        return instance


class MeSerializer(UserSerializer):
    """Self-service profile edit; role and username stay with HR, passwords go through change-password."""
    password = None
    role = serializers.CharField(read_only=True)

    class Meta(UserSerializer.Meta):
        fields = [f for f in UserSerializer.Meta.fields if f != "password"]
        read_only_fields = UserSerializer.Meta.read_only_fields + ("username",)
