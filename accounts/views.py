import logging

from django.contrib.auth import get_user_model
from django.contrib.auth.tokens import default_token_generator
from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils.encoding import force_bytes, force_str
from django.utils.http import urlsafe_base64_decode, urlsafe_base64_encode
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from accounts.mailer import send_password_reset
from accounts.models import Role
from accounts.serializers.password_change_serializer import (
    ForgotPasswordSerializer, PasswordChangeSerializer, ResetPasswordSerializer,
)
from accounts.serializers.user_serializer import MeSerializer, UserSerializer
from evaluation_app.exceptions import BadRequest
from evaluation_app.permissions import IsAdminOrHR, IsSelfOrAdminHR
from evaluation_app.views.base import SoftDeleteViewSetMixin

logger = logging.getLogger(__name__)
User = get_user_model()


class UserViewSet(SoftDeleteViewSetMixin, viewsets.ModelViewSet):
    serializer_class = UserSerializer
    queryset = User.objects.select_related("primary_membership__department").order_by("username")
    search_fields = ["username", "email", "name", "first_name", "last_name"]
    ordering_fields = ["username", "email", "name", "created_at"]
    lookup_field = "user_id"  # use UUID for lookups

    def get_permissions(self):
        if self.action in ("create", "destroy"):
            return [IsAuthenticated(), IsAdminOrHR()]
        if self.action in ("update", "partial_update", "retrieve"):
            return [IsSelfOrAdminHR()]
        # actions declare their own permission_classes
        return super().get_permissions()

    def get_queryset(self):
        user = self.request.user
        if (user.role or "").upper() in (Role.ADMIN, Role.HR):
            return super().get_queryset()
        return super().get_queryset().filter(user_id=user.user_id)

    def get_serializer_class(self):
        if self.action in ("update", "partial_update"):
            role = (self.request.user.role or "").upper()
            if role not in (Role.ADMIN, Role.HR):
                return MeSerializer
        return super().get_serializer_class()

    def perform_destroy(self, instance):
        if instance.pk == self.request.user.pk:
            raise BadRequest("You cannot delete your own account.")
        instance.soft_delete()
        logger.info("user %s soft-deleted by %s", instance.pk, self.request.user.pk)

    #--------------------------------------------
    @action(detail=False, methods=["get", "patch"], permission_classes=[IsAuthenticated])
    def me(self, request):
        if request.method == "GET":
            return Response(MeSerializer(request.user).data)
        ser = MeSerializer(request.user, data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        ser.save()
        return Response(ser.data)

    @action(
            detail=False,
            methods=["post"],
            url_path="change-password",
            permission_classes=[IsAuthenticated],
    )
    def change_password(self, request):
        user = request.user
        ser = PasswordChangeSerializer(data=request.data, context={'request': request})
        ser.is_valid(raise_exception=True)

        if not user.check_password(ser.validated_data['old_password']):
            raise BadRequest("Wrong password.", code="WRONG_PASSWORD")

        user.set_password(ser.validated_data['new_password'])
        user.save(update_fields=["password", "updated_at"])
        logger.info("user %s changed their password", user.pk)
        return Response({"message": "Password changed successfully"}, status=status.HTTP_200_OK)

    @action(
            detail=False,
            methods=["post"],
            url_path="forgot-password",
            permission_classes=[AllowAny],
            authentication_classes=[],
    )
    def forgot_password(self, request):
        """Always answers the same way so the endpoint does not reveal which emails exist."""
        ser = ForgotPasswordSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        user = User.objects.filter(email__iexact=ser.validated_data["email"], is_active=True).first()
        if user is not None:
            uid = urlsafe_base64_encode(force_bytes(user.pk))
            token = default_token_generator.make_token(user)
            send_password_reset(user, uid, token)
        return Response({"message": "If the email exists, a reset link has been sent."})

    @action(
            detail=False,
            methods=["post"],
            url_path="reset-password",
            permission_classes=[AllowAny],
            authentication_classes=[],
    )
    def reset_password(self, request):
        ser = ResetPasswordSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            pk = force_str(urlsafe_base64_decode(ser.validated_data["uid"]))
            user = User.objects.filter(pk=pk).first()
        except (TypeError, ValueError, OverflowError, DjangoValidationError):
            user = None
        if user is None or not default_token_generator.check_token(user, ser.validated_data["token"]):
            raise BadRequest("Reset link is invalid or has expired.", code="INVALID_TOKEN")

        user.set_password(ser.validated_data["new_password"])
        user.save(update_fields=["password", "updated_at"])
        logger.info("user %s reset their password", user.pk)
        return Response({"message": "Password has been reset."})
