from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from evaluation_app.exceptions import NotFound
from evaluation_app.permissions import IsAdminOrHR, ReadOnlyOrAdminHR
from evaluation_app.services.authorization import AuthorizationContext


def auth_context(request) -> AuthorizationContext:
    """The caller's context, resolved once per request."""
    ctx = getattr(request, "_auth_context", None)
    if ctx is None:
        ctx = AuthorizationContext.for_user(request.user)
        request._auth_context = ctx
    return ctx


class ReadOnlyAuthFullAdminHRMixin:
    """Any authenticated user reads; only Admin / HR write."""

    def get_permissions(self):
        if self.action in ("list", "retrieve"):
            return [IsAuthenticated()]
        return [ReadOnlyOrAdminHR()]


class SoftDeleteViewSetMixin:
    """
    DELETE flips the lifecycle state instead of removing the row.
    ``restore`` and ``purge`` reach deleted rows through ``all_objects``.
    """

    def perform_destroy(self, instance):
        instance.soft_delete()

    def _get_any(self):
        model = self.get_queryset().model
        lookup = self.lookup_url_kwarg or self.lookup_field
        obj = model.all_objects.filter(**{self.lookup_field: self.kwargs[lookup]}).first()
        if obj is None:
            raise NotFound(f"{model._meta.verbose_name.capitalize()} not found.")
        return obj

    @action(detail=True, methods=["post"], permission_classes=[IsAuthenticated, IsAdminOrHR])
    def restore(self, request, *args, **kwargs):
        obj = self._get_any()
        if obj.is_deleted:
            obj.restore()
        return Response(self.get_serializer(obj).data)

    @action(detail=True, methods=["delete"], permission_classes=[IsAuthenticated, IsAdminOrHR])
    def purge(self, request, *args, **kwargs):
        obj = self._get_any()
        obj.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
