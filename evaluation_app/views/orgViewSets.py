from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from evaluation_app.filters import PositionChangeFilter
from evaluation_app.models import Department, Organization, PositionChangeLog
from evaluation_app.permissions import IsAdminOrHR
from evaluation_app.serializers.org_serializers import (
    AssignSerializer, ChangeLevelSerializer, DepartmentSerializer, EndOrRenameSerializer,
    MembershipSerializer, OrganizationSerializer, PositionChangeLogSerializer,
)
from evaluation_app.services import memberships
from evaluation_app.views.base import ReadOnlyAuthFullAdminHRMixin, SoftDeleteViewSetMixin


class OrganizationViewSet(ReadOnlyAuthFullAdminHRMixin, SoftDeleteViewSetMixin, viewsets.ModelViewSet):
    queryset = Organization.objects.all().order_by("code")
    serializer_class = OrganizationSerializer
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ["code", "name_th", "name_en"]
    lookup_field = "organization_id"
    # … list / create / retrieve / update / destroy are inherited …


class DepartmentViewSet(ReadOnlyAuthFullAdminHRMixin, SoftDeleteViewSetMixin, viewsets.ModelViewSet):
    queryset = Department.objects.select_related("organization").order_by("code")
    serializer_class = DepartmentSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ["organization"]
    search_fields = ["code", "name_th", "name_en"]
    lookup_field = "department_id"


class UserDepartmentViewSet(viewsets.ViewSet):
    """
    Department memberships.
    • Everyone signed in → list / retrieve / by-user.
    • ADMIN / HR         → assign, end or rename, change level, set primary.
    """
    lookup_field = "membership_id"

    def get_permissions(self):
        if self.action in ("list", "retrieve", "by_user"):
            return [permissions.IsAuthenticated()]
        return [permissions.IsAuthenticated(), IsAdminOrHR()]

    def list(self, request):
        qp = request.query_params
        page = memberships.list_assignments(
            page=qp.get("page", 1),
            limit=qp.get("limit", memberships.DEFAULT_PAGE_SIZE),
            q=qp.get("q", ""),
            active_only=qp.get("active_only", "").lower() in ("1", "true", "yes"),
            department_id=qp.get("department_id") or None,
            user_id=qp.get("user_id") or None,
        )
        page["rows"] = MembershipSerializer(page["rows"], many=True).data
        return Response(page)

    def retrieve(self, request, membership_id=None):
        return Response(MembershipSerializer(memberships.get_membership(membership_id)).data)

    def create(self, request):
        ser = AssignSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        membership = memberships.assign_user_to_department(request.user, **ser.validated_data)
        return Response(MembershipSerializer(membership).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"], url_path=r"by-user/(?P<user_id>[^/.]+)")
    def by_user(self, request, user_id=None):
        active_only = request.query_params.get("active_only", "").lower() in ("1", "true", "yes")
        rows = memberships.list_by_user(user_id, active_only=active_only)
        return Response(MembershipSerializer(rows, many=True).data)

    @action(detail=True, methods=["post"])
    def end(self, request, membership_id=None):
        ser = EndOrRenameSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        membership = memberships.end_or_rename_assignment(
            request.user, membership_id,
            end=data["end"] or "ended_at" in data,
            ended_at=data.get("ended_at"),
            rename="position_name" in data,
            position_name=data.get("position_name"),
            reason=data.get("reason"),
            effective_date=data.get("effective_date"),
        )
        return Response(MembershipSerializer(membership).data)

    @action(detail=True, methods=["post"], url_path="change-level")
    def change_level(self, request, membership_id=None):
        ser = ChangeLevelSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        membership = memberships.change_level(
            request.user, membership_id, data["to_level"],
            rename="position_name" in data,
            position_name=data.get("position_name"),
            reason=data.get("reason"),
            effective_date=data.get("effective_date"),
        )
        return Response(MembershipSerializer(membership).data)

    @action(detail=True, methods=["post"], url_path="set-primary")
    def set_primary(self, request, membership_id=None):
        membership = memberships.set_primary_assignment(request.user, membership_id)
        return Response(MembershipSerializer(membership).data)


class PositionChangeLogViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = PositionChangeLog.objects.select_related("user", "actor").all()
    serializer_class = PositionChangeLogSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdminOrHR]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = PositionChangeFilter
    ordering_fields = ["effective_date", "created_at"]
    lookup_field = "log_id"
