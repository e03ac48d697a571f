from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from evaluation_app.filters import EvaluationFilter
from evaluation_app.serializers.evaluation_serializer import (
    EligibleQuerySerializer, EvaluationCreateSerializer, EvaluationSerializer,
    EvaluationUpdateSerializer, RejectSerializer, SignatureSerializer,
)
from evaluation_app.serializers.org_serializers import UserBriefSerializer
from evaluation_app.services import evaluation_flow as flow
from evaluation_app.services.eligibility import list_eligible_evaluatees
from evaluation_app.views.base import auth_context


class EvaluationViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    Permissions
    -----------
    Every authenticated user reaches these endpoints; who may do what is
    decided by the evaluation workflow:
    • Owner           → create (self), edit draft, submit, delete.
    • Manager / MD    → approve or reject in their step.
    • ADMIN / HR      → see everything, edit drafts, reassign approvers.
    • Others          → only rows where they are owner, creator or approver.
    """
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    permission_classes = [IsAuthenticated]
    serializer_class = EvaluationSerializer
    filterset_class = EvaluationFilter
    ordering_fields = ["updated_at", "created_at", "score_total", "status"]
    ordering = ["-updated_at"]
    lookup_field = "evaluation_id"

    def get_queryset(self):
        return flow.visible_evaluations(auth_context(self.request))

    def _out(self, evaluation, code=status.HTTP_200_OK):
        return Response(EvaluationSerializer(evaluation).data, status=code)

    # ---- CRUD -------------------------------------------------
    def retrieve(self, request, evaluation_id=None):
        return self._out(flow.get_evaluation(evaluation_id, auth_context(request)))

    def create(self, request):
        ser = EvaluationCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        evaluation, created = flow.get_or_create_evaluation(
            auth_context(request),
            cycle_id=data["cycle_id"],
            owner_id=data.get("owner_id") or request.user.pk,
            manager_id=data.get("manager_id"),
            md_id=data.get("md_id"),
            eval_type=data.get("type"),
        )
        return self._out(evaluation, status.HTTP_201_CREATED if created else status.HTTP_200_OK)

    def partial_update(self, request, evaluation_id=None):
        ser = EvaluationUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        evaluation = flow.update_evaluation(evaluation_id, ser.validated_data, auth_context(request))
        return self._out(evaluation)

    def update(self, request, evaluation_id=None):
        return self.partial_update(request, evaluation_id)

    def destroy(self, request, evaluation_id=None):
        flow.delete_evaluation(evaluation_id, auth_context(request))
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ---- workflow ---------------------------------------------
    @action(detail=True, methods=["post"])
    def submit(self, request, evaluation_id=None):
        ser = SignatureSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        evaluation = flow.submit_evaluation(
            evaluation_id, auth_context(request),
            signature=ser.validated_data.get("signature"),
            comment=ser.validated_data.get("comment"),
        )
        return self._out(evaluation)

    @action(detail=True, methods=["post"], url_path="approve/manager")
    def approve_manager(self, request, evaluation_id=None):
        ser = SignatureSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        evaluation = flow.approve_by_manager(
            evaluation_id, auth_context(request),
            signature=ser.validated_data.get("signature"),
            comment=ser.validated_data.get("comment"),
        )
        return self._out(evaluation)

    @action(detail=True, methods=["post"], url_path="approve/md")
    def approve_md(self, request, evaluation_id=None):
        ser = SignatureSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        evaluation = flow.approve_by_md(
            evaluation_id, auth_context(request),
            signature=ser.validated_data.get("signature"),
            comment=ser.validated_data.get("comment"),
        )
        return self._out(evaluation)

    @action(detail=True, methods=["post"])
    def reject(self, request, evaluation_id=None):
        ser = RejectSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        evaluation = flow.reject_evaluation(
            evaluation_id, auth_context(request), comment=ser.validated_data.get("comment"),
        )
        return self._out(evaluation)

    @action(detail=False, methods=["get"], url_path=r"eligible/(?P<cycle_id>[^/.]+)")
    def eligible(self, request, cycle_id=None):
        params = EligibleQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        users = list_eligible_evaluatees(
            cycle_id,
            auth_context(request),
            include_self=params.validated_data["include_self"],
            include_taken=params.validated_data["include_taken"],
        )
        return Response(UserBriefSerializer(users, many=True).data)
