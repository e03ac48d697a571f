from rest_framework import status, viewsets
from rest_framework.response import Response

from evaluation_app.serializers.cycle_serializer import CycleListQuerySerializer, EvalCycleSerializer
from evaluation_app.services import eval_cycles
from evaluation_app.views.base import ReadOnlyAuthFullAdminHRMixin


class EvalCycleViewSet(ReadOnlyAuthFullAdminHRMixin, viewsets.ViewSet):
    """
    Evaluation cycles.
    • Everyone signed in → list / retrieve.
    • ADMIN / HR         → create / update / delete.
    """
    lookup_field = "cycle_id"

    def list(self, request):
        params = CycleListQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        page = eval_cycles.list_cycles(**params.validated_data)
        page["rows"] = EvalCycleSerializer(page["rows"], many=True).data
        return Response(page)

    def retrieve(self, request, cycle_id=None):
        return Response(EvalCycleSerializer(eval_cycles.get_cycle(cycle_id)).data)

    def create(self, request):
        ser = EvalCycleSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        cycle = eval_cycles.create_cycle(ser.validated_data)
        return Response(EvalCycleSerializer(cycle).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, cycle_id=None):
        ser = EvalCycleSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        cycle = eval_cycles.update_cycle(cycle_id, ser.validated_data)
        return Response(EvalCycleSerializer(cycle).data)

    def update(self, request, cycle_id=None):
        return self.partial_update(request, cycle_id)

    def destroy(self, request, cycle_id=None):
        eval_cycles.delete_cycle(cycle_id)
        return Response(status=status.HTTP_204_NO_CONTENT)
