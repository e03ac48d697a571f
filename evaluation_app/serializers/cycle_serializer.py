from rest_framework import serializers

from evaluation_app.models import CycleStage, EvalCycle
from evaluation_app.utils import LabelChoiceField


class EvalCycleSerializer(serializers.ModelSerializer):
    stage   = LabelChoiceField(choices=CycleStage.choices)
    is_open = serializers.SerializerMethodField()

    class Meta:
        model = EvalCycle
        fields = [
            "cycle_id", "code", "year", "stage", "open_at", "close_at",
            "is_active", "is_mandatory", "is_open", "created_at", "updated_at",
        ]
        read_only_fields = ("cycle_id", "is_open", "created_at", "updated_at")
        # uniqueness is enforced by the cycle service as a 409
        extra_kwargs = {"code": {"validators": []}}

    def get_is_open(self, obj):
        return obj.is_open()


class CycleListQuerySerializer(serializers.Serializer):
    page    = serializers.IntegerField(default=1)
    limit   = serializers.IntegerField(default=50)
    sort_by = serializers.CharField(default="year")
    sort    = serializers.ChoiceField(choices=["asc", "desc"], default="desc")
