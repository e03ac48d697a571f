import django_filters as filters

from evaluation_app.models import Evaluation, PositionChangeLog


class EvaluationFilter(filters.FilterSet):
    # expose nice query params…
    cycle_id   = filters.UUIDFilter(field_name="cycle_id", lookup_expr="exact")
    owner_id   = filters.UUIDFilter(field_name="owner_id", lookup_expr="exact")
    manager_id = filters.UUIDFilter(field_name="manager_id", lookup_expr="exact")
    md_id      = filters.UUIDFilter(field_name="md_id", lookup_expr="exact")
    status     = filters.CharFilter(method="filter_status")  # use keys e.g. SUBMITTED
    owner      = filters.CharFilter(method="filter_owner")   # owner=me

    class Meta:
        model = Evaluation
        fields = ["cycle_id", "owner_id", "manager_id", "md_id", "status", "owner"]

    def filter_status(self, qs, name, value):
        return qs.filter(status=value.upper())

    def filter_owner(self, qs, name, value):
        if value == "me":
            return qs.filter(owner_id=self.request.user.pk)
        return qs


class PositionChangeFilter(filters.FilterSet):
    user_id       = filters.UUIDFilter(field_name="user_id", lookup_expr="exact")
    department_id = filters.UUIDFilter(field_name="to_department_id", lookup_expr="exact")
    kind          = filters.CharFilter(field_name="kind", lookup_expr="iexact")

    class Meta:
        model = PositionChangeLog
        fields = ["user_id", "department_id", "kind"]
