from django.contrib import admin

from . import models as m


# ───────────────────────────────
#  Basic inline helpers
# ───────────────────────────────
class UserDepartmentInline(admin.TabularInline):
    model = m.UserDepartment
    extra = 0
    autocomplete_fields = ["user"]
    fields = ("user", "level", "position_name", "started_at", "ended_at", "is_active")


# ───────────────────────────────
#  Organization
# ───────────────────────────────
@admin.register(m.Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ("code", "name_th", "name_en", "state", "created_at")
    search_fields = ("code", "name_th", "name_en")
    list_filter = ("state",)

    def get_queryset(self, request):
        return m.Organization.all_objects.all()


# ───────────────────────────────
#  Department
# ───────────────────────────────
@admin.register(m.Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ("code", "name_th", "organization", "state")
    search_fields = ("code", "name_th", "name_en")
    list_filter = ("state", "organization")
    inlines = [UserDepartmentInline]

    def get_queryset(self, request):
        return m.Department.all_objects.select_related("organization")


# ───────────────────────────────
#  Memberships & audit trail
# ───────────────────────────────
@admin.register(m.UserDepartment)
class UserDepartmentAdmin(admin.ModelAdmin):
    list_display = ("user", "department", "level", "position_name", "is_active", "started_at", "ended_at")
    list_filter = ("level", "is_active", "department")
    search_fields = ("user__username", "user__name", "department__code", "position_name")
    autocomplete_fields = ["user", "department"]


@admin.register(m.PositionChangeLog)
class PositionChangeLogAdmin(admin.ModelAdmin):
    list_display = ("user", "kind", "from_level", "to_level", "to_department", "reason", "effective_date")
    list_filter = ("kind",)
    search_fields = ("user__username", "user__name", "reason")

    # write-once
    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ───────────────────────────────
#  Cycles & evaluations
# ───────────────────────────────
@admin.register(m.EvalCycle)
class EvalCycleAdmin(admin.ModelAdmin):
    list_display = ("code", "year", "stage", "open_at", "close_at", "is_active", "is_mandatory")
    list_filter = ("stage", "is_active", "year")
    search_fields = ("code",)


def recalc_scores(modeladmin, request, queryset):
    for evaluation in queryset:
        evaluation.save(update_fields=list(m.SCORE_FIELDS))  # pre_save recomputes
    modeladmin.message_user(request, f"Recalculated scores for {queryset.count()} evaluations.")
recalc_scores.short_description = "Recalculate scores from ratings"


@admin.register(m.Evaluation)
class EvaluationAdmin(admin.ModelAdmin):
    list_display = ("owner", "cycle", "type", "status", "score_total", "manager", "md", "updated_at")
    list_filter = ("status", "type", "stage", "cycle")
    search_fields = ("owner__username", "owner__name", "cycle__code")
    autocomplete_fields = ["owner", "created_by", "manager", "md"]
    readonly_fields = ("score_perf", "score_result", "score_comp", "score_total", "version")
    actions = [recalc_scores]
