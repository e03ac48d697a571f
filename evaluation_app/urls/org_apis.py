from rest_framework.routers import DefaultRouter

from evaluation_app.views.orgViewSets import (
    DepartmentViewSet, OrganizationViewSet, PositionChangeLogViewSet, UserDepartmentViewSet,
)

router = DefaultRouter()
router.register("organizations", OrganizationViewSet, basename="organization")  # /api/org/organizations/
router.register("departments", DepartmentViewSet, basename="department")        # /api/org/departments/
router.register("memberships", UserDepartmentViewSet, basename="membership")    # /api/org/memberships/
router.register("position-changes", PositionChangeLogViewSet, basename="position-change")

urlpatterns = router.urls
