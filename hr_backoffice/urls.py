from django.contrib import admin
from django.urls import include, path

from evaluation_app.views.health import health

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/health/", health, name="health"),
    path("api/org/", include("evaluation_app.urls.org_apis")),
    path("api/", include("evaluation_app.urls.api")),
]
