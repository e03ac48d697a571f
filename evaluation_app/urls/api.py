# evaluation_app/urls/api.py
from django.urls import path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import (
           TokenRefreshView,      # POST /api/auth/refresh/
           TokenBlacklistView,    # POST /api/auth/logout/ (requires blacklist app)
)

from accounts.views import UserViewSet
from evaluation_app.views.auth import EmailLoginView
from evaluation_app.views.evalCycleViewSet import EvalCycleViewSet
from evaluation_app.views.evaluationViewSet import EvaluationViewSet

router = DefaultRouter()
router.register("users", UserViewSet, basename="user")                    # /api/users/ & /api/users/{user_id}/
router.register("evaluations", EvaluationViewSet, basename="evaluation")  # /api/evaluations/
router.register("cycles", EvalCycleViewSet, basename="cycle")             # /api/cycles/

urlpatterns = [
    # JWT
    path("auth/login/",   EmailLoginView.as_view(),     name="jwt-login"),
    path("auth/refresh/", TokenRefreshView.as_view(),   name="jwt-refresh"),
    path("auth/logout/",  TokenBlacklistView.as_view(), name="jwt-logout"),
    # REST resources
    *router.urls
]
