import base64
from datetime import timedelta
from uuid import uuid4

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import Role
from evaluation_app.models import (
    CycleStage, Department, EvalCycle, EvalStatus, EvalType, Evaluation, PositionLevel,
)
from evaluation_app.services.authorization import AuthorizationContext
from evaluation_app.services.memberships import assign_user_to_department


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def signature():
    # 20 raw bytes, comfortably above the 16-byte minimum
    return base64.b64encode(b"signature-bytes-0001").decode()


@pytest.fixture
def create_user(db):
    User = get_user_model()
    def _create_user(**kw):
        data = {
            "username": f"u_{uuid4().hex[:8]}",
            "email": f"{uuid4().hex[:8]}@test.local",
            "password": "pass12345",
            "name": "Test User",
            "role": Role.STAFF,
        }
        data.update(kw)
        return User.objects.create_user(**data)
    return _create_user


@pytest.fixture
def create_department(db):
    def _create_department(**kw):
        code = kw.pop("code", f"D{uuid4().hex[:6]}")
        defaults = dict(code=code, name_th=f"แผนก {code}", name_en=f"Dept {code}")
        defaults.update(kw)
        return Department.objects.create(**defaults)
    return _create_department


@pytest.fixture
def assign(db):
    def _assign(user, department, level=PositionLevel.STAF, **kw):
        return assign_user_to_department(None, user.pk, department.pk, level, **kw)
    return _assign


@pytest.fixture
def department(create_department):
    return create_department(code="SALES")


@pytest.fixture
def placed_user(create_user, assign, department):
    """User with a primary membership in ``department`` (or the one given)."""
    def _placed_user(level=PositionLevel.STAF, dept=None, **kw):
        user = create_user(**kw)
        assign(user, dept or department, level)
        user.refresh_from_db()
        return user
    return _placed_user


@pytest.fixture
def ctx_for(db):
    def _ctx_for(user):
        return AuthorizationContext.for_user(user)
    return _ctx_for


@pytest.fixture
def create_cycle(db):
    def _create_cycle(**kw):
        now = timezone.now()
        defaults = dict(
            code=f"C-{uuid4().hex[:6]}",
            year=now.year,
            stage=CycleStage.MID_YEAR,
            open_at=now - timedelta(days=1),
            close_at=now + timedelta(days=1),
            is_active=True,
        )
        defaults.update(kw)
        # created directly: the service refuses windows that started in the past
        return EvalCycle.objects.create(**defaults)
    return _create_cycle


@pytest.fixture
def open_cycle(create_cycle):
    return create_cycle()


@pytest.fixture
def closed_cycle(create_cycle):
    now = timezone.now()
    return create_cycle(open_at=now - timedelta(days=10), close_at=now - timedelta(days=1))


@pytest.fixture
def create_evaluation(db, open_cycle):
    def _create_evaluation(owner, **kw):
        cycle = kw.pop("cycle", open_cycle)
        defaults = dict(
            cycle=cycle,
            owner=owner,
            created_by=owner,
            stage=cycle.stage,
            type=EvalType.OPERATIONAL,
            status=EvalStatus.DRAFT,
        )
        defaults.update(kw)
        return Evaluation.objects.create(**defaults)
    return _create_evaluation
