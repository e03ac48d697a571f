from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone

from accounts.models import Role
from evaluation_app.models import EvalStatus, Evaluation, PositionLevel


@pytest.fixture
def owner(placed_user):
    return placed_user(PositionLevel.STAF, name="Olivia Owner")


@pytest.fixture
def manager(placed_user):
    return placed_user(PositionLevel.MANAGER, role=Role.MANAGER)


@pytest.fixture
def md(placed_user):
    return placed_user(PositionLevel.MD, role=Role.MD)


@pytest.fixture
def hr(placed_user):
    return placed_user(PositionLevel.STAF, role=Role.HR)


def as_user(client, user):
    client.force_authenticate(user=user)
    return client


@pytest.mark.django_db
class TestEnvelope:
    def test_health_is_public(self, api_client):
        res = api_client.get(reverse("health"))
        assert res.status_code == 200
        body = res.json()
        assert body["ok"] is True
        assert body["data"]["status"] == "UP" and body["data"]["db"] == "UP"

    def test_anonymous_is_rejected(self, api_client):
        res = api_client.get(reverse("evaluation-list"))
        assert res.status_code == 401
        body = res.json()
        assert body["ok"] is False
        assert body["error"]["code"] == "UNAUTHORIZED"

    def test_validation_errors_carry_fields(self, api_client, owner, create_evaluation):
        ev = create_evaluation(owner)
        res = as_user(api_client, owner).patch(
            reverse("evaluation-detail", args=[ev.pk]), {"s1_responsibility": 11}, format="json",
        )
        assert res.status_code == 400
        error = res.json()["error"]
        assert error["code"] == "BAD_REQUEST"
        assert "s1_responsibility" in error["fields"]


@pytest.mark.django_db
class TestEvaluationEndpoints:
    def test_full_round_trip(self, api_client, owner, manager, md, open_cycle, signature):
        client = as_user(api_client, owner)
        res = client.post(reverse("evaluation-list"), {
            "cycle_id": str(open_cycle.pk),
            "manager_id": str(manager.pk),
            "md_id": str(md.pk),
        }, format="json")
        assert res.status_code == 201
        data = res.json()["data"]
        assert data["status"] == EvalStatus.DRAFT
        assert data["owner"]["name"] == "Olivia Owner"
        assert data["owner"]["department"]["code"] == "SALES"
        pk = data["evaluation_id"]

        ratings = {f: 10 for f in ("s1_responsibility", "s1_development", "s1_workload",
                                   "s1_quality_standard", "s1_coordination")}
        res = client.patch(reverse("evaluation-detail", args=[pk]), ratings, format="json")
        assert res.status_code == 200
        assert res.json()["data"]["score_perf"] == "40.00"

        res = client.post(reverse("evaluation-submit", args=[pk]), {"signature": signature}, format="json")
        assert res.json()["data"]["status"] == EvalStatus.SUBMITTED
        assert res.json()["data"]["submitter_signature"] == signature

        res = as_user(api_client, manager).post(
            reverse("evaluation-approve-manager", args=[pk]),
            {"signature": signature, "comment": "good"}, format="json",
        )
        assert res.status_code == 200
        assert res.json()["data"]["status"] == EvalStatus.APPROVER_APPROVED

        res = as_user(api_client, md).post(
            reverse("evaluation-approve-md", args=[pk]), {"signature": signature}, format="json",
        )
        data = res.json()["data"]
        assert data["status"] == EvalStatus.COMPLETED
        assert data["grade"] == "E"
        assert data["completed_at"] is not None

    def test_reject_endpoint(self, api_client, owner, manager, create_evaluation, signature):
        ev = create_evaluation(owner, manager=manager)
        as_user(api_client, owner).post(reverse("evaluation-submit", args=[ev.pk]), {"signature": signature}, format="json")

        res = as_user(api_client, manager).post(
            reverse("evaluation-reject", args=[ev.pk]), {"comment": "missing goals"}, format="json",
        )
        assert res.status_code == 200
        assert res.json()["data"]["status"] == EvalStatus.REJECTED
        assert res.json()["data"]["manager_comment"] == "missing goals"

    def test_submit_without_signature(self, api_client, owner, create_evaluation):
        ev = create_evaluation(owner)
        res = as_user(api_client, owner).post(reverse("evaluation-submit", args=[ev.pk]), {}, format="json")
        assert res.status_code == 400
        assert res.json()["error"]["code"] == "SIGNATURE_REQUIRED"

    def test_closed_cycle_is_forbidden(self, api_client, owner, closed_cycle):
        res = as_user(api_client, owner).post(
            reverse("evaluation-list"), {"cycle_id": str(closed_cycle.pk)}, format="json",
        )
        assert res.status_code == 403
        assert res.json()["error"]["code"] == "CYCLE_CLOSED"

    def test_wrong_approver_is_forbidden(self, api_client, owner, manager, md, create_evaluation, signature):
        ev = create_evaluation(owner, manager=manager, md=md)
        as_user(api_client, owner).post(reverse("evaluation-submit", args=[ev.pk]), {"signature": signature}, format="json")
        res = as_user(api_client, md).post(
            reverse("evaluation-approve-manager", args=[ev.pk]), {"signature": signature}, format="json",
        )
        assert res.status_code == 403

    def test_repeated_create_answers_200_with_the_same_row(self, api_client, owner, open_cycle):
        client = as_user(api_client, owner)
        body = {"cycle_id": str(open_cycle.pk)}
        first = client.post(reverse("evaluation-list"), body, format="json")
        assert first.status_code == 201

        second = client.post(reverse("evaluation-list"), body, format="json")
        assert second.status_code == 200
        assert second.json()["ok"] is True
        assert second.json()["data"]["evaluation_id"] == first.json()["data"]["evaluation_id"]
        assert Evaluation.objects.filter(cycle=open_cycle, owner=owner).count() == 1

    def test_list_and_filters(self, api_client, owner, manager, md, create_evaluation, placed_user):
        mine = create_evaluation(owner, manager=manager)
        create_evaluation(placed_user(PositionLevel.STAF))

        res = as_user(api_client, owner).get(reverse("evaluation-list"))
        assert [row["evaluation_id"] for row in res.json()["data"]] == [str(mine.pk)]

        res = as_user(api_client, md).get(reverse("evaluation-list"), {"manager_id": str(manager.pk)})
        assert [row["evaluation_id"] for row in res.json()["data"]] == [str(mine.pk)]

        res = as_user(api_client, md).get(reverse("evaluation-list"), {"status": "draft"})
        assert len(res.json()["data"]) == 2

    def test_hidden_evaluation_is_not_found(self, api_client, owner, create_evaluation, placed_user):
        ev = create_evaluation(owner)
        res = as_user(api_client, placed_user(PositionLevel.STAF)).get(reverse("evaluation-detail", args=[ev.pk]))
        assert res.status_code == 404
        assert res.json()["error"]["code"] == "NOT_FOUND"

    def test_delete(self, api_client, owner, create_evaluation):
        ev = create_evaluation(owner)
        res = as_user(api_client, owner).delete(reverse("evaluation-detail", args=[ev.pk]))
        assert res.status_code == 204
        assert res.content == b""
        assert not Evaluation.objects.filter(pk=ev.pk).exists()

    def test_eligible(self, api_client, owner, manager, open_cycle):
        res = as_user(api_client, manager).get(reverse("evaluation-eligible", args=[open_cycle.pk]))
        assert res.status_code == 200
        assert [u["user_id"] for u in res.json()["data"]] == [str(owner.pk)]

        res = as_user(api_client, manager).get(
            reverse("evaluation-eligible", args=[open_cycle.pk]), {"include_self": "true"},
        )
        # self only comes back when nobody else qualifies
        assert [u["user_id"] for u in res.json()["data"]] == [str(owner.pk)]

    def test_eligible_falls_back_to_self(self, api_client, owner, manager, open_cycle):
        client = as_user(api_client, owner)
        url = reverse("evaluation-eligible", args=[open_cycle.pk])
        res = client.get(url)
        assert res.status_code == 200
        assert res.json()["data"] == []

        res = client.get(url, {"include_self": "true"})
        assert res.status_code == 200
        assert [u["user_id"] for u in res.json()["data"]] == [str(owner.pk)]


@pytest.mark.django_db
class TestCycleEndpoints:
    def body(self, **kw):
        now = timezone.now()
        data = {
            "code": "2031-YE",
            "year": 2031,
            "stage": "Year-end",
            "open_at": (now + timedelta(days=1)).isoformat(),
            "close_at": (now + timedelta(days=20)).isoformat(),
        }
        data.update(kw)
        return data

    def test_staff_reads_but_cannot_write(self, api_client, owner, open_cycle):
        client = as_user(api_client, owner)
        res = client.get(reverse("cycle-list"))
        assert res.status_code == 200
        page = res.json()["data"]
        assert page["total"] == 1 and page["rows"][0]["is_open"] is True

        res = client.post(reverse("cycle-list"), self.body(), format="json")
        assert res.status_code == 403

    def test_hr_manages_cycles(self, api_client, hr):
        client = as_user(api_client, hr)
        res = client.post(reverse("cycle-list"), self.body(), format="json")
        assert res.status_code == 201
        data = res.json()["data"]
        assert data["stage"] == "YEAR_END" and data["is_open"] is False

        res = client.post(reverse("cycle-list"), self.body(), format="json")
        assert res.status_code == 409

        res = client.patch(reverse("cycle-detail", args=[data["cycle_id"]]), {"is_mandatory": False}, format="json")
        assert res.json()["data"]["is_mandatory"] is False

        res = client.delete(reverse("cycle-detail", args=[data["cycle_id"]]))
        assert res.status_code == 204

    def test_cycle_in_use(self, api_client, hr, owner, create_evaluation, open_cycle):
        create_evaluation(owner)
        res = as_user(api_client, hr).delete(reverse("cycle-detail", args=[open_cycle.pk]))
        assert res.status_code == 409
        assert res.json()["error"]["code"] == "CYCLE_IN_USE"


@pytest.mark.django_db
class TestMembershipEndpoints:
    def test_assign_requires_admin_or_hr(self, api_client, owner, create_user, department):
        newcomer = create_user()
        payload = {"user_id": str(newcomer.pk), "department_id": str(department.pk), "level": "svr"}
        res = as_user(api_client, owner).post(reverse("membership-list"), payload, format="json")
        assert res.status_code == 403

    def test_hr_assigns_and_promotes(self, api_client, hr, create_user, department):
        newcomer = create_user()
        client = as_user(api_client, hr)
        res = client.post(reverse("membership-list"), {
            "user_id": str(newcomer.pk), "department_id": str(department.pk), "level": "Supervisor",
        }, format="json")
        assert res.status_code == 201
        data = res.json()["data"]
        assert data["level"] == "SVR" and data["is_primary"] is True

        res = client.post(reverse("membership-change-level", args=[data["membership_id"]]),
                          {"to_level": "MANAGER"}, format="json")
        assert res.json()["data"]["level"] == "MANAGER"

        res = client.get(reverse("position-change-list"), {"user_id": str(newcomer.pk), "kind": "PROMOTE"})
        assert len(res.json()["data"]) == 1

        res = client.get(reverse("membership-by-user", args=[newcomer.pk]))
        assert [m["membership_id"] for m in res.json()["data"]] == [data["membership_id"]]
