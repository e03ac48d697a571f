import pytest

from evaluation_app.exceptions import BadRequest, Conflict, NotFound
from evaluation_app.models import ChangeKind, PositionChangeLog, PositionLevel, UserDepartment
from evaluation_app.services import memberships as svc


@pytest.mark.django_db
class TestAssign:
    def test_first_assignment_becomes_primary_and_is_logged(self, create_user, department):
        actor = create_user()
        user = create_user()
        m = svc.assign_user_to_department(actor, user.pk, department.pk, "svr", position_name="Lead")

        user.refresh_from_db()
        assert m.level == PositionLevel.SVR
        assert user.primary_membership_id == m.pk

        log = PositionChangeLog.objects.get(user=user)
        assert log.kind == ChangeKind.TRANSFER
        assert log.reason == "assign"
        assert log.actor_id == actor.pk
        assert log.from_department_id is None and log.from_level is None
        assert log.to_department_id == department.pk and log.to_level == PositionLevel.SVR

    def test_second_department_keeps_primary_unless_asked(self, create_user, create_department, department):
        user = create_user()
        first = svc.assign_user_to_department(None, user.pk, department.pk, "STAF")
        other = create_department()

        svc.assign_user_to_department(None, user.pk, other.pk, "STAF")
        user.refresh_from_db()
        assert user.primary_membership_id == first.pk

        third = create_department()
        m = svc.assign_user_to_department(None, user.pk, third.pk, "STAF", make_primary=True)
        user.refresh_from_db()
        assert user.primary_membership_id == m.pk

    def test_reassigning_same_department_supersedes(self, create_user, department):
        user = create_user()
        old = svc.assign_user_to_department(None, user.pk, department.pk, "STAF")
        new = svc.assign_user_to_department(None, user.pk, department.pk, "ASST")

        old.refresh_from_db()
        user.refresh_from_db()
        assert not old.is_active and old.ended_at is not None
        assert user.primary_membership_id == new.pk
        assert UserDepartment.objects.filter(user=user, is_active=True).count() == 1

    def test_single_md_per_department(self, create_user, department):
        svc.assign_user_to_department(None, create_user().pk, department.pk, "MD")
        with pytest.raises(Conflict) as exc:
            svc.assign_user_to_department(None, create_user().pk, department.pk, "MD")
        assert exc.value.code == "MD_EXISTS"

    def test_md_can_be_reassigned_in_place(self, create_user, department):
        md = create_user()
        svc.assign_user_to_department(None, md.pk, department.pk, "MD")
        svc.assign_user_to_department(None, md.pk, department.pk, "MD", position_name="CEO")

    @pytest.mark.parametrize("level", ["", "CEO", None])
    def test_bad_level(self, create_user, department, level):
        with pytest.raises(BadRequest):
            svc.assign_user_to_department(None, create_user().pk, department.pk, level)

    def test_unknown_user_or_department(self, create_user, department):
        with pytest.raises(NotFound):
            svc.assign_user_to_department(None, "00000000-0000-0000-0000-000000000000", department.pk, "STAF")
        with pytest.raises(NotFound):
            svc.assign_user_to_department(None, create_user().pk, "00000000-0000-0000-0000-000000000000", "STAF")


@pytest.mark.django_db
class TestEndRenameAndLevels:
    def test_end_clears_primary(self, create_user, department):
        user = create_user()
        m = svc.assign_user_to_department(None, user.pk, department.pk, "STAF")

        svc.end_or_rename_assignment(None, m.pk, end=True)
        m.refresh_from_db()
        user.refresh_from_db()
        assert not m.is_current
        assert user.primary_membership_id is None
        assert PositionChangeLog.objects.filter(user=user, reason="end").exists()

    def test_rename_logs_both_names(self, create_user, department):
        user = create_user()
        m = svc.assign_user_to_department(None, user.pk, department.pk, "STAF", position_name="Clerk")

        svc.end_or_rename_assignment(None, m.pk, rename=True, position_name="Senior clerk")
        log = PositionChangeLog.objects.get(user=user, reason="rename")
        assert (log.from_name, log.to_name) == ("Clerk", "Senior clerk")

    def test_nothing_to_do(self, create_user, department):
        m = svc.assign_user_to_department(None, create_user().pk, department.pk, "STAF")
        with pytest.raises(BadRequest):
            svc.end_or_rename_assignment(None, m.pk)

    @pytest.mark.parametrize("start, to, kind", [
        ("STAF", "MANAGER", ChangeKind.PROMOTE),
        ("MANAGER", "SVR", ChangeKind.DEMOTE),
        ("ASST", "asst", ChangeKind.TRANSFER),
    ])
    def test_change_level_kind(self, create_user, department, start, to, kind):
        user = create_user()
        m = svc.assign_user_to_department(None, user.pk, department.pk, start)

        m = svc.change_level(None, m.pk, to)
        log = PositionChangeLog.objects.get(user=user, reason="change-level")
        assert log.kind == kind
        assert log.from_level == start and log.to_level == m.level == to.upper()

    def test_promote_to_md_respects_existing_md(self, create_user, department):
        svc.assign_user_to_department(None, create_user().pk, department.pk, "MD")
        m = svc.assign_user_to_department(None, create_user().pk, department.pk, "MANAGER")
        with pytest.raises(Conflict):
            svc.change_level(None, m.pk, "MD")

    def test_ended_membership_cannot_change(self, create_user, department):
        m = svc.assign_user_to_department(None, create_user().pk, department.pk, "STAF")
        svc.end_or_rename_assignment(None, m.pk, end=True)
        with pytest.raises(BadRequest):
            svc.change_level(None, m.pk, "SVR")
        with pytest.raises(BadRequest):
            svc.set_primary_assignment(None, m.pk)

    def test_set_primary(self, create_user, create_department, department):
        user = create_user()
        svc.assign_user_to_department(None, user.pk, department.pk, "STAF")
        other = svc.assign_user_to_department(None, user.pk, create_department().pk, "SVR")

        svc.set_primary_assignment(None, other.pk)
        user.refresh_from_db()
        assert user.primary_membership_id == other.pk


@pytest.mark.django_db
class TestListing:
    def test_list_assignments_filters_and_pages(self, create_user, create_department, department):
        user = create_user()
        svc.assign_user_to_department(None, user.pk, department.pk, "STAF", position_name="Cashier")
        other = create_department(code="RND")
        ended = svc.assign_user_to_department(None, user.pk, other.pk, "SVR")
        svc.end_or_rename_assignment(None, ended.pk, end=True)

        assert svc.list_assignments()["total"] == 2
        assert svc.list_assignments(active_only=True)["total"] == 1
        assert svc.list_assignments(q="cash")["total"] == 1
        assert svc.list_assignments(q="rnd")["total"] == 1
        assert svc.list_assignments(department_id=other.pk)["rows"][0].pk == ended.pk

        page = svc.list_assignments(page=2, limit=1)
        assert page["page"] == 2 and page["limit"] == 1 and len(page["rows"]) == 1

        clamped = svc.list_assignments(page="x", limit=10_000)
        assert clamped["page"] == 1 and clamped["limit"] == svc.MAX_PAGE_SIZE

    def test_list_by_user(self, create_user, department):
        user = create_user()
        m = svc.assign_user_to_department(None, user.pk, department.pk, "STAF")
        assert [r.pk for r in svc.list_by_user(user.pk)] == [m.pk]
        with pytest.raises(BadRequest):
            svc.list_by_user(None)
