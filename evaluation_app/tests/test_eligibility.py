import pytest

from accounts.models import Role
from evaluation_app.exceptions import Forbidden, NotFound
from evaluation_app.models import PositionLevel
from evaluation_app.services.eligibility import can_evaluate, list_eligible_evaluatees


@pytest.mark.django_db
class TestCanEvaluate:
    def test_self_is_always_allowed_even_without_profile(self, create_user):
        loner = create_user(role="")
        assert can_evaluate(loner.pk, loner.pk) is True

    def test_higher_rank_in_same_department(self, placed_user):
        manager = placed_user(PositionLevel.MANAGER)
        staff = placed_user(PositionLevel.STAF)
        assert can_evaluate(manager.pk, staff.pk) is True
        assert can_evaluate(staff.pk, manager.pk) is False

    def test_equal_rank_is_not_enough(self, placed_user):
        a = placed_user(PositionLevel.SVR)
        b = placed_user(PositionLevel.SVR)
        assert can_evaluate(a.pk, b.pk) is False

    def test_other_department_is_refused(self, placed_user, create_department):
        manager = placed_user(PositionLevel.MANAGER)
        elsewhere = placed_user(PositionLevel.STAF, dept=create_department(code="OPS"))
        assert can_evaluate(manager.pk, elsewhere.pk) is False

    def test_secondary_membership_counts(self, placed_user, create_department, assign):
        ops = create_department(code="OPS")
        manager = placed_user(PositionLevel.MANAGER)
        assign(manager, ops, PositionLevel.ASST)
        ops_staff = placed_user(PositionLevel.STAF, dept=ops)
        assert can_evaluate(manager.pk, ops_staff.pk) is True

    def test_admin_can_evaluate_anyone(self, placed_user, create_department):
        admin = placed_user(PositionLevel.STAF, role=Role.ADMIN)
        md_elsewhere = placed_user(PositionLevel.MD, dept=create_department(code="OPS"))
        assert can_evaluate(admin.pk, md_elsewhere.pk) is True

    def test_md_level_anywhere_is_privileged(self, placed_user, create_department):
        md = placed_user(PositionLevel.MD, dept=create_department(code="BOARD"))
        staff = placed_user(PositionLevel.STAF)
        assert can_evaluate(md.pk, staff.pk) is True

    def test_incomplete_evaluator_fails_even_if_target_is_eligible(self, create_user, placed_user):
        # an admin role alone is not a complete profile
        admin_without_dept = create_user(role=Role.ADMIN)
        staff = placed_user(PositionLevel.STAF)
        with pytest.raises(Forbidden) as exc:
            can_evaluate(admin_without_dept.pk, staff.pk)
        assert exc.value.code == "PROFILE_INCOMPLETE"

    def test_missing_role_is_incomplete(self, placed_user):
        no_role = placed_user(PositionLevel.MANAGER, role="")
        staff = placed_user(PositionLevel.STAF)
        with pytest.raises(Forbidden):
            can_evaluate(no_role.pk, staff.pk)

    def test_evaluatee_without_primary_is_refused(self, placed_user, create_user):
        manager = placed_user(PositionLevel.MANAGER)
        unplaced = create_user()
        assert can_evaluate(manager.pk, unplaced.pk) is False

    def test_unknown_users_are_not_found(self, placed_user):
        manager = placed_user(PositionLevel.MANAGER)
        with pytest.raises(NotFound):
            can_evaluate(manager.pk, "00000000-0000-0000-0000-000000000000")

    def test_deleted_evaluatee_is_not_found(self, placed_user):
        manager = placed_user(PositionLevel.MANAGER)
        gone = placed_user(PositionLevel.STAF)
        gone.soft_delete()
        with pytest.raises(NotFound):
            can_evaluate(manager.pk, gone.pk)


@pytest.mark.django_db
class TestListEligible:
    def test_lists_lower_ranks_in_shared_departments(self, placed_user, open_cycle, ctx_for):
        manager = placed_user(PositionLevel.MANAGER)
        staff = placed_user(PositionLevel.STAF)
        svr = placed_user(PositionLevel.SVR)
        peer = placed_user(PositionLevel.MANAGER)

        ids = {u.pk for u in list_eligible_evaluatees(open_cycle.pk, ctx_for(manager))}
        assert ids == {staff.pk, svr.pk}
        assert peer.pk not in ids and manager.pk not in ids

    def test_taken_users_are_filtered_unless_asked(self, placed_user, open_cycle, ctx_for, create_evaluation):
        manager = placed_user(PositionLevel.MANAGER)
        staff = placed_user(PositionLevel.STAF)
        create_evaluation(staff)

        ctx = ctx_for(manager)
        assert list_eligible_evaluatees(open_cycle.pk, ctx) == []
        assert [u.pk for u in list_eligible_evaluatees(open_cycle.pk, ctx, include_taken=True)] == [staff.pk]

    def test_self_fallback_when_nobody_is_eligible(self, placed_user, open_cycle, ctx_for):
        staff = placed_user(PositionLevel.STAF)
        ctx = ctx_for(staff)
        assert list_eligible_evaluatees(open_cycle.pk, ctx) == []
        assert [u.pk for u in list_eligible_evaluatees(open_cycle.pk, ctx, include_self=True)] == [staff.pk]

    def test_privileged_sees_every_live_user(self, placed_user, create_user, open_cycle, ctx_for):
        hr = placed_user(PositionLevel.STAF, role=Role.HR)
        unplaced = create_user()
        deleted = create_user()
        deleted.soft_delete()

        ids = {u.pk for u in list_eligible_evaluatees(open_cycle.pk, ctx_for(hr))}
        assert unplaced.pk in ids
        assert deleted.pk not in ids
        assert hr.pk not in ids

        ids = {u.pk for u in list_eligible_evaluatees(open_cycle.pk, ctx_for(hr), include_self=True)}
        assert hr.pk in ids

    def test_incomplete_non_privileged_evaluator_fails(self, create_user, open_cycle, ctx_for):
        nobody = create_user()
        with pytest.raises(Forbidden):
            list_eligible_evaluatees(open_cycle.pk, ctx_for(nobody))

    def test_unknown_cycle(self, placed_user, ctx_for):
        manager = placed_user(PositionLevel.MANAGER)
        with pytest.raises(NotFound):
            list_eligible_evaluatees("00000000-0000-0000-0000-000000000000", ctx_for(manager))
