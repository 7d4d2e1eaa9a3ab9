import pytest

from gearguard import policy
from gearguard.errors import Forbidden, NotFound
from gearguard.models import ROLES, RequestUpdate, User


def _ids(requests):
    return {r.id for r in requests}


@pytest.fixture()
def board(make_request, lifecycle, seeded):
    """A spread of requests across both teams, creators and assignees."""
    r = dict(
        emma_new=make_request(user=seeded.emma, subject="Press noise"),
        noah_new=make_request(user=seeded.noah, subject="Press leak"),
        laptop_new=make_request(user=seeded.emma, equipment=seeded.laptop, subject="Screen flicker"),
        mike_active=make_request(user=seeded.noah, subject="Belt worn"),
        sarah_active=make_request(user=seeded.noah, equipment=seeded.laptop, subject="Keyboard"),
        mech_done=make_request(user=seeded.manager, subject="Old repair"),
    )
    lifecycle.assign(seeded.mike, r["mike_active"].id)
    lifecycle.assign(seeded.sarah, r["sarah_active"].id)
    lifecycle.update(seeded.manager, r["mech_done"].id, RequestUpdate(status="repaired"))
    return r


def test_policy_table_covers_every_role():
    for operation in policy.GATES:
        for role in ROLES:
            assert (role, operation) in policy.POLICY


def test_employee_sees_only_own_requests(lifecycle, seeded, board):
    access = policy.authorize(seeded.emma, "list_requests")
    assert _ids(lifecycle.list(access)) == {board["emma_new"].id, board["laptop_new"].id}


def test_technician_sees_assigned_and_team_queue(lifecycle, seeded, board):
    access = policy.authorize(seeded.mike, "list_requests")
    assert _ids(lifecycle.list(access)) == {
        board["emma_new"].id, board["noah_new"].id, board["mike_active"].id,
    }


def test_technician_keeps_assigned_work_from_other_teams(lifecycle, seeded, board):
    lifecycle.assign(seeded.manager, board["laptop_new"].id, seeded.mike.id)
    access = policy.authorize(seeded.mike, "list_requests")
    assert board["laptop_new"].id in _ids(lifecycle.list(access))


def test_technician_without_team_sees_only_assigned(lifecycle, seeded, board, db):
    floater = User(name="Floater", email="floater@gearguard.com", role="technician")
    floater.id = db.users.insert_one(floater.to_document()).inserted_id
    lifecycle.assign(seeded.manager, board["noah_new"].id, floater.id)

    access = policy.authorize(floater, "list_requests")
    assert _ids(lifecycle.list(access)) == {board["noah_new"].id}


@pytest.mark.parametrize("role_user", ["manager", "admin"])
def test_staff_see_everything(lifecycle, seeded, board, role_user):
    access = policy.authorize(getattr(seeded, role_user), "list_requests")
    assert _ids(lifecycle.list(access)) == {r.id for r in board.values()}


def test_filters_layer_on_top_of_scope(lifecycle, seeded, board):
    access = policy.authorize(seeded.mike, "list_requests")
    assert _ids(lifecycle.list(access, status="in-progress")) == {board["mike_active"].id}

    access = policy.authorize(seeded.manager, "list_requests")
    assert _ids(lifecycle.list(access, status="repaired", type="corrective")) == {board["mech_done"].id}
    assert lifecycle.list(access, priority="high") == []


def test_view_outside_scope_is_not_found(lifecycle, seeded, board):
    access = policy.authorize(seeded.noah, "view_request")
    with pytest.raises(NotFound):
        lifecycle.get(access, board["emma_new"].id)
    assert lifecycle.get(access, board["noah_new"].id).subject == "Press leak"


@pytest.mark.parametrize("role, operation, allowed", [
    ("employee", "assign_request", False),
    ("technician", "assign_request", True),
    ("manager", "assign_request", True),
    ("admin", "assign_request", False),
    ("technician", "delete_request", False),
    ("manager", "delete_request", True),
    ("manager", "manage_equipment", False),
    ("admin", "manage_equipment", True),
    ("technician", "list_users", False),
    ("employee", "list_technicians", True),
])
def test_role_gates(role, operation, allowed):
    user = User(name="x", email="x@gearguard.com", role=role)
    assert policy.is_allowed(user, operation) is allowed
    if not allowed:
        with pytest.raises(Forbidden):
            policy.authorize(user, operation)


def test_mutation_hooks(seeded, board):
    request = board["emma_new"]
    assert policy.can_edit(seeded.emma, request)
    assert not policy.can_edit(seeded.noah, request)
    assert not policy.can_edit(seeded.mike, request)
    assert policy.can_edit(seeded.manager, request)
    assert policy.can_edit(seeded.admin, request)

    assert policy.can_update_status(seeded.mike)
    assert policy.can_update_status(seeded.manager)
    assert not policy.can_update_status(seeded.admin)
    assert not policy.can_update_status(seeded.emma)
