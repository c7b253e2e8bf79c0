import pytest

from fairsplit import policy
from fairsplit.errors import PermissionDenied


@pytest.mark.parametrize(
    "action",
    [policy.VIEW_GROUP, policy.ADD_EXPENSE, policy.DELETE_OWN_EXPENSE, policy.ADD_ADJUSTMENT, policy.ADD_CATEGORY],
)
def test_everyone_can_do_member_actions(action):
    assert policy.can("member", action)
    assert policy.can("admin", action)


@pytest.mark.parametrize(
    "action",
    [
        policy.ADD_MEMBER,
        policy.REMOVE_MEMBER,
        policy.UPDATE_ROLE,
        policy.DELETE_ANY_EXPENSE,
        policy.DELETE_ADJUSTMENT,
    ],
)
def test_admin_only_actions(action):
    assert policy.can("admin", action)
    assert not policy.can("member", action)


def test_unknown_role_can_do_nothing():
    assert not policy.can(None, policy.VIEW_GROUP)
    assert not policy.can("owner", policy.VIEW_GROUP)


def test_authorize_returns_member(store):
    member = policy.authorize(store.get_group("g1"), "u1", policy.ADD_MEMBER)
    assert member.member_id == "u1"


def test_authorize_rejects_outsiders(store):
    with pytest.raises(PermissionDenied, match="not a member"):
        policy.authorize(store.get_group("g1"), "u99", policy.VIEW_GROUP)


def test_authorize_rejects_members_for_admin_actions(store):
    with pytest.raises(PermissionDenied, match="Only group admins can add members"):
        policy.authorize(store.get_group("g1"), "u3", policy.ADD_MEMBER)
