"""Who may do what inside a group.

Every route that touches a group goes through :func:`authorize` before the
store is mutated or the engine is run.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Optional

from .errors import PermissionDenied
from .models import ROLE_ADMIN, ROLE_MEMBER, Group, Member

VIEW_GROUP = "view_group"
ADD_EXPENSE = "add_expense"
DELETE_OWN_EXPENSE = "delete_own_expense"
DELETE_ANY_EXPENSE = "delete_any_expense"
ADD_ADJUSTMENT = "add_adjustment"
DELETE_ADJUSTMENT = "delete_adjustment"
ADD_CATEGORY = "add_category"
ADD_MEMBER = "add_member"
REMOVE_MEMBER = "remove_member"
UPDATE_ROLE = "update_role"

_MEMBER_ACTIONS = frozenset(
    {
        VIEW_GROUP,
        ADD_EXPENSE,
        DELETE_OWN_EXPENSE,
        ADD_ADJUSTMENT,
        ADD_CATEGORY,
    }
)

CAPABILITIES: Dict[str, FrozenSet[str]] = {
    ROLE_MEMBER: _MEMBER_ACTIONS,
    ROLE_ADMIN: _MEMBER_ACTIONS
    | {
        DELETE_ANY_EXPENSE,
        DELETE_ADJUSTMENT,
        ADD_MEMBER,
        REMOVE_MEMBER,
        UPDATE_ROLE,
    },
}

_DENIED_MESSAGES = {
    ADD_MEMBER: "Only group admins can add members",
    REMOVE_MEMBER: "Only group admins can remove members",
    UPDATE_ROLE: "Only group admins can change member roles",
    DELETE_ANY_EXPENSE: "Only the payer or a group admin can delete this expense",
    DELETE_ADJUSTMENT: "Only group admins can delete adjustments",
}


def can(role: Optional[str], action: str) -> bool:
    return action in CAPABILITIES.get(role or "", frozenset())


def authorize(group: Group, user_id: str, action: str) -> Member:
    """Return the acting member, or raise :class:`PermissionDenied`."""
    member = group.find_member(user_id)
    if member is None:
        raise PermissionDenied("You are not a member of this group")
    if not can(member.role, action):
        raise PermissionDenied(_DENIED_MESSAGES.get(action, "Insufficient permissions"))
    return member
