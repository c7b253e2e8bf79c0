from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, Iterator, List, Optional

from .errors import NotFoundError, ValidationError
from .models import (
    DEFAULT_CATEGORY,
    ROLE_ADMIN,
    ROLE_MEMBER,
    ROLES,
    SPLIT_CUSTOM,
    SPLIT_EQUAL,
    Adjustment,
    Expense,
    Group,
    GroupSnapshot,
    Member,
    User,
)
from .money import ZERO, to_decimal
from .splits import normalize_split

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _clean(value: Any) -> str:
    return str(value or "").strip()


class GroupStore:
    """In-memory users, groups, expenses and adjustments.

    Writes to a group are serialized through :meth:`transaction`; readers
    take a :meth:`snapshot` and hand it to the engine.
    """

    def __init__(self, assign_remainder: bool = False) -> None:
        self.assign_remainder = assign_remainder
        self._registry_lock = threading.RLock()
        self._group_locks: Dict[str, threading.Lock] = {}
        self._reset_state()

    def _reset_state(self) -> None:
        self._users: Dict[str, User] = {}
        self._groups: Dict[str, Group] = {}
        self._expenses: Dict[str, List[Expense]] = {}
        self._adjustments: Dict[str, List[Adjustment]] = {}
        self._counters: Dict[str, int] = {}

    def _next_id(self, prefix: str) -> str:
        with self._registry_lock:
            self._counters[prefix] = self._counters.get(prefix, 0) + 1
            return f"{prefix}{self._counters[prefix]}"

    @contextmanager
    def transaction(self, group_id: str) -> Iterator[Group]:
        group = self.get_group(group_id)
        with self._registry_lock:
            lock = self._group_locks.setdefault(group_id, threading.Lock())
        with lock:
            yield group

    def register_user(self, name: str, mobile: str) -> User:
        name = _clean(name)
        mobile = _clean(mobile)
        if not name or not mobile:
            raise ValidationError("name and mobile are required")
        with self._registry_lock:
            existing = self.find_user_by_mobile(mobile)
            if existing:
                return existing
            user = User(user_id=self._next_id("u"), name=name, mobile=mobile)
            self._users[user.user_id] = user
        logger.info("registered user %s", user.user_id)
        return user

    def get_user(self, user_id: str) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def find_user_by_mobile(self, mobile: str) -> Optional[User]:
        mobile = _clean(mobile)
        with self._registry_lock:
            users = list(self._users.values())
        for user in users:
            if user.mobile == mobile:
                return user
        return None

    def create_group(
        self,
        group_name: str,
        created_by: str,
        description: str = "",
        members: Optional[Iterable[Dict[str, Any]]] = None,
        custom_categories: Optional[Iterable[str]] = None,
    ) -> Group:
        group_name = _clean(group_name)
        if not group_name:
            raise ValidationError("groupName is required")

        creator = self.get_user(created_by)
        entries = list(members or [])
        if not all(isinstance(entry, dict) for entry in entries):
            raise ValidationError("invalid member entry")
        creator_entry = next((e for e in entries if _clean(e.get("mobile")) == creator.mobile), {})

        roster = [
            Member(
                member_id=creator.user_id,
                name=creator.name,
                mobile=creator.mobile,
                upi_id=_clean(creator_entry.get("upiId")),
                role=ROLE_ADMIN,
            )
        ]
        for entry in entries:
            if entry is creator_entry:
                continue
            member = self._new_member(entry)
            if any(existing.mobile == member.mobile for existing in roster):
                raise ValidationError("Member already exists in the group")
            roster.append(member)

        group = Group(
            group_id=self._next_id("g"),
            group_name=group_name,
            created_by=creator.user_id,
            description=_clean(description),
            members=roster,
        )
        for category in custom_categories or []:
            self._add_category(group, category)

        with self._registry_lock:
            self._expenses[group.group_id] = []
            self._adjustments[group.group_id] = []
            self._groups[group.group_id] = group
        logger.info("created group %s with %d members", group.group_id, len(roster))
        return group

    def _new_member(self, entry: Dict[str, Any]) -> Member:
        user = self.register_user(entry.get("name"), entry.get("mobile"))
        return Member(
            member_id=user.user_id,
            name=user.name,
            mobile=user.mobile,
            upi_id=_clean(entry.get("upiId")),
            role=ROLE_MEMBER,
        )

    def get_group(self, group_id: str) -> Group:
        group = self._groups.get(group_id)
        if group is None:
            raise NotFoundError("Group not found")
        return group

    def groups_for_user(self, user_id: str) -> List[Group]:
        with self._registry_lock:
            groups = list(self._groups.values())
        return [group for group in groups if group.find_member(user_id)]

    def add_member(self, group_id: str, name: str, mobile: str, upi_id: str = "") -> Member:
        with self.transaction(group_id) as group:
            if any(member.mobile == _clean(mobile) for member in group.members):
                raise ValidationError("Member already exists in the group")
            member = self._new_member({"name": name, "mobile": mobile, "upiId": upi_id})
            group.members.append(member)
        logger.info("added member %s to group %s", member.member_id, group_id)
        return member

    def remove_member(self, group_id: str, member_id: str) -> None:
        with self.transaction(group_id) as group:
            member = group.find_member(member_id)
            if member is None:
                raise NotFoundError("Member not found")
            if member.is_admin and group.admin_count() <= 1:
                raise ValidationError("Cannot remove the last admin")
            if any(expense.paid_by == member_id for expense in self._expenses[group_id]):
                raise ValidationError("Member has expenses and cannot be removed")
            group.members.remove(member)
        logger.info("removed member %s from group %s", member_id, group_id)

    def update_member_role(self, group_id: str, member_id: str, role: str) -> Member:
        if role not in ROLES:
            raise ValidationError("Invalid role. Must be 'admin' or 'member'")
        with self.transaction(group_id) as group:
            member = group.find_member(member_id)
            if member is None:
                raise NotFoundError("Member not found")
            if member.is_admin and role == ROLE_MEMBER and group.admin_count() <= 1:
                raise ValidationError("Cannot remove the last admin")
            member.role = role
        return member

    def add_custom_category(self, group_id: str, category: str) -> List[str]:
        with self.transaction(group_id) as group:
            self._add_category(group, category)
            return list(group.custom_categories)

    @staticmethod
    def _add_category(group: Group, category: str) -> None:
        normalized = _clean(category).lower()
        if not normalized:
            raise ValidationError("category is required")
        if normalized not in group.custom_categories:
            group.custom_categories.append(normalized)

    def add_expense(
        self,
        group_id: str,
        paid_by: str,
        amount: Any,
        split_type: Optional[str] = None,
        split_details: Optional[Iterable[Dict[str, Any]]] = None,
        category: Optional[str] = None,
        description: str = "",
        timestamp: Optional[str] = None,
    ) -> Expense:
        with self.transaction(group_id) as group:
            split_type = split_type or SPLIT_EQUAL
            splits = normalize_split(
                amount,
                split_type,
                paid_by,
                split_details,
                group.member_ids(),
                assign_remainder=self.assign_remainder,
            )
            expense = Expense(
                expense_id=self._next_id("e"),
                group_id=group_id,
                paid_by=paid_by,
                amount=to_decimal(amount),
                split_type=split_type,
                split_details=tuple(splits),
                timestamp=_clean(timestamp) or _now(),
                category=_clean(category).lower() or DEFAULT_CATEGORY,
                description=_clean(description),
            )
            self._expenses[group_id].append(expense)
        logger.info("added expense %s (%s) to group %s", expense.expense_id, expense.amount, group_id)
        return expense

    def get_expense(self, group_id: str, expense_id: str) -> Expense:
        self.get_group(group_id)
        for expense in self._expenses[group_id]:
            if expense.expense_id == expense_id:
                return expense
        raise NotFoundError("Expense not found")

    def list_expenses(self, group_id: str) -> List[Expense]:
        self.get_group(group_id)
        return list(self._expenses[group_id])

    def delete_expense(self, group_id: str, expense_id: str) -> None:
        with self.transaction(group_id):
            expense = self.get_expense(group_id, expense_id)
            self._expenses[group_id].remove(expense)
        logger.info("deleted expense %s from group %s", expense_id, group_id)

    def add_adjustment(
        self,
        group_id: str,
        from_member: str,
        to_member: str,
        amount: Any,
        description: str = "",
        timestamp: Optional[str] = None,
    ) -> Adjustment:
        amount_decimal = to_decimal(amount)
        if amount_decimal <= ZERO:
            raise ValidationError("Valid amount is required")
        if from_member == to_member:
            raise ValidationError("From and to must be different members")

        with self.transaction(group_id) as group:
            if group.find_member(from_member) is None or group.find_member(to_member) is None:
                raise ValidationError("adjustment member not in group")
            adjustment = Adjustment(
                adjustment_id=self._next_id("a"),
                group_id=group_id,
                from_member=from_member,
                to_member=to_member,
                amount=amount_decimal,
                timestamp=_clean(timestamp) or _now(),
                description=_clean(description),
            )
            self._adjustments[group_id].append(adjustment)
        logger.info("recorded adjustment %s in group %s", adjustment.adjustment_id, group_id)
        return adjustment

    def list_adjustments(self, group_id: str) -> List[Adjustment]:
        self.get_group(group_id)
        return list(self._adjustments[group_id])

    def delete_adjustment(self, group_id: str, adjustment_id: str) -> None:
        with self.transaction(group_id):
            for adjustment in self._adjustments[group_id]:
                if adjustment.adjustment_id == adjustment_id:
                    self._adjustments[group_id].remove(adjustment)
                    return
        raise NotFoundError("Adjustment not found")

    def snapshot(self, group_id: str) -> GroupSnapshot:
        with self.transaction(group_id) as group:
            return GroupSnapshot(
                group_id=group_id,
                members=tuple(
                    Member(m.member_id, m.name, m.mobile, m.upi_id, m.role) for m in group.members
                ),
                expenses=tuple(self._expenses[group_id]),
                adjustments=tuple(self._adjustments[group_id]),
            )

    def seed_demo(self) -> None:
        """Replace everything with the demo group: three members, two expenses."""
        with self._registry_lock:
            self._reset_state()

        demo = self.register_user("Demo User", "9999999999")
        alice = self.register_user("Alice", "8888888888")
        bob = self.register_user("Bob", "7777777777")

        group = self.create_group(
            "Demo Group",
            demo.user_id,
            description="A demo FairSplit group",
            members=[
                {"name": demo.name, "mobile": demo.mobile, "upiId": "DEMO_UPI@upi"},
                {"name": alice.name, "mobile": alice.mobile, "upiId": "ALICE_UPI@upi"},
                {"name": bob.name, "mobile": bob.mobile, "upiId": "BOB_UPI@upi"},
            ],
        )
        self.add_expense(
            group.group_id,
            demo.user_id,
            Decimal("600"),
            SPLIT_EQUAL,
            category="food",
            description="Dinner",
        )
        self.add_expense(
            group.group_id,
            alice.user_id,
            Decimal("300"),
            SPLIT_CUSTOM,
            [
                {"memberId": demo.user_id, "amount": 100},
                {"memberId": alice.user_id, "amount": 100},
                {"memberId": bob.user_id, "amount": 100},
            ],
            category="entertainment",
            description="Movie tickets",
        )
        logger.info("demo data seeded")
