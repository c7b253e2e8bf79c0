from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from .money import as_number

ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"
ROLES = (ROLE_ADMIN, ROLE_MEMBER)

SPLIT_EQUAL = "equal"
SPLIT_PERCENTAGE = "percentage"
SPLIT_CUSTOM = "custom"
SPLIT_TYPES = (SPLIT_EQUAL, SPLIT_PERCENTAGE, SPLIT_CUSTOM)

DEFAULT_CATEGORY = "other"
STANDARD_CATEGORIES = (
    "food",
    "travel",
    "rent",
    "shopping",
    "groceries",
    "utilities",
    "entertainment",
    "healthcare",
    "transport",
    DEFAULT_CATEGORY,
)


@dataclass
class User:
    user_id: str
    name: str
    mobile: str

    def to_dict(self) -> Dict[str, Any]:
        return {"userId": self.user_id, "name": self.name, "mobile": self.mobile}


@dataclass
class Member:
    member_id: str
    name: str
    mobile: str
    upi_id: str = ""
    role: str = ROLE_MEMBER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "memberId": self.member_id,
            "name": self.name,
            "mobile": self.mobile,
            "upiId": self.upi_id,
            "role": self.role,
        }


@dataclass
class Group:
    group_id: str
    group_name: str
    created_by: str
    description: str = ""
    base_currency: str = "INR"
    members: List[Member] = field(default_factory=list)
    custom_categories: List[str] = field(default_factory=list)

    def find_member(self, member_id: str) -> Optional[Member]:
        for member in self.members:
            if member.member_id == member_id:
                return member
        return None

    def member_ids(self) -> List[str]:
        return [member.member_id for member in self.members]

    def admin_count(self) -> int:
        return sum(1 for member in self.members if member.is_admin)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "groupId": self.group_id,
            "groupName": self.group_name,
            "description": self.description,
            "baseCurrency": self.base_currency,
            "members": [member.to_dict() for member in self.members],
            "customCategories": list(self.custom_categories),
            "createdBy": self.created_by,
        }


@dataclass(frozen=True)
class ExpenseSplit:
    member_id: str
    amount: Decimal
    percentage: Optional[Decimal] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"memberId": self.member_id, "amount": as_number(self.amount)}
        if self.percentage is not None:
            payload["percentage"] = float(self.percentage)
        return payload


@dataclass(frozen=True)
class Expense:
    expense_id: str
    group_id: str
    paid_by: str
    amount: Decimal
    split_type: str
    split_details: Tuple[ExpenseSplit, ...]
    timestamp: str
    category: str = DEFAULT_CATEGORY
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expenseId": self.expense_id,
            "groupId": self.group_id,
            "paidBy": self.paid_by,
            "amount": as_number(self.amount),
            "category": self.category,
            "description": self.description,
            "splitType": self.split_type,
            "splitDetails": [split.to_dict() for split in self.split_details],
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class Adjustment:
    adjustment_id: str
    group_id: str
    from_member: str
    to_member: str
    amount: Decimal
    timestamp: str
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "adjustmentId": self.adjustment_id,
            "groupId": self.group_id,
            "from": self.from_member,
            "to": self.to_member,
            "amount": as_number(self.amount),
            "description": self.description,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class GroupSnapshot:
    """Consistent read of one group, handed to the engine."""

    group_id: str
    members: Tuple[Member, ...]
    expenses: Tuple[Expense, ...]
    adjustments: Tuple[Adjustment, ...]


@dataclass(frozen=True)
class MemberBalance:
    member_id: str
    paid: Decimal
    should_pay: Decimal
    balance: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "memberId": self.member_id,
            "paid": as_number(self.paid),
            "shouldPay": as_number(self.should_pay),
            "balance": as_number(self.balance),
        }


@dataclass(frozen=True)
class BalanceSummary:
    balances: Tuple[MemberBalance, ...]
    total_amount: Decimal
    per_head: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "balances": [balance.to_dict() for balance in self.balances],
            "totalAmount": as_number(self.total_amount),
            "perHead": as_number(self.per_head),
        }


@dataclass(frozen=True)
class SettlementPair:
    from_member: str
    to_member: str
    amount: Decimal
    payment_intent: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_member,
            "to": self.to_member,
            "amount": as_number(self.amount),
            "paymentIntent": self.payment_intent,
        }
