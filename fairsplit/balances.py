from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, List, Sequence, Tuple

from .models import Adjustment, BalanceSummary, Expense, MemberBalance
from .money import ZERO, round2


def compute_balances(
    member_ids: Sequence[str],
    expenses: Iterable[Expense],
    adjustments: Iterable[Adjustment] = (),
) -> BalanceSummary:
    """Net balance per member from a group's expense and adjustment history.

    ``paid`` and ``should_pay`` are rounded after every addition. Adjustments
    bypass both and move the net balance directly. Ids that appear in the
    history but are no longer on the roster are reported after the current
    members, in the order they first appear.
    """
    order: List[str] = list(member_ids)
    paid: Dict[str, Decimal] = {member_id: ZERO for member_id in order}
    owed: Dict[str, Decimal] = {member_id: ZERO for member_id in order}
    adjusted: Dict[str, Decimal] = {member_id: ZERO for member_id in order}

    def track(member_id: str) -> None:
        if member_id not in paid:
            order.append(member_id)
            paid[member_id] = ZERO
            owed[member_id] = ZERO
            adjusted[member_id] = ZERO

    total_amount = ZERO
    for expense in expenses:
        track(expense.paid_by)
        paid[expense.paid_by] = round2(paid[expense.paid_by] + expense.amount)
        total_amount = round2(total_amount + expense.amount)
        for split in expense.split_details:
            track(split.member_id)
            owed[split.member_id] = round2(owed[split.member_id] + split.amount)

    for adjustment in adjustments:
        track(adjustment.from_member)
        track(adjustment.to_member)
        adjusted[adjustment.from_member] -= adjustment.amount
        adjusted[adjustment.to_member] += adjustment.amount

    balances = tuple(
        MemberBalance(
            member_id=member_id,
            paid=paid[member_id],
            should_pay=owed[member_id],
            balance=round2(round2(paid[member_id] - owed[member_id]) + adjusted[member_id]),
        )
        for member_id in order
    )
    per_head = round2(total_amount / (len(member_ids) or 1))
    return BalanceSummary(balances=balances, total_amount=total_amount, per_head=per_head)


def spending_by_category(expenses: Iterable[Expense]) -> Tuple[Dict[str, Decimal], Decimal]:
    """Total spent per category, in first-seen order, and the grand total."""
    totals: Dict[str, Decimal] = {}
    for expense in expenses:
        totals[expense.category] = round2(totals.get(expense.category, ZERO) + expense.amount)
    return totals, round2(sum(totals.values(), ZERO))
