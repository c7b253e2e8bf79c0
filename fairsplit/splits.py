from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .errors import ValidationError
from .models import SPLIT_CUSTOM, SPLIT_EQUAL, SPLIT_PERCENTAGE, SPLIT_TYPES, ExpenseSplit
from .money import ZERO, amounts_close, round2, to_decimal, to_percentage

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


def normalize_split(
    amount: Any,
    split_type: Optional[str],
    paid_by: str,
    raw_splits: Optional[Iterable[Dict[str, Any]]],
    member_ids: Sequence[str],
    assign_remainder: bool = False,
) -> List[ExpenseSplit]:
    """Validate a proposed expense and return its fixed per-member splits.

    ``raw_splits`` entries are mappings with ``memberId`` and, depending on
    the split type, ``amount`` or ``percentage``. Equal splits ignore them and
    cover every member in ``member_ids``; percentage and custom splits cover
    only the members listed.

    Equal shares are ``round2(amount / n)`` each, so ``100 / 3`` yields three
    shares of ``33.33``. With ``assign_remainder`` the last member takes the
    difference instead, keeping the total exact.
    """
    amount_decimal = to_decimal(amount)
    if amount_decimal < ZERO:
        raise ValidationError("amount must be non-negative")

    if paid_by not in member_ids:
        raise ValidationError("payer not a member")

    split_type = split_type or SPLIT_EQUAL
    if split_type not in SPLIT_TYPES:
        raise ValidationError("invalid split type")

    if split_type == SPLIT_EQUAL:
        return _equal_shares(amount_decimal, member_ids, assign_remainder)

    entries = list(raw_splits or [])
    _check_members(entries, member_ids)

    if split_type == SPLIT_PERCENTAGE:
        return _percentage_shares(amount_decimal, entries)
    return _custom_shares(amount_decimal, entries)


def _equal_shares(amount: Decimal, member_ids: Sequence[str], assign_remainder: bool) -> List[ExpenseSplit]:
    count = len(member_ids)
    if count == 0:
        raise ValidationError("group has no members")

    per_person = round2(amount / count)
    shares = [ExpenseSplit(member_id, per_person) for member_id in member_ids]

    if assign_remainder:
        last_share = round2(amount - per_person * (count - 1))
        shares[-1] = ExpenseSplit(member_ids[-1], last_share)
    elif per_person * count != amount:
        logger.debug("equal split of %s over %d members drifts by %s", amount, count, amount - per_person * count)

    return shares


def _percentage_shares(amount: Decimal, entries: List[Dict[str, Any]]) -> List[ExpenseSplit]:
    percentages = []
    for entry in entries:
        if entry.get("percentage") is None:
            raise ValidationError("percentage required for every split member")
        percentage = to_percentage(entry["percentage"])
        if percentage < ZERO:
            raise ValidationError("percentage must be non-negative")
        percentages.append(percentage)

    if not amounts_close(sum(percentages, ZERO), HUNDRED):
        raise ValidationError("percentages must total 100")

    return [
        ExpenseSplit(_member_id(entry), round2(percentage / HUNDRED * amount), percentage)
        for entry, percentage in zip(entries, percentages)
    ]


def _custom_shares(amount: Decimal, entries: List[Dict[str, Any]]) -> List[ExpenseSplit]:
    shares: List[ExpenseSplit] = []
    for entry in entries:
        if entry.get("amount") is None:
            raise ValidationError("amount required for every split member")
        share_amount = to_decimal(entry["amount"])
        if share_amount < ZERO:
            raise ValidationError("split amount must be non-negative")
        shares.append(ExpenseSplit(_member_id(entry), share_amount))

    total = sum((share.amount for share in shares), ZERO)
    if not amounts_close(total, amount):
        raise ValidationError("split total mismatch")
    return shares


def _check_members(entries: List[Dict[str, Any]], member_ids: Sequence[str]) -> None:
    seen = set()
    for entry in entries:
        member_id = _member_id(entry)
        if member_id not in member_ids:
            raise ValidationError("split member not in group")
        if member_id in seen:
            raise ValidationError("duplicate split member")
        seen.add(member_id)


def _member_id(entry: Dict[str, Any]) -> str:
    try:
        member_id = entry.get("memberId", entry.get("member_id"))
    except AttributeError:
        raise ValidationError("invalid split entry") from None
    if not member_id:
        raise ValidationError("invalid split entry")
    return str(member_id)
