from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Sequence
from urllib.parse import quote

from .models import Member, MemberBalance, SettlementPair
from .money import TOLERANCE, is_settled, round2

logger = logging.getLogger(__name__)

DEFAULT_SCHEME = "upi"
DEFAULT_CURRENCY = "INR"
DEFAULT_MEMO = "FairSplit Settlement"


def build_payment_intent(
    address: str,
    amount: Decimal,
    name: str,
    currency: str = DEFAULT_CURRENCY,
    memo: str = DEFAULT_MEMO,
    scheme: str = DEFAULT_SCHEME,
) -> str:
    return (
        f"{scheme}://pay?pa={quote(address or '', safe='')}"
        f"&am={round2(amount):.2f}"
        f"&cu={quote(currency, safe='')}"
        f"&tn={quote(memo, safe='')}"
        f"&pn={quote(name or '', safe='')}"
    )


def plan_settlement(
    balances: Iterable[MemberBalance],
    members: Sequence[Member] = (),
    currency: str = DEFAULT_CURRENCY,
    memo: str = DEFAULT_MEMO,
    scheme: str = DEFAULT_SCHEME,
) -> List[SettlementPair]:
    """Greedy debtor to creditor matching, largest amounts first.

    Balances within 0.01 of zero count as settled. Ties keep input order.
    The result has at most ``debtors + creditors - 1`` pairs; it is not
    guaranteed to be the global minimum.
    """
    directory = {member.member_id: member for member in members}

    debtors: List[Dict[str, Any]] = []
    creditors: List[Dict[str, Any]] = []
    for balance in balances:
        if balance.balance < -TOLERANCE:
            debtors.append({"member_id": balance.member_id, "amount": round2(-balance.balance)})
        elif balance.balance > TOLERANCE:
            creditors.append({"member_id": balance.member_id, "amount": round2(balance.balance)})

    # list.sort is stable
    debtors.sort(key=lambda entry: entry["amount"], reverse=True)
    creditors.sort(key=lambda entry: entry["amount"], reverse=True)

    pairs: List[SettlementPair] = []
    debtor_idx = 0
    creditor_idx = 0

    while debtor_idx < len(debtors) and creditor_idx < len(creditors):
        debtor = debtors[debtor_idx]
        creditor = creditors[creditor_idx]

        pay = round2(min(debtor["amount"], creditor["amount"]))
        if pay > TOLERANCE:
            recipient = directory.get(creditor["member_id"])
            intent = build_payment_intent(
                recipient.upi_id if recipient else "",
                pay,
                recipient.name if recipient else creditor["member_id"],
                currency=currency,
                memo=memo,
                scheme=scheme,
            )
            pairs.append(SettlementPair(debtor["member_id"], creditor["member_id"], pay, intent))
            debtor["amount"] = round2(debtor["amount"] - pay)
            creditor["amount"] = round2(creditor["amount"] - pay)

        # a pay at or under the tolerance means one side is already settled
        if is_settled(debtor["amount"]):
            debtor_idx += 1
        if is_settled(creditor["amount"]):
            creditor_idx += 1

    logger.debug("planned %d settlement pairs", len(pairs))
    return pairs
