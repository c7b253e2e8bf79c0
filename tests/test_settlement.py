from decimal import Decimal

import pytest

from fairsplit.models import Member, MemberBalance
from fairsplit.settlement import build_payment_intent, plan_settlement

ZERO = Decimal("0")


def _balances(**values):
    return [MemberBalance(member_id, ZERO, ZERO, Decimal(str(amount))) for member_id, amount in values.items()]


def _route(pairs):
    return [(pair.from_member, pair.to_member, pair.amount) for pair in pairs]


def _apply(balances, pairs):
    remaining = {balance.member_id: balance.balance for balance in balances}
    for pair in pairs:
        remaining[pair.from_member] += pair.amount
        remaining[pair.to_member] -= pair.amount
    return remaining


def test_single_pair_for_example_group():
    members = [
        Member("A", "Alice", "1", "alice@upi", "admin"),
        Member("B", "Bob", "2", "bob@upi"),
        Member("C", "Carol", "3", "carol@upi"),
    ]
    pairs = plan_settlement(_balances(A=300, B=0, C=-300), members)

    assert _route(pairs) == [("C", "A", Decimal("300.00"))]
    assert pairs[0].payment_intent == (
        "upi://pay?pa=alice%40upi&am=300.00&cu=INR&tn=FairSplit%20Settlement&pn=Alice"
    )


def test_largest_amounts_are_matched_first():
    pairs = plan_settlement(_balances(A=50, B=30, C=-40, D=-40))
    assert _route(pairs) == [
        ("C", "A", Decimal("40.00")),
        ("D", "A", Decimal("10.00")),
        ("D", "B", Decimal("30.00")),
    ]


def test_ties_keep_input_order():
    pairs = plan_settlement(_balances(A=-10, B=-10, C=20))
    assert _route(pairs) == [("A", "C", Decimal("10.00")), ("B", "C", Decimal("10.00"))]


def test_near_zero_balances_are_settled():
    assert plan_settlement(_balances(A="0.01", B="-0.01", C=0)) == []


def test_empty_input():
    assert plan_settlement([]) == []


def test_residue_within_tolerance_is_dropped():
    pairs = plan_settlement(_balances(A="-10.01", B="10.00", C="0.01"))
    assert _route(pairs) == [("A", "B", Decimal("10.00"))]


def test_creditor_missing_from_roster():
    pairs = plan_settlement(_balances(gone=25, B=-25), [Member("B", "Bob", "2", "bob@upi")])
    assert pairs[0].payment_intent == "upi://pay?pa=&am=25.00&cu=INR&tn=FairSplit%20Settlement&pn=gone"


@pytest.mark.parametrize(
    "values",
    [
        {"A": 300, "B": 0, "C": -300},
        {"A": 50, "B": 30, "C": -40, "D": -40},
        {"A": "120.55", "B": "-60.27", "C": "-60.28", "D": "17.00", "E": "-17.00"},
        {"A": "0.03", "B": "-0.02", "C": "-0.01"},
        {"A": "99.99", "B": "-33.33", "C": "-33.33", "D": "-33.33"},
    ],
)
def test_plan_settles_everyone_within_bound(values):
    balances = _balances(**values)
    pairs = plan_settlement(balances)

    remaining = _apply(balances, pairs)
    assert all(abs(amount) <= Decimal("0.01") for amount in remaining.values())

    unsettled = sum(1 for balance in balances if abs(balance.balance) > Decimal("0.01"))
    assert len(pairs) <= max(unsettled - 1, 0)
    assert all(pair.amount > Decimal("0.01") for pair in pairs)


def test_payment_intent_encoding():
    intent = build_payment_intent("DEMO_UPI@upi", Decimal("5"), "Demo User", currency="INR", memo="Trip & food")
    assert intent == "upi://pay?pa=DEMO_UPI%40upi&am=5.00&cu=INR&tn=Trip%20%26%20food&pn=Demo%20User"


def test_payment_intent_custom_scheme():
    intent = build_payment_intent("x", Decimal("1.5"), "X", scheme="pay", currency="EUR", memo="m")
    assert intent.startswith("pay://pay?pa=x&am=1.50&cu=EUR&tn=m&pn=X")
