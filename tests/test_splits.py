from decimal import Decimal

import pytest

from fairsplit.errors import ValidationError
from fairsplit.splits import normalize_split

MEMBERS = ["a", "b", "c"]


def _amounts(splits):
    return [(split.member_id, split.amount) for split in splits]


def test_equal_split_covers_every_member():
    splits = normalize_split(600, "equal", "a", [], MEMBERS)
    assert _amounts(splits) == [("a", Decimal("200.00")), ("b", Decimal("200.00")), ("c", Decimal("200.00"))]


def test_equal_split_ignores_raw_entries():
    splits = normalize_split(90, "equal", "a", [{"memberId": "a", "amount": 90}], MEMBERS)
    assert [split.member_id for split in splits] == MEMBERS


def test_equal_split_keeps_rounding_drift_by_default():
    splits = normalize_split(100, "equal", "a", None, MEMBERS)
    assert {split.amount for split in splits} == {Decimal("33.33")}
    assert sum(split.amount for split in splits) == Decimal("99.99")


def test_equal_split_can_assign_remainder_to_last_member():
    splits = normalize_split(100, "equal", "a", None, MEMBERS, assign_remainder=True)
    assert [split.amount for split in splits] == [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")]
    assert sum(split.amount for split in splits) == Decimal("100.00")


def test_missing_split_type_defaults_to_equal():
    splits = normalize_split("30", None, "b", None, MEMBERS)
    assert [split.amount for split in splits] == [Decimal("10.00")] * 3


def test_percentage_split():
    raw = [
        {"memberId": "a", "percentage": 50},
        {"memberId": "b", "percentage": 30},
        {"memberId": "c", "percentage": 20},
    ]
    splits = normalize_split(250, "percentage", "a", raw, MEMBERS)
    assert _amounts(splits) == [("a", Decimal("125.00")), ("b", Decimal("75.00")), ("c", Decimal("50.00"))]
    assert [split.percentage for split in splits] == [Decimal("50"), Decimal("30"), Decimal("20")]


def test_percentage_split_accepts_thirds_within_tolerance():
    raw = [{"memberId": member, "percentage": "33.3333"} for member in MEMBERS]
    splits = normalize_split(100, "percentage", "a", raw, MEMBERS)
    assert [split.amount for split in splits] == [Decimal("33.33")] * 3


def test_percentage_split_must_total_100():
    raw = [{"memberId": "a", "percentage": 60}, {"memberId": "b", "percentage": 30}]
    with pytest.raises(ValidationError, match="percentages must total 100"):
        normalize_split(100, "percentage", "a", raw, MEMBERS)


def test_percentage_split_with_no_entries_is_rejected():
    with pytest.raises(ValidationError, match="percentages must total 100"):
        normalize_split(100, "percentage", "a", [], MEMBERS)


def test_percentage_split_requires_percentages():
    raw = [{"memberId": "a", "percentage": 100}, {"memberId": "b"}]
    with pytest.raises(ValidationError):
        normalize_split(100, "percentage", "a", raw, MEMBERS)


def test_custom_split_covers_only_listed_members():
    raw = [{"memberId": "a", "amount": 40}, {"memberId": "c", "amount": "60.00"}]
    splits = normalize_split(100, "custom", "b", raw, MEMBERS)
    assert _amounts(splits) == [("a", Decimal("40.00")), ("c", Decimal("60.00"))]


def test_custom_split_total_within_tolerance():
    raw = [{"memberId": member, "amount": "33.33"} for member in MEMBERS]
    splits = normalize_split(100, "custom", "a", raw, MEMBERS)
    assert len(splits) == 3


def test_custom_split_total_mismatch():
    raw = [{"memberId": "a", "amount": 40}, {"memberId": "b", "amount": 50}]
    with pytest.raises(ValidationError, match="split total mismatch"):
        normalize_split(100, "custom", "a", raw, MEMBERS)


def test_payer_must_be_a_member():
    with pytest.raises(ValidationError, match="payer not a member"):
        normalize_split(100, "equal", "z", None, MEMBERS)


def test_split_member_must_be_in_group():
    raw = [{"memberId": "a", "amount": 50}, {"memberId": "z", "amount": 50}]
    with pytest.raises(ValidationError, match="split member not in group"):
        normalize_split(100, "custom", "a", raw, MEMBERS)


def test_duplicate_split_member_is_rejected():
    raw = [{"memberId": "a", "amount": 50}, {"memberId": "a", "amount": 50}]
    with pytest.raises(ValidationError, match="duplicate split member"):
        normalize_split(100, "custom", "a", raw, MEMBERS)


@pytest.mark.parametrize("amount", [-1, "-0.50"])
def test_negative_amount_is_rejected(amount):
    with pytest.raises(ValidationError, match="non-negative"):
        normalize_split(amount, "equal", "a", None, MEMBERS)


@pytest.mark.parametrize("amount", ["abc", None, True, float("nan")])
def test_unparsable_amount_is_rejected(amount):
    with pytest.raises(ValidationError, match="invalid amount"):
        normalize_split(amount, "equal", "a", None, MEMBERS)


@pytest.mark.parametrize("amount", [1e30, "1e40", Decimal("1e15")])
def test_oversized_amount_is_rejected(amount):
    with pytest.raises(ValidationError, match="invalid amount"):
        normalize_split(amount, "equal", "a", None, MEMBERS)


def test_oversized_percentage_is_rejected():
    with pytest.raises(ValidationError, match="invalid amount"):
        normalize_split(100, "percentage", "a", [{"memberId": "a", "percentage": "1e25"}], MEMBERS)


def test_unknown_split_type():
    with pytest.raises(ValidationError, match="invalid split type"):
        normalize_split(100, "shares", "a", None, MEMBERS)


def test_zero_amount_is_allowed():
    splits = normalize_split(0, "equal", "a", None, MEMBERS)
    assert all(split.amount == Decimal("0.00") for split in splits)
