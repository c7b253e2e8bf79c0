from decimal import Decimal

import pytest

from fairsplit.app import create_app
from fairsplit.models import Expense, ExpenseSplit
from fairsplit.store import GroupStore

DEMO_MOBILE = "9999999999"
ALICE_MOBILE = "8888888888"
BOB_MOBILE = "7777777777"


def make_expense(expense_id, paid_by, amount, splits, split_type="custom", category="other"):
    return Expense(
        expense_id=expense_id,
        group_id="g1",
        paid_by=paid_by,
        amount=Decimal(str(amount)),
        split_type=split_type,
        split_details=tuple(ExpenseSplit(member_id, Decimal(str(share))) for member_id, share in splits),
        timestamp="2024-01-01T00:00:00+00:00",
        category=category,
    )


@pytest.fixture
def store():
    store = GroupStore()
    store.seed_demo()
    return store


@pytest.fixture
def app(store):
    overrides = {
        "TESTING": True,
        "DEMO_MODE": True,
        "DEMO_OTP": "1234",
        "PAYMENT_SCHEME": "upi",
        "PAYMENT_CURRENCY": "INR",
        "PAYMENT_MEMO": "FairSplit Settlement",
    }
    return create_app(store=store, overrides=overrides)


@pytest.fixture
def client(app):
    return app.test_client()


def _login(app, mobile):
    client = app.test_client()
    response = client.post("/api/auth/verify-otp", json={"mobile": mobile, "otp": "1234"})
    assert response.status_code == 200
    return client


@pytest.fixture
def admin_client(app):
    return _login(app, DEMO_MOBILE)


@pytest.fixture
def alice_client(app):
    return _login(app, ALICE_MOBILE)


@pytest.fixture
def bob_client(app):
    return _login(app, BOB_MOBILE)
