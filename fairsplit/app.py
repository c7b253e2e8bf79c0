from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Dict, Optional

from flask import Flask, current_app, jsonify, request, session
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from . import policy
from .balances import compute_balances, spending_by_category
from .config import config
from .errors import AuthenticationError, FairSplitError, PermissionDenied, ValidationError
from .models import BalanceSummary, Group, GroupSnapshot
from .money import as_number
from .settlement import plan_settlement
from .store import GroupStore

logger = logging.getLogger(__name__)


def create_app(store: Optional[GroupStore] = None, overrides: Optional[Dict[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.config.update(config.as_dict())
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(level=app.config["LOG_LEVEL"])

    CORS(
        app,
        supports_credentials=True,
        resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}},
    )

    if store is None:
        store = GroupStore(assign_remainder=app.config["SPLIT_ASSIGN_REMAINDER"])
        if app.config["DEMO_MODE"]:
            store.seed_demo()
    app.extensions["fairsplit.store"] = store

    register_error_handlers(app)
    register_routes(app)
    return app


def ok(data: Any = None, message: Optional[str] = None, status: int = 200):
    return jsonify({"success": True, "data": data, "message": message}), status


def fail(message: str, status: int = 400, data: Any = None):
    return jsonify({"success": False, "data": data, "message": message}), status


def get_store() -> GroupStore:
    return current_app.extensions["fairsplit.store"]


def require_login(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return fail("authentication_required", 401)
        return func(*args, **kwargs)

    return wrapper


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(FairSplitError)
    def handle_fairsplit_error(exc: FairSplitError):
        if exc.status_code >= 500:
            logger.error("request failed: %s", exc.message)
        else:
            logger.info("request rejected (%d): %s", exc.status_code, exc.message)
        return fail(exc.message, exc.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return fail(exc.description or exc.name, exc.code or 500)


def _payload() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("request body must be a JSON object")
    return payload


def _member_group(group_id: str, action: str) -> Group:
    group = get_store().get_group(group_id)
    policy.authorize(group, session["user_id"], action)
    return group


def _summarize(snapshot: GroupSnapshot) -> BalanceSummary:
    return compute_balances(
        [member.member_id for member in snapshot.members],
        snapshot.expenses,
        snapshot.adjustments,
    )


def register_routes(app: Flask) -> None:
    @app.get("/api/ping")
    def ping():
        return ok({"message": current_app.config["PING_MESSAGE"]})

    @app.post("/api/auth/request-otp")
    def request_otp():
        mobile = str(_payload().get("mobile") or "").strip()
        if not mobile:
            raise ValidationError("mobile is required")
        return ok({"otp": current_app.config["DEMO_OTP"]}, "OTP generated (demo)")

    @app.post("/api/auth/verify-otp")
    def verify_otp():
        payload = _payload()
        mobile = str(payload.get("mobile") or "").strip()
        if not mobile:
            raise ValidationError("mobile is required")
        if str(payload.get("otp") or "") != current_app.config["DEMO_OTP"]:
            raise AuthenticationError("Invalid OTP")

        # returns the existing user when the mobile is already known
        user = get_store().register_user(payload.get("name") or mobile, mobile)

        session["user_id"] = user.user_id
        session["user_name"] = user.name
        return ok(user.to_dict(), "Authenticated (demo)")

    @app.get("/api/session")
    def get_session():
        if "user_id" in session:
            return ok(
                {
                    "authenticated": True,
                    "user": {"userId": session["user_id"], "name": session["user_name"]},
                }
            )
        return ok({"authenticated": False})

    @app.post("/api/logout")
    @require_login
    def logout():
        session.clear()
        return ok({"status": "ok"})

    @app.get("/api/groups")
    @require_login
    def list_groups():
        groups = get_store().groups_for_user(session["user_id"])
        return ok([group.to_dict() for group in groups])

    @app.post("/api/groups")
    @require_login
    def create_group():
        payload = _payload()
        members = payload.get("members") or []
        categories = payload.get("customCategories") or []
        if not isinstance(members, list) or not isinstance(categories, list):
            raise ValidationError("members and customCategories must be lists")

        group = get_store().create_group(
            payload.get("groupName"),
            session["user_id"],
            description=payload.get("description") or "",
            members=members,
            custom_categories=categories,
        )
        return ok(group.to_dict(), "Group created", 201)

    @app.get("/api/groups/<group_id>")
    @require_login
    def get_group(group_id: str):
        group = _member_group(group_id, policy.VIEW_GROUP)
        member = group.find_member(session["user_id"])
        return ok({**group.to_dict(), "userRole": member.role, "isAdmin": member.is_admin})

    @app.post("/api/groups/<group_id>/members")
    @require_login
    def add_member(group_id: str):
        _member_group(group_id, policy.ADD_MEMBER)
        payload = _payload()
        if not payload.get("name") or not payload.get("mobile"):
            raise ValidationError("Name and mobile are required for new member")

        member = get_store().add_member(group_id, payload["name"], payload["mobile"], payload.get("upiId") or "")
        return ok(member.to_dict(), "Member added to group", 201)

    @app.patch("/api/groups/<group_id>/members/<member_id>")
    @require_login
    def update_member(group_id: str, member_id: str):
        _member_group(group_id, policy.UPDATE_ROLE)
        member = get_store().update_member_role(group_id, member_id, _payload().get("role"))
        return ok(member.to_dict(), "Member role updated successfully")

    @app.delete("/api/groups/<group_id>/members/<member_id>")
    @require_login
    def remove_member(group_id: str, member_id: str):
        _member_group(group_id, policy.REMOVE_MEMBER)
        get_store().remove_member(group_id, member_id)
        return ok(None, "Member removed from group")

    @app.post("/api/groups/<group_id>/categories")
    @require_login
    def add_category(group_id: str):
        _member_group(group_id, policy.ADD_CATEGORY)
        categories = get_store().add_custom_category(group_id, _payload().get("category"))
        return ok({"customCategories": categories}, "Category added")

    @app.post("/api/groups/<group_id>/expenses")
    @require_login
    def add_expense(group_id: str):
        _member_group(group_id, policy.ADD_EXPENSE)
        payload = _payload()
        if payload.get("amount") is None:
            raise ValidationError("amount is required")
        split_details = payload.get("splitDetails") or []
        if not isinstance(split_details, list):
            raise ValidationError("splitDetails must be a list")

        expense = get_store().add_expense(
            group_id,
            payload.get("paidBy") or session["user_id"],
            payload["amount"],
            split_type=payload.get("splitType"),
            split_details=split_details,
            category=payload.get("category"),
            description=payload.get("description") or "",
            timestamp=payload.get("timestamp"),
        )
        return ok(expense.to_dict(), "Expense added to group", 201)

    @app.get("/api/groups/<group_id>/expenses")
    @require_login
    def list_expenses(group_id: str):
        _member_group(group_id, policy.VIEW_GROUP)
        snapshot = get_store().snapshot(group_id)
        summary = _summarize(snapshot)
        return ok({"expenses": [expense.to_dict() for expense in snapshot.expenses], **summary.to_dict()})

    @app.delete("/api/groups/<group_id>/expenses/<expense_id>")
    @require_login
    def delete_expense(group_id: str, expense_id: str):
        store = get_store()
        group = _member_group(group_id, policy.VIEW_GROUP)
        expense = store.get_expense(group_id, expense_id)
        user_id = session["user_id"]
        action = policy.DELETE_OWN_EXPENSE if expense.paid_by == user_id else policy.DELETE_ANY_EXPENSE
        policy.authorize(group, user_id, action)

        store.delete_expense(group_id, expense_id)
        return ok(None, "Expense deleted")

    @app.post("/api/groups/<group_id>/adjustments")
    @require_login
    def add_adjustment(group_id: str):
        _member_group(group_id, policy.ADD_ADJUSTMENT)
        payload = _payload()
        if payload.get("amount") is None or not payload.get("from") or not payload.get("to"):
            raise ValidationError("from, to and amount are required")

        adjustment = get_store().add_adjustment(
            group_id,
            payload["from"],
            payload["to"],
            payload["amount"],
            description=payload.get("description") or "",
            timestamp=payload.get("timestamp"),
        )
        return ok(adjustment.to_dict(), "Adjustment recorded", 201)

    @app.get("/api/groups/<group_id>/adjustments")
    @require_login
    def list_adjustments(group_id: str):
        _member_group(group_id, policy.VIEW_GROUP)
        return ok([adjustment.to_dict() for adjustment in get_store().list_adjustments(group_id)])

    @app.delete("/api/groups/<group_id>/adjustments/<adjustment_id>")
    @require_login
    def delete_adjustment(group_id: str, adjustment_id: str):
        _member_group(group_id, policy.DELETE_ADJUSTMENT)
        get_store().delete_adjustment(group_id, adjustment_id)
        return ok(None, "Adjustment deleted")

    @app.get("/api/groups/<group_id>/balances")
    @require_login
    def get_balances(group_id: str):
        _member_group(group_id, policy.VIEW_GROUP)
        snapshot = get_store().snapshot(group_id)
        summary = _summarize(snapshot)
        return ok(summary.to_dict())

    @app.get("/api/groups/<group_id>/settlement")
    @require_login
    def get_settlement(group_id: str):
        _member_group(group_id, policy.VIEW_GROUP)
        snapshot = get_store().snapshot(group_id)
        summary = _summarize(snapshot)
        pairs = plan_settlement(
            summary.balances,
            snapshot.members,
            currency=current_app.config["PAYMENT_CURRENCY"],
            memo=current_app.config["PAYMENT_MEMO"],
            scheme=current_app.config["PAYMENT_SCHEME"],
        )
        return ok([pair.to_dict() for pair in pairs])

    @app.get("/api/groups/<group_id>/spending")
    @require_login
    def get_spending(group_id: str):
        _member_group(group_id, policy.VIEW_GROUP)
        totals, total_spent = spending_by_category(get_store().list_expenses(group_id))
        return ok(
            {
                "spendingByCategory": {category: as_number(amount) for category, amount in totals.items()},
                "totalSpent": as_number(total_spent),
            }
        )

    @app.post("/api/reset-demo")
    def reset_demo():
        if not current_app.config["DEMO_MODE"]:
            raise PermissionDenied("Demo reset is disabled")
        get_store().seed_demo()
        session.clear()
        return ok({"reset": True}, "Demo data reset")


app = create_app()


if __name__ == "__main__":
    app.run(debug=True)
