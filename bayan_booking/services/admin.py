from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any

from ..api.client import ApiResult, BookingApiClient
from ..errors import AdminAuthError, BookingError, NotFoundError
from ..scheduling.slots import is_valid_timezone, parse_instant, resolve_timezone, to_utc_iso, utc_to_zone
from ..schemas import Plan
from ..store import AdminState, InMemoryStore

logger = logging.getLogger(__name__)

AUTH_ERROR_RE = re.compile(r"token|auth|unauthor", re.IGNORECASE)
UNORDERED = 999
UTC_FIELDS = ("startsAtUTC", "utcTime", "utc", "startsAt")


def row_id(row: dict) -> str:
    return str(row.get("_id") or row.get("id") or row.get("subscriptionId") or "")


def plan_sort_key(plan: Plan) -> int:
    return plan.order if plan.order is not None else UNORDERED


class AdminService:
    """Dashboard state and actions for an authenticated admin."""

    def __init__(self, api: BookingApiClient, store: InMemoryStore) -> None:
        self.api = api
        self.store = store

    def _check(self, state: AdminState, result: ApiResult) -> None:
        if result.success:
            return
        error = result.error or "Request failed"
        if AUTH_ERROR_RE.search(error):
            logger.info("admin_session_rejected error=%s", error)
            self.store.drop_admin(state.token)
            raise AdminAuthError(error)
        raise BookingError(error)

    def state(self, token: str | None) -> AdminState:
        if not token:
            raise AdminAuthError("Authentication required")
        return self.store.admin_state(token)

    # Authentication

    async def login(self, email: str, password: str) -> AdminState:
        result = await self.api.admin_login(email, password)
        if not result.success or not result.token:
            raise AdminAuthError(result.error or "Admin login failed")
        state = self.store.admin_state(result.token)
        profile = await self.api.admin_get_profile(result.token)
        admin_tz = (profile.admin or {}).get("timezone") if profile.success else None
        state.timezone = resolve_timezone(admin_tz)
        logger.info("admin_logged_in timezone=%s", state.timezone)
        return state

    async def forgot_password(self, email: str) -> str:
        result = await self.api.admin_request_password_reset(email)
        if not result.success:
            raise BookingError(result.error or "Failed to request password reset")
        return "If the email is registered, a reset code has been sent."

    async def reset_password(
        self, password: str, email: str | None = None, otp: str | None = None, token: str | None = None
    ) -> str:
        if token:
            result = await self.api.admin_confirm_password_reset(token, password)
        elif email and otp:
            result = await self.api.admin_reset_password(email, otp, password)
        else:
            raise BookingError("Provide either a reset token or an email and OTP")
        if not result.success:
            raise BookingError(result.error or "Failed to reset password")
        return "Password updated. You can now log in."

    def logout(self, token: str) -> None:
        self.store.drop_admin(token)

    def change_timezone(self, token: str, timezone: str) -> AdminState:
        state = self.state(token)
        if not is_valid_timezone(timezone):
            raise BookingError(f"Unknown timezone: {timezone}")
        state.timezone = timezone
        return state

    # Subscriptions

    async def subscriptions(self, token: str, **filters: Any) -> list[dict]:
        state = self.state(token)
        filters.setdefault("limit", 200)
        result = await self.api.admin_get_subscriptions(token, **filters)
        self._check(state, result)
        state.subscriptions = result.subscriptions
        return state.subscriptions

    async def subscription_detail(self, token: str, subscription_id: str) -> dict:
        state = self.state(token)
        result = await self.api.admin_get_subscription(token, subscription_id)
        self._check(state, result)
        subscription = result.subscription or {}
        user = subscription.get("user") or {}
        user_tz = user.get("timezone") or subscription.get("userTimezone")
        sessions = [self._session_row(s, state.timezone, user_tz) for s in subscription.get("sessions") or []]

        for row in state.subscriptions:
            if row_id(row) == subscription_id:
                row["user"] = {**(row.get("user") or {}), **user}
                row["firstName"] = (
                    user.get("firstName") or subscription.get("userFirstName") or row.get("firstName")
                )
                row["lastName"] = user.get("lastName") or subscription.get("userLastName") or row.get("lastName")

        detail = {"subscription": subscription, "sessions": sessions}
        state.expanded[subscription_id] = detail
        return detail

    def collapse(self, token: str, subscription_id: str) -> None:
        self.state(token).expanded.pop(subscription_id, None)

    @staticmethod
    def _session_row(session: dict, admin_tz: str, user_tz: str | None) -> dict:
        utc = next((session[key] for key in UTC_FIELDS if session.get(key)), None)
        row = {
            **session,
            "utc": utc,
            "user_date": session.get("date") or session.get("originalUserDate"),
            "user_time": session.get("time") or session.get("originalUserTime"),
            "admin_date": None,
            "admin_time": None,
        }
        if not utc:
            return row
        try:
            instant = parse_instant(str(utc))
        except (ValueError, OverflowError):
            logger.info("session_utc_unparsable value=%s", utc)
            return row
        row["utc"] = to_utc_iso(instant)
        in_admin = utc_to_zone(instant, admin_tz)
        row["admin_date"] = in_admin.date().isoformat()
        row["admin_time"] = in_admin.strftime("%H:%M")
        if is_valid_timezone(user_tz):
            in_user = utc_to_zone(instant, user_tz)
            row["user_date"] = in_user.date().isoformat()
            row["user_time"] = in_user.strftime("%H:%M")
        return row

    async def delete_subscription(self, token: str, subscription_id: str) -> None:
        state = self.state(token)
        result = await self.api.admin_delete_subscription(token, subscription_id)
        self._check(state, result)
        state.subscriptions = [s for s in state.subscriptions if row_id(s) != subscription_id]
        state.expanded.pop(subscription_id, None)

    async def confirm_payment(self, token: str, subscription_id: str, reference: str | None = None) -> dict:
        state = self.state(token)
        result = await self.api.admin_confirm_payment(token, subscription_id, reference)
        self._check(state, result)
        payment = result.payment or {}
        row = next((s for s in state.subscriptions if row_id(s) == subscription_id), None)
        if row is None:
            row = {"_id": subscription_id}
            state.subscriptions.append(row)
        row["paymentStatus"] = "paid"
        row["paymentConfirmedAt"] = payment.get("paymentConfirmedAt") or datetime.utcnow().isoformat() + "Z"
        row["paymentReference"] = payment.get("paymentReference") or reference or row.get("paymentReference")
        return row

    # Users

    async def users(self, token: str, search: str | None = None) -> list[dict]:
        state = self.state(token)
        result = await self.api.admin_get_users(token, search=search, limit=200)
        self._check(state, result)
        state.users = result.users
        return state.users

    async def delete_user(self, token: str, user_id: str) -> None:
        state = self.state(token)
        result = await self.api.admin_delete_user(token, user_id)
        self._check(state, result)
        state.users = [u for u in state.users if row_id(u) != user_id]

    # Plans

    def sorted_plans(self, state: AdminState) -> list[Plan]:
        return sorted(state.plans, key=plan_sort_key)

    async def plans(self, token: str) -> list[Plan]:
        state = self.state(token)
        result = await self.api.admin_get_plans(token)
        self._check(state, result)
        state.plans = [
            plan.model_copy(update={"order": state.plan_order.get(plan.plan_id, plan_sort_key(plan))})
            for plan in result.plans
        ]
        return self.sorted_plans(state)

    async def save_plan(self, token: str, form: dict, plan_id: str | None = None) -> Plan:
        state = self.state(token)
        if plan_id:
            result = await self.api.admin_update_plan(token, plan_id, form)
            self._check(state, result)
            updated = result.plan or Plan()
            state.plans = [updated if p.plan_id == plan_id else p for p in state.plans]
            return updated
        result = await self.api.admin_create_plan(token, form)
        self._check(state, result)
        created = result.plan or Plan()
        if created.order is None:
            highest = max((p.order for p in state.plans if p.order not in (None, UNORDERED)), default=-1)
            created = created.model_copy(update={"order": highest + 1})
        state.plans.append(created)
        return created

    async def delete_plan(self, token: str, plan_id: str) -> None:
        state = self.state(token)
        result = await self.api.admin_delete_plan(token, plan_id)
        self._check(state, result)
        state.plans = [p for p in state.plans if p.plan_id != plan_id]
        state.plan_order.pop(plan_id, None)

    async def move_plan(self, token: str, from_index: int, to_index: int) -> tuple[list[Plan], str | None]:
        """Reorder locally first, then sync; a failed sync keeps the local order."""
        state = self.state(token)
        ordered = self.sorted_plans(state)
        if not (0 <= from_index < len(ordered) and 0 <= to_index < len(ordered)):
            raise NotFoundError("Plan position out of range")
        moved = ordered.pop(from_index)
        ordered.insert(to_index, moved)
        state.plans = [plan.model_copy(update={"order": index}) for index, plan in enumerate(ordered)]
        state.plan_order.clear()
        state.plan_order.update({plan.plan_id: plan.order for plan in state.plans})

        result = await self.api.admin_reorder_plans(token, [(p.plan_id, p.order) for p in state.plans])
        if result.success:
            return state.plans, None
        logger.warning("plan_order_sync_failed error=%s", result.error)
        return state.plans, f"Order saved locally. Backend sync failed: {result.error}"
