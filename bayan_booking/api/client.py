"""Async client for the remote enrollment/booking REST API.

Every operation returns a result model with ``success`` and, on failure, a
human-readable ``error``. Transport errors are folded into that shape too.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel

from ..config import settings
from ..scheduling.booking import BookedSlot, SelectedSession
from ..scheduling.slots import session_utc
from ..schemas import Plan

logger = logging.getLogger(__name__)

TIMEZONEDB_URL = "http://api.timezonedb.com/v2.1/get-time-zone"
ACTIVE_SUBSCRIPTION_MESSAGE = "You already have an active subscription to this plan"


class ApiResult(BaseModel):
    success: bool
    error: Optional[str] = None
    message: Optional[str] = None
    data: Any = None

    @classmethod
    def failure(cls, error: str):
        return cls(success=False, error=error)


class TokenResult(ApiResult):
    token: Optional[str] = None
    temp_token: Optional[str] = None


class RegistrationResult(ApiResult):
    token: Optional[str] = None
    user: Optional[dict] = None


class PlansResult(ApiResult):
    plans: list[Plan] = []


class PlanResult(ApiResult):
    plan: Optional[Plan] = None


class UserResult(ApiResult):
    user: Optional[dict] = None


class TimezoneResult(ApiResult):
    timezone: Optional[str] = None


class CountriesResult(ApiResult):
    countries: list[dict] = []


class SubscriptionResult(ApiResult):
    subscription: Optional[dict] = None
    subscription_id: Optional[str] = None


class SubscriptionsResult(ApiResult):
    subscriptions: list[dict] = []


class UsersResult(ApiResult):
    users: list[dict] = []


class AdminResult(ApiResult):
    admin: Optional[dict] = None


class PaymentResult(ApiResult):
    payment: Optional[dict] = None


class BookedSlotsResult(ApiResult):
    booked_slots: list[BookedSlot] = []


SESSION_STATUS_ERRORS = {
    400: "Invalid session data - check date, time, and subscription ID",
    401: "Authentication required - please login again",
    404: "Subscription not found - please try selecting a package again",
    409: "Session conflict - you may already have a session at this time",
    500: "Server error - please try again later",
}

BULK_STATUS_ERRORS = {
    **SESSION_STATUS_ERRORS,
    400: "Invalid sessions data - check dates, times, and subscription ID",
    409: "Session conflicts - some time slots might be already taken",
}

SUBSCRIPTION_STATUS_ERRORS = {
    400: "Invalid subscription data",
    401: "Authentication required",
    409: ACTIVE_SUBSCRIPTION_MESSAGE,
}


@dataclass
class Reply:
    status: int = 0
    body: Any = None
    reason: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and 200 <= self.status < 300

    def get(self, *path: str) -> Any:
        node = self.body
        for key in path:
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        return node

    def first(self, *paths: tuple[str, ...]) -> Any:
        for path in paths:
            value = self.get(*path)
            if value:
                return value
        return None

    def message(self, default: str) -> str:
        return self.first(("message",)) or default

    def detailed_message(self, default: str) -> str:
        return self.first(("message",), ("error",)) or default

    def status_message(self, statuses: dict[int, str], fallback: str) -> str:
        if isinstance(self.body, dict):
            value = self.first(("message",), ("error",))
            if value:
                return str(value)
        if isinstance(self.body, str) and self.body.strip():
            return self.body
        if self.status in statuses:
            return statuses[self.status]
        return f"{fallback} {self.status}: {self.reason or 'Unknown error'}"


def normalize_base_url(base_url: str) -> str:
    return base_url.rstrip("/")


def extract_plans(body: Any) -> list | None:
    """Plans arrive in several envelope shapes; return the list or None."""
    if isinstance(body, list):
        return body
    if not isinstance(body, dict):
        return None
    data = body.get("data")
    if isinstance(data, dict):
        for key in ("subscriptionPlans", "plans"):
            if isinstance(data.get(key), list):
                return data[key]
    if isinstance(body.get("plans"), list):
        return body["plans"]
    if isinstance(data, dict):
        return next((value for value in data.values() if isinstance(value, list)), [])
    return None


def _parse_body(response: httpx.Response) -> Any:
    text = response.text
    if not text:
        return {}
    try:
        return response.json()
    except ValueError:
        return text


class BookingApiClient:
    """HTTP client for the enrollment/booking backend."""

    def __init__(
        self,
        base_url: str | None = None,
        http: httpx.AsyncClient | None = None,
        timezonedb_api_key: str | None = None,
    ) -> None:
        self.base_url = normalize_base_url(base_url or settings.api_base_url)
        self.timezonedb_api_key = timezonedb_api_key or settings.timezonedb_api_key
        self.http = http or httpx.AsyncClient(timeout=settings.request_timeout)

    async def aclose(self) -> None:
        await self.http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        network_error: str,
        *,
        token: str | None = None,
        json: Any = None,
        params: dict[str, Any] | None = None,
        url: str | None = None,
    ) -> Reply:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = await self.http.request(
                method,
                url or f"{self.base_url}{path}",
                json=json,
                params=params,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            logger.warning("api_request_failed method=%s path=%s error=%s", method, path, exc)
            return Reply(error=str(exc) or network_error)
        if response.status_code >= 400:
            logger.info("api_request_rejected method=%s path=%s status=%s", method, path, response.status_code)
        return Reply(
            status=response.status_code,
            body=_parse_body(response),
            reason=response.reason_phrase,
        )

    # OTP and registration

    async def send_login_otp(self, email: str) -> ApiResult:
        reply = await self._request(
            "POST", "/auth/login/send-otp", "Network error sending login OTP", json={"email": email}
        )
        if reply.error:
            return ApiResult.failure(reply.error)
        if not reply.ok:
            return ApiResult.failure(reply.message(f"Failed to send login OTP ({reply.status})"))
        return ApiResult(success=True, data=reply.body)

    async def send_otp(self, email: str) -> ApiResult:
        reply = await self._request(
            "POST", "/auth/send-otp", "Network error sending registration OTP", json={"email": email}
        )
        if reply.error:
            return ApiResult.failure(reply.error)
        if not reply.ok:
            return ApiResult.failure(reply.message(f"Failed to send registration OTP ({reply.status})"))
        return ApiResult(success=True, data=reply.body)

    async def verify_otp(self, email: str, otp: str) -> TokenResult:
        reply = await self._request(
            "POST", "/auth/verify-otp", "Network error verifying OTP", json={"email": email, "otp": otp}
        )
        if reply.error:
            return TokenResult.failure(reply.error)
        if not reply.ok:
            return TokenResult.failure(reply.detailed_message(f"Failed to verify OTP ({reply.status})"))
        token = reply.first(("data", "token"), ("token",))
        temp_token = reply.first(("data", "tempToken"), ("tempToken",))
        if token:
            return TokenResult(success=True, token=str(token))
        if temp_token:
            return TokenResult(success=True, token=str(temp_token), temp_token=str(temp_token))
        return TokenResult.failure("No authentication token received")

    async def complete_registration(self, temp_token: str, user: dict) -> RegistrationResult:
        reply = await self._request(
            "POST",
            "/auth/complete-registration",
            "Network error completing registration",
            token=temp_token,
            json=user,
        )
        if reply.error:
            return RegistrationResult.failure(reply.error)
        if not reply.ok:
            return RegistrationResult.failure(
                reply.detailed_message(f"Failed to complete registration ({reply.status})")
            )
        if reply.status not in (200, 201):
            return RegistrationResult.failure("Registration completion failed")
        # No new token means the temp token is promoted.
        token = reply.first(("data", "token"), ("token",)) or temp_token
        user_data = reply.first(("data", "user"), ("user",))
        return RegistrationResult(success=True, token=str(token), user=user_data)

    # Plans, profile and geography

    async def get_plans(self) -> PlansResult:
        reply = await self._request(
            "GET", "/plans", "Network error fetching plans", params={"limit": 1000, "sort": "order"}
        )
        if reply.error:
            return PlansResult.failure(reply.error)
        if not reply.ok:
            return PlansResult.failure(reply.message(f"Failed to fetch plans ({reply.status})"))
        plans = extract_plans(reply.body)
        if plans is None:
            return PlansResult.failure("Invalid plans data structure")
        return PlansResult(success=True, plans=[Plan.model_validate(p) for p in plans if isinstance(p, dict)])

    async def get_user_profile(self, jwt: str) -> UserResult:
        reply = await self._request("GET", "/user/profile", "Network error getting profile", token=jwt)
        if reply.error:
            return UserResult.failure(reply.error)
        if not reply.ok:
            return UserResult.failure(reply.message("Failed to get profile"))
        user = reply.first(("data", "user"), ("data",)) or reply.body
        return UserResult(success=True, user=user if isinstance(user, dict) else None)

    async def update_user_profile(self, jwt: str, profile: dict) -> UserResult:
        reply = await self._request(
            "PATCH", "/user/profile", "Network error updating profile", token=jwt, json=profile
        )
        if reply.error:
            return UserResult.failure(reply.error)
        if not reply.ok:
            return UserResult.failure(reply.message("Failed to update profile"))
        user = reply.get("data", "user") or reply.body
        return UserResult(success=True, user=user if isinstance(user, dict) else None)

    async def get_country_timezone(self, country: str) -> TimezoneResult:
        reply = await self._request(
            "GET",
            f"/countries/{quote(country, safe='')}/timezone",
            "Network error fetching country timezone",
        )
        if reply.error:
            return TimezoneResult.failure(reply.error)
        if not reply.ok:
            return TimezoneResult.failure(f"Failed to get country timezone ({reply.status})")
        timezone = reply.first(("data", "timezone"), ("timezone",))
        if not timezone:
            return TimezoneResult.failure("Timezone not found in response")
        return TimezoneResult(success=True, timezone=str(timezone))

    async def get_countries(self) -> CountriesResult:
        reply = await self._request("GET", "/countries", "Network error fetching countries")
        if reply.error:
            return CountriesResult.failure(reply.error)
        countries = reply.get("data", "countries")
        if not reply.ok or reply.get("status") != "success" or not isinstance(countries, list):
            return CountriesResult.failure("Invalid countries response")
        return CountriesResult(success=True, countries=[c for c in countries if isinstance(c, dict)])

    async def get_timezone_from_timezonedb(self, zone_name: str) -> ApiResult:
        if not self.timezonedb_api_key:
            return ApiResult.failure("TimeZoneDB API key not configured")
        reply = await self._request(
            "GET",
            "/get-time-zone",
            "Network error calling TimeZoneDB",
            url=TIMEZONEDB_URL,
            params={"key": self.timezonedb_api_key, "format": "json", "by": "zone", "zone": zone_name},
        )
        if reply.error:
            return ApiResult.failure(reply.error)
        if not reply.ok:
            return ApiResult.failure(f"TimeZoneDB request failed ({reply.status})")
        return ApiResult(success=True, data=reply.body)

    # Subscriptions and sessions

    async def create_complete_subscription(
        self,
        jwt: str,
        plan_id: str,
        start_date: str,
        sessions: Iterable[SelectedSession],
        country: str | None = None,
        timezone: str | None = None,
    ) -> SubscriptionResult:
        payload: dict[str, Any] = {
            "subscriptionPlanId": plan_id,
            "startDate": start_date,
            "sessions": [_with_utc(session, timezone) for session in sessions],
        }
        if country:
            payload["userCountry"] = country
        reply = await self._request(
            "POST",
            "/user/complete-subscription",
            "Network error creating complete subscription",
            token=jwt,
            json=payload,
        )
        if reply.error:
            return SubscriptionResult.failure(reply.error)
        if not reply.ok:
            message = reply.get("message")
            if reply.status == 409 and isinstance(message, str) and "already have an active subscription" in message:
                return SubscriptionResult.failure(ACTIVE_SUBSCRIPTION_MESSAGE)
            return SubscriptionResult.failure(message or "Failed to create complete subscription")
        subscription = reply.get("data", "subscription") or reply.body
        return SubscriptionResult(success=True, subscription=subscription if isinstance(subscription, dict) else None)

    async def create_subscription(self, jwt: str, plan_id: str, start_date: str) -> SubscriptionResult:
        reply = await self._request(
            "POST",
            "/user/subscriptions",
            "Network error creating subscription",
            token=jwt,
            json={"subscriptionPlanId": plan_id, "startDate": start_date},
        )
        if reply.error:
            return SubscriptionResult.failure(reply.error)
        if not reply.ok:
            return SubscriptionResult.failure(reply.status_message(SUBSCRIPTION_STATUS_ERRORS, "HTTP"))
        subscription_id = reply.first(
            ("data", "subscription", "id"),
            ("data", "subscription", "_id"),
            ("subscription", "id"),
            ("subscription", "_id"),
            ("subscriptionId",),
            ("id",),
            ("_id",),
        )
        if not subscription_id:
            return SubscriptionResult.failure("Subscription ID missing in response")
        return SubscriptionResult(success=True, subscription_id=str(subscription_id))

    async def create_session(
        self,
        jwt: str,
        subscription_id: str,
        session: SelectedSession,
        timezone: str | None = None,
    ) -> ApiResult:
        payload = {"subscriptionId": subscription_id, **_with_utc(session, timezone)}
        reply = await self._request(
            "POST", "/user/sessions", "Network error creating session", token=jwt, json=payload
        )
        if reply.error:
            return ApiResult.failure(reply.error)
        if not reply.ok:
            return ApiResult.failure(reply.status_message(SESSION_STATUS_ERRORS, "Server returned"))
        return ApiResult(success=True, data=reply.body)

    async def create_bulk_sessions(
        self,
        jwt: str,
        subscription_id: str,
        sessions: Iterable[SelectedSession],
        timezone: str | None = None,
    ) -> ApiResult:
        payload = {
            "subscriptionId": subscription_id,
            "sessions": [_with_utc(session, timezone) for session in sessions],
        }
        reply = await self._request(
            "POST", "/user/sessions/bulk", "Network error creating bulk sessions", token=jwt, json=payload
        )
        if reply.error:
            return ApiResult.failure(reply.error)
        if not reply.ok:
            return ApiResult.failure(reply.status_message(BULK_STATUS_ERRORS, "Server returned"))
        return ApiResult(success=True, data=reply.body)

    async def get_booked_slots(self, date: str | None = None) -> BookedSlotsResult:
        # Booked slots are advisory: any failure reads as "nothing booked".
        reply = await self._request(
            "GET",
            "/sessions/booked",
            "Network error fetching booked slots",
            params={"date": date} if date else None,
        )
        if not reply.ok:
            return BookedSlotsResult(success=True, booked_slots=[])
        raw = reply.first(("data", "bookedSlots"), ("bookedSlots",)) or []
        slots = [BookedSlot.from_api(item) for item in raw if isinstance(item, dict)]
        return BookedSlotsResult(success=True, booked_slots=slots)

    # Legacy enrollment endpoints

    async def submit_enrollment(self, enrollment: dict) -> ApiResult:
        reply = await self._request("POST", "/enrollment", "Failed to submit enrollment", json=enrollment)
        if not reply.ok:
            logger.error("enrollment_submission_failed status=%s error=%s", reply.status, reply.error)
            return ApiResult.failure("Failed to submit enrollment")
        return ApiResult(success=True, data=reply.body)

    async def send_confirmation_email(self, email: str, enrollment: dict) -> ApiResult:
        reply = await self._request(
            "POST",
            "/enrollment/confirm",
            "Failed to send confirmation email",
            json={"email": email, "enrollmentData": enrollment},
        )
        if reply.status == 404:
            logger.info("confirmation_email_endpoint_missing")
            return ApiResult.failure("Email confirmation service not available")
        if not reply.ok:
            logger.warning("confirmation_email_failed status=%s error=%s", reply.status, reply.error)
            return ApiResult.failure("Failed to send confirmation email")
        return ApiResult(success=True, data=reply.body)

    # Admin

    async def admin_login(self, email: str, password: str) -> TokenResult:
        reply = await self._request(
            "POST",
            "/admin/login",
            "Network error during admin login",
            json={"email": email, "password": password},
        )
        if reply.error:
            return TokenResult.failure(reply.error)
        if not reply.ok:
            return TokenResult.failure(reply.message(f"Admin login failed ({reply.status})"))
        token = reply.first(("data", "token"), ("token",))
        if not token:
            return TokenResult.failure("No token returned from admin login")
        return TokenResult(success=True, token=str(token))

    async def admin_request_password_reset(self, email: str) -> ApiResult:
        reply = await self._request(
            "POST",
            "/admin/forgot-password",
            "Network error requesting password reset",
            json={"email": email},
        )
        if reply.error:
            return ApiResult.failure(reply.error)
        if not reply.ok:
            return ApiResult.failure(reply.message(f"Failed to request password reset ({reply.status})"))
        return ApiResult(success=True, data=reply.body)

    async def admin_confirm_password_reset(self, token: str, new_password: str) -> ApiResult:
        reply = await self._request(
            "POST",
            "/admin/password-reset/confirm",
            "Network error confirming password reset",
            json={"token": token, "password": new_password},
        )
        if reply.error:
            return ApiResult.failure(reply.error)
        if not reply.ok:
            return ApiResult.failure(reply.message(f"Failed to confirm password reset ({reply.status})"))
        return ApiResult(success=True, data=reply.body)

    async def admin_reset_password(self, email: str, otp: str, new_password: str) -> ApiResult:
        reply = await self._request(
            "POST",
            "/admin/reset-password",
            "Network error resetting password",
            json={"email": email, "otp": otp, "password": new_password},
        )
        if reply.error:
            return ApiResult.failure(reply.error)
        if not reply.ok:
            return ApiResult.failure(reply.message(f"Failed to reset password ({reply.status})"))
        return ApiResult(success=True, data=reply.body)

    async def admin_get_profile(self, jwt: str) -> AdminResult:
        reply = await self._request("GET", "/admin/profile", "Network error fetching admin profile", token=jwt)
        if reply.error:
            return AdminResult.failure(reply.error)
        if not reply.ok:
            return AdminResult.failure(reply.message(f"Failed to fetch admin profile ({reply.status})"))
        admin = reply.first(("data", "admin"), ("admin",), ("data",)) or reply.body
        return AdminResult(success=True, admin=admin if isinstance(admin, dict) else None)

    async def admin_get_subscriptions(
        self,
        jwt: str,
        status: str | None = None,
        user_email: str | None = None,
        page: int | None = None,
        limit: int | None = None,
        display_country: str | None = None,
    ) -> SubscriptionsResult:
        params = {
            key: value
            for key, value in (
                ("status", status),
                ("userEmail", user_email),
                ("page", page),
                ("limit", limit),
                ("displayCountry", display_country),
            )
            if value
        }
        reply = await self._request(
            "GET",
            "/admin/complete-subscriptions",
            "Network error fetching subscriptions",
            token=jwt,
            params=params or None,
        )
        if reply.error:
            return SubscriptionsResult.failure(reply.error)
        if not reply.ok:
            return SubscriptionsResult.failure(reply.message(f"Failed to fetch subscriptions ({reply.status})"))
        subscriptions = reply.first(("data", "subscriptions"), ("subscriptions",)) or []
        return SubscriptionsResult(success=True, subscriptions=list(subscriptions))

    async def admin_get_subscription(self, jwt: str, subscription_id: str) -> SubscriptionResult:
        reply = await self._request(
            "GET",
            f"/admin/complete-subscriptions/{quote(subscription_id, safe='')}",
            "Network error fetching subscription",
            token=jwt,
        )
        if reply.error:
            return SubscriptionResult.failure(reply.error)
        if not reply.ok:
            return SubscriptionResult.failure(reply.message(f"Failed to fetch subscription ({reply.status})"))
        subscription = reply.first(("data", "subscription"), ("subscription",)) or reply.body
        return SubscriptionResult(success=True, subscription=subscription if isinstance(subscription, dict) else {})

    async def admin_delete_subscription(self, jwt: str, subscription_id: str) -> ApiResult:
        return await self._delete(
            jwt,
            f"/admin/complete-subscriptions/{quote(subscription_id, safe='')}",
            "subscription",
            "Subscription deleted",
        )

    async def admin_confirm_payment(
        self, jwt: str, subscription_id: str, payment_reference: str | None = None
    ) -> PaymentResult:
        reply = await self._request(
            "PATCH",
            f"/admin/complete-subscriptions/{quote(subscription_id, safe='')}/confirm-payment",
            "Network error confirming payment",
            token=jwt,
            json={"paymentReference": payment_reference} if payment_reference else {},
        )
        if reply.error:
            return PaymentResult.failure(reply.error)
        if not reply.ok:
            return PaymentResult.failure(reply.message(f"Failed to confirm payment ({reply.status})"))
        payment = reply.get("data") or reply.body
        return PaymentResult(success=True, payment=payment if isinstance(payment, dict) else None)

    async def admin_get_users(
        self,
        jwt: str,
        search: str | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> UsersResult:
        params = {
            key: value
            for key, value in (("search", search), ("page", page), ("limit", limit))
            if value
        }
        reply = await self._request(
            "GET", "/admin/users", "Network error fetching users", token=jwt, params=params or None
        )
        if reply.error:
            return UsersResult.failure(reply.error)
        if not reply.ok:
            return UsersResult.failure(reply.message(f"Failed to fetch users ({reply.status})"))
        users = reply.first(("data", "users"), ("users",)) or []
        return UsersResult(success=True, users=list(users))

    async def admin_delete_user(self, jwt: str, user_id: str) -> ApiResult:
        return await self._delete(jwt, f"/admin/users/{quote(user_id, safe='')}", "user", "User deleted")

    async def admin_get_plans(self, jwt: str) -> PlansResult:
        reply = await self._request(
            "GET", "/admin/subscription-plans", "Network error fetching plans", token=jwt
        )
        if reply.error:
            return PlansResult.failure(reply.error)
        if not reply.ok:
            return PlansResult.failure(reply.message(f"Failed to fetch plans ({reply.status})"))
        plans = extract_plans(reply.body) or []
        return PlansResult(success=True, plans=[Plan.model_validate(p) for p in plans if isinstance(p, dict)])

    async def admin_create_plan(self, jwt: str, plan: dict) -> PlanResult:
        reply = await self._request(
            "POST", "/admin/subscription-plans", "Network error creating plan", token=jwt, json=plan
        )
        if reply.error:
            return PlanResult.failure(reply.error)
        if not reply.ok:
            return PlanResult.failure(reply.message(f"Failed to create plan ({reply.status})"))
        created = reply.first(("data", "plan"), ("plan",)) or reply.body
        return PlanResult(success=True, plan=Plan.model_validate(created if isinstance(created, dict) else {}))

    async def admin_update_plan(self, jwt: str, plan_id: str, updates: dict) -> PlanResult:
        reply = await self._request(
            "PUT",
            f"/admin/subscription-plans/{quote(plan_id, safe='')}",
            "Network error updating plan",
            token=jwt,
            json=updates,
        )
        if reply.error:
            return PlanResult.failure(reply.error)
        if not reply.ok:
            return PlanResult.failure(reply.message(f"Failed to update plan ({reply.status})"))
        updated = reply.first(("data", "plan"), ("plan",)) or reply.body
        return PlanResult(success=True, plan=Plan.model_validate(updated if isinstance(updated, dict) else {}))

    async def admin_delete_plan(self, jwt: str, plan_id: str) -> ApiResult:
        return await self._delete(
            jwt, f"/admin/subscription-plans/{quote(plan_id, safe='')}", "plan", "Plan deleted"
        )

    async def admin_reorder_plans(self, jwt: str, plan_orders: Iterable[tuple[str, int]]) -> ApiResult:
        body = {"plans": [{"planId": plan_id, "order": order} for plan_id, order in plan_orders]}
        reply = await self._request(
            "POST",
            "/admin/subscription-plans/reorder",
            "Network error reordering plans",
            token=jwt,
            json=body,
        )
        if reply.error:
            return ApiResult.failure(reply.error)
        if not reply.ok:
            return ApiResult.failure(reply.message(f"Failed to reorder plans ({reply.status})"))
        return ApiResult(success=True, message=reply.message("Plans reordered"))

    async def _delete(self, jwt: str, path: str, noun: str, done: str) -> ApiResult:
        reply = await self._request("DELETE", path, f"Network error deleting {noun}", token=jwt)
        if reply.error:
            return ApiResult.failure(reply.error)
        if not reply.ok:
            return ApiResult.failure(reply.message(f"Failed to delete {noun} ({reply.status})"))
        return ApiResult(success=True, message=reply.message(done))


def _with_utc(session: SelectedSession, timezone: str | None) -> dict:
    payload = session.to_api()
    if "startsAtUTC" not in payload:
        try:
            payload["startsAtUTC"] = session_utc(session.date, session.time, timezone)
        except ValueError:
            logger.warning("session_utc_unavailable date=%s time=%s", session.date, session.time)
    return payload
