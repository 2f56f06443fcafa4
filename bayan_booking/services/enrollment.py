from __future__ import annotations

import logging
import re
from datetime import date, time, timedelta
from typing import Awaitable, Callable, Optional

from ..api.client import BookingApiClient
from ..errors import EnrollmentError
from ..geo.countries import DEFAULT_COUNTRIES, options_from_api
from ..geo.regions import timezone_for_region
from ..scheduling.booking import (
    MonthCalendar,
    SelectedSession,
    SlotView,
    ToggleResult,
    describe_session,
    format_week_range,
    month_calendar,
    normalize_date_time,
    reconcile,
    shift_month,
    slot_views,
    toggle_session,
)
from ..scheduling.slots import (
    as_date,
    format_time,
    is_valid_timezone,
    parse_instant,
    session_utc,
    utc_to_cairo,
    working_slots_for_user,
)
from ..schemas import Notice, PersonalUpdate, Plan, SelectedPackage
from ..store import EnrollmentState, InMemoryStore
from . import notices
from .notices import mask_email, subscription_error_message

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
OTP_RE = re.compile(r"^\d{6}$")
REQUIRED_PERSONAL = ("first_name", "last_name", "gender", "country", "phone")
DEFAULT_SESSIONS = 8
DEFAULT_SESSIONS_PER_WEEK = 2

Publisher = Callable[[str, Notice], Awaitable[None]]


def sanitize(value: str) -> str:
    return " ".join(value.replace("<", "").replace(">", "").split())


def sessions_for_plan(plan: Plan) -> int:
    return plan.sessions or plan.sessions_per_month or DEFAULT_SESSIONS


class EnrollmentService:
    """Drives the enrollment wizard: identity, OTP, personal info, package, scheduling, confirmation."""

    def __init__(
        self,
        api: BookingApiClient,
        store: InMemoryStore,
        publish: Optional[Publisher] = None,
    ) -> None:
        self.api = api
        self.store = store
        self.publish = publish

    async def _notify(self, state: EnrollmentState, notice: Notice) -> None:
        self.store.add_notice(state.enrollment_id, notice)
        if self.publish is not None:
            await self.publish(state.enrollment_id, notice)

    async def _fail(self, state: EnrollmentState, message: str) -> EnrollmentError:
        await self._notify(state, notices.error(message))
        return EnrollmentError(message)

    async def start(self, timezone: str | None = None) -> EnrollmentState:
        state = self.store.create_enrollment(timezone if is_valid_timezone(timezone) else None)
        await self.initialize(state)
        return state

    async def initialize(self, state: EnrollmentState) -> None:
        plans = await self.api.get_plans()
        if plans.success:
            state.plans = plans.plans
        else:
            logger.warning("plans_unavailable enrollment=%s error=%s", state.enrollment_id, plans.error)
        booked = await self.api.get_booked_slots()
        state.booked = booked.booked_slots
        countries = await self.api.get_countries()
        state.countries = options_from_api(countries.countries) if countries.success else list(DEFAULT_COUNTRIES)

    # Step 1: identity and OTP

    async def send_otp(self, state: EnrollmentState, email: str, login: bool = False) -> None:
        email = email.strip()
        if not EMAIL_RE.match(email):
            raise await self._fail(state, "Please enter a valid email address")
        if state.sending_otp:
            raise EnrollmentError("An OTP request is already in progress")
        state.sending_otp = True
        try:
            result = await (self.api.send_login_otp(email) if login else self.api.send_otp(email))
        finally:
            state.sending_otp = False
        if not result.success:
            raise await self._fail(state, f"Failed to send OTP: {result.error}")
        state.email = email
        state.is_login = login
        state.otp_sent = True
        logger.info("otp_sent enrollment=%s email=%s login=%s", state.enrollment_id, mask_email(email), login)
        label = "Login" if login else "Registration"
        await self._notify(state, notices.success(f"{label} OTP sent to your email address!"))

    async def verify_otp(self, state: EnrollmentState, otp: str) -> None:
        otp = otp.strip()
        if not OTP_RE.match(otp):
            raise await self._fail(state, "Please enter a valid 6-digit OTP")
        if not state.otp_sent or not state.email:
            raise await self._fail(state, "Please request an OTP first")
        if state.verifying_otp:
            raise EnrollmentError("OTP verification is already in progress")
        state.verifying_otp = True
        try:
            result = await self.api.verify_otp(state.email, otp)
        finally:
            state.verifying_otp = False
        if not result.success:
            raise await self._fail(state, f"OTP verification failed: {result.error}")

        state.personal.email = state.email
        if state.is_login:
            state.token = result.token
            state.is_logged_in = True
            await self._notify(state, notices.success("Login successful! Welcome back."))
            await self.load_profile(state)
            state.step = 3
        elif result.temp_token:
            state.token = result.temp_token
            await self._notify(
                state, notices.success("OTP verified! Please complete your personal information.")
            )
            state.step = 2
        elif result.token:
            # Registering with an existing account is a login.
            state.token = result.token
            state.is_logged_in = True
            await self._notify(state, notices.info("Welcome back! You already have an account."))
            await self.load_profile(state)
            state.step = 3
        else:
            raise await self._fail(state, "Unable to complete verification. Please try again.")

    async def load_profile(self, state: EnrollmentState) -> None:
        if not state.token:
            return
        result = await self.api.get_user_profile(state.token)
        if not result.success or not result.user:
            logger.info("profile_unavailable enrollment=%s error=%s", state.enrollment_id, result.error)
            return
        user = result.user
        country = user.get("country")
        if not country:
            return
        personal = state.personal
        personal.country = country
        personal.first_name = user.get("firstName") or personal.first_name
        personal.last_name = user.get("lastName") or personal.last_name
        personal.phone = user.get("phone") or personal.phone
        if user.get("gender") in ("Male", "Female"):
            personal.gender = user["gender"]
        if is_valid_timezone(user.get("timezone")):
            state.timezone = user["timezone"]
        else:
            await self.refresh_timezone(state, country)

    async def refresh_timezone(
        self, state: EnrollmentState, country: str | None = None, region: str | None = None
    ) -> str:
        country = country or state.personal.country
        if not country or country == "other":
            return state.timezone
        result = await self.api.get_country_timezone(country)
        if result.success and is_valid_timezone(result.timezone):
            state.timezone = result.timezone  # type: ignore[assignment]
            return state.timezone
        fallback = timezone_for_region(country, region or state.personal.region)
        if fallback:
            state.timezone = fallback
        else:
            logger.info("timezone_lookup_failed enrollment=%s country=%s", state.enrollment_id, country)
        return state.timezone

    # Step 2: personal info

    async def update_personal(self, state: EnrollmentState, update: PersonalUpdate) -> None:
        changes = update.model_dump(exclude_none=True)
        location_changed = False
        for key, value in changes.items():
            cleaned = sanitize(value) if isinstance(value, str) else value
            if key in ("country", "region") and cleaned != getattr(state.personal, key):
                location_changed = True
            setattr(state.personal, key, cleaned)
        if location_changed and state.personal.country and state.personal.country != "other":
            await self.refresh_timezone(state)

    async def submit_personal(self, state: EnrollmentState) -> None:
        if not all(getattr(state.personal, key) for key in REQUIRED_PERSONAL):
            raise await self._fail(state, "Please fill in all required fields")
        if state.token and not state.is_logged_in:
            personal = state.personal
            result = await self.api.complete_registration(
                state.token,
                {
                    "firstName": personal.first_name,
                    "lastName": personal.last_name,
                    "phone": personal.phone,
                    "gender": personal.gender,
                    "country": personal.country,
                    "timezone": state.timezone,
                },
            )
            if result.success:
                state.token = result.token
                state.is_logged_in = True
                await self._notify(state, notices.success("Registration completed successfully!"))
            elif result.error and (
                "already completed" in result.error or "No authentication token" in result.error
            ):
                state.is_logged_in = True
                await self._notify(
                    state,
                    notices.success("Account setup completed! Please proceed to select your package."),
                )
            else:
                raise await self._fail(state, f"Registration failed: {result.error}")
        state.step = 3

    # Step 3: package

    async def load_plans(self, state: EnrollmentState) -> list[Plan]:
        result = await self.api.get_plans()
        if result.success:
            state.plans = result.plans
        else:
            await self._notify(state, notices.error(f"Failed to load packages: {result.error}"))
        return state.plans

    async def select_package(self, state: EnrollmentState, plan_id: str) -> SelectedPackage:
        if not state.plans:
            await self.load_plans(state)
        plan = next((p for p in state.plans if p.plan_id == plan_id), None)
        if plan is None:
            raise await self._fail(state, "Selected plan is not available. Please choose another plan.")
        state.max_sessions = sessions_for_plan(plan)
        state.package = SelectedPackage(
            name=plan.name,
            type=plan.plan_id,
            sessions=state.max_sessions,
            sessions_per_week=plan.sessions_per_week or DEFAULT_SESSIONS_PER_WEEK,
            plan_id=plan.plan_id,
        )
        return state.package

    async def confirm_package(self, state: EnrollmentState) -> None:
        if not state.package.type:
            raise await self._fail(state, "Please select a package")
        await self.refresh_timezone(state)
        state.step = 4

    # Step 4: scheduling

    def calendar(
        self, state: EnrollmentState, year: int | None = None, month: int | None = None, today: date | None = None
    ) -> MonthCalendar:
        if year is not None and month is not None:
            state.current_month = (year, month)
        year, month = state.current_month
        return month_calendar(
            year,
            month,
            state.sessions,
            state.package.sessions_per_week,
            selected_date=state.selected_date,
            today=today,
        )

    def change_month(self, state: EnrollmentState, direction: int, today: date | None = None) -> MonthCalendar:
        state.current_month = shift_month(*state.current_month, direction)
        return self.calendar(state, today=today)

    async def select_date(self, state: EnrollmentState, day: str, today: date | None = None) -> list[SlotView]:
        try:
            chosen = as_date(day)
        except ValueError:
            raise await self._fail(state, f"Invalid date: {day}") from None
        today = today or date.today()
        if chosen < today + timedelta(days=1):
            raise await self._fail(state, "Past date - cannot book")
        available = working_slots_for_user(chosen, state.timezone)
        # Quota is per viewer-local week, so a Cairo date is only closed when every slot's week is full.
        views = slot_views(available, state.sessions, state.booked, state.package.sessions_per_week)
        if views and all(view.week_full for view in views):
            raise await self._fail(
                state,
                f"Week limit reached for {format_week_range(views[0].slot.user_date)} "
                f"({state.package.sessions_per_week} sessions max)",
            )
        state.selected_date = chosen.isoformat()
        state.available_slots = available
        return views

    def slot_views(self, state: EnrollmentState) -> list[SlotView]:
        return slot_views(
            state.available_slots, state.sessions, state.booked, state.package.sessions_per_week
        )

    async def toggle_session(
        self, state: EnrollmentState, day: str, time: str, starts_at_utc: str | None = None
    ) -> ToggleResult:
        if not state.selected_date:
            raise await self._fail(state, "Please pick a date first")
        day, time = normalize_date_time(day, time)
        slot = next(
            (s for s in state.available_slots if s.user_date == day and s.user_time == time),
            None,
        )
        existing = any(s.date == day and s.time == time for s in state.sessions)
        if slot is None and not existing:
            raise await self._fail(state, f"{time} on {day} is not an available slot")
        cairo_time = None
        if slot is not None:
            starts_at_utc = slot.starts_at_utc
            cairo_time = slot.cairo_time
        elif not starts_at_utc:
            starts_at_utc = session_utc(day, time, state.timezone)
        candidate = SelectedSession(date=day, time=time, starts_at_utc=starts_at_utc, cairo_time=cairo_time)
        result = toggle_session(
            state.sessions,
            candidate,
            state.max_sessions,
            state.package.sessions_per_week,
            state.booked,
        )
        state.sessions = result.sessions
        if not result.accepted:
            await self._notify(state, notices.info(result.message))
        return result

    async def submit(self, state: EnrollmentState, today: date | None = None) -> dict:
        if state.submitting:
            raise EnrollmentError("Enrollment is already being submitted")
        if not state.token:
            raise await self._fail(state, "Authentication required. Please verify your email first.")
        if not state.package.plan_id:
            raise await self._fail(state, "Please select a package first.")
        if not state.personal.country:
            raise await self._fail(state, "Country information is required. Please complete your profile.")
        if len(state.sessions) < state.max_sessions:
            raise await self._fail(state, f"Please select {state.max_sessions} sessions")

        state.submitting = True
        try:
            booked = await self.api.get_booked_slots()
            state.booked = booked.booked_slots
            free, conflicts = reconcile(state.sessions, state.booked)
            if conflicts:
                state.sessions = free
                taken = "; ".join(describe_session(s) for s in conflicts)
                raise await self._fail(
                    state, f"These sessions were just booked by someone else: {taken}. Please pick new times."
                )
            for session in state.sessions:
                session.notes = f"{state.package.name} session"
            start_date = (today or date.today()).isoformat()
            result = await self.api.create_complete_subscription(
                state.token,
                state.package.plan_id,
                start_date,
                state.sessions,
                country=state.personal.country,
                timezone=state.timezone,
            )
            if not result.success:
                logger.warning(
                    "subscription_failed enrollment=%s error=%s", state.enrollment_id, result.error
                )
                raise await self._fail(state, subscription_error_message(result.error))
        finally:
            state.submitting = False

        state.subscription = result.subscription or {}
        state.step = 5
        await self._notify(
            state, notices.success("Subscription created successfully! Welcome to Bayan School!")
        )
        confirmation = await self.api.send_confirmation_email(state.email, self.enrollment_payload(state))
        if not confirmation.success:
            logger.info("confirmation_email_skipped enrollment=%s error=%s", state.enrollment_id, confirmation.error)
        return state.subscription

    # Step 5: confirmation

    def enrollment_payload(self, state: EnrollmentState) -> dict:
        return {
            "personal": state.personal.model_dump(by_alias=True),
            "package": state.package.model_dump(),
            "sessions": [s.to_api() for s in state.sessions],
            "timezone": state.timezone,
        }

    def summary(self, state: EnrollmentState) -> str:
        personal = state.personal
        package = state.package
        parts: list[str] = ["Here’s your enrollment summary."]
        name = f"{personal.first_name} {personal.last_name}".strip()
        if name:
            parts.append(f"Student: {name}{f' ({personal.email})' if personal.email else ''}.")
        if package.name:
            parts.append(
                f"Package: {package.name}, {package.sessions} sessions, "
                f"{package.sessions_per_week} per week."
            )
        if state.sessions:
            lines = []
            for session in sorted(state.sessions, key=lambda s: (s.date, s.time)):
                line = describe_session(session)
                cairo = self._cairo_wall_time(session)
                if cairo:
                    line += f" ({format_time(cairo.hour, cairo.minute)} Cairo)"
                lines.append(line)
            parts.append("Sessions: " + "; ".join(lines) + ".")
        else:
            parts.append("No sessions selected yet.")
        parts.append(f"Times are shown in {state.timezone}.")
        return " ".join(parts)

    @staticmethod
    def _cairo_wall_time(session: SelectedSession) -> Optional[time]:
        if session.cairo_time:
            return time.fromisoformat(session.cairo_time)
        if not session.starts_at_utc:
            return None
        try:
            return utc_to_cairo(parse_instant(session.starts_at_utc)).time()
        except (ValueError, OverflowError):
            logger.debug("session_utc_unparsable value=%s", session.starts_at_utc)
            return None

    def previous_step(self, state: EnrollmentState) -> int:
        target = state.step - 1
        if target == 2 and state.is_logged_in:
            target = 1
        state.step = max(1, target)
        return state.step

    def reset(self, state: EnrollmentState) -> EnrollmentState:
        return self.store.reset_enrollment(state.enrollment_id)
