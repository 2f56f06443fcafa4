from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional

from .config import settings
from .errors import NotFoundError
from .geo.countries import DEFAULT_COUNTRIES, CountryOption
from .scheduling.booking import BookedSlot, SelectedSession
from .scheduling.slots import Slot
from .schemas import Notice, PersonalInfo, Plan, SelectedPackage


def _this_month() -> tuple[int, int]:
    today = date.today()
    return today.year, today.month


@dataclass
class EnrollmentState:
    enrollment_id: str
    timezone: str = settings.default_timezone
    started_at: datetime = field(default_factory=datetime.utcnow)
    step: int = 1
    email: str = ""
    is_login: bool = False
    otp_sent: bool = False
    sending_otp: bool = False
    verifying_otp: bool = False
    submitting: bool = False
    token: Optional[str] = None
    is_logged_in: bool = False
    personal: PersonalInfo = field(default_factory=PersonalInfo)
    package: SelectedPackage = field(default_factory=SelectedPackage)
    max_sessions: int = 0
    current_month: tuple[int, int] = field(default_factory=_this_month)
    selected_date: Optional[str] = None
    available_slots: List[Slot] = field(default_factory=list)
    sessions: List[SelectedSession] = field(default_factory=list)
    booked: List[BookedSlot] = field(default_factory=list)
    plans: List[Plan] = field(default_factory=list)
    countries: List[CountryOption] = field(default_factory=lambda: list(DEFAULT_COUNTRIES))
    notices: List[Notice] = field(default_factory=list)
    subscription: Optional[dict] = None


@dataclass
class AdminState:
    token: str
    timezone: str = settings.default_timezone
    plans: List[Plan] = field(default_factory=list)
    plan_order: Dict[str, int] = field(default_factory=dict)
    subscriptions: List[dict] = field(default_factory=list)
    users: List[dict] = field(default_factory=list)
    expanded: Dict[str, dict] = field(default_factory=dict)


class InMemoryStore:
    def __init__(self) -> None:
        self.enrollments: Dict[str, EnrollmentState] = {}
        self.admins: Dict[str, AdminState] = {}
        # Plan order overrides outlive a single admin login.
        self.plan_order: Dict[str, int] = {}

    def create_enrollment(self, timezone: str | None = None) -> EnrollmentState:
        enrollment_id = uuid.uuid4().hex
        state = EnrollmentState(enrollment_id=enrollment_id, timezone=timezone or settings.default_timezone)
        self.enrollments[enrollment_id] = state
        return state

    def get_enrollment(self, enrollment_id: str) -> EnrollmentState:
        try:
            return self.enrollments[enrollment_id]
        except KeyError:
            raise NotFoundError(f"Unknown enrollment {enrollment_id}") from None

    def reset_enrollment(self, enrollment_id: str) -> EnrollmentState:
        previous = self.get_enrollment(enrollment_id)
        state = EnrollmentState(
            enrollment_id=enrollment_id,
            timezone=previous.timezone,
            plans=previous.plans,
            countries=previous.countries,
            booked=previous.booked,
        )
        self.enrollments[enrollment_id] = state
        return state

    def add_notice(self, enrollment_id: str, notice: Notice) -> None:
        self.get_enrollment(enrollment_id).notices.append(notice)

    def list_notices(self, enrollment_id: str) -> List[Notice]:
        return self.get_enrollment(enrollment_id).notices

    def admin_state(self, token: str) -> AdminState:
        if token in self.admins:
            return self.admins[token]
        state = AdminState(token=token, plan_order=self.plan_order)
        self.admins[token] = state
        return state

    def drop_admin(self, token: str) -> None:
        self.admins.pop(token, None)


store = InMemoryStore()
