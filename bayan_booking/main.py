from __future__ import annotations

import logging
import os
from dataclasses import asdict
from datetime import date, datetime
from typing import Dict, List, Optional

from dotenv import load_dotenv

from fastapi import FastAPI, Header, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from .api.client import BookingApiClient
from .config import settings
from .errors import AdminAuthError, BookingError
from .geo.countries import country_states, curate_countries
from .geo.regions import timezone_for_region
from .scheduling.slots import (
    FULL_DAY_WINDOW,
    convert_utc_to_user_time,
    resolve_timezone,
    working_slots_for_user,
)
from .schemas import (
    AdminForgotPasswordRequest,
    AdminLoginRequest,
    AdminResetPasswordRequest,
    DateRequest,
    EnrollmentStartResponse,
    Notice,
    OtpRequest,
    OtpVerifyRequest,
    PackageRequest,
    PaymentConfirmRequest,
    PersonalUpdate,
    PlanMoveRequest,
    SessionToggleRequest,
    TimezoneRequest,
)
from .services.admin import AdminService
from .services.enrollment import EnrollmentService
from .store import EnrollmentState, store

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


configure_logging()

app = FastAPI(title="Bayan Booking API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ConnectionManager:
    def __init__(self) -> None:
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, enrollment_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.setdefault(enrollment_id, []).append(websocket)

    def disconnect(self, enrollment_id: str, websocket: WebSocket) -> None:
        self.active_connections[enrollment_id].remove(websocket)

    async def broadcast(self, enrollment_id: str, payload: dict) -> None:
        for websocket in list(self.active_connections.get(enrollment_id, [])):
            await websocket.send_json(payload)


manager = ConnectionManager()


async def _publish_notice(enrollment_id: str, notice: Notice) -> None:
    await manager.broadcast(enrollment_id, {"type": "notice", "payload": notice.model_dump(mode="json")})


api = BookingApiClient()
enrollment_service = EnrollmentService(api, store, publish=_publish_notice)
admin_service = AdminService(api, store)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


def _bearer(authorization: Optional[str]) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise AdminAuthError("Authentication required")
    return authorization[7:].strip()


def _view(state: EnrollmentState) -> dict:
    return {
        "enrollment_id": state.enrollment_id,
        "step": state.step,
        "email": state.email,
        "is_login": state.is_login,
        "otp_sent": state.otp_sent,
        "is_logged_in": state.is_logged_in,
        "timezone": state.timezone,
        "personal": state.personal.model_dump(),
        "package": state.package.model_dump(),
        "max_sessions": state.max_sessions,
        "selected_date": state.selected_date,
        "sessions": [s.to_api() for s in state.sessions],
        "subscription": state.subscription,
    }


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


# Slots and regions


@app.get("/slots")
async def list_slots(
    day: date = Query(alias="date"),
    timezone: Optional[str] = None,
    full_day: bool = False,
) -> dict:
    tz_name = resolve_timezone(timezone)
    window = FULL_DAY_WINDOW if full_day else None
    slots = working_slots_for_user(day, tz_name, window=window)
    return {"date": day.isoformat(), "timezone": tz_name, "slots": [asdict(slot) for slot in slots]}


@app.get("/slots/convert")
async def convert_slot(utc: str, timezone: str) -> dict:
    return {"utc": utc, "timezone": timezone, "time": convert_utc_to_user_time(utc, timezone)}


@app.get("/regions/countries")
async def list_countries() -> list[dict]:
    result = await api.get_countries()
    options = curate_countries(result.countries if result.success else None)
    return [asdict(option) for option in options]


@app.get("/regions/timezone")
async def region_timezone(country: str, region: Optional[str] = None) -> dict:
    return {"country": country, "region": region, "timezone": timezone_for_region(country, region)}


@app.get("/regions/{country}/states")
async def list_states(country: str) -> list[dict]:
    return [asdict(state) for state in country_states(country)]


# Enrollment wizard


@app.post("/enrollment/start", response_model=EnrollmentStartResponse)
async def start_enrollment(timezone: Optional[str] = None) -> EnrollmentStartResponse:
    state = await enrollment_service.start(timezone)
    logger.info("enrollment_started enrollment=%s timezone=%s", state.enrollment_id, state.timezone)
    return EnrollmentStartResponse(
        enrollment_id=state.enrollment_id,
        ws_url=f"{settings.ws_base_url}/enrollment/{state.enrollment_id}/events",
    )


@app.get("/enrollment/{enrollment_id}")
async def get_enrollment(enrollment_id: str) -> dict:
    return _view(store.get_enrollment(enrollment_id))


@app.get("/enrollment/{enrollment_id}/notices", response_model=list[Notice])
async def get_notices(enrollment_id: str) -> list[Notice]:
    return store.list_notices(enrollment_id)


@app.post("/enrollment/{enrollment_id}/otp")
async def send_otp(enrollment_id: str, payload: OtpRequest) -> dict:
    state = store.get_enrollment(enrollment_id)
    await enrollment_service.send_otp(state, payload.email, login=payload.login)
    return _view(state)


@app.post("/enrollment/{enrollment_id}/otp/verify")
async def verify_otp(enrollment_id: str, payload: OtpVerifyRequest) -> dict:
    state = store.get_enrollment(enrollment_id)
    await enrollment_service.verify_otp(state, payload.otp)
    return _view(state)


@app.patch("/enrollment/{enrollment_id}/personal")
async def update_personal(enrollment_id: str, payload: PersonalUpdate) -> dict:
    state = store.get_enrollment(enrollment_id)
    await enrollment_service.update_personal(state, payload)
    return _view(state)


@app.post("/enrollment/{enrollment_id}/personal")
async def submit_personal(enrollment_id: str) -> dict:
    state = store.get_enrollment(enrollment_id)
    await enrollment_service.submit_personal(state)
    return _view(state)


@app.get("/enrollment/{enrollment_id}/plans")
async def list_plans(enrollment_id: str) -> list[dict]:
    state = store.get_enrollment(enrollment_id)
    plans = await enrollment_service.load_plans(state)
    return [plan.to_api() for plan in plans]


@app.post("/enrollment/{enrollment_id}/package")
async def select_package(enrollment_id: str, payload: PackageRequest) -> dict:
    state = store.get_enrollment(enrollment_id)
    package = await enrollment_service.select_package(state, payload.plan_id)
    return package.model_dump()


@app.post("/enrollment/{enrollment_id}/package/confirm")
async def confirm_package(enrollment_id: str) -> dict:
    state = store.get_enrollment(enrollment_id)
    await enrollment_service.confirm_package(state)
    return _view(state)


@app.get("/enrollment/{enrollment_id}/calendar")
async def get_calendar(
    enrollment_id: str,
    year: Optional[int] = None,
    month: Optional[int] = Query(default=None, ge=1, le=12),
) -> dict:
    state = store.get_enrollment(enrollment_id)
    return asdict(enrollment_service.calendar(state, year, month))


@app.post("/enrollment/{enrollment_id}/calendar/{direction}")
async def change_month(enrollment_id: str, direction: str) -> dict:
    state = store.get_enrollment(enrollment_id)
    if direction not in ("next", "prev"):
        raise ValueError(f"Unknown direction: {direction}")
    return asdict(enrollment_service.change_month(state, 1 if direction == "next" else -1))


@app.post("/enrollment/{enrollment_id}/date")
async def select_date(enrollment_id: str, payload: DateRequest) -> list[dict]:
    state = store.get_enrollment(enrollment_id)
    views = await enrollment_service.select_date(state, payload.date)
    return [view.as_dict() for view in views]


@app.get("/enrollment/{enrollment_id}/slots")
async def get_slot_views(enrollment_id: str) -> list[dict]:
    state = store.get_enrollment(enrollment_id)
    return [view.as_dict() for view in enrollment_service.slot_views(state)]


@app.post("/enrollment/{enrollment_id}/sessions")
async def toggle_session(enrollment_id: str, payload: SessionToggleRequest) -> dict:
    state = store.get_enrollment(enrollment_id)
    result = await enrollment_service.toggle_session(state, payload.date, payload.time, payload.starts_at_utc)
    return {
        "accepted": result.accepted,
        "removed": result.removed,
        "message": result.message,
        "sessions": [s.to_api() for s in result.sessions],
    }


@app.post("/enrollment/{enrollment_id}/submit")
async def submit_enrollment(enrollment_id: str) -> dict:
    state = store.get_enrollment(enrollment_id)
    subscription = await enrollment_service.submit(state)
    return {"subscription": subscription, "summary": enrollment_service.summary(state)}


@app.get("/enrollment/{enrollment_id}/summary")
async def get_summary(enrollment_id: str) -> dict:
    state = store.get_enrollment(enrollment_id)
    return {"summary": enrollment_service.summary(state)}


@app.post("/enrollment/{enrollment_id}/back")
async def previous_step(enrollment_id: str) -> dict:
    state = store.get_enrollment(enrollment_id)
    enrollment_service.previous_step(state)
    return _view(state)


@app.post("/enrollment/{enrollment_id}/reset")
async def reset_enrollment(enrollment_id: str) -> dict:
    state = enrollment_service.reset(store.get_enrollment(enrollment_id))
    await manager.broadcast(enrollment_id, {"type": "reset", "payload": {"enrollment_id": enrollment_id}})
    return _view(state)


@app.websocket("/enrollment/{enrollment_id}/events")
async def enrollment_events(enrollment_id: str, websocket: WebSocket) -> None:
    await manager.connect(enrollment_id, websocket)
    await manager.broadcast(
        enrollment_id,
        {
            "type": "status",
            "payload": {"enrollment_id": enrollment_id, "state": "connected"},
        },
    )
    try:
        while True:
            message = await websocket.receive_json()
            if message.get("type") == "ping":
                await websocket.send_json({"type": "pong", "payload": {"at": datetime.utcnow().isoformat()}})
    except WebSocketDisconnect:
        manager.disconnect(enrollment_id, websocket)


# Admin dashboard


@app.post("/admin/login")
async def admin_login(payload: AdminLoginRequest) -> dict:
    state = await admin_service.login(payload.email, payload.password)
    return {"token": state.token, "timezone": state.timezone}


@app.post("/admin/logout")
async def admin_logout(authorization: Optional[str] = Header(default=None)) -> dict:
    admin_service.logout(_bearer(authorization))
    return {"status": "ok"}


@app.post("/admin/password/forgot")
async def admin_forgot_password(payload: AdminForgotPasswordRequest) -> dict:
    return {"message": await admin_service.forgot_password(payload.email)}


@app.post("/admin/password/reset")
async def admin_reset_password(payload: AdminResetPasswordRequest) -> dict:
    message = await admin_service.reset_password(
        payload.password, email=payload.email, otp=payload.otp, token=payload.token
    )
    return {"message": message}


@app.put("/admin/timezone")
async def admin_timezone(payload: TimezoneRequest, authorization: Optional[str] = Header(default=None)) -> dict:
    state = admin_service.change_timezone(_bearer(authorization), payload.timezone)
    return {"timezone": state.timezone}


@app.get("/admin/subscriptions")
async def admin_subscriptions(
    status: Optional[str] = None,
    user_email: Optional[str] = None,
    display_country: Optional[str] = None,
    page: Optional[int] = Query(default=None, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    authorization: Optional[str] = Header(default=None),
) -> list[dict]:
    filters = {"status": status, "user_email": user_email, "display_country": display_country, "page": page}
    if limit is not None:
        filters["limit"] = limit
    return await admin_service.subscriptions(_bearer(authorization), **filters)


@app.get("/admin/subscriptions/{subscription_id}")
async def admin_subscription_detail(
    subscription_id: str, authorization: Optional[str] = Header(default=None)
) -> dict:
    return await admin_service.subscription_detail(_bearer(authorization), subscription_id)


@app.delete("/admin/subscriptions/{subscription_id}/detail")
async def admin_collapse_subscription(
    subscription_id: str, authorization: Optional[str] = Header(default=None)
) -> dict:
    admin_service.collapse(_bearer(authorization), subscription_id)
    return {"status": "ok"}


@app.delete("/admin/subscriptions/{subscription_id}")
async def admin_delete_subscription(
    subscription_id: str, authorization: Optional[str] = Header(default=None)
) -> dict:
    await admin_service.delete_subscription(_bearer(authorization), subscription_id)
    return {"status": "deleted"}


@app.post("/admin/subscriptions/{subscription_id}/confirm-payment")
async def admin_confirm_payment(
    subscription_id: str,
    payload: PaymentConfirmRequest,
    authorization: Optional[str] = Header(default=None),
) -> dict:
    return await admin_service.confirm_payment(
        _bearer(authorization), subscription_id, payload.payment_reference
    )


@app.get("/admin/users")
async def admin_users(
    search: Optional[str] = None, authorization: Optional[str] = Header(default=None)
) -> list[dict]:
    return await admin_service.users(_bearer(authorization), search=search)


@app.delete("/admin/users/{user_id}")
async def admin_delete_user(user_id: str, authorization: Optional[str] = Header(default=None)) -> dict:
    await admin_service.delete_user(_bearer(authorization), user_id)
    return {"status": "deleted"}


@app.get("/admin/plans")
async def admin_plans(authorization: Optional[str] = Header(default=None)) -> list[dict]:
    plans = await admin_service.plans(_bearer(authorization))
    return [plan.to_api() for plan in plans]


@app.post("/admin/plans")
async def admin_create_plan(form: dict, authorization: Optional[str] = Header(default=None)) -> dict:
    plan = await admin_service.save_plan(_bearer(authorization), form)
    return plan.to_api()


@app.put("/admin/plans/{plan_id}")
async def admin_update_plan(
    plan_id: str, form: dict, authorization: Optional[str] = Header(default=None)
) -> dict:
    plan = await admin_service.save_plan(_bearer(authorization), form, plan_id=plan_id)
    return plan.to_api()


@app.delete("/admin/plans/{plan_id}")
async def admin_delete_plan(plan_id: str, authorization: Optional[str] = Header(default=None)) -> dict:
    await admin_service.delete_plan(_bearer(authorization), plan_id)
    return {"status": "deleted"}


@app.post("/admin/plans/move")
async def admin_move_plan(payload: PlanMoveRequest, authorization: Optional[str] = Header(default=None)) -> dict:
    plans, warning = await admin_service.move_plan(_bearer(authorization), payload.from_index, payload.to_index)
    return {"plans": [plan.to_api() for plan in plans], "warning": warning}


def run() -> None:
    import uvicorn

    uvicorn.run("bayan_booking.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
