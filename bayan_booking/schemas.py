from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EnrollmentStartResponse(BaseModel):
    enrollment_id: str
    ws_url: str


class Notice(BaseModel):
    id: str
    kind: Literal["success", "error", "info"]
    message: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class Plan(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    mongo_id: Optional[str] = Field(default=None, alias="_id")
    id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    sessions: Optional[int] = None
    sessions_per_month: Optional[int] = None
    sessions_per_week: Optional[int] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    duration: Optional[int] = None
    is_active: Optional[bool] = None
    price_per_session: Optional[float] = None
    order: Optional[int] = None
    badge: Optional[str] = None

    @property
    def plan_id(self) -> str:
        return str(self.mongo_id or self.id or "")

    def to_api(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class PersonalInfo(BaseModel):
    first_name: str = ""
    last_name: str = ""
    gender: Literal["Male", "Female", ""] = ""
    email: str = ""
    country: str = ""
    region: str = ""
    phone: str = ""


class SelectedPackage(BaseModel):
    name: str = ""
    type: str = ""
    sessions: int = 0
    sessions_per_week: int = 2
    plan_id: Optional[str] = None


class OtpRequest(BaseModel):
    email: str
    login: bool = False


class OtpVerifyRequest(BaseModel):
    otp: str


class PersonalUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    gender: Optional[Literal["Male", "Female", ""]] = None
    country: Optional[str] = None
    region: Optional[str] = None
    phone: Optional[str] = None


class PackageRequest(BaseModel):
    plan_id: str


class DateRequest(BaseModel):
    date: str


class SessionToggleRequest(BaseModel):
    date: str
    time: str
    starts_at_utc: Optional[str] = None


class AdminLoginRequest(BaseModel):
    email: str
    password: str


class AdminForgotPasswordRequest(BaseModel):
    email: str


class AdminResetPasswordRequest(BaseModel):
    email: Optional[str] = None
    otp: Optional[str] = None
    token: Optional[str] = None
    password: str


class PaymentConfirmRequest(BaseModel):
    payment_reference: Optional[str] = None


class PlanMoveRequest(BaseModel):
    from_index: int
    to_index: int


class TimezoneRequest(BaseModel):
    timezone: str
