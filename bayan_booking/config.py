import os
from typing import Optional

from pydantic import BaseModel


class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "development")
    api_base_url: str = os.getenv("API_URL", "http://localhost:4000/api/v1")
    http_base_url: str = os.getenv("HTTP_BASE_URL", "http://localhost:8000")
    ws_base_url: str = os.getenv("WS_BASE_URL", "ws://localhost:8000")
    request_timeout: float = float(os.getenv("REQUEST_TIMEOUT", "10"))
    default_timezone: str = os.getenv("DEFAULT_TIMEZONE", "Africa/Cairo")
    # "working" (08:00-19:30 Cairo) or "full_day" (00:00-23:30, testing only)
    slot_window: str = os.getenv("SLOT_WINDOW", "working")
    exact_cairo_offset: bool = os.getenv("EXACT_CAIRO_OFFSET", "false").lower() == "true"
    timezonedb_api_key: Optional[str] = os.getenv("TIMEZONEDB_API_KEY")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
