from __future__ import annotations

import uuid
from datetime import datetime

from ..schemas import Notice


def build_notice(message: str, kind: str = "info") -> Notice:
    return Notice(
        id=uuid.uuid4().hex,
        kind=kind,
        message=message,
        timestamp=datetime.utcnow(),
    )


def success(message: str) -> Notice:
    return build_notice(message, kind="success")


def error(message: str) -> Notice:
    return build_notice(message, kind="error")


def info(message: str) -> Notice:
    return build_notice(message, kind="info")


def subscription_error_message(error_text: str | None) -> str:
    if not error_text:
        return "An unexpected error occurred. Please try again."
    lowered = error_text.lower()
    if "already have an active subscription" in lowered:
        return (
            "You already have an active subscription to this plan! "
            "Contact support to modify your subscription or choose a different plan."
        )
    if "plan not found" in lowered:
        return "Selected plan is not available. Please choose another plan."
    if "insufficient" in lowered:
        return "Payment issue. Please check your payment details."
    if "network" in lowered or "connection" in lowered:
        return "Network issue. Please check your connection and try again."
    return f"Failed to create subscription: {error_text}"


def mask_email(email: str) -> str:
    local, _, domain = email.partition("@")
    if not domain or len(local) < 2:
        return email
    return f"{local[0]}***@{domain}"
