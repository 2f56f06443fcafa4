from __future__ import annotations


class BookingError(Exception):
    """Base error for enrollment and dashboard operations."""

    status_code = 400


class EnrollmentError(BookingError):
    """Raised when a wizard step is rejected."""


class AdminAuthError(BookingError):
    """Raised when the remote API rejects the admin token."""

    status_code = 401


class NotFoundError(BookingError):
    """Raised for unknown enrollment sessions or dashboard rows."""

    status_code = 404
