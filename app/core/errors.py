# app/core/errors.py
"""
Application error hierarchy.

Services raise these; `app.main` translates them once into the
`{"error": ..., "code": ...}` payload consumed by the dashboard and the
delivery app. The `code` strings are part of the public contract.
"""

from fastapi import status


class AppError(Exception):
    """Base error carrying an HTTP status and a machine-readable code."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)


# ---- Not found ----


class OrderNotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "ORDER_NOT_FOUND"
    message = "Order not found"


class DriverNotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "DELIVERY_PERSON_NOT_FOUND"
    message = "Delivery person not found"


class DeliveryOrderNotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "DELIVERY_ORDER_NOT_FOUND"
    message = "Delivery order not found"


# ---- Preconditions / conflicts ----


class InvalidTransition(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "ORDER_INVALID_TRANSITION"

    def __init__(self, current: str, target: str, message: str | None = None):
        self.current = current
        self.target = target
        super().__init__(
            message or f"Invalid status transition: {current} -> {target}"
        )


class DuplicateAssignment(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "DELIVERY_ALREADY_ASSIGNED"
    message = "Order already has a delivery assigned"


class AlreadyDelivered(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "DELIVERY_ALREADY_DELIVERED"
    message = "This order was already delivered"


class DeliveryNotActive(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "DELIVERY_NOT_ACTIVE"
    message = "This delivery is no longer active"


class DriverUnavailable(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "DELIVERY_PERSON_UNAVAILABLE"
    message = "Delivery person is not available"


class AlreadyRated(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "DELIVERY_ALREADY_RATED"
    message = "This delivery was already rated"


# ---- OTP ----


class OtpInvalid(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "DELIVERY_OTP_INVALID"
    message = "Incorrect delivery code"


class OtpLocked(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "DELIVERY_OTP_LOCKED"
    message = "Too many incorrect codes for this delivery"


class OtpExpired(AppError):
    status_code = status.HTTP_410_GONE
    code = "DELIVERY_OTP_EXPIRED"
    message = "Delivery code has expired"


# ---- Access ----


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    message = "Authentication required"


class DeliveryForbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "DELIVERY_FORBIDDEN"
    message = "This delivery does not belong to this delivery person"
