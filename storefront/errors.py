# storefront/errors.py
"""Domain errors raised by services and mapped to HTTP responses in main.py."""
from typing import Any, Optional


class AppError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation failed"


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Could not validate credentials"


class Forbidden(AppError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class OutOfStock(AppError):
    status_code = 400
    default_message = "Insufficient stock"


class EmptyCart(AppError):
    status_code = 400
    default_message = "Cart is empty"


class PaymentNotSucceeded(AppError):
    status_code = 400
    default_message = "Payment not successful"


class InvalidTransition(AppError):
    status_code = 400
    default_message = "Invalid order status transition"


class PaymentAlreadyProcessed(AppError):
    status_code = 409
    default_message = "Payment has already been processed"


class GatewayError(AppError):
    status_code = 502
    default_message = "Payment gateway error"
