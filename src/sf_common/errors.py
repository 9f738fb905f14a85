"""Unified error codes and custom exceptions.

Every failure that crosses the API boundary is an AppError; the exception
handler in src.main turns it into the ApiResponse envelope.

Taxonomy (base classes):
  AuthorizationError  403  caller lacks the required role / ownership
  ValidationError     422  malformed or missing input
  NotFoundError       404  referenced entity does not exist
  ConflictError       409  precondition violated by current state
  UpstreamError       502  payment or courier provider failed / unreachable
  PersistenceError    500  store write failed

Error code ranges:
  1xxx: Auth/User
  2xxx: Order
  3xxx: Payment
  4xxx: Delivery
  5xxx: Coupon
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- Taxonomy ---

class AuthorizationError(AppError):
    def __init__(self, message: str = "Unauthorized access", code: int = 1006) -> None:
        super().__init__(code, message, 403)


class ValidationError(AppError):
    def __init__(self, message: str, code: int = 9003) -> None:
        super().__init__(code, message, 422)


class NotFoundError(AppError):
    def __init__(self, message: str, code: int = 9004) -> None:
        super().__init__(code, message, 404)


class ConflictError(AppError):
    def __init__(self, message: str, code: int = 9005) -> None:
        super().__init__(code, message, 409)


class UpstreamError(AppError):
    def __init__(self, message: str, code: int = 9006) -> None:
        super().__init__(code, message, 502)


class PersistenceError(AppError):
    def __init__(self, message: str, code: int = 9007) -> None:
        super().__init__(code, message, 500)


# --- 1xxx: Auth/User ---

class EmailExistsError(ConflictError):
    def __init__(self) -> None:
        super().__init__("Email already exists", 1002)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid email or password", 401)


class AccountDisabledError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__("Account is disabled", 1004)


class InvalidRefreshTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired", 401)


class NotAssignedRiderError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__("This order is not assigned to you.", 1007)


# --- 2xxx: Order ---

class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order not found: {order_id}", 2001)


class InvalidStatusTransitionError(ConflictError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move order from {current} to {target}", 2002)


class OrderAlreadyDispatchedError(ConflictError):
    def __init__(self, order_id: str) -> None:
        super().__init__(
            f"Order {order_id} already has a delivery assignment; cancel it first", 2003
        )


class RefundNotAllowedError(ConflictError):
    def __init__(self) -> None:
        super().__init__("Only PAID orders can be refunded", 2004)


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product not found: {product_id}", 2005)


class PaymentStatusLockedError(ConflictError):
    def __init__(self, order_id: str, reason: str) -> None:
        super().__init__(f"Payment status of order {order_id} is locked: {reason}", 2006)


# --- 3xxx: Payment ---

class PaymentMethodUnavailableError(ValidationError):
    def __init__(self, method: str) -> None:
        super().__init__(f"Payment method {method} is not available", 3001)


class PaymentGatewayError(UpstreamError):
    """Raw gateway payloads are logged, never surfaced."""

    def __init__(self) -> None:
        super().__init__("Payment gateway is unavailable, please try again later", 3002)


# --- 4xxx: Delivery ---

class CourierError(UpstreamError):
    """Carries the courier's own error text verbatim."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail, 4001)


class RiderNotFoundError(NotFoundError):
    def __init__(self, rider_id: str) -> None:
        super().__init__(f"Rider not found: {rider_id}", 4002)


# --- 5xxx: Coupon ---

class CouponRejectedError(ValidationError):
    def __init__(self, reason: str) -> None:
        super().__init__(reason, 5001)


class CouponNotFoundError(NotFoundError):
    def __init__(self, coupon_id: str) -> None:
        super().__init__(f"Coupon not found: {coupon_id}", 5002)


class CouponCodeExistsError(ConflictError):
    def __init__(self) -> None:
        super().__init__("This coupon code already exists!", 5003)


class CouponExhaustedError(ConflictError):
    def __init__(self) -> None:
        super().__init__("This promo code has reached its maximum usage limit", 5004)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
