"""Exceptions raised by the order core.

Every error carries the context a caller needs to render a message
(current state, attempted target, numeric bounds) through ``to_dict``.
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, Optional


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_plain(v) for v in value]
    return value


class OrderDeskError(Exception):
    """Base exception for all order core errors."""

    code = "order_desk_error"
    http_status = 400

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = context
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload = {"error": self.code, "message": self.message}
        payload.update({k: _plain(v) for k, v in self.context.items()})
        return payload


class NotFound(OrderDeskError):
    """Raised when a record addressed by identifier does not exist."""

    code = "not_found"
    http_status = 404

    def __init__(self, entity: str, identifier: str):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} {identifier} not found", entity=entity, id=identifier)


class InvalidTransition(OrderDeskError):
    """Raised when a status change is not an edge of the state machine."""

    code = "invalid_transition"
    http_status = 409

    def __init__(self, entity: str, current: str, target: str, allowed: Optional[Iterable[str]] = None):
        self.entity = entity
        self.current = current
        self.target = target
        self.allowed = sorted(allowed or [])
        super().__init__(
            f"Cannot move {entity} from '{current}' to '{target}'",
            entity=entity,
            current=current,
            target=target,
            allowed=self.allowed,
        )


class InvalidAmount(OrderDeskError):
    """Raised when a monetary amount is zero, negative or otherwise unusable."""

    code = "invalid_amount"
    http_status = 400

    def __init__(self, amount: Any, reason: str = "amount must be greater than 0", **context: Any):
        self.amount = amount
        super().__init__(f"Invalid amount {amount}: {reason}", amount=amount, **context)


class RefundExceedsCaptured(OrderDeskError):
    """Raised when a refund would push cumulative refunds above the order total."""

    code = "refund_exceeds_captured"
    http_status = 409

    def __init__(self, amount: Decimal, total: Decimal, refunded: Decimal):
        self.amount = amount
        self.total = total
        self.refunded = refunded
        self.remaining = total - refunded
        super().__init__(
            f"Refund of {amount} exceeds remaining refundable amount {self.remaining}",
            amount=amount,
            total=total,
            refunded=refunded,
            remaining=self.remaining,
        )


class CouponIneligible(OrderDeskError):
    """Raised when a coupon is unknown, inactive, or below its minimum order value."""

    code = "coupon_ineligible"
    http_status = 422

    def __init__(self, code: str, reason: str, **context: Any):
        self.coupon_code = code
        self.reason = reason
        super().__init__(f"Coupon {code} cannot be applied: {reason}", code_applied=code, reason=reason, **context)


class InsufficientStock(OrderDeskError):
    """Raised when a requested quantity exceeds the product's stock."""

    code = "insufficient_stock"
    http_status = 409

    def __init__(self, product_id: str, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Only {available} left in stock for product {product_id}, requested {requested}",
            product_id=product_id,
            requested=requested,
            available=available,
        )


class RemoteWriteFailure(OrderDeskError):
    """Raised when the underlying store rejects a read or write."""

    code = "remote_write_failure"
    http_status = 503

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Store rejected the operation: {detail}", detail=detail)
