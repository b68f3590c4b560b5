"""Order, payment and delivery status state machines.

Orders move forward one step at a time along ``ORDER_FLOW``; ``cancelled``
and ``returned`` can be entered from any status that is not terminal.
Nothing leaves ``delivered``, ``cancelled`` or ``returned``.

Deliveries may jump ahead along ``DELIVERY_FLOW`` and can fail from any
non-terminal status.
"""

from enum import Enum
from typing import Dict, FrozenSet, Union

from ..errors import InvalidTransition


class OrderStatus(str, Enum):
    NEW = "new"
    CONFIRMED = "confirmed"
    PACKED = "packed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    PARTIALLY_REFUNDED = "partially_refunded"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    ONLINE = "online"
    COD = "cod"


ORDER_FLOW = (
    OrderStatus.NEW,
    OrderStatus.CONFIRMED,
    OrderStatus.PACKED,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)
ORDER_EXITS = frozenset({OrderStatus.CANCELLED, OrderStatus.RETURNED})
ORDER_TERMINAL = frozenset({OrderStatus.DELIVERED}) | ORDER_EXITS


def _order_edges() -> Dict[OrderStatus, FrozenSet[OrderStatus]]:
    edges = {}
    for status in OrderStatus:
        if status in ORDER_TERMINAL:
            edges[status] = frozenset()
            continue
        nxt = ORDER_FLOW[ORDER_FLOW.index(status) + 1]
        edges[status] = frozenset({nxt}) | ORDER_EXITS
    return edges


ORDER_TRANSITIONS = _order_edges()

# Manual / gateway payment status changes. Refund statuses are only reached
# through RefundLedger.refund.
PAYMENT_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PAID, PaymentStatus.FAILED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PAID, PaymentStatus.PENDING}),
    PaymentStatus.PAID: frozenset(),
    PaymentStatus.PARTIALLY_REFUNDED: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
}


def parse_order_status(value: Union[str, OrderStatus]) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValueError(f"Unknown order status: {value}") from None


def parse_payment_status(value: Union[str, PaymentStatus]) -> PaymentStatus:
    try:
        return PaymentStatus(value)
    except ValueError:
        raise ValueError(f"Unknown payment status: {value}") from None


def parse_payment_method(value: Union[str, PaymentMethod, None]) -> PaymentMethod:
    if isinstance(value, PaymentMethod):
        return value
    try:
        return PaymentMethod((value or PaymentMethod.ONLINE.value).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown payment method: {value}") from None


def ensure_order_transition(current: Union[str, OrderStatus], target: Union[str, OrderStatus]) -> OrderStatus:
    """Return the parsed target status, or raise ``InvalidTransition``."""
    cur = parse_order_status(current)
    tgt = parse_order_status(target)
    allowed = ORDER_TRANSITIONS[cur]
    if tgt not in allowed:
        raise InvalidTransition("order", cur.value, tgt.value, [s.value for s in allowed])
    return tgt


def ensure_payment_transition(current: Union[str, PaymentStatus], target: Union[str, PaymentStatus]) -> PaymentStatus:
    cur = parse_payment_status(current)
    tgt = parse_payment_status(target)
    allowed = PAYMENT_TRANSITIONS[cur]
    if tgt not in allowed:
        raise InvalidTransition("payment", cur.value, tgt.value, [s.value for s in allowed])
    return tgt


class DeliveryStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    PICKED = "picked"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    FAILED = "failed"


DELIVERY_FLOW = (
    DeliveryStatus.PENDING,
    DeliveryStatus.ASSIGNED,
    DeliveryStatus.PICKED,
    DeliveryStatus.IN_TRANSIT,
    DeliveryStatus.DELIVERED,
)
DELIVERY_TERMINAL = frozenset({DeliveryStatus.DELIVERED, DeliveryStatus.FAILED})


def _delivery_edges() -> Dict[DeliveryStatus, FrozenSet[DeliveryStatus]]:
    # deliveries may skip ahead (pending -> delivered), never go back
    edges = {}
    for status in DeliveryStatus:
        if status in DELIVERY_TERMINAL:
            edges[status] = frozenset()
            continue
        ahead = DELIVERY_FLOW[DELIVERY_FLOW.index(status) + 1:]
        edges[status] = frozenset(ahead) | {DeliveryStatus.FAILED}
    return edges


DELIVERY_TRANSITIONS = _delivery_edges()


def parse_delivery_status(value: Union[str, DeliveryStatus]) -> DeliveryStatus:
    try:
        return DeliveryStatus(value)
    except ValueError:
        raise ValueError(f"Unknown delivery status: {value}") from None


def ensure_delivery_transition(current: Union[str, DeliveryStatus], target: Union[str, DeliveryStatus]) -> DeliveryStatus:
    cur = parse_delivery_status(current)
    tgt = parse_delivery_status(target)
    allowed = DELIVERY_TRANSITIONS[cur]
    if tgt not in allowed:
        raise InvalidTransition("delivery", cur.value, tgt.value, [s.value for s in allowed])
    return tgt


def delivery_progress(status: Union[str, DeliveryStatus]) -> float:
    """Position on the delivery flow as a fraction; ``delivered`` is 1.0, ``failed`` 0.0."""
    st = parse_delivery_status(status)
    if st not in DELIVERY_FLOW:
        return 0.0
    return (DELIVERY_FLOW.index(st) + 1) / len(DELIVERY_FLOW)
