from typing import List, Optional

from ..errors import NotFound
from ..models.delivery import Delivery
from ..models.order import Order, OrderItem
from ..models.payment import Payment
from ..utils.dto import OrderSnapshot


def order_row(session, order_id: str) -> Order:
    if not order_id:
        raise NotFound("order", str(order_id))
    row = session.get(Order, order_id)
    if row is None:
        raise NotFound("order", order_id)
    return row


def delivery_row(session, delivery_id: str) -> Delivery:
    row = session.get(Delivery, delivery_id) if delivery_id else None
    if row is None:
        raise NotFound("delivery", str(delivery_id))
    return row


def delivery_for_order(session, order_id: str) -> Optional[Delivery]:
    return session.query(Delivery).filter(Delivery.order_id == order_id).first()


def ledger_rows(session, order_id: str) -> List[Payment]:
    return (
        session.query(Payment)
        .filter(Payment.order_id == order_id)
        .order_by(Payment.sequence.asc())
        .all()
    )


def load_order_snapshot(session, order_id: str) -> OrderSnapshot:
    """Fresh snapshot of an order with its items, delivery and ledger."""
    session.flush()
    session.expire_all()
    order = order_row(session, order_id)
    items = (
        session.query(OrderItem)
        .filter(OrderItem.order_id == order_id)
        .order_by(OrderItem.position.asc())
        .all()
    )
    return OrderSnapshot.from_row(
        order,
        items=items,
        delivery=delivery_for_order(session, order_id),
        payments=ledger_rows(session, order_id),
    )
