from decimal import Decimal
from typing import Optional
from uuid import uuid4

from ..db.session import get_session
from ..errors import NotFound
from ..models.delivery import Delivery
from ..models.order import Order
from ..utils.clock import utcnow
from ..utils.dto import DeliverySnapshot
from .lifecycle import (
    DeliveryStatus,
    PaymentMethod,
    PaymentStatus,
    ensure_delivery_transition,
)
from .logging import log_event
from .queries import delivery_for_order, delivery_row, ledger_rows, order_row
from .refund_ledger import RefundLedger

TRACKING_FIELDS = ("partner_name", "tracking_number", "tracking_url")


def _cash_captured(session, order_id: str) -> bool:
    return any(
        e.method == PaymentMethod.COD.value and e.status == PaymentStatus.PAID.value
        for e in ledger_rows(session, order_id)
    )


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class DeliveryService:
    """Courier tracking for confirmed orders."""

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    @staticmethod
    def create_for_order(session, order: Order) -> Delivery:
        """Return the order's delivery, creating it on first call.

        COD terms are copied from the order here and never change afterwards.
        """
        existing = delivery_for_order(session, order.id)
        if existing is not None:
            return existing
        is_cod = order.payment_method == PaymentMethod.COD.value
        now = utcnow()
        delivery = Delivery(
            id=str(uuid4()),
            order_id=order.id,
            status=DeliveryStatus.PENDING.value,
            is_cod=is_cod,
            cod_amount=order.total if is_cod else Decimal("0"),
            cod_collected=False,
            created_at=now,
            updated_at=now,
        )
        session.add(delivery)
        session.flush()
        log_event("info", "delivery.created", order_id=order.id, delivery_id=delivery.id, is_cod=is_cod)
        return delivery

    def create_delivery(self, order_id: str) -> DeliverySnapshot:
        with self._session_factory() as session:
            order = order_row(session, order_id)
            return DeliverySnapshot.from_row(self.create_for_order(session, order))

    def get_delivery(self, delivery_id: str) -> DeliverySnapshot:
        with self._session_factory() as session:
            return DeliverySnapshot.from_row(delivery_row(session, delivery_id))

    def get_for_order(self, order_id: str) -> DeliverySnapshot:
        with self._session_factory() as session:
            order_row(session, order_id)
            row = delivery_for_order(session, order_id)
            if row is None:
                raise NotFound("delivery for order", order_id)
            return DeliverySnapshot.from_row(row)

    def update(self, delivery_id: str, *, status=None, **fields) -> DeliverySnapshot:
        """Change status and/or tracking fields in one write.

        Only the tracking fields are free text; COD terms are fixed and
        ``cod_collected`` has its own operation.
        """
        unknown = sorted(set(fields) - set(TRACKING_FIELDS))
        if unknown:
            raise ValueError(f"Cannot update delivery fields: {', '.join(unknown)}")
        with self._session_factory() as session:
            delivery = delivery_row(session, delivery_id)
            previous = delivery.status
            now = utcnow()
            if status is not None:
                target = ensure_delivery_transition(delivery.status, status)
                delivery.status = target.value
                if target is DeliveryStatus.DELIVERED:
                    delivery.delivered_at = now
            for name, value in fields.items():
                setattr(delivery, name, _clean(value))
            delivery.updated_at = now
            session.flush()
            if status is not None:
                log_event(
                    "info",
                    "delivery.status_changed",
                    delivery_id=delivery_id,
                    order_id=delivery.order_id,
                    previous=previous,
                    status=delivery.status,
                )
            return DeliverySnapshot.from_row(delivery)

    def update_status(self, delivery_id: str, status) -> DeliverySnapshot:
        return self.update(delivery_id, status=status)

    def update_tracking(self, delivery_id: str, **fields) -> DeliverySnapshot:
        return self.update(delivery_id, **fields)

    def set_cod_collected(self, delivery_id: str, collected: bool) -> DeliverySnapshot:
        """Flip the cash-collected flag; collecting cash also records the COD capture."""
        with self._session_factory() as session:
            delivery = delivery_row(session, delivery_id)
            if not delivery.is_cod:
                raise ValueError("delivery is not cash on delivery")
            collected = bool(collected)
            if not collected and delivery.cod_collected and _cash_captured(session, delivery.order_id):
                raise ValueError("cash collection is already recorded in the payment ledger")
            if collected and delivery.status != DeliveryStatus.DELIVERED.value:
                # collection is not gated on delivery status, only logged
                log_event(
                    "warning",
                    "delivery.cod_collected_before_delivery",
                    delivery_id=delivery_id,
                    status=delivery.status,
                )
            delivery.cod_collected = collected
            delivery.updated_at = utcnow()
            if collected:
                order = order_row(session, delivery.order_id)
                if order.payment_status in (PaymentStatus.PENDING.value, PaymentStatus.FAILED.value):
                    RefundLedger.apply_payment_status(
                        session,
                        order,
                        PaymentStatus.PAID,
                        amount=delivery.cod_amount,
                        method=PaymentMethod.COD.value,
                    )
            session.flush()
            return DeliverySnapshot.from_row(delivery)
