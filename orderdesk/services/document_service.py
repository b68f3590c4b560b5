"""Payloads for the external invoice / delivery challan generator.

The generator only lays out what it is given, so payloads are built from a
fully committed order snapshot and refused when its totals do not add up.
"""

from typing import Any, Dict

from ..db.session import get_session
from ..settings import StoreInfo
from ..utils.dto import OrderSnapshot
from ..utils.money import ZERO, money
from .queries import load_order_snapshot
from .refund_ledger import captured_total
from .settings_service import SettingsService

DOCUMENT_KINDS = ("invoice", "challan")


def ensure_complete(order: OrderSnapshot) -> None:
    if not order.totals_consistent():
        raise ValueError(f"order {order.order_number} totals are inconsistent")
    items_total = sum((i.total for i in order.items), ZERO)
    if not order.items or items_total != order.subtotal:
        raise ValueError(f"order {order.order_number} items do not add up to its subtotal")


class DocumentService:
    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    def _load(self, order_id: str):
        with self._session_factory() as session:
            order = load_order_snapshot(session, order_id)
            store: StoreInfo = SettingsService.load(session, StoreInfo.KEY)
        ensure_complete(order)
        return order, store

    def build(self, kind: str, order_id: str) -> Dict[str, Any]:
        if kind == "invoice":
            return self.invoice(order_id)
        if kind == "challan":
            return self.challan(order_id)
        raise ValueError(f"Unknown document kind: {kind}")

    def invoice(self, order_id: str) -> Dict[str, Any]:
        order, store = self._load(order_id)
        return {
            "kind": "invoice",
            "store": store.to_dict(),
            "order_number": order.order_number,
            "order_date": order.created_at.isoformat() if order.created_at else None,
            "status": order.status,
            "payment_status": order.payment_status,
            "payment_method": order.payment_method,
            "currency": order.currency,
            "bill_to": dict(order.shipping_address),
            "items": [i.to_dict() for i in order.items],
            "subtotal": money(order.subtotal),
            "discount": money(order.discount),
            "coupon_code": order.coupon_code,
            "shipping_charge": money(order.shipping_charge),
            "total": money(order.total),
            "amount_paid": money(captured_total(order.payments)),
            "refunded": money(order.refunded_amount),
        }

    def challan(self, order_id: str) -> Dict[str, Any]:
        order, store = self._load(order_id)
        delivery = order.delivery
        if delivery is None:
            raise ValueError(f"order {order.order_number} has no delivery yet")
        return {
            "kind": "challan",
            "store": store.to_dict(),
            "order_number": order.order_number,
            "ship_to": dict(order.shipping_address),
            "items": [
                {"product_name": i.product_name, "variant_name": i.variant_name, "sku": i.sku, "quantity": i.quantity}
                for i in order.items
            ],
            "partner_name": delivery.partner_name,
            "tracking_number": delivery.tracking_number,
            "is_cod": delivery.is_cod,
            "cod_amount": money(delivery.cod_amount) if delivery.is_cod else None,
        }
