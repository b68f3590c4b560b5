from typing import Dict, Optional
from uuid import uuid4

from ..db.session import get_session
from ..errors import InvalidAmount
from ..models.order import Order, OrderItem
from ..settings import CheckoutSettings
from ..utils.clock import utcnow
from ..utils.dto import OrderSnapshot
from ..utils.money import money
from ..utils.pagination import normalize_paging
from ..utils.validators import validate_shipping_address
from .cart_service import cart_rows, cart_totals, check_stock, lookup_coupon
from .delivery_service import DeliveryService
from .lifecycle import (
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ensure_order_transition,
    parse_order_status,
    parse_payment_method,
)
from .logging import log_event
from .pricing import check_coupon
from .queries import load_order_snapshot, order_row
from .settings_service import SettingsService


def new_order_number(now=None) -> str:
    now = now or utcnow()
    return f"ORD-{now:%Y%m%d}-{uuid4().hex[:6].upper()}"


class OrderService:
    """Order placement, reads and status transitions backed by DB."""

    def __init__(self, session_factory=get_session, currency: str = "INR"):
        self._session_factory = session_factory
        self._currency = currency

    def create_order(
        self,
        *,
        session_id: Optional[str],
        user_id: Optional[str],
        shipping_address: Dict,
        payment_method: str = PaymentMethod.ONLINE.value,
        coupon_code: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> OrderSnapshot:
        """Create order from current cart (idempotency by request_id)."""
        address = validate_shipping_address(shipping_address)
        method = parse_payment_method(payment_method)
        with self._session_factory() as session:
            if request_id:
                existing = session.query(Order).filter(Order.request_id == request_id).first()
                if existing:
                    return load_order_snapshot(session, existing.id)

            rows = cart_rows(session, session_id, user_id)
            if not rows:
                raise ValueError("cart is empty")
            for it, prod in rows:
                if not prod.is_active:
                    raise ValueError(f"product {prod.id} is no longer available")
                check_stock(prod, it.quantity)

            checkout: CheckoutSettings = SettingsService.load(session, CheckoutSettings.KEY)
            if method is PaymentMethod.COD and not checkout.cod_enabled:
                raise ValueError("cash on delivery is not available")

            coupon = lookup_coupon(session, coupon_code) if coupon_code else None
            totals = cart_totals(session, rows, coupon)
            if coupon is not None:
                check_coupon(coupon, totals.subtotal)
            totals = totals.rounded()
            if totals.subtotal < checkout.min_order_value:
                raise InvalidAmount(
                    totals.subtotal,
                    reason=f"minimum order value is {money(checkout.min_order_value):.2f}",
                    min_order_value=checkout.min_order_value,
                )

            now = utcnow()
            oid = str(uuid4())
            order = Order(
                id=oid,
                order_number=new_order_number(now),
                session_id=session_id,
                user_id=user_id,
                status=OrderStatus.NEW.value,
                payment_status=PaymentStatus.PENDING.value,
                payment_method=method.value,
                subtotal=totals.subtotal,
                discount=totals.discount,
                shipping_charge=totals.shipping_charge,
                total=totals.total,
                coupon_code=totals.coupon_code,
                currency=self._currency,
                shipping_address=address,
                created_at=now,
                updated_at=now,
                request_id=request_id,
            )
            session.add(order)
            for position, line in enumerate(totals.lines):
                session.add(
                    OrderItem(
                        id=str(uuid4()),
                        order_id=oid,
                        position=position,
                        product_id=line.item.product_id,
                        product_name=line.item.name,
                        variant_name=line.item.variant_name,
                        sku=line.item.sku,
                        price=line.unit_price,
                        quantity=line.item.quantity,
                        total=line.total,
                    )
                )
            # Clear cart after order creation
            for it, _ in rows:
                session.delete(it)
            session.flush()
            log_event(
                "info",
                "order.created",
                order_id=oid,
                order_number=order.order_number,
                items=len(rows),
                total=totals.total,
                payment_method=method.value,
            )
            return load_order_snapshot(session, oid)

    def get_order(self, order_id: str) -> OrderSnapshot:
        with self._session_factory() as session:
            return load_order_snapshot(session, order_id)

    def list_orders(
        self,
        *,
        status: Optional[str] = None,
        user_id: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict:
        p, ps = normalize_paging(page, page_size)
        with self._session_factory() as session:
            q = session.query(Order)
            if status:
                q = q.filter(Order.status == parse_order_status(status).value)
            if user_id:
                q = q.filter(Order.user_id == user_id)
            total = q.count()
            rows = (
                q.order_by(Order.created_at.desc(), Order.id.desc())
                .offset((p - 1) * ps)
                .limit(ps)
                .all()
            )
            items = [OrderSnapshot.from_row(r) for r in rows]
            return {"items": items, "page": p, "page_size": ps, "total": total}

    def update_status(self, order_id: str, target) -> OrderSnapshot:
        """Apply one lifecycle transition; confirming an order opens its delivery."""
        with self._session_factory() as session:
            order = order_row(session, order_id)
            previous = order.status
            new_status = ensure_order_transition(previous, target)
            order.status = new_status.value
            order.updated_at = utcnow()
            session.flush()
            if new_status is OrderStatus.CONFIRMED:
                DeliveryService.create_for_order(session, order)
            log_event(
                "info",
                "order.status_changed",
                order_id=order_id,
                previous=previous,
                status=new_status.value,
            )
            return load_order_snapshot(session, order_id)
