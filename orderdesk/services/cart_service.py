from typing import Dict, List, Optional, Tuple
from uuid import uuid4

from sqlalchemy import and_

from ..db.session import get_session
from ..errors import CouponIneligible, InsufficientStock, NotFound
from ..models.cart_item import CartItem
from ..models.coupon import Coupon
from ..models.product import Product
from ..settings import CheckoutSettings
from ..utils.validators import ensure_quantity
from .offer_service import OfferService
from .pricing import (
    CouponTerms,
    LineItem,
    ShippingPolicy,
    Totals,
    check_coupon,
    compute_totals,
    normalize_code,
)
from .settings_service import SettingsService


def identity_filter(session_id: Optional[str], user_id: Optional[str]):
    if user_id:
        return CartItem.user_id == user_id
    if session_id:
        return CartItem.session_id == session_id
    raise ValueError("session_id or user_id required")


def cart_rows(session, session_id: Optional[str], user_id: Optional[str]) -> List[Tuple[CartItem, Product]]:
    return (
        session.query(CartItem, Product)
        .join(Product, Product.id == CartItem.product_id)
        .filter(identity_filter(session_id, user_id))
        .order_by(CartItem.added_at.asc(), CartItem.id.asc())
        .all()
    )


def line_item(item: CartItem, product: Product) -> LineItem:
    return LineItem(
        product_id=product.id,
        price=product.price,
        quantity=item.quantity,
        category_id=product.category_id,
        name=product.name,
        sku=product.sku,
        variant_name=item.variant_name,
    )


def check_stock(product: Product, quantity: int) -> None:
    available = int(product.stock_quantity or 0)
    if quantity > available:
        raise InsufficientStock(product.id, quantity, available)


def lookup_coupon(session, code: Optional[str]) -> CouponTerms:
    normalized = normalize_code(code)
    if not normalized:
        raise ValueError("coupon code required")
    row = session.query(Coupon).filter(Coupon.code == normalized).first()
    if row is None:
        raise CouponIneligible(normalized, "coupon code is not valid")
    return CouponTerms.from_row(row)


def cart_totals(session, rows, coupon: Optional[CouponTerms] = None) -> Totals:
    checkout: CheckoutSettings = SettingsService.load(session, CheckoutSettings.KEY)
    return compute_totals(
        [line_item(it, prod) for it, prod in rows],
        coupon,
        OfferService.resolver_for(session),
        shipping=ShippingPolicy.from_settings(checkout),
    )


class CartService:
    """Cart operations backed by DB.

    A cart belongs to a signed-in user or, failing that, to an anonymous
    session. Coupons are not stored on the cart: ``apply_coupon`` validates
    and prices, and the code is sent again at checkout.
    """

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    def get_cart(self, *, session_id: Optional[str], user_id: Optional[str], coupon_code: Optional[str] = None) -> Dict:
        with self._session_factory() as session:
            rows = cart_rows(session, session_id, user_id)
            coupon = lookup_coupon(session, coupon_code) if coupon_code else None
            totals = cart_totals(session, rows, coupon)
            data = totals.to_dict()
            for line, (it, prod) in zip(data["items"], rows):
                line["id"] = it.id
                line["stock_quantity"] = int(prod.stock_quantity or 0)
            return data

    def add_item(
        self,
        *,
        session_id: Optional[str],
        user_id: Optional[str],
        product_id: str,
        variant_name: Optional[str] = None,
        quantity: int = 1,
    ) -> Dict:
        if not product_id:
            raise ValueError("product_id required")
        qnty = ensure_quantity(1 if quantity is None else quantity, "quantity")
        with self._session_factory() as session:
            prod = (
                session.query(Product)
                .filter(Product.id == product_id, Product.is_active.is_(True))
                .first()
            )
            if not prod:
                raise NotFound("product", product_id)

            # merge with existing line for the same product + variant
            existing = (
                session.query(CartItem)
                .filter(
                    and_(
                        CartItem.product_id == product_id,
                        CartItem.variant_name.is_(None) if not variant_name else CartItem.variant_name == variant_name,
                        identity_filter(session_id, user_id),
                    )
                )
                .first()
            )
            if existing:
                new_q = existing.quantity + qnty
                check_stock(prod, new_q)
                existing.quantity = new_q
                item_id = existing.id
            else:
                check_stock(prod, qnty)
                item = CartItem(
                    id=str(uuid4()),
                    session_id=None if user_id else session_id,
                    user_id=user_id or None,
                    product_id=product_id,
                    variant_name=variant_name or None,
                    quantity=qnty,
                )
                session.add(item)
                item_id = item.id
            session.flush()
            return {"status": "added", "item_id": item_id}

    def update_item(self, *, item_id: str, quantity: int) -> Dict:
        if not item_id:
            raise ValueError("item_id required")
        qnty = ensure_quantity(quantity, "quantity", minimum=0)
        with self._session_factory() as session:
            it = session.get(CartItem, item_id)
            if not it:
                raise NotFound("cart item", item_id)
            if qnty == 0:
                session.delete(it)
                session.flush()
                return {"status": "removed", "item_id": item_id}
            prod = session.get(Product, it.product_id)
            if qnty > it.quantity:
                check_stock(prod, qnty)
            it.quantity = qnty
            session.flush()
            return {"status": "updated", "item_id": item_id}

    def remove_item(self, *, item_id: str) -> None:
        with self._session_factory() as session:
            it = session.get(CartItem, item_id)
            if it:
                session.delete(it)
                session.flush()
        return None

    def apply_coupon(self, *, session_id: Optional[str], user_id: Optional[str], code: str) -> Dict:
        """Price the cart with ``code``; raises ``CouponIneligible`` if it does not apply."""
        with self._session_factory() as session:
            coupon = lookup_coupon(session, code)
            rows = cart_rows(session, session_id, user_id)
            totals = cart_totals(session, rows, coupon)
            check_coupon(coupon, totals.subtotal)
            return totals.to_dict()
