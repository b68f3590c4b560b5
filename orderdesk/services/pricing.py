"""Cart and order price computation.

Everything here is a pure function of its arguments: no database access, no
clock, no logging. Amounts are ``Decimal``; the only rounding inside the
computation is the offer-adjusted unit price, which is itself a price shown
to the customer. Final totals are rounded by ``Totals.rounded`` when they are
committed to an order.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..errors import CouponIneligible
from ..settings import CheckoutSettings
from ..utils.money import ZERO, money, optional_decimal, quantize, to_decimal


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def parse_discount_type(value: Any) -> DiscountType:
    try:
        return DiscountType(value)
    except ValueError:
        raise ValueError(f"Unknown discount type: {value}") from None


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def discount_amount(kind: DiscountType, value: Decimal, base: Decimal, max_discount: Optional[Decimal] = None) -> Decimal:
    """Discount on ``base``, clamped to ``[0, base]``."""
    if kind is DiscountType.PERCENTAGE:
        amount = base * value / Decimal(100)
        if max_discount is not None:
            amount = min(amount, max_discount)
    else:
        amount = value
    return min(max(amount, ZERO), base)


@dataclass(frozen=True)
class CouponTerms:
    code: str
    type: DiscountType
    value: Decimal
    min_order_value: Optional[Decimal] = None
    max_discount: Optional[Decimal] = None
    is_active: bool = True

    @classmethod
    def from_row(cls, row: Any) -> "CouponTerms":
        return cls(
            code=normalize_code(row.code),
            type=parse_discount_type(row.type),
            value=to_decimal(row.value, "value"),
            min_order_value=optional_decimal(row.min_order_value, "min_order_value"),
            max_discount=optional_decimal(row.max_discount, "max_discount"),
            is_active=bool(row.is_active),
        )


@dataclass(frozen=True)
class OfferTerms:
    id: str
    name: str
    type: DiscountType
    value: Decimal
    max_discount: Optional[Decimal] = None
    priority: int = 0

    @classmethod
    def from_row(cls, row: Any) -> "OfferTerms":
        return cls(
            id=row.id,
            name=row.name,
            type=parse_discount_type(row.type),
            value=to_decimal(row.value, "value"),
            max_discount=optional_decimal(row.max_discount, "max_discount"),
            priority=int(row.priority or 0),
        )

    def label(self) -> str:
        if self.type is DiscountType.PERCENTAGE:
            return f"{self.value.normalize():f}% OFF"
        return f"{money(self.value):.2f} OFF"


@dataclass(frozen=True)
class LineItem:
    product_id: str
    price: Decimal
    quantity: int
    category_id: Optional[str] = None
    name: str = ""
    sku: Optional[str] = None
    variant_name: Optional[str] = None


@dataclass(frozen=True)
class PricedLine:
    item: LineItem
    unit_price: Decimal
    offer: Optional[OfferTerms] = None

    @property
    def total(self) -> Decimal:
        return self.unit_price * self.item.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.item.product_id,
            "name": self.item.name,
            "sku": self.item.sku,
            "variant_name": self.item.variant_name,
            "quantity": self.item.quantity,
            "original_price": money(self.item.price),
            "price": money(self.unit_price),
            "total": money(self.total),
            "offer": self.offer.label() if self.offer else None,
        }


@dataclass(frozen=True)
class ShippingPolicy:
    free_shipping_threshold: Decimal = Decimal("500")
    default_shipping_charge: Decimal = Decimal("50")

    @classmethod
    def from_settings(cls, settings: CheckoutSettings) -> "ShippingPolicy":
        return cls(
            free_shipping_threshold=settings.free_shipping_threshold,
            default_shipping_charge=settings.default_shipping_charge,
        )

    def charge_for(self, subtotal: Decimal) -> Decimal:
        if subtotal >= self.free_shipping_threshold:
            return ZERO
        return self.default_shipping_charge


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    discount: Decimal
    shipping_charge: Decimal
    total: Decimal
    lines: Tuple[PricedLine, ...] = field(default_factory=tuple)
    coupon_code: Optional[str] = None
    coupon_rejection: Optional[str] = None

    def rounded(self) -> "Totals":
        """Round to 2 places, recomputing ``total`` so the formula holds exactly."""
        subtotal = quantize(self.subtotal)
        discount = min(quantize(self.discount), subtotal)
        shipping = quantize(self.shipping_charge)
        return replace(
            self,
            subtotal=subtotal,
            discount=discount,
            shipping_charge=shipping,
            total=max(subtotal - discount + shipping, ZERO),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [line.to_dict() for line in self.lines],
            "subtotal": money(self.subtotal),
            "discount": money(self.discount),
            "shipping_charge": money(self.shipping_charge),
            "total": money(self.total),
            "coupon_code": self.coupon_code,
            "coupon_rejection": self.coupon_rejection,
        }


OfferResolver = Callable[[LineItem], Optional[OfferTerms]]


def coupon_rejection_reason(coupon: CouponTerms, subtotal: Decimal) -> Optional[str]:
    if not coupon.is_active:
        return "coupon is not active"
    if coupon.min_order_value is not None and subtotal < coupon.min_order_value:
        return f"minimum order value is {money(coupon.min_order_value):.2f}"
    return None


def check_coupon(coupon: CouponTerms, subtotal: Decimal) -> None:
    """Raise ``CouponIneligible`` when the coupon cannot be applied to ``subtotal``."""
    reason = coupon_rejection_reason(coupon, subtotal)
    if reason:
        raise CouponIneligible(
            coupon.code,
            reason,
            subtotal=subtotal,
            min_order_value=coupon.min_order_value,
        )


def price_line(item: LineItem, offer_resolver: Optional[OfferResolver] = None) -> PricedLine:
    if item.quantity <= 0:
        raise ValueError("quantity must be > 0")
    price = to_decimal(item.price, "price")
    if price < 0:
        raise ValueError("price must be >= 0")
    offer = offer_resolver(item) if offer_resolver else None
    if offer is None:
        return PricedLine(item=item, unit_price=price)
    off = discount_amount(offer.type, offer.value, price, offer.max_discount)
    return PricedLine(item=item, unit_price=quantize(price - off), offer=offer)


def compute_totals(
    items: Iterable[LineItem],
    coupon: Optional[CouponTerms] = None,
    offer_resolver: Optional[OfferResolver] = None,
    *,
    shipping: ShippingPolicy = ShippingPolicy(),
) -> Totals:
    lines: List[PricedLine] = [price_line(it, offer_resolver) for it in items]
    subtotal = sum((line.total for line in lines), ZERO)

    discount = ZERO
    rejection = None
    if coupon is not None:
        rejection = coupon_rejection_reason(coupon, subtotal)
        if rejection is None:
            discount = discount_amount(coupon.type, coupon.value, subtotal, coupon.max_discount)

    shipping_charge = shipping.charge_for(subtotal)
    total = max(subtotal - discount + shipping_charge, ZERO)
    return Totals(
        subtotal=subtotal,
        discount=discount,
        shipping_charge=shipping_charge,
        total=total,
        lines=tuple(lines),
        coupon_code=coupon.code if coupon is not None and rejection is None else None,
        coupon_rejection=rejection,
    )
