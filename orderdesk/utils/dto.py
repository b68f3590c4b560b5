"""Immutable snapshots handed out by the services.

Callers never receive ORM rows; every read re-queries the store and builds a
fresh snapshot, so a write is visible to the next read of the same record.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from ..services.lifecycle import delivery_progress
from .money import ZERO, money, to_decimal


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _dec(value: Any) -> Decimal:
    return ZERO if value is None else to_decimal(value)


@dataclass(frozen=True)
class OrderItemSnapshot:
    id: str
    product_id: Optional[str]
    product_name: str
    variant_name: Optional[str]
    sku: Optional[str]
    price: Decimal
    quantity: int
    total: Decimal

    @classmethod
    def from_row(cls, row: Any) -> "OrderItemSnapshot":
        return cls(
            id=row.id,
            product_id=row.product_id,
            product_name=row.product_name,
            variant_name=row.variant_name,
            sku=row.sku,
            price=_dec(row.price),
            quantity=int(row.quantity),
            total=_dec(row.total),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "variant_name": self.variant_name,
            "sku": self.sku,
            "price": money(self.price),
            "quantity": self.quantity,
            "total": money(self.total),
        }


@dataclass(frozen=True)
class PaymentSnapshot:
    id: str
    order_id: str
    amount: Decimal
    method: str
    status: str
    refund_amount: Optional[Decimal]
    refund_reason: Optional[str]
    reference: Optional[str]
    created_at: Optional[datetime]

    @classmethod
    def from_row(cls, row: Any) -> "PaymentSnapshot":
        return cls(
            id=row.id,
            order_id=row.order_id,
            amount=_dec(row.amount),
            method=row.method,
            status=row.status,
            refund_amount=None if row.refund_amount is None else _dec(row.refund_amount),
            refund_reason=row.refund_reason,
            reference=row.reference,
            created_at=row.created_at,
        )

    @property
    def is_refund(self) -> bool:
        return self.refund_amount is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "amount": money(self.amount),
            "method": self.method,
            "status": self.status,
            "refund_amount": None if self.refund_amount is None else money(self.refund_amount),
            "refund_reason": self.refund_reason,
            "reference": self.reference,
            "created_at": _iso(self.created_at),
        }


@dataclass(frozen=True)
class DeliverySnapshot:
    id: str
    order_id: str
    status: str
    partner_name: Optional[str]
    tracking_number: Optional[str]
    tracking_url: Optional[str]
    delivered_at: Optional[datetime]
    is_cod: bool
    cod_amount: Decimal
    cod_collected: bool

    @classmethod
    def from_row(cls, row: Any) -> "DeliverySnapshot":
        return cls(
            id=row.id,
            order_id=row.order_id,
            status=row.status,
            partner_name=row.partner_name,
            tracking_number=row.tracking_number,
            tracking_url=row.tracking_url,
            delivered_at=row.delivered_at,
            is_cod=bool(row.is_cod),
            cod_amount=_dec(row.cod_amount),
            cod_collected=bool(row.cod_collected),
        )

    @property
    def progress(self) -> float:
        return delivery_progress(self.status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "status": self.status,
            "progress": round(self.progress * 100),
            "partner_name": self.partner_name,
            "tracking_number": self.tracking_number,
            "tracking_url": self.tracking_url,
            "delivered_at": _iso(self.delivered_at),
            "is_cod": self.is_cod,
            "cod_amount": money(self.cod_amount),
            "cod_collected": self.cod_collected,
        }


@dataclass(frozen=True)
class OrderSnapshot:
    id: str
    order_number: str
    user_id: Optional[str]
    status: str
    payment_status: str
    payment_method: str
    subtotal: Decimal
    discount: Decimal
    shipping_charge: Decimal
    total: Decimal
    coupon_code: Optional[str]
    currency: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    shipping_address: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    items: Tuple[OrderItemSnapshot, ...] = ()
    delivery: Optional[DeliverySnapshot] = None
    payments: Tuple[PaymentSnapshot, ...] = field(default_factory=tuple)

    @classmethod
    def from_row(cls, row: Any, *, items=(), delivery=None, payments=()) -> "OrderSnapshot":
        return cls(
            id=row.id,
            order_number=row.order_number,
            user_id=row.user_id,
            status=row.status,
            payment_status=row.payment_status,
            payment_method=row.payment_method,
            subtotal=_dec(row.subtotal),
            discount=_dec(row.discount),
            shipping_charge=_dec(row.shipping_charge),
            total=_dec(row.total),
            coupon_code=row.coupon_code,
            currency=row.currency,
            created_at=row.created_at,
            updated_at=row.updated_at,
            shipping_address=MappingProxyType(dict(row.shipping_address or {})),
            items=tuple(OrderItemSnapshot.from_row(i) for i in items),
            delivery=DeliverySnapshot.from_row(delivery) if delivery is not None else None,
            payments=tuple(PaymentSnapshot.from_row(p) for p in payments),
        )

    @property
    def refunded_amount(self) -> Decimal:
        return sum((p.refund_amount for p in self.payments if p.refund_amount is not None), ZERO)

    def totals_consistent(self) -> bool:
        return (
            min(self.subtotal, self.discount, self.shipping_charge, self.total) >= ZERO
            and self.total == self.subtotal - self.discount + self.shipping_charge
        )

    def to_dict(self, *, detail: bool = True) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "user_id": self.user_id,
            "status": self.status,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "subtotal": money(self.subtotal),
            "discount": money(self.discount),
            "shipping_charge": money(self.shipping_charge),
            "total": money(self.total),
            "coupon_code": self.coupon_code,
            "currency": self.currency,
            "created_at": _iso(self.created_at),
        }
        if detail:
            data.update(
                {
                    "shipping_address": dict(self.shipping_address),
                    "items": [i.to_dict() for i in self.items],
                    "delivery": self.delivery.to_dict() if self.delivery else None,
                    "payments": [p.to_dict() for p in self.payments],
                    "refunded_amount": money(self.refunded_amount),
                }
            )
        return data


def to_product_dto(row: Any, offer: Any = None, offer_price: Optional[Decimal] = None) -> Dict:
    price = _dec(getattr(row, "price", 0))
    mrp = getattr(row, "mrp", None)
    return {
        "id": getattr(row, "id", None),
        "sku": getattr(row, "sku", None),
        "name": getattr(row, "name", None),
        "description": getattr(row, "description", None),
        "price": money(price),
        "mrp": money(mrp) if mrp is not None else None,
        "display_price": money(offer_price if offer_price is not None else price),
        "offer": offer.label() if offer is not None else None,
        "images": getattr(row, "images", None) or [],
        "category_id": getattr(row, "category_id", None),
        "stock_quantity": getattr(row, "stock_quantity", 0) or 0,
        "is_active": bool(getattr(row, "is_active", True)),
    }
