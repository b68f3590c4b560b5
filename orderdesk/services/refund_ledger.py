"""Payment and refund ledger for orders.

Ledger entries are append-only: a refund is a new entry with a negative
amount, never an edit of the capture it reverses. ``order.payment_status`` is
a denormalised view of the ledger and is only written here, in the same
transaction as the entry that justifies it.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

from ..db.session import get_session
from ..errors import InvalidAmount, RefundExceedsCaptured
from ..models.order import Order
from ..models.payment import Payment
from ..utils.clock import utcnow
from ..utils.dto import PaymentSnapshot
from ..utils.money import ZERO, money, quantize, to_decimal
from .lifecycle import PaymentStatus, ensure_payment_transition, parse_payment_status
from .logging import log_event
from .queries import ledger_rows, order_row


@dataclass(frozen=True)
class RefundResult:
    payment: PaymentSnapshot
    payment_status: str
    refunded_total: Decimal
    remaining: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "payment": self.payment.to_dict(),
            "payment_status": self.payment_status,
            "refunded_total": money(self.refunded_total),
            "remaining": money(self.remaining),
        }


def refunded_total(entries) -> Decimal:
    return sum((to_decimal(e.refund_amount) for e in entries if e.refund_amount is not None), ZERO)


def captured_total(entries) -> Decimal:
    return sum((to_decimal(e.amount) for e in entries if e.status == PaymentStatus.PAID.value and e.amount > 0), ZERO)


def positive_amount(raw, **context) -> Decimal:
    """Quantized amount from caller input; zero after rounding is rejected."""
    try:
        value = quantize(to_decimal(raw, "amount"))
    except InvalidOperation:
        raise InvalidAmount(raw, "amount is out of range", **context) from None
    if value <= 0:
        raise InvalidAmount(raw, **context)
    return value


class RefundLedger:
    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    @staticmethod
    def _append(session, order: Order, **fields) -> Payment:
        entry = Payment(
            id=str(uuid4()),
            order_id=order.id,
            sequence=len(ledger_rows(session, order.id)) + 1,
            created_at=utcnow(),
            **fields,
        )
        session.add(entry)
        return entry

    @classmethod
    def apply_payment_status(
        cls,
        session,
        order: Order,
        status,
        *,
        amount=None,
        method: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> Optional[Payment]:
        """Move ``order.payment_status`` and append the matching ledger entry.

        Returns ``None`` when the order already has that status.
        """
        target = parse_payment_status(status)
        if order.payment_status == target.value:
            return None
        ensure_payment_transition(order.payment_status, target)
        entry = None
        value = None
        if target in (PaymentStatus.PAID, PaymentStatus.FAILED):
            raw = amount if amount is not None else order.total
            value = positive_amount(raw, order_id=order.id)
            entry = cls._append(
                session,
                order,
                amount=value,
                method=method or order.payment_method,
                status=target.value,
                reference=reference,
            )
        previous = order.payment_status
        order.payment_status = target.value
        order.updated_at = utcnow()
        session.flush()
        log_event(
            "info",
            "payment.recorded",
            order_id=order.id,
            previous=previous,
            payment_status=target.value,
            amount=value,
        )
        return entry

    def record_payment(
        self,
        order_id: str,
        status,
        *,
        amount=None,
        method: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> Optional[PaymentSnapshot]:
        with self._session_factory() as session:
            order = order_row(session, order_id)
            entry = self.apply_payment_status(
                session, order, status, amount=amount, method=method, reference=reference
            )
            return PaymentSnapshot.from_row(entry) if entry is not None else None

    def record_gateway_result(
        self,
        order_id: str,
        *,
        success: bool,
        amount=None,
        reference: Optional[str] = None,
    ) -> Optional[PaymentSnapshot]:
        """Consume a payment gateway notification for ``order_id``."""
        status = PaymentStatus.PAID if success else PaymentStatus.FAILED
        return self.record_payment(order_id, status, amount=amount, method="online", reference=reference)

    def refund(self, order_id: str, amount, reason: Optional[str] = None) -> RefundResult:
        value = positive_amount(amount, order_id=order_id)
        with self._session_factory() as session:
            order = order_row(session, order_id)
            entries = ledger_rows(session, order_id)
            total = to_decimal(order.total)
            already = refunded_total(entries)
            if value > total - already:
                raise RefundExceedsCaptured(value, total, already)

            entry = self._append(
                session,
                order,
                amount=-value,
                method=order.payment_method or "online",
                status=PaymentStatus.REFUNDED.value,
                refund_amount=value,
                refund_reason=(reason or "").strip() or None,
            )
            new_total = already + value
            status = PaymentStatus.REFUNDED if new_total >= total else PaymentStatus.PARTIALLY_REFUNDED
            order.payment_status = status.value
            order.updated_at = utcnow()
            session.flush()
            log_event(
                "info",
                "refund.recorded",
                order_id=order_id,
                amount=value,
                refunded_total=new_total,
                payment_status=status.value,
            )
            return RefundResult(
                payment=PaymentSnapshot.from_row(entry),
                payment_status=status.value,
                refunded_total=new_total,
                remaining=total - new_total,
            )

    def history(self, order_id: str) -> Tuple[PaymentSnapshot, ...]:
        with self._session_factory() as session:
            order_row(session, order_id)
            return tuple(PaymentSnapshot.from_row(p) for p in ledger_rows(session, order_id))

    def refunds(self, order_id: str) -> Tuple[PaymentSnapshot, ...]:
        return tuple(p for p in self.history(order_id) if p.is_refund)
