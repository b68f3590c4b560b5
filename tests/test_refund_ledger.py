"""Tests for RefundLedger."""

from decimal import Decimal

import pytest

from orderdesk.errors import InvalidAmount, InvalidTransition, NotFound, RefundExceedsCaptured


@pytest.fixture
def order_1000(place_order):
    # 2 x 500 = 1000, free shipping
    return place_order({"p-shirt": 2})


class TestRefund:
    def test_second_refund_exceeding_remaining_fails(self, ledger, orders, order_1000):
        assert order_1000.total == Decimal("1000")

        first = ledger.refund(order_1000.id, 300, "damaged")
        assert first.remaining == Decimal("700")
        assert first.payment_status == "partially_refunded"

        with pytest.raises(RefundExceedsCaptured) as exc_info:
            ledger.refund(order_1000.id, 800)

        assert exc_info.value.remaining == Decimal("700")
        assert len(ledger.history(order_1000.id)) == 1
        assert orders.get_order(order_1000.id).payment_status == "partially_refunded"

    def test_refund_entry_is_negative_and_carries_reason(self, ledger, order_1000):
        result = ledger.refund(order_1000.id, "150.50", "  late delivery ")

        entry = result.payment
        assert entry.amount == Decimal("-150.50")
        assert entry.refund_amount == Decimal("150.50")
        assert entry.refund_reason == "late delivery"
        assert entry.status == "refunded"

    def test_full_refund_sets_refunded(self, ledger, orders, order_1000):
        ledger.refund(order_1000.id, 400)
        result = ledger.refund(order_1000.id, 600)

        assert result.payment_status == "refunded"
        assert result.remaining == 0
        assert orders.get_order(order_1000.id).payment_status == "refunded"

    def test_nothing_left_after_full_refund(self, ledger, order_1000):
        ledger.refund(order_1000.id, 1000)

        with pytest.raises(RefundExceedsCaptured):
            ledger.refund(order_1000.id, "0.01")

    @pytest.mark.parametrize("amount", [0, -5, "-0.01"])
    def test_non_positive_amount(self, ledger, order_1000, amount):
        with pytest.raises(InvalidAmount):
            ledger.refund(order_1000.id, amount)
        assert ledger.history(order_1000.id) == ()

    def test_non_numeric_amount(self, ledger, order_1000):
        with pytest.raises(ValueError):
            ledger.refund(order_1000.id, "ten")

    def test_sub_cent_amount_rounds_to_zero_and_is_rejected(self, ledger, orders, order_1000):
        with pytest.raises(InvalidAmount):
            ledger.refund(order_1000.id, "0.004")

        assert ledger.history(order_1000.id) == ()
        assert orders.get_order(order_1000.id).payment_status == "pending"

    @pytest.mark.parametrize("amount", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_amount(self, ledger, order_1000, amount):
        with pytest.raises(ValueError, match="finite"):
            ledger.refund(order_1000.id, amount)
        assert ledger.history(order_1000.id) == ()

    def test_out_of_range_amount(self, ledger, order_1000):
        with pytest.raises(InvalidAmount):
            ledger.refund(order_1000.id, "1e999")
        assert ledger.history(order_1000.id) == ()

    def test_running_sum_never_exceeds_total(self, ledger, order_1000):
        for amount in [250, 250, 300, 300, 200, 100]:
            try:
                ledger.refund(order_1000.id, amount)
            except RefundExceedsCaptured:
                pass
            refunded = sum(r.refund_amount for r in ledger.refunds(order_1000.id))
            assert refunded <= Decimal("1000")
        assert sum(r.refund_amount for r in ledger.refunds(order_1000.id)) == Decimal("1000")

    def test_unknown_order(self, ledger, catalog):
        with pytest.raises(NotFound):
            ledger.refund("missing", 10)


class TestRecordPayment:
    def test_cod_paid_appends_capture(self, ledger, orders, place_order):
        order = place_order({"p-mug": 1}, payment_method="cod")

        entry = ledger.record_payment(order.id, "paid")

        assert entry.amount == order.total
        assert entry.method == "cod"
        assert entry.status == "paid"
        snapshot = orders.get_order(order.id)
        assert snapshot.payment_status == "paid"
        assert [p.status for p in snapshot.payments] == ["paid"]

    def test_same_status_is_noop(self, ledger, order_1000):
        ledger.record_payment(order_1000.id, "paid")

        assert ledger.record_payment(order_1000.id, "paid") is None
        assert len(ledger.history(order_1000.id)) == 1

    def test_refund_status_only_through_refund(self, ledger, orders, order_1000):
        with pytest.raises(InvalidTransition):
            ledger.record_payment(order_1000.id, "refunded")
        assert orders.get_order(order_1000.id).payment_status == "pending"

    def test_failed_then_paid(self, ledger, orders, order_1000):
        ledger.record_gateway_result(order_1000.id, success=False, amount=1000, reference="pay_1")
        ledger.record_gateway_result(order_1000.id, success=True, amount=1000, reference="pay_2")

        history = ledger.history(order_1000.id)
        assert [(p.status, p.reference) for p in history] == [("failed", "pay_1"), ("paid", "pay_2")]
        assert orders.get_order(order_1000.id).payment_status == "paid"

    def test_back_to_pending_adds_no_entry(self, ledger, order_1000):
        ledger.record_payment(order_1000.id, "failed")
        ledger.record_payment(order_1000.id, "pending")

        assert [p.status for p in ledger.history(order_1000.id)] == ["failed"]

    def test_refund_after_capture(self, ledger, orders, order_1000):
        ledger.record_payment(order_1000.id, "paid")
        ledger.refund(order_1000.id, 100)

        snapshot = orders.get_order(order_1000.id)
        assert snapshot.payment_status == "partially_refunded"
        assert [p.amount for p in snapshot.payments] == [Decimal("1000"), Decimal("-100")]
        assert snapshot.refunded_amount == Decimal("100")
