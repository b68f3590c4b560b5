"""Tests for DeliveryService."""

from decimal import Decimal

import pytest

from orderdesk.errors import InvalidTransition, NotFound


@pytest.fixture
def confirmed(orders, place_order):
    def _confirmed(payment_method="online"):
        order = place_order({"p-mug": 1}, payment_method=payment_method)
        return orders.update_status(order.id, "confirmed")

    return _confirmed


class TestStatus:
    def test_pending_straight_to_delivered(self, deliveries, confirmed):
        delivery = confirmed().delivery
        assert delivery.delivered_at is None

        delivered = deliveries.update_status(delivery.id, "delivered")

        assert delivered.status == "delivered"
        assert delivered.delivered_at is not None
        assert delivered.progress == 1.0

    def test_delivered_is_final(self, deliveries, confirmed):
        delivery = confirmed().delivery
        delivered = deliveries.update_status(delivery.id, "delivered")

        with pytest.raises(InvalidTransition):
            deliveries.update_status(delivery.id, "picked")

        again = deliveries.get_delivery(delivery.id)
        assert again.status == "delivered"
        assert again.delivered_at == delivered.delivered_at

    def test_step_by_step_progress(self, deliveries, confirmed):
        delivery = confirmed().delivery
        seen = [delivery.progress]
        for status in ("assigned", "picked", "in_transit", "delivered"):
            seen.append(deliveries.update_status(delivery.id, status).progress)

        assert seen == pytest.approx([0.2, 0.4, 0.6, 0.8, 1.0])

    def test_failed_is_terminal_without_delivered_at(self, deliveries, confirmed):
        delivery = confirmed().delivery
        failed = deliveries.update_status(delivery.id, "failed")

        assert failed.delivered_at is None
        with pytest.raises(InvalidTransition):
            deliveries.update_status(delivery.id, "delivered")

    def test_delivery_status_does_not_move_order(self, orders, deliveries, confirmed):
        order = confirmed()
        deliveries.update_status(order.delivery.id, "delivered")

        assert orders.get_order(order.id).status == "confirmed"


class TestTracking:
    def test_tracking_fields(self, deliveries, confirmed):
        delivery = confirmed().delivery

        updated = deliveries.update_tracking(
            delivery.id,
            partner_name=" BlueDart ",
            tracking_number="BD123",
            tracking_url="https://track.example/BD123",
        )

        assert updated.partner_name == "BlueDart"
        assert updated.tracking_number == "BD123"
        assert deliveries.get_for_order(delivery.order_id).tracking_url == "https://track.example/BD123"

    def test_status_and_tracking_in_one_update(self, deliveries, confirmed):
        delivery = confirmed().delivery

        updated = deliveries.update(delivery.id, status="assigned", partner_name="Delhivery")

        assert (updated.status, updated.partner_name) == ("assigned", "Delhivery")

    def test_failed_update_changes_nothing(self, deliveries, confirmed):
        delivery = confirmed().delivery
        deliveries.update_status(delivery.id, "picked")

        with pytest.raises(InvalidTransition):
            deliveries.update(delivery.id, status="assigned", partner_name="Nobody")

        assert deliveries.get_delivery(delivery.id).partner_name is None

    @pytest.mark.parametrize("field", ["is_cod", "cod_amount", "delivered_at", "cod_collected"])
    def test_fixed_fields_cannot_be_updated(self, deliveries, confirmed, field):
        delivery = confirmed().delivery

        with pytest.raises(ValueError):
            deliveries.update(delivery.id, **{field: "x"})

    def test_unknown_delivery(self, deliveries):
        with pytest.raises(NotFound):
            deliveries.get_delivery("missing")

    def test_no_delivery_before_confirmation(self, deliveries, place_order):
        order = place_order({"p-mug": 1})

        with pytest.raises(NotFound):
            deliveries.get_for_order(order.id)

    def test_create_delivery_is_one_per_order(self, deliveries, place_order):
        order = place_order({"p-mug": 1})

        first = deliveries.create_delivery(order.id)
        second = deliveries.create_delivery(order.id)

        assert first.id == second.id


class TestCodCollection:
    def test_collecting_records_payment(self, orders, deliveries, confirmed):
        order = confirmed(payment_method="cod")
        deliveries.update_status(order.delivery.id, "delivered")

        delivery = deliveries.set_cod_collected(order.delivery.id, True)

        assert delivery.cod_collected is True
        snapshot = orders.get_order(order.id)
        assert snapshot.payment_status == "paid"
        assert [(p.amount, p.method) for p in snapshot.payments] == [(Decimal("250"), "cod")]

    def test_collecting_before_delivery_is_allowed(self, deliveries, confirmed):
        order = confirmed(payment_method="cod")

        delivery = deliveries.set_cod_collected(order.delivery.id, True)

        assert delivery.cod_collected is True
        assert delivery.status == "pending"

    def test_collecting_twice_captures_once(self, orders, deliveries, confirmed):
        order = confirmed(payment_method="cod")
        deliveries.set_cod_collected(order.delivery.id, True)
        deliveries.set_cod_collected(order.delivery.id, True)

        assert len(orders.get_order(order.id).payments) == 1

    def test_uncollecting_after_capture_is_rejected(self, orders, deliveries, confirmed):
        order = confirmed(payment_method="cod")
        deliveries.set_cod_collected(order.delivery.id, True)

        with pytest.raises(ValueError, match="payment ledger"):
            deliveries.set_cod_collected(order.delivery.id, False)

        assert deliveries.get_delivery(order.delivery.id).cod_collected is True
        assert orders.get_order(order.id).payment_status == "paid"

    def test_online_delivery_rejects_cod_flag(self, deliveries, confirmed):
        order = confirmed()

        with pytest.raises(ValueError):
            deliveries.set_cod_collected(order.delivery.id, True)
