"""Tests for the pricing engine."""

from decimal import Decimal

import pytest

from orderdesk.errors import CouponIneligible
from orderdesk.services.pricing import (
    CouponTerms,
    DiscountType,
    LineItem,
    OfferTerms,
    ShippingPolicy,
    check_coupon,
    compute_totals,
    normalize_code,
)

D = Decimal
POLICY = ShippingPolicy(free_shipping_threshold=D("500"), default_shipping_charge=D("50"))


def item(price, qty=1, product_id="p1", category_id=None):
    return LineItem(product_id=product_id, price=D(str(price)), quantity=qty, category_id=category_id)


def percentage(value, max_discount=None, min_order_value=None, active=True):
    return CouponTerms(
        code="PCT",
        type=DiscountType.PERCENTAGE,
        value=D(str(value)),
        max_discount=None if max_discount is None else D(str(max_discount)),
        min_order_value=None if min_order_value is None else D(str(min_order_value)),
        is_active=active,
    )


def fixed(value, min_order_value=None, active=True):
    return CouponTerms(
        code="FIX",
        type=DiscountType.FIXED,
        value=D(str(value)),
        min_order_value=None if min_order_value is None else D(str(min_order_value)),
        is_active=active,
    )


class TestComputeTotals:
    @pytest.mark.parametrize(
        "items",
        [
            [],
            [item(10)],
            [item(200, 2)],
            [item("99.99", 3), item("0.01", 7, "p2")],
            [item(1000, 1), item(250, 4, "p2")],
        ],
    )
    def test_no_coupon_total_is_subtotal_plus_shipping(self, items):
        totals = compute_totals(items, shipping=POLICY)

        assert totals.discount == 0
        assert totals.total == totals.subtotal + totals.shipping_charge

    def test_capped_percentage_scenario(self):
        totals = compute_totals([item(500)], percentage(10, max_discount=40), shipping=POLICY)

        assert totals.subtotal == D("500")
        assert totals.discount == D("40")
        assert totals.shipping_charge == 0
        assert totals.total == D("460")

    def test_shipping_charged_below_threshold(self):
        totals = compute_totals([item(200, 2)], shipping=POLICY)

        assert totals.subtotal == D("400")
        assert totals.shipping_charge == D("50")
        assert totals.total == D("450")

    @pytest.mark.parametrize("price", ["1", "399", "400", "5000", "1000000"])
    def test_percentage_never_exceeds_max_discount(self, price):
        totals = compute_totals([item(price)], percentage(50, max_discount=40), shipping=POLICY)

        assert totals.discount <= D("40")

    def test_percentage_without_cap(self):
        totals = compute_totals([item(1000)], percentage(25), shipping=POLICY)

        assert totals.discount == D("250")

    def test_fixed_coupon_applies_value_at_minimum(self):
        totals = compute_totals([item(300)], fixed(100, min_order_value=300), shipping=POLICY)

        assert totals.discount == D("100")
        assert totals.coupon_code == "FIX"
        assert totals.coupon_rejection is None

    def test_fixed_coupon_rejected_below_minimum(self):
        totals = compute_totals([item(299)], fixed(100, min_order_value=300), shipping=POLICY)

        assert totals.discount == 0
        assert totals.coupon_code is None
        assert "minimum order value" in totals.coupon_rejection

    def test_inactive_coupon_rejected(self):
        totals = compute_totals([item(800)], fixed(100, active=False), shipping=POLICY)

        assert totals.discount == 0
        assert totals.coupon_rejection == "coupon is not active"

    def test_discount_clamped_to_subtotal(self):
        totals = compute_totals([item(30)], fixed(100), shipping=POLICY)

        assert totals.discount == D("30")
        assert totals.total == D("50")

    def test_idempotent(self):
        items = [item("333.33", 3), item(10, 1, "p2", "c1")]
        coupon = percentage("12.5", max_discount=200)
        offer = OfferTerms(id="o", name="o", type=DiscountType.FIXED, value=D("5"))

        first = compute_totals(items, coupon, lambda it: offer, shipping=POLICY)
        second = compute_totals(items, coupon, lambda it: offer, shipping=POLICY)

        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_rounded_keeps_formula(self):
        totals = compute_totals([item("333.33")], percentage(10), shipping=POLICY).rounded()

        assert totals.discount == D("33.33")
        assert totals.total == totals.subtotal - totals.discount + totals.shipping_charge

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValueError):
            compute_totals([item(10, 0)], shipping=POLICY)


class TestOffers:
    def test_offer_reduces_unit_price_before_aggregation(self):
        offer = OfferTerms(id="o1", name="20%", type=DiscountType.PERCENTAGE, value=D("20"))

        totals = compute_totals([item(1000, 2)], offer_resolver=lambda it: offer, shipping=POLICY)

        assert totals.lines[0].unit_price == D("800.00")
        assert totals.subtotal == D("1600.00")

    def test_offer_max_discount_caps_per_unit(self):
        offer = OfferTerms(id="o1", name="cap", type=DiscountType.PERCENTAGE, value=D("50"), max_discount=D("100"))

        totals = compute_totals([item(1000)], offer_resolver=lambda it: offer, shipping=POLICY)

        assert totals.subtotal == D("900.00")

    def test_fixed_offer_never_makes_price_negative(self):
        offer = OfferTerms(id="o1", name="big", type=DiscountType.FIXED, value=D("500"))

        totals = compute_totals([item(100)], offer_resolver=lambda it: offer, shipping=POLICY)

        assert totals.lines[0].unit_price == 0

    def test_resolver_returning_none_keeps_price(self):
        totals = compute_totals([item(120)], offer_resolver=lambda it: None, shipping=POLICY)

        assert totals.lines[0].offer is None
        assert totals.subtotal == D("120")


class TestCouponChecks:
    def test_normalize_code(self):
        assert normalize_code("  welcome10 ") == "WELCOME10"
        assert normalize_code(None) == ""

    def test_check_coupon_raises_with_bounds(self):
        with pytest.raises(CouponIneligible) as exc_info:
            check_coupon(fixed(100, min_order_value=300), D("250"))

        body = exc_info.value.to_dict()
        assert body["error"] == "coupon_ineligible"
        assert body["min_order_value"] == 300.0
        assert body["subtotal"] == 250.0

    def test_check_coupon_passes(self):
        check_coupon(percentage(10), D("1"))


class TestShippingPolicy:
    def test_threshold_is_inclusive(self):
        assert POLICY.charge_for(D("500")) == 0
        assert POLICY.charge_for(D("499.99")) == D("50")

    def test_custom_policy(self):
        policy = ShippingPolicy(free_shipping_threshold=D("1000"), default_shipping_charge=D("80"))

        totals = compute_totals([item(600)], shipping=policy)

        assert totals.shipping_charge == D("80")
        assert totals.total == D("680")
