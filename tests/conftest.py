"""Pytest fixtures for order desk tests."""

from decimal import Decimal

import pytest

from orderdesk.config import AppConfig
from orderdesk.db.session import SessionFactory
from orderdesk.models import Category, Coupon, Offer, Product
from orderdesk.services.cart_service import CartService
from orderdesk.services.delivery_service import DeliveryService
from orderdesk.services.order_service import OrderService
from orderdesk.services.refund_ledger import RefundLedger
from orderdesk.services.settings_service import SettingsService

ADDRESS = {
    "full_name": "Asha Rao",
    "phone": "9876543210",
    "address_line1": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "pincode": "560001",
}


@pytest.fixture
def session_factory():
    factory = SessionFactory("sqlite:///:memory:")
    factory.create_all()
    yield factory
    factory.drop_all()
    factory.engine.dispose()


@pytest.fixture
def catalog(session_factory):
    """Seed products, coupons and one category offer."""
    with session_factory() as session:
        session.add(Category(id="cat-shoes", name="Shoes", slug="shoes"))
        session.add_all(
            [
                Product(id="p-shirt", sku="SHIRT-1", name="Shirt", price=Decimal("500"), mrp=Decimal("799"), stock_quantity=5),
                Product(id="p-mug", sku="MUG-1", name="Mug", price=Decimal("200"), stock_quantity=10),
                Product(id="p-shoe", sku="SHOE-1", name="Runner", price=Decimal("1000"), category_id="cat-shoes", stock_quantity=2),
                Product(id="p-gone", sku="GONE-1", name="Retired", price=Decimal("100"), stock_quantity=3, is_active=False),
            ]
        )
        session.add_all(
            [
                Coupon(id="c1", code="WELCOME10", type="percentage", value=Decimal("10"), max_discount=Decimal("40")),
                Coupon(id="c2", code="FLAT100", type="fixed", value=Decimal("100"), min_order_value=Decimal("300")),
                Coupon(id="c3", code="EXPIRED", type="fixed", value=Decimal("50"), is_active=False),
            ]
        )
        session.add(
            Offer(
                id="o1",
                name="Shoe week",
                scope="category",
                category_id="cat-shoes",
                type="percentage",
                value=Decimal("20"),
                priority=1,
            )
        )
    return session_factory


@pytest.fixture
def carts(catalog):
    return CartService(catalog)


@pytest.fixture
def orders(catalog):
    return OrderService(catalog)


@pytest.fixture
def ledger(catalog):
    return RefundLedger(catalog)


@pytest.fixture
def deliveries(catalog):
    return DeliveryService(catalog)


@pytest.fixture
def settings_service(catalog):
    return SettingsService(catalog)


@pytest.fixture
def place_order(carts, orders):
    """Fill a cart with ``items`` (product_id -> quantity) and check it out."""

    def _place(items, *, user_id="u1", payment_method="online", coupon_code=None, request_id=None):
        for product_id, quantity in items.items():
            carts.add_item(session_id=None, user_id=user_id, product_id=product_id, quantity=quantity)
        return orders.create_order(
            session_id=None,
            user_id=user_id,
            shipping_address=ADDRESS,
            payment_method=payment_method,
            coupon_code=coupon_code,
            request_id=request_id,
        )

    return _place


@pytest.fixture
def app_config():
    return AppConfig(
        database_url="sqlite:///:memory:",
        secret_key="test-secret",
        log_level="ERROR",
        currency="INR",
        admin_username="admin",
        admin_password="secret",
    )


@pytest.fixture
def client(catalog, app_config):
    from app import create_app

    app = create_app(app_config, session_factory=catalog)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def admin_client(client):
    resp = client.post("/admin/login", json={"username": "admin", "password": "secret"})
    assert resp.status_code == 200
    return client
