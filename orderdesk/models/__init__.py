"""ORM models; importing this package registers every table on ``Base.metadata``."""

from .base import Base
from .cart_item import CartItem
from .category import Category
from .coupon import Coupon
from .delivery import Delivery
from .offer import Offer
from .order import Order, OrderItem
from .payment import Payment
from .product import Product
from .store_setting import StoreSetting

__all__ = [
    "Base",
    "CartItem",
    "Category",
    "Coupon",
    "Delivery",
    "Offer",
    "Order",
    "OrderItem",
    "Payment",
    "Product",
    "StoreSetting",
]
