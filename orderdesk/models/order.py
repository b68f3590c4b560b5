from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, Numeric, String
from sqlalchemy.orm import relationship
from .base import Base
from ..utils.clock import utcnow


class Order(Base):
    __tablename__ = "order"

    id = Column(String(36), primary_key=True)
    order_number = Column(String(32), nullable=False, unique=True)
    session_id = Column(String(128), nullable=True)
    user_id = Column(String(128), nullable=True, index=True)
    status = Column(String(32), nullable=False, default="new")
    payment_status = Column(String(32), nullable=False, default="pending")
    payment_method = Column(String(32), nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)
    discount = Column(Numeric(12, 2), nullable=False)
    shipping_charge = Column(Numeric(12, 2), nullable=False)
    total = Column(Numeric(12, 2), nullable=False)
    coupon_code = Column(String(64), nullable=True)
    currency = Column(String(3), nullable=False)
    shipping_address = Column(JSON, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
    request_id = Column(String(128), nullable=True, unique=True)
    version = Column(Integer, nullable=False, default=1)

    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.position")

    # concurrent writes to the same order fail instead of overwriting each other
    __mapper_args__ = {"version_id_col": version}


class OrderItem(Base):
    """Line snapshot taken when the order is placed; never edited afterwards."""

    __tablename__ = "order_item"

    id = Column(String(36), primary_key=True)
    order_id = Column(String(36), ForeignKey("order.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    product_id = Column(String(36), nullable=True)
    product_name = Column(String(255), nullable=False)
    variant_name = Column(String(128), nullable=True)
    sku = Column(String(128), nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    total = Column(Numeric(12, 2), nullable=False)

    order = relationship("Order", back_populates="items")
