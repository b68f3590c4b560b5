from sqlalchemy import Boolean, Column, DateTime, Numeric, String, func
from .base import Base


class Coupon(Base):
    __tablename__ = "coupon"

    id = Column(String(36), primary_key=True)
    code = Column(String(64), nullable=False, unique=True)  # stored uppercase
    type = Column(String(16), nullable=False)  # percentage / fixed
    value = Column(Numeric(12, 2), nullable=False)
    min_order_value = Column(Numeric(12, 2), nullable=True)
    max_discount = Column(Numeric(12, 2), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
