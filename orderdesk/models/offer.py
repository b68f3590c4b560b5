from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String
from .base import Base


class Offer(Base):
    """Promotional discount scoped to a product or a whole category."""

    __tablename__ = "offer"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    scope = Column(String(16), nullable=False)  # product / category
    product_id = Column(String(36), ForeignKey("product.id"), nullable=True)
    category_id = Column(String(36), ForeignKey("category.id"), nullable=True)
    type = Column(String(16), nullable=False)  # percentage / fixed
    value = Column(Numeric(12, 2), nullable=False)
    max_discount = Column(Numeric(12, 2), nullable=True)
    priority = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    starts_at = Column(DateTime, nullable=True)
    ends_at = Column(DateTime, nullable=True)
