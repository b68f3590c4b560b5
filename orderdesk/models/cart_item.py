from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from .base import Base
from ..utils.clock import utcnow


class CartItem(Base):
    __tablename__ = "cart_item"

    id = Column(String(36), primary_key=True)
    session_id = Column(String(128), nullable=True, index=True)
    user_id = Column(String(128), nullable=True, index=True)
    product_id = Column(String(36), ForeignKey("product.id"), nullable=False)
    variant_name = Column(String(128), nullable=True)
    quantity = Column(Integer, nullable=False)
    added_at = Column(DateTime, nullable=False, default=utcnow)
