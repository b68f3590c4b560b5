from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from .base import Base
from ..utils.clock import utcnow


class Payment(Base):
    """Append-only ledger entry: positive amount for a capture, negative for a refund."""

    __tablename__ = "payment"

    id = Column(String(36), primary_key=True)
    order_id = Column(String(36), ForeignKey("order.id"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    method = Column(String(32), nullable=False)
    status = Column(String(32), nullable=False)
    refund_amount = Column(Numeric(12, 2), nullable=True)
    refund_reason = Column(Text, nullable=True)
    reference = Column(String(128), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
