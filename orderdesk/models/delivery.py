from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String
from .base import Base
from ..utils.clock import utcnow


class Delivery(Base):
    __tablename__ = "delivery"

    id = Column(String(36), primary_key=True)
    order_id = Column(String(36), ForeignKey("order.id"), nullable=False, unique=True)
    status = Column(String(32), nullable=False, default="pending")
    partner_name = Column(String(128), nullable=True)
    tracking_number = Column(String(128), nullable=True)
    tracking_url = Column(String(512), nullable=True)
    delivered_at = Column(DateTime, nullable=True)
    # fixed at creation
    is_cod = Column(Boolean, nullable=False, default=False)
    cod_amount = Column(Numeric(12, 2), nullable=False, default=0)
    cod_collected = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}
