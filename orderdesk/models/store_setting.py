from sqlalchemy import Column, DateTime, JSON, String
from .base import Base
from ..utils.clock import utcnow


class StoreSetting(Base):
    __tablename__ = "store_setting"

    key = Column(String(64), primary_key=True)
    value = Column(JSON, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
