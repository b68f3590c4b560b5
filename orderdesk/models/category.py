from sqlalchemy import Boolean, Column, Integer, String
from .base import Base


class Category(Base):
    """Product grouping; category-scoped offers match on ``id``, catalog filters on ``slug``."""

    __tablename__ = "category"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
