"""Application settings model"""
from sqlalchemy import Column, Integer, Float, DateTime
from sqlalchemy.sql import func
from app.database import Base


class Settings(Base):
    """Single-row table holding default rates used to pre-fill new items"""
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, index=True)
    cny_to_php_rate = Column(Float, nullable=False)  # default exchange rate for new items
    forwarder_buy_service_rate = Column(Float, nullable=True)  # CNY->PHP rate the forwarder bills its buy service at
    default_forwarder_rate = Column(Float, nullable=False)  # PHP per kg
    default_markup_min = Column(Float, nullable=False)  # target profit range (PHP)
    default_markup_max = Column(Float, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
