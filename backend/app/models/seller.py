"""Seller model"""
from sqlalchemy import Column, Integer, String, DateTime, Enum
from sqlalchemy.sql import func
import enum
from app.database import Base


class SellerPlatform(str, enum.Enum):
    """Storefront a seller trades on"""
    WEIDIAN = "weidian"
    TAOBAO = "taobao"
    ALIBABA_1688 = "1688"
    YUPOO = "yupoo"
    DIRECT = "direct"


class Seller(Base):
    """Seller model"""
    __tablename__ = "sellers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    platform = Column(Enum(SellerPlatform), nullable=True)
    contact_info = Column(String, nullable=True)
    store_link = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
