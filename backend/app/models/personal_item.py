"""Personal (not for resale) item model"""
from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, Enum, JSON
from sqlalchemy.sql import func
import enum
from app.database import Base
from app.models.item import ItemCategory, QcStatus


class PersonalItemStatus(str, enum.Enum):
    """Personal item status enum"""
    ORDERED = "ordered"
    QC_SENT = "qc_sent"
    ITEM_SHIPOUT = "item_shipout"
    ARRIVED_PH_WAREHOUSE = "arrived_ph_warehouse"
    DELIVERED_TO_ME = "delivered_to_me"
    CANCELLED = "cancelled"


class PersonalItem(Base):
    """Item bought for personal use; same cost fields as Item, no sale side"""
    __tablename__ = "personal_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    category = Column(Enum(ItemCategory), nullable=False, index=True)
    image_url = Column(String, nullable=True)
    size = Column(String, nullable=True)

    seller = Column(String, nullable=False, index=True)
    seller_contact = Column(String, nullable=True)
    batch = Column(String, nullable=True)

    price_cny = Column(Float, nullable=False)
    exchange_rate_used = Column(Float, nullable=False)
    price_php = Column(Float, nullable=False)
    has_local_shipping = Column(Boolean, default=False, nullable=False)
    local_shipping_cny = Column(Float, nullable=True)
    local_shipping_php = Column(Float, nullable=True)

    qc_photo_ids = Column(JSON, nullable=True)
    qc_status = Column(Enum(QcStatus), default=QcStatus.NOT_RECEIVED, nullable=False)

    weight_kg = Column(Float, nullable=True)
    is_branded = Column(Boolean, default=False, nullable=False)
    forwarder_rate_per_kg = Column(Float, nullable=False)
    forwarder_fee = Column(Float, nullable=True)
    is_forwarder_buy = Column(Boolean, default=False, nullable=False)
    forwarder_buy_rate_used = Column(Float, nullable=True)
    forwarder_buy_fee_php = Column(Float, nullable=True)
    qc_service_fee_php = Column(Float, nullable=True)

    status = Column(Enum(PersonalItemStatus), default=PersonalItemStatus.ORDERED, nullable=False, index=True)

    notes = Column(String, nullable=True)
    order_date = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
