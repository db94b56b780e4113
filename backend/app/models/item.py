"""Inventory item models"""
from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, Enum, JSON
from sqlalchemy.sql import func
import enum
from app.database import Base


class ItemCategory(str, enum.Enum):
    """Item category enum"""
    SHOES = "shoes"
    CLOTHES = "clothes"
    WATCHES_ACCESSORIES = "watches_accessories"


class QcStatus(str, enum.Enum):
    """QC photo review status"""
    NOT_RECEIVED = "not_received"
    PENDING_REVIEW = "pending_review"
    GL = "gl"  # approved, good to ship
    RL = "rl"  # rejected


class ItemStatus(str, enum.Enum):
    """Item status enum (current pipeline plus legacy values)"""
    # Current pipeline
    ORDERED = "ordered"
    QC_SENT = "qc_sent"
    ITEM_SHIPOUT = "item_shipout"
    ARRIVED_PH_WAREHOUSE = "arrived_ph_warehouse"
    DELIVERED_TO_CUSTOMER = "delivered_to_customer"
    REFUNDED = "refunded"
    # Legacy statuses, kept readable for existing rows
    SHIPPED_TO_WAREHOUSE = "shipped_to_warehouse"
    AT_CN_WAREHOUSE = "at_cn_warehouse"
    SHIPPED_TO_PH = "shipped_to_ph"
    AT_PH_WAREHOUSE = "at_ph_warehouse"
    DELIVERED_TO_ME = "delivered_to_me"
    SOLD = "sold"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class Item(Base):
    """Resale item model"""
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, index=True)

    # Identity
    name = Column(String, nullable=False)
    category = Column(Enum(ItemCategory), nullable=False, index=True)
    image_url = Column(String, nullable=True)
    size = Column(String, nullable=True)

    # Source
    seller = Column(String, nullable=False, index=True)
    seller_contact = Column(String, nullable=True)
    batch = Column(String, nullable=True)

    # Pricing
    price_cny = Column(Float, nullable=False)
    exchange_rate_used = Column(Float, nullable=False)  # snapshot, never re-read from settings
    price_php = Column(Float, nullable=False)
    has_local_shipping = Column(Boolean, default=False, nullable=False)
    local_shipping_cny = Column(Float, nullable=True)
    local_shipping_php = Column(Float, nullable=True)

    # QC
    qc_photo_ids = Column(JSON, nullable=True)
    qc_status = Column(Enum(QcStatus), default=QcStatus.NOT_RECEIVED, nullable=False, index=True)

    # Shipping & forwarder
    weight_kg = Column(Float, nullable=True)
    is_branded = Column(Boolean, default=False, nullable=False)
    forwarder_rate_per_kg = Column(Float, nullable=False)
    forwarder_fee = Column(Float, nullable=True)
    is_forwarder_buy = Column(Boolean, default=False, nullable=False)
    forwarder_buy_rate_used = Column(Float, nullable=True)
    forwarder_buy_fee_php = Column(Float, nullable=True)
    qc_service_fee_php = Column(Float, nullable=True)

    # Selling & delivery
    selling_price = Column(Float, nullable=True)
    lalamove_fee = Column(Float, nullable=True)
    customer_name = Column(String, nullable=True)

    # Computed
    total_cost = Column(Float, nullable=True)
    profit = Column(Float, nullable=True)

    status = Column(Enum(ItemStatus), default=ItemStatus.ORDERED, nullable=False, index=True)

    notes = Column(String, nullable=True)
    order_date = Column(DateTime(timezone=True), nullable=False, index=True)
    sold_date = Column(DateTime(timezone=True), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
