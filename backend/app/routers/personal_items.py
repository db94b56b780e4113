"""Personal item API"""
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from pydantic import BaseModel
from app.database import get_db
from app.models.item import ItemCategory, QcStatus
from app.models.personal_item import PersonalItemStatus
from app.services import personal_item_service
from app.services.settings_service import get_settings_snapshot
from app.routers.errors import service_errors

router = APIRouter(prefix="/api/personal-items", tags=["personal-items"])


class PersonalItemCreateRequest(BaseModel):
    """Personal item create request model"""
    name: str
    category: ItemCategory
    image_url: Optional[str] = None
    size: Optional[str] = None
    seller: str
    seller_contact: Optional[str] = None
    batch: Optional[str] = None
    price_cny: float
    exchange_rate_used: Optional[float] = None
    has_local_shipping: bool = False
    local_shipping_cny: Optional[float] = None
    qc_photo_ids: Optional[List[str]] = None
    qc_status: QcStatus = QcStatus.NOT_RECEIVED
    weight_kg: Optional[float] = None
    is_branded: bool = False
    forwarder_rate_per_kg: Optional[float] = None
    is_forwarder_buy: bool = False
    forwarder_buy_rate_used: Optional[float] = None
    status: PersonalItemStatus = PersonalItemStatus.ORDERED
    notes: Optional[str] = None
    order_date: datetime


class PersonalItemUpdateRequest(BaseModel):
    name: Optional[str] = None
    category: Optional[ItemCategory] = None
    image_url: Optional[str] = None
    size: Optional[str] = None
    seller: Optional[str] = None
    seller_contact: Optional[str] = None
    batch: Optional[str] = None
    price_cny: Optional[float] = None
    exchange_rate_used: Optional[float] = None
    has_local_shipping: Optional[bool] = None
    local_shipping_cny: Optional[float] = None
    qc_photo_ids: Optional[List[str]] = None
    qc_status: Optional[QcStatus] = None
    weight_kg: Optional[float] = None
    is_branded: Optional[bool] = None
    forwarder_rate_per_kg: Optional[float] = None
    is_forwarder_buy: Optional[bool] = None
    forwarder_buy_rate_used: Optional[float] = None
    status: Optional[PersonalItemStatus] = None
    notes: Optional[str] = None
    order_date: Optional[datetime] = None


class PersonalItemResponse(BaseModel):
    """Personal item response model"""
    id: int
    name: str
    category: ItemCategory
    image_url: Optional[str] = None
    size: Optional[str] = None
    seller: str
    seller_contact: Optional[str] = None
    batch: Optional[str] = None
    price_cny: float
    exchange_rate_used: float
    price_php: float
    has_local_shipping: bool
    local_shipping_cny: Optional[float] = None
    local_shipping_php: Optional[float] = None
    qc_photo_ids: Optional[List[str]] = None
    qc_status: QcStatus
    weight_kg: Optional[float] = None
    is_branded: bool
    forwarder_rate_per_kg: float
    forwarder_fee: Optional[float] = None
    is_forwarder_buy: bool
    forwarder_buy_rate_used: Optional[float] = None
    forwarder_buy_fee_php: Optional[float] = None
    qc_service_fee_php: Optional[float] = None
    status: PersonalItemStatus
    notes: Optional[str] = None
    order_date: datetime
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UpdatePersonalStatusRequest(BaseModel):
    status: PersonalItemStatus


@router.get("", response_model=List[PersonalItemResponse])
async def list_personal_items(
    item_status: Optional[str] = Query(None, alias="status"),
    category: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db)
):
    """List personal items"""
    with service_errors():
        return personal_item_service.list_personal_items(
            db,
            status=item_status,
            category=category,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
        )


@router.post("", response_model=PersonalItemResponse, status_code=status.HTTP_201_CREATED)
async def create_personal_item(request: PersonalItemCreateRequest, db: Session = Depends(get_db)):
    """Create a personal item"""
    defaults = get_settings_snapshot(db)
    with service_errors():
        return personal_item_service.create_personal_item(db, request.model_dump(), defaults)


@router.get("/{item_id}", response_model=PersonalItemResponse)
async def get_personal_item(item_id: int, db: Session = Depends(get_db)):
    with service_errors():
        return personal_item_service.get_personal_item(db, item_id)


@router.put("/{item_id}", response_model=PersonalItemResponse)
async def update_personal_item(
    item_id: int,
    request: PersonalItemUpdateRequest,
    db: Session = Depends(get_db)
):
    """Partially update a personal item"""
    with service_errors():
        return personal_item_service.update_personal_item(db, item_id, request.model_dump(exclude_unset=True))


@router.put("/{item_id}/status", response_model=PersonalItemResponse)
async def update_personal_item_status(
    item_id: int,
    request: UpdatePersonalStatusRequest,
    db: Session = Depends(get_db)
):
    with service_errors():
        return personal_item_service.update_personal_item_status(db, item_id, request.status)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_personal_item(item_id: int, db: Session = Depends(get_db)):
    """Delete a personal item"""
    with service_errors():
        personal_item_service.delete_personal_item(db, item_id)
