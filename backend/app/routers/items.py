"""Inventory item API"""
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from pydantic import BaseModel
from app.config import config
from app.database import get_db
from app.models.item import ItemCategory, ItemStatus, QcStatus
from app.services import item_service
from app.services.cost_engine import CostEngine, classify_markup
from app.services.item_rules import validate_finite
from app.services.lifecycle import QcResolution
from app.services.settings_service import get_settings_snapshot
from app.routers.errors import service_errors

router = APIRouter(prefix="/api/items", tags=["items"])


class ItemCreateRequest(BaseModel):
    """Item create request model; omitted rates are taken from settings"""
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
    selling_price: Optional[float] = None
    lalamove_fee: Optional[float] = None
    customer_name: Optional[str] = None
    status: ItemStatus = ItemStatus.ORDERED
    notes: Optional[str] = None
    order_date: datetime


class ItemUpdateRequest(BaseModel):
    """Item update request model; only fields sent are changed"""
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
    selling_price: Optional[float] = None
    lalamove_fee: Optional[float] = None
    customer_name: Optional[str] = None
    status: Optional[ItemStatus] = None
    notes: Optional[str] = None
    order_date: Optional[datetime] = None


class ItemResponse(BaseModel):
    """Item response model"""
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
    selling_price: Optional[float] = None
    lalamove_fee: Optional[float] = None
    customer_name: Optional[str] = None
    total_cost: Optional[float] = None
    profit: Optional[float] = None
    status: ItemStatus
    notes: Optional[str] = None
    order_date: datetime
    sold_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UpdateStatusRequest(BaseModel):
    """Update status request model"""
    status: ItemStatus


class UpdateQcStatusRequest(BaseModel):
    """Update QC status request model"""
    qc_status: QcStatus


class QcStatusResponse(BaseModel):
    """QC status change result; choices are set when the caller must pick a branch"""
    item: ItemResponse
    auto_status: Optional[ItemStatus] = None
    choices: List[QcResolution] = []


class QcResolutionRequest(BaseModel):
    """Reorder or refund after a rejected QC"""
    resolution: QcResolution


class BulkStatusRequest(BaseModel):
    """Bulk status update request model"""
    ids: List[int]
    status: ItemStatus


class BulkStatusResponse(BaseModel):
    updated_ids: List[int]
    skipped_ids: List[int]
    updated_count: int


class CostPreviewRequest(BaseModel):
    """Form values for a live cost preview; missing rates come from settings"""
    price_cny: float = 0
    exchange_rate: Optional[float] = None
    has_local_shipping: bool = False
    local_shipping_cny: float = 0
    weight_kg: float = 0
    forwarder_rate_per_kg: Optional[float] = None
    is_forwarder_buy: bool = False
    forwarder_buy_rate_used: Optional[float] = None
    lalamove_fee: float = 0
    selling_price: float = 0


PREVIEW_NUMBER_FIELDS = (
    "price_cny",
    "exchange_rate",
    "local_shipping_cny",
    "weight_kg",
    "forwarder_rate_per_kg",
    "forwarder_buy_rate_used",
    "lalamove_fee",
    "selling_price",
)


class CostPreviewResponse(BaseModel):
    """Cost preview response model"""
    price_php: float
    local_shipping_php: float
    forwarder_fee: float
    forwarder_buy_fee_cny: float
    forwarder_buy_fee_php: float
    qc_service_fee_php: float
    total_cost: float
    profit: float
    markup_percent: float
    markup_status: Optional[str] = None  # in_range / near_range / out_of_range, None until priced
    markup_min: float
    markup_max: float


@router.get("", response_model=List[ItemResponse])
async def list_items(
    item_status: Optional[str] = Query(None, alias="status"),
    category: Optional[str] = None,
    seller: Optional[str] = None,
    qc_status: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db)
):
    """List items with filters, search and sorting"""
    with service_errors():
        return item_service.list_items(
            db,
            status=item_status,
            category=category,
            seller=seller,
            qc_status=qc_status,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
        )


# Fixed paths must be defined BEFORE /{item_id} to avoid path matching conflicts
@router.get("/recent", response_model=List[ItemResponse])
async def get_recent_items(
    limit: int = Query(config.RECENT_ITEMS_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """Most recently created items"""
    return item_service.get_recent_items(db, limit)


@router.get("/status-counts", response_model=dict)
async def get_status_counts(db: Session = Depends(get_db)):
    """Number of items per status"""
    return item_service.count_items_by_status(db)


@router.post("/preview", response_model=CostPreviewResponse)
async def preview_costs(request: CostPreviewRequest, db: Session = Depends(get_db)):
    """Live cost and markup figures for an unsaved item"""
    with service_errors():
        validate_finite(request.model_dump(), PREVIEW_NUMBER_FIELDS)
    defaults = get_settings_snapshot(db)

    def or_default(value, default):
        return value if value is not None else default

    costs = CostEngine.compute_live_costs(
        price_cny=request.price_cny,
        exchange_rate=or_default(request.exchange_rate, defaults.cny_to_php_rate),
        has_local_shipping=request.has_local_shipping,
        local_shipping_cny=request.local_shipping_cny,
        weight_kg=request.weight_kg,
        forwarder_rate_per_kg=or_default(request.forwarder_rate_per_kg, defaults.default_forwarder_rate),
        is_forwarder_buy=request.is_forwarder_buy,
        forwarder_buy_rate_used=or_default(request.forwarder_buy_rate_used, defaults.forwarder_buy_service_rate),
        lalamove_fee=request.lalamove_fee,
        selling_price=request.selling_price,
    )

    targets = defaults.markup_targets
    markup_status = classify_markup(costs.profit, targets) if request.selling_price > 0 else None
    return CostPreviewResponse(
        **{key: float(value) for key, value in costs.as_dict().items()},
        markup_status=markup_status,
        markup_min=float(targets.min_markup),
        markup_max=float(targets.max_markup),
    )


@router.post("/bulk-status", response_model=BulkStatusResponse)
async def bulk_update_status(request: BulkStatusRequest, db: Session = Depends(get_db)):
    """Set one status on many items; ids that no longer exist are skipped"""
    with service_errors():
        updated, skipped = item_service.bulk_update_status(db, request.ids, request.status)
    return BulkStatusResponse(updated_ids=updated, skipped_ids=skipped, updated_count=len(updated))


@router.post("", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(request: ItemCreateRequest, db: Session = Depends(get_db)):
    """Create an item"""
    defaults = get_settings_snapshot(db)
    with service_errors():
        return item_service.create_item(db, request.model_dump(), defaults)


@router.get("/{item_id}", response_model=ItemResponse)
async def get_item(item_id: int, db: Session = Depends(get_db)):
    with service_errors():
        return item_service.get_item(db, item_id)


@router.put("/{item_id}", response_model=ItemResponse)
async def update_item(item_id: int, request: ItemUpdateRequest, db: Session = Depends(get_db)):
    """Partially update an item; derived costs are recomputed"""
    with service_errors():
        return item_service.update_item(db, item_id, request.model_dump(exclude_unset=True))


@router.put("/{item_id}/status", response_model=ItemResponse)
async def update_item_status(item_id: int, request: UpdateStatusRequest, db: Session = Depends(get_db)):
    """Update item status"""
    with service_errors():
        return item_service.update_item_status(db, item_id, request.status)


@router.put("/{item_id}/qc-status", response_model=QcStatusResponse)
async def update_qc_status(item_id: int, request: UpdateQcStatusRequest, db: Session = Depends(get_db)):
    """Update QC status; GL at qc_sent ships the item, RL returns the available choices"""
    with service_errors():
        item, transition = item_service.update_qc_status(db, item_id, request.qc_status)
    return QcStatusResponse(
        item=ItemResponse.model_validate(item),
        auto_status=transition.auto_status,
        choices=list(transition.choices),
    )


@router.put("/{item_id}/qc-resolution", response_model=ItemResponse)
async def resolve_qc(item_id: int, request: QcResolutionRequest, db: Session = Depends(get_db)):
    """Reorder or refund an item whose QC was rejected"""
    with service_errors():
        return item_service.resolve_qc(db, item_id, request.resolution)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(item_id: int, db: Session = Depends(get_db)):
    with service_errors():
        item_service.delete_item(db, item_id)
