"""Seller API"""
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from pydantic import BaseModel
from app.database import get_db
from app.models.seller import SellerPlatform
from app.services import seller_service
from app.routers.errors import service_errors

router = APIRouter(prefix="/api/sellers", tags=["sellers"])


class SellerCreateRequest(BaseModel):
    """Seller create request model"""
    name: str
    platform: Optional[SellerPlatform] = None
    contact_info: Optional[str] = None
    store_link: Optional[str] = None
    notes: Optional[str] = None


class SellerUpdateRequest(BaseModel):
    name: Optional[str] = None
    platform: Optional[SellerPlatform] = None
    contact_info: Optional[str] = None
    store_link: Optional[str] = None
    notes: Optional[str] = None


class SellerResponse(BaseModel):
    """Seller response model"""
    id: int
    name: str
    platform: Optional[SellerPlatform] = None
    contact_info: Optional[str] = None
    store_link: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SellerWithStatsResponse(SellerResponse):
    """Seller with stats over the items bought from it"""
    total_items: int = 0
    sold_items: int = 0
    total_profit: float = 0.0
    avg_profit: float = 0.0


@router.get("", response_model=List[SellerWithStatsResponse])
async def list_sellers(search: Optional[str] = None, db: Session = Depends(get_db)):
    """List sellers with item and profit stats"""
    rows = seller_service.list_sellers(db, search)
    result = []
    for row in rows:
        seller = SellerResponse.model_validate(row["seller"])
        result.append(SellerWithStatsResponse(
            **seller.model_dump(),
            total_items=row["total_items"],
            sold_items=row["sold_items"],
            total_profit=row["total_profit"],
            avg_profit=row["avg_profit"],
        ))
    return result


@router.post("", response_model=SellerResponse, status_code=status.HTTP_201_CREATED)
async def create_seller(request: SellerCreateRequest, db: Session = Depends(get_db)):
    with service_errors():
        return seller_service.create_seller(db, request.model_dump())


@router.get("/{seller_id}", response_model=SellerResponse)
async def get_seller(seller_id: int, db: Session = Depends(get_db)):
    with service_errors():
        return seller_service.get_seller(db, seller_id)


@router.put("/{seller_id}", response_model=SellerResponse)
async def update_seller(seller_id: int, request: SellerUpdateRequest, db: Session = Depends(get_db)):
    """Partially update a seller"""
    with service_errors():
        return seller_service.update_seller(db, seller_id, request.model_dump(exclude_unset=True))


@router.delete("/{seller_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_seller(seller_id: int, db: Session = Depends(get_db)):
    with service_errors():
        seller_service.delete_seller(db, seller_id)
