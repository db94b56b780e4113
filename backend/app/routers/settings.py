"""Settings API"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field
from app.database import get_db
from app.services.settings_service import get_or_create_settings, update_settings
from app.routers.errors import service_errors

router = APIRouter(prefix="/api/settings", tags=["settings"])


class SettingsResponse(BaseModel):
    """Settings response model"""
    id: int
    cny_to_php_rate: float
    forwarder_buy_service_rate: Optional[float] = None
    default_forwarder_rate: float
    default_markup_min: float
    default_markup_max: float
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SettingsUpdateRequest(BaseModel):
    """Settings update request model; omitted fields keep their value"""
    cny_to_php_rate: Optional[float] = Field(None, gt=0)
    forwarder_buy_service_rate: Optional[float] = Field(None, gt=0)
    default_forwarder_rate: Optional[float] = Field(None, gt=0)
    default_markup_min: Optional[float] = Field(None, ge=0)
    default_markup_max: Optional[float] = Field(None, ge=0)


@router.get("", response_model=SettingsResponse)
async def get_settings(db: Session = Depends(get_db)):
    """Get current settings"""
    return get_or_create_settings(db)


@router.put("", response_model=SettingsResponse)
async def update_settings_api(request: SettingsUpdateRequest, db: Session = Depends(get_db)):
    """Update settings"""
    with service_errors():
        return update_settings(db, request.model_dump(exclude_unset=True))
