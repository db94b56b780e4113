"""Profit analytics API (read-only)"""
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.item import Item
from app.services import analytics
from app.utils.clock import utcnow

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


def _all_items(db: Session) -> List[Item]:
    return db.query(Item).all()


@router.get("/dashboard", response_model=dict)
async def get_dashboard_stats(db: Session = Depends(get_db)):
    """Headline numbers for the current month"""
    return analytics.dashboard_stats(_all_items(db), utcnow())


@router.get("/monthly-profit", response_model=List[dict])
async def get_monthly_profit(db: Session = Depends(get_db)):
    return analytics.monthly_profit(_all_items(db))


@router.get("/profit-by-category", response_model=List[dict])
async def get_profit_by_category(db: Session = Depends(get_db)):
    return analytics.profit_by_category(_all_items(db))


@router.get("/profit-by-seller", response_model=List[dict])
async def get_profit_by_seller(db: Session = Depends(get_db)):
    return analytics.profit_by_seller(_all_items(db))


@router.get("/cost-breakdown", response_model=dict)
async def get_cost_breakdown(db: Session = Depends(get_db)):
    """Average cost components per sold item"""
    return analytics.cost_breakdown(_all_items(db))


@router.get("/top-batches", response_model=List[dict])
async def get_top_batches(
    limit: int = Query(analytics.TOP_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db)
):
    return analytics.top_batches(_all_items(db), limit)


@router.get("/top-customers", response_model=List[dict])
async def get_top_customers(
    limit: int = Query(analytics.TOP_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db)
):
    return analytics.top_customers(_all_items(db), limit)


@router.get("/profit-distribution", response_model=List[dict])
async def get_profit_distribution(db: Session = Depends(get_db)):
    return analytics.profit_distribution(_all_items(db))


@router.get("/cumulative-profit", response_model=List[dict])
async def get_cumulative_profit(db: Session = Depends(get_db)):
    """Running profit total ordered by sold date"""
    return analytics.cumulative_profit(_all_items(db))


@router.get("/items-sold-by-month", response_model=List[dict])
async def get_items_sold_by_month(db: Session = Depends(get_db)):
    return analytics.items_sold_by_month(_all_items(db))


@router.get("/all-time", response_model=dict)
async def get_all_time_stats(db: Session = Depends(get_db)):
    """Lifetime totals with best month and best seller"""
    return analytics.all_time_stats(_all_items(db))
