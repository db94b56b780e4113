"""Seller service"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.models.item import Item
from app.models.seller import Seller, SellerPlatform
from app.services.errors import ItemNotFoundError, ItemValidationError
from app.services.analytics import round2
from app.services.lifecycle import SOLD_STATUSES
from app.services.operation_log_service import create_operation_log

logger = logging.getLogger(__name__)

SELLER_FIELDS = ("name", "platform", "contact_info", "store_link", "notes")


def _parse_platform(value) -> Optional[SellerPlatform]:
    if value is None:
        return None
    try:
        return SellerPlatform(value)
    except ValueError:
        raise ItemValidationError(f"Invalid platform: {value}", field="platform")


def _clean(data: Dict[str, Any]) -> Dict[str, Any]:
    values = {key: value for key, value in data.items() if key in SELLER_FIELDS}
    if "platform" in values:
        values["platform"] = _parse_platform(values["platform"])
    if "name" in values and not (values["name"] or "").strip():
        raise ItemValidationError("Seller name is required", field="name")
    return values


def get_seller(db: Session, seller_id: int) -> Seller:
    """Get seller by ID or raise ItemNotFoundError"""
    seller = db.query(Seller).filter(Seller.id == seller_id).first()
    if not seller:
        raise ItemNotFoundError("Seller", seller_id)
    return seller


def create_seller(db: Session, data: Dict[str, Any]) -> Seller:
    values = _clean(data)
    if "name" not in values:
        raise ItemValidationError("Seller name is required", field="name")

    seller = Seller(**values)
    db.add(seller)
    db.flush()
    create_operation_log(db, "create_seller", "seller", seller.id, {"name": seller.name})
    db.commit()
    db.refresh(seller)
    logger.info(f"Seller created: id={seller.id}, name={seller.name}")
    return seller


def update_seller(db: Session, seller_id: int, updates: Dict[str, Any]) -> Seller:
    seller = get_seller(db, seller_id)
    values = _clean(updates)
    for key, value in values.items():
        setattr(seller, key, value)

    create_operation_log(db, "update_seller", "seller", seller.id, {"fields": sorted(values)})
    db.commit()
    db.refresh(seller)
    logger.info(f"Seller updated: id={seller.id}, fields={sorted(values)}")
    return seller


def delete_seller(db: Session, seller_id: int) -> None:
    seller = get_seller(db, seller_id)
    name = seller.name
    db.delete(seller)
    create_operation_log(db, "delete_seller", "seller", seller_id, {"name": name})
    db.commit()
    logger.info(f"Seller deleted: id={seller_id}, name={name}")


def seller_stats(items: List[Item]) -> Dict[str, Any]:
    """Item counts and profit of one seller's items"""
    sold = [item for item in items if item.status in SOLD_STATUSES]
    total_profit = sum(item.profit or 0 for item in sold)
    avg_profit = total_profit / len(sold) if sold else 0
    return {
        "total_items": len(items),
        "sold_items": len(sold),
        "total_profit": round2(total_profit),
        "avg_profit": round2(avg_profit),
    }


def list_sellers(db: Session, search: Optional[str] = None) -> List[Dict[str, Any]]:
    """Sellers, newest first, each with stats over items carrying its name"""
    query = db.query(Seller)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(
            or_(
                func.lower(Seller.name).like(pattern),
                func.lower(Seller.contact_info).like(pattern),
            )
        )
    sellers = query.order_by(Seller.created_at.desc(), Seller.id.desc()).all()

    items_by_seller: Dict[str, List[Item]] = {}
    for item in db.query(Item).all():
        items_by_seller.setdefault(item.seller, []).append(item)

    results = []
    for seller in sellers:
        results.append({
            "seller": seller,
            **seller_stats(items_by_seller.get(seller.name, [])),
        })
    return results
