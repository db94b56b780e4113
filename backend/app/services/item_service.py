"""Item service: create, update, status transitions and queries"""
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.models.item import Item, ItemStatus, QcStatus
from app.services.errors import ItemNotFoundError, ItemValidationError
from app.services.item_rules import build_item_record, parse_category
from app.services.lifecycle import (
    QcResolution,
    QcTransition,
    ensure_writable_status,
    next_status,
    parse_qc_status,
    parse_status,
    resolve_qc_rejection,
    resolve_sold_date,
)
from app.services.operation_log_service import create_operation_log
from app.services.settings_service import SettingsSnapshot
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

DERIVED_FIELDS = (
    "price_php",
    "local_shipping_php",
    "forwarder_fee",
    "forwarder_buy_fee_php",
    "qc_service_fee_php",
    "total_cost",
    "profit",
)

# Set by the service, never taken from the caller
SYSTEM_FIELDS = ("id", "sold_date", "created_at", "updated_at") + DERIVED_FIELDS

# Columns that cannot hold NULL; a None in a patch means "leave unchanged"
REQUIRED_FIELDS = (
    "name",
    "category",
    "seller",
    "price_cny",
    "exchange_rate_used",
    "has_local_shipping",
    "qc_status",
    "is_branded",
    "forwarder_rate_per_kg",
    "is_forwarder_buy",
    "status",
    "order_date",
)

SORTABLE_FIELDS = (
    "price_cny",
    "price_php",
    "total_cost",
    "selling_price",
    "profit",
    "weight_kg",
    "order_date",
    "sold_date",
    "created_at",
    "updated_at",
)


def _columns(model) -> Tuple[str, ...]:
    return tuple(column.name for column in model.__table__.columns)


def record_to_dict(record) -> Dict[str, Any]:
    """Plain dict of every column of an ORM row"""
    return {name: getattr(record, name) for name in _columns(type(record))}


def clean_input(data: Dict[str, Any], required_fields: Iterable[str] = REQUIRED_FIELDS) -> Dict[str, Any]:
    """Drop system-owned keys and None values for required columns"""
    required = set(required_fields)
    return {
        key: value
        for key, value in data.items()
        if key not in SYSTEM_FIELDS and not (key in required and value is None)
    }


def apply_defaults(data: Dict[str, Any], defaults: SettingsSnapshot) -> Dict[str, Any]:
    """Fill rates the caller left out from the settings snapshot"""
    data = dict(data)
    if data.get("exchange_rate_used") is None:
        data["exchange_rate_used"] = defaults.cny_to_php_rate
    if data.get("forwarder_rate_per_kg") is None:
        data["forwarder_rate_per_kg"] = defaults.default_forwarder_rate
    if data.get("is_forwarder_buy") and data.get("forwarder_buy_rate_used") is None:
        data["forwarder_buy_rate_used"] = defaults.forwarder_buy_service_rate
    return data


def assign_columns(record, values: Dict[str, Any]) -> None:
    writable = set(_columns(type(record))) - {"id", "created_at"}
    for key, value in values.items():
        if key in writable:
            setattr(record, key, value)


def _apply_status(item: Item, status: ItemStatus, now: datetime) -> None:
    item.sold_date = resolve_sold_date(item.status, status, item.sold_date, now)
    item.status = status
    item.updated_at = now


def sort_records(records: List[Any], sort_by: Optional[str], sort_order: str = "desc") -> List[Any]:
    """Sort by a field, rows missing the field always last"""
    if not sort_by:
        return records
    present = [r for r in records if getattr(r, sort_by) is not None]
    missing = [r for r in records if getattr(r, sort_by) is None]
    present.sort(key=lambda r: getattr(r, sort_by), reverse=sort_order != "asc")
    return present + missing


def get_item(db: Session, item_id: int) -> Item:
    """Get item by ID or raise ItemNotFoundError"""
    item = db.query(Item).filter(Item.id == item_id).first()
    if not item:
        raise ItemNotFoundError("Item", item_id)
    return item


def create_item(
    db: Session,
    data: Dict[str, Any],
    defaults: SettingsSnapshot,
    now: Optional[datetime] = None
) -> Item:
    """Validate, derive and insert a new item"""
    now = now or utcnow()
    data = apply_defaults(clean_input(data), defaults)

    status = ensure_writable_status(data.get("status") or ItemStatus.ORDERED)
    qc_status = parse_qc_status(data.get("qc_status") or QcStatus.NOT_RECEIVED)
    record = build_item_record(data)
    record.update(
        status=status,
        qc_status=qc_status,
        sold_date=resolve_sold_date(None, status, None, now),
        updated_at=now,
    )

    item = Item()
    assign_columns(item, record)
    item.created_at = now
    db.add(item)
    db.flush()

    create_operation_log(db, "create_item", "item", item.id, {"name": item.name, "status": status.value})
    db.commit()
    db.refresh(item)
    logger.info(f"Item created: id={item.id}, name={item.name}, total_cost={item.total_cost}")
    return item


def update_item(
    db: Session,
    item_id: int,
    updates: Dict[str, Any],
    now: Optional[datetime] = None
) -> Item:
    """
    Merge a partial update onto the stored item, then validate and
    re-derive the merged record as a whole before writing it.
    """
    now = now or utcnow()
    item = get_item(db, item_id)
    updates = clean_input(updates)

    previous_status = item.status
    new_status = previous_status
    qc_status = item.qc_status
    if "status" in updates:
        new_status = ensure_writable_status(updates["status"])
    if "qc_status" in updates:
        qc_status = parse_qc_status(updates["qc_status"])
        if "status" not in updates and qc_status != item.qc_status:
            transition = next_status(previous_status, qc_status)
            if transition.auto_status:
                new_status = transition.auto_status

    merged = {**record_to_dict(item), **updates}
    try:
        record = build_item_record(merged)
    except ItemValidationError as e:
        logger.warning(f"Item update rejected: id={item_id}, field={e.field}, reason={e.message}")
        raise

    record.update(
        status=new_status,
        qc_status=qc_status,
        sold_date=resolve_sold_date(previous_status, new_status, item.sold_date, now),
        updated_at=now,
    )
    assign_columns(item, record)

    create_operation_log(db, "update_item", "item", item.id, {"fields": sorted(updates)})
    db.commit()
    db.refresh(item)
    logger.info(f"Item updated: id={item.id}, fields={sorted(updates)}")
    return item


def update_item_status(
    db: Session,
    item_id: int,
    status: str,
    now: Optional[datetime] = None
) -> Item:
    """Set the status of one item"""
    new_status = ensure_writable_status(status)
    item = get_item(db, item_id)
    previous = item.status
    _apply_status(item, new_status, now or utcnow())

    create_operation_log(
        db, "update_item_status", "item", item.id,
        {"from": previous.value, "to": new_status.value}
    )
    db.commit()
    db.refresh(item)
    logger.info(f"Item status changed: id={item.id}, {previous.value} -> {new_status.value}")
    return item


def update_qc_status(
    db: Session,
    item_id: int,
    qc_status: str,
    now: Optional[datetime] = None
) -> Tuple[Item, QcTransition]:
    """
    Set the QC status and apply its effect on the main status.

    Returns the item and the transition so the caller can offer the
    reorder/refund choice after a rejection.
    """
    new_qc = parse_qc_status(qc_status)
    item = get_item(db, item_id)
    now = now or utcnow()

    transition = next_status(item.status, new_qc)
    item.qc_status = new_qc
    item.updated_at = now
    if transition.auto_status:
        _apply_status(item, transition.auto_status, now)

    create_operation_log(
        db, "update_qc_status", "item", item.id,
        {
            "qc_status": new_qc.value,
            "auto_status": transition.auto_status.value if transition.auto_status else None,
        }
    )
    db.commit()
    db.refresh(item)
    logger.info(f"Item QC status changed: id={item.id}, qc_status={new_qc.value}, status={item.status.value}")
    return item, transition


def resolve_qc(
    db: Session,
    item_id: int,
    choice: str,
    now: Optional[datetime] = None
) -> Item:
    """Apply the reorder/refund choice to an item whose QC was rejected"""
    item = get_item(db, item_id)
    status, qc_status = resolve_qc_rejection(item.status, item.qc_status, choice)
    item.qc_status = qc_status
    _apply_status(item, status, now or utcnow())

    create_operation_log(
        db, "resolve_qc", "item", item.id,
        {"choice": QcResolution(choice).value, "status": status.value}
    )
    db.commit()
    db.refresh(item)
    logger.info(f"Item QC rejection resolved: id={item.id}, status={status.value}")
    return item


def bulk_update_status(
    db: Session,
    item_ids: List[int],
    status: str,
    now: Optional[datetime] = None
) -> Tuple[List[int], List[int]]:
    """
    Set one status on many items with a single shared timestamp.

    Ids without a row are skipped. Returns (updated_ids, skipped_ids).
    """
    new_status = ensure_writable_status(status)
    now = now or utcnow()
    ids = list(dict.fromkeys(item_ids))
    if not ids:
        return [], []

    items = {item.id: item for item in db.query(Item).filter(Item.id.in_(ids)).all()}
    updated, skipped = [], []
    for item_id in ids:
        item = items.get(item_id)
        if item is None:
            skipped.append(item_id)
            continue
        _apply_status(item, new_status, now)
        updated.append(item_id)

    create_operation_log(
        db, "bulk_update_status", "item", None,
        {"status": new_status.value, "updated_ids": updated, "skipped_ids": skipped}
    )
    db.commit()
    logger.info(f"Bulk status update to {new_status.value}: updated={len(updated)}, skipped={len(skipped)}")
    return updated, skipped


def delete_item(db: Session, item_id: int) -> None:
    """Hard delete an item"""
    item = get_item(db, item_id)
    name = item.name
    db.delete(item)
    create_operation_log(db, "delete_item", "item", item_id, {"name": name})
    db.commit()
    logger.info(f"Item deleted: id={item_id}, name={name}")


def list_items(
    db: Session,
    status: Optional[str] = None,
    category: Optional[str] = None,
    seller: Optional[str] = None,
    qc_status: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: str = "desc"
) -> List[Item]:
    """List items, newest first unless a sort field is given"""
    if sort_by and sort_by not in SORTABLE_FIELDS:
        raise ItemValidationError(f"Cannot sort by: {sort_by}", field="sort_by")

    query = db.query(Item)
    if status:
        query = query.filter(Item.status == parse_status(status))
    if category:
        query = query.filter(Item.category == parse_category(category))
    if seller:
        query = query.filter(Item.seller == seller)
    if qc_status:
        query = query.filter(Item.qc_status == parse_qc_status(qc_status))
    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(
            or_(
                func.lower(Item.name).like(pattern),
                func.lower(Item.seller).like(pattern),
                func.lower(Item.batch).like(pattern),
                func.lower(Item.customer_name).like(pattern),
            )
        )

    items = query.order_by(Item.created_at.desc(), Item.id.desc()).all()
    return sort_records(items, sort_by, sort_order)


def get_recent_items(db: Session, limit: int = 8) -> List[Item]:
    return db.query(Item).order_by(Item.created_at.desc(), Item.id.desc()).limit(limit).all()


def count_items_by_status(db: Session) -> Dict[str, int]:
    """Number of items per status value"""
    rows = db.query(Item.status, func.count(Item.id)).group_by(Item.status).all()
    return {status.value: count for status, count in rows}
