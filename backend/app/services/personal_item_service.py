"""Personal item service"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.models.item import QcStatus
from app.models.personal_item import PersonalItem, PersonalItemStatus
from app.services.errors import ItemNotFoundError, ItemValidationError
from app.services.item_rules import SALE_FIELDS, build_item_record, parse_category
from app.services.item_service import (
    REQUIRED_FIELDS,
    SORTABLE_FIELDS,
    apply_defaults,
    assign_columns,
    clean_input,
    record_to_dict,
    sort_records,
)
from app.services.lifecycle import parse_qc_status
from app.services.operation_log_service import create_operation_log
from app.services.settings_service import SettingsSnapshot
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


def parse_personal_status(value: Union[str, PersonalItemStatus]) -> PersonalItemStatus:
    try:
        return PersonalItemStatus(value)
    except ValueError:
        raise ItemValidationError(f"Invalid status: {value}", field="status")


def _strip_sale_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if key not in SALE_FIELDS}


def get_personal_item(db: Session, item_id: int) -> PersonalItem:
    """Get personal item by ID or raise ItemNotFoundError"""
    personal_item = db.query(PersonalItem).filter(PersonalItem.id == item_id).first()
    if not personal_item:
        raise ItemNotFoundError("Personal item", item_id)
    return personal_item


def create_personal_item(
    db: Session,
    data: Dict[str, Any],
    defaults: SettingsSnapshot,
    now: Optional[datetime] = None
) -> PersonalItem:
    """Validate, derive and insert a personal item"""
    now = now or utcnow()
    data = apply_defaults(_strip_sale_fields(clean_input(data)), defaults)

    status = parse_personal_status(data.get("status") or PersonalItemStatus.ORDERED)
    qc_status = parse_qc_status(data.get("qc_status") or QcStatus.NOT_RECEIVED)
    record = build_item_record(data, include_sale=False)
    record.update(status=status, qc_status=qc_status, updated_at=now)

    personal_item = PersonalItem()
    assign_columns(personal_item, record)
    personal_item.created_at = now
    db.add(personal_item)
    db.flush()

    create_operation_log(db, "create_personal_item", "personal_item", personal_item.id, {"name": personal_item.name})
    db.commit()
    db.refresh(personal_item)
    logger.info(f"Personal item created: id={personal_item.id}, name={personal_item.name}")
    return personal_item


def update_personal_item(
    db: Session,
    item_id: int,
    updates: Dict[str, Any],
    now: Optional[datetime] = None
) -> PersonalItem:
    """Merge a partial update, then validate and re-derive the whole record"""
    personal_item = get_personal_item(db, item_id)
    updates = _strip_sale_fields(clean_input(updates, REQUIRED_FIELDS))

    if "status" in updates:
        updates["status"] = parse_personal_status(updates["status"])
    if "qc_status" in updates:
        updates["qc_status"] = parse_qc_status(updates["qc_status"])

    merged = {**record_to_dict(personal_item), **updates}
    try:
        record = build_item_record(merged, include_sale=False)
    except ItemValidationError as e:
        logger.warning(f"Personal item update rejected: id={item_id}, field={e.field}, reason={e.message}")
        raise
    record["updated_at"] = now or utcnow()
    assign_columns(personal_item, record)

    create_operation_log(db, "update_personal_item", "personal_item", personal_item.id, {"fields": sorted(updates)})
    db.commit()
    db.refresh(personal_item)
    logger.info(f"Personal item updated: id={personal_item.id}, fields={sorted(updates)}")
    return personal_item


def update_personal_item_status(
    db: Session,
    item_id: int,
    status: str,
    now: Optional[datetime] = None
) -> PersonalItem:
    new_status = parse_personal_status(status)
    personal_item = get_personal_item(db, item_id)
    previous = personal_item.status
    personal_item.status = new_status
    personal_item.updated_at = now or utcnow()

    create_operation_log(
        db, "update_personal_item_status", "personal_item", personal_item.id,
        {"from": previous.value, "to": new_status.value}
    )
    db.commit()
    db.refresh(personal_item)
    logger.info(f"Personal item status changed: id={personal_item.id}, {previous.value} -> {new_status.value}")
    return personal_item


def delete_personal_item(db: Session, item_id: int) -> None:
    personal_item = get_personal_item(db, item_id)
    db.delete(personal_item)
    create_operation_log(db, "delete_personal_item", "personal_item", item_id, {"name": personal_item.name})
    db.commit()
    logger.info(f"Personal item deleted: id={item_id}")


def list_personal_items(
    db: Session,
    status: Optional[str] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: str = "desc"
) -> List[PersonalItem]:
    """List personal items, newest first unless a sort field is given"""
    if sort_by and (sort_by not in SORTABLE_FIELDS or not hasattr(PersonalItem, sort_by)):
        raise ItemValidationError(f"Cannot sort by: {sort_by}", field="sort_by")

    query = db.query(PersonalItem)
    if status:
        query = query.filter(PersonalItem.status == parse_personal_status(status))
    if category:
        query = query.filter(PersonalItem.category == parse_category(category))
    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(
            or_(
                func.lower(PersonalItem.name).like(pattern),
                func.lower(PersonalItem.seller).like(pattern),
                func.lower(PersonalItem.batch).like(pattern),
            )
        )

    personal_items = query.order_by(PersonalItem.created_at.desc(), PersonalItem.id.desc()).all()
    return sort_records(personal_items, sort_by, sort_order)
