"""Operation log service"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.models.operation_log import OperationLog


@dataclass(frozen=True)
class LogFilter:
    """Criteria for listing audit entries; unset fields match everything"""
    operation_type: Optional[str] = None
    target_type: Optional[str] = None
    target_id: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    def apply(self, query):
        if self.operation_type:
            query = query.filter(OperationLog.operation_type == self.operation_type)
        if self.target_type:
            query = query.filter(OperationLog.target_type == self.target_type)
        if self.target_id is not None:
            query = query.filter(OperationLog.target_id == self.target_id)
        if self.start_date:
            query = query.filter(OperationLog.created_at >= self.start_date)
        if self.end_date:
            query = query.filter(OperationLog.created_at <= self.end_date)
        return query


def create_operation_log(
    db: Session,
    operation_type: str,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    operation_detail: Optional[Dict[str, Any]] = None
) -> OperationLog:
    """Stage an audit entry; it is committed together with the caller's mutation"""
    entry = OperationLog(
        operation_type=operation_type,
        target_type=target_type,
        target_id=target_id,
        operation_detail=operation_detail,
    )
    db.add(entry)
    return entry


def get_operation_logs(
    db: Session,
    log_filter: Optional[LogFilter] = None,
    skip: int = 0,
    limit: int = 100,
    **criteria
) -> List[OperationLog]:
    """Audit entries matching the filter, newest first"""
    log_filter = log_filter or LogFilter(**criteria)
    query = log_filter.apply(db.query(OperationLog))
    return (
        query.order_by(OperationLog.created_at.desc(), OperationLog.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def get_operation_log_count(db: Session, log_filter: Optional[LogFilter] = None, **criteria) -> int:
    log_filter = log_filter or LogFilter(**criteria)
    return log_filter.apply(db.query(OperationLog)).count()
