"""Audit trail API"""
from datetime import datetime, timezone
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from pydantic import BaseModel
from app.database import get_db
from app.services.operation_log_service import LogFilter, get_operation_log_count, get_operation_logs

router = APIRouter(prefix="/api/operation-logs", tags=["operation-logs"])


class OperationLogResponse(BaseModel):
    id: int
    operation_type: str
    target_type: Optional[str] = None
    target_id: Optional[int] = None
    operation_detail: Optional[dict] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class OperationLogPage(BaseModel):
    """One page of audit entries plus the total match count"""
    logs: List[OperationLogResponse]
    total: int
    skip: int
    limit: int


def _parse_date(value: Optional[str], name: str) -> Optional[datetime]:
    """ISO date or datetime; aware values are converted to naive UTC"""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {name}, expected ISO format"
        )
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


@router.get("", response_model=OperationLogPage)
async def list_operation_logs(
    operation_type: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db)
):
    """Audit entries, newest first"""
    log_filter = LogFilter(
        operation_type=operation_type,
        target_type=target_type,
        target_id=target_id,
        start_date=_parse_date(start_date, "start_date"),
        end_date=_parse_date(end_date, "end_date"),
    )
    return OperationLogPage(
        logs=[
            OperationLogResponse.model_validate(entry)
            for entry in get_operation_logs(db, log_filter, skip=skip, limit=limit)
        ],
        total=get_operation_log_count(db, log_filter),
        skip=skip,
        limit=limit,
    )
