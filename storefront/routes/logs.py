# storefront/routes/logs.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional, Any
from datetime import datetime
from pydantic import BaseModel

from storefront.database import DB_INT_MAX, get_db
from storefront.exceptions import ValidationError
from storefront.models.log import Log
from storefront.models.users import OPERATOR_ROLES, Principal
from storefront.utils.tokenJWT import role_required

router = APIRouter(prefix="/logs", tags=["Logs"])


class LogResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    action: str
    resource: str
    status: str
    ip: Optional[str] = None
    ts: datetime
    meta: Optional[Any] = None

    class Config:
        from_attributes = True

class LogPage(BaseModel):
    items: List[LogResponse]
    total: int
    page: int
    page_size: int


def _parse_date(value: str, end_of_day: bool = False) -> datetime:
    # Accept YYYY-MM-DD, widened to the whole day for the upper bound
    if end_of_day and len(value) == 10:
        value += " 23:59:59"
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid date '{value}'")


@router.get("", response_model=LogPage)
def get_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    action: Optional[str] = Query(None, description="Filter by action"),
    user_id: Optional[int] = Query(None, ge=1, le=DB_INT_MAX, description="Filter by principal id"),
    resource: Optional[str] = Query(None, description="Filter by resource"),
    status: Optional[str] = Query(None, description="SUCCESS or FAIL"),
    date_from: Optional[str] = Query(None, description="YYYY-MM-DD"),
    date_to: Optional[str] = Query(None, description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
    current_user: Principal = Depends(role_required(*OPERATOR_ROLES)),
):
    query = db.query(Log)

    if action:
        query = query.filter(Log.action.ilike(f"%{action}%"))
    if user_id is not None:
        query = query.filter(Log.user_id == user_id)
    if resource:
        query = query.filter(Log.resource.ilike(f"%{resource}%"))
    if status:
        query = query.filter(Log.status == status.upper())
    if date_from:
        query = query.filter(Log.ts >= _parse_date(date_from))
    if date_to:
        query = query.filter(Log.ts <= _parse_date(date_to, end_of_day=True))

    query = query.order_by(Log.ts.desc(), Log.id.desc())

    total = query.count()
    logs = query.offset((page - 1) * page_size).limit(page_size).all()

    return {
        "items": logs,
        "total": total,
        "page": page,
        "page_size": page_size,
    }
