from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.results import OperationResult
from ..db.database import get_db
from ..schemas.queue import WarningLogOut, AdminActionOut
from ..security.api_key import Operator, get_operator
from ..services.queue_service import list_warning_logs, list_admin_actions
from .deps import respond

router = APIRouter()


@router.get("/warnings")
def warning_logs(
    recipient: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    operator: Operator = Depends(get_operator),
):
    if not operator.is_panel:
        return respond(OperationResult.unauthorized())
    items, total = list_warning_logs(db, recipient=recipient, limit=limit, offset=offset)
    return {"total": total, "items": [WarningLogOut.model_validate(i).model_dump() for i in items]}


@router.get("/admin")
def admin_logs(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    operator: Operator = Depends(get_operator),
):
    if not operator.is_panel:
        return respond(OperationResult.unauthorized())
    items, total = list_admin_actions(db, limit=limit, offset=offset)
    return {"total": total, "items": [AdminActionOut.model_validate(i).model_dump() for i in items]}
