from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.config import Settings, get_settings
from ..core.results import OperationResult, ErrorKind
from ..db.database import get_db
from ..models.queue_entry import EmailStatus
from ..schemas.queue import QueueEntryOut, QueueEntryPreview, QueueListOut, StatusUpdate
from ..security.api_key import Operator, get_operator
from ..services.activity_check import check_member_activity
from ..services.approval import transition_entry, approve_all
from ..services.dispatcher import process_queue
from ..services.queue_service import list_queue, get_entry
from .deps import get_sheets, get_mail_client, get_renderer, respond

router = APIRouter()


@router.get("")
def list_entries(
    status: Optional[EmailStatus] = None,
    q: Optional[str] = Query(None, description="Substring match on recipient email or name"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    operator: Operator = Depends(get_operator),
):
    if not operator.is_panel:
        return respond(OperationResult.unauthorized())
    items, total = list_queue(db, status=status, q_search=q, limit=limit, offset=offset)
    return QueueListOut(
        total=total,
        count=len(items),
        items=[QueueEntryOut.model_validate(e) for e in items],
        limit=limit,
        offset=offset,
    )


@router.post("/approve-all")
def approve_all_entries(db: Session = Depends(get_db), operator: Operator = Depends(get_operator)):
    return respond(approve_all(db, operator))


@router.post("/check-activity")
def run_activity_check(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    sheets=Depends(get_sheets),
    renderer=Depends(get_renderer),
    operator: Operator = Depends(get_operator),
):
    """Operator-triggered scan; same work as the scheduled job."""
    return respond(check_member_activity(db, settings, sheets=sheets, renderer=renderer, actor=operator))


@router.post("/process")
def run_dispatch(
    db: Session = Depends(get_db),
    mailer=Depends(get_mail_client),
    operator: Operator = Depends(get_operator),
):
    return respond(process_queue(db, mailer, actor=operator))


@router.get("/{entry_id}")
def preview_entry(entry_id: int, db: Session = Depends(get_db), operator: Operator = Depends(get_operator)):
    """Single entry including the stored body, exactly as it will be sent."""
    if not operator.is_panel:
        return respond(OperationResult.unauthorized())
    entry = get_entry(db, entry_id)
    if not entry:
        return respond(OperationResult.fail(ErrorKind.NOT_FOUND, f"Email {entry_id} not found."))
    return QueueEntryPreview.model_validate(entry).model_dump()


@router.post("/{entry_id}/status")
def update_status(
    entry_id: int,
    payload: StatusUpdate,
    db: Session = Depends(get_db),
    operator: Operator = Depends(get_operator),
):
    return respond(transition_entry(db, entry_id, payload.status, operator))
