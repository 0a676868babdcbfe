import json
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..core.results import OperationResult, ErrorKind
from ..db.database import get_db
from ..services.open_tracker import handle_provider_event
from .deps import respond

router = APIRouter()

log = logging.getLogger(__name__)


@router.post("/resend")
async def resend_webhook(request: Request, db: Session = Depends(get_db)):
    """Email provider events. Anything other than a malformed body or a storage error answers 200."""
    raw = await request.body()
    try:
        payload = json.loads(raw or b"null")
    except ValueError:
        log.warning("webhook_invalid_json")
        return respond(OperationResult.fail(ErrorKind.VALIDATION, "Invalid JSON payload."))
    if not isinstance(payload, dict):
        return respond(OperationResult.fail(ErrorKind.VALIDATION, "Invalid JSON payload."))
    # session work is blocking; keep it off the event loop
    result = await run_in_threadpool(handle_provider_event, db, payload)
    return respond(result)
