"""Scheduled job triggers. The scheduler authenticates with `Authorization: Bearer <CRON_SECRET>`."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.config import Settings, get_settings
from ..db.database import get_db
from ..security.cron import require_cron_secret
from ..services.activity_check import check_member_activity
from ..services.dispatcher import process_queue
from .deps import get_sheets, get_mail_client, get_renderer, respond

router = APIRouter(dependencies=[Depends(require_cron_secret)])


@router.get("/check-activity")
def cron_check_activity(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    sheets=Depends(get_sheets),
    renderer=Depends(get_renderer),
):
    return respond(check_member_activity(db, settings, sheets=sheets, renderer=renderer))


@router.get("/process-queue")
def cron_process_queue(db: Session = Depends(get_db), mailer=Depends(get_mail_client)):
    return respond(process_queue(db, mailer))
