import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.events import notify, EMAIL_QUEUE_EVENT
from ..core.results import OperationResult, ErrorKind
from ..models.queue_entry import QueueEntry, EmailStatus
from ..models.audit_log import AuditLogEntry
from ..security.api_key import Operator
from .mailer import SendResult

log = logging.getLogger(__name__)


def _sync_audit(db: Session, entry: QueueEntry, status: EmailStatus, sent_at=None):
    values = {AuditLogEntry.status: status}
    if sent_at is not None:
        values[AuditLogEntry.email_sent_at] = sent_at
    db.query(AuditLogEntry).filter(
        AuditLogEntry.queue_entry_id == entry.id, AuditLogEntry.status == EmailStatus.APPROVED,
    ).update(values, synchronize_session=False)


def _mark_failed(db: Session, entry: QueueEntry) -> bool:
    try:
        entry.status = EmailStatus.FAILED
        entry.message_id = None
        _sync_audit(db, entry, EmailStatus.FAILED)
        db.commit()
        return True
    except SQLAlchemyError:
        db.rollback()
        log.exception("mark_failed_failed", extra={"entry_id": entry.id})
        return False


def _deliver(mailer, entry: QueueEntry) -> SendResult:
    try:
        result = mailer.send(to=entry.recipient_email, subject=entry.subject, html=entry.body_html)
    except Exception as e:
        log.exception("send_raised", extra={"entry_id": entry.id, "recipient": entry.recipient_email})
        return SendResult(error=f"{type(e).__name__}: {e}")
    if result is None:
        return SendResult(error="no response from mail provider")
    return result


def process_queue(db: Session, mailer, actor: Optional[Operator] = None) -> OperationResult:
    """Send every APPROVED entry once; each ends SENT or FAILED.

    No retries within a run. A send that succeeded but could not be recorded is still
    marked FAILED so the run never reports a delivery it cannot prove.
    Operator-triggered runs pass `actor`, which must be PANEL.
    """
    if actor is not None and not actor.is_panel:
        return OperationResult.unauthorized()
    try:
        entries = db.query(QueueEntry).filter(QueueEntry.status == EmailStatus.APPROVED).order_by(QueueEntry.id).all()
    except SQLAlchemyError:
        log.exception("dispatch_query_failed")
        return OperationResult.fail(ErrorKind.INTERNAL, "Failed to load approved emails.")
    if not entries:
        return OperationResult.ok("No approved emails to send.", processed=0, sent=0, failed=0)

    sent = failed = 0
    for entry in entries:
        result = _deliver(mailer, entry)
        if not result.ok:
            log.warning("send_failed", extra={"entry_id": entry.id, "recipient": entry.recipient_email, "reason": result.error})
            _mark_failed(db, entry)
            failed += 1
            continue
        now = datetime.now(timezone.utc)
        try:
            entry.status = EmailStatus.SENT
            entry.message_id = result.id
            entry.sent_at = now
            _sync_audit(db, entry, EmailStatus.SENT, sent_at=now)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            log.error("send_record_failed", exc_info=True, extra={"entry_id": entry.id, "message_id": result.id})
            _mark_failed(db, entry)
            failed += 1
            continue
        sent += 1
        log.info("email_sent", extra={"entry_id": entry.id, "recipient": entry.recipient_email, "message_id": result.id})

    processed = sent + failed
    log.info("dispatch_complete", extra={"sent": sent, "failed": failed})
    notify(EMAIL_QUEUE_EVENT, {"triggeredBy": "processQueue", "sent": sent, "failed": failed})
    return OperationResult.ok(
        f"Queue processed. Sent: {sent}, Failed: {failed}.",
        processed=processed, sent=sent, failed=failed,
    )
