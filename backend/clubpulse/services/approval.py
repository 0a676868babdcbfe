import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.events import notify, EMAIL_QUEUE_EVENT
from ..core.results import OperationResult, ErrorKind
from ..models.queue_entry import QueueEntry, EmailStatus
from ..models.audit_log import AuditLogEntry
from ..models.admin_action import AdminAction, APPROVE_EMAIL, CANCEL_EMAIL, APPROVE_ALL
from ..security.api_key import Operator

log = logging.getLogger(__name__)

REVIEW_TARGETS = {EmailStatus.APPROVED: APPROVE_EMAIL, EmailStatus.CANCELED: CANCEL_EMAIL}


def _coerce_target(target) -> EmailStatus | None:
    try:
        status = EmailStatus(str(getattr(target, 'value', target)).strip().upper())
    except ValueError:
        return None
    return status if status in REVIEW_TARGETS else None


def transition_entry(db: Session, entry_id: int, target, actor: Operator) -> OperationResult:
    """Move one QUEUED entry to APPROVED or CANCELED.

    The status flip is a conditional UPDATE on status=QUEUED, so a concurrent reviewer
    loses with a conflict instead of overwriting. Queue row, linked warning log row and
    the admin action commit together.
    """
    if not actor.is_panel:
        return OperationResult.unauthorized()
    status = _coerce_target(target)
    if status is None:
        return OperationResult.fail(ErrorKind.VALIDATION, f"Invalid target status: {target}. Use APPROVED or CANCELED.")

    try:
        entry = db.query(QueueEntry).filter(QueueEntry.id == entry_id).first()
        if not entry:
            return OperationResult.fail(ErrorKind.NOT_FOUND, f"Email {entry_id} not found.")
        previous = entry.status
        if not entry.can_transition(status):
            return OperationResult.fail(
                ErrorKind.CONFLICT,
                f"Email {entry_id} is {previous.value}; only QUEUED emails can be approved or canceled.",
                status=previous.value,
            )
        now = datetime.now(timezone.utc)
        updated = db.query(QueueEntry).filter(
            QueueEntry.id == entry_id, QueueEntry.status == EmailStatus.QUEUED,
        ).update({QueueEntry.status: status, QueueEntry.updated_at: now}, synchronize_session=False)
        if updated != 1:
            db.rollback()
            return OperationResult.fail(ErrorKind.CONFLICT, f"Email {entry_id} was already reviewed.")
        db.query(AuditLogEntry).filter(
            AuditLogEntry.queue_entry_id == entry_id, AuditLogEntry.status == EmailStatus.QUEUED,
        ).update({AuditLogEntry.status: status}, synchronize_session=False)
        db.add(AdminAction(
            admin_user_id=actor.id,
            admin_user_email=actor.email,
            action=REVIEW_TARGETS[status],
            details={"emailId": entry_id, "recipient": entry.recipient_email, "previousStatus": previous.value, "newStatus": status.value},
        ))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log.exception("transition_failed", extra={"entry_id": entry_id, "status": status.value})
        return OperationResult.fail(ErrorKind.INTERNAL, "Failed to update email status.")

    log.info("email_reviewed", extra={"entry_id": entry_id, "status": status.value, "operator": actor.email})
    notify(EMAIL_QUEUE_EVENT, {"id": entry_id, "status": status.value})
    return OperationResult.ok(f"Email {entry_id} marked {status.value}.", id=entry_id, status=status.value)


def _approve_if_queued(db: Session, entry_id: int, now: datetime) -> bool:
    """Conditional flip of one entry; False when another reviewer got there first."""
    updated = db.query(QueueEntry).filter(
        QueueEntry.id == entry_id, QueueEntry.status == EmailStatus.QUEUED,
    ).update({QueueEntry.status: EmailStatus.APPROVED, QueueEntry.updated_at: now}, synchronize_session=False)
    return updated == 1


def approve_all(db: Session, actor: Operator) -> OperationResult:
    """Approve every QUEUED entry in a single transaction with one summarizing admin action.

    Only entries this call actually flipped are reported and logged.
    """
    if not actor.is_panel:
        return OperationResult.unauthorized()
    try:
        candidates = [row.id for row in db.query(QueueEntry.id).filter(QueueEntry.status == EmailStatus.QUEUED).all()]
        now = datetime.now(timezone.utc)
        ids = [entry_id for entry_id in candidates if _approve_if_queued(db, entry_id, now)]
        if not ids:
            db.rollback()
            return OperationResult.ok("No queued emails to approve.", approved=0, ids=[])
        approved = len(ids)
        db.query(AuditLogEntry).filter(
            AuditLogEntry.queue_entry_id.in_(ids), AuditLogEntry.status == EmailStatus.QUEUED,
        ).update({AuditLogEntry.status: EmailStatus.APPROVED}, synchronize_session=False)
        db.add(AdminAction(
            admin_user_id=actor.id,
            admin_user_email=actor.email,
            action=APPROVE_ALL,
            details={"count": approved, "emailIds": ids},
        ))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log.exception("approve_all_failed")
        return OperationResult.fail(ErrorKind.INTERNAL, "Failed to approve queued emails.")

    log.info("emails_bulk_approved", extra={"queued": approved, "operator": actor.email})
    notify(EMAIL_QUEUE_EVENT, {"approved": approved})
    return OperationResult.ok(f"Approved {approved} queued email(s).", approved=approved, ids=ids)
