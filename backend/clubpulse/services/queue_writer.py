import logging
from dataclasses import dataclass, field
from typing import Iterable, List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.queue_entry import QueueEntry, EmailStatus, ACTIVE_OR_HANDLED
from ..models.audit_log import AuditLogEntry
from .activity_scanner import Evaluation, RowIssue
from .templates import WarningRenderer, TemplateRenderError

log = logging.getLogger(__name__)


@dataclass
class QueueOutcome:
    queued: List[int] = field(default_factory=list)  # new QueueEntry ids
    skipped: List[str] = field(default_factory=list)  # recipients already handled
    errors: List[RowIssue] = field(default_factory=list)


def has_blocking_entry(db: Session, email: str) -> bool:
    """True when the recipient has a QUEUED, APPROVED, CANCELED or SENT entry."""
    return db.query(QueueEntry.id).filter(
        QueueEntry.recipient_email == email,
        QueueEntry.status.in_(ACTIVE_OR_HANDLED),
    ).first() is not None


def queue_warning(db: Session, ev: Evaluation, renderer: WarningRenderer) -> QueueEntry:
    """Render the member's warning and insert QueueEntry + AuditLogEntry in one commit.

    Raises TemplateRenderError before touching the session, IntegrityError when a
    concurrent writer already queued this recipient.
    """
    m = ev.member
    message = renderer.render_for_role(m.role, name=m.name, activity_count=m.activity_count, threshold=ev.threshold)
    entry = QueueEntry(
        recipient_email=m.email,
        recipient_name=m.name or None,
        subject=message.subject,
        body_html=message.body,
        template=message.template,
        status=EmailStatus.QUEUED,
    )
    try:
        db.add(entry)
        db.flush()
        db.add(AuditLogEntry(
            queue_entry_id=entry.id,
            recipient_email=m.email,
            recipient_name=m.name or None,
            activity_count=m.activity_count,
            threshold=ev.threshold,
            template_used=message.template,
            status=EmailStatus.QUEUED,
        ))
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(entry)
    return entry


def queue_warnings(db: Session, flagged: Iterable[Evaluation], renderer: WarningRenderer) -> QueueOutcome:
    """Queue a warning for every below-threshold member that has no blocking entry.

    Per-member failures (render, database) are collected as row errors; the batch continues.
    """
    outcome = QueueOutcome()
    for ev in flagged:
        m = ev.member
        raw = [m.name, m.email, m.activity_count, m.role]
        try:
            if has_blocking_entry(db, m.email):
                outcome.skipped.append(m.email)
                log.debug("warning_skipped_existing", extra={"recipient": m.email, "row": m.row_index})
                continue
            entry = queue_warning(db, ev, renderer)
        except TemplateRenderError as e:
            log.error("warning_render_failed", extra={"recipient": m.email, "row": m.row_index, "reason": str(e)})
            outcome.errors.append(RowIssue(m.row_index, f"template error: {e}", raw))
            continue
        except IntegrityError:
            # another scan queued this recipient between our check and insert
            log.info("warning_skipped_conflict", extra={"recipient": m.email, "row": m.row_index})
            outcome.skipped.append(m.email)
            continue
        except SQLAlchemyError as e:
            db.rollback()
            log.error("warning_insert_failed", exc_info=True, extra={"recipient": m.email, "row": m.row_index})
            outcome.errors.append(RowIssue(m.row_index, f"database error: {type(e).__name__}", raw))
            continue
        outcome.queued.append(entry.id)
        log.info("warning_queued", extra={"entry_id": entry.id, "recipient": m.email, "template": entry.template})
    return outcome
