import logging
from datetime import datetime, timezone
from typing import Any, Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.events import notify, EMAIL_QUEUE_EVENT
from ..core.results import OperationResult, ErrorKind
from ..models.queue_entry import QueueEntry, EmailStatus
from ..models.audit_log import AuditLogEntry

OPENED_EVENT = "email.opened"

log = logging.getLogger(__name__)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str) and value.strip():
        try:
            dt = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
            return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
        except ValueError:
            pass
    return datetime.now(timezone.utc)


def handle_provider_event(db: Session, payload: Mapping[str, Any]) -> OperationResult:
    """Apply an email provider webhook event.

    Only email.opened changes state. Unknown types, unknown message ids, unsent or
    already-opened entries are acknowledged as no-ops so the provider does not retry.
    """
    event_type = payload.get("type") if isinstance(payload, Mapping) else None
    data = payload.get("data") if isinstance(payload, Mapping) else None
    if event_type != OPENED_EVENT or not isinstance(data, Mapping):
        log.info("webhook_ignored", extra={"event_type": event_type or "unknown"})
        return OperationResult.ok("Event type not handled.", action="ignored")

    message_id = data.get("email_id")
    if not message_id:
        log.warning("webhook_missing_email_id", extra={"event_type": event_type})
        return OperationResult.fail(ErrorKind.VALIDATION, "Missing email_id in payload.")

    try:
        entry = db.query(QueueEntry).filter(QueueEntry.message_id == str(message_id)).first()
        if not entry or entry.status != EmailStatus.SENT:
            log.info("webhook_unmatched", extra={"message_id": message_id})
            return OperationResult.ok("Email entry not found, but acknowledged.", action="ignored")
        if entry.opened_at is not None:
            return OperationResult.ok("Email already marked opened.", action="ignored", id=entry.id)

        entry.opened_at = _parse_timestamp(data.get("created_at"))
        db.query(AuditLogEntry).filter(
            AuditLogEntry.queue_entry_id == entry.id,
        ).update({AuditLogEntry.email_opened: True}, synchronize_session=False)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log.exception("webhook_update_failed", extra={"message_id": message_id})
        return OperationResult.fail(ErrorKind.INTERNAL, "Internal error during webhook processing.")

    log.info("email_opened", extra={"entry_id": entry.id, "message_id": message_id})
    notify(EMAIL_QUEUE_EVENT, {"id": entry.id, "opened": True})
    return OperationResult.ok("Webhook processed successfully.", action="opened", id=entry.id)
