from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.queue_entry import QueueEntry, EmailStatus
from ..models.audit_log import AuditLogEntry
from ..models.admin_action import AdminAction


def list_queue(
    db: Session,
    status: Optional[EmailStatus] = None,
    q_search: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> Tuple[List[QueueEntry], int]:
    """List queue entries newest first.

    q_search: case-insensitive containment on recipient email/name.
    """
    q = db.query(QueueEntry)
    if status:
        q = q.filter(QueueEntry.status == status)
    if q_search:
        like = f"%{q_search.lower()}%"
        q = q.filter(QueueEntry.recipient_email.ilike(like) | QueueEntry.recipient_name.ilike(like))
    total = q.count()
    items = q.order_by(QueueEntry.created_at.desc(), QueueEntry.id.desc()).offset(offset).limit(limit).all()
    return items, total


def get_entry(db: Session, entry_id: int) -> Optional[QueueEntry]:
    return db.query(QueueEntry).filter(QueueEntry.id == entry_id).first()


def status_counts(db: Session) -> dict:
    rows = db.query(QueueEntry.status, func.count(QueueEntry.id)).group_by(QueueEntry.status).all()
    counts = {s.value: 0 for s in EmailStatus}
    for status, n in rows:
        counts[status.value] = n
    return counts


def list_warning_logs(db: Session, recipient: Optional[str] = None, limit: int = 100, offset: int = 0) -> Tuple[List[AuditLogEntry], int]:
    q = db.query(AuditLogEntry)
    if recipient:
        q = q.filter(AuditLogEntry.recipient_email == recipient.strip().lower())
    total = q.count()
    items = q.order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc()).offset(offset).limit(limit).all()
    return items, total


def list_admin_actions(db: Session, limit: int = 100, offset: int = 0) -> Tuple[List[AdminAction], int]:
    q = db.query(AdminAction)
    total = q.count()
    items = q.order_by(AdminAction.timestamp.desc(), AdminAction.id.desc()).offset(offset).limit(limit).all()
    return items, total
