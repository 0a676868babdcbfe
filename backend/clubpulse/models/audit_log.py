from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Index
from ..db.database import Base
from .queue_entry import EmailStatus, status_column


class AuditLogEntry(Base):
    """Historical warning record mirroring a QueueEntry's lifecycle.

    Recipient and template are kept for reporting (several rows may exist per recipient
    over time); lifecycle sync goes through queue_entry_id.
    """
    __tablename__ = 'warning_logs'
    __table_args__ = (
        Index('ix_warning_logs_recipient_template', 'recipient_email', 'template_used'),
    )

    id = Column(Integer, primary_key=True, index=True)
    queue_entry_id = Column(Integer, ForeignKey('email_queue.id', ondelete='SET NULL'), nullable=True, index=True)
    recipient_email = Column(String(320), nullable=False)
    recipient_name = Column(String(255))
    activity_count = Column(Integer, nullable=False)
    threshold = Column(Integer, nullable=False)
    template_used = Column(String(64), nullable=False)
    status = status_column(nullable=False, default=EmailStatus.QUEUED, index=True)
    email_sent_at = Column(DateTime, nullable=True)
    email_opened = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), index=True)

    def __repr__(self):
        return f"<AuditLogEntry(id={self.id}, recipient={self.recipient_email}, status={self.status})>"
