import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Text, Enum, Index, text
from ..db.database import Base


class EmailStatus(str, enum.Enum):
    QUEUED = "QUEUED"
    APPROVED = "APPROVED"
    SENT = "SENT"
    CANCELED = "CANCELED"
    FAILED = "FAILED"


# Entries in any of these states block a fresh warning for the same recipient
ACTIVE_OR_HANDLED = (EmailStatus.QUEUED, EmailStatus.APPROVED, EmailStatus.CANCELED, EmailStatus.SENT)

# Legal direct transitions; SENT, CANCELED and FAILED are terminal
TRANSITIONS = {
    EmailStatus.QUEUED: {EmailStatus.APPROVED, EmailStatus.CANCELED},
    EmailStatus.APPROVED: {EmailStatus.SENT, EmailStatus.FAILED},
}


def status_column(**kw):
    return Column(
        Enum(EmailStatus, native_enum=False, length=16, validate_strings=True,
             values_callable=lambda e: [m.value for m in e]),
        **kw,
    )


def _utcnow():
    return datetime.now(timezone.utc)


class QueueEntry(Base):
    __tablename__ = 'email_queue'
    __table_args__ = (
        # at most one non-FAILED entry per recipient
        Index(
            'uq_email_queue_active_recipient',
            'recipient_email',
            unique=True,
            sqlite_where=text("status <> 'FAILED'"),
            postgresql_where=text("status <> 'FAILED'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    recipient_email = Column(String(320), nullable=False, index=True)
    recipient_name = Column(String(255))
    subject = Column(String(512), nullable=False)
    body_html = Column(Text, nullable=False)
    template = Column(String(64), nullable=False)
    status = status_column(nullable=False, default=EmailStatus.QUEUED, index=True)
    # provider (Resend) message id, set once sent
    message_id = Column(String(128), nullable=True, index=True)
    sent_at = Column(DateTime, nullable=True)
    opened_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    @property
    def opened(self) -> bool:
        return self.opened_at is not None

    def can_transition(self, target: EmailStatus) -> bool:
        return target in TRANSITIONS.get(self.status, set())

    def __repr__(self):
        return f"<QueueEntry(id={self.id}, recipient={self.recipient_email}, status={self.status})>"
