from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, JSON
from ..db.database import Base

# action names written to admin_logs
APPROVE_EMAIL = "APPROVE_EMAIL"
CANCEL_EMAIL = "CANCEL_EMAIL"
APPROVE_ALL = "APPROVE_ALL_EMAILS"
UPDATE_THRESHOLD = "UPDATE_THRESHOLD"


class AdminAction(Base):
    """Append-only record of an operator action."""
    __tablename__ = 'admin_logs'

    id = Column(Integer, primary_key=True)
    admin_user_id = Column(String(64), nullable=False, index=True)
    admin_user_email = Column(String(320), nullable=False)
    action = Column(String(64), nullable=False, index=True)
    details = Column(JSON, nullable=True)
    timestamp = Column(DateTime, default=lambda: datetime.now(timezone.utc), index=True)

    def __repr__(self):
        return f"<AdminAction(id={self.id}, action={self.action}, by={self.admin_user_email})>"
