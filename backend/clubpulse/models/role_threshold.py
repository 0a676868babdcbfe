from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime
from ..db.database import Base


def normalize_role(role) -> str:
    """Trimmed, lower-cased role name; the key for threshold lookups and template buckets."""
    if role is None:
        return ''
    return str(role).strip().lower()


class RoleThreshold(Base):
    __tablename__ = 'role_thresholds'

    id = Column(Integer, primary_key=True)
    # stored normalized
    role_name = Column(String(100), unique=True, nullable=False, index=True)
    threshold = Column(Integer, nullable=False)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<RoleThreshold(role={self.role_name}, threshold={self.threshold})>"
