from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.queue_entry import EmailStatus


class QueueEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    recipient_email: str
    recipient_name: Optional[str] = None
    subject: str
    template: str
    status: EmailStatus
    message_id: Optional[str] = None
    sent_at: Optional[datetime] = None
    opened_at: Optional[datetime] = None
    opened: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class QueueEntryPreview(QueueEntryOut):
    body_html: str


class QueueListOut(BaseModel):
    total: int
    count: int
    items: List[QueueEntryOut]
    limit: int
    offset: int


class StatusUpdate(BaseModel):
    status: str = Field(..., description="APPROVED or CANCELED")


class WarningLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    queue_entry_id: Optional[int] = None
    recipient_email: str
    recipient_name: Optional[str] = None
    activity_count: int
    threshold: int
    template_used: str
    status: EmailStatus
    email_sent_at: Optional[datetime] = None
    email_opened: bool = False
    created_at: Optional[datetime] = None


class AdminActionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    admin_user_id: str
    admin_user_email: str
    action: str
    details: Optional[Dict[str, Any]] = None
    timestamp: Optional[datetime] = None
